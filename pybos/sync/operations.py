"""Write payloads and the submit interface for SocialDB ``set`` calls."""

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from ..exceptions import BosIoError
from ..models import Component
from ..utils import DEFAULT_SET_GAS
from .remote import WIDGET_KEY

logger = logging.getLogger(__name__)


def build_write_payload(owner: str, components: Mapping[str, Component]) -> dict:
    """Build the ``set`` arguments writing ``components`` for ``owner``.

    Returns:
        ``{"data": {owner: {"widget": {name: value}}}}``

    Raises:
        ValueError: If there is nothing to write
    """
    if not components:
        raise ValueError("Cannot build a write payload without components")
    return {
        "data": {
            owner: {
                WIDGET_KEY: {
                    name: components[name].to_api_value()
                    for name in sorted(components)
                }
            }
        }
    }


def build_delete_payload(owner: str, names: Iterable[str]) -> dict:
    """Build the ``set`` arguments removing ``names`` from ``owner``.

    SocialDB drops a key written as null, so both the code and the metadata
    of each component are nulled.

    Raises:
        ValueError: If there is nothing to delete
    """
    names = sorted(set(names))
    if not names:
        raise ValueError("Cannot build a delete payload without components")
    return {
        "data": {
            owner: {
                WIDGET_KEY: {name: {"": None, "metadata": None} for name in names}
            }
        }
    }


def payload_component_names(args: Mapping[str, Any], owner: str) -> list[str]:
    """Names of the components a ``set`` payload writes for ``owner``."""
    try:
        return sorted(args["data"][owner][WIDGET_KEY])
    except (KeyError, TypeError) as e:
        raise ValueError(f"Payload does not write components of <{owner}>") from e


@dataclass
class FunctionCallTransaction:
    """An unsigned single-action function-call transaction."""

    signer_id: str
    public_key: str
    receiver_id: str
    args: dict[str, Any]
    deposit: int = 0
    """Attached deposit in yoctoNEAR"""

    gas: int = DEFAULT_SET_GAS
    method_name: str = "set"

    def to_dict(self) -> dict[str, Any]:
        return {
            "signer_id": self.signer_id,
            "public_key": self.public_key,
            "receiver_id": self.receiver_id,
            "actions": [
                {
                    "FunctionCall": {
                        "method_name": self.method_name,
                        "args": self.args,
                        "gas": self.gas,
                        # yoctoNEAR exceeds JSON-safe integers
                        "deposit": str(self.deposit),
                    }
                }
            ],
        }


@dataclass
class SubmitResult:
    """Outcome reported by a submit accessor."""

    success: bool
    """False if the accessor reported a failed write"""

    status: Any = None
    """Raw status reported by the accessor (shown verbatim on failure)"""

    confirmed: bool = True
    """False when the transaction was only handed to an external signer"""

    details: dict[str, Any] = field(default_factory=dict)


class Submitter(Protocol):
    """Signs and sends a prepared transaction."""

    def submit(self, transaction: FunctionCallTransaction) -> SubmitResult: ...


class ExportSubmitter:
    """Writes the unsigned transaction to a JSON file for an external signer."""

    def __init__(self, path: Path):
        self.path = path

    def submit(self, transaction: FunctionCallTransaction) -> SubmitResult:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(transaction.to_dict(), f, indent=2)
        except OSError as e:
            raise BosIoError(f"Failed to export transaction to {self.path}: {e}") from e
        logger.debug(f"Exported unsigned transaction to {self.path}")
        return SubmitResult(
            success=True,
            status="exported",
            confirmed=False,
            details={"path": str(self.path)},
        )
