"""Component comparison logic for deploy operations."""

import difflib
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..models import Component

logger = logging.getLogger(__name__)


class SyncAction(str, Enum):
    """Classification of a local component against remote state."""

    NEW = "new"
    """Component does not exist remotely"""

    MODIFIED = "modified"
    """Code or declared metadata differs from remote"""

    UNCHANGED = "unchanged"
    """Nothing to deploy"""

    @property
    def needs_write(self) -> bool:
        return self is not SyncAction.UNCHANGED


@dataclass
class SyncDecision:
    """Represents a decision about one local component."""

    name: str
    """Component name"""

    action: SyncAction
    """Classification"""

    reason: str
    """Human-readable reason for this decision"""

    local: Component
    """Local component"""

    remote: Optional[Component]
    """Remote component (if exists)"""

    code_changed: bool = False
    metadata_changed: bool = False


class ComponentComparator:
    """Compares local and remote components to determine what to deploy.

    Code is compared as exact text, so whitespace-only edits count as
    changes. Metadata only counts when the local component declares some:
    a component without a metadata file never triggers a write because the
    remote copy has metadata. This asymmetry keeps a deploy from wiping
    remote metadata that the local tree never tracked.
    """

    def compare(
        self,
        local: Mapping[str, Component],
        remote: Mapping[str, Component],
    ) -> list[SyncDecision]:
        """Classify every local component.

        Args:
            local: Dictionary mapping name to local Component
            remote: Dictionary mapping name to remote Component

        Returns:
            List of SyncDecision objects sorted by component name
        """
        return [
            self._compare_single(name, local[name], remote.get(name))
            for name in sorted(local)
        ]

    def _compare_single(
        self, name: str, local: Component, remote: Optional[Component]
    ) -> SyncDecision:
        if remote is None:
            logger.debug(f"Found new component <{name}> to deploy")
            return SyncDecision(
                name=name,
                action=SyncAction.NEW,
                reason="New component",
                local=local,
                remote=None,
                code_changed=True,
                metadata_changed=local.metadata is not None,
            )

        code_changed = local.code != remote.code
        metadata_changed = (
            local.metadata is not None and local.metadata != remote.metadata
        )
        logger.debug(
            f"Component <{name}>: code_changed={code_changed} "
            f"metadata_changed={metadata_changed}"
        )

        if code_changed and metadata_changed:
            action, reason = SyncAction.MODIFIED, "Code and metadata changed"
        elif code_changed:
            action, reason = SyncAction.MODIFIED, "Code changed"
        elif metadata_changed:
            action, reason = SyncAction.MODIFIED, "Metadata changed"
        else:
            action, reason = SyncAction.UNCHANGED, "Code and metadata have not changed"

        return SyncDecision(
            name=name,
            action=action,
            reason=reason,
            local=local,
            remote=remote,
            code_changed=code_changed,
            metadata_changed=metadata_changed,
        )


def classify(
    local: Mapping[str, Component], remote: Mapping[str, Component]
) -> dict[str, Component]:
    """Return the subset of ``local`` that has to be written.

    An empty result means there is nothing to deploy.
    """
    return {
        decision.name: decision.local
        for decision in ComponentComparator().compare(local, remote)
        if decision.action.needs_write
    }


def render_code_diff(name: str, old_code: str, new_code: str) -> str:
    """Unified diff between the remote and local code of a component."""
    diff = difflib.unified_diff(
        old_code.splitlines(keepends=True),
        new_code.splitlines(keepends=True),
        fromfile=f"remote/{name}",
        tofile=f"local/{name}",
    )
    return "".join(line if line.endswith("\n") else line + "\n" for line in diff)
