"""Remote component access through the SocialDB contract."""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from ..api import SocialDbClient
from ..exceptions import BosConfigError, BosInvalidResponseError
from ..models import Component, MetadataFormatError
from .deposit import Permission, permission_from_view

logger = logging.getLogger(__name__)

WIDGET_KEY = "widget"


def _owner_widgets(response: Any, owner: str) -> Optional[dict[str, Any]]:
    """Return the ``widget`` subtree of ``owner``, or None if absent."""
    if not isinstance(response, dict):
        raise BosInvalidResponseError("SocialDB response is not an object")
    account = response.get(owner)
    if account is None:
        return None
    if not isinstance(account, dict):
        raise BosInvalidResponseError(f"SocialDB entry of <{owner}> is not an object")
    widgets = account.get(WIDGET_KEY)
    if widgets is None:
        return None
    if not isinstance(widgets, dict):
        raise BosInvalidResponseError(
            f"SocialDB '{WIDGET_KEY}' entry of <{owner}> is not an object"
        )
    return widgets


def parse_components(response: Any, owner: str) -> dict[str, Component]:
    """Parse a SocialDB ``get`` response into components of one owner.

    Each value may be a bare code string or a ``{"": code, "metadata": ...}``
    object.

    Raises:
        BosInvalidResponseError: If the response does not have the expected shape
    """
    widgets = _owner_widgets(response, owner)
    if widgets is None:
        return {}

    components: dict[str, Component] = {}
    for name, value in widgets.items():
        try:
            components[name] = Component.from_api_value(value)
        except (ValueError, MetadataFormatError) as e:
            raise BosInvalidResponseError(
                f"Could not parse remote component <{name}>: {e}"
            ) from e
    return components


def parse_block_heights(response: Any, owner: str) -> dict[str, int]:
    """Parse a SocialDB ``keys`` response with ``BlockHeight`` return type."""
    widgets = _owner_widgets(response, owner)
    if widgets is None:
        return {}

    heights: dict[str, int] = {}
    for name, height in widgets.items():
        if isinstance(height, bool) or not isinstance(height, int):
            raise BosInvalidResponseError(
                f"Block height of remote component <{name}> is not an integer"
            )
        heights[name] = height
    return heights


class RemoteComponentClient:
    """Reads components, block heights and write grants from SocialDB.

    The network -> contract table is injected so that the client does not
    depend on global configuration.
    """

    def __init__(
        self,
        rpc: SocialDbClient,
        network_name: str,
        social_contracts: Mapping[str, str],
    ):
        """Initialize the remote client.

        Args:
            rpc: JSON-RPC transport
            network_name: Network the transport talks to
            social_contracts: Mapping network name -> SocialDB contract id
        """
        self.rpc = rpc
        self.network_name = network_name
        self.social_contracts = social_contracts

    @property
    def contract_id(self) -> str:
        """SocialDB contract account id on the current network."""
        contract_id = self.social_contracts.get(self.network_name)
        if contract_id is None:
            raise BosConfigError(
                f"The <{self.network_name}> network does not have a "
                "near-social contract."
            )
        return contract_id

    def fetch_records(self, owner: str, names: Iterable[str]) -> dict[str, Component]:
        """Fetch the current components ``names`` of ``owner``.

        Args:
            owner: Account owning the components
            names: Component names to fetch

        Returns:
            Components found remotely (empty if the owner has none)

        Raises:
            BosRpcError: If the query or its response envelope fails
        """
        keys = [f"{owner}/{WIDGET_KEY}/{name}/**" for name in sorted(names)]
        if not keys:
            return {}
        logger.debug(f"Fetching {len(keys)} component(s) of <{owner}>")
        response = self.rpc.call_view_function(self.contract_id, "get", {"keys": keys})
        components = parse_components(response, owner)
        logger.debug(f"Fetched {len(components)} remote component(s) of <{owner}>")
        return components

    def fetch_block_heights(self, owner: str) -> dict[str, int]:
        """List the components of ``owner`` with the block height of their
        last change, without downloading code."""
        response = self.rpc.call_view_function(
            self.contract_id,
            "keys",
            {
                "keys": [f"{owner}/{WIDGET_KEY}/*"],
                "options": {"return_type": "BlockHeight"},
            },
        )
        return parse_block_heights(response, owner)

    def is_write_permission_granted(self, grantee: str, key: str) -> bool:
        """Check whether ``grantee`` may write under ``key``.

        Args:
            grantee: Account id or public key (``ed25519:...``)
            key: SocialDB key prefix, e.g. ``alice.near/widget``
        """
        field = "public_key" if ":" in grantee else "predecessor_id"
        result = self.rpc.call_view_function(
            self.contract_id,
            "is_write_permission_granted",
            {field: grantee, "key": key},
        )
        if not isinstance(result, bool):
            raise BosInvalidResponseError(
                "is_write_permission_granted did not return a boolean"
            )
        return result

    def get_access_key_permission(self, account_id: str, public_key: str) -> Permission:
        """Look up the permission of an access key."""
        view = self.rpc.view_access_key(account_id, public_key)
        return permission_from_view(view["permission"])
