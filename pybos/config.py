"""Configuration management for pybos."""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .exceptions import BosConfigError
from .utils import (
    DEFAULT_SET_GAS,
    DEFAULT_SOURCE_DIR,
    YOCTO_PER_NEAR,
    parse_near_amount,
)

logger = logging.getLogger(__name__)

DEFAULT_NETWORK = "mainnet"


@dataclass(frozen=True)
class NetworkConfig:
    """Connection settings for one network."""

    name: str
    """Network name (e.g. "mainnet")"""

    rpc_url: str
    """JSON-RPC endpoint"""

    social_contract: str
    """Account id of the SocialDB contract on this network"""


DEFAULT_NETWORKS: dict[str, NetworkConfig] = {
    "mainnet": NetworkConfig(
        name="mainnet",
        rpc_url="https://rpc.mainnet.near.org",
        social_contract="social.near",
    ),
    "testnet": NetworkConfig(
        name="testnet",
        rpc_url="https://rpc.testnet.near.org",
        social_contract="v1.social08.testnet",
    ),
}


class Config:
    """Runtime configuration.

    Values are resolved from (highest priority first) explicit arguments,
    the ``BOS_*`` environment variables and the JSON config file at
    ``~/.config/pybos/config.json``.

    The config file may contain::

        {
            "default_network": "testnet",
            "networks": {
                "localnet": {"rpc_url": "http://127.0.0.1:3030",
                             "social_contract": "social.test.near"}
            },
            "minimal_deposit": "1 yoctoNEAR",
            "new_account_deposit": "1 NEAR",
            "set_gas": 300000000000000,
            "source_dir": "src"
        }
    """

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = config_dir or Path.home() / ".config" / "pybos"
        self._file_data: Optional[dict[str, Any]] = None

    def get_config_path(self) -> Path:
        """Path of the JSON config file."""
        return self.config_dir / "config.json"

    @property
    def _data(self) -> dict[str, Any]:
        # Loaded on first access
        if self._file_data is None:
            self._file_data = self._load_file()
        return self._file_data

    def _load_file(self) -> dict[str, Any]:
        path = self.get_config_path()
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise BosConfigError(f"Could not read config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise BosConfigError(f"Config file {path} must contain a JSON object")
        logger.debug(f"Loaded configuration from {path}")
        return data

    def validate(self) -> None:
        """Load the config file and check every value.

        Raises:
            BosConfigError: If the file is unreadable or a value is invalid
        """
        for name in (
            "networks",
            "default_network",
            "minimal_deposit",
            "new_account_deposit",
            "set_gas",
            "source_dir",
        ):
            getattr(self, name)

    @property
    def networks(self) -> dict[str, NetworkConfig]:
        """All known networks, built-in ones overridden by the config file."""
        networks = dict(DEFAULT_NETWORKS)
        entries = self._data.get("networks", {})
        if not isinstance(entries, dict):
            raise BosConfigError("'networks' in config file must be an object")
        for name, entry in entries.items():
            try:
                networks[name] = NetworkConfig(
                    name=name,
                    rpc_url=entry["rpc_url"],
                    social_contract=entry["social_contract"],
                )
            except (KeyError, TypeError) as e:
                raise BosConfigError(f"Invalid network entry '{name}': {e}") from e
        return networks

    @property
    def default_network(self) -> str:
        name = os.environ.get("BOS_NETWORK") or self._data.get(
            "default_network", DEFAULT_NETWORK
        )
        if not isinstance(name, str):
            raise BosConfigError("'default_network' in config file must be a string")
        return name

    def get_network(
        self, name: Optional[str] = None, rpc_url: Optional[str] = None
    ) -> NetworkConfig:
        """Resolve the network to talk to.

        Args:
            name: Network name (defaults to ``default_network``)
            rpc_url: Optional RPC url override (falls back to ``BOS_RPC_URL``)

        Returns:
            NetworkConfig for the network

        Raises:
            BosConfigError: If the network has no SocialDB contract configured
        """
        name = name or self.default_network
        network = self.networks.get(name)
        if network is None:
            raise BosConfigError(
                f"The <{name}> network does not have a near-social contract."
            )
        rpc_url = rpc_url or os.environ.get("BOS_RPC_URL")
        if rpc_url:
            network = NetworkConfig(
                name=network.name,
                rpc_url=rpc_url,
                social_contract=network.social_contract,
            )
        return network

    @property
    def social_contracts(self) -> dict[str, str]:
        """Mapping network name -> SocialDB contract account id."""
        return {name: net.social_contract for name, net in self.networks.items()}

    def _amount(self, key: str, default: int) -> int:
        try:
            return parse_near_amount(str(self._data.get(key, default)))
        except ValueError as e:
            raise BosConfigError(f"Invalid '{key}' in config file: {e}") from e

    @property
    def minimal_deposit(self) -> int:
        """Nominal deposit for self-writes without an existing grant (yoctoNEAR)."""
        return self._amount("minimal_deposit", 1)

    @property
    def new_account_deposit(self) -> int:
        """Storage deposit for an owner without any components (yoctoNEAR)."""
        return self._amount("new_account_deposit", YOCTO_PER_NEAR)

    @property
    def set_gas(self) -> int:
        """Gas attached to ``set`` calls."""
        gas = self._data.get("set_gas", DEFAULT_SET_GAS)
        if isinstance(gas, bool) or not isinstance(gas, int) or gas <= 0:
            raise BosConfigError(
                f"'set_gas' in config file must be a positive integer, got {gas!r}"
            )
        return gas

    @property
    def source_dir(self) -> Path:
        source_dir = self._data.get("source_dir", DEFAULT_SOURCE_DIR)
        if not isinstance(source_dir, str) or not source_dir:
            raise BosConfigError(
                "'source_dir' in config file must be a path string, "
                f"got {source_dir!r}"
            )
        return Path(source_dir)


config = Config()
