"""
oluolavotes TOML Configuration Loader

Loads oluolavotes.toml with environment variable overrides. Each [section]
maps onto a dataclass with `from_dict` and `apply_env`.

Environment variable mapping:
    [network] name        → OLUOLAVOTES_NETWORK
    [network] api_url     → OLUOLAVOTES_API_URL
    [contract] address    → OLUOLAVOTES_CONTRACT_ADDRESS
    [sync] failure_policy → OLUOLAVOTES_FAILURE_POLICY
    ...
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import (
    APP_ICON,
    APP_NAME,
    DEFAULT_FAILURE_POLICY,
    DEFAULT_FETCH_CONCURRENCY,
    DEFAULT_FETCH_RETRIES,
    DEFAULT_NETWORK,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SESSION_FILE,
    DEFAULT_WALLET_URL,
    DEPLOYER_ADDRESS,
    GOVERNANCE_CONTRACT_NAME,
)
from ..exceptions import ConfigError
from ..network import ContractId, StacksNetwork, network_from_name

logger = logging.getLogger(__name__)

FAILURE_POLICIES = ("omit", "retry", "fail")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _coerce(convert, value: Any, key: str):
    try:
        return convert(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {key}: {value!r}") from e


@dataclass
class NetworkSectionConfig:
    """[network] section."""
    name: str = DEFAULT_NETWORK
    api_url: str = ""
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NetworkSectionConfig":
        return cls(
            name=data.get("name", DEFAULT_NETWORK),
            api_url=data.get("api_url", ""),
            request_timeout=_coerce(float, data.get("request_timeout", DEFAULT_REQUEST_TIMEOUT), "request_timeout"),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("OLUOLAVOTES_NETWORK"):
            self.name = v
        if v := os.environ.get("OLUOLAVOTES_API_URL"):
            self.api_url = v
        if v := os.environ.get("OLUOLAVOTES_REQUEST_TIMEOUT"):
            self.request_timeout = _coerce(float, v, "OLUOLAVOTES_REQUEST_TIMEOUT")

    def resolve(self) -> StacksNetwork:
        return network_from_name(self.name, self.api_url or None)


@dataclass
class ContractSectionConfig:
    """[contract] section."""
    address: str = DEPLOYER_ADDRESS
    name: str = GOVERNANCE_CONTRACT_NAME
    # Sender for read-only calls; empty means "the contract address itself"
    sender: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContractSectionConfig":
        return cls(
            address=data.get("address", DEPLOYER_ADDRESS),
            name=data.get("name", GOVERNANCE_CONTRACT_NAME),
            sender=data.get("sender", ""),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("OLUOLAVOTES_CONTRACT_ADDRESS"):
            self.address = v
        if v := os.environ.get("OLUOLAVOTES_CONTRACT_NAME"):
            self.name = v
        if v := os.environ.get("OLUOLAVOTES_SENDER"):
            self.sender = v

    @property
    def contract_id(self) -> ContractId:
        return ContractId(self.address, self.name)


@dataclass
class SyncConfig:
    """[sync] section: proposal read-model behaviour."""
    fetch_concurrency: int = DEFAULT_FETCH_CONCURRENCY
    failure_policy: str = DEFAULT_FAILURE_POLICY
    fetch_retries: int = DEFAULT_FETCH_RETRIES
    discard_superseded: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SyncConfig":
        return cls(
            fetch_concurrency=_coerce(int, data.get("fetch_concurrency", DEFAULT_FETCH_CONCURRENCY), "fetch_concurrency"),
            failure_policy=data.get("failure_policy", DEFAULT_FAILURE_POLICY),
            fetch_retries=_coerce(int, data.get("fetch_retries", DEFAULT_FETCH_RETRIES), "fetch_retries"),
            discard_superseded=data.get("discard_superseded", True),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("OLUOLAVOTES_FETCH_CONCURRENCY"):
            self.fetch_concurrency = _coerce(int, v, "OLUOLAVOTES_FETCH_CONCURRENCY")
        if v := os.environ.get("OLUOLAVOTES_FAILURE_POLICY"):
            self.failure_policy = v.strip().lower()
        if v := os.environ.get("OLUOLAVOTES_FETCH_RETRIES"):
            self.fetch_retries = _coerce(int, v, "OLUOLAVOTES_FETCH_RETRIES")
        if v := os.environ.get("OLUOLAVOTES_DISCARD_SUPERSEDED"):
            self.discard_superseded = _env_bool(v)


@dataclass
class WalletSectionConfig:
    """[wallet] section."""
    bridge_url: str = DEFAULT_WALLET_URL
    session_file: str = DEFAULT_SESSION_FILE
    app_name: str = APP_NAME
    app_icon: str = APP_ICON

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WalletSectionConfig":
        return cls(
            bridge_url=data.get("bridge_url", DEFAULT_WALLET_URL),
            session_file=data.get("session_file", DEFAULT_SESSION_FILE),
            app_name=data.get("app_name", APP_NAME),
            app_icon=data.get("app_icon", APP_ICON),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("OLUOLAVOTES_WALLET_URL"):
            self.bridge_url = v
        if v := os.environ.get("OLUOLAVOTES_SESSION_FILE"):
            self.session_file = v

    @property
    def session_path(self) -> Path:
        return Path(self.session_file).expanduser()


@dataclass
class LoggingSectionConfig:
    """[logging] section."""
    level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSectionConfig":
        return cls(level=str(data.get("level", "INFO")).upper())

    def apply_env(self) -> None:
        if v := os.environ.get("OLUOLAVOTES_LOG_LEVEL"):
            self.level = v.upper()


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


@dataclass
class ClientConfig:
    """Complete client configuration, one attribute per TOML section."""
    network: NetworkSectionConfig = field(default_factory=NetworkSectionConfig)
    contract: ContractSectionConfig = field(default_factory=ContractSectionConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    wallet: WalletSectionConfig = field(default_factory=WalletSectionConfig)
    logging: LoggingSectionConfig = field(default_factory=LoggingSectionConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        return cls(
            network=NetworkSectionConfig.from_dict(data.get("network", {})),
            contract=ContractSectionConfig.from_dict(data.get("contract", {})),
            sync=SyncConfig.from_dict(data.get("sync", {})),
            wallet=WalletSectionConfig.from_dict(data.get("wallet", {})),
            logging=LoggingSectionConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str, required: bool = False) -> "ClientConfig":
        """
        Load configuration from a TOML file. A missing file yields the
        defaults (with env overrides applied) unless *required* is set.
        """
        path = Path(config_path)
        if not path.exists():
            if required:
                raise ConfigError(f"Config file not found: {config_path}")
            logger.debug("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.network.apply_env()
        self.contract.apply_env()
        self.sync.apply_env()
        self.wallet.apply_env()
        self.logging.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigError: on invalid config
        """
        self.network.resolve()
        if self.network.request_timeout <= 0:
            raise ConfigError("request_timeout must be > 0")
        self.contract.contract_id.validate()
        if self.sync.fetch_concurrency < 1:
            raise ConfigError("fetch_concurrency must be >= 1")
        if self.sync.fetch_retries < 0:
            raise ConfigError("fetch_retries must be >= 0")
        if self.sync.failure_policy not in FAILURE_POLICIES:
            raise ConfigError(
                f"Invalid failure_policy: {self.sync.failure_policy!r} "
                f"(expected one of {', '.join(FAILURE_POLICIES)})"
            )
        if self.logging.level not in LOG_LEVELS:
            raise ConfigError(f"Invalid log level: {self.logging.level}")
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics)."""
        return {
            "network": {
                "name": self.network.name,
                "api_url": self.network.api_url,
                "request_timeout": self.network.request_timeout,
            },
            "contract": {
                "address": self.contract.address,
                "name": self.contract.name,
                "sender": self.contract.sender,
            },
            "sync": {
                "fetch_concurrency": self.sync.fetch_concurrency,
                "failure_policy": self.sync.failure_policy,
                "fetch_retries": self.sync.fetch_retries,
                "discard_superseded": self.sync.discard_superseded,
            },
            "wallet": {
                "bridge_url": self.wallet.bridge_url,
                "session_file": self.wallet.session_file,
                "app_name": self.wallet.app_name,
                "app_icon": self.wallet.app_icon,
            },
            "logging": {
                "level": self.logging.level,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> ClientConfig:
    """
    Load client configuration.

    Resolution order:
        1. Explicit *path* argument
        2. OLUOLAVOTES_CONFIG env var
        3. ./oluolavotes.toml in current directory
        4. Defaults (with env overrides)

    A path given through 1. or 2. must exist.

    Raises:
        ConfigError: on a missing explicit path, invalid TOML or bad values
    """
    if path is None:
        path = os.environ.get("OLUOLAVOTES_CONFIG")
    if path:
        return ClientConfig.from_file(path, required=True)
    return ClientConfig.from_file("oluolavotes.toml")
