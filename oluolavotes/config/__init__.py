"""
oluolavotes Configuration

Loads oluolavotes.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    ClientConfig,
    ContractSectionConfig,
    FAILURE_POLICIES,
    LoggingSectionConfig,
    NetworkSectionConfig,
    SyncConfig,
    WalletSectionConfig,
    load_config,
)

__all__ = [
    "ClientConfig",
    "ContractSectionConfig",
    "FAILURE_POLICIES",
    "LoggingSectionConfig",
    "NetworkSectionConfig",
    "SyncConfig",
    "WalletSectionConfig",
    "load_config",
]
