"""
Stacks network presets and contract identity.
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional

from .clarity.c32 import (
    MAINNET_SINGLE_SIG,
    TESTNET_SINGLE_SIG,
    c32address_decode,
    is_valid_contract_name,
)
from .constants import CONTRACT_NAMES, DEPLOYER_ADDRESS, GOVERNANCE_CONTRACT_NAME
from .exceptions import ConfigError, InvalidAddressError


@dataclass(frozen=True)
class StacksNetwork:
    """A Stacks network the client can talk to."""

    # Preset name (mainnet / testnet / devnet)
    name: str

    # Core node API base URL
    api_url: str

    # Chain id as used in transaction payloads
    chain_id: int

    # Single-sig address version for this network
    address_version: int

    def with_api_url(self, api_url: Optional[str]) -> "StacksNetwork":
        if not api_url:
            return self
        return replace(self, api_url=api_url.rstrip("/"))

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "apiUrl": self.api_url,
            "chainId": hex(self.chain_id),
        }


MAINNET = StacksNetwork(
    name="mainnet",
    api_url="https://api.mainnet.hiro.so",
    chain_id=0x00000001,
    address_version=MAINNET_SINGLE_SIG,
)

TESTNET = StacksNetwork(
    name="testnet",
    api_url="https://api.testnet.hiro.so",
    chain_id=0x80000000,
    address_version=TESTNET_SINGLE_SIG,
)

DEVNET = StacksNetwork(
    name="devnet",
    api_url="http://localhost:3999",
    chain_id=0x80000000,
    address_version=TESTNET_SINGLE_SIG,
)

NETWORKS: Dict[str, StacksNetwork] = {n.name: n for n in (MAINNET, TESTNET, DEVNET)}


def network_from_name(name: str, api_url: Optional[str] = None) -> StacksNetwork:
    """
    Resolve a network preset by name.

    Args:
        name: mainnet, testnet or devnet (case-insensitive)
        api_url: Optional override of the preset's API URL

    Raises:
        ConfigError: for unknown names
    """
    network = NETWORKS.get((name or "").strip().lower())
    if network is None:
        raise ConfigError(f"Unknown network: {name!r} (expected one of {', '.join(NETWORKS)})")
    return network.with_api_url(api_url)


@dataclass(frozen=True)
class ContractId:
    """Deployed contract: deployer address + contract name."""
    address: str
    name: str

    @property
    def identifier(self) -> str:
        return f"{self.address}.{self.name}"

    def validate(self) -> None:
        try:
            c32address_decode(self.address)
        except InvalidAddressError as e:
            raise ConfigError(f"Invalid contract address {self.address!r}: {e}") from e
        if not is_valid_contract_name(self.name):
            raise ConfigError(f"Invalid contract name: {self.name!r}")

    def to_dict(self) -> Dict[str, str]:
        return {"address": self.address, "name": self.name}


# The deployed governance suite. Only OLUOLAVOTES is called by this client.
CONTRACTS: Dict[str, ContractId] = {
    key: ContractId(DEPLOYER_ADDRESS, name) for key, name in CONTRACT_NAMES.items()
}

GOVERNANCE_CONTRACT = ContractId(DEPLOYER_ADDRESS, GOVERNANCE_CONTRACT_NAME)
