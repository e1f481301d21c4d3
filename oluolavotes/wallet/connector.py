"""
Wallet Connector

The client never holds keys. Authentication and transaction signing are
handed to an external wallet; this module defines that boundary and an
HTTP implementation that talks to a local wallet bridge.

Bridge protocol (JSON over HTTP):
    POST {bridge}/auth            {"appDetails": {...}, "network": "mainnet"}
        -> {"status": "finished", "profile": {"stxAddress": {"mainnet": ..., "testnet": ...}}}
        -> {"status": "cancelled"}
    POST {bridge}/contract-call   ContractCallRequest.to_dict()
        -> {"status": "finished", "txId": "0x...", "txRaw": "..."}
        -> {"status": "cancelled"}
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

import httpx

from ..constants import APP_ICON, APP_NAME, DEFAULT_REQUEST_TIMEOUT
from ..exceptions import WalletError
from ..logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AppDetails:
    """How the app presents itself in the wallet's approval screens."""
    name: str = APP_NAME
    icon: str = APP_ICON

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "icon": self.icon}


@dataclass(frozen=True)
class UserData:
    """Signed-in wallet user; one STX address per network."""
    mainnet_address: str = ""
    testnet_address: str = ""

    def address_for(self, network_name: str) -> str:
        if network_name == "mainnet":
            return self.mainnet_address
        return self.testnet_address

    @classmethod
    def from_profile(cls, payload: Dict[str, Any]) -> "UserData":
        """Parse the `profile.stxAddress` shape the wallet returns."""
        profile = payload.get("profile") or {}
        stx = profile.get("stxAddress") or {}
        if not isinstance(stx, dict):
            raise WalletError("Malformed profile: stxAddress must be an object")
        return cls(
            mainnet_address=str(stx.get("mainnet", "") or ""),
            testnet_address=str(stx.get("testnet", "") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profile": {
                "stxAddress": {
                    "mainnet": self.mainnet_address,
                    "testnet": self.testnet_address,
                }
            }
        }


@dataclass(frozen=True)
class ContractCallRequest:
    """A state-changing contract call awaiting the user's signature."""
    contract_address: str
    contract_name: str
    function_name: str
    function_args: List[str]            # Hex-serialized Clarity values
    network: str
    app_details: AppDetails = field(default_factory=AppDetails)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contractAddress": self.contract_address,
            "contractName": self.contract_name,
            "functionName": self.function_name,
            "functionArgs": list(self.function_args),
            "network": self.network,
            "appDetails": self.app_details.to_dict(),
        }


class TxStatus(str, Enum):
    FINISHED = "finished"       # Broadcast by the wallet, not confirmed
    CANCELLED = "cancelled"     # User declined in the wallet
    FAILED = "failed"           # Wallet unreachable or request unusable


@dataclass
class TransactionOutcome:
    status: TxStatus
    function_name: str
    tx_id: Optional[str] = None
    tx_raw: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    error: Optional[Exception] = None
    completed_at: float = field(default_factory=time.time)

    @property
    def finished(self) -> bool:
        return self.status == TxStatus.FINISHED

    @property
    def cancelled(self) -> bool:
        return self.status == TxStatus.CANCELLED

    @classmethod
    def from_bridge(cls, function_name: str, payload: Dict[str, Any]) -> "TransactionOutcome":
        status = str(payload.get("status", "")).lower()
        if status == TxStatus.CANCELLED.value:
            return cls(TxStatus.CANCELLED, function_name, payload=payload)
        if status == TxStatus.FINISHED.value:
            return cls(
                TxStatus.FINISHED,
                function_name,
                tx_id=payload.get("txId"),
                tx_raw=payload.get("txRaw"),
                payload=payload,
            )
        raise WalletError(f"Unexpected wallet status for {function_name}: {status!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "functionName": self.function_name,
            "txId": self.tx_id,
            "error": str(self.error) if self.error else None,
        }


class WalletConnector(Protocol):
    """External wallet: authenticates users and signs/broadcasts contract calls."""

    async def request_auth(self, app_details: AppDetails, network: str) -> Optional[UserData]:
        """Open the wallet's sign-in flow. None means the user cancelled."""
        ...

    async def request_contract_call(self, request: ContractCallRequest) -> TransactionOutcome:
        """Ask the wallet to sign and broadcast a contract call."""
        ...


class HttpWalletConnector:
    """
    WalletConnector backed by a wallet bridge listening on HTTP.

    Transport failures and malformed answers raise WalletError so the
    caller can tell them apart from a user cancelling.
    """

    def __init__(
        self,
        bridge_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self.bridge_url = bridge_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpWalletConnector":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.bridge_url}{path}"
        logger.debug(f"--> wallet POST {url}")
        try:
            response = await self._client.post(url, json=body)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise WalletError(f"Wallet bridge request to {url} failed: {e}") from e
        except ValueError as e:
            raise WalletError(f"Wallet bridge returned invalid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise WalletError("Wallet bridge returned a non-object payload")
        logger.debug(f"<-- wallet POST {url} {payload.get('status', '?')}")
        return payload

    async def request_auth(self, app_details: AppDetails, network: str) -> Optional[UserData]:
        payload = await self._post("/auth", {"appDetails": app_details.to_dict(), "network": network})
        status = str(payload.get("status", "")).lower()
        if status == TxStatus.CANCELLED.value:
            return None
        if status != TxStatus.FINISHED.value:
            raise WalletError(f"Unexpected wallet auth status: {status!r}")
        return UserData.from_profile(payload)

    async def request_contract_call(self, request: ContractCallRequest) -> TransactionOutcome:
        payload = await self._post("/contract-call", request.to_dict())
        return TransactionOutcome.from_bridge(request.function_name, payload)
