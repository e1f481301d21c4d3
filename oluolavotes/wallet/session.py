"""
Session / Identity Tracking

Tracks whether a wallet user is connected and which address they use on
the active network. Proposal data never flows through here; the tracker
only gates which actions the caller offers.
"""

import inspect
import json
import os
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

from ..exceptions import WalletError
from ..logger import get_logger
from .connector import AppDetails, UserData, WalletConnector

logger = get_logger(__name__)


class WalletAuthenticator(Protocol):
    """External wallet authentication flow."""

    async def open_auth(
        self,
        on_finish: Optional[Callable[[UserData], Any]] = None,
        on_cancel: Optional[Callable[[], Any]] = None,
    ) -> None:
        """Start the wallet's sign-in UI; the result arrives via the callbacks."""
        ...

    def is_user_signed_in(self) -> bool:
        ...

    def load_user_data(self) -> UserData:
        ...

    def sign_user_out(self) -> None:
        ...


async def _maybe_await(result: Any) -> None:
    if inspect.isawaitable(result):
        await result


class FileSessionStore:
    """
    The wallet's own session storage, kept as a small JSON file.

    A corrupt or unreadable file reads as "signed out".
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def load(self) -> Optional[UserData]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return UserData.from_profile(data)
        except (OSError, ValueError, WalletError) as e:
            logger.warning(f"Ignoring unreadable wallet session at {self.path}: {e}")
            return None

    def save(self, user: UserData) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(user.to_dict(), f, indent=4)
        os.replace(tmp_path, self.path)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class BridgeAuthenticator:
    """WalletAuthenticator that signs in through a WalletConnector and persists to a FileSessionStore."""

    def __init__(
        self,
        connector: WalletConnector,
        store: FileSessionStore,
        network_name: str,
        app_details: Optional[AppDetails] = None,
    ):
        self.connector = connector
        self.store = store
        self.network_name = network_name
        self.app_details = app_details or AppDetails()

    async def open_auth(self, on_finish=None, on_cancel=None) -> None:
        user = await self.connector.request_auth(self.app_details, self.network_name)
        if user is None:
            logger.info("Wallet sign-in CANCELLED")
            if on_cancel:
                await _maybe_await(on_cancel())
            return
        self.store.save(user)
        logger.info(f"Wallet sign-in FINISHED for {user.address_for(self.network_name)}")
        if on_finish:
            await _maybe_await(on_finish(user))

    def is_user_signed_in(self) -> bool:
        return self.store.load() is not None

    def load_user_data(self) -> UserData:
        user = self.store.load()
        if user is None:
            raise WalletError("No wallet user is signed in")
        return user

    def sign_user_out(self) -> None:
        self.store.clear()


class SessionTracker:
    """
    Connection state for the current wallet user.

    Args:
        authenticator: The external wallet authentication flow
        network_name: Selects which of the user's addresses is reported
        on_reload: Called after sign-out so the owner can rebuild all view state
    """

    def __init__(
        self,
        authenticator: WalletAuthenticator,
        network_name: str = "mainnet",
        on_reload: Optional[Callable[[], Any]] = None,
    ):
        self.authenticator = authenticator
        self.network_name = network_name
        self.on_reload = on_reload
        self._user: Optional[UserData] = None

    @property
    def connected(self) -> bool:
        return self._user is not None

    @property
    def user(self) -> Optional[UserData]:
        return self._user

    @property
    def address(self) -> Optional[str]:
        if self._user is None:
            return None
        return self._user.address_for(self.network_name) or None

    def sync(self) -> bool:
        """Re-read the wallet's session. Returns the connection state."""
        if self.authenticator.is_user_signed_in():
            self._user = self.authenticator.load_user_data()
        else:
            self._user = None
        return self.connected

    async def sign_in(self) -> None:
        """
        Open the wallet's sign-in flow. Connection state changes only when
        the wallet reports back through the callback.
        """
        await self.authenticator.open_auth(on_finish=self._on_signed_in, on_cancel=self._on_cancelled)

    def _on_signed_in(self, user: UserData) -> None:
        self._user = user

    def _on_cancelled(self) -> None:
        logger.debug("Sign-in cancelled, session unchanged")

    async def sign_out(self) -> None:
        """Clear the wallet session and local state, then force a full reload."""
        self.authenticator.sign_user_out()
        self._user = None
        logger.info("Wallet disconnected")
        if self.on_reload:
            await _maybe_await(self.on_reload())
