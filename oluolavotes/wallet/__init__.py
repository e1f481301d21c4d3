"""
Wallet integration

Provides:
  - AppDetails / UserData / ContractCallRequest / TransactionOutcome   (connector.py)
  - WalletConnector protocol and HttpWalletConnector                  (connector.py)
  - SessionTracker / BridgeAuthenticator / FileSessionStore           (session.py)
"""

from .connector import (
    AppDetails,
    ContractCallRequest,
    HttpWalletConnector,
    TransactionOutcome,
    TxStatus,
    UserData,
    WalletConnector,
)
from .session import (
    BridgeAuthenticator,
    FileSessionStore,
    SessionTracker,
    WalletAuthenticator,
)

__all__ = [
    "AppDetails",
    "ContractCallRequest",
    "HttpWalletConnector",
    "TransactionOutcome",
    "TxStatus",
    "UserData",
    "WalletConnector",
    "BridgeAuthenticator",
    "FileSessionStore",
    "SessionTracker",
    "WalletAuthenticator",
]
