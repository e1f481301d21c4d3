"""
Contract Gateway

Single point of contact with the governance contract:
  - read-only calls through the node's `call-read` endpoint, returned as
    explicit QueryResult values (never raised)
  - default-on-failure helpers for callers that only want a value
  - state-changing calls handed to the external wallet for signing

Usage:
    >>> async with ContractGateway(MAINNET, GOVERNANCE_CONTRACT) as gateway:
    ...     count = await gateway.get_proposal_count()
"""

import inspect
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

import httpx

from .clarity import (
    ClarityType,
    ClarityValue,
    deserialize,
    principal_cv,
    to_hex,
    to_python,
    uint_cv,
    unwrap,
)
from .constants import (
    DEFAULT_REQUEST_TIMEOUT,
    FN_GET_PROPOSAL,
    FN_GET_PROPOSAL_COUNT,
    FN_GET_VOTE,
    FN_GET_VOTING_RESULTS,
    FN_IS_VOTING_ACTIVE,
    LOG_INCLUDE_CALL_ARGUMENTS,
    LOG_MAX_ARGUMENT_LENGTH,
)
from .exceptions import (
    ClarityError,
    NetworkError,
    QueryError,
    ReadOnlyCallRejected,
    WalletError,
)
from .governance.proposals import (
    GovernanceError,
    Proposal,
    ProposalFetch,
    ProposalNotFoundError,
    VoteRecord,
    VotingResults,
)
from .logger import get_logger
from .network import ContractId, StacksNetwork, network_from_name
from .wallet.connector import (
    AppDetails,
    ContractCallRequest,
    TransactionOutcome,
    TxStatus,
    WalletConnector,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class QueryResult:
    """Result of a read-only call: a decoded value or the reason there is none."""
    function_name: str
    value: Optional[ClarityValue] = None
    error: Optional[Exception] = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    @property
    def native(self) -> Any:
        """Python form of the value (see clarity.to_python); None on failure."""
        return to_python(self.value) if self.ok else None


async def _invoke_callback(name: str, callback: Optional[Callable], *args) -> None:
    if callback is None:
        return
    try:
        result = callback(*args)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception(f"{name} callback raised")


class ContractGateway:
    """
    Typed access to one deployed governance contract.

    Args:
        network: Network the contract lives on
        contract: Deployer address + contract name
        wallet: Connector used for state-changing calls (optional for read-only use)
        client: Shared httpx.AsyncClient; one is created (and owned) when omitted
        sender: Sender principal for read-only calls, defaults to the contract address
        timeout: Per-request timeout in seconds for an owned client
        app_details: Name/icon shown by the wallet when asking for a signature
    """

    def __init__(
        self,
        network: StacksNetwork,
        contract: ContractId,
        wallet: Optional[WalletConnector] = None,
        client: Optional[httpx.AsyncClient] = None,
        sender: Optional[str] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        app_details: Optional[AppDetails] = None,
    ):
        self.network = network
        self.contract = contract
        self.wallet = wallet
        self.sender = sender or contract.address
        self.app_details = app_details or AppDetails()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=network.api_url, timeout=timeout)

    @classmethod
    def from_config(cls, config, wallet: Optional[WalletConnector] = None,
                    client: Optional[httpx.AsyncClient] = None) -> "ContractGateway":
        """Build a gateway from a ClientConfig."""
        network = network_from_name(config.network.name, config.network.api_url or None)
        return cls(
            network=network,
            contract=config.contract.contract_id,
            wallet=wallet,
            client=client,
            sender=config.contract.sender or None,
            timeout=config.network.request_timeout,
            app_details=AppDetails(config.wallet.app_name, config.wallet.app_icon),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ContractGateway":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    def contract_info(self) -> Dict[str, Any]:
        return {
            "contractAddress": self.contract.address,
            "contractName": self.contract.name,
            "network": self.network.to_dict(),
        }

    # ------------------------------------------------------------------
    # Read-only calls
    # ------------------------------------------------------------------

    def _call_read_url(self, function_name: str) -> str:
        return (
            f"{self.network.api_url}/v2/contracts/call-read/"
            f"{self.contract.address}/{self.contract.name}/{function_name}"
        )

    @staticmethod
    def _describe_args(hex_args: Sequence[str]) -> str:
        if not LOG_INCLUDE_CALL_ARGUMENTS:
            return f"[{len(hex_args)} args]"
        shown = []
        for arg in hex_args:
            if len(arg) > LOG_MAX_ARGUMENT_LENGTH:
                arg = arg[:LOG_MAX_ARGUMENT_LENGTH] + "...[TRUNCATED]"
            shown.append(arg)
        return "[" + ", ".join(shown) + "]"

    async def call_read_only(self, function_name: str, args: Sequence[ClarityValue] = ()) -> QueryResult:
        """
        Call a read-only contract function.

        Never raises for transport, node or decoding problems; those come
        back as QueryResult.error.
        """
        start_time = time.time()
        try:
            hex_args = [to_hex(arg) for arg in args]
        except ClarityError as e:
            logger.warning(f"<-- call-read {function_name} FAILED: cannot encode arguments: {e}")
            return QueryResult(function_name, error=e)

        logger.debug(f"--> call-read {function_name} {self._describe_args(hex_args)}")

        try:
            response = await self._client.post(
                self._call_read_url(function_name),
                json={"sender": self.sender, "arguments": hex_args},
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            elapsed = time.time() - start_time
            logger.warning(f"<-- call-read {function_name} NETWORK_ERROR ({elapsed:.3f}s): {e}")
            return QueryResult(function_name, error=NetworkError(str(e)), elapsed=elapsed)
        except ValueError as e:
            elapsed = time.time() - start_time
            logger.warning(f"<-- call-read {function_name} invalid JSON ({elapsed:.3f}s)")
            return QueryResult(function_name, error=QueryError(function_name, f"invalid JSON: {e}"), elapsed=elapsed)

        elapsed = time.time() - start_time

        if not isinstance(body, dict) or not body.get("okay"):
            cause = body.get("cause", "unknown cause") if isinstance(body, dict) else "malformed response"
            logger.warning(f"<-- call-read {function_name} rejected ({elapsed:.3f}s): {cause}")
            return QueryResult(function_name, error=ReadOnlyCallRejected(function_name, str(cause)), elapsed=elapsed)

        raw_result = body.get("result")
        if not isinstance(raw_result, str):
            logger.warning(f"<-- call-read {function_name} missing result ({elapsed:.3f}s)")
            return QueryResult(function_name, error=QueryError(function_name, "missing result"), elapsed=elapsed)

        try:
            value = deserialize(raw_result)
        except ClarityError as e:
            logger.warning(f"<-- call-read {function_name} decode error ({elapsed:.3f}s): {e}")
            return QueryResult(function_name, error=e, elapsed=elapsed)

        logger.debug(f"<-- call-read {function_name} ok ({elapsed:.3f}s)")
        return QueryResult(function_name, value=value, elapsed=elapsed)

    # ------------------------------------------------------------------
    # Governance queries
    # ------------------------------------------------------------------

    async def query_proposal_count(self) -> QueryResult:
        """
        Proposal count as a QueryResult whose value is the bare integer
        (`(ok uN)` already unwrapped).
        """
        result = await self.call_read_only(FN_GET_PROPOSAL_COUNT)
        if not result.ok:
            return result
        inner = unwrap(result.value)
        if inner is None or inner.type_id not in (ClarityType.UINT, ClarityType.INT) or inner.value < 0:
            return QueryResult(
                FN_GET_PROPOSAL_COUNT,
                error=QueryError(FN_GET_PROPOSAL_COUNT, f"unexpected value {result.value!r}"),
                elapsed=result.elapsed,
            )
        return QueryResult(FN_GET_PROPOSAL_COUNT, value=inner, elapsed=result.elapsed)

    async def get_proposal_count(self) -> int:
        """Current number of proposals; 0 if the query fails."""
        result = await self.query_proposal_count()
        if not result.ok:
            logger.error(f"Error fetching proposal count: {result.error}")
            return 0
        return result.native

    async def query_proposal(self, proposal_id: int) -> ProposalFetch:
        """Fetch one proposal as an explicit per-item result."""
        result = await self.call_read_only(FN_GET_PROPOSAL, [uint_cv(proposal_id)])
        if not result.ok:
            return ProposalFetch(proposal_id, error=result.error)
        inner = unwrap(result.value)
        if inner is None:
            return ProposalFetch(proposal_id, error=ProposalNotFoundError(proposal_id))
        try:
            proposal = Proposal.from_clarity(proposal_id, to_python(inner))
        except (GovernanceError, ClarityError) as e:
            return ProposalFetch(proposal_id, error=e)
        return ProposalFetch(proposal_id, proposal=proposal)

    async def fetch_proposal(self, proposal_id: int) -> Optional[Proposal]:
        """Fetch one proposal; None on any failure."""
        fetch = await self.query_proposal(proposal_id)
        if not fetch.ok:
            logger.error(f"Error fetching proposal #{proposal_id}: {fetch.error}")
        return fetch.proposal

    async def get_voting_results(self, proposal_id: int) -> Optional[VotingResults]:
        result = await self.call_read_only(FN_GET_VOTING_RESULTS, [uint_cv(proposal_id)])
        if not result.ok:
            logger.error(f"Error fetching voting results for proposal #{proposal_id}: {result.error}")
            return None
        inner = unwrap(result.value)
        if inner is None:
            return None
        try:
            return VotingResults.from_clarity(proposal_id, to_python(inner))
        except GovernanceError as e:
            logger.error(f"Error decoding voting results for proposal #{proposal_id}: {e}")
            return None

    async def is_voting_active(self, proposal_id: int) -> bool:
        """Whether the contract considers the voting window open; False on any failure."""
        result = await self.call_read_only(FN_IS_VOTING_ACTIVE, [uint_cv(proposal_id)])
        if not result.ok:
            logger.error(f"Error checking if voting is active for proposal #{proposal_id}: {result.error}")
            return False
        inner = unwrap(result.value)
        if inner is None:
            return False
        return inner.type_id == ClarityType.BOOL_TRUE

    async def get_user_vote(self, voter: str, proposal_id: int) -> Optional[VoteRecord]:
        """
        The voter's ballot on a proposal. "Has not voted" and "query failed"
        both come back as None.
        """
        try:
            args = [principal_cv(voter), uint_cv(proposal_id)]
        except ClarityError as e:
            logger.debug(f"No vote lookup for {voter!r}: {e}")
            return None
        result = await self.call_read_only(FN_GET_VOTE, args)
        if not result.ok:
            logger.debug(f"No vote found for {voter} on #{proposal_id}: {result.error}")
            return None
        inner = unwrap(result.value)
        if inner is None:
            return None
        try:
            return VoteRecord.from_clarity(voter, proposal_id, to_python(inner))
        except GovernanceError as e:
            logger.debug(f"Unreadable vote record for {voter} on #{proposal_id}: {e}")
            return None

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def submit_transaction(
        self,
        function_name: str,
        args: Sequence[ClarityValue],
        on_finish: Optional[Callable[[TransactionOutcome], Any]] = None,
        on_cancel: Optional[Callable[[TransactionOutcome], Any]] = None,
        on_error: Optional[Callable[[TransactionOutcome], Any]] = None,
    ) -> TransactionOutcome:
        """
        Hand a contract call to the wallet for signing and broadcast.

        FINISHED means the wallet submitted the transaction, not that it is
        confirmed. Nothing is retried.
        """
        try:
            if self.wallet is None:
                raise WalletError("No wallet connector configured")
            request = ContractCallRequest(
                contract_address=self.contract.address,
                contract_name=self.contract.name,
                function_name=function_name,
                function_args=[to_hex(arg) for arg in args],
                network=self.network.name,
                app_details=self.app_details,
            )
            logger.info(f"--> contract-call {function_name} {self._describe_args(request.function_args)}")
            outcome = await self.wallet.request_contract_call(request)
        except Exception as e:
            outcome = TransactionOutcome(TxStatus.FAILED, function_name, error=e)

        if outcome.status == TxStatus.FINISHED:
            logger.info(f"<-- contract-call {function_name} FINISHED {outcome.tx_id or ''}".rstrip())
            await _invoke_callback("on_finish", on_finish, outcome)
        elif outcome.status == TxStatus.CANCELLED:
            logger.info(f"<-- contract-call {function_name} CANCELLED")
            await _invoke_callback("on_cancel", on_cancel, outcome)
        else:
            logger.error(f"<-- contract-call {function_name} FAILED: {outcome.error}")
            await _invoke_callback("on_error", on_error, outcome)
        return outcome
