"""
Governance Actions

User-initiated mutations of the governance contract. Each action is a
thin parameterization of ContractGateway.submit_transaction: the wallet
signs and broadcasts, and once it reports the call as submitted the
caller's refresh callback runs. Nothing is retried or deduplicated here.
"""

import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from ..clarity import bool_cv, string_utf8_cv, uint_cv
from ..constants import FN_CREATE_PROPOSAL, FN_END_VOTING, FN_VOTE
from ..logger import get_logger
from ..wallet.connector import TransactionOutcome
from .proposals import VotingInactiveError

logger = get_logger(__name__)

RefreshCallback = Callable[[], Union[Any, Awaitable[Any]]]


class ActionSubmitter:
    """
    Submits create-proposal, vote and end-voting calls.

    Args:
        gateway: ContractGateway used to reach the wallet
        on_refresh: Default callback run after a call is submitted
        guard_inactive: When True, vote/end-voting first ask is-voting-active
            and raise VotingInactiveError instead of submitting. The contract
            enforces the window either way.
    """

    def __init__(self, gateway, on_refresh: Optional[RefreshCallback] = None, guard_inactive: bool = False):
        self.gateway = gateway
        self.on_refresh = on_refresh
        self.guard_inactive = guard_inactive

    async def create_proposal(
        self, title: str, description: str, on_refresh: Optional[RefreshCallback] = None
    ) -> TransactionOutcome:
        """Submit `create-proposal (title, description)`. Inputs are not validated here."""
        return await self._submit(
            FN_CREATE_PROPOSAL,
            [string_utf8_cv(title), string_utf8_cv(description)],
            "Proposal created",
            "Proposal creation cancelled",
            on_refresh,
        )

    async def vote(
        self, proposal_id: int, in_favor: bool, on_refresh: Optional[RefreshCallback] = None
    ) -> TransactionOutcome:
        """Submit `vote (proposal-id, in-favor)`."""
        await self._check_active(proposal_id)
        return await self._submit(
            FN_VOTE,
            [uint_cv(proposal_id), bool_cv(in_favor)],
            f"Vote cast on #{proposal_id}",
            f"Voting on #{proposal_id} cancelled",
            on_refresh,
        )

    async def end_voting(
        self, proposal_id: int, on_refresh: Optional[RefreshCallback] = None
    ) -> TransactionOutcome:
        """Submit `end-voting (proposal-id)`."""
        await self._check_active(proposal_id)
        return await self._submit(
            FN_END_VOTING,
            [uint_cv(proposal_id)],
            f"Voting ended on #{proposal_id}",
            f"End voting on #{proposal_id} cancelled",
            on_refresh,
        )

    async def _check_active(self, proposal_id: int) -> None:
        if not self.guard_inactive:
            return
        if not await self.gateway.is_voting_active(proposal_id):
            raise VotingInactiveError(f"Voting is not active for proposal #{proposal_id}")

    async def _submit(self, function_name, args, finished_msg, cancelled_msg, on_refresh) -> TransactionOutcome:
        refresh = on_refresh or self.on_refresh

        async def finished(outcome: TransactionOutcome) -> None:
            logger.info(f"{finished_msg}: {outcome.tx_id or outcome.payload}")
            if refresh is None:
                return
            result = refresh()
            if inspect.isawaitable(result):
                await result

        def cancelled(outcome: TransactionOutcome) -> None:
            logger.info(cancelled_msg)

        return await self.gateway.submit_transaction(
            function_name,
            args,
            on_finish=finished,
            on_cancel=cancelled,
        )
