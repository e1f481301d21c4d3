"""
Governance Actions test suite

Coverage:
  - argument encoding for create-proposal, vote, end-voting
  - refresh after a submitted call, none after a cancelled one
  - opt-in guard against closed voting windows
"""

import inspect
import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from oluolavotes.clarity import bool_cv, string_utf8_cv, uint_cv
from oluolavotes.governance import ActionSubmitter, VotingInactiveError
from oluolavotes.wallet import TransactionOutcome, TxStatus


class RecordingGateway:
    """Routes submissions straight to the callbacks, like ContractGateway does."""

    def __init__(self, status=TxStatus.FINISHED, active=True):
        self.status = status
        self.active = active
        self.submitted = []
        self.active_checks = []

    async def is_voting_active(self, proposal_id):
        self.active_checks.append(proposal_id)
        return self.active

    async def submit_transaction(self, function_name, args, on_finish=None, on_cancel=None, on_error=None):
        self.submitted.append((function_name, list(args)))
        outcome = TransactionOutcome(self.status, function_name, tx_id="0xfeed")
        callback = {
            TxStatus.FINISHED: on_finish,
            TxStatus.CANCELLED: on_cancel,
            TxStatus.FAILED: on_error,
        }[self.status]
        if callback is not None:
            result = callback(outcome)
            if inspect.isawaitable(result):
                await result
        return outcome


class TestArguments:

    @pytest.mark.asyncio
    async def test_create_proposal(self):
        gateway = RecordingGateway()
        await ActionSubmitter(gateway).create_proposal("Fund", "Allocate 1000 STX")
        assert gateway.submitted == [
            ("create-proposal", [string_utf8_cv("Fund"), string_utf8_cv("Allocate 1000 STX")]),
        ]

    @pytest.mark.asyncio
    async def test_vote_for(self):
        gateway = RecordingGateway()
        await ActionSubmitter(gateway).vote(3, True)
        assert gateway.submitted == [("vote", [uint_cv(3), bool_cv(True)])]

    @pytest.mark.asyncio
    async def test_vote_against(self):
        gateway = RecordingGateway()
        await ActionSubmitter(gateway).vote(3, False)
        assert gateway.submitted == [("vote", [uint_cv(3), bool_cv(False)])]

    @pytest.mark.asyncio
    async def test_end_voting(self):
        gateway = RecordingGateway()
        await ActionSubmitter(gateway).end_voting(7)
        assert gateway.submitted == [("end-voting", [uint_cv(7)])]

    @pytest.mark.asyncio
    async def test_inputs_passed_through(self):
        gateway = RecordingGateway()
        await ActionSubmitter(gateway).create_proposal("", "")
        assert gateway.submitted[0][1] == [string_utf8_cv(""), string_utf8_cv("")]


class TestRefresh:

    @pytest.mark.asyncio
    async def test_refresh_after_finish(self):
        refresh = AsyncMock()
        gateway = RecordingGateway(TxStatus.FINISHED)
        outcome = await ActionSubmitter(gateway, on_refresh=refresh).vote(1, True)
        assert outcome.finished
        refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sync_refresh_callback(self):
        refresh = MagicMock(return_value=None)
        await ActionSubmitter(RecordingGateway(), on_refresh=refresh).end_voting(1)
        refresh.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_per_call_refresh_overrides_default(self):
        default, override = AsyncMock(), AsyncMock()
        submitter = ActionSubmitter(RecordingGateway(), on_refresh=default)
        await submitter.create_proposal("t", "d", on_refresh=override)
        override.assert_awaited_once()
        default.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_refresh_after_cancel(self):
        refresh = AsyncMock()
        outcome = await ActionSubmitter(RecordingGateway(TxStatus.CANCELLED), on_refresh=refresh).vote(1, False)
        assert outcome.cancelled
        refresh.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_refresh_after_failure(self):
        refresh = AsyncMock()
        outcome = await ActionSubmitter(RecordingGateway(TxStatus.FAILED), on_refresh=refresh).vote(1, True)
        assert outcome.status == TxStatus.FAILED
        refresh.assert_not_awaited()


class TestGuard:

    @pytest.mark.asyncio
    async def test_unguarded_by_default(self):
        gateway = RecordingGateway(active=False)
        await ActionSubmitter(gateway).vote(1, True)
        assert gateway.active_checks == []
        assert len(gateway.submitted) == 1

    @pytest.mark.asyncio
    async def test_guard_blocks_closed_vote(self):
        gateway = RecordingGateway(active=False)
        with pytest.raises(VotingInactiveError, match="#1"):
            await ActionSubmitter(gateway, guard_inactive=True).vote(1, True)
        assert gateway.submitted == []

    @pytest.mark.asyncio
    async def test_guard_blocks_closed_end_voting(self):
        gateway = RecordingGateway(active=False)
        with pytest.raises(VotingInactiveError):
            await ActionSubmitter(gateway, guard_inactive=True).end_voting(2)

    @pytest.mark.asyncio
    async def test_guard_allows_open_vote(self):
        gateway = RecordingGateway(active=True)
        await ActionSubmitter(gateway, guard_inactive=True).vote(1, True)
        assert gateway.active_checks == [1]
        assert len(gateway.submitted) == 1

    @pytest.mark.asyncio
    async def test_guard_skips_create(self):
        gateway = RecordingGateway(active=False)
        await ActionSubmitter(gateway, guard_inactive=True).create_proposal("t", "d")
        assert gateway.active_checks == []
