"""
Proposal Read-Model test suite

Coverage:
  - exactly N per-id fetches for ids 1..N, results in id order
  - failure policies: omit, retry, fail
  - count failure handling and the aggregate error
  - bounded concurrency
  - fencing of overlapping refreshes
"""

import asyncio
import os
import sys

import httpx
import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from oluolavotes.clarity import uint_cv
from oluolavotes.config import SyncConfig
from oluolavotes.exceptions import NetworkError
from oluolavotes.gateway import ContractGateway, QueryResult
from oluolavotes.governance import (
    FetchFailurePolicy,
    Proposal,
    ProposalFetch,
    ProposalNotFoundError,
    ProposalReadModel,
    ProposalSyncError,
    fetch_proposals,
)
from oluolavotes.network import GOVERNANCE_CONTRACT, MAINNET


def make_proposal(proposal_id: int, title: str = "") -> Proposal:
    return Proposal.from_clarity(proposal_id, {
        "title": title or f"Proposal {proposal_id}",
        "description": "desc",
        "proposer": "SP2J6ZY48GV1EZ5V2V5RB9MP66SW86PYKKNRV9EJ7",
        "votes-for": 3,
        "votes-against": 1,
        "end-time": 2_000,
        "created-at": 1_000,
        "executed": False,
        "quorum": 10,
        "status": "active",
    })


class FakeSource:
    """
    Stand-in for ContractGateway.

    `items` maps id -> Proposal, Exception, or a list of those consumed
    one per call. `counts` gives the count returned by successive
    count queries; `count_gates` optionally blocks a given count query.
    """

    def __init__(self, items=None, counts=(0,), count_error=None, count_gates=None, delays=None):
        self.items = dict(items or {})
        self.counts = list(counts)
        self.count_error = count_error
        self.count_gates = dict(count_gates or {})
        self.delays = dict(delays or {})
        self.count_calls = 0
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def query_proposal_count(self):
        index = self.count_calls
        self.count_calls += 1
        gate = self.count_gates.get(index)
        if gate is not None:
            await gate.wait()
        if self.count_error is not None:
            return QueryResult("get-proposal-count", error=self.count_error)
        count = self.counts[min(index, len(self.counts) - 1)]
        return QueryResult("get-proposal-count", value=uint_cv(count))

    async def query_proposal(self, proposal_id):
        self.calls.append(proposal_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(proposal_id, 0))
            item = self.items.get(proposal_id, ProposalNotFoundError(proposal_id))
            if isinstance(item, list):
                item = item.pop(0)
            if isinstance(item, Exception):
                return ProposalFetch(proposal_id, error=item)
            return ProposalFetch(proposal_id, proposal=item)
        finally:
            self.in_flight -= 1


class RaisingSource(FakeSource):
    """FakeSource whose per-id query raises for the given ids."""

    def __init__(self, raising_ids, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.raising_ids = set(raising_ids)

    async def query_proposal(self, proposal_id):
        if proposal_id in self.raising_ids:
            self.calls.append(proposal_id)
            raise TypeError("object of type 'NoneType' has no len()")
        return await super().query_proposal(proposal_id)


def all_ok(n):
    return {i: make_proposal(i) for i in range(1, n + 1)}


# ══════════════════════════════════════════════════════════════════════
#  BASIC REFRESH
# ══════════════════════════════════════════════════════════════════════

class TestRefresh:

    @pytest.mark.asyncio
    async def test_fetches_each_id_once_in_order(self):
        source = FakeSource(all_ok(3), counts=[3])
        model = ProposalReadModel(source)
        snapshot = await model.refresh()
        assert source.calls == [1, 2, 3]
        assert [p.proposal_id for p in model.proposals] == [1, 2, 3]
        assert snapshot.requested_count == 3
        assert snapshot.complete
        assert model.last_error is None

    @pytest.mark.asyncio
    async def test_zero_proposals(self):
        source = FakeSource(counts=[0])
        model = ProposalReadModel(source)
        await model.refresh()
        assert source.calls == []
        assert model.proposals == []

    @pytest.mark.asyncio
    async def test_get_by_id(self):
        model = ProposalReadModel(FakeSource(all_ok(2), counts=[2]))
        await model.refresh()
        assert model.get(2).title == "Proposal 2"
        assert model.get(5) is None

    @pytest.mark.asyncio
    async def test_snapshot_replaced_wholesale(self):
        source = FakeSource(all_ok(3), counts=[3, 1])
        model = ProposalReadModel(source)
        await model.refresh()
        await model.refresh()
        assert [p.proposal_id for p in model.proposals] == [1]

    @pytest.mark.asyncio
    async def test_loading_flag(self):
        gate = asyncio.Event()
        model = ProposalReadModel(FakeSource(counts=[0], count_gates={0: gate}))
        task = asyncio.create_task(model.refresh())
        await asyncio.sleep(0)
        assert model.loading
        gate.set()
        await task
        assert not model.loading

    @pytest.mark.asyncio
    async def test_fetch_proposals_helper(self):
        source = FakeSource({1: make_proposal(1), 2: NetworkError("timeout")}, counts=[2])
        proposals = await fetch_proposals(source)
        assert [p.proposal_id for p in proposals] == [1]


# ══════════════════════════════════════════════════════════════════════
#  FAILURE POLICIES
# ══════════════════════════════════════════════════════════════════════

class TestOmitPolicy:

    @pytest.mark.asyncio
    async def test_failed_ids_dropped(self):
        items = all_ok(5)
        items[2] = NetworkError("timeout")
        items[4] = ProposalNotFoundError(4)
        source = FakeSource(items, counts=[5])
        model = ProposalReadModel(source, failure_policy=FetchFailurePolicy.OMIT)
        snapshot = await model.refresh()
        assert source.calls == [1, 2, 3, 4, 5]
        assert [p.proposal_id for p in model.proposals] == [1, 3, 5]
        assert snapshot.failed_ids == (2, 4)
        assert not snapshot.complete
        assert model.last_error is None

    @pytest.mark.asyncio
    async def test_no_retries(self):
        source = FakeSource({1: NetworkError("timeout")}, counts=[1])
        model = ProposalReadModel(source, failure_policy="omit", fetch_retries=5)
        await model.refresh()
        assert source.calls == [1]

    @pytest.mark.asyncio
    async def test_raising_fetch_dropped(self):
        source = RaisingSource({2}, all_ok(3), counts=[3])
        model = ProposalReadModel(source, fetch_concurrency=3)
        snapshot = await model.refresh()
        assert [p.proposal_id for p in model.proposals] == [1, 3]
        assert snapshot.failed_ids == (2,)

    @pytest.mark.asyncio
    async def test_null_results_from_node(self):
        def handler(request):
            return httpx.Response(200, json={"okay": True, "result": None})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        gateway = ContractGateway(MAINNET, GOVERNANCE_CONTRACT, client=client)
        model = ProposalReadModel(gateway)
        snapshot = await model.refresh()
        assert snapshot.proposals == ()
        assert isinstance(model.last_error, ProposalSyncError)


class TestRetryPolicy:

    @pytest.mark.asyncio
    async def test_transient_failure_recovered(self):
        items = all_ok(3)
        items[2] = [NetworkError("timeout"), make_proposal(2)]
        source = FakeSource(items, counts=[3])
        model = ProposalReadModel(source, failure_policy=FetchFailurePolicy.RETRY, fetch_retries=2)
        snapshot = await model.refresh()
        assert [p.proposal_id for p in model.proposals] == [1, 2, 3]
        assert snapshot.complete
        assert source.calls.count(2) == 2

    @pytest.mark.asyncio
    async def test_retries_bounded(self):
        source = FakeSource({1: NetworkError("down")}, counts=[1])
        model = ProposalReadModel(source, failure_policy=FetchFailurePolicy.RETRY, fetch_retries=2)
        snapshot = await model.refresh()
        assert source.calls == [1, 1, 1]
        assert snapshot.failed_ids == (1,)
        assert model.proposals == []

    @pytest.mark.asyncio
    async def test_not_found_not_retried(self):
        source = FakeSource({1: ProposalNotFoundError(1)}, counts=[1])
        model = ProposalReadModel(source, failure_policy=FetchFailurePolicy.RETRY, fetch_retries=3)
        await model.refresh()
        assert source.calls == [1]


class TestFailPolicy:

    @pytest.mark.asyncio
    async def test_raises_and_keeps_previous_snapshot(self):
        items = all_ok(2)
        source = FakeSource(items, counts=[2, 3])
        model = ProposalReadModel(source, failure_policy=FetchFailurePolicy.FAIL)
        await model.refresh()
        items[3] = NetworkError("timeout")

        with pytest.raises(ProposalSyncError, match="Failed to load proposals") as exc_info:
            await model.refresh()

        assert exc_info.value.failed_ids == (3,)
        assert [p.proposal_id for p in model.proposals] == [1, 2]
        assert model.last_error is exc_info.value

    @pytest.mark.asyncio
    async def test_count_failure_raises(self):
        model = ProposalReadModel(FakeSource(count_error=NetworkError("down")), failure_policy="fail")
        with pytest.raises(ProposalSyncError):
            await model.refresh()


class TestCountFailure:

    @pytest.mark.asyncio
    async def test_treated_as_zero_with_aggregate_error(self):
        source = FakeSource(all_ok(2), count_error=NetworkError("down"))
        model = ProposalReadModel(source)
        snapshot = await model.refresh()
        assert source.calls == []
        assert snapshot.requested_count == 0
        assert model.proposals == []
        assert isinstance(model.last_error, ProposalSyncError)
        assert "Failed to load proposals" in str(model.last_error)

    @pytest.mark.asyncio
    async def test_error_cleared_by_next_success(self):
        source = FakeSource(all_ok(1), counts=[1], count_error=NetworkError("down"))
        model = ProposalReadModel(source)
        await model.refresh()
        source.count_error = None
        await model.refresh()
        assert model.last_error is None
        assert len(model.proposals) == 1


# ══════════════════════════════════════════════════════════════════════
#  CONCURRENCY & FENCING
# ══════════════════════════════════════════════════════════════════════

class TestConcurrency:

    @pytest.mark.asyncio
    async def test_sequential_by_default(self):
        source = FakeSource(all_ok(4), counts=[4])
        await ProposalReadModel(source).refresh()
        assert source.max_in_flight == 1

    @pytest.mark.asyncio
    async def test_bounded_and_ordered(self):
        # Later ids finish first
        delays = {1: 0.04, 2: 0.03, 3: 0.02, 4: 0.01, 5: 0.0}
        source = FakeSource(all_ok(5), counts=[5], delays=delays)
        model = ProposalReadModel(source, fetch_concurrency=3)
        await model.refresh()
        assert 1 < source.max_in_flight <= 3
        assert [p.proposal_id for p in model.proposals] == [1, 2, 3, 4, 5]

    def test_invalid_settings(self):
        with pytest.raises(ValueError):
            ProposalReadModel(FakeSource(), fetch_concurrency=0)
        with pytest.raises(ValueError):
            ProposalReadModel(FakeSource(), fetch_retries=-1)
        with pytest.raises(ValueError):
            ProposalReadModel(FakeSource(), failure_policy="sometimes")

    def test_from_config(self):
        sync = SyncConfig(fetch_concurrency=4, failure_policy="retry", fetch_retries=1, discard_superseded=False)
        model = ProposalReadModel.from_config(FakeSource(), sync)
        assert model.fetch_concurrency == 4
        assert model.failure_policy == FetchFailurePolicy.RETRY
        assert model.fetch_retries == 1
        assert model.discard_superseded is False


class TestFencing:
    """Overlapping refreshes: an older refresh finishing last."""

    async def _overlap(self, discard_superseded: bool) -> ProposalReadModel:
        gate = asyncio.Event()
        # First refresh sees 1 proposal but is held; second sees 2 and finishes first
        source = FakeSource(all_ok(2), counts=[1, 2], count_gates={0: gate})
        model = ProposalReadModel(source, discard_superseded=discard_superseded)
        first = asyncio.create_task(model.refresh())
        await asyncio.sleep(0)
        await model.refresh()
        assert [p.proposal_id for p in model.proposals] == [1, 2]
        gate.set()
        await first
        return model

    @pytest.mark.asyncio
    async def test_superseded_result_discarded(self):
        model = await self._overlap(discard_superseded=True)
        assert [p.proposal_id for p in model.proposals] == [1, 2]
        assert model.snapshot.sequence == 2

    @pytest.mark.asyncio
    async def test_last_to_complete_wins_when_disabled(self):
        model = await self._overlap(discard_superseded=False)
        assert [p.proposal_id for p in model.proposals] == [1]
        assert model.snapshot.sequence == 1
