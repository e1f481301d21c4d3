"""
Proposal Read-Model

Rebuilds the local proposal list from the contract on demand:

  1. Ask for the proposal count N (0 when the query fails)
  2. Fetch ids 1..N through a bounded fan-out, one result per id
  3. Reduce the ordered results according to the failure policy
  4. Publish a new snapshot, unless a newer refresh already published one

There are no change subscriptions; data is as fresh as the last refresh.
"""

import asyncio
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol, Tuple

from ..constants import (
    DEFAULT_FAILURE_POLICY,
    DEFAULT_FETCH_CONCURRENCY,
    DEFAULT_FETCH_RETRIES,
)
from ..logger import get_logger
from .proposals import (
    Proposal,
    ProposalFetch,
    ProposalNotFoundError,
    ProposalSyncError,
)

logger = get_logger(__name__)


class FetchFailurePolicy(str, Enum):
    """What to do with ids whose fetch failed."""
    OMIT = "omit"       # Drop them from the view
    RETRY = "retry"     # Try again a bounded number of times, then drop
    FAIL = "fail"       # Abort the refresh and keep the previous snapshot


class ProposalSource(Protocol):
    """The slice of ContractGateway the read-model needs."""

    async def query_proposal_count(self) -> Any:
        ...

    async def query_proposal(self, proposal_id: int) -> ProposalFetch:
        ...


@dataclass(frozen=True)
class ProposalSnapshot:
    """One complete refresh result. Replaced wholesale, never merged."""
    proposals: Tuple[Proposal, ...] = ()
    requested_count: int = 0
    failed_ids: Tuple[int, ...] = ()
    sequence: int = 0
    completed_at: float = field(default_factory=time.time)

    @property
    def complete(self) -> bool:
        return not self.failed_ids


class ProposalReadModel:
    """
    Locally reconstructed view of all proposals.

    Overlapping refreshes are fenced by sequence number: by default a
    refresh that completes after a newer one was applied is discarded, so
    the newest request wins rather than the last to finish. Pass
    discard_superseded=False for last-to-complete-wins.

    Args:
        gateway: Source of proposal data (usually a ContractGateway)
        fetch_concurrency: Maximum number of per-id fetches in flight; 1 fetches strictly one after another
        failure_policy: FetchFailurePolicy (or its string value)
        fetch_retries: Extra attempts per failed id under the RETRY policy
        discard_superseded: Drop results of refreshes that finished after a newer one was applied
        clock: Time source for snapshot timestamps
    """

    def __init__(
        self,
        gateway: ProposalSource,
        fetch_concurrency: int = DEFAULT_FETCH_CONCURRENCY,
        failure_policy: FetchFailurePolicy = FetchFailurePolicy(DEFAULT_FAILURE_POLICY),
        fetch_retries: int = DEFAULT_FETCH_RETRIES,
        discard_superseded: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        if fetch_concurrency < 1:
            raise ValueError("fetch_concurrency must be >= 1")
        if fetch_retries < 0:
            raise ValueError("fetch_retries must be >= 0")
        self.gateway = gateway
        self.fetch_concurrency = fetch_concurrency
        self.failure_policy = FetchFailurePolicy(failure_policy)
        self.fetch_retries = fetch_retries
        self.discard_superseded = discard_superseded
        self.clock = clock

        self._snapshot = ProposalSnapshot(completed_at=0.0)
        self._issued_sequence = 0
        self._applied_sequence = 0
        self._in_flight = 0
        self.last_error: Optional[Exception] = None

    @classmethod
    def from_config(cls, gateway: ProposalSource, sync_config) -> "ProposalReadModel":
        """Build from a config.SyncConfig section."""
        return cls(
            gateway,
            fetch_concurrency=sync_config.fetch_concurrency,
            failure_policy=FetchFailurePolicy(sync_config.failure_policy),
            fetch_retries=sync_config.fetch_retries,
            discard_superseded=sync_config.discard_superseded,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> ProposalSnapshot:
        return self._snapshot

    @property
    def proposals(self) -> List[Proposal]:
        return list(self._snapshot.proposals)

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    def get(self, proposal_id: int) -> Optional[Proposal]:
        for proposal in self._snapshot.proposals:
            if proposal.proposal_id == proposal_id:
                return proposal
        return None

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self) -> ProposalSnapshot:
        """
        Rebuild the proposal list from the contract.

        Returns the snapshot that is current once this refresh is done,
        which is the previous one if this refresh was superseded.

        Raises:
            ProposalSyncError: only under the FAIL policy
        """
        self._issued_sequence += 1
        sequence = self._issued_sequence
        self._in_flight += 1
        try:
            count_result = await self.gateway.query_proposal_count()
            count_error = None
            if count_result.ok:
                count = int(count_result.native)
            else:
                count = 0
                count_error = count_result.error
                logger.error(f"Error fetching proposal count: {count_error}")
                if self.failure_policy == FetchFailurePolicy.FAIL:
                    raise self._fail(
                        sequence, ProposalSyncError(f"Failed to load proposals: {count_error}")
                    )

            fetches = await self._fetch_all(count)
            failed_ids = tuple(f.proposal_id for f in fetches if not f.ok)

            if failed_ids and self.failure_policy == FetchFailurePolicy.FAIL:
                raise self._fail(
                    sequence,
                    ProposalSyncError(
                        f"Failed to load proposals: {len(failed_ids)} of {count} could not be fetched",
                        failed_ids,
                    ),
                )

            snapshot = ProposalSnapshot(
                proposals=tuple(f.proposal for f in fetches if f.ok),
                requested_count=count,
                failed_ids=failed_ids,
                sequence=sequence,
                completed_at=self.clock(),
            )
            aggregate_error = None
            if count_error is not None:
                aggregate_error = ProposalSyncError(f"Failed to load proposals: {count_error}")
            return self._apply(snapshot, aggregate_error)
        finally:
            self._in_flight -= 1

    def _is_superseded(self, sequence: int) -> bool:
        return self.discard_superseded and sequence < self._applied_sequence

    def _fail(self, sequence: int, error: ProposalSyncError) -> ProposalSyncError:
        if not self._is_superseded(sequence):
            self.last_error = error
        return error

    def _apply(self, snapshot: ProposalSnapshot, error: Optional[Exception]) -> ProposalSnapshot:
        if self._is_superseded(snapshot.sequence):
            logger.debug(
                f"Discarding refresh #{snapshot.sequence}, "
                f"refresh #{self._applied_sequence} already applied"
            )
            return self._snapshot
        self._snapshot = snapshot
        self._applied_sequence = snapshot.sequence
        self.last_error = error
        logger.info(
            f"Loaded {len(snapshot.proposals)}/{snapshot.requested_count} proposals"
            + (f", dropped {list(snapshot.failed_ids)}" if snapshot.failed_ids else "")
        )
        return snapshot

    async def _fetch_all(self, count: int) -> List[ProposalFetch]:
        if count <= 0:
            return []
        semaphore = asyncio.Semaphore(self.fetch_concurrency)

        async def fetch_one(proposal_id: int) -> ProposalFetch:
            async with semaphore:
                return await self._fetch_with_policy(proposal_id)

        # gather keeps results in id order whatever the completion order
        return list(await asyncio.gather(*(fetch_one(pid) for pid in range(1, count + 1))))

    async def _fetch_with_policy(self, proposal_id: int) -> ProposalFetch:
        max_attempts = 1
        if self.failure_policy == FetchFailurePolicy.RETRY:
            max_attempts += self.fetch_retries

        attempt = 0
        fetch = None
        while attempt < max_attempts:
            attempt += 1
            try:
                fetch = await self.gateway.query_proposal(proposal_id)
            except Exception as e:
                logger.error(f"Unexpected error fetching proposal #{proposal_id}: {e}")
                fetch = ProposalFetch(proposal_id, error=e)
            if fetch.ok:
                return replace(fetch, attempts=attempt)
            # The contract answered; asking again will not change that
            if isinstance(fetch.error, ProposalNotFoundError):
                break
            if attempt < max_attempts:
                logger.debug(f"Retrying proposal #{proposal_id} ({attempt}/{max_attempts}): {fetch.error}")

        if self.failure_policy != FetchFailurePolicy.FAIL:
            logger.warning(f"Dropping proposal #{proposal_id} from view: {fetch.error}")
        return replace(fetch, attempts=attempt)


async def fetch_proposals(gateway: ProposalSource) -> List[Proposal]:
    """
    One-shot fetch of every proposal, one id at a time, silently dropping
    ids that fail.
    """
    model = ProposalReadModel(gateway, fetch_concurrency=1, failure_policy=FetchFailurePolicy.OMIT)
    snapshot = await model.refresh()
    return list(snapshot.proposals)
