"""
Governance Proposals

Local, read-only copies of the proposal state held by the governance
contract, plus the vote tallies and per-voter records it exposes. Nothing
here is authoritative: every object is rebuilt from chain responses on
each refresh.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from ..exceptions import OluolaVotesException


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class GovernanceError(OluolaVotesException):
    """Base governance exception."""


class ProposalDecodeError(GovernanceError):
    """Raised when a get-proposal tuple is missing fields or has the wrong types."""


class ProposalNotFoundError(GovernanceError):
    """The contract answered (err …) or none for a proposal id."""

    def __init__(self, proposal_id: int):
        super().__init__(f"Proposal #{proposal_id} not found")
        self.proposal_id = proposal_id


class ProposalSyncError(GovernanceError):
    """A refresh could not produce a complete proposal list."""

    def __init__(self, message: str, failed_ids=()):
        super().__init__(message)
        self.failed_ids = tuple(failed_ids)


class VotingInactiveError(GovernanceError):
    """Voting window is closed for the proposal."""


# ══════════════════════════════════════════════════════════════════════
#  ENUMS
# ══════════════════════════════════════════════════════════════════════

class ProposalStatus(str, Enum):
    """Status strings reported by the contract."""
    ACTIVE = "active"
    PASSED = "passed"
    REJECTED = "rejected"
    UNKNOWN = "unknown"     # Anything else the contract may report

    @classmethod
    def parse(cls, raw: Any) -> "ProposalStatus":
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_final(self) -> bool:
        return self in (ProposalStatus.PASSED, ProposalStatus.REJECTED)


# ══════════════════════════════════════════════════════════════════════
#  TALLY HELPERS
# ══════════════════════════════════════════════════════════════════════

Percentage = Union[str, int]


def vote_percentage(votes: int, total: int) -> Percentage:
    """
    Share of `total` as a percentage with one decimal, e.g. "75.0".

    A zero total yields the integer 0 rather than a division error.
    """
    if total <= 0:
        return 0
    return f"{votes / total * 100:.1f}"


def vote_percentages(votes_for: int, votes_against: int) -> Tuple[Percentage, Percentage]:
    """(for %, against %) of the decisive votes."""
    total = votes_for + votes_against
    return vote_percentage(votes_for, total), vote_percentage(votes_against, total)


# ══════════════════════════════════════════════════════════════════════
#  FIELD DECODING
# ══════════════════════════════════════════════════════════════════════

def _field(fields: Dict[str, Any], name: str, kind: type, proposal_id: Optional[int] = None) -> Any:
    if name not in fields:
        raise ProposalDecodeError(f"Proposal #{proposal_id}: missing field {name!r}")
    value = fields[name]
    # bool is an int subclass; keep them apart
    if kind is int and (isinstance(value, bool) or not isinstance(value, int)):
        raise ProposalDecodeError(f"Proposal #{proposal_id}: field {name!r} is not an integer")
    if kind is bool and not isinstance(value, bool):
        raise ProposalDecodeError(f"Proposal #{proposal_id}: field {name!r} is not a bool")
    if kind is str and not isinstance(value, str):
        raise ProposalDecodeError(f"Proposal #{proposal_id}: field {name!r} is not text")
    return value


# ══════════════════════════════════════════════════════════════════════
#  PROPOSAL
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Proposal:
    """
    A governance proposal as last read from the contract.

    Fields:
        proposal_id:    Contract-assigned id, starts at 1
        title:          Short title
        description:    Free text
        proposer:       Principal that created the proposal
        votes_for:      Accumulated "for" votes
        votes_against:  Accumulated "against" votes
        created_at:     Creation time (seconds since epoch)
        end_time:       End of the voting window (seconds since epoch)
        executed:       Whether the proposal was executed
        quorum:         Participation threshold
        status:         Parsed status; UNKNOWN for strings the client doesn't know
        raw_status:     Status exactly as the contract reported it
    """
    proposal_id: int
    title: str
    description: str
    proposer: str
    votes_for: int
    votes_against: int
    created_at: int
    end_time: int
    executed: bool
    quorum: int
    status: ProposalStatus
    raw_status: str = ""

    @classmethod
    def from_clarity(cls, proposal_id: int, fields: Dict[str, Any]) -> "Proposal":
        """
        Build a proposal from the native form of a get-proposal tuple.

        Raises:
            ProposalDecodeError: if the tuple is malformed
        """
        if not isinstance(fields, dict):
            raise ProposalDecodeError(f"Proposal #{proposal_id}: expected a tuple, got {type(fields).__name__}")
        raw_status = fields.get("status", "")
        if isinstance(raw_status, bool) or not isinstance(raw_status, (str, int)):
            raise ProposalDecodeError(f"Proposal #{proposal_id}: field 'status' has unexpected type")
        return cls(
            proposal_id=proposal_id,
            title=_field(fields, "title", str, proposal_id),
            description=_field(fields, "description", str, proposal_id),
            proposer=_field(fields, "proposer", str, proposal_id),
            votes_for=_field(fields, "votes-for", int, proposal_id),
            votes_against=_field(fields, "votes-against", int, proposal_id),
            created_at=_field(fields, "created-at", int, proposal_id),
            end_time=_field(fields, "end-time", int, proposal_id),
            executed=_field(fields, "executed", bool, proposal_id),
            quorum=_field(fields, "quorum", int, proposal_id),
            status=ProposalStatus.parse(raw_status),
            raw_status=str(raw_status),
        )

    @property
    def total_votes(self) -> int:
        return self.votes_for + self.votes_against

    @property
    def for_percentage(self) -> Percentage:
        return vote_percentage(self.votes_for, self.total_votes)

    @property
    def against_percentage(self) -> Percentage:
        return vote_percentage(self.votes_against, self.total_votes)

    @property
    def quorum_reached(self) -> bool:
        """Advisory only; the contract decides."""
        return self.total_votes >= self.quorum

    def is_open(self, now: float) -> bool:
        """Advisory: active status and the window has not ended yet."""
        return self.status == ProposalStatus.ACTIVE and now < self.end_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposalId": self.proposal_id,
            "title": self.title,
            "description": self.description,
            "proposer": self.proposer,
            "votesFor": self.votes_for,
            "votesAgainst": self.votes_against,
            "totalVotes": self.total_votes,
            "forPercentage": self.for_percentage,
            "againstPercentage": self.against_percentage,
            "createdAt": self.created_at,
            "endTime": self.end_time,
            "executed": self.executed,
            "quorum": self.quorum,
            "status": self.raw_status or self.status.value,
        }


@dataclass(frozen=True)
class ProposalFetch:
    """Outcome of fetching one proposal id: either a proposal or the error."""
    proposal_id: int
    proposal: Optional[Proposal] = None
    error: Optional[Exception] = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.proposal is not None


# ══════════════════════════════════════════════════════════════════════
#  TALLIES & VOTES
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class VotingResults:
    """Tally reported by get-voting-results."""
    proposal_id: int
    votes_for: int
    votes_against: int
    total_votes: int
    status: ProposalStatus
    raw_status: str = ""

    @classmethod
    def from_clarity(cls, proposal_id: int, fields: Dict[str, Any]) -> "VotingResults":
        if not isinstance(fields, dict):
            raise ProposalDecodeError(f"Results for #{proposal_id}: expected a tuple")
        raw_status = fields.get("status", "")
        return cls(
            proposal_id=proposal_id,
            votes_for=_field(fields, "votes-for", int, proposal_id),
            votes_against=_field(fields, "votes-against", int, proposal_id),
            total_votes=_field(fields, "total-votes", int, proposal_id),
            status=ProposalStatus.parse(raw_status),
            raw_status=str(raw_status),
        )

    def percentages(self) -> Tuple[Percentage, Percentage]:
        return vote_percentages(self.votes_for, self.votes_against)

    def to_dict(self) -> Dict[str, Any]:
        for_pct, against_pct = self.percentages()
        return {
            "proposalId": self.proposal_id,
            "votesFor": self.votes_for,
            "votesAgainst": self.votes_against,
            "totalVotes": self.total_votes,
            "forPercentage": for_pct,
            "againstPercentage": against_pct,
            "status": self.raw_status or self.status.value,
        }


@dataclass(frozen=True)
class VoteRecord:
    """A single voter's ballot on a proposal, as stored by the contract."""
    voter: str
    proposal_id: int
    vote: bool          # True = for, False = against
    timestamp: int

    @classmethod
    def from_clarity(cls, voter: str, proposal_id: int, fields: Dict[str, Any]) -> "VoteRecord":
        if not isinstance(fields, dict):
            raise ProposalDecodeError(f"Vote on #{proposal_id}: expected a tuple")
        return cls(
            voter=voter,
            proposal_id=proposal_id,
            vote=_field(fields, "vote", bool, proposal_id),
            timestamp=_field(fields, "timestamp", int, proposal_id),
        )

    @property
    def in_favor(self) -> bool:
        return self.vote

    def to_dict(self) -> Dict[str, Any]:
        return {
            "voter": self.voter,
            "proposalId": self.proposal_id,
            "vote": "FOR" if self.vote else "AGAINST",
            "timestamp": self.timestamp,
        }
