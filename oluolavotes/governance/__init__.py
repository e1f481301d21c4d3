"""
Governance client layer

Provides:
  - Proposal / ProposalStatus / VotingResults / VoteRecord        (proposals.py)
  - ProposalReadModel / ProposalSnapshot / FetchFailurePolicy     (readmodel.py)
  - ActionSubmitter                                               (actions.py)
"""

from .proposals import (
    GovernanceError,
    Proposal,
    ProposalDecodeError,
    ProposalFetch,
    ProposalNotFoundError,
    ProposalStatus,
    ProposalSyncError,
    VoteRecord,
    VotingInactiveError,
    VotingResults,
    vote_percentage,
    vote_percentages,
)
from .readmodel import (
    FetchFailurePolicy,
    ProposalReadModel,
    ProposalSnapshot,
    fetch_proposals,
)
from .actions import ActionSubmitter

__all__ = [
    # Proposals
    "GovernanceError",
    "Proposal",
    "ProposalDecodeError",
    "ProposalFetch",
    "ProposalNotFoundError",
    "ProposalStatus",
    "ProposalSyncError",
    "VoteRecord",
    "VotingInactiveError",
    "VotingResults",
    "vote_percentage",
    "vote_percentages",
    # Read-model
    "FetchFailurePolicy",
    "ProposalReadModel",
    "ProposalSnapshot",
    "fetch_proposals",
    # Actions
    "ActionSubmitter",
]
