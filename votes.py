"""
Vote ledger policies.

Posts and users use the lockout policy: a voter's first vote is final.
Comments and replies use the switchable policy: a voter can always recast.
"""

from enum import Enum
from typing import Any, Dict, Tuple

from errors import AlreadyVoted, ValidationFailed
from schemas import LockoutLedger, SwitchableLedger


class VoteType(str, Enum):
    UPVOTE = "upvote"
    DOWNVOTE = "downvote"


def parse_vote_type(value: Any) -> VoteType:
    try:
        return VoteType(value)
    except ValueError:
        raise ValidationFailed('Invalid vote type. Use "upvote" or "downvote".')


def cast_lockout_vote(ledger: LockoutLedger, voter_id: str, vote_type: VoteType) -> LockoutLedger:
    """Record a one-time vote. Raises AlreadyVoted if the voter is already in the ledger."""
    vote_type = parse_vote_type(vote_type)
    if voter_id in ledger.voters:
        raise AlreadyVoted()
    if vote_type is VoteType.UPVOTE:
        ledger.upvotes += 1
    else:
        ledger.downvotes += 1
    ledger.voters.append(voter_id)
    return ledger


def lockout_update(voter_id: str, vote_type: VoteType, path: str = "votes") -> Tuple[Dict, Dict]:
    """Build the guarded filter and update applying cast_lockout_vote in one store round trip.

    The filter only matches while the voter is absent, so two concurrent votes
    from different voters both apply and a repeated vote matches nothing.
    """
    vote_type = parse_vote_type(vote_type)
    counter = "upvotes" if vote_type is VoteType.UPVOTE else "downvotes"
    guard = {f"{path}.voters": {"$ne": voter_id}}
    update = {
        "$inc": {f"{path}.{counter}": 1},
        "$push": {f"{path}.voters": voter_id},
    }
    return guard, update


def cast_switchable_vote(ledger: SwitchableLedger, voter_id: str, vote_type: VoteType) -> SwitchableLedger:
    vote_type = parse_vote_type(vote_type)
    ledger.upvoters = [v for v in ledger.upvoters if v != voter_id]
    ledger.downvoters = [v for v in ledger.downvoters if v != voter_id]
    if vote_type is VoteType.UPVOTE:
        ledger.upvoters.append(voter_id)
    else:
        ledger.downvoters.append(voter_id)
    return ledger
