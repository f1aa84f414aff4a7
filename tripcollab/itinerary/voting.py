"""
Vote transitions for itinerary items.

All vote arithmetic goes through VOTE_TRANSITIONS. The client applies it to
its net tally before the request goes out, and the vote endpoint applies it
to the stored per-user map, so both sides agree on what a click means.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel


class VoteDirection(str, Enum):
    UP = "up"
    DOWN = "down"


# (user_vote before, clicked direction) -> (user_vote after, delta applied to net votes)
VOTE_TRANSITIONS: dict[tuple[str | None, str], tuple[str | None, int]] = {
    (None, "up"): ("up", +1),
    (None, "down"): ("down", -1),
    ("up", "up"): (None, -1),
    ("down", "down"): (None, +1),
    ("up", "down"): ("down", -2),
    ("down", "up"): ("up", +2),
}


def _normalize(vote: Any) -> str | None:
    if isinstance(vote, VoteDirection):
        return vote.value
    if vote in ("up", "down"):
        return vote
    return None


def resolve_vote(current: Any, direction: VoteDirection | str) -> tuple[str | None, int]:
    """Look up the next user_vote and the tally delta for a click."""
    clicked = _normalize(direction)
    if clicked is None:
        raise ValueError(f"Invalid vote direction: {direction!r}")
    return VOTE_TRANSITIONS[(_normalize(current), clicked)]


def clear_vote(current: Any) -> tuple[None, int]:
    """Explicit un-vote: same delta as clicking the active direction again."""
    active = _normalize(current)
    if active is None:
        return None, 0
    return resolve_vote(active, active)


@dataclass(frozen=True)
class VoteTally:
    up: int = 0
    down: int = 0
    user_vote: str | None = None

    @property
    def net(self) -> int:
        return self.up - self.down


def tally_from_voters(voters: Mapping[str, str] | None, viewer_id: str | None) -> VoteTally:
    """
    Convert the stored {user_id: "up"|"down"} map into counts plus the
    viewer's own vote. This is the only bridge between the per-user storage
    and the net `votes` number the client works with.
    """
    voters = voters or {}
    up = sum(1 for v in voters.values() if v == "up")
    down = sum(1 for v in voters.values() if v == "down")
    user_vote = _normalize(voters.get(viewer_id)) if viewer_id else None
    return VoteTally(up=up, down=down, user_vote=user_vote)


def apply_to_voters(
    voters: Mapping[str, str] | None, user_id: str, direction: VoteDirection | str | None
) -> dict[str, str]:
    """Server side: new per-user map after `user_id` clicks `direction` (None clears)."""
    updated = dict(voters or {})
    current = updated.get(user_id)
    if direction is None:
        next_vote, _ = clear_vote(current)
    else:
        next_vote, _ = resolve_vote(current, direction)
    if next_vote is None:
        updated.pop(user_id, None)
    else:
        updated[user_id] = next_vote
    return updated


def apply_vote(item: Any, direction: VoteDirection | str) -> Any:
    """
    Client side: return a copy of `item` with `votes` and `user_vote`
    moved per VOTE_TRANSITIONS. The input is never mutated.
    """
    if isinstance(item, BaseModel):
        next_vote, delta = resolve_vote(getattr(item, "user_vote", None), direction)
        votes = getattr(item, "votes", 0) or 0
        return item.model_copy(update={"votes": votes + delta, "user_vote": next_vote})

    if isinstance(item, Mapping):
        vote_key = "userVote" if "userVote" in item and "user_vote" not in item else "user_vote"
        next_vote, delta = resolve_vote(item.get(vote_key), direction)
        updated = dict(item)
        updated["votes"] = (item.get("votes") or 0) + delta
        updated[vote_key] = next_vote
        return updated

    raise TypeError(f"Cannot apply a vote to {type(item).__name__}")
