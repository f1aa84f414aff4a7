"""
Pure itinerary logic: day grouping/ordering and vote transitions.
No I/O here; routers and the client board build on these.
"""

from tripcollab.itinerary.grouping import UNSCHEDULED, DayGroup, group_itinerary
from tripcollab.itinerary.voting import VOTE_TRANSITIONS, VoteDirection, apply_vote, resolve_vote

__all__ = [
    "UNSCHEDULED",
    "DayGroup",
    "group_itinerary",
    "VOTE_TRANSITIONS",
    "VoteDirection",
    "apply_vote",
    "resolve_vote",
]
