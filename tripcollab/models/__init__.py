"""
Models package for database schemas
"""

from tripcollab.models.common import APIResponse
from tripcollab.models.itinerary import DaySection, ItemComment, ItineraryItem, ItineraryView
from tripcollab.models.trip import Trip, TripMember
from tripcollab.models.user import UserInfo

__all__ = [
    "APIResponse",
    "DaySection",
    "ItemComment",
    "ItineraryItem",
    "ItineraryView",
    "Trip",
    "TripMember",
    "UserInfo",
]
