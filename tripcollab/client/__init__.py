"""
Async client for the itinerary API and the optimistic board built on it
"""

from tripcollab.client.api import ItineraryAPIClient, ItineraryAPIError, ItinerarySnapshot
from tripcollab.client.board import ItineraryBoard, Notification

__all__ = [
    "ItineraryAPIClient",
    "ItineraryAPIError",
    "ItinerarySnapshot",
    "ItineraryBoard",
    "Notification",
]
