"""
Client-side itinerary state with optimistic voting.

The board owns one trip's item list. Votes and moves are applied locally
before the request is awaited and the whole list is restored from a
snapshot if the server rejects them. Failures never propagate out of the
action methods; they are recorded as notifications.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any

from tripcollab.client.api import ItineraryAPIClient, ItineraryAPIError
from tripcollab.itinerary.grouping import DayGroup, group_itinerary, item_id, move_item
from tripcollab.itinerary.voting import VoteDirection, apply_vote
from tripcollab.models.itinerary import ItineraryItem

logger = logging.getLogger(__name__)

VOTE_FAILED_MESSAGE = "Failed to register vote. Please try again."
LOGIN_REQUIRED_MESSAGE = "You must be logged in to vote."


@dataclass
class Notification:
    kind: str
    title: str
    message: str


class ItineraryBoard:
    def __init__(
        self,
        api: ItineraryAPIClient,
        trip_id: str,
        items: list[ItineraryItem] | None = None,
        duration_days: int = 1,
    ):
        self.api = api
        self.trip_id = trip_id
        self.items: list[ItineraryItem] = list(items or [])
        self.duration_days = duration_days
        self.notifications: list[Notification] = []

    def notify(self, kind: str, title: str, message: str) -> Notification:
        notification = Notification(kind=kind, title=title, message=message)
        self.notifications.append(notification)
        logger.debug(f"[notify] {kind}: {title} - {message}")
        return notification

    def groups(self) -> list[DayGroup]:
        return group_itinerary(self.items, self.duration_days)

    def find(self, target_id: str) -> ItineraryItem | None:
        for item in self.items:
            if item_id(item) == str(target_id):
                return item
        return None

    def _index_of(self, target_id: str) -> int | None:
        for index, item in enumerate(self.items):
            if item_id(item) == str(target_id):
                return index
        return None

    async def load(self) -> bool:
        """Replace local state with the server's. Keeps the old state on failure."""
        try:
            snapshot = await self.api.fetch_itinerary(self.trip_id)
        except ItineraryAPIError as e:
            logger.error(f"[load] trip {self.trip_id}: {e.message}")
            self.notify("load_failed", "Error", e.message or "Failed to load itinerary.")
            return False
        except Exception as e:
            logger.error(f"[load] trip {self.trip_id}: {e}")
            self.notify("load_failed", "Error", "Failed to load itinerary.")
            return False

        self.items = snapshot.items
        self.duration_days = snapshot.duration_days
        return True

    async def cast_vote(self, actor: Any, target_id: str, direction: VoteDirection | str) -> bool:
        """
        Optimistically apply a vote click, then confirm it with the server.

        The local change is visible before the request is awaited. On any
        failure the entire list goes back to the snapshot taken here, which
        also discards other optimistic changes made while this one was in
        flight.
        """
        if actor is None:
            self.notify("login_required", "Login required", LOGIN_REQUIRED_MESSAGE)
            return False

        index = self._index_of(target_id)
        if index is None:
            self.notify("vote_failed", "Error", f"Item {target_id} is not on this itinerary.")
            return False

        try:
            voted = apply_vote(self.items[index], direction)
        except ValueError as e:
            self.notify("vote_failed", "Error", str(e))
            return False

        snapshot = copy.deepcopy(self.items)
        updated = list(self.items)
        updated[index] = voted
        self.items = updated

        try:
            await self.api.cast_vote(self.trip_id, str(target_id), direction)
        except ItineraryAPIError as e:
            self.items = snapshot
            logger.warning(f"[cast_vote] reverted vote on {target_id}: {e.message}")
            self.notify("vote_failed", "Error", e.message or VOTE_FAILED_MESSAGE)
            return False
        except Exception as e:
            self.items = snapshot
            logger.error(f"[cast_vote] reverted vote on {target_id}: {e}")
            self.notify("vote_failed", "Error", VOTE_FAILED_MESSAGE)
            return False

        return True

    async def save_notes(self, actor: Any, target_id: str, content: str) -> bool:
        """Save notes for an item. Not optimistic: local notes change only on success."""
        if actor is None:
            self.notify("login_required", "Login required", "You must be logged in to edit notes.")
            return False

        index = self._index_of(target_id)
        if index is None:
            self.notify("notes_failed", "Error", "Failed to save notes")
            return False

        try:
            await self.api.update_item_notes(self.trip_id, str(target_id), content)
        except ItineraryAPIError as e:
            logger.warning(f"[save_notes] {target_id}: {e.message}")
            self.notify("notes_failed", "Error", "Failed to save notes")
            return False
        except Exception as e:
            logger.error(f"[save_notes] {target_id}: {e}")
            self.notify("notes_failed", "Error", "Failed to save notes")
            return False

        updated = list(self.items)
        updated[index] = updated[index].model_copy(update={"notes": content})
        self.items = updated
        self.notify("notes_saved", "Notes saved", "Your changes have been saved")
        return True

    async def move(
        self, actor: Any, target_id: str, day_number: int | None, position: int
    ) -> bool:
        """
        Optimistically move an item to a day/slot, renumbering the affected
        days. Rolls the whole list back if the server refuses.
        """
        if actor is None:
            self.notify("login_required", "Login required", "You must be logged in to move items.")
            return False

        snapshot = copy.deepcopy(self.items)
        try:
            moved = move_item(
                [item.model_dump() for item in self.items], target_id, day_number, position
            )
        except KeyError:
            self.notify("move_failed", "Error moving item", f"Item {target_id} not found.")
            return False
        self.items = [ItineraryItem.model_validate(raw) for raw in moved]

        try:
            await self.api.move_item(self.trip_id, str(target_id), day_number, position)
        except ItineraryAPIError as e:
            self.items = snapshot
            logger.warning(f"[move] reverted move of {target_id}: {e.message}")
            self.notify("move_failed", "Error moving item", "Reverting changes.")
            return False
        except Exception as e:
            self.items = snapshot
            logger.error(f"[move] reverted move of {target_id}: {e}")
            self.notify("move_failed", "Error moving item", "Reverting changes.")
            return False

        return True
