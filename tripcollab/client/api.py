"""
HTTP client for the itinerary endpoints.

Thin async wrapper around httpx: unwraps the {code, msg, data} envelope on
success and turns every failure (non-2xx or transport error) into an
ItineraryAPIError carrying the server's message when it sent one.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import ValidationError

from tripcollab.core.config import API_BASE_URL, API_TIMEOUT_SECONDS
from tripcollab.itinerary.grouping import coerce_int
from tripcollab.itinerary.voting import VoteDirection
from tripcollab.models.itinerary import ItineraryItem

logger = logging.getLogger(__name__)


class ItineraryAPIError(Exception):
    def __init__(self, status_code: int | None, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __repr__(self):
        return f"ItineraryAPIError(status_code={self.status_code!r}, message={self.message!r})"


@dataclass
class ItinerarySnapshot:
    duration_days: int
    items: list[ItineraryItem] = field(default_factory=list)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("detail", "error", "msg"):
            value = body.get(key)
            if value:
                return value if isinstance(value, str) else str(value)
    return f"Request failed with status {response.status_code}"


_INT_FIELDS = ("day_number", "dayNumber", "position")
_TEXT_FIELDS = (
    "trip_id", "tripId", "title", "item_type", "type", "category", "location", "notes",
    "start_time", "startTime", "end_time", "endTime", "status", "created_by",
)


def _coerce_item(raw: Any) -> dict | None:
    """
    Reset fields of the wrong type so one bad value never hides an item:
    bad day/position -> None (unscheduled / sorts last), bad votes -> 0,
    bad user_vote -> None, non-string text -> default. None if there is no id.
    """
    if not isinstance(raw, dict):
        return None
    item = dict(raw)
    if item.get("id") is None:
        item.pop("id", None)
        if item.get("_id") is None:
            return None

    for name in _INT_FIELDS:
        if name in item:
            item[name] = coerce_int(item[name])
    if "votes" in item:
        item["votes"] = coerce_int(item["votes"]) or 0
    for name in ("user_vote", "userVote"):
        if name in item and item[name] not in ("up", "down"):
            item[name] = None
    for name in _TEXT_FIELDS:
        if name in item and not isinstance(item[name], str):
            item.pop(name)
    return item


def _unwrap(payload: Any) -> Any:
    if isinstance(payload, dict) and "data" in payload and "code" in payload:
        return payload["data"]
    return payload


class ItineraryAPIClient:
    """
    Async client for one API base URL.

    `transport` is passed straight to httpx.AsyncClient, so tests can plug in
    an httpx.MockTransport.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        token: str | None = None,
        timeout: float = API_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers(),
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.warning(f"[_request] {method} {path} transport error: {e}")
            raise ItineraryAPIError(None, f"Network error: {str(e)}") from e

        if response.is_error:
            message = _error_message(response)
            logger.warning(f"[_request] {method} {path} -> {response.status_code}: {message}")
            raise ItineraryAPIError(response.status_code, message)

        try:
            return _unwrap(response.json())
        except ValueError as e:
            raise ItineraryAPIError(response.status_code, "Invalid JSON in response") from e

    async def fetch_itinerary(self, trip_id: str) -> ItinerarySnapshot:
        """
        Load all items of a trip. Malformed fields are reset (see
        _coerce_item) so the item still shows up; only entries without an
        id are skipped.
        """
        data = await self._request("GET", f"/trips/{trip_id}/itinerary")
        if not isinstance(data, dict):
            raise ItineraryAPIError(None, "Unexpected itinerary payload")

        items = []
        for raw in data.get("items") or []:
            coerced = _coerce_item(raw)
            if coerced is None:
                logger.warning(f"[fetch_itinerary] skipping item without id: {raw!r}")
                continue
            try:
                items.append(ItineraryItem.model_validate(coerced))
            except ValidationError as e:
                logger.warning(f"[fetch_itinerary] skipping malformed item {coerced.get('id')}: {e}")

        duration_days = coerce_int(data.get("duration_days"))
        if duration_days is None or duration_days < 1:
            logger.warning(
                f"[fetch_itinerary] bad duration_days {data.get('duration_days')!r}, using 1"
            )
            duration_days = 1
        return ItinerarySnapshot(duration_days=duration_days, items=items)

    async def cast_vote(
        self, trip_id: str, item_id: str, direction: VoteDirection | str | None
    ) -> dict:
        vote_type = direction.value if isinstance(direction, VoteDirection) else direction
        return await self._request(
            "POST", f"/trips/{trip_id}/itinerary/{item_id}/vote", json={"vote_type": vote_type}
        )

    async def update_item_notes(self, trip_id: str, item_id: str, content: str) -> dict:
        return await self._request(
            "PUT", f"/trips/{trip_id}/itinerary/{item_id}/notes", json={"content": content}
        )

    async def move_item(
        self, trip_id: str, item_id: str, day_number: int | None, position: int
    ) -> list:
        return await self._request(
            "PATCH",
            f"/trips/{trip_id}/itinerary/{item_id}/move",
            json={"day_number": day_number, "position": position},
        )
