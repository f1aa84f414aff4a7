"""
Itinerary models: items as stored/displayed, request bodies, comments
"""

import re
from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

VoteType = Literal["up", "down"]

ITEM_TYPES = ("activity", "accommodation", "transportation", "food")
ITEM_STATUSES = ("suggested", "confirmed", "rejected")

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _check_time(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    if not _TIME_RE.match(value):
        raise ValueError("time must be HH:MM (24-hour)")
    return value


def _check_day_number(value: int | None) -> int | None:
    if value is not None and value < 1:
        raise ValueError("day_number must be a positive integer or null")
    return value


class ItineraryItem(BaseModel):
    """
    Itinerary item as seen by one viewer.

    `votes` is the net tally (up minus down) and `user_vote` is the viewer's
    own vote. The stored per-user map lives only in the database document.
    """

    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    trip_id: str | None = Field(default=None, validation_alias=AliasChoices("trip_id", "tripId"))
    title: str | None = None
    item_type: str | None = Field(
        default="activity", validation_alias=AliasChoices("item_type", "type", "category")
    )
    location: str | None = None
    notes: str | None = None
    day_number: int | None = Field(
        default=None, validation_alias=AliasChoices("day_number", "dayNumber")
    )
    position: int | None = None
    start_time: str | None = Field(
        default=None, validation_alias=AliasChoices("start_time", "startTime")
    )
    end_time: str | None = Field(default=None, validation_alias=AliasChoices("end_time", "endTime"))
    status: str = Field(default="suggested", description="suggested|confirmed|rejected")
    votes: int = Field(default=0, description="Net tally: up minus down")
    user_vote: VoteType | None = Field(
        default=None, validation_alias=AliasChoices("user_vote", "userVote")
    )
    created_by: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value):
        return str(value)

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "id": "6911a4b00ef8e4358798cb05",
                "trip_id": "6911a4b00ef8e4358798cb00",
                "title": "Louvre Museum",
                "item_type": "activity",
                "location": "Rue de Rivoli, Paris",
                "day_number": 1,
                "position": 0,
                "start_time": "10:00",
                "end_time": "12:00",
                "status": "suggested",
                "votes": 3,
                "user_vote": "up",
            }
        }


class DaySection(BaseModel):
    """One display bucket: a day number or the "unscheduled" sentinel."""

    key: int | Literal["unscheduled"]
    items: list[ItineraryItem] = Field(default_factory=list)


class ItineraryView(BaseModel):
    trip_id: str
    duration_days: int
    items: list[ItineraryItem] = Field(default_factory=list)
    days: list[DaySection] = Field(default_factory=list)


class CreateItemRequest(BaseModel):
    title: str | None = None
    name: str | None = None
    item_type: str = Field(default="activity")
    location: str | None = None
    notes: str | None = None
    day_number: int | None = None
    start_time: str | None = None
    end_time: str | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_times(cls, value):
        return _check_time(value)

    @field_validator("day_number")
    @classmethod
    def validate_day(cls, value):
        return _check_day_number(value)

    @model_validator(mode="after")
    def title_or_name(self):
        # Either is accepted; each fills the other
        if not self.title and not self.name:
            raise ValueError("Either name or title is required")
        if self.title and not self.name:
            self.name = self.title
        elif self.name and not self.title:
            self.title = self.name
        return self


class UpdateItemRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    item_type: str | None = None
    location: str | None = None
    notes: str | None = None
    day_number: int | None = None
    start_time: str | None = None
    end_time: str | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_times(cls, value):
        return _check_time(value)

    @field_validator("day_number")
    @classmethod
    def validate_day(cls, value):
        return _check_day_number(value)


class StatusRequest(BaseModel):
    status: Literal["suggested", "confirmed", "rejected"]


class MoveItemRequest(BaseModel):
    day_number: int | None = Field(default=None, description="Target day; null = unscheduled")
    position: int = Field(default=0, ge=0, description="Target index inside the target day")

    @field_validator("day_number")
    @classmethod
    def validate_day(cls, value):
        return _check_day_number(value)


class VoteRequest(BaseModel):
    """Clicked direction; the server toggles when it matches the stored vote. null clears."""

    vote_type: VoteType | None = Field(
        default=None, validation_alias=AliasChoices("vote_type", "voteType")
    )


class NotesRequest(BaseModel):
    content: str = ""


class CommentRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class ItemComment(BaseModel):
    trip_id: str
    item_id: str
    user_id: str
    content: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
