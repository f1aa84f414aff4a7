"""
Trip and membership models for collaborative travel planning
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

TripRole = Literal["admin", "editor", "contributor", "viewer"]

TRIP_ROLES: tuple[str, ...] = ("admin", "editor", "contributor", "viewer")
EDITOR_ROLES: list[str] = ["admin", "editor"]
CONTRIBUTOR_ROLES: list[str] = ["admin", "editor", "contributor"]


def compute_duration_days(start_date: str | None, end_date: str | None) -> int | None:
    """Inclusive day count between two YYYY-MM-DD dates, or None if either is missing."""
    if not start_date or not end_date:
        return None
    start = date.fromisoformat(start_date)
    end = date.fromisoformat(end_date)
    return max(1, (end - start).days + 1)


class Trip(BaseModel):
    """
    Collaborative trip model for group travel planning
    """

    trip_name: str = Field(..., description="Trip name set by creator")
    created_by: str = Field(..., description="User ID of trip creator")
    destination: str | None = Field(None, description="Destination for the trip")

    # Timing
    start_date: str | None = Field(default=None, description="YYYY-MM-DD")
    end_date: str | None = Field(default=None, description="YYYY-MM-DD")
    duration_days: int = Field(default=1, ge=1, description="Number of itinerary days")

    privacy_setting: Literal["private", "public"] = Field(default="private")

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("start_date", "end_date")
    @classmethod
    def validate_iso_date(cls, value: str | None) -> str | None:
        if value:
            date.fromisoformat(value)
        return value

    @model_validator(mode="after")
    def derive_duration(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        derived = compute_duration_days(self.start_date, self.end_date)
        if derived is not None:
            self.duration_days = derived
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "trip_name": "Summer Japan Trip",
                "created_by": "123456789",
                "destination": "Tokyo, Japan",
                "start_date": "2025-07-01",
                "end_date": "2025-07-07",
                "duration_days": 7,
                "privacy_setting": "private",
            }
        }


class TripMember(BaseModel):
    trip_id: str
    user_id: str
    role: TripRole = "viewer"
    joined_at: datetime = Field(default_factory=datetime.utcnow)
