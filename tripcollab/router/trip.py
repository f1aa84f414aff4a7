"""
Trip Router
Handles trip creation, lookup, membership and role-based access
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from tripcollab.db.database import get_trip_members_collection, get_trips_collection
from tripcollab.models.common import APIResponse
from tripcollab.models.trip import TRIP_ROLES, Trip, TripMember, TripRole
from tripcollab.models.user import UserInfo
from tripcollab.router.auth import get_current_actor, get_optional_actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["Trips"])


class CreateTripRequest(BaseModel):
    trip_name: str = Field(..., min_length=1, description="Name for the trip")
    destination: str | None = Field(None, description="Destination for the trip (optional)")
    start_date: str | None = Field(None, description="YYYY-MM-DD")
    end_date: str | None = Field(None, description="YYYY-MM-DD")
    duration_days: int = Field(1, ge=1, description="Used when no dates are given")
    privacy_setting: str = Field("private", description="private|public")


class MemberRequest(BaseModel):
    user_id: str = Field(..., description="User to add or update")
    role: TripRole = Field("viewer", description="admin|editor|contributor|viewer")


@dataclass
class TripAccess:
    trip: dict
    role: str

    @property
    def duration_days(self) -> int:
        return int(self.trip.get("duration_days") or 1)


def parse_object_id(value: str, label: str = "ID") -> ObjectId:
    if not ObjectId.is_valid(value):
        raise HTTPException(status_code=400, detail=f"Invalid {label} format")
    return ObjectId(value)


def serialize_doc(doc: dict, id_field: str = "id") -> dict:
    """Copy a Mongo document with its ObjectId turned into a string id."""
    out = dict(doc)
    if "_id" in out:
        out[id_field] = str(out.pop("_id"))
    return out


async def check_trip_access(
    trip_id: str,
    user_id: str | None,
    allowed_roles: list[str] | tuple[str, ...] = TRIP_ROLES,
    allow_public: bool = False,
) -> TripAccess:
    """
    Resolve the caller's role on a trip.

    Order: membership role (if allowed) -> trip creator is admin ->
    public trips give anonymous/non-member viewer access, only for read
    routes that pass allow_public and when viewer is allowed. Anything
    else is a 403; an unknown trip is a 404.
    """
    trips_collection = get_trips_collection()
    trip = await trips_collection.find_one({"_id": parse_object_id(trip_id, "trip ID")})
    if not trip:
        raise HTTPException(status_code=404, detail=f"Trip {trip_id} not found")

    membership = None
    if user_id:
        members_collection = get_trip_members_collection()
        membership = await members_collection.find_one({"trip_id": trip_id, "user_id": user_id})
        if membership and membership.get("role") in allowed_roles:
            return TripAccess(trip=trip, role=membership["role"])

        if trip.get("created_by") == user_id:
            logger.debug(f"[check_trip_access] {user_id} is creator of {trip_id}, granting admin")
            return TripAccess(trip=trip, role="admin")

    if (
        allow_public
        and membership is None
        and trip.get("privacy_setting") == "public"
        and "viewer" in allowed_roles
    ):
        return TripAccess(trip=trip, role="viewer")

    if membership is not None:
        raise HTTPException(
            status_code=403, detail="Access Denied: You do not have sufficient permissions."
        )
    raise HTTPException(status_code=403, detail="Access Denied: You are not a member of this trip.")


@router.post("/", response_model=APIResponse)
async def create_trip(body: CreateTripRequest, actor: UserInfo = Depends(get_current_actor)):
    """
    Create a new trip. The creator is added as an admin member.
    """
    logger.info(f"[create_trip] Request: name={body.trip_name}, creator={actor.id}")
    try:
        trip = Trip(
            trip_name=body.trip_name,
            created_by=actor.id,
            destination=body.destination,
            start_date=body.start_date,
            end_date=body.end_date,
            duration_days=body.duration_days,
            privacy_setting=body.privacy_setting,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        result = await get_trips_collection().insert_one(trip.model_dump())
        trip_id = str(result.inserted_id)

        member = TripMember(trip_id=trip_id, user_id=actor.id, role="admin")
        await get_trip_members_collection().insert_one(member.model_dump())

        logger.info(f"[create_trip] Created trip: {trip.trip_name} (id: {trip_id})")
        return APIResponse(code=0, msg="ok", data={"trip_id": trip_id, **trip.model_dump()})
    except Exception as e:
        logger.error(f"[create_trip] Error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to create trip: {str(e)}")


@router.get("/{trip_id}", response_model=APIResponse)
async def get_trip(trip_id: str, actor: UserInfo | None = Depends(get_optional_actor)):
    """
    Get trip details, its members, and the caller's role.
    """
    access = await check_trip_access(trip_id, actor.id if actor else None, allow_public=True)
    try:
        members = await get_trip_members_collection().find({"trip_id": trip_id}).to_list(length=None)
        data = serialize_doc(access.trip, id_field="trip_id")
        data["members"] = [serialize_doc(m) for m in members]
        data["role"] = access.role
        return APIResponse(code=0, msg="ok", data=data)
    except Exception as e:
        logger.error(f"[get_trip] Error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to get trip: {str(e)}")


@router.get("/{trip_id}/members", response_model=APIResponse)
async def list_members(trip_id: str, actor: UserInfo = Depends(get_current_actor)):
    await check_trip_access(trip_id, actor.id)
    members = await get_trip_members_collection().find({"trip_id": trip_id}).to_list(length=None)
    return APIResponse(code=0, msg="ok", data=[serialize_doc(m) for m in members])


@router.post("/{trip_id}/members", response_model=APIResponse)
async def add_member(
    trip_id: str, body: MemberRequest, actor: UserInfo = Depends(get_current_actor)
):
    """
    Add a member or change an existing member's role. Admins only.
    """
    await check_trip_access(trip_id, actor.id, ["admin"])
    try:
        members_collection = get_trip_members_collection()
        existing = await members_collection.find_one({"trip_id": trip_id, "user_id": body.user_id})
        if existing:
            await members_collection.update_one(
                {"trip_id": trip_id, "user_id": body.user_id}, {"$set": {"role": body.role}}
            )
            logger.info(f"[add_member] {body.user_id} role -> {body.role} on trip {trip_id}")
        else:
            member = TripMember(trip_id=trip_id, user_id=body.user_id, role=body.role)
            await members_collection.insert_one(member.model_dump())
            logger.info(f"[add_member] {body.user_id} joined trip {trip_id} as {body.role}")

        return APIResponse(
            code=0, msg="ok", data={"trip_id": trip_id, "user_id": body.user_id, "role": body.role}
        )
    except Exception as e:
        logger.error(f"[add_member] Error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to add member: {str(e)}")


@router.delete("/{trip_id}/members/{user_id}", response_model=APIResponse)
async def remove_member(trip_id: str, user_id: str, actor: UserInfo = Depends(get_current_actor)):
    """
    Remove a member. Admins can remove anyone but the creator; members can leave.
    """
    access = await check_trip_access(trip_id, actor.id)
    if actor.id != user_id and access.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can remove other members")
    if access.trip.get("created_by") == user_id:
        raise HTTPException(status_code=400, detail="The trip creator cannot be removed")

    result = await get_trip_members_collection().delete_one({"trip_id": trip_id, "user_id": user_id})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Member not found")

    logger.info(f"[remove_member] {user_id} removed from trip {trip_id} by {actor.id}")
    return APIResponse(
        code=0,
        msg="ok",
        data={"trip_id": trip_id, "user_id": user_id, "removed_at": datetime.utcnow()},
    )
