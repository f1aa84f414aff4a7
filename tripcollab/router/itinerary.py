"""
Itinerary Router
Items of a trip: listing (grouped by day), create/update/move/delete,
per-user voting, shared notes and comments.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pymongo import ReturnDocument

from tripcollab.db.database import get_item_comments_collection, get_itinerary_items_collection
from tripcollab.itinerary.grouping import group_itinerary, move_item, next_position
from tripcollab.itinerary.voting import apply_to_voters, tally_from_voters
from tripcollab.models.common import APIResponse
from tripcollab.models.itinerary import (
    CommentRequest,
    CreateItemRequest,
    DaySection,
    ItemComment,
    ItineraryItem,
    ItineraryView,
    MoveItemRequest,
    NotesRequest,
    StatusRequest,
    UpdateItemRequest,
    VoteRequest,
)
from tripcollab.models.trip import CONTRIBUTOR_ROLES, EDITOR_ROLES, TRIP_ROLES
from tripcollab.models.user import UserInfo
from tripcollab.router.auth import get_current_actor, get_optional_actor
from tripcollab.router.trip import check_trip_access, parse_object_id, serialize_doc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["Itinerary"])


def to_item(doc: dict, viewer_id: str | None) -> ItineraryItem:
    """Build the per-viewer item: stored voters map -> net votes + own vote."""
    tally = tally_from_voters(doc.get("voters"), viewer_id)
    return ItineraryItem(
        id=str(doc["_id"]),
        trip_id=doc.get("trip_id"),
        title=doc.get("title") or doc.get("name"),
        item_type=doc.get("item_type") or "activity",
        location=doc.get("location"),
        notes=doc.get("notes"),
        day_number=doc.get("day_number"),
        position=doc.get("position"),
        start_time=doc.get("start_time"),
        end_time=doc.get("end_time"),
        status=doc.get("status") or "suggested",
        votes=tally.net,
        user_vote=tally.user_vote,
        created_by=doc.get("created_by"),
    )


async def _trip_item_docs(trip_id: str) -> list[dict]:
    return await get_itinerary_items_collection().find({"trip_id": trip_id}).to_list(length=None)


async def _get_item_doc(trip_id: str, item_id: str) -> dict:
    doc = await get_itinerary_items_collection().find_one(
        {"_id": parse_object_id(item_id, "item ID"), "trip_id": trip_id}
    )
    if not doc:
        raise HTTPException(status_code=404, detail="Itinerary item not found")
    return doc


@router.get("/{trip_id}/itinerary", response_model=APIResponse)
async def get_itinerary(trip_id: str, actor: UserInfo | None = Depends(get_optional_actor)):
    """
    Get all items of a trip, ordered for display, plus the grouped day view.

    Days 1..duration_days are always listed, then any out-of-range days,
    then the unscheduled group.
    """
    viewer_id = actor.id if actor else None
    access = await check_trip_access(trip_id, viewer_id, allow_public=True)
    try:
        items = [to_item(doc, viewer_id) for doc in await _trip_item_docs(trip_id)]
        groups = group_itinerary(items, access.duration_days)
        view = ItineraryView(
            trip_id=trip_id,
            duration_days=access.duration_days,
            items=[item for group in groups for item in group.items],
            days=[DaySection(key=group.key, items=group.items) for group in groups],
        )
        return APIResponse(code=0, msg="ok", data=view.model_dump())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[get_itinerary] Error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to fetch itinerary: {str(e)}")


@router.post("/{trip_id}/itinerary", response_model=APIResponse)
async def create_item(
    trip_id: str, body: CreateItemRequest, actor: UserInfo = Depends(get_current_actor)
):
    """
    Add an item to the end of its day (or of the unscheduled group).
    New items always start as "suggested".
    """
    access = await check_trip_access(trip_id, actor.id, CONTRIBUTOR_ROLES)
    try:
        existing = await _trip_item_docs(trip_id)
        position = next_position(existing, body.day_number)
        if body.day_number and body.day_number > access.duration_days:
            logger.warning(
                f"[create_item] day {body.day_number} is past trip length {access.duration_days}"
            )

        now = datetime.utcnow()
        doc = {
            "trip_id": trip_id,
            "title": body.title,
            "name": body.name,
            "item_type": body.item_type,
            "location": body.location,
            "notes": body.notes,
            "day_number": body.day_number,
            "position": position,
            "start_time": body.start_time,
            "end_time": body.end_time,
            "status": "suggested",
            "voters": {},
            "upvote_count": 0,
            "downvote_count": 0,
            "net_score": 0,
            "created_by": actor.id,
            "created_at": now,
            "updated_at": now,
        }
        result = await get_itinerary_items_collection().insert_one(doc)
        doc["_id"] = result.inserted_id

        logger.info(f"[create_item] '{body.title}' added to trip {trip_id} at position {position}")
        return APIResponse(code=0, msg="ok", data=to_item(doc, actor.id).model_dump())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[create_item] Error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to create item: {str(e)}")


@router.get("/{trip_id}/itinerary/{item_id}", response_model=APIResponse)
async def get_item(trip_id: str, item_id: str, actor: UserInfo = Depends(get_current_actor)):
    await check_trip_access(trip_id, actor.id)
    doc = await _get_item_doc(trip_id, item_id)
    return APIResponse(code=0, msg="ok", data=to_item(doc, actor.id).model_dump())


@router.patch("/{trip_id}/itinerary/{item_id}", response_model=APIResponse)
async def update_item(
    trip_id: str,
    item_id: str,
    body: UpdateItemRequest,
    actor: UserInfo = Depends(get_current_actor),
):
    """
    Partial update. Changing the day appends the item to the end of the new day.
    """
    await check_trip_access(trip_id, actor.id, EDITOR_ROLES)
    doc = await _get_item_doc(trip_id, item_id)

    updates = body.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    if "title" in updates:
        updates["name"] = updates["title"]

    try:
        if "day_number" in updates and updates["day_number"] != doc.get("day_number"):
            others = [d for d in await _trip_item_docs(trip_id) if d["_id"] != doc["_id"]]
            updates["position"] = next_position(others, updates["day_number"])

        updates["updated_at"] = datetime.utcnow()
        await get_itinerary_items_collection().update_one({"_id": doc["_id"]}, {"$set": updates})
        doc.update(updates)

        logger.info(f"[update_item] {item_id} updated: {sorted(updates)}")
        return APIResponse(code=0, msg="ok", data=to_item(doc, actor.id).model_dump())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[update_item] Error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to update item: {str(e)}")


@router.patch("/{trip_id}/itinerary/{item_id}/status", response_model=APIResponse)
async def update_item_status(
    trip_id: str,
    item_id: str,
    body: StatusRequest,
    actor: UserInfo = Depends(get_current_actor),
):
    await check_trip_access(trip_id, actor.id, EDITOR_ROLES)
    doc = await _get_item_doc(trip_id, item_id)
    await get_itinerary_items_collection().update_one(
        {"_id": doc["_id"]}, {"$set": {"status": body.status, "updated_at": datetime.utcnow()}}
    )
    doc["status"] = body.status
    logger.info(f"[update_item_status] {item_id} -> {body.status}")
    return APIResponse(code=0, msg="ok", data=to_item(doc, actor.id).model_dump())


@router.patch("/{trip_id}/itinerary/{item_id}/move", response_model=APIResponse)
async def move_itinerary_item(
    trip_id: str,
    item_id: str,
    body: MoveItemRequest,
    actor: UserInfo = Depends(get_current_actor),
):
    """
    Move an item to a day and slot. The source and target days are renumbered
    0..n-1 and only documents whose day or position changed are written.
    """
    await check_trip_access(trip_id, actor.id, CONTRIBUTOR_ROLES)
    doc = await _get_item_doc(trip_id, item_id)
    try:
        docs = await _trip_item_docs(trip_id)
        moved = move_item(docs, str(doc["_id"]), body.day_number, body.position)

        collection = get_itinerary_items_collection()
        changed = 0
        for before, after in zip(docs, moved):
            if (before.get("day_number"), before.get("position")) == (
                after.get("day_number"),
                after.get("position"),
            ):
                continue
            await collection.update_one(
                {"_id": after["_id"]},
                {"$set": {"day_number": after.get("day_number"), "position": after["position"]}},
            )
            changed += 1

        logger.info(
            f"[move_itinerary_item] {item_id} -> day={body.day_number} pos={body.position} "
            f"({changed} documents updated)"
        )
        items = [to_item(d, actor.id) for d in moved]
        return APIResponse(code=0, msg="ok", data=[item.model_dump() for item in items])
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[move_itinerary_item] Error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to move item: {str(e)}")


@router.delete("/{trip_id}/itinerary/{item_id}", response_model=APIResponse)
async def delete_item(trip_id: str, item_id: str, actor: UserInfo = Depends(get_current_actor)):
    await check_trip_access(trip_id, actor.id, EDITOR_ROLES)
    doc = await _get_item_doc(trip_id, item_id)
    try:
        await get_itinerary_items_collection().delete_one({"_id": doc["_id"]})
        comments = await get_item_comments_collection().delete_many({"item_id": item_id})
        logger.info(
            f"[delete_item] {item_id} deleted from trip {trip_id} "
            f"with {comments.deleted_count} comments"
        )
        return APIResponse(code=0, msg="ok", data={"item_id": item_id, "deleted": True})
    except Exception as e:
        logger.error(f"[delete_item] Error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to delete item: {str(e)}")


@router.post("/{trip_id}/itinerary/{item_id}/vote", response_model=APIResponse)
async def vote_item(
    trip_id: str,
    item_id: str,
    body: VoteRequest,
    actor: UserInfo = Depends(get_current_actor),
):
    """
    Record the caller's click on an item.

    The body carries the clicked direction. Clicking the direction already
    stored removes the vote, clicking the other one switches it, and null
    clears it. Only the caller's key in `voters` is written, so concurrent
    voters never overwrite each other; counts and net_score are then
    recomputed from the map as stored after that write.
    """
    await check_trip_access(trip_id, actor.id, TRIP_ROLES)
    doc = await _get_item_doc(trip_id, item_id)
    try:
        next_vote = apply_to_voters(doc.get("voters"), actor.id, body.vote_type).get(actor.id)
        voter_key = f"voters.{actor.id}"
        now = datetime.utcnow()
        if next_vote is None:
            update = {"$unset": {voter_key: ""}, "$set": {"updated_at": now}}
        else:
            update = {"$set": {voter_key: next_vote, "updated_at": now}}

        collection = get_itinerary_items_collection()
        stored = await collection.find_one_and_update(
            {"_id": doc["_id"]}, update, return_document=ReturnDocument.AFTER
        )
        if stored is None:
            raise HTTPException(status_code=404, detail="Itinerary item not found")

        tally = tally_from_voters(stored.get("voters"), actor.id)
        await collection.update_one(
            {"_id": doc["_id"]},
            {
                "$set": {
                    "upvote_count": tally.up,
                    "downvote_count": tally.down,
                    "net_score": tally.net,
                }
            },
        )

        logger.info(
            f"[vote_item] {actor.id} clicked {body.vote_type} on {item_id}: "
            f"now {tally.user_vote} (net {tally.net})"
        )
        return APIResponse(
            code=0,
            msg="ok",
            data={
                "item_id": item_id,
                "votes": tally.net,
                "user_vote": tally.user_vote,
                "upvote_count": tally.up,
                "downvote_count": tally.down,
            },
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[vote_item] Error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to record vote: {str(e)}")


@router.put("/{trip_id}/itinerary/{item_id}/notes", response_model=APIResponse)
async def update_item_notes(
    trip_id: str,
    item_id: str,
    body: NotesRequest,
    actor: UserInfo = Depends(get_current_actor),
):
    await check_trip_access(trip_id, actor.id, CONTRIBUTOR_ROLES)
    doc = await _get_item_doc(trip_id, item_id)
    try:
        await get_itinerary_items_collection().update_one(
            {"_id": doc["_id"]},
            {"$set": {"notes": body.content, "updated_at": datetime.utcnow()}},
        )
        doc["notes"] = body.content
        logger.info(f"[update_item_notes] {item_id} notes saved by {actor.id}")
        return APIResponse(code=0, msg="ok", data=to_item(doc, actor.id).model_dump())
    except Exception as e:
        logger.error(f"[update_item_notes] Error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to save notes: {str(e)}")


@router.get("/{trip_id}/itinerary/{item_id}/comments", response_model=APIResponse)
async def list_comments(trip_id: str, item_id: str, actor: UserInfo = Depends(get_current_actor)):
    await check_trip_access(trip_id, actor.id)
    await _get_item_doc(trip_id, item_id)
    comments = (
        await get_item_comments_collection()
        .find({"trip_id": trip_id, "item_id": item_id})
        .sort("created_at", 1)
        .to_list(length=None)
    )
    return APIResponse(code=0, msg="ok", data=[serialize_doc(c) for c in comments])


@router.post("/{trip_id}/itinerary/{item_id}/comments", response_model=APIResponse)
async def add_comment(
    trip_id: str,
    item_id: str,
    body: CommentRequest,
    actor: UserInfo = Depends(get_current_actor),
):
    await check_trip_access(trip_id, actor.id)
    await _get_item_doc(trip_id, item_id)

    comment = ItemComment(trip_id=trip_id, item_id=item_id, user_id=actor.id, content=body.content)
    result = await get_item_comments_collection().insert_one(comment.model_dump())
    logger.info(f"[add_comment] {actor.id} commented on {item_id}")
    return APIResponse(code=0, msg="ok", data={"id": str(result.inserted_id), **comment.model_dump()})


@router.delete(
    "/{trip_id}/itinerary/{item_id}/comments/{comment_id}", response_model=APIResponse
)
async def delete_comment(
    trip_id: str,
    item_id: str,
    comment_id: str,
    actor: UserInfo = Depends(get_current_actor),
):
    """
    Authors can delete their own comments; admins can delete any.
    """
    access = await check_trip_access(trip_id, actor.id)
    collection = get_item_comments_collection()
    comment = await collection.find_one(
        {"_id": parse_object_id(comment_id, "comment ID"), "item_id": item_id}
    )
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    if comment.get("user_id") != actor.id and access.role != "admin":
        raise HTTPException(status_code=403, detail="You can only delete your own comments")

    await collection.delete_one({"_id": comment["_id"]})
    return APIResponse(code=0, msg="ok", data={"comment_id": comment_id, "deleted": True})
