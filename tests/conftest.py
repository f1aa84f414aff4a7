import copy
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from bson import ObjectId

# Allow importing tripcollab without installing it
sys.path.insert(0, str(Path(__file__).parent.parent))

from tripcollab.router.auth import create_access_token  # noqa: E402


def _matches(doc: dict, query: dict) -> bool:
    return all(doc.get(key) == value for key, value in query.items())


def _apply_update(doc: dict, update: dict) -> None:
    """$set / $unset with Mongo's dotted paths ("voters.alice")."""
    for path, value in update.get("$set", {}).items():
        *parents, leaf = path.split(".")
        target = doc
        for key in parents:
            target = target.setdefault(key, {})
        target[leaf] = copy.deepcopy(value)
    for path in update.get("$unset", {}):
        *parents, leaf = path.split(".")
        target = doc
        for key in parents:
            target = target.get(key, {})
        target.pop(leaf, None)


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        self._docs = sorted(self._docs, key=lambda d: d.get(key), reverse=direction == -1)
        return self

    async def to_list(self, length=None):
        docs = [copy.deepcopy(d) for d in self._docs]
        return docs if length is None else docs[:length]


class FakeCollection:
    """In-memory stand-in for the handful of motor collection calls the routers make."""

    def __init__(self):
        self.docs: list[dict] = []
        self.update_calls: list[tuple[dict, dict]] = []

    async def find_one(self, query):
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query=None):
        return FakeCursor([d for d in self.docs if _matches(d, query or {})])

    async def insert_one(self, doc):
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    async def update_one(self, query, update, upsert=False):
        self.update_calls.append((query, update))
        for doc in self.docs:
            if _matches(doc, query):
                _apply_update(doc, update)
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def find_one_and_update(self, query, update, return_document=False):
        self.update_calls.append((query, update))
        for doc in self.docs:
            if _matches(doc, query):
                before = copy.deepcopy(doc)
                _apply_update(doc, update)
                # ReturnDocument.AFTER is True
                return copy.deepcopy(doc) if return_document else before
        return None

    async def delete_one(self, query):
        for index, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query):
        before = len(self.docs)
        self.docs = [d for d in self.docs if not _matches(d, query)]
        return SimpleNamespace(deleted_count=before - len(self.docs))

    async def create_index(self, *args, **kwargs):
        return kwargs.get("name", "index")


@pytest.fixture
def fake_db(monkeypatch):
    """Route every collection accessor the routers use to in-memory collections."""
    db = SimpleNamespace(
        trips=FakeCollection(),
        members=FakeCollection(),
        items=FakeCollection(),
        comments=FakeCollection(),
    )
    monkeypatch.setattr("tripcollab.router.trip.get_trips_collection", lambda: db.trips)
    monkeypatch.setattr("tripcollab.router.trip.get_trip_members_collection", lambda: db.members)
    monkeypatch.setattr(
        "tripcollab.router.itinerary.get_itinerary_items_collection", lambda: db.items
    )
    monkeypatch.setattr(
        "tripcollab.router.itinerary.get_item_comments_collection", lambda: db.comments
    )
    return db


@pytest.fixture
def seeded_trip(fake_db):
    """
    A 3-day private trip created by alice.
    bob is a contributor, carol a viewer, dave an editor; eve is not a member.
    """
    trip_id = ObjectId()
    fake_db.trips.docs.append(
        {
            "_id": trip_id,
            "trip_name": "Lisbon long weekend",
            "created_by": "alice",
            "duration_days": 3,
            "privacy_setting": "private",
        }
    )
    for user_id, role in [
        ("alice", "admin"),
        ("bob", "contributor"),
        ("carol", "viewer"),
        ("dave", "editor"),
    ]:
        fake_db.members.docs.append({"_id": ObjectId(), "trip_id": str(trip_id), "user_id": user_id, "role": role})
    return str(trip_id)


def add_item_doc(fake_db, trip_id, title, day_number=None, position=0, voters=None, **extra):
    doc = {
        "_id": ObjectId(),
        "trip_id": trip_id,
        "title": title,
        "name": title,
        "item_type": "activity",
        "day_number": day_number,
        "position": position,
        "status": "suggested",
        "voters": dict(voters or {}),
        **extra,
    }
    fake_db.items.docs.append(doc)
    return str(doc["_id"])


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, email=f'{user_id}@example.com')}"}
