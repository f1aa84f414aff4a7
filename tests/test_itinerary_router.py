import copy
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from conftest import add_item_doc, auth_headers
from tripcollab.main import app

# No context manager: the lifespan (and its MongoDB ping) never runs
client = TestClient(app)


def _item_doc(fake_db, item_id):
    return next(d for d in fake_db.items.docs if str(d["_id"]) == item_id)


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "healthy"


def test_auth_me_returns_token_subject():
    response = client.get("/auth/me", headers=auth_headers("alice"))
    assert response.status_code == 200
    assert response.json()["id"] == "alice"


def test_auth_me_rejects_bad_token():
    response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_get_itinerary_groups_days_and_votes_per_viewer(fake_db, seeded_trip):
    add_item_doc(fake_db, seeded_trip, "Castle", day_number=2, position=0, voters={"alice": "up", "bob": "up"})
    add_item_doc(fake_db, seeded_trip, "Tram 28", day_number=1, position=0, voters={"carol": "down"})
    add_item_doc(fake_db, seeded_trip, "Fado night", day_number=None, position=0)

    response = client.get(f"/trips/{seeded_trip}/itinerary", headers=auth_headers("bob"))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["duration_days"] == 3
    assert [(d["key"], [i["title"] for i in d["items"]]) for d in data["days"]] == [
        (1, ["Tram 28"]),
        (2, ["Castle"]),
        (3, []),
        ("unscheduled", ["Fado night"]),
    ]
    castle = next(i for i in data["items"] if i["title"] == "Castle")
    tram = next(i for i in data["items"] if i["title"] == "Tram 28")
    assert (castle["votes"], castle["user_vote"]) == (2, "up")
    assert (tram["votes"], tram["user_vote"]) == (-1, None)


def test_non_member_is_denied_private_trip(fake_db, seeded_trip):
    response = client.get(f"/trips/{seeded_trip}/itinerary", headers=auth_headers("eve"))
    assert response.status_code == 403


def test_anonymous_can_read_public_trip(fake_db, seeded_trip):
    fake_db.trips.docs[0]["privacy_setting"] = "public"
    response = client.get(f"/trips/{seeded_trip}/itinerary")
    assert response.status_code == 200


def test_invalid_trip_id_is_400(fake_db):
    response = client.get("/trips/not-an-id/itinerary", headers=auth_headers("alice"))
    assert response.status_code == 400


def test_unknown_trip_is_404(fake_db):
    response = client.get("/trips/6911a4b00ef8e4358798cb00/itinerary", headers=auth_headers("alice"))
    assert response.status_code == 404


def test_create_item_appends_to_end_of_day(fake_db, seeded_trip):
    add_item_doc(fake_db, seeded_trip, "Breakfast", day_number=1, position=0)
    add_item_doc(fake_db, seeded_trip, "Museum", day_number=1, position=3)
    add_item_doc(fake_db, seeded_trip, "Beach", day_number=2, position=7)

    response = client.post(
        f"/trips/{seeded_trip}/itinerary",
        json={"name": "Lunch", "day_number": 1, "start_time": "12:30"},
        headers=auth_headers("bob"),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["title"] == "Lunch"
    assert data["position"] == 4
    assert data["status"] == "suggested"
    assert data["votes"] == 0
    stored = fake_db.items.docs[-1]
    assert stored["name"] == stored["title"] == "Lunch"
    assert stored["created_by"] == "bob"


def test_create_item_requires_title_or_name(fake_db, seeded_trip):
    response = client.post(
        f"/trips/{seeded_trip}/itinerary", json={"day_number": 1}, headers=auth_headers("alice")
    )
    assert response.status_code == 422


def test_create_item_rejects_bad_time(fake_db, seeded_trip):
    response = client.post(
        f"/trips/{seeded_trip}/itinerary",
        json={"title": "Late", "start_time": "25:00"},
        headers=auth_headers("alice"),
    )
    assert response.status_code == 422


def test_viewer_cannot_create_item(fake_db, seeded_trip):
    response = client.post(
        f"/trips/{seeded_trip}/itinerary", json={"title": "Nope"}, headers=auth_headers("carol")
    )
    assert response.status_code == 403


@pytest.mark.parametrize(
    "stored, clicked, expected_vote, expected_net",
    [
        (None, "up", "up", 2),
        (None, "down", "down", 0),
        ("up", "up", None, 1),
        ("down", "down", None, 1),
        ("up", "down", "down", 0),
        ("down", "up", "up", 2),
    ],
)
def test_vote_endpoint_applies_transition_table(
    fake_db, seeded_trip, stored, clicked, expected_vote, expected_net
):
    voters = {"dave": "up"}
    if stored:
        voters["bob"] = stored
    item_id = add_item_doc(fake_db, seeded_trip, "Castle", day_number=1, voters=voters)

    response = client.post(
        f"/trips/{seeded_trip}/itinerary/{item_id}/vote",
        json={"vote_type": clicked},
        headers=auth_headers("bob"),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user_vote"] == expected_vote
    assert data["votes"] == expected_net
    doc = _item_doc(fake_db, item_id)
    assert doc["voters"].get("bob") == expected_vote
    assert doc["voters"]["dave"] == "up"
    assert doc["net_score"] == expected_net


def test_vote_null_clears(fake_db, seeded_trip):
    item_id = add_item_doc(fake_db, seeded_trip, "Castle", day_number=1, voters={"bob": "down"})

    response = client.post(
        f"/trips/{seeded_trip}/itinerary/{item_id}/vote",
        json={"vote_type": None},
        headers=auth_headers("bob"),
    )

    assert response.status_code == 200
    assert response.json()["data"]["votes"] == 0
    assert _item_doc(fake_db, item_id)["voters"] == {}


def test_vote_requires_login(fake_db, seeded_trip):
    item_id = add_item_doc(fake_db, seeded_trip, "Castle", day_number=1)
    response = client.post(f"/trips/{seeded_trip}/itinerary/{item_id}/vote", json={"vote_type": "up"})
    assert response.status_code in (401, 403)
    assert _item_doc(fake_db, item_id)["voters"] == {}


def test_vote_on_missing_item_is_404(fake_db, seeded_trip):
    response = client.post(
        f"/trips/{seeded_trip}/itinerary/6911a4b00ef8e4358798cb05/vote",
        json={"vote_type": "up"},
        headers=auth_headers("bob"),
    )
    assert response.status_code == 404


def test_save_notes(fake_db, seeded_trip):
    item_id = add_item_doc(fake_db, seeded_trip, "Castle", day_number=1)

    response = client.put(
        f"/trips/{seeded_trip}/itinerary/{item_id}/notes",
        json={"content": "<p>Buy tickets online</p>"},
        headers=auth_headers("bob"),
    )

    assert response.status_code == 200
    assert _item_doc(fake_db, item_id)["notes"] == "<p>Buy tickets online</p>"


def test_viewer_cannot_save_notes(fake_db, seeded_trip):
    item_id = add_item_doc(fake_db, seeded_trip, "Castle", day_number=1)
    response = client.put(
        f"/trips/{seeded_trip}/itinerary/{item_id}/notes",
        json={"content": "x"},
        headers=auth_headers("carol"),
    )
    assert response.status_code == 403


def test_move_item_renumbers_days(fake_db, seeded_trip):
    a = add_item_doc(fake_db, seeded_trip, "A", day_number=1, position=0)
    b = add_item_doc(fake_db, seeded_trip, "B", day_number=1, position=1)
    c = add_item_doc(fake_db, seeded_trip, "C", day_number=2, position=0)

    response = client.patch(
        f"/trips/{seeded_trip}/itinerary/{a}/move",
        json={"day_number": 2, "position": 0},
        headers=auth_headers("bob"),
    )

    assert response.status_code == 200
    assert (_item_doc(fake_db, a)["day_number"], _item_doc(fake_db, a)["position"]) == (2, 0)
    assert _item_doc(fake_db, c)["position"] == 1
    assert _item_doc(fake_db, b)["position"] == 0


def test_update_status_requires_editor(fake_db, seeded_trip):
    item_id = add_item_doc(fake_db, seeded_trip, "Castle", day_number=1)
    url = f"/trips/{seeded_trip}/itinerary/{item_id}/status"

    assert client.patch(url, json={"status": "confirmed"}, headers=auth_headers("bob")).status_code == 403
    response = client.patch(url, json={"status": "confirmed"}, headers=auth_headers("dave"))
    assert response.status_code == 200
    assert _item_doc(fake_db, item_id)["status"] == "confirmed"


def test_update_item_changing_day_appends(fake_db, seeded_trip):
    add_item_doc(fake_db, seeded_trip, "Beach", day_number=3, position=0)
    item_id = add_item_doc(fake_db, seeded_trip, "Castle", day_number=1, position=0)

    response = client.patch(
        f"/trips/{seeded_trip}/itinerary/{item_id}",
        json={"day_number": 3, "title": "Castle of St George"},
        headers=auth_headers("alice"),
    )

    assert response.status_code == 200
    doc = _item_doc(fake_db, item_id)
    assert (doc["day_number"], doc["position"]) == (3, 1)
    assert doc["name"] == "Castle of St George"


def test_delete_item_removes_comments(fake_db, seeded_trip):
    item_id = add_item_doc(fake_db, seeded_trip, "Castle", day_number=1)
    headers = auth_headers("carol")
    client.post(
        f"/trips/{seeded_trip}/itinerary/{item_id}/comments",
        json={"content": "Worth it?"},
        headers=headers,
    )
    assert len(fake_db.comments.docs) == 1

    response = client.delete(f"/trips/{seeded_trip}/itinerary/{item_id}", headers=auth_headers("dave"))

    assert response.status_code == 200
    assert fake_db.items.docs == []
    assert fake_db.comments.docs == []


def test_comments_list_and_delete_rules(fake_db, seeded_trip):
    item_id = add_item_doc(fake_db, seeded_trip, "Castle", day_number=1)
    base = f"/trips/{seeded_trip}/itinerary/{item_id}/comments"
    created = client.post(base, json={"content": "Go early"}, headers=auth_headers("carol")).json()["data"]

    listed = client.get(base, headers=auth_headers("bob")).json()["data"]
    assert [c["content"] for c in listed] == ["Go early"]

    assert client.delete(f"{base}/{created['id']}", headers=auth_headers("bob")).status_code == 403
    assert client.delete(f"{base}/{created['id']}", headers=auth_headers("alice")).status_code == 200
    assert fake_db.comments.docs == []


def test_public_trip_stranger_can_read_but_not_vote_or_comment(fake_db, seeded_trip):
    fake_db.trips.docs[0]["privacy_setting"] = "public"
    item_id = add_item_doc(fake_db, seeded_trip, "Castle", day_number=1)
    stranger = auth_headers("mallory")

    assert client.get(f"/trips/{seeded_trip}/itinerary", headers=stranger).status_code == 200

    vote = client.post(
        f"/trips/{seeded_trip}/itinerary/{item_id}/vote", json={"vote_type": "up"}, headers=stranger
    )
    comment = client.post(
        f"/trips/{seeded_trip}/itinerary/{item_id}/comments", json={"content": "hi"}, headers=stranger
    )

    assert vote.status_code == 403
    assert comment.status_code == 403
    assert _item_doc(fake_db, item_id)["voters"] == {}
    assert fake_db.comments.docs == []


def test_vote_keeps_votes_written_after_the_item_was_read(fake_db, seeded_trip, monkeypatch):
    item_id = add_item_doc(fake_db, seeded_trip, "Castle", day_number=1)
    stale = copy.deepcopy(_item_doc(fake_db, item_id))
    # dave votes between bob's read and bob's write
    _item_doc(fake_db, item_id)["voters"]["dave"] = "up"
    monkeypatch.setattr(fake_db.items, "find_one", AsyncMock(return_value=stale))

    response = client.post(
        f"/trips/{seeded_trip}/itinerary/{item_id}/vote",
        json={"vote_type": "up"},
        headers=auth_headers("bob"),
    )

    assert response.status_code == 200
    assert response.json()["data"]["votes"] == 2
    doc = _item_doc(fake_db, item_id)
    assert doc["voters"] == {"dave": "up", "bob": "up"}
    assert (doc["upvote_count"], doc["net_score"]) == (2, 2)
