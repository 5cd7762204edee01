"""Tests for the HTTP surface."""

import sqlite3
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

import main
from conftest import ROTTERDAM

AUTH = {"Authorization": f"Bearer {main.AUTH_TOKEN}"}


@pytest.fixture
def client(db, monkeypatch):
    # keep tests away from a real push gateway
    monkeypatch.setattr("notifier.PUSH_WEBHOOK_URL", "")
    return TestClient(main.app)


def put_profile(client, user_id, **fields):
    body = {
        "user_id": user_id,
        "name": user_id.title(),
        "gym_name": "Basic-Fit",
        "lat": 52.3676,
        "lng": 4.9041,
        "goals": ["muscle_building", "powerlifting"],
        "level": "intermediate",
    }
    body.update(fields)
    return client.put("/users", json=body, headers=AUTH)


class TestAuth:

    def test_missing_token(self, client):
        assert client.get("/").status_code == 401

    def test_wrong_token(self, client):
        assert client.get("/", headers={"Authorization": "Bearer nope"}).status_code == 403

    def test_health(self, client):
        resp = client.get("/", headers=AUTH)
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestProfiles:

    def test_create_profile_scores_verification(self, client):
        resp = put_profile(client, "alice")
        assert resp.status_code == 200
        # name 10 + gym 15 + location 10 + goals 10 + level 5
        assert resp.json()["verification_score"] == 50

    def test_partial_update_keeps_other_fields(self, client):
        put_profile(client, "alice")
        resp = client.put("/users", json={"user_id": "alice", "bio": "Deadlifts before dawn, every day"}, headers=AUTH)
        body = resp.json()
        assert body["gym_name"] == "Basic-Fit"
        assert body["verification_score"] == 65

    def test_invalid_goal(self, client):
        assert put_profile(client, "alice", goals=["cardio"]).status_code == 422

    def test_half_location(self, client):
        assert put_profile(client, "alice", lng=None).status_code == 422

    def test_get_profile_for_viewer(self, client):
        put_profile(client, "alice")
        put_profile(client, "bob", lat=ROTTERDAM[0], lng=ROTTERDAM[1])

        resp = client.get("/users/bob", params={"viewer_id": "alice"}, headers=AUTH)
        body = resp.json()
        assert body["compatibility_score"] == 70
        assert 50 < body["distance"] < 65
        assert "likes_remaining" not in body

    def test_unknown_profile_is_generic(self, client):
        resp = client.get("/users/nobody", headers=AUTH)
        assert resp.status_code == 404
        assert resp.json()["detail"] == main.GENERIC_ERROR


class TestFeedAndSwipes:

    def test_feed(self, client):
        put_profile(client, "alice")
        put_profile(client, "bob")
        put_profile(client, "carol", lat=ROTTERDAM[0], lng=ROTTERDAM[1])

        resp = client.get("/feed", params={"user_id": "alice", "radius_km": 10}, headers=AUTH)
        assert resp.status_code == 200
        body = resp.json()
        assert [item["id"] for item in body["items"]] == ["bob"]
        assert body["likes_remaining"] == 10

    def test_feed_filters(self, client):
        put_profile(client, "alice")
        put_profile(client, "bob", goals=["crossfit"])
        put_profile(client, "carol", level="advanced")

        resp = client.get("/feed", params={"user_id": "alice", "goals": "crossfit,yoga_nope"}, headers=AUTH)
        assert resp.status_code == 422

        resp = client.get("/feed", params={"user_id": "alice", "goals": "crossfit"}, headers=AUTH)
        assert [item["id"] for item in resp.json()["items"]] == ["bob"]

        resp = client.get("/feed", params={"user_id": "alice", "level": "advanced"}, headers=AUTH)
        assert [item["id"] for item in resp.json()["items"]] == ["carol"]

    def test_like_match_and_matches(self, client):
        put_profile(client, "alice")
        put_profile(client, "bob")

        first = client.post("/swipe/like", json={"user_id": "alice", "to_user_id": "bob"}, headers=AUTH)
        assert first.json()["is_match"] is False

        second = client.post("/swipe/like", json={"user_id": "bob", "to_user_id": "alice"}, headers=AUTH)
        body = second.json()
        assert body["is_match"] is True
        assert body["match"]["other_user"]["id"] == "alice"

        matches = client.get("/matches", params={"user_id": "alice"}, headers=AUTH).json()
        assert [m["other_user"]["id"] for m in matches] == ["bob"]

        feed = client.get("/feed", params={"user_id": "alice"}, headers=AUTH).json()
        assert feed["items"] == []

    def test_already_liked_message(self, client):
        put_profile(client, "alice")
        put_profile(client, "bob")
        payload = {"user_id": "alice", "to_user_id": "bob"}
        client.post("/swipe/like", json=payload, headers=AUTH)

        resp = client.post("/swipe/like", json=payload, headers=AUTH)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "You already liked this person"

    def test_quota_exceeded_message(self, client, db):
        put_profile(client, "alice")
        put_profile(client, "bob")
        alice = db.get_user("alice")
        db.add_or_update_user(alice.model_copy(update={
            "likes_remaining": 0,
            "last_like_reset": datetime.now(timezone.utc),
        }))

        resp = client.post("/swipe/like", json={"user_id": "alice", "to_user_id": "bob"}, headers=AUTH)
        assert resp.status_code == 403
        assert "Premium" in resp.json()["detail"]

    def test_pass_and_block(self, client):
        put_profile(client, "alice")
        put_profile(client, "bob")
        put_profile(client, "carol")

        resp = client.post("/swipe/pass", json={"user_id": "alice", "to_user_id": "bob"}, headers=AUTH)
        assert resp.json() == {"passed": True}

        resp = client.post("/users/block", json={"user_id": "carol", "blocked_user_id": "alice"}, headers=AUTH)
        assert resp.json()["blocked"] is True

        feed = client.get("/feed", params={"user_id": "alice"}, headers=AUTH).json()
        assert feed["items"] == []

    def test_store_failure_is_generic(self, client, monkeypatch):
        def broken(*args, **kwargs):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr("database.reset_daily_likes_if_needed", broken)
        resp = client.get("/feed", params={"user_id": "alice"}, headers=AUTH)
        assert resp.status_code == 500
        assert resp.json()["detail"] == main.GENERIC_ERROR
