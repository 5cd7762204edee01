import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import database  # noqa: E402
import swipe  # noqa: E402
from models import UserRecord  # noqa: E402

# Fixed clock for everything that touches the daily like reset
NOW = datetime(2024, 5, 6, 12, 0, tzinfo=timezone.utc)

AMSTERDAM = (52.3676, 4.9041)
NEAR_AMSTERDAM = (52.3766, 4.9141)  # ~1 km away
ROTTERDAM = (51.9244, 4.4777)  # ~57 km away


def mock_user(**overrides) -> UserRecord:
    """A complete profile, like the ones seeded in development."""
    fields = {
        "id": "test-id",
        "name": "Test User",
        "age_range": "25-34",
        "gym_name": "Basic-Fit Amsterdam",
        "gym_address": "Test Street 1",
        "lat": AMSTERDAM[0],
        "lng": AMSTERDAM[1],
        "preferred_radius": 10,
        "goals": ["muscle_building", "powerlifting"],
        "level": "intermediate",
        "training_style": "push_pull_legs",
        "availability": [
            {"day": "monday", "time_slots": ["evening"]},
            {"day": "wednesday", "time_slots": ["evening"]},
            {"day": "friday", "time_slots": ["evening"]},
            {"day": "saturday", "time_slots": ["morning", "afternoon"]},
        ],
        "interest_tags": ["bench_press", "squat", "deadlift"],
        "verification_score": 80,
        "likes_remaining": 10,
        "last_like_reset": NOW,
    }
    fields.update(overrides)
    return UserRecord(**fields)


class InlinePool:
    """Runs submitted notifications right away so tests can assert on them."""

    def submit(self, fn, *args):
        fn(*args)


@pytest.fixture(autouse=True)
def inline_notifications(monkeypatch):
    monkeypatch.setattr(swipe, "_notify_pool", InlinePool())


@pytest.fixture
def db(tmp_path, monkeypatch):
    """A fresh sqlite database per test."""
    monkeypatch.setattr(database, "DATABASE_FILE", str(tmp_path / "test.db"))
    database.init_db()
    return database


@pytest.fixture
def make_user(db):
    """Store a mock user and return it."""
    def _make(user_id, **overrides):
        user = mock_user(id=user_id, name=overrides.pop("name", user_id.title()), **overrides)
        db.add_or_update_user(user)
        return user
    return _make
