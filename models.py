# models.py
# Typed profile data shared by the store, the engine and the API.
from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from config import DAILY_LIKES


class Goal(str, Enum):
    MUSCLE_BUILDING = "muscle_building"
    WEIGHT_LOSS = "weight_loss"
    CONDITIONING = "conditioning"
    POWERLIFTING = "powerlifting"
    BODYBUILDING = "bodybuilding"
    CALISTHENICS = "calisthenics"
    CROSSFIT = "crossfit"
    GENERAL_FITNESS = "general_fitness"


class Level(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def rank(self) -> int:
        return LEVEL_ORDER.index(self)


LEVEL_ORDER = [Level.BEGINNER, Level.INTERMEDIATE, Level.ADVANCED]


class TrainingStyle(str, Enum):
    PUSH_PULL_LEGS = "push_pull_legs"
    FULL_BODY = "full_body"
    UPPER_LOWER = "upper_lower"
    BRO_SPLIT = "bro_split"
    ARNOLD_SPLIT = "arnold_split"
    CUSTOM = "custom"


class InterestTag(str, Enum):
    BENCH_PRESS = "bench_press"
    SQUAT = "squat"
    DEADLIFT = "deadlift"
    OLYMPIC_LIFTS = "olympic_lifts"
    CALISTHENICS = "calisthenics"
    RUNNING = "running"
    SWIMMING = "swimming"
    CYCLING = "cycling"
    YOGA = "yoga"
    STRETCHING = "stretching"
    CORE = "core"
    ARMS = "arms"
    SHOULDERS = "shoulders"
    BACK = "back"
    CHEST = "chest"


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class TimeSlot(str, Enum):
    EARLY_MORNING = "early_morning"  # 6-9
    MORNING = "morning"  # 9-12
    AFTERNOON = "afternoon"  # 12-17
    EVENING = "evening"  # 17-21
    LATE_EVENING = "late_evening"  # 21-24


class Availability(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: Weekday
    time_slots: FrozenSet[TimeSlot] = frozenset()


class UserRecord(BaseModel):
    """
    A user as the store hands it to the engine.

    Collections are parsed and validated here, once; scoring code can rely
    on enum members and never sees raw strings.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    age_range: Optional[str] = None
    gym_name: Optional[str] = None
    gym_address: Optional[str] = None
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    preferred_radius: Optional[float] = Field(None, ge=1, le=50)
    goals: FrozenSet[Goal] = frozenset()
    level: Optional[Level] = None
    training_style: Optional[TrainingStyle] = None
    interest_tags: FrozenSet[InterestTag] = frozenset()
    availability: Tuple[Availability, ...] = ()
    is_premium: bool = False
    likes_remaining: int = Field(DAILY_LIKES, ge=0)
    last_like_reset: Optional[datetime] = None
    verification_score: int = Field(0, ge=0, le=100)

    @model_validator(mode="after")
    def _coordinates_paired(self):
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must be given together")
        return self

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None


class FeedFilters(BaseModel):
    radius_km: Optional[float] = Field(None, gt=0)
    goals: Optional[FrozenSet[Goal]] = None
    level: Optional[Level] = None
    same_gym_only: bool = False
    # Overrides the viewer's own location as the centre of the search
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)


class FeedCandidate(BaseModel):
    """Public profile of a user as seen by a viewer."""

    id: str
    name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    age_range: Optional[str] = None
    gym_name: Optional[str] = None
    distance: Optional[float] = None
    goals: List[Goal] = []
    level: Optional[Level] = None
    training_style: Optional[TrainingStyle] = None
    availability: List[Availability] = []
    interest_tags: List[InterestTag] = []
    verification_score: int = 0
    compatibility_score: int = 0


class Feed(BaseModel):
    items: List[FeedCandidate]
    total: int
    likes_remaining: int


class Match(BaseModel):
    id: str
    user_a_id: str
    user_b_id: str
    created_at: datetime


class MatchInfo(BaseModel):
    id: str
    other_user: FeedCandidate
    created_at: Optional[datetime] = None


class LikeResult(BaseModel):
    liked: bool = True
    is_match: bool = False
    match: Optional[MatchInfo] = None
    likes_remaining: int


class PassResult(BaseModel):
    passed: bool = True


class BlockResult(BaseModel):
    blocked: bool = True
    already_blocked: bool = False


def normalize_pair(user_id_a: str, user_id_b: str) -> Tuple[str, str]:
    """Return the two ids as ``(low, high)`` so an unordered pair has one key."""
    if user_id_a == user_id_b:
        raise ValueError("a pair needs two distinct users")
    if user_id_a < user_id_b:
        return user_id_a, user_id_b
    return user_id_b, user_id_a
