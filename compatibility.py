# compatibility.py
"""
Compatibility score between two training partners.

Six factors, each worth a fixed number of points:

    same gym            30
    goal overlap        25
    level adjacency     15
    training style      10
    interest tags       10
    availability        10

Partial factors are accumulated as floats and the total is rounded once.
Every factor is symmetric, so score(a, b) == score(b, a).
"""
import math
from typing import Dict, FrozenSet, Iterable, Set

from models import Availability, TimeSlot, UserRecord, Weekday

SAME_GYM_POINTS = 30
GOAL_POINTS = 25
LEVEL_POINTS = 15
ADJACENT_LEVEL_POINTS = 10
TRAINING_STYLE_POINTS = 10
TAG_POINTS = 10
AVAILABILITY_POINTS = 10
POINTS_PER_SHARED_SLOT = 2

TOTAL_POINTS = (
    SAME_GYM_POINTS + GOAL_POINTS + LEVEL_POINTS
    + TRAINING_STYLE_POINTS + TAG_POINTS + AVAILABILITY_POINTS
)


def same_gym(gym_a, gym_b) -> bool:
    if not gym_a or not gym_b:
        return False
    return gym_a.lower() == gym_b.lower()


def overlap_ratio(set_a: FrozenSet, set_b: FrozenSet) -> float:
    return len(set_a & set_b) / max(len(set_a), len(set_b), 1)


def _slots_by_day(entries: Iterable[Availability]) -> Dict[Weekday, Set[TimeSlot]]:
    slots: Dict[Weekday, Set[TimeSlot]] = {}
    for entry in entries:
        slots.setdefault(entry.day, set()).update(entry.time_slots)
    return slots


def availability_overlap(avail_a: Iterable[Availability], avail_b: Iterable[Availability]) -> int:
    """Number of (day, time slot) pairs both users are free."""
    slots_a = _slots_by_day(avail_a)
    slots_b = _slots_by_day(avail_b)
    return sum(len(slots & slots_b[day]) for day, slots in slots_a.items() if day in slots_b)


def _level_points(user_a: UserRecord, user_b: UserRecord) -> float:
    if user_a.level is None or user_b.level is None:
        return 0.0
    diff = abs(user_a.level.rank - user_b.level.rank)
    if diff == 0:
        return LEVEL_POINTS
    if diff == 1:
        return ADJACENT_LEVEL_POINTS
    return 0.0


def compatibility_score(user_a: UserRecord, user_b: UserRecord) -> int:
    """Return an integer in [0, 100]."""
    score = 0.0

    if same_gym(user_a.gym_name, user_b.gym_name):
        score += SAME_GYM_POINTS

    score += GOAL_POINTS * overlap_ratio(user_a.goals, user_b.goals)
    score += _level_points(user_a, user_b)

    if user_a.training_style is not None and user_a.training_style == user_b.training_style:
        score += TRAINING_STYLE_POINTS

    score += TAG_POINTS * overlap_ratio(user_a.interest_tags, user_b.interest_tags)

    shared_slots = availability_overlap(user_a.availability, user_b.availability)
    score += min(POINTS_PER_SHARED_SLOT * shared_slots, AVAILABILITY_POINTS)

    # round half up; round() would send 12.5 to 12
    return int(math.floor(100 * score / TOTAL_POINTS + 0.5))
