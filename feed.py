# feed.py
import logging
import time
from datetime import datetime
from typing import Iterable, List, Optional, Set

import database
from compatibility import same_gym
from config import DEFAULT_LAT, DEFAULT_LNG, DEFAULT_RADIUS_KM
from errors import FeedTimeout, NotFound
from geo import distance_km
from models import Feed, FeedCandidate, FeedFilters, UserRecord
from profiles import project

logger = logging.getLogger(__name__)


def exclusion_set(user_id: str) -> Set[str]:
    """Users that must never show up in this user's feed again."""
    excluded = {user_id}
    excluded.update(database.list_outgoing(user_id, "like"))
    excluded.update(database.list_outgoing(user_id, "pass"))
    excluded.update(database.list_blocks_either_direction(user_id))
    return excluded


def _check_deadline(deadline: Optional[float]) -> None:
    if deadline is not None and time.monotonic() >= deadline:
        raise FeedTimeout()


def _origin(viewer: UserRecord, filters: FeedFilters):
    if filters.lat is not None and filters.lng is not None:
        return filters.lat, filters.lng
    if viewer.has_location:
        return viewer.lat, viewer.lng
    return DEFAULT_LAT, DEFAULT_LNG


def build_feed(
    viewer: UserRecord,
    candidates: Iterable[UserRecord],
    filters: Optional[FeedFilters] = None,
    deadline: Optional[float] = None,
) -> List[FeedCandidate]:
    """
    Rank the candidate pool for ``viewer``, best compatibility first.

    Candidates the viewer already liked, passed or has a block with are
    dropped, as are those outside the search radius or not matching the
    optional gym / goal / level filters. Equal scores keep pool order.

    ``deadline`` is a ``time.monotonic()`` value; passing it raises
    FeedTimeout instead of returning a truncated feed.
    """
    filters = filters or FeedFilters()
    _check_deadline(deadline)

    excluded = exclusion_set(viewer.id)
    origin_lat, origin_lng = _origin(viewer, filters)
    radius_km = filters.radius_km or viewer.preferred_radius or DEFAULT_RADIUS_KM
    gym_only = filters.same_gym_only and bool(viewer.gym_name)

    survivors = []
    for candidate in candidates:
        _check_deadline(deadline)
        if candidate.id in excluded or not candidate.has_location:
            continue
        if distance_km(origin_lat, origin_lng, candidate.lat, candidate.lng) > radius_km:
            continue
        if gym_only and not same_gym(viewer.gym_name, candidate.gym_name):
            continue
        if filters.goals and not (filters.goals & candidate.goals):
            continue
        if filters.level is not None and candidate.level != filters.level:
            continue
        survivors.append(candidate)

    profiles = []
    for candidate in survivors:
        _check_deadline(deadline)
        profiles.append(project(candidate, viewer))

    profiles.sort(key=lambda profile: profile.compatibility_score, reverse=True)
    return profiles


def get_feed(
    user_id: str,
    filters: Optional[FeedFilters] = None,
    timeout: Optional[float] = None,
    now: Optional[datetime] = None,
) -> Feed:
    """Load the viewer and the pool from the store and build a fresh feed."""
    viewer = database.reset_daily_likes_if_needed(user_id, now)
    if viewer is None:
        raise NotFound()

    deadline = time.monotonic() + timeout if timeout is not None else None
    pool = database.list_candidates(excluding=[viewer.id], with_coordinates=True)
    items = build_feed(viewer, pool, filters, deadline)
    logger.debug(f"Feed for {user_id}: {len(items)} of {len(pool)} candidates")

    return Feed(items=items, total=len(items), likes_remaining=viewer.likes_remaining)
