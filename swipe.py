# swipe.py
"""
Likes, passes and blocks, and the mutual-like -> match transition.

Per unordered pair of users the state moves
NoInteraction -> OneSidedLike -> Matched; a block ends it from any state.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, List, Optional

import database
from config import PREMIUM_LIKES_SENTINEL
from errors import Blocked, InvalidSwipe, NotFound, QuotaExceeded
from models import BlockResult, LikeResult, MatchInfo, PassResult, UserRecord, normalize_pair
from notifier import notify_new_match
from profiles import project

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str, str], None]

# pushes go out on these threads so a slow gateway never holds up a like
_notify_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="match-notify")


def _load_actor(user_id: str, now: Optional[datetime]) -> UserRecord:
    user = database.reset_daily_likes_if_needed(user_id, now)
    if user is None:
        raise NotFound()
    return user


def _load_target(from_user_id: str, to_user_id: str) -> UserRecord:
    if from_user_id == to_user_id:
        raise InvalidSwipe()
    target = database.get_user(to_user_id)
    if target is None:
        raise NotFound()
    return target


def _notify(notifier: Notifier, to_user_id: str, match_id: str, from_user_name: str) -> None:
    try:
        notifier(to_user_id, match_id, from_user_name)
    except Exception:
        # the match stands even if nobody hears about it
        logger.exception(f"Match notification to {to_user_id} failed (match {match_id})")


def like_user(
    from_user_id: str,
    to_user_id: str,
    now: Optional[datetime] = None,
    notifier: Notifier = notify_new_match,
) -> LikeResult:
    """
    Like ``to_user_id`` on behalf of ``from_user_id``.

    Raises NotFound, InvalidSwipe, Blocked, QuotaExceeded or AlreadyLiked.
    When the like is reciprocated and the pair has no match yet, the match is
    created and the other user notified in the background; only the call that
    creates the match reports ``is_match``.
    """
    from_user = _load_actor(from_user_id, now)
    target = _load_target(from_user_id, to_user_id)

    if to_user_id in database.list_blocks_either_direction(from_user_id):
        raise Blocked()
    if not from_user.is_premium and from_user.likes_remaining <= 0:
        raise QuotaExceeded()

    # quota is re-checked inside the write transaction
    remaining = database.create_like(from_user_id, to_user_id, consume_quota=not from_user.is_premium)

    match = None
    if database.find_like(to_user_id, from_user_id):
        user_a_id, user_b_id = normalize_pair(from_user_id, to_user_id)
        record, created = database.create_match_if_absent(user_a_id, user_b_id)
        if created:
            logger.info(f"New match {record.id} between {user_a_id} and {user_b_id}")
            match = MatchInfo(
                id=record.id,
                other_user=project(target, from_user),
                created_at=record.created_at,
            )
            _notify_pool.submit(_notify, notifier, to_user_id, record.id, from_user.name)

    return LikeResult(
        liked=True,
        is_match=match is not None,
        match=match,
        likes_remaining=PREMIUM_LIKES_SENTINEL if from_user.is_premium else remaining,
    )


def pass_user(from_user_id: str, to_user_id: str, now: Optional[datetime] = None) -> PassResult:
    """Pass on ``to_user_id``. Passing twice is fine."""
    _load_actor(from_user_id, now)
    _load_target(from_user_id, to_user_id)
    database.upsert_pass(from_user_id, to_user_id)
    return PassResult(passed=True)


def block_user(blocker_id: str, blocked_id: str) -> BlockResult:
    """Block a user in one direction; this also removes any match between the two."""
    if database.get_user(blocker_id) is None:
        raise NotFound()
    if blocker_id == blocked_id:
        raise InvalidSwipe("You can't block yourself")
    if database.get_user(blocked_id) is None:
        raise NotFound()
    created = database.create_block(blocker_id, blocked_id)
    if created:
        logger.info(f"{blocker_id} blocked {blocked_id}")
    return BlockResult(blocked=True, already_blocked=not created)


def list_matches(user_id: str) -> List[MatchInfo]:
    """The user's matches, newest first, each with the other user's profile."""
    viewer = database.get_user(user_id)
    if viewer is None:
        raise NotFound()

    matches = []
    for record in database.list_matches_for_user(user_id):
        other_id = record.user_b_id if record.user_a_id == user_id else record.user_a_id
        other = database.get_user(other_id)
        if other is None:
            logger.warning(f"Match {record.id} points at missing user {other_id}")
            continue
        matches.append(MatchInfo(id=record.id, other_user=project(other, viewer), created_at=record.created_at))
    return matches
