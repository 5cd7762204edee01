# database.py
import json
import logging
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple

from config import DATABASE_FILE, DAILY_LIKES, LIKE_RESET_UTC_OFFSET_HOURS
from errors import AlreadyLiked, Blocked, QuotaExceeded
from models import Match, UserRecord, normalize_pair

logger = logging.getLogger(__name__)

# Interaction tables, keyed by the name used in list_outgoing()
OUTGOING_TABLES = {"like": "likes", "pass": "passes"}

USER_COLUMNS = (
    "user_id", "name", "bio", "avatar_url", "age_range", "gym_name", "gym_address",
    "lat", "lng", "preferred_radius", "goals", "level", "training_style",
    "interest_tags", "availability", "is_premium", "likes_remaining",
    "last_like_reset", "verification_score",
)


def get_conn():
    conn = sqlite3.connect(DATABASE_FILE, check_same_thread=False, timeout=10.0)
    conn.row_factory = sqlite3.Row
    return conn


def init_db():
    """Create the tables if they don't exist. Call this once at app startup."""
    conn = get_conn()
    c = conn.cursor()
    c.executescript("""
        CREATE TABLE IF NOT EXISTS users (
            user_id TEXT PRIMARY KEY,
            name TEXT,
            bio TEXT,
            avatar_url TEXT,
            age_range TEXT,
            gym_name TEXT,
            gym_address TEXT,
            lat REAL,
            lng REAL,
            preferred_radius REAL,
            goals TEXT NOT NULL DEFAULT '[]',
            level TEXT,
            training_style TEXT,
            interest_tags TEXT NOT NULL DEFAULT '[]',
            availability TEXT NOT NULL DEFAULT '[]',
            is_premium INTEGER NOT NULL DEFAULT 0,
            likes_remaining INTEGER NOT NULL DEFAULT 10 CHECK (likes_remaining >= 0),
            last_like_reset TEXT,
            verification_score INTEGER NOT NULL DEFAULT 0
        );
        CREATE TABLE IF NOT EXISTS likes (
            from_user_id TEXT NOT NULL,
            to_user_id TEXT NOT NULL,
            created_at TEXT NOT NULL,
            PRIMARY KEY (from_user_id, to_user_id)
        );
        CREATE TABLE IF NOT EXISTS passes (
            from_user_id TEXT NOT NULL,
            to_user_id TEXT NOT NULL,
            created_at TEXT NOT NULL,
            PRIMARY KEY (from_user_id, to_user_id)
        );
        CREATE TABLE IF NOT EXISTS blocks (
            blocker_id TEXT NOT NULL,
            blocked_id TEXT NOT NULL,
            created_at TEXT NOT NULL,
            PRIMARY KEY (blocker_id, blocked_id)
        );
        CREATE TABLE IF NOT EXISTS matches (
            match_id TEXT PRIMARY KEY,
            user_a_id TEXT NOT NULL,
            user_b_id TEXT NOT NULL,
            created_at TEXT NOT NULL,
            UNIQUE (user_a_id, user_b_id),
            CHECK (user_a_id < user_b_id)
        );
    """)
    conn.commit()
    conn.close()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _enum_values(members) -> str:
    return json.dumps(sorted(member.value for member in members))


def _row_to_user(row: sqlite3.Row) -> UserRecord:
    """Parse the JSON collection columns; validation happens here and nowhere else."""
    return UserRecord(
        id=row["user_id"],
        name=row["name"],
        bio=row["bio"],
        avatar_url=row["avatar_url"],
        age_range=row["age_range"],
        gym_name=row["gym_name"],
        gym_address=row["gym_address"],
        lat=row["lat"],
        lng=row["lng"],
        preferred_radius=row["preferred_radius"],
        goals=json.loads(row["goals"] or "[]"),
        level=row["level"],
        training_style=row["training_style"],
        interest_tags=json.loads(row["interest_tags"] or "[]"),
        availability=json.loads(row["availability"] or "[]"),
        is_premium=bool(row["is_premium"]),
        likes_remaining=row["likes_remaining"],
        last_like_reset=row["last_like_reset"],
        verification_score=row["verification_score"],
    )


def _row_to_match(row: sqlite3.Row) -> Match:
    return Match(
        id=row["match_id"],
        user_a_id=row["user_a_id"],
        user_b_id=row["user_b_id"],
        created_at=row["created_at"],
    )


def add_or_update_user(user: UserRecord) -> None:
    """Insert a new user or overwrite an existing one with every field of ``user``."""
    availability = json.dumps([
        {"day": entry.day.value, "time_slots": sorted(slot.value for slot in entry.time_slots)}
        for entry in user.availability
    ])
    values = (
        user.id, user.name, user.bio, user.avatar_url, user.age_range, user.gym_name,
        user.gym_address, user.lat, user.lng, user.preferred_radius,
        _enum_values(user.goals),
        user.level.value if user.level else None,
        user.training_style.value if user.training_style else None,
        _enum_values(user.interest_tags),
        availability,
        int(user.is_premium),
        user.likes_remaining,
        user.last_like_reset.isoformat() if user.last_like_reset else None,
        user.verification_score,
    )
    updates = ",\n            ".join(f"{col}=excluded.{col}" for col in USER_COLUMNS[1:])
    conn = get_conn()
    c = conn.cursor()
    # Upsert style
    c.execute(f"""
        INSERT INTO users ({", ".join(USER_COLUMNS)})
        VALUES ({", ".join("?" for _ in USER_COLUMNS)})
        ON CONFLICT(user_id) DO UPDATE SET
            {updates}
    """, values)
    conn.commit()
    conn.close()


def get_user(user_id: str) -> Optional[UserRecord]:
    conn = get_conn()
    c = conn.cursor()
    c.execute("SELECT * FROM users WHERE user_id = ?", (user_id,))
    row = c.fetchone()
    conn.close()
    return _row_to_user(row) if row else None


def delete_user(user_id: str) -> None:
    conn = get_conn()
    c = conn.cursor()
    c.execute("DELETE FROM likes WHERE from_user_id = ? OR to_user_id = ?", (user_id, user_id))
    c.execute("DELETE FROM passes WHERE from_user_id = ? OR to_user_id = ?", (user_id, user_id))
    c.execute("DELETE FROM blocks WHERE blocker_id = ? OR blocked_id = ?", (user_id, user_id))
    c.execute("DELETE FROM matches WHERE user_a_id = ? OR user_b_id = ?", (user_id, user_id))
    c.execute("DELETE FROM users WHERE user_id = ?", (user_id,))
    conn.commit()
    conn.close()


def list_candidates(excluding: Iterable[str] = (), with_coordinates: bool = True) -> List[UserRecord]:
    """All users except ``excluding``, in insertion order."""
    excluded = set(excluding)
    query = "SELECT * FROM users"
    if with_coordinates:
        query += " WHERE lat IS NOT NULL AND lng IS NOT NULL"
    query += " ORDER BY rowid"
    conn = get_conn()
    c = conn.cursor()
    c.execute(query)
    rows = c.fetchall()
    conn.close()
    return [_row_to_user(row) for row in rows if row["user_id"] not in excluded]


def update_likes_remaining(user_id: str, new_value: int) -> None:
    conn = get_conn()
    c = conn.cursor()
    c.execute("UPDATE users SET likes_remaining = ? WHERE user_id = ?", (max(new_value, 0), user_id))
    conn.commit()
    conn.close()


def _reset_day(moment: datetime):
    offset = timezone(timedelta(hours=LIKE_RESET_UTC_OFFSET_HOURS))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(offset).date()


def reset_daily_likes_if_needed(user_id: str, now: Optional[datetime] = None) -> Optional[UserRecord]:
    """
    Refill a non-premium user's likes on the first touch of a new calendar day.

    Returns the (possibly refreshed) user, or None when the user doesn't exist.
    """
    now = now or datetime.now(timezone.utc)
    conn = get_conn()
    try:
        conn.execute("BEGIN IMMEDIATE")
        row = conn.execute(
            "SELECT is_premium, last_like_reset FROM users WHERE user_id = ?", (user_id,)
        ).fetchone()
        if row is None:
            conn.rollback()
            return None
        last_reset = row["last_like_reset"]
        if not row["is_premium"] and (
            last_reset is None or _reset_day(datetime.fromisoformat(last_reset)) != _reset_day(now)
        ):
            conn.execute(
                "UPDATE users SET likes_remaining = ?, last_like_reset = ? WHERE user_id = ?",
                (DAILY_LIKES, now.isoformat(), user_id),
            )
            logger.info(f"Daily likes reset for {user_id}")
        conn.commit()
        user = _row_to_user(conn.execute("SELECT * FROM users WHERE user_id = ?", (user_id,)).fetchone())
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
    return user


def _is_blocked(conn, user_id: str, other_id: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM blocks "
        "WHERE (blocker_id = ? AND blocked_id = ?) OR (blocker_id = ? AND blocked_id = ?)",
        (user_id, other_id, other_id, user_id),
    ).fetchone()
    return row is not None


def create_like(from_user_id: str, to_user_id: str, consume_quota: bool = False) -> Optional[int]:
    """
    Record a like and, for quota-bound users, spend one like, atomically.

    Returns the likes left afterwards when ``consume_quota`` is set, else None.
    Raises Blocked, AlreadyLiked or QuotaExceeded without writing anything.
    """
    conn = get_conn()
    try:
        conn.execute("BEGIN IMMEDIATE")
        remaining = None
        if _is_blocked(conn, from_user_id, to_user_id):
            raise Blocked()
        if consume_quota:
            c = conn.execute(
                "UPDATE users SET likes_remaining = likes_remaining - 1 "
                "WHERE user_id = ? AND likes_remaining > 0",
                (from_user_id,),
            )
            if c.rowcount == 0:
                raise QuotaExceeded()
            remaining = conn.execute(
                "SELECT likes_remaining FROM users WHERE user_id = ?", (from_user_id,)
            ).fetchone()["likes_remaining"]
        try:
            conn.execute(
                "INSERT INTO likes (from_user_id, to_user_id, created_at) VALUES (?, ?, ?)",
                (from_user_id, to_user_id, _now()),
            )
        except sqlite3.IntegrityError:
            raise AlreadyLiked()
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
    return remaining


def find_like(from_user_id: str, to_user_id: str) -> bool:
    conn = get_conn()
    c = conn.cursor()
    c.execute(
        "SELECT 1 FROM likes WHERE from_user_id = ? AND to_user_id = ?", (from_user_id, to_user_id)
    )
    row = c.fetchone()
    conn.close()
    return row is not None


def list_outgoing(user_id: str, kind: str) -> List[str]:
    """Ids this user has liked (``kind="like"``) or passed (``kind="pass"``)."""
    table = OUTGOING_TABLES[kind]
    conn = get_conn()
    c = conn.cursor()
    c.execute(f"SELECT to_user_id FROM {table} WHERE from_user_id = ?", (user_id,))
    rows = c.fetchall()
    conn.close()
    return [row["to_user_id"] for row in rows]


def upsert_pass(from_user_id: str, to_user_id: str) -> None:
    conn = get_conn()
    c = conn.cursor()
    c.execute("""
        INSERT INTO passes (from_user_id, to_user_id, created_at)
        VALUES (?, ?, ?)
        ON CONFLICT(from_user_id, to_user_id) DO UPDATE SET
            created_at=excluded.created_at
    """, (from_user_id, to_user_id, _now()))
    conn.commit()
    conn.close()


def create_block(blocker_id: str, blocked_id: str) -> bool:
    """
    Block ``blocked_id`` and drop any match between the two, in one transaction.

    Returns False when the block already existed.
    """
    user_a_id, user_b_id = normalize_pair(blocker_id, blocked_id)
    conn = get_conn()
    try:
        conn.execute("BEGIN IMMEDIATE")
        c = conn.execute(
            "INSERT OR IGNORE INTO blocks (blocker_id, blocked_id, created_at) VALUES (?, ?, ?)",
            (blocker_id, blocked_id, _now()),
        )
        created = c.rowcount == 1
        conn.execute(
            "DELETE FROM matches WHERE user_a_id = ? AND user_b_id = ?", (user_a_id, user_b_id)
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
    return created


def list_blocks_either_direction(user_id: str) -> List[str]:
    """Users this one blocked plus users who blocked this one."""
    conn = get_conn()
    c = conn.cursor()
    c.execute("""
        SELECT blocked_id AS other_id FROM blocks WHERE blocker_id = ?
        UNION
        SELECT blocker_id AS other_id FROM blocks WHERE blocked_id = ?
    """, (user_id, user_id))
    rows = c.fetchall()
    conn.close()
    return [row["other_id"] for row in rows]


def find_match(user_a_id: str, user_b_id: str) -> Optional[Match]:
    user_a_id, user_b_id = normalize_pair(user_a_id, user_b_id)
    conn = get_conn()
    c = conn.cursor()
    c.execute(
        "SELECT * FROM matches WHERE user_a_id = ? AND user_b_id = ?", (user_a_id, user_b_id)
    )
    row = c.fetchone()
    conn.close()
    return _row_to_match(row) if row else None


def create_match_if_absent(user_a_id: str, user_b_id: str) -> Tuple[Optional[Match], bool]:
    """
    Return the pair's match, creating it if needed, and whether this call created it.

    A blocked pair never gets a match: the result is then ``(None, False)``.

    The unique index on the normalized pair makes concurrent callers converge
    on a single row: the losing insert is ignored and reads the winner's match.
    """
    user_a_id, user_b_id = normalize_pair(user_a_id, user_b_id)
    conn = get_conn()
    try:
        conn.execute("BEGIN IMMEDIATE")
        c = conn.execute(
            "INSERT OR IGNORE INTO matches (match_id, user_a_id, user_b_id, created_at) "
            "SELECT ?, ?, ?, ? WHERE NOT EXISTS ("
            "SELECT 1 FROM blocks "
            "WHERE (blocker_id = ? AND blocked_id = ?) OR (blocker_id = ? AND blocked_id = ?))",
            (str(uuid.uuid4()), user_a_id, user_b_id, _now(), user_a_id, user_b_id, user_b_id, user_a_id),
        )
        created = c.rowcount == 1
        row = conn.execute(
            "SELECT * FROM matches WHERE user_a_id = ? AND user_b_id = ?", (user_a_id, user_b_id)
        ).fetchone()
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
    return (_row_to_match(row) if row else None), created


def list_matches_for_user(user_id: str) -> List[Match]:
    """Newest first."""
    conn = get_conn()
    c = conn.cursor()
    c.execute("""
        SELECT * FROM matches
        WHERE user_a_id = ? OR user_b_id = ?
        ORDER BY created_at DESC, rowid DESC
    """, (user_id, user_id))
    rows = c.fetchall()
    conn.close()
    return [_row_to_match(row) for row in rows]
