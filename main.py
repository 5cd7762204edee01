import logging
import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

import database
import swipe
from config import AUTH_TOKEN, FEED_TIMEOUT_SECONDS
from errors import (
    AlreadyLiked,
    Blocked,
    FeedTimeout,
    InvalidSwipe,
    MatchEngineError,
    NotFound,
    QuotaExceeded,
)
from feed import get_feed
from models import (
    Availability,
    BlockResult,
    Feed,
    FeedCandidate,
    FeedFilters,
    Goal,
    InterestTag,
    Level,
    LikeResult,
    MatchInfo,
    PassResult,
    TrainingStyle,
    UserRecord,
)
from profiles import project
from verification import verification_score

logger = logging.getLogger(__name__)

if AUTH_TOKEN == "changeme":
    logger.warning("AUTH_TOKEN is still 'changeme'. Please set a secure token in your .env")

GENERIC_ERROR = "Something went wrong"

# Status codes for the typed engine errors
ERROR_STATUS = {
    NotFound: 404,
    QuotaExceeded: 403,
    Blocked: 403,
    AlreadyLiked: 400,
    InvalidSwipe: 400,
    FeedTimeout: 504,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    database.init_db()
    yield


app = FastAPI(title="SpotMatch Server", lifespan=lifespan)


# ----------------------
# Pydantic models
# ----------------------
class ProfilePayload(BaseModel):
    user_id: str
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    bio: Optional[str] = Field(None, max_length=500)
    avatar_url: Optional[str] = None
    age_range: Optional[str] = None
    gym_name: Optional[str] = Field(None, max_length=100)
    gym_address: Optional[str] = Field(None, max_length=200)
    lat: Optional[float] = None
    lng: Optional[float] = None
    preferred_radius: Optional[float] = None
    goals: List[Goal] = []
    level: Optional[Level] = None
    training_style: Optional[TrainingStyle] = None
    availability: List[Availability] = []
    interest_tags: List[InterestTag] = []


class SwipePayload(BaseModel):
    user_id: str
    to_user_id: str


class BlockPayload(BaseModel):
    user_id: str
    blocked_user_id: str


# ----------------------
# Middleware to check Bearer token for every request
# ----------------------
@app.middleware("http")
async def check_auth_middleware(request: Request, call_next):
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return JSONResponse(status_code=401, content={"detail": "Missing or invalid Authorization header"})
    token = auth_header.split("Bearer ")[1]
    if token != AUTH_TOKEN:
        return JSONResponse(status_code=403, content={"detail": "Invalid token"})
    return await call_next(request)


# ----------------------
# Error mapping
# ----------------------
@app.exception_handler(MatchEngineError)
async def engine_error_handler(request: Request, exc: MatchEngineError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    if isinstance(exc, NotFound):
        # unknown ids are not disclosed to the client
        logger.info(f"{request.url.path}: {exc}")
        return JSONResponse(status_code=status_code, content={"detail": GENERIC_ERROR})
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


@app.exception_handler(sqlite3.Error)
async def store_error_handler(request: Request, exc: sqlite3.Error):
    logger.error(f"Store failure on {request.url.path}: {exc!r}")
    return JSONResponse(status_code=500, content={"detail": GENERIC_ERROR})


# ----------------------
# Endpoints
# ----------------------
@app.get("/")
def root():
    return {"status": "ok", "service": "SpotMatch server"}


@app.put("/users", response_model=UserRecord)
def upsert_profile(payload: ProfilePayload):
    existing = database.get_user(payload.user_id)
    # only the fields the client sent; the rest of an existing profile is kept
    fields = payload.model_dump(exclude={"user_id"}, exclude_unset=True)
    try:
        if existing is None:
            user = UserRecord(id=payload.user_id, last_like_reset=datetime.now(timezone.utc), **fields)
        else:
            user = UserRecord.model_validate({**existing.model_dump(), **fields})
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    user = user.model_copy(update={"verification_score": verification_score(user)})
    database.add_or_update_user(user)
    return user


@app.get("/users/{user_id}", response_model=FeedCandidate)
def get_profile(user_id: str, viewer_id: Optional[str] = None):
    user = database.get_user(user_id)
    if user is None:
        raise NotFound()
    viewer = database.get_user(viewer_id) if viewer_id else None
    return project(user, viewer)


@app.get("/feed", response_model=Feed)
def feed(
    user_id: str,
    radius_km: Optional[float] = None,
    goals: Optional[str] = None,
    level: Optional[Level] = None,
    same_gym_only: bool = False,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
):
    try:
        filters = FeedFilters(
            radius_km=radius_km,
            goals=[g.strip() for g in goals.split(",") if g.strip()] if goals else None,
            level=level,
            same_gym_only=same_gym_only,
            lat=lat,
            lng=lng,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return get_feed(user_id, filters, timeout=FEED_TIMEOUT_SECONDS)


@app.post("/swipe/like", response_model=LikeResult)
def like(payload: SwipePayload):
    return swipe.like_user(payload.user_id, payload.to_user_id)


@app.post("/swipe/pass", response_model=PassResult)
def pass_(payload: SwipePayload):
    return swipe.pass_user(payload.user_id, payload.to_user_id)


@app.post("/users/block", response_model=BlockResult)
def block(payload: BlockPayload):
    return swipe.block_user(payload.user_id, payload.blocked_user_id)


@app.get("/matches", response_model=List[MatchInfo])
def matches(user_id: str):
    return swipe.list_matches(user_id)


if __name__ == "__main__":
    import uvicorn

    from config import API_HOST, API_PORT

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host=API_HOST, port=API_PORT)
