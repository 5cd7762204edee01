# errors.py
"""Typed outcomes raised by the matching engine.

Store failures are not wrapped: ``sqlite3.Error`` reaches the caller unchanged.
"""


class MatchEngineError(Exception):
    """Base class. ``message`` is safe to show to the end user."""

    message = "Something went wrong"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class NotFound(MatchEngineError):
    message = "User not found"


class QuotaExceeded(MatchEngineError):
    message = "You have no likes left today. Upgrade to Premium for unlimited likes!"


class AlreadyLiked(MatchEngineError):
    message = "You already liked this person"


class Blocked(MatchEngineError):
    message = "You can't interact with this user"


class InvalidSwipe(MatchEngineError):
    message = "You can't swipe on yourself"


class FeedTimeout(MatchEngineError):
    message = "Building the feed took too long, please try again"
