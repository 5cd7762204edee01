# verification.py
from models import UserRecord

MIN_BIO_LENGTH = 20


def verification_score(user: UserRecord) -> int:
    """Profile completeness from 0 to 100. Shown to others, never used for matching."""
    score = 0

    if user.name:
        score += 10
    if user.bio and len(user.bio) >= MIN_BIO_LENGTH:
        score += 15
    if user.avatar_url:
        score += 15
    if user.age_range:
        score += 5
    if user.gym_name:
        score += 15
    if user.has_location:
        score += 10
    if user.goals:
        score += 10
    if user.level:
        score += 5
    if user.training_style:
        score += 5
    if user.availability:
        score += 5
    if user.interest_tags:
        score += 5

    return min(score, 100)
