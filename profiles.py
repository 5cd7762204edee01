# profiles.py
from typing import Optional

from compatibility import compatibility_score
from geo import distance_km
from models import FeedCandidate, UserRecord


def _sorted_values(members):
    return sorted(members, key=lambda member: member.value)


def project(user: UserRecord, viewer: Optional[UserRecord] = None) -> FeedCandidate:
    """
    Public view of ``user``.

    With a viewer, the view carries the distance between the two (km, one
    decimal, only when both have a location) and their compatibility score.
    """
    distance = None
    if viewer is not None and viewer.has_location and user.has_location:
        distance = round(distance_km(viewer.lat, viewer.lng, user.lat, user.lng), 1)

    score = compatibility_score(viewer, user) if viewer is not None else 0

    return FeedCandidate(
        id=user.id,
        name=user.name,
        bio=user.bio,
        avatar_url=user.avatar_url,
        age_range=user.age_range,
        gym_name=user.gym_name,
        distance=distance,
        goals=_sorted_values(user.goals),
        level=user.level,
        training_style=user.training_style,
        availability=list(user.availability),
        interest_tags=_sorted_values(user.interest_tags),
        verification_score=user.verification_score,
        compatibility_score=score,
    )
