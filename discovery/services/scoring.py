"""Ranking scores for top-picks and on-the-rise.

Both scores are weighted blends of per-record signals and depend only on one
record and the query time, so records can be scored independently.
"""

from datetime import datetime
from typing import List, Optional

from discovery.models.business import BusinessRecord
from discovery.services.filters import FilterClause, MinimumClause

# Top-pick eligibility
TOP_PICK_MIN_RATING = 4.0
TOP_PICK_MIN_VIEWS = 10

# Top-pick weights and saturation points
TOP_PICK_RATING_WEIGHT = 0.4
TOP_PICK_VIEWS_WEIGHT = 0.3
TOP_PICK_FAVORITES_WEIGHT = 0.2
TOP_PICK_COMPLETION_WEIGHT = 0.1
TOP_PICK_VIEWS_CAP = 1000
TOP_PICK_FAVORITES_CAP = 100

# Rise weights and windows
RISE_RECENCY_WEIGHT = 0.5
RISE_GROWTH_WEIGHT = 0.5
RISE_RECENCY_WINDOW_DAYS = 30
RISE_VIEWS_CAP = 100
NEW_BUSINESS_BONUS = 0.3
NEW_BUSINESS_WINDOW_DAYS = 30


def top_pick_gate() -> List[FilterClause]:
    """Store-side clauses for top-pick eligibility."""
    return [
        MinimumClause("metrics.ratingAverage", TOP_PICK_MIN_RATING),
        MinimumClause("metrics.viewCount", TOP_PICK_MIN_VIEWS),
    ]


def top_pick_score(business: BusinessRecord) -> float:
    """
    Blend of quality and popularity in [0, 1].

    rating/5 weighted 0.4, views (capped at 1000) 0.3, favorites (capped at
    100) 0.2, profile completion 0.1.
    """
    metrics = business.metrics

    rating_score = (metrics.ratingAverage or 0) / 5
    view_score = min((metrics.viewCount or 0) / TOP_PICK_VIEWS_CAP, 1)
    favorite_score = min((metrics.favoriteCount or 0) / TOP_PICK_FAVORITES_CAP, 1)
    completion_score = (business.completionPercentage or 0) / 100

    return (
        rating_score * TOP_PICK_RATING_WEIGHT
        + view_score * TOP_PICK_VIEWS_WEIGHT
        + favorite_score * TOP_PICK_FAVORITES_WEIGHT
        + completion_score * TOP_PICK_COMPLETION_WEIGHT
    )


def days_since(stamp: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole days elapsed from stamp to now, or None if stamp is missing."""
    if stamp is None:
        return None
    return (now - stamp).days


def rise_score(business: BusinessRecord, now: datetime) -> float:
    """
    Blend of update recency and view growth, plus a new-business bonus.

    The bonus is added on top of the weighted blend, so the result can exceed
    1.0 (at most 1.3).
    """
    days_since_updated = days_since(business.updatedAt, now)
    days_since_created = days_since(business.createdAt, now)

    if days_since_updated is None:
        recency_score = 0.0
    else:
        recency_score = max(0.0, 1 - days_since_updated / RISE_RECENCY_WINDOW_DAYS)
    view_growth_score = min((business.metrics.viewCount or 0) / RISE_VIEWS_CAP, 1)

    is_new = days_since_created is not None and days_since_created <= NEW_BUSINESS_WINDOW_DAYS
    new_business_bonus = NEW_BUSINESS_BONUS if is_new else 0

    return (
        recency_score * RISE_RECENCY_WEIGHT
        + view_growth_score * RISE_GROWTH_WEIGHT
        + new_business_bonus
    )


def is_new_business(business: BusinessRecord, since: datetime) -> bool:
    """Created on or after the start of the lookback window."""
    return business.createdAt is not None and business.createdAt >= since
