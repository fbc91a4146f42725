"""
RentCar Backend — Scoring & Pricing Rules
===========================================

What:  Pure functions for every number the marketplace derives: rental quotes,
       date-range overlap, ranking scores, tiers, points and achievements.
Why:   Kept free of database and HTTP concerns so the rules can be unit-tested
       in isolation and reused by several services (RentalService quotes,
       RankingService scores, ReviewService rating stats).

Score weights (each score is rounded to the nearest integer, max 100):

    renter  = min(rentals*2, 30) + min(spent/100, 25) + (avg/5)*25 + min(reviews*2, 20)
    car     = (avg/5)*50 + min(rentals*3, 30) + min(reviews*2, 20)
    owner   = min(earnings/1000, 40) + min(cars*5, 20) + (avg/5)*30 + min(rentals*0.5, 10)

Tier by score:   ≥90 diamond · ≥80 platinum · ≥70 gold · ≥60 silver · else bronze
Points:          rentals*10 + floor(avg*2) + reviews*5
Next-tier goal:  silver 250 · gold 500 · platinum 1000 · diamond 2000 (points)
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from app.models.enums import AchievementType, TierLevel

SECONDS_PER_DAY = 86400

TIER_ORDER = [
    TierLevel.BRONZE,
    TierLevel.SILVER,
    TierLevel.GOLD,
    TierLevel.PLATINUM,
    TierLevel.DIAMOND,
]

# Points a ranking needs in order to *reach* each tier
TIER_POINT_THRESHOLDS = {
    TierLevel.BRONZE: 100,
    TierLevel.SILVER: 250,
    TierLevel.GOLD: 500,
    TierLevel.PLATINUM: 1000,
    TierLevel.DIAMOND: 2000,
}

LOYALTY_POINTS_PER_RENTAL = 10


# ══════════════════════════════════════════════════════════════════════════
# Booking Math
# ══════════════════════════════════════════════════════════════════════════


def ranges_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Half-open interval overlap: touching ranges do not conflict."""
    return start_a < end_b and start_b < end_a


def billable_days(start: datetime, end: datetime) -> int:
    """Whole days between two instants; any partial day counts as a full day."""
    seconds = (end - start).total_seconds()
    return max(1, math.ceil(seconds / SECONDS_PER_DAY))


def late_days(end: datetime, returned: datetime) -> int:
    """Days (rounded up) a car came back after its scheduled end; 0 if on time."""
    seconds = (returned - end).total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / SECONDS_PER_DAY)


@dataclass(frozen=True)
class Quote:
    duration: int
    rate_basis: str
    daily_rate: float
    total_cost: float


def quote_price(
    duration: int,
    daily_rate: float,
    weekly_rate: Optional[float] = None,
    monthly_rate: Optional[float] = None,
) -> Quote:
    """
    Price a booking of `duration` days.

    Longest tier first: 30+ days use monthly_rate/30, 7+ days use
    weekly_rate/7, otherwise daily_rate. Missing tier rates fall through.
    """
    if duration >= 30 and monthly_rate:
        rate, basis = monthly_rate / 30, "monthly"
    elif duration >= 7 and weekly_rate:
        rate, basis = weekly_rate / 7, "weekly"
    else:
        rate, basis = daily_rate, "daily"
    # Total from the exact tier rate; the rounded rate is for display
    return Quote(
        duration=duration,
        rate_basis=basis,
        daily_rate=round(rate, 2),
        total_cost=round(rate * duration, 2),
    )


# ══════════════════════════════════════════════════════════════════════════
# Ranking Scores
# ══════════════════════════════════════════════════════════════════════════


def user_score(rentals: int, spent: float, avg_rating: float, reviews: int) -> int:
    score = (
        min(rentals * 2, 30)
        + min(spent / 100, 25)
        + (avg_rating / 5) * 25
        + min(reviews * 2, 20)
    )
    return round(score)


def car_score(avg_rating: float, rentals: int, reviews: int) -> int:
    score = (avg_rating / 5) * 50 + min(rentals * 3, 30) + min(reviews * 2, 20)
    return round(score)


def owner_score(earnings: float, cars: int, avg_rating: float, rentals: int) -> int:
    score = (
        min(earnings / 1000, 40)
        + min(cars * 5, 20)
        + (avg_rating / 5) * 30
        + min(rentals * 0.5, 10)
    )
    return round(score)


def tier_for_score(score: float) -> TierLevel:
    if score >= 90:
        return TierLevel.DIAMOND
    if score >= 80:
        return TierLevel.PLATINUM
    if score >= 70:
        return TierLevel.GOLD
    if score >= 60:
        return TierLevel.SILVER
    return TierLevel.BRONZE


def ranking_points(rentals: int, avg_rating: float, reviews: int) -> int:
    return rentals * 10 + math.floor(avg_rating * 2) + reviews * 5


def loyalty_points(rentals: int) -> int:
    return rentals * LOYALTY_POINTS_PER_RENTAL


def next_tier(tier: TierLevel) -> Optional[TierLevel]:
    idx = TIER_ORDER.index(tier)
    if idx + 1 >= len(TIER_ORDER):
        return None
    return TIER_ORDER[idx + 1]


def points_to_next_tier(tier: TierLevel, total_points: int) -> int:
    upcoming = next_tier(tier)
    if upcoming is None:
        return 0
    return max(0, TIER_POINT_THRESHOLDS[upcoming] - total_points)


# ══════════════════════════════════════════════════════════════════════════
# Achievements
# ══════════════════════════════════════════════════════════════════════════


@dataclass
class RenterStats:
    """Inputs for achievement checks, collected by RankingService."""
    total_rentals: int = 0
    total_spent: float = 0.0
    average_rating: float = 0.0
    review_count: int = 0
    loyalty_points: int = 0
    damaged_rentals: int = 0
    early_returns: int = 0
    weekend_rentals: int = 0


def achievements_for(stats: RenterStats) -> List[AchievementType]:
    earned: List[AchievementType] = []
    if stats.total_rentals == 1:
        earned.append(AchievementType.FIRST_RENTAL)
    if stats.total_rentals >= 10:
        earned.append(AchievementType.FREQUENT_RENTER)
    if stats.total_spent >= 1000:
        earned.append(AchievementType.HIGH_SPENDER)
    if stats.review_count >= 5:
        earned.append(AchievementType.REVIEWER)
    if stats.average_rating >= 4.5:
        earned.append(AchievementType.TOP_RATED)
    if stats.loyalty_points >= 500:
        earned.append(AchievementType.LOYAL_CUSTOMER)
    if stats.total_rentals >= 5 and stats.damaged_rentals == 0:
        earned.append(AchievementType.SAFE_DRIVER)
    if stats.early_returns >= 3:
        earned.append(AchievementType.EARLY_BIRD)
    if stats.weekend_rentals >= 3:
        earned.append(AchievementType.WEEKEND_WARRIOR)
    return earned


def is_weekend_start(start: datetime) -> bool:
    """Friday, Saturday or Sunday pickup."""
    return start.weekday() >= 4


# ══════════════════════════════════════════════════════════════════════════
# Rating Distribution
# ══════════════════════════════════════════════════════════════════════════


def rating_distribution(ratings: Iterable[int]) -> dict:
    """Histogram keyed 5 → 1, every star present even when zero."""
    distribution = {star: 0 for star in range(5, 0, -1)}
    for rating in ratings:
        if rating in distribution:
            distribution[rating] += 1
    return distribution


def average(values: Iterable[float]) -> float:
    values = list(values)
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance on a 6371 km sphere."""
    r = 6371.0
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * r * math.asin(math.sqrt(a))
