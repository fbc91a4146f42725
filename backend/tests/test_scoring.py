"""
RentCar Backend — Scoring & Pricing Unit Tests
================================================

What:  Tests for the pure rules in services/scoring.py.
Why:   Every price, late fee, score, tier and badge flows from these functions.
How:   Plain function calls; no database, no event loop.

What we test:
    ✅ Half-open overlap (back-to-back bookings do not conflict)
    ✅ Billable and late days round partial days up
    ✅ Rate tier selection (daily / weekly / monthly, with fallbacks)
    ✅ Renter, car and owner scores with their caps
    ✅ Tier thresholds and points-to-next-tier
    ✅ Achievement rules
    ✅ Rating histogram and great-circle distance
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.models.enums import AchievementType, TierLevel
from app.services import scoring

T0 = datetime(2030, 6, 3, 10, 0, tzinfo=timezone.utc)  # a Monday


class TestBookingMath:

    def test_overlapping_ranges_conflict(self):
        assert scoring.ranges_overlap(T0, T0 + timedelta(days=3), T0 + timedelta(days=2), T0 + timedelta(days=5))

    def test_back_to_back_ranges_do_not_conflict(self):
        """A booking may start at the exact instant the previous one ends."""
        end = T0 + timedelta(days=3)
        assert not scoring.ranges_overlap(T0, end, end, end + timedelta(days=2))

    def test_contained_range_conflicts(self):
        assert scoring.ranges_overlap(T0, T0 + timedelta(days=10), T0 + timedelta(days=2), T0 + timedelta(days=3))

    def test_billable_days_rounds_partial_day_up(self):
        assert scoring.billable_days(T0, T0 + timedelta(days=2, hours=1)) == 3

    def test_billable_days_exact_days(self):
        assert scoring.billable_days(T0, T0 + timedelta(days=4)) == 4

    def test_billable_days_minimum_one(self):
        assert scoring.billable_days(T0, T0 + timedelta(hours=2)) == 1

    def test_late_days_on_time_is_zero(self):
        end = T0 + timedelta(days=3)
        assert scoring.late_days(end, end) == 0
        assert scoring.late_days(end, end - timedelta(hours=5)) == 0

    def test_late_days_rounds_up(self):
        end = T0 + timedelta(days=3)
        assert scoring.late_days(end, end + timedelta(hours=1)) == 1
        assert scoring.late_days(end, end + timedelta(days=2, minutes=1)) == 3


class TestQuotePrice:

    def test_short_booking_uses_daily_rate(self):
        quote = scoring.quote_price(3, 50.0, weekly_rate=280.0, monthly_rate=1000.0)
        assert quote.rate_basis == "daily"
        assert quote.total_cost == 150.0

    def test_week_uses_weekly_rate(self):
        quote = scoring.quote_price(7, 50.0, weekly_rate=280.0)
        assert quote.rate_basis == "weekly"
        assert quote.daily_rate == 40.0
        assert quote.total_cost == 280.0

    def test_month_uses_monthly_rate(self):
        quote = scoring.quote_price(30, 50.0, weekly_rate=280.0, monthly_rate=900.0)
        assert quote.rate_basis == "monthly"
        assert quote.daily_rate == 30.0
        assert quote.total_cost == 900.0

    def test_uneven_monthly_rate_bills_full_month(self):
        quote = scoring.quote_price(30, 50.0, monthly_rate=1000.0)
        assert quote.daily_rate == 33.33
        assert quote.total_cost == 1000.0

    def test_uneven_weekly_rate_bills_whole_weeks(self):
        quote = scoring.quote_price(14, 50.0, weekly_rate=250.0)
        assert quote.daily_rate == 35.71
        assert quote.total_cost == 500.0

    def test_month_without_monthly_rate_falls_back_to_weekly(self):
        quote = scoring.quote_price(30, 50.0, weekly_rate=280.0)
        assert quote.rate_basis == "weekly"
        assert quote.total_cost == 1200.0

    def test_week_without_tier_rates_uses_daily(self):
        quote = scoring.quote_price(10, 45.5)
        assert quote.rate_basis == "daily"
        assert quote.total_cost == 455.0


class TestScores:

    def test_user_score_zero_activity(self):
        assert scoring.user_score(0, 0, 0, 0) == 0

    def test_user_score_components(self):
        # 3 rentals → 6, $500 → 5, 4.0 avg → 20, 2 reviews → 4
        assert scoring.user_score(3, 500, 4.0, 2) == 35

    def test_user_score_is_capped_at_100(self):
        assert scoring.user_score(100, 100000, 5.0, 100) == 100

    def test_car_score(self):
        # 4.5 avg → 45, 2 rentals → 6, 2 reviews → 4
        assert scoring.car_score(4.5, 2, 2) == 55

    def test_car_score_caps(self):
        assert scoring.car_score(5.0, 50, 50) == 100

    def test_owner_score(self):
        # $5000 → 5, 2 cars → 10, 4.0 avg → 24, 8 rentals → 4
        assert scoring.owner_score(5000, 2, 4.0, 8) == 43

    def test_owner_score_caps(self):
        assert scoring.owner_score(10**6, 50, 5.0, 500) == 100


class TestTiers:

    @pytest.mark.parametrize(
        "score, tier",
        [
            (0, TierLevel.BRONZE),
            (59, TierLevel.BRONZE),
            (60, TierLevel.SILVER),
            (70, TierLevel.GOLD),
            (85, TierLevel.PLATINUM),
            (90, TierLevel.DIAMOND),
            (100, TierLevel.DIAMOND),
        ],
    )
    def test_tier_for_score(self, score, tier):
        assert scoring.tier_for_score(score) == tier

    def test_ranking_points(self):
        # 2 rentals → 20, floor(4.6 * 2) = 9, 1 review → 5
        assert scoring.ranking_points(2, 4.6, 1) == 34

    def test_points_to_next_tier(self):
        assert scoring.points_to_next_tier(TierLevel.BRONZE, 100) == 150
        assert scoring.points_to_next_tier(TierLevel.GOLD, 400) == 600

    def test_points_to_next_tier_never_negative(self):
        assert scoring.points_to_next_tier(TierLevel.BRONZE, 9999) == 0

    def test_diamond_has_no_next_tier(self):
        assert scoring.next_tier(TierLevel.DIAMOND) is None
        assert scoring.points_to_next_tier(TierLevel.DIAMOND, 0) == 0


class TestAchievements:

    def test_first_rental(self):
        earned = scoring.achievements_for(scoring.RenterStats(total_rentals=1))
        assert earned == [AchievementType.FIRST_RENTAL]

    def test_first_rental_only_at_exactly_one(self):
        earned = scoring.achievements_for(scoring.RenterStats(total_rentals=2))
        assert AchievementType.FIRST_RENTAL not in earned

    def test_safe_driver_requires_no_damage(self):
        clean = scoring.RenterStats(total_rentals=5)
        damaged = scoring.RenterStats(total_rentals=5, damaged_rentals=1)
        assert AchievementType.SAFE_DRIVER in scoring.achievements_for(clean)
        assert AchievementType.SAFE_DRIVER not in scoring.achievements_for(damaged)

    def test_heavy_user_earns_many(self):
        stats = scoring.RenterStats(
            total_rentals=60,
            total_spent=5000,
            average_rating=4.8,
            review_count=6,
            loyalty_points=600,
            early_returns=3,
            weekend_rentals=4,
        )
        earned = set(scoring.achievements_for(stats))
        assert earned == {
            AchievementType.FREQUENT_RENTER,
            AchievementType.HIGH_SPENDER,
            AchievementType.REVIEWER,
            AchievementType.TOP_RATED,
            AchievementType.LOYAL_CUSTOMER,
            AchievementType.SAFE_DRIVER,
            AchievementType.EARLY_BIRD,
            AchievementType.WEEKEND_WARRIOR,
        }

    def test_weekend_start(self):
        assert not scoring.is_weekend_start(T0)  # Monday
        assert scoring.is_weekend_start(T0 + timedelta(days=4))  # Friday
        assert scoring.is_weekend_start(T0 + timedelta(days=6))  # Sunday


class TestRatingsAndDistance:

    def test_distribution_has_every_star(self):
        assert scoring.rating_distribution([5, 5, 3]) == {5: 2, 4: 0, 3: 1, 2: 0, 1: 0}

    def test_distribution_empty(self):
        assert scoring.rating_distribution([]) == {5: 0, 4: 0, 3: 0, 2: 0, 1: 0}

    def test_average(self):
        assert scoring.average([4, 5, 5]) == 4.67
        assert scoring.average([]) == 0.0

    def test_haversine_same_point(self):
        assert scoring.haversine_km(30.0, -97.0, 30.0, -97.0) == 0

    def test_haversine_known_distance(self):
        # Austin → Dallas is roughly 300 km
        distance = scoring.haversine_km(30.2672, -97.7431, 32.7767, -96.7970)
        assert 280 < distance < 310
