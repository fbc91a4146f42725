"""
RentCar Backend — Domain Enumerations
=======================================

What:  String enums shared by ORM models, Pydantic schemas and services.
Why:   One definition per vocabulary; the database stores the lowercase
       `.value`, the API serializes the same value, so there is no mapping layer.
"""

import enum


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    OWNER = "owner"
    ADMIN = "admin"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    VERIFIED = "verified"


# Statuses allowed to log in and act on the marketplace
LOGIN_STATUSES = frozenset({UserStatus.ACTIVE, UserStatus.VERIFIED})


class CarType(str, enum.Enum):
    SEDAN = "sedan"
    SUV = "suv"
    HATCHBACK = "hatchback"
    COUPE = "coupe"
    CONVERTIBLE = "convertible"
    WAGON = "wagon"
    PICKUP = "pickup"
    VAN = "van"
    TRUCK = "truck"
    MOTORCYCLE = "motorcycle"


class FuelType(str, enum.Enum):
    GASOLINE = "gasoline"
    DIESEL = "diesel"
    ELECTRIC = "electric"
    HYBRID = "hybrid"
    PLUGIN_HYBRID = "plugin_hybrid"
    HYDROGEN = "hydrogen"


class TransmissionType(str, enum.Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"
    CVT = "cvt"
    SEMI_AUTOMATIC = "semi_automatic"


class CarStatus(str, enum.Enum):
    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"
    RESERVED = "reserved"


# Statuses set by the owner/admin that booking must never override
UNBOOKABLE_CAR_STATUSES = frozenset({CarStatus.MAINTENANCE, CarStatus.OUT_OF_SERVICE})


class RentalStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXTENDED = "extended"
    OVERDUE = "overdue"


# A rental in one of these states occupies its car for [start_date, end_date)
BLOCKING_STATUSES = frozenset({
    RentalStatus.PENDING,
    RentalStatus.ACTIVE,
    RentalStatus.EXTENDED,
    RentalStatus.OVERDUE,
})


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    PARTIALLY_PAID = "partially_paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class ReviewType(str, enum.Enum):
    CAR_REVIEW = "car_review"
    USER_REVIEW = "user_review"
    SERVICE_REVIEW = "service_review"


class RankingType(str, enum.Enum):
    RENTAL_COUNT = "rental_count"
    TOTAL_SPENT = "total_spent"
    REVIEW_COUNT = "review_count"
    RATING_SCORE = "rating_score"
    REFERRAL_COUNT = "referral_count"
    LOYALTY_POINTS = "loyalty_points"
    EARNINGS = "earnings"


class AchievementType(str, enum.Enum):
    FIRST_RENTAL = "first_rental"
    FREQUENT_RENTER = "frequent_renter"
    HIGH_SPENDER = "high_spender"
    REVIEWER = "reviewer"
    TOP_RATED = "top_rated"
    LOYAL_CUSTOMER = "loyal_customer"
    REFERRAL_MASTER = "referral_master"
    SAFE_DRIVER = "safe_driver"
    EARLY_BIRD = "early_bird"
    WEEKEND_WARRIOR = "weekend_warrior"


class TierLevel(str, enum.Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    DIAMOND = "diamond"


class AdminRole(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MODERATOR = "moderator"
    SUPPORT = "support"


class AdminStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    PENDING = "pending"


class AdminPermission(str, enum.Enum):
    USER_MANAGEMENT = "user_management"
    CAR_MANAGEMENT = "car_management"
    RENTAL_MANAGEMENT = "rental_management"
    REVIEW_MODERATION = "review_moderation"
    PAYMENT_MANAGEMENT = "payment_management"
    SYSTEM_SETTINGS = "system_settings"
    ANALYTICS = "analytics"
    SUPPORT = "support"
    REPORTING = "reporting"
