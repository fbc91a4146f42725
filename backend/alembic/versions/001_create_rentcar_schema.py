"""Create rentcar schema

Revision ID: 001
Revises: None
Create Date: 2025-01-06 00:00:00.000000+00:00

What:  Creates the six marketplace tables: users, cars, rental_history,
       reviews, rankings and admins, with their enum types and indexes.
How:   PostgreSQL types throughout: UUID keys, TIMESTAMPTZ, JSONB, NUMERIC(12,2).
       Enum types store lowercase values, matching app/models/types.enum_column.

Rollback: downgrade() drops every table and enum type (destructive).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# ── Enum types ────────────────────────────────────────────────────────────
ENUMS = {
    "user_role": ("customer", "owner", "admin"),
    "user_status": ("active", "inactive", "suspended", "verified"),
    "car_type": (
        "sedan", "suv", "hatchback", "coupe", "convertible",
        "wagon", "pickup", "van", "truck", "motorcycle",
    ),
    "fuel_type": ("gasoline", "diesel", "electric", "hybrid", "plugin_hybrid", "hydrogen"),
    "transmission_type": ("manual", "automatic", "cvt", "semi_automatic"),
    "car_status": ("available", "rented", "maintenance", "out_of_service", "reserved"),
    "rental_status": ("pending", "active", "completed", "cancelled", "extended", "overdue"),
    "payment_status": ("pending", "paid", "partially_paid", "failed", "refunded"),
    "review_type": ("car_review", "user_review", "service_review"),
    "ranking_type": (
        "rental_count", "total_spent", "review_count", "rating_score",
        "referral_count", "loyalty_points", "earnings",
    ),
    "tier_level": ("bronze", "silver", "gold", "platinum", "diamond"),
    "admin_role": ("super_admin", "admin", "moderator", "support"),
    "admin_status": ("active", "inactive", "suspended", "pending"),
}


def enum(name: str) -> sa.Enum:
    return sa.Enum(*ENUMS[name], name=name)


def uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        primary_key=True,
    )


def fk(name: str, target: str, ondelete: str = "CASCADE", nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def ts(name: str, nullable: bool = True) -> sa.Column:
    kwargs = {} if nullable else {"server_default": sa.text("now()")}
    return sa.Column(name, sa.TIMESTAMP(timezone=True), nullable=nullable, **kwargs)


def money(name: str, nullable: bool = False, default: bool = True) -> sa.Column:
    kwargs = {"server_default": sa.text("0")} if default and not nullable else {}
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable, **kwargs)


def counter(name: str, default: int = 0) -> sa.Column:
    return sa.Column(name, sa.Integer(), nullable=False, server_default=sa.text(str(default)))


def flag(name: str, default: bool = False) -> sa.Column:
    return sa.Column(
        name, sa.Boolean(), nullable=False, server_default=sa.text("true" if default else "false")
    )


def json(name: str) -> sa.Column:
    return sa.Column(name, postgresql.JSONB(), nullable=True)


def timestamps() -> list:
    return [ts("created_at", nullable=False), ts("updated_at", nullable=False)]


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        uuid_pk(),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("phone_number", sa.String(20), nullable=False, unique=True),
        sa.Column("password", sa.String(255), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("postal_code", sa.String(20), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("role", enum("user_role"), nullable=False, server_default="customer"),
        sa.Column("status", enum("user_status"), nullable=False, server_default="active"),
        sa.Column("profile_picture", sa.String(500), nullable=True),
        sa.Column("driver_license_number", sa.String(50), nullable=True),
        sa.Column("driver_license_expiry", sa.Date(), nullable=True),
        sa.Column("business_name", sa.String(200), nullable=True),
        sa.Column("business_license", sa.String(100), nullable=True),
        sa.Column("insurance_provider", sa.String(100), nullable=True),
        sa.Column("insurance_policy_number", sa.String(100), nullable=True),
        sa.Column("emergency_contact_name", sa.String(200), nullable=True),
        sa.Column("emergency_contact_phone", sa.String(20), nullable=True),
        sa.Column("emergency_contact_relationship", sa.String(50), nullable=True),
        json("preferences"),
        sa.Column("preferred_language", sa.String(10), nullable=False, server_default="en"),
        sa.Column("timezone", sa.String(50), nullable=False, server_default="UTC"),
        flag("email_verified"),
        flag("phone_verified"),
        sa.Column("preferred_payment_method", sa.String(50), nullable=True),
        json("notification_preferences"),
        flag("marketing_consent"),
        ts("terms_accepted_at"),
        ts("privacy_accepted_at"),
        sa.Column("bio", sa.Text(), nullable=True),
        money("rating"),
        counter("review_count"),
        counter("total_rentals"),
        money("total_spent"),
        *timestamps(),
    )
    op.create_index("idx_users_role", "users", ["role"])
    op.create_index("idx_users_status", "users", ["status"])

    # ── cars ──────────────────────────────────────────────────────────────
    op.create_table(
        "cars",
        uuid_pk(),
        sa.Column("brand", sa.String(50), nullable=False),
        sa.Column("model", sa.String(50), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("type", enum("car_type"), nullable=False),
        sa.Column("fuel_type", enum("fuel_type"), nullable=False),
        sa.Column("transmission", enum("transmission_type"), nullable=False),
        sa.Column("color", sa.String(30), nullable=True),
        sa.Column("engine_size", sa.Float(), nullable=True),
        sa.Column("horsepower", sa.Integer(), nullable=True),
        counter("mileage"),
        counter("seats", 5),
        counter("doors", 4),
        sa.Column("description", sa.Text(), nullable=True),
        money("daily_rate", default=False),
        money("weekly_rate", nullable=True),
        money("monthly_rate", nullable=True),
        money("deposit"),
        sa.Column("status", enum("car_status"), nullable=False, server_default="available"),
        flag("is_available", True),
        json("features"),
        json("images"),
        sa.Column("license_plate", sa.String(20), nullable=True),
        sa.Column("vin", sa.String(17), nullable=True),
        sa.Column("insurance", sa.String(100), nullable=True),
        sa.Column("insurance_expiry", sa.Date(), nullable=True),
        sa.Column("registration_expiry", sa.Date(), nullable=True),
        money("rating"),
        counter("review_count"),
        counter("total_rentals"),
        money("total_earnings"),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        fk("owner_id", "users.id"),
        *timestamps(),
    )
    op.create_index("idx_cars_owner", "cars", ["owner_id"])
    op.create_index("idx_cars_status", "cars", ["status"])
    op.create_index("idx_cars_type", "cars", ["type"])
    op.create_index("idx_cars_daily_rate", "cars", ["daily_rate"])

    # ── rental_history ────────────────────────────────────────────────────
    op.create_table(
        "rental_history",
        uuid_pk(),
        ts("start_date", nullable=False),
        ts("end_date", nullable=False),
        ts("actual_return_date"),
        sa.Column("duration", sa.Integer(), nullable=False),
        money("daily_rate", default=False),
        money("total_cost", default=False),
        money("amount_paid"),
        money("deposit"),
        flag("deposit_returned"),
        money("late_fees"),
        money("damage_fees"),
        money("fuel_fees"),
        money("cleaning_fees"),
        sa.Column("status", enum("rental_status"), nullable=False, server_default="pending"),
        sa.Column("payment_status", enum("payment_status"), nullable=False, server_default="pending"),
        sa.Column("pickup_location", sa.String(255), nullable=True),
        sa.Column("return_location", sa.String(255), nullable=True),
        sa.Column("pickup_latitude", sa.Float(), nullable=True),
        sa.Column("pickup_longitude", sa.Float(), nullable=True),
        sa.Column("return_latitude", sa.Float(), nullable=True),
        sa.Column("return_longitude", sa.Float(), nullable=True),
        sa.Column("initial_mileage", sa.Integer(), nullable=True),
        sa.Column("final_mileage", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("damage_description", sa.Text(), nullable=True),
        json("damage_photos"),
        sa.Column("insurance_claim", sa.String(100), nullable=True),
        flag("is_extended"),
        counter("extension_days"),
        money("extension_cost"),
        fk("user_id", "users.id"),
        fk("car_id", "cars.id"),
        *timestamps(),
    )
    op.create_index("idx_rentals_car_dates", "rental_history", ["car_id", "start_date", "end_date"])
    op.create_index("idx_rentals_user", "rental_history", ["user_id"])
    op.create_index("idx_rentals_status", "rental_history", ["status"])

    # ── reviews ───────────────────────────────────────────────────────────
    op.create_table(
        "reviews",
        uuid_pk(),
        sa.Column("type", enum("review_type"), nullable=False, server_default="car_review"),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(100), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        json("photos"),
        flag("is_verified"),
        counter("helpful_count"),
        counter("report_count"),
        flag("is_reported"),
        sa.Column("report_reason", sa.Text(), nullable=True),
        sa.Column("admin_response", sa.Text(), nullable=True),
        flag("is_edited"),
        ts("edited_at"),
        sa.Column("edit_reason", sa.Text(), nullable=True),
        json("rating_breakdown"),
        json("pros"),
        json("cons"),
        sa.Column("recommendation", sa.Text(), nullable=True),
        flag("is_public", True),
        flag("is_anonymous"),
        fk("user_id", "users.id"),
        fk("car_id", "cars.id"),
        fk("rental_id", "rental_history.id", ondelete="SET NULL", nullable=True),
        *timestamps(),
        sa.UniqueConstraint("user_id", "car_id", name="uq_reviews_user_car"),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )
    op.create_index("idx_reviews_car", "reviews", ["car_id"])

    # ── rankings ──────────────────────────────────────────────────────────
    op.create_table(
        "rankings",
        uuid_pk(),
        sa.Column("type", enum("ranking_type"), nullable=False),
        money("score"),
        sa.Column("rank", sa.Integer(), nullable=True),
        sa.Column("previous_rank", sa.Integer(), nullable=True),
        counter("rank_change"),
        sa.Column("tier", enum("tier_level"), nullable=False, server_default="bronze"),
        counter("points"),
        counter("total_points"),
        counter("points_to_next_tier"),
        json("achievements"),
        json("badges"),
        json("statistics"),
        sa.Column("special_title", sa.String(100), nullable=True),
        flag("is_featured"),
        ts("last_activity"),
        counter("streak_days"),
        ts("streak_start_date"),
        ts("last_streak_date"),
        json("monthly_goals"),
        flag("monthly_goal_completed"),
        counter("monthly_goal_progress"),
        sa.Column("motivation_message", sa.Text(), nullable=True),
        flag("is_active", True),
        fk("user_id", "users.id"),
        *timestamps(),
        sa.UniqueConstraint("user_id", "type", name="uq_rankings_user_type"),
    )
    op.create_index("idx_rankings_type_score", "rankings", ["type", "score"])

    # ── admins ────────────────────────────────────────────────────────────
    op.create_table(
        "admins",
        uuid_pk(),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("phone_number", sa.String(20), nullable=True, unique=True),
        sa.Column("password", sa.String(255), nullable=False),
        sa.Column("role", enum("admin_role"), nullable=False, server_default="admin"),
        sa.Column("status", enum("admin_status"), nullable=False, server_default="active"),
        json("permissions"),
        sa.Column("employee_id", sa.String(50), nullable=True),
        sa.Column("hire_date", sa.Date(), nullable=True),
        sa.Column("department", sa.String(100), nullable=True),
        sa.Column("supervisor", sa.String(100), nullable=True),
        json("assigned_regions"),
        counter("total_actions"),
        counter("successful_actions"),
        counter("failed_actions"),
        ts("last_login"),
        sa.Column("last_login_ip", sa.String(45), nullable=True),
        sa.Column("last_login_location", sa.String(255), nullable=True),
        flag("is_online"),
        counter("failed_login_attempts"),
        ts("account_locked_until"),
        flag("two_factor_enabled"),
        flag("requires_password_change"),
        ts("password_changed_at"),
        sa.Column("notes", sa.Text(), nullable=True),
        *timestamps(),
    )
    op.create_index("idx_admins_role", "admins", ["role"])


def downgrade() -> None:
    for table in ("admins", "rankings", "reviews", "rental_history", "cars", "users"):
        op.drop_table(table)
    bind = op.get_bind()
    for name in ENUMS:
        sa.Enum(name=name).drop(bind, checkfirst=True)
