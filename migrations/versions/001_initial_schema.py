"""Initial schema: companies, drivers, trips, trip requests, ratings, notifications.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


TRIP_STATUS = sa.Enum(
    "pending", "assigned", "in_progress", "completed", "cancelled", name="tripstatus"
)
REQUEST_DIRECTION = sa.Enum(
    "company_to_driver",
    "driver_to_company",
    "reassignment_approval",
    name="requestdirection",
)
REQUEST_STATUS = sa.Enum(
    "pending", "accepted", "rejected", "cancelled", name="requeststatus"
)
PARTY_ROLE = sa.Enum("company", "driver", name="partyrole")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    # ── companies ─────────────────────────────────────────────────────
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, unique=True, nullable=False),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("rating", sa.Float, default=0.0, nullable=False),
        sa.Column("rating_count", sa.Integer, default=0, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── drivers ───────────────────────────────────────────────────────
    op.create_table(
        "drivers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, unique=True, nullable=False),
        sa.Column("first_name", sa.String(120), nullable=False),
        sa.Column("last_name", sa.String(120), nullable=False),
        sa.Column("phone", sa.String(40), nullable=True),
        sa.Column("vehicle_type", sa.Integer, nullable=False),
        sa.Column("current_location", sa.String(255), nullable=True),
        sa.Column("available_from", sa.DateTime, nullable=True),
        sa.Column("available_to", sa.DateTime, nullable=True),
        sa.Column("rating", sa.Float, default=0.0, nullable=False),
        sa.Column("rating_count", sa.Integer, default=0, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_drivers_vehicle", "drivers", ["vehicle_type"])

    # ── trips ─────────────────────────────────────────────────────────
    op.create_table(
        "trips",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "company_id", sa.Integer, sa.ForeignKey("companies.id"), nullable=False
        ),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=True
        ),
        sa.Column("pickup_location", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("trip_date", sa.Date, nullable=False),
        sa.Column("departure_time", sa.Time, nullable=False),
        sa.Column("passenger_count", sa.Integer, default=1, nullable=False),
        sa.Column("vehicle_type", sa.Integer, nullable=False),
        sa.Column("company_price", sa.Float, nullable=True),
        sa.Column("driver_price", sa.Float, nullable=True),
        sa.Column("visa_number", sa.String(64), nullable=True),
        sa.Column("status", TRIP_STATUS, default="pending", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("company_id", "visa_number", name="uq_trips_company_visa"),
    )
    op.create_index("idx_trips_status", "trips", ["status"])
    op.create_index("idx_trips_driver", "trips", ["driver_id"])
    op.create_index("idx_trips_company", "trips", ["company_id"])

    # ── trip_requests ─────────────────────────────────────────────────
    op.create_table(
        "trip_requests",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "trip_id",
            sa.Integer,
            sa.ForeignKey("trips.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=False
        ),
        sa.Column("direction", REQUEST_DIRECTION, nullable=False),
        sa.Column("status", REQUEST_STATUS, default="pending", nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "idx_trip_requests_pair", "trip_requests", ["trip_id", "driver_id", "status"]
    )
    op.create_index("idx_trip_requests_driver", "trip_requests", ["driver_id"])

    # ── ratings ───────────────────────────────────────────────────────
    op.create_table(
        "ratings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "trip_id",
            sa.Integer,
            sa.ForeignKey("trips.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("rater_id", sa.Integer, nullable=False),
        sa.Column("rater_type", PARTY_ROLE, nullable=False),
        sa.Column("rated_id", sa.Integer, nullable=False),
        sa.Column("rated_type", PARTY_ROLE, nullable=False),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("trip_id", "rater_type", name="uq_ratings_trip_rater"),
    )
    op.create_index("idx_ratings_rated", "ratings", ["rated_type", "rated_id"])

    # ── notifications ─────────────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("is_read", sa.Boolean, default=False, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_notifications_user", "notifications", ["user_id", "is_read"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("ratings")
    op.drop_table("trip_requests")
    op.drop_table("trips")
    op.drop_table("drivers")
    op.drop_table("companies")
    op.execute("DROP TYPE IF EXISTS partyrole")
    op.execute("DROP TYPE IF EXISTS requeststatus")
    op.execute("DROP TYPE IF EXISTS requestdirection")
    op.execute("DROP TYPE IF EXISTS tripstatus")
