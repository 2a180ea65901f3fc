"""Create drones, routes and flight_points tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Initial schema. drones ← routes (SET NULL) ← flight_points (CASCADE).
How:   PostgreSQL UUID primary keys with gen_random_uuid(), TIMESTAMP WITH
       TIME ZONE, telemetry kept as strings exactly as the device wrote them.

Rollback: downgrade() drops all three tables (destructive).
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

TELEMETRY_COLUMNS = (
    "aex", "speed", "course", "magn", "altitude", "spp", "srr", "m_lux",
    "r_ir_1", "g_ir", "r_ir_2", "i_ir", "i_bright", "shutter", "gain",
)


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    # ── drones ────────────────────────────────────────────────────────────
    op.create_table(
        "drones",
        _uuid_pk(),
        sa.Column("drone_id", sa.String(100), nullable=False,
                  comment="Operator-facing identifier, e.g. DR-042"),
        sa.Column("model", sa.String(255), nullable=False),
        sa.Column("serial_number", sa.String(255), nullable=False),
        sa.Column("current_battery_charge", sa.Integer(), nullable=False,
                  server_default=sa.text("100"), comment="Percent, 0..100"),
        sa.Column("total_flight_time", sa.Integer(), nullable=False,
                  server_default=sa.text("0"), comment="Minutes"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("drone_id"),
        sa.UniqueConstraint("serial_number"),
        sa.CheckConstraint(
            "current_battery_charge BETWEEN 0 AND 100",
            name="ck_drones_battery_range",
        ),
        sa.CheckConstraint("total_flight_time >= 0", name="ck_drones_flight_time"),
    )

    # ── routes ────────────────────────────────────────────────────────────
    op.create_table(
        "routes",
        _uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("drone_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("points_with_photos", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(20), nullable=False,
                  server_default=sa.text("'processing'"),
                  comment="Derived: processing, partial, complete"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["drone_id"], ["drones.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_routes_created_at", "routes", [sa.text("created_at DESC")])
    op.create_index("idx_routes_drone_id", "routes", ["drone_id"])

    # ── flight_points ─────────────────────────────────────────────────────
    op.create_table(
        "flight_points",
        _uuid_pk(),
        sa.Column("route_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False,
                  comment="0-based order of the point along the flight path"),
        sa.Column("file_name", sa.Text(), nullable=False),
        sa.Column("date", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("time", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("time_status", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Text(), nullable=False),
        sa.Column("longitude", sa.Text(), nullable=False),
        *[sa.Column(name, sa.Text(), nullable=True) for name in TELEMETRY_COLUMNS],
        sa.Column("photo_object_key", sa.Text(), nullable=True),
        sa.Column("has_photo", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["route_id"], ["routes.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "idx_flight_points_route_position",
        "flight_points",
        ["route_id", "position"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index("idx_flight_points_route_position", table_name="flight_points")
    op.drop_table("flight_points")
    op.drop_index("idx_routes_drone_id", table_name="routes")
    op.drop_index("idx_routes_created_at", table_name="routes")
    op.drop_table("routes")
    op.drop_table("drones")
