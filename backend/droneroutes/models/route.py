"""
Drone Routes Backend — Route and FlightPoint SQLAlchemy Models
================================================================

What:  ORM models for the `routes` and `flight_points` tables.
Why:   A route is the ordered flight path produced from one telemetry CSV.
       Each CSV row becomes one FlightPoint owned by exactly one route.
How:   Route.points is a one-to-many relationship ordered by `position`
       (the 0-based CSV row index among kept rows) with delete-orphan cascade,
       so the sequence behaves like an embedded list.

Table Design Rationale:
    - Telemetry columns are unbounded TEXT. The logging device's own formatting
      (decimal places, "12:03:44.120" style times) is returned to API
      consumers byte-for-byte, so nothing is parsed into floats or datetimes.
    - total_points / points_with_photos / status are denormalized for cheap
      listing, and are only ever written by Route.refresh_counters().
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from droneroutes.database import Base
from droneroutes.models.drone import Drone

STATUS_PROCESSING = "processing"
STATUS_PARTIAL = "partial"
STATUS_COMPLETE = "complete"
ROUTE_STATUSES = (STATUS_PROCESSING, STATUS_PARTIAL, STATUS_COMPLETE)


def derive_route_status(points_with_photos: int, total_points: int) -> str:
    """
    Pure status function over the two counters.

        0 photos                          → processing
        photos == total (total > 0)       → complete
        anything in between               → partial
    """
    if points_with_photos <= 0:
        return STATUS_PROCESSING
    if points_with_photos >= total_points:
        return STATUS_COMPLETE
    return STATUS_PARTIAL


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FlightPoint(Base):
    """
    One telemetry sample, one-to-one with a kept CSV row.

    The two "Time" columns and the two "R Ir" columns of the source CSV are
    stored as time/time_status and r_ir_1/r_ir_2 respectively.
    """

    __tablename__ = "flight_points"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    route_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("routes.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="0-based order of the point along the flight path",
    )

    # ── Identification & position ─────────────────────────────────────────
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[str] = mapped_column(Text, nullable=False, default="")
    time: Mapped[str] = mapped_column(Text, nullable=False, default="")
    time_status: Mapped[Optional[str]] = mapped_column(Text)
    latitude: Mapped[str] = mapped_column(Text, nullable=False)
    longitude: Mapped[str] = mapped_column(Text, nullable=False)

    # ── Flight & sensor channels ──────────────────────────────────────────
    aex: Mapped[Optional[str]] = mapped_column(Text)
    speed: Mapped[Optional[str]] = mapped_column(Text)
    course: Mapped[Optional[str]] = mapped_column(Text)
    magn: Mapped[Optional[str]] = mapped_column(Text)
    altitude: Mapped[Optional[str]] = mapped_column(Text)
    spp: Mapped[Optional[str]] = mapped_column(Text)
    srr: Mapped[Optional[str]] = mapped_column(Text)
    m_lux: Mapped[Optional[str]] = mapped_column(Text)
    r_ir_1: Mapped[Optional[str]] = mapped_column(Text)
    g_ir: Mapped[Optional[str]] = mapped_column(Text)
    r_ir_2: Mapped[Optional[str]] = mapped_column(Text)
    i_ir: Mapped[Optional[str]] = mapped_column(Text)
    i_bright: Mapped[Optional[str]] = mapped_column(Text)
    shutter: Mapped[Optional[str]] = mapped_column(Text)
    gain: Mapped[Optional[str]] = mapped_column(Text)

    # ── Photo linkage ─────────────────────────────────────────────────────
    # Object key (routes/<route_id>/<file_name>), never a URL: URLs are
    # resolved fresh on every read
    photo_object_key: Mapped[Optional[str]] = mapped_column(Text)
    has_photo: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    route: Mapped["Route"] = relationship(back_populates="points")

    __table_args__ = (
        Index("idx_flight_points_route_position", "route_id", "position", unique=True),
    )

    def attach_photo(self, object_key: str) -> None:
        self.photo_object_key = object_key
        self.has_photo = True

    def __repr__(self) -> str:
        return (
            f"<FlightPoint(position={self.position}, file_name='{self.file_name}', "
            f"has_photo={self.has_photo})>"
        )


class Route(Base):
    """
    An ordered flight path built from one CSV upload.

    Lifecycle:
        1. Created on CSV upload (status = 'processing', no photos yet)
        2. Photo batches attach object keys to points; after each batch
           refresh_counters() recomputes the counters and status
        3. Status only moves forward (photos are never detached here)
    """

    __tablename__ = "routes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    drone_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("drones.id", ondelete="SET NULL"),
        nullable=True,
    )

    total_points: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    points_with_photos: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=STATUS_PROCESSING,
        server_default=text("'processing'"),
        comment="Derived: processing, partial, complete",
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # selectin: a route is almost always read together with its points
    points: Mapped[List[FlightPoint]] = relationship(
        back_populates="route",
        order_by=FlightPoint.position,
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    drone: Mapped[Optional[Drone]] = relationship(
        back_populates="routes",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_routes_created_at", created_at.desc()),
        Index("idx_routes_drone_id", "drone_id"),
    )

    def refresh_counters(self) -> None:
        """
        Recompute total_points, points_with_photos and status from points.

        The only writer of those three columns. Idempotent: calling it on
        an unchanged point list yields the same values every time.
        """
        self.total_points = len(self.points)
        self.points_with_photos = sum(1 for p in self.points if p.has_photo)
        self.status = derive_route_status(self.points_with_photos, self.total_points)
        self.updated_at = _utcnow()

    def __repr__(self) -> str:
        return (
            f"<Route(id={self.id}, status='{self.status}', "
            f"points={self.points_with_photos}/{self.total_points})>"
        )
