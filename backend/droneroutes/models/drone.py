"""
Drone Routes Backend — Drone SQLAlchemy Model
===============================================

What:  ORM model for the `drones` table.
Who:   DroneService (CRUD) and RouteService (resolving a route's drone).

A drone has two identifiers: the UUID primary key and the operator-facing
`drone_id` string painted on the airframe. API callers may use either.
"""

import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import CheckConstraint, Integer, String, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from droneroutes.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Drone(Base):
    __tablename__ = "drones"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    drone_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    model: Mapped[str] = mapped_column(String(255), nullable=False)
    serial_number: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    # Percent, 0..100
    current_battery_charge: Mapped[int] = mapped_column(
        Integer, nullable=False, default=100, server_default=text("100")
    )
    # Minutes
    total_flight_time: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
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
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # Never loaded implicitly; drone routes are queried explicitly
    routes: Mapped[List["Route"]] = relationship(  # noqa: F821
        back_populates="drone",
        lazy="raise",
    )

    __table_args__ = (
        CheckConstraint(
            "current_battery_charge BETWEEN 0 AND 100",
            name="ck_drones_battery_range",
        ),
        CheckConstraint("total_flight_time >= 0", name="ck_drones_flight_time"),
    )

    def __repr__(self) -> str:
        return f"<Drone(id={self.id}, drone_id='{self.drone_id}', model='{self.model}')>"
