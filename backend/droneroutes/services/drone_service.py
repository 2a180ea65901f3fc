"""
Drone Routes Backend — Drone Service
======================================

What:  CRUD for drones, drone-to-route assignment, and drone reference
       resolution for RouteService.
How:   Plain async SQLAlchemy queries on the request session. Changes are
       flushed here and committed by the session dependency.

Drone references:
    Every endpoint that takes a drone accepts either the UUID primary key
    or the operator-facing drone_id string ("DR-042").
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import raiseload

from droneroutes.database import flush_or_raise
from droneroutes.exceptions import ConflictError, NotFoundError, ValidationError
from droneroutes.models.drone import Drone
from droneroutes.models.route import Route
from droneroutes.schemas.drone import (
    DroneAssignResponse,
    DroneCreate,
    DroneDeleteResponse,
    DroneDetailResponse,
    DroneResponse,
    DroneUpdate,
)
from droneroutes.schemas.route import DroneSummary, RouteListItem

logger = logging.getLogger(__name__)


def _as_uuid(ref: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(ref))
    except ValueError:
        return None


class DroneService:
    """Business logic for drone records."""

    async def resolve_drone(self, db: AsyncSession, ref: str) -> Drone:
        """
        Find a drone by UUID or drone_id.

        Raises:
            NotFoundError: No drone matches the reference.
        """
        pk = _as_uuid(ref)
        condition = Drone.drone_id == str(ref)
        if pk is not None:
            condition = or_(Drone.id == pk, condition)

        result = await db.execute(select(Drone).where(condition))
        drone = result.scalars().first()
        if drone is None:
            raise NotFoundError(resource="drone", resource_id=str(ref))
        return drone

    async def create_drone(self, db: AsyncSession, data: DroneCreate) -> DroneResponse:
        """
        Raises:
            ConflictError: drone_id or serial_number already taken.
        """
        for column, value in (
            (Drone.drone_id, data.drone_id),
            (Drone.serial_number, data.serial_number),
        ):
            result = await db.execute(select(Drone.id).where(column == value))
            if result.scalar_one_or_none() is not None:
                raise ConflictError(field=column.key, value=value)

        drone = Drone(**data.model_dump())
        db.add(drone)
        try:
            await db.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent create between the check and the insert
            await db.rollback()
            logger.warning("Drone insert hit a unique constraint: %s", e.orig)
            raise ConflictError(field="drone_id or serial_number", value=data.drone_id) from e

        logger.info("Created drone %s (%s)", drone.drone_id, drone.id)
        return DroneResponse.model_validate(drone)

    async def list_drones(self, db: AsyncSession) -> List[DroneResponse]:
        result = await db.execute(select(Drone).order_by(Drone.created_at.desc()))
        return [DroneResponse.model_validate(d) for d in result.scalars().all()]

    async def get_drone(self, db: AsyncSession, ref: str) -> DroneDetailResponse:
        drone = await self.resolve_drone(db, ref)
        result = await db.execute(
            select(Route)
            .options(raiseload(Route.points), raiseload(Route.drone))
            .where(Route.drone_id == drone.id)
            .order_by(Route.created_at.desc())
        )
        routes = [RouteListItem.model_validate(r) for r in result.scalars().all()]
        return DroneDetailResponse(
            **DroneResponse.model_validate(drone).model_dump(),
            routes=routes,
        )

    async def update_drone(self, db: AsyncSession, ref: str, data: DroneUpdate) -> DroneResponse:
        drone = await self.resolve_drone(db, ref)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        for name, value in changes.items():
            setattr(drone, name, value)
        await flush_or_raise(db, "update the drone")
        logger.info("Updated drone %s: %s", drone.drone_id, sorted(changes))
        return DroneResponse.model_validate(drone)

    async def delete_drone(self, db: AsyncSession, ref: str) -> DroneDeleteResponse:
        """
        Raises:
            ValidationError: Routes still reference the drone.
        """
        drone = await self.resolve_drone(db, ref)

        result = await db.execute(
            select(func.count(Route.id)).where(Route.drone_id == drone.id)
        )
        route_count = result.scalar() or 0
        if route_count > 0:
            raise ValidationError(
                message=(
                    f"Cannot delete drone. It has {route_count} associated routes. "
                    "Delete routes first."
                ),
                context={"route_count": route_count},
            )

        summary = DroneSummary.model_validate(drone)
        await db.delete(drone)
        await flush_or_raise(db, "delete the drone")
        logger.info("Deleted drone %s", summary.drone_id)
        return DroneDeleteResponse(deleted_drone=summary)

    async def assign_to_route(
        self,
        db: AsyncSession,
        drone_ref: str,
        route_id: uuid.UUID,
    ) -> DroneAssignResponse:
        drone = await self.resolve_drone(db, drone_ref)

        result = await db.execute(select(Route).where(Route.id == route_id))
        route = result.scalar_one_or_none()
        if route is None:
            raise NotFoundError(resource="route", resource_id=str(route_id))

        route.drone_id = drone.id
        route.refresh_counters()
        await flush_or_raise(db, "assign the drone")
        logger.info("Assigned drone %s to route %s", drone.drone_id, route.id)

        return DroneAssignResponse(
            route=RouteListItem.model_validate(route),
            drone=DroneSummary.model_validate(drone),
        )


# ── Singleton Instance ────────────────────────────────────────────────────
drone_service = DroneService()
