"""
Drone Routes Backend — Route Service (Route Assembly Orchestrator)
====================================================================

What:  Builds routes from a telemetry CSV plus photos, attaches later photo
       batches, and serves routes with freshly resolved photo URLs.
Who:   Called by the /api/routes handlers.

Orchestration Flow (POST /api/routes):
    ┌──────────┐   ┌──────────────┐   ┌─────────────┐   ┌──────────────┐   ┌──────────┐
    │  Parse   │──▶│ Resolve drone│──▶│ Save route  │──▶│ Upload photos│──▶│ Recount  │
    │  CSV     │   │ (optional)   │   │ (commit #1) │   │ (fan-out)    │   │ commit #2│
    └──────────┘   └──────────────┘   └─────────────┘   └──────────────┘   └──────────┘

    Parse and drone failures abort before anything is written. Once commit #1
    happened the route exists regardless of photo outcomes, and no
    transaction is open while photos upload.

Photo fan-out:
    One task per distinct matched file name, bounded by a semaphore. Every
    task catches its own failure and returns an UploadOutcome, so the
    gather() join never aborts and no failure cancels a sibling. Outcomes
    are applied after the join, by point index, on the request's own task.

Known gap:
    Two concurrent add-photos calls against the same route both load it,
    upload, and save; the later commit wins for points both touched.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import raiseload

from droneroutes.config import settings
from droneroutes.database import commit_or_raise
from droneroutes.exceptions import (
    CsvParseError,
    DatabaseError,
    DroneRoutesError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from droneroutes.models.drone import Drone
from droneroutes.models.route import FlightPoint, Route
from droneroutes.schemas.route import (
    DroneSummary,
    FlightPointResponse,
    RouteCreateResponse,
    RouteDetailResponse,
    RouteListItem,
    RoutePhotosResponse,
    SensorData,
)
from droneroutes.services.csv_parser import ParsedPoint, parse_csv
from droneroutes.services.drone_service import drone_service
from droneroutes.services.object_store import ObjectStoreGateway, object_store
from droneroutes.services.photo_matcher import (
    PhotoPayload,
    build_photo_map,
    missing_file_names,
    pending_file_names,
    plan_uploads,
    required_file_names,
)

logger = logging.getLogger(__name__)

SENSOR_FIELDS = tuple(SensorData.model_fields)


@dataclass
class UploadOutcome:
    """Result of one file's upload; exactly one of object_key / error is set."""
    file_name: str
    indices: List[int] = field(default_factory=list)
    object_key: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.object_key is not None


def default_route_name() -> str:
    """Route_<epoch milliseconds>"""
    return f"Route_{int(time.time() * 1000)}"


def _point_from_parsed(position: int, parsed: ParsedPoint) -> FlightPoint:
    return FlightPoint(position=position, has_photo=False, **parsed.as_dict())


class RouteService:
    """
    Business logic for routes.

    Args:
        store: Object store gateway; defaults to the module singleton.
        max_concurrent_uploads: Upload fan-out width per request.
    """

    def __init__(
        self,
        store: Optional[ObjectStoreGateway] = None,
        max_concurrent_uploads: Optional[int] = None,
    ):
        self.store = store or object_store
        self.max_concurrent_uploads = (
            max_concurrent_uploads or settings.storage_max_concurrent_uploads
        )

    # ══════════════════════════════════════════════════════════════════════
    # Create route
    # ══════════════════════════════════════════════════════════════════════

    async def create_route(
        self,
        db: AsyncSession,
        csv_bytes: bytes,
        photos: Sequence[PhotoPayload] = (),
        name: Optional[str] = None,
        drone_ref: Optional[str] = None,
    ) -> RouteCreateResponse:
        """
        Parse → resolve drone → save → upload matched photos → recount → save.

        Returns:
            RouteCreateResponse with photo accounting. missing_photos lists
            file names still without a stored photo after the batch, so a
            supplied photo whose upload failed is listed too.

        Raises:
            ValidationError: Empty CSV, CSV parse failure, zero valid points.
            NotFoundError: drone_ref given but unknown.
        """
        if not csv_bytes:
            raise ValidationError(message="CSV file is required", field="csv")

        try:
            parsed = parse_csv(csv_bytes)
        except CsvParseError as e:
            raise ValidationError(
                message=f"CSV parsing failed: {e.message}",
                field="csv",
                context=e.context,
            ) from e

        if not parsed:
            raise ValidationError(message="No valid data points found in CSV", field="csv")

        drone: Optional[Drone] = None
        if drone_ref:
            drone = await drone_service.resolve_drone(db, drone_ref)

        now = datetime.now(timezone.utc)
        route = Route(
            id=uuid.uuid4(),
            name=(name or "").strip() or default_route_name(),
            drone_id=drone.id if drone else None,
            created_at=now,
            points=[_point_from_parsed(i, p) for i, p in enumerate(parsed)],
        )
        route.refresh_counters()
        db.add(route)
        await commit_or_raise(db, "save the route")
        logger.info(
            "Created route %s '%s' with %d points (%d photos supplied)",
            route.id, route.name, route.total_points, len(photos),
        )

        photo_map = build_photo_map(photos)
        unmatched = missing_file_names(route.points, photo_map)
        if unmatched:
            logger.info("Route %s: no file supplied for %d file names", route.id, len(unmatched))
        uploaded = await self._attach_photos(route, photo_map, skip_with_photo=False)

        route.refresh_counters()
        await commit_or_raise(db, "save photo results")

        missing = pending_file_names(route.points)
        logger.info(
            "Route %s: %d/%d points with photos, status=%s, %d file names missing",
            route.id, route.points_with_photos, route.total_points, route.status, len(missing),
        )

        return RouteCreateResponse(
            id=route.id,
            name=route.name,
            drone_id=route.drone_id,
            status=route.status,
            total_points=route.total_points,
            points_with_photos=route.points_with_photos,
            required_photos=len(required_file_names(route.points)),
            uploaded_photos=uploaded,
            missing_photos=missing,
            created_at=route.created_at,
            drone=DroneSummary.model_validate(drone) if drone else None,
        )

    # ══════════════════════════════════════════════════════════════════════
    # Add photos to an existing route
    # ══════════════════════════════════════════════════════════════════════

    async def add_photos(
        self,
        db: AsyncSession,
        route_id: uuid.UUID,
        photos: Sequence[PhotoPayload],
    ) -> RoutePhotosResponse:
        """
        Upload photos for points that do not have one yet.

        Points with has_photo=True are never re-uploaded, even when a file
        with the same name is sent again.

        Raises:
            NotFoundError: Unknown route.
            ValidationError: No photos in the request.
        """
        route = await self._load_route(db, route_id)

        if not photos:
            raise ValidationError(message="No photos provided", field="photos")

        # End the read transaction before the uploads start
        await commit_or_raise(db, "load the route")

        logger.info("Adding %d photos to route %s", len(photos), route.id)

        uploaded = await self._attach_photos(route, build_photo_map(photos), skip_with_photo=True)

        route.refresh_counters()
        await commit_or_raise(db, "save photo results")

        logger.info(
            "Route %s: %d new photos, %d/%d points with photos, status=%s",
            route.id, uploaded, route.points_with_photos, route.total_points, route.status,
        )

        return RoutePhotosResponse(
            id=route.id,
            status=route.status,
            total_points=route.total_points,
            points_with_photos=route.points_with_photos,
            new_photos_added=uploaded,
            still_missing_photos=pending_file_names(route.points),
        )

    # ══════════════════════════════════════════════════════════════════════
    # Reads
    # ══════════════════════════════════════════════════════════════════════

    async def get_route(self, db: AsyncSession, route_id: uuid.UUID) -> RouteDetailResponse:
        """
        Full route with a freshly resolved photo URL per point.

        URL resolution runs concurrently; a point whose URL cannot be
        resolved is returned with photo_url=null rather than failing the read.
        """
        route = await self._load_route(db, route_id)

        urls = await asyncio.gather(*(self._safe_photo_url(p) for p in route.points))

        points = [
            FlightPointResponse(
                file_name=p.file_name,
                date=p.date,
                time=p.time,
                time_status=p.time_status,
                latitude=p.latitude,
                longitude=p.longitude,
                altitude=p.altitude,
                speed=p.speed,
                course=p.course,
                sensor_data=SensorData(**{name: getattr(p, name) for name in SENSOR_FIELDS}),
                has_photo=p.has_photo,
                photo_url=url,
            )
            for p, url in zip(route.points, urls)
        ]

        return RouteDetailResponse(
            id=route.id,
            name=route.name,
            drone_id=route.drone_id,
            status=route.status,
            total_points=route.total_points,
            points_with_photos=route.points_with_photos,
            created_at=route.created_at,
            updated_at=route.updated_at,
            drone=DroneSummary.model_validate(route.drone) if route.drone else None,
            points=points,
        )

    async def list_routes(self, db: AsyncSession) -> List[RouteListItem]:
        """All routes, newest first, without points."""
        try:
            result = await db.execute(
                select(Route)
                .options(raiseload(Route.points), raiseload(Route.drone))
                .order_by(Route.created_at.desc())
            )
        except SQLAlchemyError as e:
            logger.error("Database error listing routes: %s", str(e))
            raise DatabaseError(message="Could not retrieve routes. Please try again.") from e
        return [RouteListItem.model_validate(r) for r in result.scalars().all()]

    # ══════════════════════════════════════════════════════════════════════
    # Internals
    # ══════════════════════════════════════════════════════════════════════

    async def _load_route(self, db: AsyncSession, route_id: uuid.UUID) -> Route:
        try:
            result = await db.execute(select(Route).where(Route.id == route_id))
            route = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching route %s: %s", route_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the route. Please try again.",
                context={"route_id": str(route_id)},
            ) from e
        if route is None:
            raise NotFoundError(resource="route", resource_id=str(route_id))
        return route

    async def _attach_photos(
        self,
        route: Route,
        photo_map: Dict[str, PhotoPayload],
        skip_with_photo: bool,
    ) -> int:
        """
        Upload matched photos and write results back onto the points.

        Returns:
            Number of points that received a photo.
        """
        plan = plan_uploads(route.points, photo_map, skip_with_photo=skip_with_photo)
        if not plan:
            return 0

        outcomes = await self._upload_batch(route.id, plan, photo_map)

        attached = 0
        for outcome in outcomes:
            if not outcome.ok:
                continue
            for index in outcome.indices:
                route.points[index].attach_photo(outcome.object_key)
                attached += 1

        failed = [o.file_name for o in outcomes if not o.ok]
        if failed:
            logger.warning(
                "Route %s: %d of %d photo uploads failed: %s",
                route.id, len(failed), len(outcomes), ", ".join(failed[:20]),
            )
        return attached

    async def _upload_batch(
        self,
        route_id: uuid.UUID,
        plan: Dict[str, List[int]],
        photo_map: Dict[str, PhotoPayload],
    ) -> List[UploadOutcome]:
        """
        Upload every planned file concurrently and wait for all of them.

        Never raises for an individual upload; each task folds its own
        failure into the returned outcome.
        """
        semaphore = asyncio.Semaphore(self.max_concurrent_uploads)

        async def upload_one(file_name: str, indices: List[int]) -> UploadOutcome:
            outcome = UploadOutcome(file_name=file_name, indices=indices)
            photo = photo_map[file_name]
            async with semaphore:
                try:
                    outcome.object_key = await self.store.upload(
                        route_id, file_name, photo.content, photo.content_type
                    )
                except StorageError as e:
                    outcome.error = e.message
                    logger.error("Failed to upload %s: %s | %s", file_name, e.message, e.context)
                except Exception as e:
                    outcome.error = str(e) or type(e).__name__
                    logger.error("Unexpected error uploading %s", file_name, exc_info=True)
            return outcome

        return list(await asyncio.gather(*(
            upload_one(file_name, indices) for file_name, indices in plan.items()
        )))

    async def _safe_photo_url(self, point: FlightPoint) -> Optional[str]:
        if not (point.has_photo and point.photo_object_key):
            return None
        try:
            return await self.store.resolve_url(point.photo_object_key)
        except DroneRoutesError as e:
            logger.error("Error generating URL for %s: %s", point.file_name, e.message)
            return None


# ── Singleton Instance ────────────────────────────────────────────────────
route_service = RouteService()
