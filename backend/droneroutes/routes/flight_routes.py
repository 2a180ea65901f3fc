"""
Drone Routes Backend — Flight Route Handlers
==============================================

What:  /api/routes endpoints: create from CSV + photos, add photos, read, list.
How:   Multipart uploads are read into memory here (bounded by the per-file
       size limit and the per-request file count) and handed to RouteService.

Status codes:
    201  route created (possibly with missing photos, see missing_photos)
    400  no CSV / CSV parse failure / no valid points / no photos supplied
    404  unknown route or drone
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from droneroutes.config import settings
from droneroutes.database import get_db_session
from droneroutes.exceptions import ValidationError
from droneroutes.schemas.common import ErrorResponse
from droneroutes.schemas.route import (
    RouteCreateResponse,
    RouteDetailResponse,
    RouteListItem,
    RoutePhotosResponse,
)
from droneroutes.services.photo_matcher import PhotoPayload
from droneroutes.services.route_service import route_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/routes", tags=["Routes"])


async def read_upload(file: UploadFile, field: str) -> bytes:
    """Read one upload fully, enforcing the per-file size limit."""
    try:
        content = await file.read()
    finally:
        await file.close()

    if len(content) > settings.max_upload_size:
        max_mb = settings.max_upload_size / (1024 * 1024)
        raise ValidationError(
            message=f"File '{file.filename}' exceeds the maximum size of {max_mb:.0f}MB",
            field=field,
            context={"file_name": file.filename, "size": len(content)},
        )
    return content


async def read_photos(files: Optional[List[UploadFile]]) -> List[PhotoPayload]:
    """Turn multipart photo parts into PhotoPayloads keyed by original file name."""
    files = [f for f in (files or []) if f.filename]
    if len(files) > settings.max_photos_per_request:
        raise ValidationError(
            message=(
                f"Too many photos in one request ({len(files)}). "
                f"Maximum is {settings.max_photos_per_request}."
            ),
            field="photos",
        )

    photos = []
    for f in files:
        content = await read_upload(f, "photos")
        photos.append(PhotoPayload(name=f.filename, content=content, content_type=f.content_type))
    return photos


@router.post(
    "",
    status_code=201,
    response_model=RouteCreateResponse,
    responses={
        400: {"description": "Missing or invalid CSV", "model": ErrorResponse},
        404: {"description": "Drone not found", "model": ErrorResponse},
    },
    summary="Create a route from a telemetry CSV and photos",
)
async def create_route(
    csv: Optional[UploadFile] = File(None, description="Telemetry CSV (21 fixed columns)"),
    photos: Optional[List[UploadFile]] = File(None, description="Photos named as in the CSV 'file name' column"),
    name: Optional[str] = Form(None, description="Route name; defaults to Route_<epoch ms>"),
    drone_id: Optional[str] = Form(None, description="Drone UUID or drone_id"),
    db: AsyncSession = Depends(get_db_session),
) -> RouteCreateResponse:
    if csv is None:
        raise ValidationError(message="CSV file is required", field="csv")

    csv_bytes = await read_upload(csv, "csv")
    photo_payloads = await read_photos(photos)

    logger.info(
        "Received route upload: csv=%s (%d bytes), %d photos",
        csv.filename, len(csv_bytes), len(photo_payloads),
    )

    return await route_service.create_route(
        db=db,
        csv_bytes=csv_bytes,
        photos=photo_payloads,
        name=name,
        drone_ref=drone_id,
    )


@router.post(
    "/{route_id}/photos",
    response_model=RoutePhotosResponse,
    responses={
        400: {"description": "No photos provided", "model": ErrorResponse},
        404: {"description": "Route not found", "model": ErrorResponse},
    },
    summary="Upload missing photos for an existing route",
)
async def add_route_photos(
    route_id: uuid.UUID,
    photos: Optional[List[UploadFile]] = File(None),
    db: AsyncSession = Depends(get_db_session),
) -> RoutePhotosResponse:
    photo_payloads = await read_photos(photos)
    return await route_service.add_photos(db=db, route_id=route_id, photos=photo_payloads)


@router.get(
    "/{route_id}",
    response_model=RouteDetailResponse,
    responses={404: {"description": "Route not found", "model": ErrorResponse}},
    summary="Get a route with all points and photo URLs",
)
async def get_route(
    route_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> RouteDetailResponse:
    return await route_service.get_route(db=db, route_id=route_id)


@router.get(
    "",
    response_model=List[RouteListItem],
    summary="List routes, newest first",
)
async def list_routes(db: AsyncSession = Depends(get_db_session)) -> List[RouteListItem]:
    return await route_service.list_routes(db=db)
