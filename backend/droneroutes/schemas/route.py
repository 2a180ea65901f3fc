"""
Drone Routes Backend — Route Request/Response Schemas
=======================================================

What:  Pydantic models for the /api/routes endpoints.
Why:   The API contract differs from the table layout: sensor channels are
       grouped under `sensor_data`, object keys are replaced by freshly
       resolved URLs, and create/add-photos return photo accounting rather
       than the full point list.

Missing-photo lists (`missing_photos`, `still_missing_photos`) always mean:
distinct file names of points that still have no stored photo after the
batch settled, in flight-path order. A photo that was supplied but failed
to upload is therefore listed as missing.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class DroneSummary(BaseModel):
    """Compact drone reference embedded in route responses."""
    id: uuid.UUID
    drone_id: str
    model: str
    serial_number: str

    model_config = {"from_attributes": True}


class SensorData(BaseModel):
    """Per-point sensor channels, as logged (strings, unparsed)."""
    aex: Optional[str] = None
    magn: Optional[str] = None
    spp: Optional[str] = None
    srr: Optional[str] = None
    m_lux: Optional[str] = None
    r_ir_1: Optional[str] = None
    g_ir: Optional[str] = None
    r_ir_2: Optional[str] = None
    i_ir: Optional[str] = None
    i_bright: Optional[str] = None
    shutter: Optional[str] = None
    gain: Optional[str] = None

    model_config = {"from_attributes": True}


class FlightPointResponse(BaseModel):
    """
    One point of a route as returned by GET /api/routes/{id}.

    photo_url is resolved at read time (presigned or public, depending on
    deployment) and is null when the point has no photo or resolution failed.
    """
    file_name: str
    date: str
    time: str
    time_status: Optional[str] = None
    latitude: str
    longitude: str
    altitude: Optional[str] = None
    speed: Optional[str] = None
    course: Optional[str] = None
    sensor_data: SensorData
    has_photo: bool
    photo_url: Optional[str] = None


class RouteCreateResponse(BaseModel):
    """Returned by POST /api/routes with HTTP 201."""
    id: uuid.UUID
    name: str
    drone_id: Optional[uuid.UUID] = None
    status: str = Field(description="processing, partial or complete")
    total_points: int
    points_with_photos: int
    required_photos: int = Field(description="Distinct file names referenced by the CSV")
    uploaded_photos: int = Field(description="Points that received a photo in this request")
    missing_photos: List[str] = Field(description="File names still without a stored photo")
    created_at: datetime
    drone: Optional[DroneSummary] = None


class RoutePhotosResponse(BaseModel):
    """Returned by POST /api/routes/{id}/photos."""
    id: uuid.UUID
    status: str
    total_points: int
    points_with_photos: int
    new_photos_added: int = Field(description="Points that received a photo in this request")
    still_missing_photos: List[str]


class RouteListItem(BaseModel):
    """Compact route representation for GET /api/routes."""
    id: uuid.UUID
    name: str
    drone_id: Optional[uuid.UUID] = None
    status: str
    total_points: int
    points_with_photos: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RouteDetailResponse(BaseModel):
    """Full route with every point, returned by GET /api/routes/{id}."""
    id: uuid.UUID
    name: str
    drone_id: Optional[uuid.UUID] = None
    status: str
    total_points: int
    points_with_photos: int
    created_at: datetime
    updated_at: datetime
    drone: Optional[DroneSummary] = None
    points: List[FlightPointResponse]
