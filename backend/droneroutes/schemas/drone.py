"""
Drone Routes Backend — Drone Request/Response Schemas
=======================================================

Field-level rules (required strings, battery 0-100, non-negative flight
time) are enforced here, so FastAPI rejects bad bodies with 422 before the
service is reached. Uniqueness is enforced by DroneService (409).
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from droneroutes.schemas.route import DroneSummary, RouteListItem


class DroneCreate(BaseModel):
    drone_id: str = Field(min_length=1, max_length=100, description="Operator-facing drone identifier")
    model: str = Field(min_length=1, max_length=255)
    serial_number: str = Field(min_length=1, max_length=255)
    current_battery_charge: int = Field(default=100, ge=0, le=100, description="Percent")
    total_flight_time: int = Field(default=0, ge=0, description="Minutes")

    @field_validator("drone_id", "model", "serial_number")
    @classmethod
    def strip_and_require(cls, v: str) -> str:
        """Mirrors the trim-on-save behaviour of the stored strings."""
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class DroneUpdate(BaseModel):
    """Partial update; drone_id and serial_number are immutable."""
    model: Optional[str] = Field(default=None, min_length=1, max_length=255)
    current_battery_charge: Optional[int] = Field(default=None, ge=0, le=100)
    total_flight_time: Optional[int] = Field(default=None, ge=0)


class DroneResponse(BaseModel):
    id: uuid.UUID
    drone_id: str
    model: str
    serial_number: str
    current_battery_charge: int
    total_flight_time: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DroneDetailResponse(DroneResponse):
    """Drone plus the routes it has flown, newest first."""
    routes: List[RouteListItem] = Field(default_factory=list)


class DroneDeleteResponse(BaseModel):
    message: str = "Drone deleted successfully"
    deleted_drone: DroneSummary


class DroneAssignResponse(BaseModel):
    message: str = "Drone assigned to route successfully"
    route: RouteListItem
    drone: DroneSummary
