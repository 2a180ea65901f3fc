"""
Drone Routes Backend — Drone Route Handlers
=============================================

CRUD over /api/drones plus assigning a drone to an existing route.
`{drone_ref}` accepts the drone's UUID or its drone_id string.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from droneroutes.database import get_db_session
from droneroutes.schemas.common import ErrorResponse
from droneroutes.schemas.drone import (
    DroneAssignResponse,
    DroneCreate,
    DroneDeleteResponse,
    DroneDetailResponse,
    DroneResponse,
    DroneUpdate,
)
from droneroutes.services.drone_service import drone_service

router = APIRouter(prefix="/api/drones", tags=["Drones"])

NOT_FOUND = {404: {"description": "Drone not found", "model": ErrorResponse}}


@router.post(
    "",
    status_code=201,
    response_model=DroneResponse,
    responses={409: {"description": "drone_id or serial_number taken", "model": ErrorResponse}},
    summary="Register a drone",
)
async def create_drone(
    body: DroneCreate,
    db: AsyncSession = Depends(get_db_session),
) -> DroneResponse:
    return await drone_service.create_drone(db=db, data=body)


@router.get("", response_model=List[DroneResponse], summary="List drones, newest first")
async def list_drones(db: AsyncSession = Depends(get_db_session)) -> List[DroneResponse]:
    return await drone_service.list_drones(db=db)


@router.get(
    "/{drone_ref}",
    response_model=DroneDetailResponse,
    responses=NOT_FOUND,
    summary="Get a drone and the routes it flew",
)
async def get_drone(
    drone_ref: str,
    db: AsyncSession = Depends(get_db_session),
) -> DroneDetailResponse:
    return await drone_service.get_drone(db=db, ref=drone_ref)


@router.put(
    "/{drone_ref}",
    response_model=DroneResponse,
    responses=NOT_FOUND,
    summary="Update model, battery charge or flight time",
)
async def update_drone(
    drone_ref: str,
    body: DroneUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> DroneResponse:
    return await drone_service.update_drone(db=db, ref=drone_ref, data=body)


@router.delete(
    "/{drone_ref}",
    response_model=DroneDeleteResponse,
    responses={
        **NOT_FOUND,
        400: {"description": "Drone still has routes", "model": ErrorResponse},
    },
    summary="Delete a drone without routes",
)
async def delete_drone(
    drone_ref: str,
    db: AsyncSession = Depends(get_db_session),
) -> DroneDeleteResponse:
    return await drone_service.delete_drone(db=db, ref=drone_ref)


@router.post(
    "/{drone_ref}/assign-route/{route_id}",
    response_model=DroneAssignResponse,
    responses={404: {"description": "Drone or route not found", "model": ErrorResponse}},
    summary="Assign a drone to a route",
)
async def assign_drone_to_route(
    drone_ref: str,
    route_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> DroneAssignResponse:
    return await drone_service.assign_to_route(db=db, drone_ref=drone_ref, route_id=route_id)
