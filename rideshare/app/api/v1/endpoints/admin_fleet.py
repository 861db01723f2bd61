"""
Admin Vehicle API Endpoints.

Vehicles carry the seat capacity that bounds subscriptions on an
assignment.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from rideshare.app.db.session import get_db
from rideshare.app.models.vehicle import Vehicle
from rideshare.app.models.vehicle_enums import VehicleStatus
from rideshare.app.schemas.vehicle import VehicleCreate, VehicleUpdate, VehicleResponse, VehicleListResponse
from rideshare.app.core.guards import require_admin
from rideshare.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/admin", tags=["Admin - Vehicles"])


async def _get_vehicle_or_404(db: AsyncSession, vehicle_id: int) -> Vehicle:
    vehicle = await db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Vehicle not found"
        )
    return vehicle


async def _commit_unique_plate(db: AsyncSession, license_plate: str) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Vehicle with license plate {license_plate} already exists"
        )


@router.post("/vehicles", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle_data: VehicleCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a vehicle (admin-only).
    
    License plates are unique.
    """
    vehicle = Vehicle(
        vehicle_type=vehicle_data.vehicle_type,
        model=vehicle_data.model,
        year=vehicle_data.year,
        color=vehicle_data.color,
        license_plate=vehicle_data.license_plate.upper(),
        capacity=vehicle_data.capacity,
        is_available=True,
        status=VehicleStatus.ACTIVE
    )
    db.add(vehicle)
    await _commit_unique_plate(db, vehicle.license_plate)
    await db.refresh(vehicle)
    
    await log_event(
        db=db,
        action=AuditAction.VEHICLE_CREATED,
        actor_id=admin["user_id"],
        actor_username=admin["sub"],
        metadata={"vehicle_id": vehicle.id, "license_plate": vehicle.license_plate, "capacity": vehicle.capacity}
    )
    
    return VehicleResponse.model_validate(vehicle)


@router.get("/vehicles", response_model=VehicleListResponse)
async def list_vehicles(
    vehicle_status: Optional[VehicleStatus] = Query(None, alias="status", description="Filter by status"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """List vehicles (admin-only)."""
    query = select(Vehicle)
    if vehicle_status is not None:
        query = query.where(Vehicle.status == vehicle_status)
    
    result = await db.execute(query.order_by(Vehicle.license_plate))
    vehicles = result.scalars().all()
    
    return VehicleListResponse(
        vehicles=[VehicleResponse.model_validate(v) for v in vehicles],
        total=len(vehicles)
    )


@router.get("/vehicles/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    return VehicleResponse.model_validate(await _get_vehicle_or_404(db, vehicle_id))


@router.put("/vehicles/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    vehicle_data: VehicleUpdate,
    vehicle_id: int = Path(..., description="Vehicle ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Update a vehicle (admin-only).
    
    Lowering capacity does not cancel existing subscriptions; it only
    blocks new ones until seats free up.
    """
    vehicle = await _get_vehicle_or_404(db, vehicle_id)
    
    update_data = vehicle_data.model_dump(exclude_unset=True)
    if update_data.get("license_plate"):
        update_data["license_plate"] = update_data["license_plate"].upper()
    for field, value in update_data.items():
        setattr(vehicle, field, value)
    
    await _commit_unique_plate(db, vehicle.license_plate)
    await db.refresh(vehicle)
    
    await log_event(
        db=db,
        action=AuditAction.VEHICLE_UPDATED,
        actor_id=admin["user_id"],
        actor_username=admin["sub"],
        metadata={"vehicle_id": vehicle.id, "updated_fields": sorted(update_data)}
    )
    
    return VehicleResponse.model_validate(vehicle)


@router.post("/vehicles/{vehicle_id}/deactivate", response_model=VehicleResponse)
async def deactivate_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Take a vehicle out of service (admin-only)."""
    vehicle = await _get_vehicle_or_404(db, vehicle_id)
    
    if vehicle.status == VehicleStatus.INACTIVE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Vehicle is already inactive"
        )
    
    vehicle.status = VehicleStatus.INACTIVE
    vehicle.is_available = False
    await db.commit()
    await db.refresh(vehicle)
    
    await log_event(
        db=db,
        action=AuditAction.VEHICLE_DEACTIVATED,
        actor_id=admin["user_id"],
        actor_username=admin["sub"],
        metadata={"vehicle_id": vehicle.id}
    )
    
    return VehicleResponse.model_validate(vehicle)
