"""
Vehicle routes. Every vehicle belongs to the signed-in user.
"""
from datetime import date

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from sos_mecanicos.auth import get_current_active_user
from sos_mecanicos.database import get_db
from sos_mecanicos.errors import MESSAGES, Conflict, NotFound, ValidationFailed
from sos_mecanicos.models.profile import Profile
from sos_mecanicos.models.vehicle import Vehicle
from sos_mecanicos.schemas.vehicle import Vehicle as VehicleSchema, VehicleCreate, VehicleUpdate

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


def _normalize_plate(plate: str) -> str:
    return plate.strip().upper()


def _check_year(year: int) -> None:
    if year < 1900 or year > date.today().year + 1:
        raise ValidationFailed(MESSAGES["invalid_year"])


async def _get_owned_vehicle(db: AsyncSession, vehicle_id: int, owner: Profile) -> Vehicle:
    result = await db.execute(
        select(Vehicle).where(Vehicle.id == vehicle_id, Vehicle.owner_id == owner.id)
    )
    vehicle = result.scalar_one_or_none()
    if not vehicle:
        raise NotFound(MESSAGES["vehicle_not_found"])
    return vehicle


async def _check_plate_free(db: AsyncSession, plate: str) -> None:
    result = await db.execute(select(Vehicle).where(Vehicle.plate == plate))
    if result.scalar_one_or_none():
        raise Conflict(MESSAGES["duplicate_plate"])


@router.get("/", response_model=List[VehicleSchema])
async def get_vehicles(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Get the user's vehicles, newest first.
    """
    result = await db.execute(
        select(Vehicle)
        .where(Vehicle.owner_id == current_user.id)
        .order_by(Vehicle.created_at.desc(), Vehicle.id.desc())
    )
    return result.scalars().all()


@router.get("/{vehicle_id}", response_model=VehicleSchema)
async def get_vehicle(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Get a specific vehicle by ID.
    """
    return await _get_owned_vehicle(db, vehicle_id, current_user)


@router.post("/", response_model=VehicleSchema, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle: VehicleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Register a new vehicle.
    """
    _check_year(vehicle.year)
    plate = _normalize_plate(vehicle.plate)
    await _check_plate_free(db, plate)

    db_vehicle = Vehicle(**{**vehicle.model_dump(), "plate": plate}, owner_id=current_user.id)
    db.add(db_vehicle)
    await db.commit()
    await db.refresh(db_vehicle)

    return db_vehicle


@router.put("/{vehicle_id}", response_model=VehicleSchema)
async def update_vehicle(
    vehicle_id: int,
    vehicle_update: VehicleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Update a vehicle.
    """
    db_vehicle = await _get_owned_vehicle(db, vehicle_id, current_user)

    # Update only provided fields
    update_data = vehicle_update.model_dump(exclude_unset=True)
    if update_data.get("year") is not None:
        _check_year(update_data["year"])
    if update_data.get("plate") is not None:
        update_data["plate"] = _normalize_plate(update_data["plate"])
        if update_data["plate"] != db_vehicle.plate:
            await _check_plate_free(db, update_data["plate"])

    for field, value in update_data.items():
        setattr(db_vehicle, field, value)

    await db.commit()
    await db.refresh(db_vehicle)

    return db_vehicle


@router.delete("/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vehicle(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Delete a vehicle.
    """
    db_vehicle = await _get_owned_vehicle(db, vehicle_id, current_user)

    await db.delete(db_vehicle)
    await db.commit()

    return None
