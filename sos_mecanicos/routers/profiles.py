"""
Profile routes.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sos_mecanicos.auth import get_current_active_user
from sos_mecanicos.database import get_db
from sos_mecanicos.models.profile import Profile, UserRole
from sos_mecanicos.schemas.profile import Profile as ProfileSchema, ProfileUpdate, ProviderSummary
from sos_mecanicos.session import AuthEvent, SessionState, auth_events

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileSchema)
async def get_my_profile(current_user: Profile = Depends(get_current_active_user)):
    """
    Get the signed-in user's profile.
    """
    return current_user


@router.put("/me", response_model=ProfileSchema)
async def update_my_profile(
    profile_update: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user),
):
    """
    Update the signed-in user's profile.
    """
    # Update only provided fields
    update_data = profile_update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(current_user, field, value)

    await db.commit()
    await db.refresh(current_user)

    auth_events.emit(AuthEvent.USER_UPDATED, SessionState.from_profile(current_user))
    return current_user


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_my_account(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user),
):
    """
    Delete the signed-in user's account and vehicles.
    """
    state = SessionState.from_profile(current_user)
    await db.delete(current_user)
    await db.commit()

    logger.info("Deleted account %s", state.user_id)
    auth_events.emit(AuthEvent.SIGNED_OUT, state)
    return None


@router.get("/providers", response_model=List[ProviderSummary])
async def list_providers(
    role: UserRole = Query(...),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user),
):
    """
    List active mechanics or tow operators, nearest first.
    """
    if not role.is_provider:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Tipo de prestador inválido",
        )

    result = await db.execute(
        select(Profile).where(Profile.role == role, Profile.is_active.is_(True))
    )
    providers = result.scalars().all()
    # Providers without a distance go last
    return sorted(
        providers,
        key=lambda p: (p.distance_km is None, p.distance_km or 0.0, p.full_name),
    )
