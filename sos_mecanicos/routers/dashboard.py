"""
Role dashboards.

Figures are computed in memory over the caller's full result set, as the
dashboards show every request the user is party to.
"""
from decimal import Decimal
from typing import Iterable

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sos_mecanicos.auth import get_current_active_user
from sos_mecanicos.config import get_settings
from sos_mecanicos.database import get_db
from sos_mecanicos.errors import PermissionDenied
from sos_mecanicos.models.insurance import InsurancePlan, InsuranceQuote, QuoteStatus
from sos_mecanicos.models.profile import Profile, UserRole
from sos_mecanicos.models.service_request import RequestStatus, ServiceRequest
from sos_mecanicos.models.vehicle import Vehicle
from sos_mecanicos.routers.service_requests import fetch_requests_for

settings = get_settings()

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def request_stats(requests: Iterable[ServiceRequest]) -> dict:
    requests = list(requests)
    completed = [r for r in requests if r.status is RequestStatus.COMPLETED]
    return {
        "total": len(requests),
        "pending": sum(1 for r in requests if r.status is RequestStatus.PENDING),
        "in_progress": sum(
            1 for r in requests if r.status in (RequestStatus.ACCEPTED, RequestStatus.IN_PROGRESS)
        ),
        "completed": len(completed),
        "cancelled": sum(1 for r in requests if r.status is RequestStatus.CANCELLED),
        "rejected": sum(1 for r in requests if r.status is RequestStatus.REJECTED),
        "total_completed_value": float(sum((r.estimated_price or Decimal("0") for r in completed), Decimal("0"))),
    }


def quote_stats(quotes: Iterable[InsuranceQuote]) -> dict:
    quotes = list(quotes)
    return {
        "total": len(quotes),
        "pending": sum(1 for q in quotes if q.status is QuoteStatus.PENDING),
        "accepted": sum(1 for q in quotes if q.status is QuoteStatus.ACCEPTED),
        "rejected": sum(1 for q in quotes if q.status is QuoteStatus.REJECTED),
        "total_quoted_value": float(sum((q.quote_value for q in quotes), Decimal("0"))),
    }


@router.get("")
async def dashboard_redirect(current_user: Profile = Depends(get_current_active_user)):
    """Send the caller to their role's dashboard."""
    return RedirectResponse(
        url=f"{settings.api_v1_prefix}/dashboard/{current_user.role.value}",
        status_code=307,
    )


@router.get("/{role}")
async def get_dashboard(
    role: UserRole,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user),
):
    """
    Summary figures for the caller's dashboard.
    """
    if role is not current_user.role:
        raise PermissionDenied()

    data = {"role": role.value, "display_name": current_user.full_name}

    if role is UserRole.INSURER:
        result = await db.execute(select(InsuranceQuote).where(InsuranceQuote.insurer_id == current_user.id))
        data["quotes"] = quote_stats(result.scalars().all())
        plans = await db.execute(
            select(func.count(InsurancePlan.id)).where(InsurancePlan.created_by == current_user.id)
        )
        data["plans"] = plans.scalar_one()
        return data

    data["requests"] = request_stats(await fetch_requests_for(db, current_user))
    if role is UserRole.CLIENT:
        vehicles = await db.execute(
            select(func.count(Vehicle.id)).where(Vehicle.owner_id == current_user.id)
        )
        data["vehicles"] = vehicles.scalar_one()
    return data
