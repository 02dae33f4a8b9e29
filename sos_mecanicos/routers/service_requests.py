"""
Service request routes.

Clients open requests addressed to one provider; the provider accepts
(which charges the service), starts, completes or rejects them. Each side
only ever sees the requests it is party to.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sos_mecanicos.auth import get_current_active_user, require_roles
from sos_mecanicos.database import get_db
from sos_mecanicos.errors import MESSAGES, NotFound, PermissionDenied, ValidationFailed
from sos_mecanicos.models.notification import NotificationType
from sos_mecanicos.models.profile import Profile, UserRole
from sos_mecanicos.models.service_request import RequestStatus, ServiceRequest
from sos_mecanicos.models.vehicle import Vehicle
from sos_mecanicos.schemas.service_request import (
    AcceptRequest,
    ServiceRequest as ServiceRequestSchema,
    ServiceRequestCreate,
)
from sos_mecanicos.services import workflow
from sos_mecanicos.services.gateway import PaymentGateway, get_payment_gateway
from sos_mecanicos.services.notifications import notify
from sos_mecanicos.services.payments import process_payment, to_decimal
from sos_mecanicos.services.workflow import Action

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/service-requests", tags=["service-requests"])

require_client = require_roles(UserRole.CLIENT)
require_provider = require_roles(UserRole.MECHANIC, UserRole.TOW)

STATUS_ALL = "all"


def parse_status_filter(value: str) -> Optional[RequestStatus]:
    """``all`` means no filter; anything else must be a known status."""
    if value == STATUS_ALL:
        return None
    try:
        return RequestStatus(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Status inválido: {value}",
        )


def owner_column(user: Profile):
    """Column that ties a request to ``user`` for its role."""
    if user.role is UserRole.CLIENT:
        return ServiceRequest.user_id
    if user.role.is_provider:
        return ServiceRequest.provider_id
    raise PermissionDenied()


async def fetch_requests_for(
    db: AsyncSession, user: Profile, status_filter: Optional[RequestStatus] = None
) -> List[ServiceRequest]:
    query = select(ServiceRequest).where(owner_column(user) == user.id)
    if status_filter is not None:
        query = query.where(ServiceRequest.status == status_filter)
    result = await db.execute(query.order_by(ServiceRequest.created_at.desc(), ServiceRequest.id.desc()))
    return list(result.scalars().all())


async def _get_visible_request(db: AsyncSession, request_id: int, user: Profile) -> ServiceRequest:
    request = await db.get(ServiceRequest, request_id)
    if request is None or user.id not in (request.user_id, request.provider_id):
        raise NotFound(MESSAGES["request_not_found"])
    return request


async def _get_assigned_request(db: AsyncSession, request_id: int, provider: Profile) -> ServiceRequest:
    request = await db.get(ServiceRequest, request_id)
    if request is None or request.provider_id != provider.id:
        raise NotFound(MESSAGES["request_not_found"])
    return request


@router.post("/", response_model=ServiceRequestSchema, status_code=status.HTTP_201_CREATED)
async def create_service_request(
    data: ServiceRequestCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_client),
):
    """
    Open a request addressed to a mechanic or tow operator.
    """
    provider = await db.get(Profile, data.provider_id)
    if provider is None or not provider.is_active or provider.role is not data.service_type.provider_role:
        raise NotFound(MESSAGES["provider_not_found"])

    if data.vehicle_id is not None:
        vehicle = await db.get(Vehicle, data.vehicle_id)
        if vehicle is None or vehicle.owner_id != current_user.id:
            raise NotFound(MESSAGES["vehicle_not_found"])

    request = ServiceRequest(
        user_id=current_user.id,
        provider_id=provider.id,
        vehicle_id=data.vehicle_id,
        service_type=data.service_type,
        description=data.description,
        location=data.location.model_dump(),
        origin=data.origin.model_dump() if data.origin else None,
        destination=data.destination.model_dump() if data.destination else None,
        estimated_price=to_decimal(data.estimated_price) if data.estimated_price is not None else None,
        status=RequestStatus.PENDING,
    )
    db.add(request)
    await db.commit()
    await db.refresh(request)

    logger.info("Client %s opened request %s for provider %s", current_user.id, request.id, provider.id)
    await notify(db, request.provider_id, NotificationType.REQUEST_CREATED, request.id)
    return request


@router.get("/", response_model=List[ServiceRequestSchema])
async def list_service_requests(
    status_filter: str = STATUS_ALL,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user),
):
    """
    List the caller's requests, newest first, optionally by status.
    """
    return await fetch_requests_for(db, current_user, parse_status_filter(status_filter))


@router.get("/{request_id}", response_model=ServiceRequestSchema)
async def get_service_request(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user),
):
    """
    Get a request the caller is party to.
    """
    return await _get_visible_request(db, request_id, current_user)


@router.post("/{request_id}/accept", response_model=ServiceRequestSchema)
async def accept_service_request(
    request_id: int,
    body: Optional[AcceptRequest] = None,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    current_user: Profile = Depends(require_provider),
):
    """
    Accept a pending request and charge it.

    The request is claimed first so a concurrent accept fails with 409; if
    the charge then fails the request goes back to pending.
    """
    request = await _get_assigned_request(db, request_id, current_user)

    price = body.estimated_price if body and body.estimated_price is not None else request.estimated_price
    if price is None:
        raise ValidationFailed(MESSAGES["missing_price"])
    price = to_decimal(price)
    previous_price = request.estimated_price

    request = await workflow.apply(db, request, Action.ACCEPT, estimated_price=price)
    try:
        await process_payment(
            db,
            gateway,
            amount=price,
            service_type=request.service_type.value,
            service_id=request.id,
            provider_id=current_user.id,
        )
    except Exception:
        logger.warning("Payment for request %s failed, releasing it", request_id)
        await workflow.release(db, request, estimated_price=previous_price)
        raise

    await notify(db, request.user_id, NotificationType.REQUEST_ACCEPTED, request.id)
    return request


@router.post("/{request_id}/start", response_model=ServiceRequestSchema)
async def start_service_request(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_provider),
):
    """Mark an accepted request as in progress."""
    request = await _get_assigned_request(db, request_id, current_user)
    return await workflow.apply(db, request, Action.START)


@router.post("/{request_id}/complete", response_model=ServiceRequestSchema)
async def complete_service_request(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_provider),
):
    """Mark an accepted or in-progress request as completed."""
    request = await _get_assigned_request(db, request_id, current_user)
    request = await workflow.apply(db, request, Action.COMPLETE)
    await notify(db, request.user_id, NotificationType.REQUEST_COMPLETED, request.id)
    return request


@router.post("/{request_id}/reject", response_model=ServiceRequestSchema)
async def reject_service_request(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_provider),
):
    """Decline a pending request."""
    request = await _get_assigned_request(db, request_id, current_user)
    request = await workflow.apply(db, request, Action.REJECT)
    await notify(db, request.user_id, NotificationType.REQUEST_REJECTED, request.id)
    return request


@router.post("/{request_id}/cancel", response_model=ServiceRequestSchema)
async def cancel_service_request(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user),
):
    """Cancel a pending request. Either party may cancel."""
    request = await _get_visible_request(db, request_id, current_user)
    request = await workflow.apply(db, request, Action.CANCEL)
    other_party = request.provider_id if current_user.id == request.user_id else request.user_id
    await notify(db, other_party, NotificationType.REQUEST_CANCELLED, request.id)
    return request
