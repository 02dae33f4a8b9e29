"""
Proposal routes.

The provider a request is addressed to may send priced proposals while it
is pending. The platform fee is added on top of the provider's value. When
the client accepts one, the request is claimed and charged for the total
and the request's other pending proposals are declined. The client later
confirms completion.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sos_mecanicos.auth import get_current_active_user
from sos_mecanicos.config import get_settings
from sos_mecanicos.database import get_db
from sos_mecanicos.errors import MESSAGES, InvalidTransition, NotFound, PermissionDenied
from sos_mecanicos.models.notification import NotificationType
from sos_mecanicos.models.profile import Profile, UserRole
from sos_mecanicos.models.proposal import Proposal, ProposalStatus
from sos_mecanicos.models.service_request import RequestStatus, ServiceRequest
from sos_mecanicos.routers.service_requests import require_client, require_provider
from sos_mecanicos.schemas.payment import PaymentIntentResponse
from sos_mecanicos.schemas.proposal import (
    Proposal as ProposalSchema,
    ProposalAccepted,
    ProposalCreate,
)
from sos_mecanicos.services import workflow
from sos_mecanicos.services.gateway import PaymentGateway, get_payment_gateway
from sos_mecanicos.services.notifications import format_brl, notify
from sos_mecanicos.services.payments import process_payment, proposal_amounts, to_decimal
from sos_mecanicos.services.workflow import Action

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(prefix="/proposals", tags=["proposals"])


def _party_column(user: Profile):
    if user.role is UserRole.CLIENT:
        return Proposal.client_id
    if user.role.is_provider:
        return Proposal.provider_id
    raise PermissionDenied()


async def _get_visible_proposal(db: AsyncSession, proposal_id: int, user: Profile) -> Proposal:
    proposal = await db.get(Proposal, proposal_id)
    if proposal is None or user.id not in (proposal.client_id, proposal.provider_id):
        raise NotFound(MESSAGES["proposal_not_found"])
    return proposal


async def _get_client_proposal(db: AsyncSession, proposal_id: int, client: Profile) -> Proposal:
    proposal = await db.get(Proposal, proposal_id)
    if proposal is None or proposal.client_id != client.id:
        raise NotFound(MESSAGES["proposal_not_found"])
    return proposal


@router.post("", response_model=ProposalSchema, status_code=status.HTTP_201_CREATED)
async def create_proposal(
    data: ProposalCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_provider),
):
    """
    Offer a price for a pending request addressed to the caller.
    """
    request = await db.get(ServiceRequest, data.service_request_id)
    if request is None or request.provider_id != current_user.id:
        raise NotFound(MESSAGES["request_not_found"])
    if request.status is not RequestStatus.PENDING:
        raise InvalidTransition(request.status, "propose")

    platform_fee, total_value = proposal_amounts(data.original_value, settings.platform_fee_percentage)
    proposal = Proposal(
        service_request_id=request.id,
        provider_id=current_user.id,
        client_id=request.user_id,
        original_value=to_decimal(data.original_value),
        platform_fee=platform_fee,
        total_value=total_value,
        description=data.description,
        status=ProposalStatus.PENDING,
    )
    db.add(proposal)
    await db.commit()
    await db.refresh(proposal)

    logger.info("Provider %s proposed %s for request %s", current_user.id, total_value, request.id)
    await notify(db, proposal.client_id, NotificationType.PROPOSAL, proposal.id, value=format_brl(total_value))
    return proposal


@router.get("", response_model=List[ProposalSchema])
async def list_proposals(
    service_request_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user),
):
    """
    Proposals the caller sent or received, newest first.
    """
    query = select(Proposal).where(_party_column(current_user) == current_user.id)
    if service_request_id is not None:
        query = query.where(Proposal.service_request_id == service_request_id)
    result = await db.execute(query.order_by(Proposal.created_at.desc(), Proposal.id.desc()))
    return result.scalars().all()


@router.get("/{proposal_id}", response_model=ProposalSchema)
async def get_proposal(
    proposal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user),
):
    return await _get_visible_proposal(db, proposal_id, current_user)


@router.post("/{proposal_id}/accept", response_model=ProposalAccepted)
async def accept_proposal(
    proposal_id: int,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    current_user: Profile = Depends(require_client),
):
    """
    Accept a proposal: claim it and its request, then charge the total.

    If any step fails both claims are undone and the error is returned.
    """
    proposal = await _get_client_proposal(db, proposal_id, current_user)
    request = await db.get(ServiceRequest, proposal.service_request_id)
    previous_price = request.estimated_price

    proposal = await workflow.compare_and_set(
        db, proposal, ProposalStatus.PENDING, ProposalStatus.ACCEPTED,
        conflict_message=MESSAGES["proposal_closed"],
    )
    try:
        request = await workflow.apply(db, request, Action.ACCEPT, estimated_price=proposal.total_value)
    except Exception:
        await workflow.revert(db, proposal, ProposalStatus.ACCEPTED, ProposalStatus.PENDING)
        raise

    try:
        payment, client_secret = await process_payment(
            db,
            gateway,
            amount=proposal.total_value,
            service_type=request.service_type.value,
            service_id=request.id,
            provider_id=proposal.provider_id,
            platform_fee=proposal.platform_fee,
        )
    except Exception:
        logger.warning("Payment for proposal %s failed, releasing it", proposal_id)
        await workflow.release(db, request, estimated_price=previous_price)
        await workflow.revert(db, proposal, ProposalStatus.ACCEPTED, ProposalStatus.PENDING)
        raise

    proposal.payment_id = payment.id
    await db.execute(
        update(Proposal)
        .where(
            Proposal.service_request_id == request.id,
            Proposal.status == ProposalStatus.PENDING,
            Proposal.id != proposal.id,
        )
        .values(status=ProposalStatus.REJECTED)
    )
    await db.commit()
    await db.refresh(proposal)

    await notify(db, proposal.provider_id, NotificationType.PROPOSAL_ACCEPTED, proposal.id)
    return ProposalAccepted(
        proposal=ProposalSchema.model_validate(proposal),
        payment=PaymentIntentResponse(client_secret=client_secret, payment_intent_id=payment.payment_intent_id),
    )


@router.post("/{proposal_id}/reject", response_model=ProposalSchema)
async def reject_proposal(
    proposal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_client),
):
    """Decline a pending proposal."""
    proposal = await _get_client_proposal(db, proposal_id, current_user)
    proposal = await workflow.compare_and_set(
        db, proposal, ProposalStatus.PENDING, ProposalStatus.REJECTED,
        conflict_message=MESSAGES["proposal_closed"],
    )
    await notify(db, proposal.provider_id, NotificationType.PROPOSAL_REJECTED, proposal.id)
    return proposal


@router.post("/{proposal_id}/complete", response_model=ProposalSchema)
async def complete_proposal(
    proposal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_client),
):
    """
    Confirm the accepted service was delivered. Completes the request too
    unless the provider already did.
    """
    proposal = await _get_client_proposal(db, proposal_id, current_user)
    proposal = await workflow.compare_and_set(
        db, proposal, ProposalStatus.ACCEPTED, ProposalStatus.COMPLETED,
        conflict_message=MESSAGES["proposal_closed"],
    )
    request = await db.get(ServiceRequest, proposal.service_request_id)
    if request is not None and request.status is not RequestStatus.COMPLETED:
        await workflow.apply(db, request, Action.COMPLETE)

    await notify(db, proposal.provider_id, NotificationType.SERVICE_COMPLETED, proposal.id)
    return proposal
