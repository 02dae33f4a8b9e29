"""
Payment routes.

``POST /api/payment`` keeps the contract the web client was built against:
camelCase body in, ``{clientSecret, paymentIntentId}`` or ``{error}`` out.
A charge always belongs to an accepted service request the caller is party
to; asking again for a request that was already charged returns the same
intent instead of charging twice.
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from sos_mecanicos.auth import get_current_active_user
from sos_mecanicos.database import get_db
from sos_mecanicos.errors import MESSAGES, AppError, NotFound, PermissionDenied, ValidationFailed
from sos_mecanicos.models.payment import Payment
from sos_mecanicos.models.profile import Profile
from sos_mecanicos.models.service_request import ServiceRequest
from sos_mecanicos.schemas.payment import Payment as PaymentSchema, PaymentIntentResponse, PaymentRequest
from sos_mecanicos.services import payments
from sos_mecanicos.services.gateway import PaymentGateway, get_payment_gateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment", tags=["payments"])


async def _get_visible_payment(db: AsyncSession, payment_intent_id: str, user: Profile) -> Payment:
    payment = await payments.get_payment(db, payment_intent_id)
    if payment.provider_id == user.id:
        return payment
    request = await db.get(ServiceRequest, payment.service_id)
    if request is not None and request.user_id == user.id:
        return payment
    raise NotFound(MESSAGES["payment_not_found"])


async def _charge(db: AsyncSession, gateway: PaymentGateway, data: PaymentRequest, user: Profile):
    request = await db.get(ServiceRequest, data.service_id)
    if request is None or user.id not in (request.user_id, request.provider_id):
        raise NotFound(MESSAGES["request_not_found"])

    existing = await payments.find_payment(db, data.service_type, data.service_id)
    if existing is not None:
        if existing.provider_id != data.provider_id or payments.to_decimal(data.amount) != existing.amount:
            raise ValidationFailed(MESSAGES["payment_mismatch"])
        logger.info("Request %s already charged, returning intent %s", request.id, existing.payment_intent_id)
        return existing, await payments.client_secret_for(gateway, existing)

    payments.check_payable(request, data.service_type, data.provider_id, data.amount)
    return await payments.process_payment(
        db,
        gateway,
        amount=data.amount,
        service_type=data.service_type,
        service_id=data.service_id,
        provider_id=data.provider_id,
    )


@router.post("", response_model=PaymentIntentResponse)
async def create_payment(
    data: PaymentRequest,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    current_user: Profile = Depends(get_current_active_user),
):
    """
    Charge an accepted service request, split between the platform and
    the provider.
    """
    try:
        payment, client_secret = await _charge(db, gateway, data, current_user)
    except AppError as exc:
        logger.error("Payment processing error for %s %s: %s", data.service_type, data.service_id, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    return PaymentIntentResponse(client_secret=client_secret, payment_intent_id=payment.payment_intent_id)


@router.get("/{payment_intent_id}", response_model=PaymentSchema)
async def get_payment_status(
    payment_intent_id: str,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    current_user: Profile = Depends(get_current_active_user),
):
    """
    Get a payment with its status refreshed from the provider.
    """
    payment = await _get_visible_payment(db, payment_intent_id, current_user)
    return await payments.refresh_status(db, gateway, payment)


@router.post("/{payment_intent_id}/refund", response_model=PaymentSchema)
async def refund_payment(
    payment_intent_id: str,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    current_user: Profile = Depends(get_current_active_user),
):
    """
    Refund a payment and reverse the provider's transfer. Only the provider
    who received it may refund.
    """
    payment = await _get_visible_payment(db, payment_intent_id, current_user)
    if payment.provider_id != current_user.id:
        raise PermissionDenied()
    return await payments.refund(db, gateway, payment)
