"""
Payment split workflow.

An accepted service is charged through a payment intent for the full
amount; the platform keeps its fee and the remainder is transferred to the
provider's connected account. The payment row is written last, and if that
write fails the transfer is reversed and the intent cancelled.

A service request is charged at most once: ``payments`` is unique on
``(service_type, service_id)``.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sos_mecanicos.config import get_settings
from sos_mecanicos.errors import MESSAGES, Conflict, InvalidTransition, NotFound, PaymentError, ValidationFailed
from sos_mecanicos.models.payment import Payment, PaymentStatus
from sos_mecanicos.models.profile import Profile
from sos_mecanicos.models.service_request import RequestStatus, ServiceRequest
from sos_mecanicos.services.gateway import PaymentGateway

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
DEFAULT_FEE_PERCENTAGE = Decimal("0.10")

Amount = Union[Decimal, float, int, str]

# Stripe payment intent status -> our payment status
INTENT_STATUS_MAP = {
    "succeeded": PaymentStatus.PAID,
    "processing": PaymentStatus.PROCESSING,
    "canceled": PaymentStatus.FAILED,
}

PAYABLE_STATUSES = frozenset({RequestStatus.ACCEPTED, RequestStatus.IN_PROGRESS})
CLOSED_PAYMENT_STATUSES = frozenset({PaymentStatus.FAILED, PaymentStatus.REFUNDED})


def to_decimal(amount: Amount) -> Decimal:
    """Normalize a currency amount to cents precision."""
    return Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Amount) -> int:
    return int((to_decimal(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def fee_for(amount: Amount, fee_percentage: Amount = DEFAULT_FEE_PERCENTAGE) -> Decimal:
    return (to_decimal(amount) * Decimal(str(fee_percentage))).quantize(CENT, rounding=ROUND_HALF_UP)


def split_amount(amount: Amount, fee_percentage: Amount = DEFAULT_FEE_PERCENTAGE) -> Tuple[Decimal, Decimal]:
    """
    Return ``(platform_fee, provider_amount)`` for ``amount``.

    The fee is rounded half-up to cents and the provider receives the exact
    remainder, so the two parts always add back up to the amount.
    """
    total = to_decimal(amount)
    fee = fee_for(total, fee_percentage)
    return fee, total - fee


def proposal_amounts(original_value: Amount, fee_percentage: Amount = DEFAULT_FEE_PERCENTAGE) -> Tuple[Decimal, Decimal]:
    """
    Return ``(platform_fee, total_value)`` for a provider's proposal.

    The fee is charged on top of the provider's value, so the provider is
    paid exactly what they proposed.
    """
    original = to_decimal(original_value)
    fee = fee_for(original, fee_percentage)
    return fee, original + fee


def check_payable(
    request: ServiceRequest,
    service_type: str,
    provider_id: int,
    amount: Amount,
) -> None:
    """Refuse a charge that does not match an accepted request exactly."""
    if request.service_type.value != service_type or request.provider_id != provider_id:
        raise ValidationFailed(MESSAGES["payment_mismatch"])
    if request.status not in PAYABLE_STATUSES:
        raise InvalidTransition(request.status, "pay")
    if request.estimated_price is None or to_decimal(amount) != to_decimal(request.estimated_price):
        raise ValidationFailed(MESSAGES["payment_mismatch"])


async def find_payment(db: AsyncSession, service_type: str, service_id: int) -> Optional[Payment]:
    result = await db.execute(
        select(Payment).where(Payment.service_type == service_type, Payment.service_id == service_id)
    )
    return result.scalar_one_or_none()


async def client_secret_for(gateway: PaymentGateway, payment: Payment) -> str:
    """Client secret of an existing payment's intent, for the payer to confirm it."""
    if payment.status in CLOSED_PAYMENT_STATUSES:
        raise Conflict(MESSAGES["payment_closed"])
    intent = await gateway.retrieve_payment_intent(payment.payment_intent_id)
    if not intent.get("client_secret"):
        raise PaymentError(cause=f"intent {payment.payment_intent_id} has no client secret")
    return intent["client_secret"]


async def _compensate(gateway: PaymentGateway, payment_intent_id: str, transfer_id: str = None) -> None:
    if transfer_id:
        try:
            await gateway.reverse_transfer(transfer_id)
            logger.warning("Reversed transfer %s", transfer_id)
        except PaymentError as exc:
            logger.error("Could not reverse transfer %s: %s", transfer_id, exc.cause)
    try:
        await gateway.cancel_payment_intent(payment_intent_id)
        logger.warning("Cancelled payment intent %s", payment_intent_id)
    except PaymentError as exc:
        logger.error("Could not cancel payment intent %s: %s", payment_intent_id, exc.cause)


async def process_payment(
    db: AsyncSession,
    gateway: PaymentGateway,
    amount: Amount,
    service_type: str,
    service_id: int,
    provider_id: int,
    fee_percentage: Amount = None,
    platform_fee: Amount = None,
) -> Tuple[Payment, str]:
    """
    Charge a service and pay out the provider.

    The fee is ``fee_percentage`` of ``amount`` unless ``platform_fee`` is
    given, as it is for proposals whose fee was fixed when they were made.
    Returns the stored payment and the intent's client secret.
    """
    provider = await db.get(Profile, provider_id)
    if provider is None or not provider.role.is_provider:
        raise NotFound(MESSAGES["provider_not_found"])
    if not provider.stripe_account_id:
        raise PaymentError(MESSAGES["missing_payment_account"])

    total = to_decimal(amount)
    if platform_fee is None:
        if fee_percentage is None:
            fee_percentage = get_settings().platform_fee_percentage
        platform_fee, provider_amount = split_amount(total, fee_percentage)
    else:
        platform_fee = to_decimal(platform_fee)
        if platform_fee < 0 or platform_fee > total:
            raise ValidationFailed(MESSAGES["payment_mismatch"])
        provider_amount = total - platform_fee
    transfer_group = f"{service_type}-{service_id}"

    intent = await gateway.create_payment_intent(
        to_minor_units(total),
        transfer_group,
        metadata={
            "service_type": service_type,
            "service_id": service_id,
            "provider_id": provider_id,
            "platform_fee": str(platform_fee),
        },
    )
    logger.info("Created payment intent %s for %s %s (%s)", intent["id"], service_type, service_id, total)

    try:
        transfer = await gateway.create_transfer(
            to_minor_units(provider_amount),
            provider.stripe_account_id,
            transfer_group,
            intent["id"],
        )
    except PaymentError:
        await _compensate(gateway, intent["id"])
        raise
    logger.info("Transferred %s to provider %s (transfer %s)", provider_amount, provider_id, transfer["id"])

    payment = Payment(
        payment_intent_id=intent["id"],
        transfer_id=transfer["id"],
        amount=total,
        platform_fee=platform_fee,
        provider_amount=provider_amount,
        currency=gateway.currency,
        service_type=service_type,
        service_id=service_id,
        provider_id=provider_id,
        status=PaymentStatus.PENDING,
    )
    db.add(payment)
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Storing payment %s failed, compensating: %s", intent["id"], exc)
        await _compensate(gateway, intent["id"], transfer["id"])
        raise PaymentError(cause=str(exc))
    await db.refresh(payment)

    return payment, intent["client_secret"]


async def get_payment(db: AsyncSession, payment_intent_id: str) -> Payment:
    result = await db.execute(select(Payment).where(Payment.payment_intent_id == payment_intent_id))
    payment = result.scalar_one_or_none()
    if payment is None:
        raise NotFound(MESSAGES["payment_not_found"])
    return payment


async def refresh_status(db: AsyncSession, gateway: PaymentGateway, payment: Payment) -> Payment:
    """Pull the intent status from the provider and store it."""
    if payment.status is PaymentStatus.REFUNDED:
        return payment
    intent = await gateway.retrieve_payment_intent(payment.payment_intent_id)
    status = INTENT_STATUS_MAP.get(intent.get("status"), PaymentStatus.PENDING)
    if status is not payment.status:
        logger.info("Payment %s: %s -> %s", payment.payment_intent_id, payment.status.value, status.value)
        payment.status = status
        await db.commit()
        await db.refresh(payment)
    return payment


async def refund(db: AsyncSession, gateway: PaymentGateway, payment: Payment) -> Payment:
    """
    Refund the payer and pull the provider's share back.

    The transfer is reversed before the refund is issued, so a failed
    reversal leaves the payment untouched.
    """
    if payment.status is PaymentStatus.REFUNDED:
        return payment
    if payment.transfer_id:
        await gateway.reverse_transfer(payment.transfer_id)
        logger.info("Reversed transfer %s of payment %s", payment.transfer_id, payment.payment_intent_id)
    try:
        await gateway.create_refund(payment.payment_intent_id)
    except PaymentError:
        logger.error(
            "Refund of %s failed after transfer %s was reversed",
            payment.payment_intent_id, payment.transfer_id,
        )
        raise
    payment.status = PaymentStatus.REFUNDED
    await db.commit()
    await db.refresh(payment)
    logger.info("Refunded payment %s", payment.payment_intent_id)
    return payment
