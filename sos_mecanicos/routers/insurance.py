"""
Insurer routes: quotes and coverage plans.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sos_mecanicos.auth import get_current_active_user, require_roles
from sos_mecanicos.database import get_db
from sos_mecanicos.errors import MESSAGES, InvalidTransition, NotFound
from sos_mecanicos.models.insurance import InsurancePlan, InsuranceQuote, QuoteStatus
from sos_mecanicos.models.profile import Profile, UserRole
from sos_mecanicos.schemas.insurance import (
    InsurancePlan as InsurancePlanSchema,
    InsurancePlanCreate,
    InsuranceQuote as InsuranceQuoteSchema,
    InsuranceQuoteCreate,
    InsuranceQuoteUpdate,
)
from sos_mecanicos.services import workflow
from sos_mecanicos.services.payments import to_decimal

router = APIRouter(prefix="/insurance", tags=["insurance"])

require_insurer = require_roles(UserRole.INSURER)


async def settle_quote(db: AsyncSession, quote: InsuranceQuote, target: QuoteStatus) -> InsuranceQuote:
    """Move a pending quote to ``target``; a quote already settled elsewhere conflicts."""
    return await workflow.compare_and_set(
        db, quote, QuoteStatus.PENDING, target,
        conflict_message=MESSAGES["quote_already_settled"],
    )


@router.post("/quotes", response_model=InsuranceQuoteSchema, status_code=status.HTTP_201_CREATED)
async def create_quote(
    quote: InsuranceQuoteCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_insurer),
):
    """
    Issue a quote for a client's vehicle.
    """
    db_quote = InsuranceQuote(
        insurer_id=current_user.id,
        client_email=quote.client_email.lower(),
        vehicle_model=quote.vehicle_model,
        quote_value=to_decimal(quote.quote_value),
        status=QuoteStatus.PENDING,
    )
    db.add(db_quote)
    await db.commit()
    await db.refresh(db_quote)

    return db_quote


@router.get("/quotes", response_model=List[InsuranceQuoteSchema])
async def get_quotes(
    status_filter: Optional[QuoteStatus] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_insurer),
):
    """
    Get the insurer's quotes, newest first.
    """
    query = select(InsuranceQuote).where(InsuranceQuote.insurer_id == current_user.id)

    if status_filter:
        query = query.where(InsuranceQuote.status == status_filter)

    result = await db.execute(query.order_by(InsuranceQuote.created_at.desc(), InsuranceQuote.id.desc()))
    return result.scalars().all()


@router.patch("/quotes/{quote_id}", response_model=InsuranceQuoteSchema)
async def update_quote_status(
    quote_id: int,
    quote_update: InsuranceQuoteUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_insurer),
):
    """
    Settle a pending quote as accepted or rejected.
    """
    result = await db.execute(
        select(InsuranceQuote).where(
            InsuranceQuote.id == quote_id, InsuranceQuote.insurer_id == current_user.id
        )
    )
    db_quote = result.scalar_one_or_none()
    if not db_quote:
        raise NotFound(MESSAGES["quote_not_found"])

    if db_quote.status is not QuoteStatus.PENDING or quote_update.status is QuoteStatus.PENDING:
        raise InvalidTransition(db_quote.status, quote_update.status.value)

    return await settle_quote(db, db_quote, quote_update.status)


@router.post("/plans", response_model=InsurancePlanSchema, status_code=status.HTTP_201_CREATED)
async def create_plan(
    plan: InsurancePlanCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_insurer),
):
    """
    Publish a coverage plan.
    """
    db_plan = InsurancePlan(
        **{**plan.model_dump(), "monthly_price": to_decimal(plan.monthly_price)},
        created_by=current_user.id,
    )
    db.add(db_plan)
    await db.commit()
    await db.refresh(db_plan)

    return db_plan


@router.get("/plans", response_model=List[InsurancePlanSchema])
async def get_plans(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user),
):
    """
    Get every published plan.
    """
    result = await db.execute(select(InsurancePlan).order_by(InsurancePlan.monthly_price))
    return result.scalars().all()
