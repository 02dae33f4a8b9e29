"""
Public contact forms: support, partnership and job applications.
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from sos_mecanicos.database import get_db
from sos_mecanicos.models.contact import JobApplication, PartnerApplication, SupportTicket
from sos_mecanicos.schemas.contact import (
    ContactReceipt,
    JobApplicationCreate,
    PartnerApplicationCreate,
    SupportTicketCreate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contact", tags=["contact"])


async def _store(db: AsyncSession, record):
    db.add(record)
    await db.commit()
    await db.refresh(record)
    logger.info("Stored %s %s", record.__tablename__, record.id)
    return record


@router.post("/support", response_model=ContactReceipt, status_code=status.HTTP_201_CREATED)
async def create_support_ticket(data: SupportTicketCreate, db: AsyncSession = Depends(get_db)):
    ticket = await _store(db, SupportTicket(**data.model_dump()))
    return ContactReceipt(id=ticket.id, message="Mensagem enviada! Responderemos em breve.")


@router.post("/partners", response_model=ContactReceipt, status_code=status.HTTP_201_CREATED)
async def create_partner_application(data: PartnerApplicationCreate, db: AsyncSession = Depends(get_db)):
    application = await _store(db, PartnerApplication(**data.model_dump()))
    return ContactReceipt(id=application.id, message="Sua solicitação de parceria está em análise!")


@router.post("/applications", response_model=ContactReceipt, status_code=status.HTTP_201_CREATED)
async def create_job_application(data: JobApplicationCreate, db: AsyncSession = Depends(get_db)):
    application = await _store(db, JobApplication(**data.model_dump()))
    return ContactReceipt(id=application.id, message="Candidatura recebida com sucesso!")
