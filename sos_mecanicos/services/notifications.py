"""
In-app notification inbox.

Rows are written in the same request as the event they describe; there is
no push delivery.
"""
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from sos_mecanicos.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)

TEMPLATES = {
    NotificationType.REQUEST_CREATED: ("Nova Solicitação", "Você recebeu uma nova solicitação de serviço."),
    NotificationType.REQUEST_ACCEPTED: ("Solicitação Aceita", "O prestador aceitou sua solicitação."),
    NotificationType.REQUEST_REJECTED: ("Solicitação Recusada", "O prestador recusou sua solicitação."),
    NotificationType.REQUEST_CANCELLED: ("Solicitação Cancelada", "Uma solicitação de serviço foi cancelada."),
    NotificationType.REQUEST_COMPLETED: ("Serviço Finalizado", "O prestador marcou o serviço como concluído."),
    NotificationType.PROPOSAL: ("Nova Proposta Recebida", "Um prestador enviou uma proposta de R$ {value}"),
    NotificationType.PROPOSAL_ACCEPTED: (
        "Proposta Aceita", "O cliente aceitou sua proposta e realizou o pagamento",
    ),
    NotificationType.PROPOSAL_REJECTED: ("Proposta Recusada", "O cliente recusou sua proposta."),
    NotificationType.SERVICE_COMPLETED: (
        "Serviço Concluído",
        "O cliente confirmou a conclusão do serviço. O pagamento será liberado em breve.",
    ),
}


def format_brl(value: Decimal) -> str:
    return f"{Decimal(value):.2f}"


async def notify(
    db: AsyncSession,
    user_id: Optional[int],
    kind: NotificationType,
    reference_id: Optional[int] = None,
    **params,
) -> Optional[Notification]:
    """Store a notification for ``user_id`` and commit it."""
    if user_id is None:
        return None
    title, template = TEMPLATES[kind]
    notification = Notification(
        user_id=user_id,
        title=title,
        message=template.format(**params),
        type=kind,
        reference_id=reference_id,
        read=False,
    )
    db.add(notification)
    await db.commit()
    logger.info("Notified user %s: %s (%s)", user_id, kind.value, reference_id)
    return notification
