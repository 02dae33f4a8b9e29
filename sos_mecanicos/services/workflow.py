"""
Service request lifecycle.

    pending -> accepted -> in_progress -> completed
    pending -> cancelled | rejected
    accepted -> completed

Completed, cancelled and rejected are terminal. Status writes are
compare-and-set on the status the caller observed, so two providers
racing to accept the same request cannot both succeed. The same guarded
write settles quotes and proposals.
"""
import enum
import logging
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from sos_mecanicos.errors import MESSAGES, Conflict, InvalidTransition
from sos_mecanicos.models.service_request import RequestStatus, ServiceRequest

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    ACCEPT = "accept"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"
    REJECT = "reject"


TRANSITIONS = {
    Action.ACCEPT: ({RequestStatus.PENDING}, RequestStatus.ACCEPTED),
    Action.START: ({RequestStatus.ACCEPTED}, RequestStatus.IN_PROGRESS),
    Action.COMPLETE: ({RequestStatus.ACCEPTED, RequestStatus.IN_PROGRESS}, RequestStatus.COMPLETED),
    Action.CANCEL: ({RequestStatus.PENDING}, RequestStatus.CANCELLED),
    Action.REJECT: ({RequestStatus.PENDING}, RequestStatus.REJECTED),
}

TERMINAL_STATUSES = frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED, RequestStatus.REJECTED})


def next_status(current: RequestStatus, action: Action) -> RequestStatus:
    sources, target = TRANSITIONS[action]
    if current not in sources:
        raise InvalidTransition(current, action.value)
    return target


async def compare_and_set(
    db: AsyncSession,
    row,
    expected: enum.Enum,
    target: enum.Enum,
    conflict_message: str = MESSAGES["already_taken"],
    **values,
):
    """
    Write ``target`` only if the stored status of ``row`` is still ``expected``.

    ``row`` is any mapped instance with ``id`` and ``status`` columns. When
    another writer got there first the session is rolled back and
    ``Conflict`` is raised.
    """
    model = type(row)
    row_id = row.id
    stmt = (
        update(model)
        .where(model.id == row_id, model.status == expected)
        .values(status=target, **values)
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        await db.rollback()
        # row is expired after the rollback; log from the captured values only
        logger.warning(
            "%s %s left %s before it could move to %s",
            model.__tablename__, row_id, expected.value, target.value,
        )
        raise Conflict(conflict_message)
    await db.commit()
    await db.refresh(row)
    logger.info("%s %s: %s -> %s", model.__tablename__, row_id, expected.value, target.value)
    return row


async def revert(db: AsyncSession, row, expected: enum.Enum, target: enum.Enum, **values):
    """Undo a claim made earlier in the request, reloading ``row`` first."""
    # a failed step may have rolled the session back and expired the row
    await db.refresh(row)
    return await compare_and_set(db, row, expected, target, **values)


async def apply(db: AsyncSession, request: ServiceRequest, action: Action, **values) -> ServiceRequest:
    """Validate ``action`` against the current status and persist the result."""
    target = next_status(request.status, action)
    if target is RequestStatus.COMPLETED:
        values.setdefault("completed_at", datetime.now(timezone.utc))
    return await compare_and_set(db, request, request.status, target, **values)


async def release(db: AsyncSession, request: ServiceRequest, **values) -> ServiceRequest:
    """
    Hand an accepted request back to pending after its payment failed.

    ``values`` restores whatever the claim overwrote, such as the price.
    """
    return await revert(db, request, RequestStatus.ACCEPTED, RequestStatus.PENDING, **values)
