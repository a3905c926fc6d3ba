"""Reminder endpoints — manual, bulk and an on-demand scheduler tick."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ackflow.adapters.persistence.database import get_session
from ackflow.application.use_cases.reminder_scheduler import ReminderScheduler
from ackflow.application.use_cases.send_reminders import (
    SendBulkRemindersUseCase,
    SendReminderUseCase,
)
from ackflow.infrastructure.api.dependencies import (
    Actor,
    get_actor,
    get_bulk_reminders_uc,
    get_scheduler,
    get_send_reminder_uc,
)
from ackflow.infrastructure.api.schemas import (
    BulkReminderBody,
    serialize_bulk,
    serialize_dispatch,
)

router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.post("/bulk")
async def send_bulk(
    body: BulkReminderBody,
    actor: Actor = Depends(get_actor),
    uc: SendBulkRemindersUseCase = Depends(get_bulk_reminders_uc),
):
    """Remind many assignees; failures are reported per item."""
    result = await uc.execute(actor.organization_id, body.assignment_ids, actor.actor_id)
    return serialize_bulk(result)


@router.post("/tick")
async def run_tick(
    actor: Actor = Depends(get_actor),
    scheduler: ReminderScheduler = Depends(get_scheduler),
):
    """Run one scheduler pass now instead of waiting for the interval."""
    report = await scheduler.tick()
    return {"status": "ok", "requested_by": actor.actor_id, **report.to_dict()}


@router.post("/{assignment_id}")
async def send_one(
    assignment_id: int,
    actor: Actor = Depends(get_actor),
    uc: SendReminderUseCase = Depends(get_send_reminder_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.execute(actor.organization_id, assignment_id, actor.actor_id)
    await session.commit()
    return serialize_dispatch(result)
