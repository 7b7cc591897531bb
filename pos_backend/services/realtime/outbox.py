"""
Transactional Outbox

Write handlers never talk to the realtime channel directly. They add an
OutboxEvent to the same transaction as their data change; once that
transaction commits, the dispatcher publishes the queued events. An event
is therefore never broadcast for a change that was rolled back, and a
committed change whose broadcast failed is retried by the background sweep.

Usage:
    enqueue_event(session, "pedidoAprobado", {"id": 12})
    await session.commit()
    await dispatcher.dispatch_safely(session)

Author: POS Backend Team
Version: 1.0.0
"""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pos_backend.core.config import get_settings
from pos_backend.models import OutboxEvent, OutboxStatus, utcnow
from pos_backend.services.realtime.base import BaseBroadcaster
from pos_backend.services.realtime.registry import SessionRegistry

logger = logging.getLogger(__name__)


def enqueue_event(
    session: AsyncSession,
    event: str,
    payload: dict[str, Any],
    target_phone: Optional[str] = None,
) -> OutboxEvent:
    """
    Queue an event inside the caller's transaction. Does not commit.

    Args:
        session: Session holding the caller's unit of work
        event: Client-facing event name
        payload: JSON-serializable body
        target_phone: Customer phone for single-session delivery; None broadcasts
    """
    outbox_event = OutboxEvent(
        event=event,
        payload=payload,
        target=target_phone,
        status=OutboxStatus.QUEUED,
        attempts=0,
    )
    session.add(outbox_event)
    return outbox_event


class OutboxDispatcher:
    """Publishes committed outbox events through a broadcaster."""

    def __init__(
        self,
        broadcaster: BaseBroadcaster,
        registry: SessionRegistry,
        max_attempts: Optional[int] = None,
        batch_size: Optional[int] = None,
        retention_days: Optional[int] = None,
    ):
        settings = get_settings()
        self.broadcaster = broadcaster
        self.registry = registry
        self.max_attempts = max_attempts or settings.outbox_max_attempts
        self.batch_size = batch_size or settings.outbox_batch_size
        self.retention = timedelta(days=retention_days or settings.outbox_retention_days)
        self._lock = asyncio.Lock()

    async def dispatch_pending(self, session: AsyncSession, limit: Optional[int] = None) -> int:
        """
        Publish queued events, oldest first.

        Targeted events whose phone has no live session are marked dropped;
        they are never queued for later delivery.

        Returns:
            Number of events delivered in this run
        """
        delivered = 0
        async with self._lock:
            result = await session.execute(
                select(OutboxEvent)
                .where(OutboxEvent.status == OutboxStatus.QUEUED)
                .order_by(OutboxEvent.id)
                .limit(limit or self.batch_size)
            )
            events = result.scalars().all()
            if not events:
                return 0

            for outbox_event in events:
                if await self._publish(outbox_event):
                    delivered += 1

            await session.commit()

        logger.debug(f"Outbox run: {delivered}/{len(events)} delivered")
        return delivered

    async def dispatch_safely(self, session: AsyncSession) -> int:
        """
        Dispatch after a handler's commit without failing the request.

        The data change is already durable; on a storage error the events
        stay queued for the background sweep.
        """
        try:
            return await self.dispatch_pending(session)
        except SQLAlchemyError as e:
            logger.error(f"Outbox dispatch deferred to sweep: {e}")
            await session.rollback()
            return 0

    async def purge_finished(self, session: AsyncSession, older_than: Optional[timedelta] = None) -> int:
        """
        Delete delivered and dropped events dispatched before the retention window.

        Failed events are kept for inspection.

        Returns:
            Number of rows removed
        """
        cutoff = utcnow() - (older_than or self.retention)
        result = await session.execute(
            delete(OutboxEvent)
            .where(
                OutboxEvent.status.in_([OutboxStatus.DELIVERED, OutboxStatus.DROPPED]),
                OutboxEvent.dispatched_at < cutoff,
            )
            .execution_options(synchronize_session=False)
        )
        await session.commit()

        if result.rowcount:
            logger.info(f"Purged {result.rowcount} finished outbox events")
        return result.rowcount

    async def _publish(self, outbox_event: OutboxEvent) -> bool:
        try:
            if outbox_event.target is None:
                await self.broadcaster.broadcast(outbox_event.event, outbox_event.payload)
            else:
                session_id = self.registry.lookup(outbox_event.target)
                if session_id is None:
                    outbox_event.status = OutboxStatus.DROPPED
                    outbox_event.dispatched_at = utcnow()
                    logger.info(
                        f"No live session for {outbox_event.target}; "
                        f"dropped {outbox_event.event} #{outbox_event.id}"
                    )
                    return False
                await self.broadcaster.send_to(session_id, outbox_event.event, outbox_event.payload)
        except Exception as e:
            outbox_event.attempts += 1
            outbox_event.last_error = str(e)
            if outbox_event.attempts >= self.max_attempts:
                outbox_event.status = OutboxStatus.FAILED
                logger.error(f"Outbox event #{outbox_event.id} ({outbox_event.event}) failed: {e}")
            else:
                logger.warning(
                    f"Outbox event #{outbox_event.id} attempt {outbox_event.attempts} failed: {e}"
                )
            return False

        outbox_event.status = OutboxStatus.DELIVERED
        outbox_event.dispatched_at = utcnow()
        return True


async def run_outbox_sweeper(
    dispatcher: OutboxDispatcher,
    session_maker: async_sessionmaker,
    interval: float,
) -> None:
    """
    Background loop re-dispatching events left queued and purging finished
    ones past retention. Runs until cancelled.
    """
    logger.info(f"Outbox sweeper started (every {interval}s)")
    while True:
        await asyncio.sleep(interval)
        try:
            async with session_maker() as session:
                await dispatcher.dispatch_pending(session)
                await dispatcher.purge_finished(session)
        except SQLAlchemyError as e:
            logger.error(f"Outbox sweep failed: {e}")
