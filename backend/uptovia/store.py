"""Persistence store used by the monitoring engine.

Every operation takes the caller's ``AsyncSession`` so that several of them
can be grouped into one transaction (the recorder writes history, live state
and uptime together). ``session()`` opens a new session from the factory.
"""
import json
import logging
from datetime import datetime, timedelta
from typing import List, NamedTuple, Optional

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .models import Alert, CheckResult, Device, Monitor
from .utils.clock import utcnow

logger = logging.getLogger(__name__)

UPTIME_WINDOW = timedelta(hours=24)

# Columns the engine is allowed to write on a monitor
LIVE_STATE_FIELDS = frozenset({
    "current_status",
    "last_check",
    "last_up_time",
    "last_down_time",
    "avg_response_time",
    "uptime_percentage",
    "updated_at",
})


class WindowStats(NamedTuple):
    """Check counts within the rolling uptime window."""
    total: int
    successful: int


class MonitorStore:
    """Narrow read/write contract over the monitoring tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    def session(self) -> AsyncSession:
        """Open a new session; use as ``async with store.session() as session``."""
        return self._session_factory()

    async def list_active_monitors(self, session: AsyncSession) -> List[Monitor]:
        """All monitors eligible for scheduling."""
        result = await session.execute(
            select(Monitor).where(Monitor.active.is_(True)).order_by(Monitor.id)
        )
        return list(result.scalars().all())

    async def insert_check_result(
        self,
        session: AsyncSession,
        monitor_id: int,
        status: str,
        response_time: Optional[int],
        status_code: Optional[int],
        error_message: Optional[str],
        checked_at: Optional[datetime] = None,
    ) -> CheckResult:
        row = CheckResult(
            monitor_id=monitor_id,
            status=status,
            response_time=response_time,
            status_code=status_code,
            error_message=error_message,
            checked_at=checked_at or utcnow(),
        )
        session.add(row)
        return row

    async def update_monitor_live_state(self, session: AsyncSession, monitor_id: int, **fields) -> bool:
        """Update engine-owned fields.

        Returns False when the monitor no longer exists, which is not an error:
        the CRUD layer may delete a monitor while its check is in flight.
        """
        unknown = set(fields) - LIVE_STATE_FIELDS
        if unknown:
            raise ValueError(f"Not live-state fields: {', '.join(sorted(unknown))}")
        if not fields:
            return True

        result = await session.execute(
            update(Monitor)
            .where(Monitor.id == monitor_id)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def compute_24h_stats(
        self,
        session: AsyncSession,
        monitor_id: int,
        now: Optional[datetime] = None,
    ) -> WindowStats:
        """Count checks (and successful ones) inside the trailing 24 hours."""
        cutoff = (now or utcnow()) - UPTIME_WINDOW
        result = await session.execute(
            select(
                func.count(CheckResult.id),
                func.count(case((CheckResult.status == "up", 1))),
            ).where(
                CheckResult.monitor_id == monitor_id,
                CheckResult.checked_at > cutoff,
            )
        )
        total, successful = result.one()
        return WindowStats(total=int(total or 0), successful=int(successful or 0))

    async def list_devices_for_user(self, session: AsyncSession, user_id: int) -> List[Device]:
        result = await session.execute(
            select(Device)
            .where(Device.user_id == user_id, Device.enabled == 1)
            .order_by(Device.id)
        )
        return list(result.scalars().all())

    async def delete_device(self, session: AsyncSession, device_token: str) -> bool:
        """Remove a device token. Returns False if it was already gone."""
        result = await session.execute(
            delete(Device).where(Device.device_token == device_token)
        )
        return result.rowcount > 0

    async def insert_alert(
        self,
        session: AsyncSession,
        monitor_id: int,
        alert_type: str,
        channel: str,
        payload: dict,
        success: bool,
    ) -> Alert:
        alert = Alert(
            monitor_id=monitor_id,
            alert_type=alert_type,
            channel=channel,
            payload=json.dumps(payload),
            success=1 if success else 0,
        )
        session.add(alert)
        return alert
