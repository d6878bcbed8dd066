"""Result recorder - persists check outcomes and refreshes live monitor fields."""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ..store import MonitorStore
from ..utils.clock import utcnow
from ..utils.db_utils import retry_on_transient_error
from .checker import CheckOutcome

logger = logging.getLogger(__name__)


def compute_uptime_percentage(total: int, successful: int) -> Optional[float]:
    """Uptime over the window, two decimals; None when there is nothing to divide."""
    if total <= 0:
        return None
    return round(100.0 * successful / total, 2)


def build_live_state(outcome: CheckOutcome, now: datetime) -> dict:
    """Monitor fields to write for one completed check.

    ``avg_response_time`` holds the latest sample, not a running average.
    """
    fields = {
        "last_check": now,
        "current_status": outcome.status,
        "updated_at": now,
    }
    if outcome.response_time is not None:
        fields["avg_response_time"] = outcome.response_time
    if outcome.status == "up":
        fields["last_up_time"] = now
    else:
        fields["last_down_time"] = now
    return fields


class ResultRecorder:
    """Writes history, live state and uptime for a check as one transaction."""

    def __init__(self, store: MonitorStore):
        self.store = store

    async def record(self, monitor_id: int, outcome: CheckOutcome, now: Optional[datetime] = None) -> bool:
        """Persist one outcome.

        Returns True when everything was committed. Returns False when the
        monitor has been deleted or the database failed; either way the error
        is logged and nothing is raised.
        """
        now = now or utcnow()
        try:
            async with self.store.session() as session:
                updated = await self.store.update_monitor_live_state(
                    session, monitor_id, **build_live_state(outcome, now)
                )
                if not updated:
                    await session.rollback()
                    logger.info(f"Monitor {monitor_id} no longer exists, dropping check result")
                    return False

                await self.store.insert_check_result(
                    session,
                    monitor_id,
                    outcome.status,
                    outcome.response_time,
                    outcome.status_code,
                    outcome.error_message,
                    checked_at=now,
                )
                await session.flush()

                stats = await self.store.compute_24h_stats(session, monitor_id, now=now)
                uptime = compute_uptime_percentage(stats.total, stats.successful)
                if uptime is not None:
                    await self.store.update_monitor_live_state(
                        session, monitor_id, uptime_percentage=uptime
                    )

                await retry_on_transient_error(session.commit)
        except SQLAlchemyError as e:
            logger.error(f"Error saving check result for monitor {monitor_id}: {e}")
            return False

        logger.debug(f"Recorded {outcome.status} for monitor {monitor_id}")
        return True
