"""Transition notifier - alerts device owners when a monitor changes status."""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..store import MonitorStore
from ..utils.clock import utcnow, isoformat_z
from .email_sender import EmailSenderService
from .push_sender import PushSender

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    """Content shared by every device notified for one transition."""
    title: str
    body: str
    payload: dict = field(default_factory=dict)


@dataclass
class NotificationReport:
    """What happened while handling one transition."""
    notified: bool = False
    attempted: int = 0
    delivered: int = 0
    removed_tokens: List[str] = field(default_factory=list)
    email_sent: Optional[bool] = None


def should_notify(monitor, old_status: Optional[str], new_status: str) -> bool:
    """Only changes are notify-worthy, and only when the matching flag is set.

    A first observation out of ``unknown`` follows the same flags.
    """
    if old_status == new_status:
        return False
    if new_status == "down":
        return bool(monitor.notify_on_down)
    if new_status == "up":
        return bool(monitor.notify_on_up)
    return False


def build_notification(monitor, status: str) -> Notification:
    if status == "down":
        title = "🔴 Monitor Down"
        body = f"{monitor.name} is not responding"
    else:
        title = "🟢 Monitor Up"
        body = f"{monitor.name} is back online"

    return Notification(
        title=title,
        body=body,
        payload={
            "monitor_id": monitor.id,
            "monitor_name": monitor.name,
            "status": status,
            "timestamp": isoformat_z(utcnow()),
        },
    )


def build_email(monitor, status: str, error_message: Optional[str]) -> tuple[str, str]:
    """Subject and plain-text body for an email alert."""
    subject = f"{status.upper()} - {monitor.name} - {monitor.type}"
    target = monitor.url or (
        f"{monitor.hostname}:{monitor.port}" if monitor.port else monitor.hostname
    )
    lines = [
        f"Uptovia {status.upper()} Report",
        "=" * 40,
        "",
        f"Monitor: {monitor.name}",
        f"Type: {monitor.type}",
        f"Target: {target}",
        f"Status: {status.upper()}",
        f"Time: {utcnow().strftime('%Y-%m-%d %H:%M:%S UTC')}",
    ]
    if error_message:
        lines.append(f"Details: {error_message}")
    lines.extend(["", "--", "Uptovia Monitoring"])
    return subject, "\n".join(lines)


class TransitionNotifier:
    """Decides whether a status change warrants an alert and delivers it.

    Nothing here raises to the caller: a check must never fail because
    notifications are unavailable.
    """

    def __init__(
        self,
        store: MonitorStore,
        push_sender: PushSender,
        email_sender: Optional[EmailSenderService] = None,
    ):
        self.store = store
        self.push_sender = push_sender
        self.email_sender = email_sender

    async def handle_transition(
        self,
        monitor,
        old_status: Optional[str],
        new_status: str,
        error_message: Optional[str] = None,
    ) -> NotificationReport:
        report = NotificationReport()
        if old_status == new_status:
            return report

        logger.info(f"Monitor \"{monitor.name}\" status changed: {old_status} → {new_status}")

        if not should_notify(monitor, old_status, new_status):
            logger.debug(f"Notification disabled for {monitor.name} going {new_status}")
            return report

        report.notified = True
        notification = build_notification(monitor, new_status)

        try:
            await self._send_push(monitor, new_status, notification, report)
        except Exception as e:
            logger.error(f"Error sending push alerts for monitor {monitor.id}: {e}")

        try:
            await self._send_email(monitor, new_status, error_message, report)
        except Exception as e:
            logger.error(f"Error sending email alert for monitor {monitor.id}: {e}")

        return report

    async def _send_push(self, monitor, status: str, notification: Notification, report: NotificationReport):
        if not self.push_sender.is_configured:
            logger.debug("Push notifications not configured, skipping notification")
            return
        if monitor.user_id is None:
            logger.debug(f"Monitor {monitor.id} has no owning user, skipping push")
            return

        async with self.store.session() as session:
            devices = await self.store.list_devices_for_user(session, monitor.user_id)
        tokens = [device.device_token for device in devices]

        if not tokens:
            logger.debug(f"No devices registered for user {monitor.user_id}")
            return

        invalid_tokens = []
        for token in tokens:
            report.attempted += 1
            try:
                result = await self.push_sender.send(
                    token,
                    notification.title,
                    notification.body,
                    notification.payload,
                )
            except Exception as e:
                logger.error(f"Error sending notification to {token[:16]}...: {e}")
                continue

            if result.delivered:
                report.delivered += 1
            elif result.permanently_invalid:
                invalid_tokens.append(token)

        async with self.store.session() as session:
            for token in invalid_tokens:
                if await self.store.delete_device(session, token):
                    report.removed_tokens.append(token)
                    logger.info(f"Removed invalid device token: {token[:16]}...")
            await session.commit()

            await self.store.insert_alert(
                session,
                monitor.id,
                status,
                "push",
                {
                    "devices_success": report.delivered,
                    "devices_failed": report.attempted - report.delivered,
                    "devices_removed": len(report.removed_tokens),
                },
                success=report.delivered > 0,
            )
            await session.commit()

        logger.info(
            f"Sent {status} notification for monitor \"{monitor.name}\" "
            f"to {report.delivered}/{report.attempted} device(s)"
        )

    async def _send_email(self, monitor, status: str, error_message: Optional[str], report: NotificationReport):
        if not self.email_sender or not self.email_sender.is_configured:
            return

        subject, body = build_email(monitor, status, error_message)
        report.email_sent = await self.email_sender.send_email(subject, body)

        async with self.store.session() as session:
            await self.store.insert_alert(
                session,
                monitor.id,
                status,
                "email",
                {"subject": subject, "to": self.email_sender.config.to_address},
                success=report.email_sent,
            )
            await session.commit()
