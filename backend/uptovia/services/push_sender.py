"""Push notification sender service using APNs for iOS.

The engine only calls ``send``. ``send_test_notification`` is exposed for the
device registration layer, which confirms a new token works before storing it.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from aioapns import APNs, NotificationRequest, PushType

logger = logging.getLogger(__name__)

# APNs answers 410 for tokens that are no longer valid for the topic
INVALID_TOKEN_STATUS = "410"
INVALID_TOKEN_REASONS = frozenset({"Unregistered"})

# Alerts older than this are useless, let APNs drop them
NOTIFICATION_TTL_SECONDS = 3600


@dataclass
class PushConfig:
    """APNs configuration."""
    key_path: str = ""  # Path to .p8 key file
    key_id: str = ""
    team_id: str = ""
    bundle_id: str = ""
    use_sandbox: bool = True  # Use sandbox for development

    @property
    def is_complete(self) -> bool:
        return all([self.key_path, self.key_id, self.team_id, self.bundle_id])


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of delivering one notification to one device."""
    delivered: bool
    permanently_invalid: bool = False
    reason: Optional[str] = None


def is_permanently_invalid(status: Optional[str], description: Optional[str]) -> bool:
    """Whether APNs rejected the token for good rather than transiently."""
    return str(status) == INVALID_TOKEN_STATUS or description in INVALID_TOKEN_REASONS


class PushSender:
    """Delivers alert notifications to single devices via APNs."""

    def __init__(self, config: Optional[PushConfig] = None, client=None):
        self._config = config or PushConfig()
        self._client = client

    def configure(self):
        """Create the APNs client if credentials are complete.

        Must run inside the event loop. An incomplete configuration leaves
        the sender unconfigured, so every send is a no-op.
        """
        self._client = None

        if not self._config.is_complete:
            logger.warning("APNs credentials not configured - push notifications disabled")
            return

        try:
            self._client = APNs(
                key=self._config.key_path,
                key_id=self._config.key_id,
                team_id=self._config.team_id,
                topic=self._config.bundle_id,
                use_sandbox=self._config.use_sandbox,
            )
            logger.info(f"APNs client configured (sandbox={self._config.use_sandbox})")
        except Exception as e:
            logger.error(f"Failed to configure APNs client: {e}")
            self._client = None

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def send(
        self,
        device_token: str,
        title: str,
        body: str,
        payload: Optional[dict] = None,
        badge: Optional[int] = 1,
    ) -> DeliveryResult:
        """Send a push notification to a single device.

        Args:
            device_token: The APNs device token
            title: Notification title
            body: Notification body text
            payload: Custom data merged next to the ``aps`` dictionary
            badge: Badge number to display

        Returns:
            DeliveryResult; transport errors are reported, not raised
        """
        if not self._client:
            logger.debug("Push notifications not configured, skipping")
            return DeliveryResult(delivered=False, reason="not configured")

        aps = {"alert": {"title": title, "body": body}, "sound": "default"}
        if badge is not None:
            aps["badge"] = badge

        message = {"aps": aps}
        if payload:
            message.update(payload)

        request = NotificationRequest(
            device_token=device_token,
            message=message,
            time_to_live=NOTIFICATION_TTL_SECONDS,
            push_type=PushType.ALERT,
        )

        try:
            response = await self._client.send_notification(request)
        except Exception as e:
            logger.error(f"Failed to send push notification to {device_token[:16]}...: {e}")
            return DeliveryResult(delivered=False, reason=str(e))

        if response.is_successful:
            logger.info(f"Push notification sent to {device_token[:16]}...")
            return DeliveryResult(delivered=True)

        invalid = is_permanently_invalid(response.status, response.description)
        logger.warning(
            f"Push notification failed: {response.description} "
            f"(status: {response.status}, token: {device_token[:16]}...)"
        )
        return DeliveryResult(
            delivered=False,
            permanently_invalid=invalid,
            reason=response.description,
        )

    async def send_test_notification(self, device_token: str) -> DeliveryResult:
        """Confirm a freshly registered device can receive pushes."""
        return await self.send(
            device_token,
            title="✅ Test Notification",
            body="Push notifications are working correctly!",
            payload={"test": True},
        )
