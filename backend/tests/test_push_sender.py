from types import SimpleNamespace

import pytest

from uptovia.services.push_sender import (
    DeliveryResult,
    PushConfig,
    PushSender,
    is_permanently_invalid,
)


class FakeAPNsClient:
    def __init__(self, status="200", description=None, error=None):
        self.status = status
        self.description = description
        self.error = error
        self.requests = []

    async def send_notification(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return SimpleNamespace(
            is_successful=self.status == "200",
            status=self.status,
            description=self.description,
        )


@pytest.mark.parametrize(
    "status, description, expected",
    [
        ("410", "Unregistered", True),
        ("410", None, True),
        ("400", "Unregistered", True),
        ("400", "BadDeviceToken", False),
        ("429", "TooManyRequests", False),
    ],
)
def test_permanently_invalid_classification(status, description, expected) -> None:
    assert is_permanently_invalid(status, description) is expected


def test_incomplete_config_leaves_sender_unconfigured() -> None:
    sender = PushSender(PushConfig(key_id="ABC123", team_id="TEAM"))
    sender.configure()
    assert sender.is_configured is False


async def test_unconfigured_send_is_noop() -> None:
    result = await PushSender().send("a" * 64, "title", "body")
    assert result.delivered is False
    assert result.permanently_invalid is False


async def test_successful_delivery_builds_aps_payload() -> None:
    client = FakeAPNsClient()
    sender = PushSender(PushConfig(bundle_id="com.uptovia.app"), client=client)

    result = await sender.send("a" * 64, "🔴 Monitor Down", "API is not responding", {"monitor_id": 3})

    assert result == DeliveryResult(delivered=True)
    message = client.requests[0].message
    assert message["aps"]["alert"] == {"title": "🔴 Monitor Down", "body": "API is not responding"}
    assert message["monitor_id"] == 3


async def test_unregistered_token_reported_invalid() -> None:
    sender = PushSender(client=FakeAPNsClient(status="410", description="Unregistered"))
    result = await sender.send("b" * 64, "t", "b")

    assert result.delivered is False
    assert result.permanently_invalid is True
    assert result.reason == "Unregistered"


async def test_transport_exception_is_reported_not_raised() -> None:
    sender = PushSender(client=FakeAPNsClient(error=ConnectionResetError("reset by peer")))
    result = await sender.send("c" * 64, "t", "b")

    assert result.delivered is False
    assert result.permanently_invalid is False


async def test_send_test_notification() -> None:
    client = FakeAPNsClient()
    result = await PushSender(client=client).send_test_notification("d" * 64)

    assert result.delivered is True
    assert client.requests[0].message["test"] is True
