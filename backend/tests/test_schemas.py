import pytest
from pydantic import ValidationError

from uptovia.schemas import MonitorConfig


def test_http_monitor_defaults() -> None:
    config = MonitorConfig(type="https", name="Site", url="https://example.com", method="head")
    assert config.method == "HEAD"
    assert config.accepted_status_codes == "200"
    assert config.check_interval == 60


def test_status_code_spec_normalized() -> None:
    config = MonitorConfig(type="http", name="Site", url="http://example.com",
                           accepted_status_codes="200 - 299, 301")
    assert config.accepted_status_codes == "200-299,301"


@pytest.mark.parametrize("spec", ["abc", "299-200", "200,,"])
def test_malformed_status_code_spec_rejected(spec) -> None:
    with pytest.raises(ValidationError):
        MonitorConfig(type="http", name="Site", url="http://example.com", accepted_status_codes=spec)


@pytest.mark.parametrize(
    "fields",
    [
        {"type": "http", "url": "example.com"},
        {"type": "http"},
        {"type": "tcp", "hostname": "db.internal"},
        {"type": "dns"},
        {"type": "ping", "hostname": "10.0.0.1", "check_interval": 0},
        {"type": "smtp", "hostname": "mail.example.com"},
    ],
)
def test_invalid_monitor_rejected(fields) -> None:
    with pytest.raises(ValidationError):
        MonitorConfig(name="bad", **fields)


def test_dns_record_type_uppercased() -> None:
    config = MonitorConfig(type="dns", name="MX", hostname="example.com", dns_record_type="mx")
    assert config.dns_record_type == "MX"
