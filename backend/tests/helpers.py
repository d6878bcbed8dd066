"""Test doubles shared across test modules."""
from types import SimpleNamespace


def monitor_stub(**fields):
    """Plain object with the attributes the checker reads."""
    values = {
        "id": 1,
        "name": "stub",
        "type": "http",
        "url": "https://example.com/health",
        "hostname": None,
        "port": None,
        "dns_record_type": "A",
        "method": "GET",
        "accepted_status_codes": "200",
        "timeout": 5,
    }
    values.update(fields)
    return SimpleNamespace(**values)
