"""Database models."""
from .monitor import Monitor, MONITOR_TYPES
from .check_result import CheckResult
from .device import Device
from .alert import Alert

__all__ = ["Monitor", "MONITOR_TYPES", "CheckResult", "Device", "Alert"]
