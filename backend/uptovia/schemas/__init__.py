"""Pydantic schemas for monitor validation."""
from .monitor import MonitorConfig

__all__ = ["MonitorConfig"]
