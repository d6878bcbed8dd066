"""Monitor configuration schema.

The engine never builds this itself: it is the validation API for the outer
layer that creates or edits monitors, so malformed settings are rejected
before the engine ever sees them.
"""
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from ..services.checker import validate_status_code_spec

HTTP_METHODS = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")


class MonitorConfig(BaseModel):
    """Validated monitor configuration."""
    type: Literal["http", "https", "ping", "tcp", "dns"]
    name: str = Field(..., min_length=1, max_length=255)
    url: Optional[str] = None
    hostname: Optional[str] = None
    port: Optional[int] = Field(None, ge=1, le=65535)
    dns_record_type: str = "A"
    method: str = "GET"
    accepted_status_codes: Optional[str] = "200"
    check_interval: int = Field(default=60, ge=1)
    timeout: int = Field(default=30, ge=1)
    notify_on_down: bool = True
    notify_on_up: bool = True
    active: bool = True

    @field_validator("accepted_status_codes")
    @classmethod
    def check_status_codes(cls, value: Optional[str]) -> Optional[str]:
        return validate_status_code_spec(value)

    @field_validator("method")
    @classmethod
    def check_method(cls, value: str) -> str:
        value = value.upper()
        if value not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {value}")
        return value

    @field_validator("dns_record_type")
    @classmethod
    def upper_record_type(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def check_target(self) -> "MonitorConfig":
        if self.type in ("http", "https"):
            if not self.url:
                raise ValueError("url is required for HTTP monitors")
            if not self.url.startswith(("http://", "https://")):
                raise ValueError("url must start with http:// or https://")
        elif not self.hostname:
            raise ValueError(f"hostname is required for {self.type} monitors")
        if self.type == "tcp" and self.port is None:
            raise ValueError("port is required for TCP monitors")
        return self
