"""Device model - push notification tokens owned by users."""
from sqlalchemy import Column, Integer, String, DateTime

from ..database import Base
from ..utils.clock import utcnow


class Device(Base):
    """Registered device for push notifications."""

    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    device_token = Column(String, unique=True, nullable=False, index=True)
    platform = Column(String, default="ios")
    app_version = Column(String, nullable=True)
    enabled = Column(Integer, default=1)  # 0 or 1
    registered_at = Column(DateTime, default=utcnow)
    last_used_at = Column(DateTime, default=utcnow, onupdate=utcnow)
