"""Alert model - log of sent alerts."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.clock import utcnow


class Alert(Base):
    """Record of a transition alert delivered over push or email."""

    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    monitor_id = Column(Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False)
    alert_type = Column(String, nullable=False)  # down, up
    channel = Column(String, default="push")  # push, email
    sent_at = Column(DateTime, default=utcnow)
    payload = Column(String, nullable=True)  # JSON
    success = Column(Integer, nullable=True)  # 1=success, 0=failed

    # Relationship
    monitor = relationship("Monitor", back_populates="alerts")
