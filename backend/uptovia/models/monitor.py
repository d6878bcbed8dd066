"""Monitor model - configured targets plus engine-owned live state."""
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Float, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.clock import utcnow

MONITOR_TYPES = ("http", "https", "ping", "tcp", "dns")


class Monitor(Base):
    """A monitored endpoint - HTTP(S) URL, host:port, hostname or DNS record."""

    __tablename__ = "monitors"
    __table_args__ = (
        CheckConstraint(
            "NOT (user_id IS NOT NULL AND group_id IS NOT NULL)",
            name="ck_monitors_single_owner",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=True, index=True)
    group_id = Column(Integer, nullable=True, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # http, https, ping, tcp, dns

    # Target fields, which ones apply depends on type
    url = Column(String, nullable=True)
    hostname = Column(String, nullable=True)
    port = Column(Integer, nullable=True)
    dns_record_type = Column(String, default="A")

    method = Column(String, default="GET")
    accepted_status_codes = Column(String, default="200")  # e.g. "200-299,301"
    check_interval = Column(Integer, default=60)  # seconds
    timeout = Column(Integer, default=30)  # seconds
    notify_on_down = Column(Boolean, default=True)
    notify_on_up = Column(Boolean, default=True)
    active = Column(Boolean, default=True, index=True)

    # Live state, written only by the result recorder
    current_status = Column(String, default="unknown")  # unknown, up, down
    last_check = Column(DateTime, nullable=True)
    last_up_time = Column(DateTime, nullable=True)
    last_down_time = Column(DateTime, nullable=True)
    avg_response_time = Column(Integer, nullable=True)  # ms, most recent sample
    uptime_percentage = Column(Float, nullable=True)  # rolling 24h

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    # Relationships
    results = relationship("CheckResult", back_populates="monitor", cascade="all, delete-orphan")
    alerts = relationship("Alert", back_populates="monitor", cascade="all, delete-orphan")
