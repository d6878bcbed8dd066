"""CheckResult model - immutable history of completed checks."""
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.clock import utcnow


class CheckResult(Base):
    """Outcome of one completed check. Pruning is handled outside the engine."""

    __tablename__ = "check_history"
    __table_args__ = (
        Index("ix_check_history_monitor_checked_at", "monitor_id", "checked_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    monitor_id = Column(Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False)
    status = Column(String, nullable=False)  # up, down
    response_time = Column(Integer, nullable=True)  # ms
    status_code = Column(Integer, nullable=True)  # HTTP only
    error_message = Column(String, nullable=True)
    checked_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationship
    monitor = relationship("Monitor", back_populates="results")
