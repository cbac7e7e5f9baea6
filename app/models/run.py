"""
Run model for a single recorded ski descent.
"""
from sqlalchemy import (
    Column, String, Float, Integer, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from app.db.base import BaseModel


class Run(BaseModel):
    """
    Run uploaded by a client.

    ``client_id`` is generated on the device and is the idempotency key:
    re-uploading the same (user_id, client_id) updates the existing row.
    """
    __tablename__ = "runs"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(String(36), nullable=False)

    run_name = Column(String(255), nullable=True)
    resort_name = Column(String(255), nullable=True, index=True)
    resort_latitude = Column(Float, nullable=True)
    resort_longitude = Column(Float, nullable=True)

    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=True)

    # Metrics
    distance = Column(Float, nullable=False, default=0)
    max_speed = Column(Float, nullable=False, default=0)
    average_speed = Column(Float, nullable=False, default=0)
    elevation_drop = Column(Float, nullable=False, default=0)
    start_elevation = Column(Float, nullable=False, default=0)
    end_elevation = Column(Float, nullable=False, default=0)
    duration = Column(Float, nullable=False, default=0)  # seconds
    points = Column(Integer, nullable=False, default=0)
    calories = Column(Float, nullable=False, default=0)
    avg_heart_rate = Column(Float, nullable=False, default=0)
    max_heart_rate = Column(Float, nullable=False, default=0)
    difficulty = Column(String(20), nullable=False, default="Blue")

    route_data = Column(JSON, nullable=True)  # Opaque geodata, stored verbatim

    is_deleted = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "client_id", name="uq_runs_user_client"),
        Index("ix_runs_user_deleted_start", "user_id", "is_deleted", "start_time"),
    )

    # Relationships
    user = relationship("User", back_populates="runs")
