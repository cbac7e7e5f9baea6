"""
Pydantic schemas for Run entity.
"""
from pydantic import Field, field_validator
from typing import Any, Optional
from datetime import datetime
from uuid import UUID
from app.schemas.base import CamelModel
from app.core.utils import to_naive_utc


class RunUpload(CamelModel):
    """
    Schema for a run uploaded by the client.

    ``client_id`` is generated on the device; uploads with the same id
    overwrite the earlier copy.
    """
    client_id: UUID
    start_time: datetime
    end_time: Optional[datetime] = None
    run_name: Optional[str] = Field(None, max_length=255)
    resort_name: Optional[str] = Field(None, max_length=255)
    resort_latitude: Optional[float] = Field(None, ge=-90, le=90)
    resort_longitude: Optional[float] = Field(None, ge=-180, le=180)
    distance: float = Field(..., ge=0)
    max_speed: float = Field(..., ge=0)
    average_speed: float = Field(..., ge=0)
    elevation_drop: float = Field(..., ge=0)
    start_elevation: float = 0
    end_elevation: float = 0
    duration: float = Field(..., ge=0)
    points: int = Field(..., ge=0)
    difficulty: str = Field("Blue", max_length=20)
    calories: float = Field(0, ge=0)
    avg_heart_rate: float = Field(0, ge=0)
    max_heart_rate: float = Field(0, ge=0)
    route_data: Optional[Any] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_time(cls, v):
        """Store all timestamps as naive UTC."""
        return to_naive_utc(v)

    @field_validator("run_name", "resort_name")
    @classmethod
    def strip_names(cls, v):
        return v.strip() if v is not None else v


class RunUploadResponse(CamelModel):
    run_id: int
    client_id: str
    synced: bool = True
    created: bool


class BatchItemResult(CamelModel):
    """Outcome of one run in a bulk upload."""
    client_id: Optional[str] = None
    status: str  # created | updated | error
    server_id: Optional[int] = None
    error: Optional[str] = None


class RunSummary(CamelModel):
    """Run as shown in list views (no route payload)."""
    id: int
    client_id: str
    run_name: Optional[str] = None
    resort_name: Optional[str] = None
    resort_latitude: Optional[float] = None
    resort_longitude: Optional[float] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    distance: float
    max_speed: float
    average_speed: float
    elevation_drop: float
    start_elevation: float
    end_elevation: float
    duration: float
    points: int
    difficulty: str
    calories: float
    avg_heart_rate: float
    max_heart_rate: float
    created_at: datetime
    updated_at: datetime


class RunDetail(RunSummary):
    """Single run including its route payload."""
    route_data: Optional[Any] = None


class FriendRunSummary(CamelModel):
    """Run metrics visible to friends."""
    id: int
    run_name: Optional[str] = None
    resort_name: Optional[str] = None
    start_time: datetime
    distance: float
    max_speed: float
    elevation_drop: float
    duration: float
    points: int
    difficulty: str


class SyncStatusItem(CamelModel):
    id: int
    client_id: str
    updated_at: datetime
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
