from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class PolicyResponse(BaseModel):
    confidence_threshold: float
    enabled_groups: List[str]
    groups: Dict[str, bool] = Field(..., description="Every known group and whether it is enabled")
    min_threshold: float
    max_threshold: float
    threshold_step: float


class PolicyUpdateRequest(BaseModel):
    """Partial policy update; omitted fields keep their current value."""
    confidence_threshold: Optional[float] = None
    groups: Optional[Dict[str, bool]] = None


class LogEventModel(BaseModel):
    id: str
    category: str
    confidence: float
    captured_at: str
    time: str = Field(..., description="Capture time as HH:MM:SS (24h)")
    source: str


class LogsResponse(BaseModel):
    count: int
    capacity: int
    events: List[LogEventModel]


class CategoryShareModel(BaseModel):
    label: str
    count: int
    percentage: int
    max_confidence: float


class SummaryResponse(BaseModel):
    total: int
    average_confidence: float = Field(..., description="Mean confidence in percent")
    distribution: List[CategoryShareModel]
    timeline: List[int]


class StatusResponse(BaseModel):
    """
    Status response for frontend polling.
    """
    state: str = Field(..., description="idle|loading|running|stopped|failed")
    running: bool
    failure_kind: Optional[str] = Field(None, description="model|source when state is failed")
    failure_message: Optional[str] = None
    source_id: str
    fps: float = Field(0.0, description="Inference throughput of the last completed cycle")
    last_frame_age_s: Optional[float] = None
    uptime_seconds: int
    log_size: int
    log_capacity: int
    cycles: Dict[str, Any] = Field(default_factory=dict)
