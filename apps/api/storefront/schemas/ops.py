"""Response models for the operational endpoints (health, readiness, metrics)."""

from typing import Literal

from pydantic import BaseModel, Field

DependencyStatus = Literal["ok", "error"]


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"


class ReadinessDependency(BaseModel):
    name: str
    status: DependencyStatus


class ReadinessResponse(BaseModel):
    status: Literal["ok", "degraded"]
    dependencies: list[ReadinessDependency]


class TimingMetricStats(BaseModel):
    count: int
    avg_s: float
    p95_s: float
    max_s: float


class LiveTrackingStats(BaseModel):
    channels: int = Field(ge=0, description="Orders with at least one live subscriber")
    connections: int = Field(ge=0, description="Sockets holding one or more subscriptions")


class MetricsResponse(BaseModel):
    counters: dict[str, int]
    timings: dict[str, TimingMetricStats]
    live_tracking: LiveTrackingStats
