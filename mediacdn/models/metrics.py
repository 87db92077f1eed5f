from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class AvailabilitySnapshot(BaseModel):
    available: bool
    last_checked_at: datetime | None = None
    consecutive_failures: int = Field(0, ge=0)
    check_interval_ms: int
    effective_interval_ms: int


class FailoverMetrics(BaseModel):
    """Counters maintained by the resolver across all resolve calls."""

    primary_requests: int = 0
    backup_requests: int = 0
    failures: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    total_requests: int = 0
    total_failovers: int = 0
    last_failover_at: datetime | None = None
    total_response_ms: float = 0.0
    average_response_ms: float = 0.0
    success_rate: float = 1.0


class HealthMonitorMetrics(BaseModel):
    total_checks: int = 0
    successful_checks: int = 0
    failed_checks: int = 0
    consecutive_failures: int = 0
    last_status: bool = True
    last_status_change: datetime
    last_check: datetime | None = None
    uptime: int = 100  # percentage
    is_running: bool = False
