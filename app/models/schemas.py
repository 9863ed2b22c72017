from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class MonthlyStats(BaseModel):
    period: str
    signups: int = 0
    signup_growth_pct: Optional[float] = None
    logins: int = 0
    active_events: int = 0
    monthly_active_users: int = 0
    avg_daily_active_users: float = 0.0
    data_generated: int = 0
    total_gb: float = 0.0
    words: int = 0
    downloads: int = 0
    job_failures: int = 0
    tickets_raised: int = 0
    tickets_resolved: int = 0
    unique_countries: int = 0


class TopCount(BaseModel):
    value: str
    count: int


class PeriodManifest(BaseModel):
    period: str
    signups: int
    monthly_active_users: int
    logins: int
    data_events: int
    volume_mb: float
    tickets_raised: int
    tickets_resolved: int
    event_count: int


class RunManifest(BaseModel):
    seed: Optional[int]
    plan: str
    stages: List[str]
    events_file: str
    total_events: int
    total_users: int
    size_bytes: int
    generation_time_seconds: float
    generated_at: datetime
    periods: List[PeriodManifest] = Field(default_factory=list)
    warnings: List[Dict[str, object]] = Field(default_factory=list)
