from app.models.schemas import (  # noqa: F401
    MonthlyStats,
    PeriodManifest,
    RunManifest,
    TopCount,
)
