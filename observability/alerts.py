"""
Structured Alerting for generation runs.

Recoverable problems found while generating (targets that could not be
reached with the population available) and fatal ones (geo exhaustion,
upload failures) are reported as structured alerts. Every alert is
emitted as a structlog event and kept in memory so a run can report its
warnings at the end.

Features:
- Severity levels (INFO, WARNING, CRITICAL)
- Alert types for generation, reconciliation and upload
- Structured logging via structlog
- Per-run alert history

Usage:
    from observability.alerts import AlertManager, Alert, AlertType, AlertSeverity

    alert_manager = AlertManager()

    alert = Alert(
        alert_type=AlertType.RECONCILIATION_SHORTFALL,
        severity=AlertSeverity.WARNING,
        pipeline_name="data_volume",
        message="No data events to reconcile for 2025-01",
        details={"period": "2025-01", "target_mb": 4608.0},
    )

    alert_manager.emit(alert)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import structlog


class AlertSeverity(Enum):
    """Alert severity levels."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class AlertType(Enum):
    """Types of alerts a generation run can emit."""

    # Run lifecycle
    RUN_STARTED = "run_started"
    RUN_COMPLETED = "run_completed"
    RUN_FAILURE = "run_failure"

    # Data consistency (recoverable)
    ACTIVE_TARGET_SHORTFALL = "active_target_shortfall"
    RECONCILIATION_SHORTFALL = "reconciliation_shortfall"
    RECONCILIATION_OVERSHOOT = "reconciliation_overshoot"
    TICKET_SHORTFALL = "ticket_shortfall"

    # Fatal
    GEO_EXHAUSTED = "geo_exhausted"
    UPLOAD_FAILURE = "upload_failure"


@dataclass
class Alert:
    """
    Represents a single alert event.

    Attributes:
        alert_type: Category of alert
        severity: How critical is this alert
        pipeline_name: Generation stage that raised it
        message: Human-readable description
        details: Additional structured data
        timestamp: When the alert occurred
    """

    alert_type: AlertType
    severity: AlertSeverity
    pipeline_name: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Convert alert to dictionary for JSON serialization."""
        return {
            "alert_type": self.alert_type.value,
            "severity": self.severity.value,
            "pipeline_name": self.pipeline_name,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_structured_log(self) -> dict[str, Any]:
        """Format for structured logging."""
        return {
            "event": "ALERT",
            "alert_type": self.alert_type.value,
            "severity": self.severity.value,
            "pipeline": self.pipeline_name,
            "message": self.message,
            **self.details,
        }


class AlertManager:
    """
    Emits alerts and keeps the history of one run.

    Alerts are emitted as structured log events, so they can be picked up
    by whatever collects the process logs.
    """

    def __init__(self, logger_name: str = "alerts"):
        self.history: list[Alert] = []
        self.logger = structlog.get_logger(logger_name)

    def emit(self, alert: Alert) -> Alert:
        """Log ``alert`` at its severity and record it."""
        log_data = alert.to_structured_log()

        if alert.severity == AlertSeverity.CRITICAL:
            self.logger.critical(**log_data)
        elif alert.severity == AlertSeverity.WARNING:
            self.logger.warning(**log_data)
        else:
            self.logger.info(**log_data)

        self.history.append(alert)
        return alert

    @property
    def warnings(self) -> list[Alert]:
        return [a for a in self.history if a.severity == AlertSeverity.WARNING]

    def of_type(self, alert_type: AlertType) -> list[Alert]:
        return [a for a in self.history if a.alert_type == alert_type]

    def warn(
        self,
        alert_type: AlertType,
        pipeline_name: str,
        message: str,
        **details,
    ) -> Alert:
        """Convenience method for recoverable data-consistency warnings."""
        return self.emit(
            Alert(
                alert_type=alert_type,
                severity=AlertSeverity.WARNING,
                pipeline_name=pipeline_name,
                message=message,
                details=details,
            )
        )

    def emit_run_started(self, pipeline_name: str, **details) -> Alert:
        return self.emit(
            Alert(
                alert_type=AlertType.RUN_STARTED,
                severity=AlertSeverity.INFO,
                pipeline_name=pipeline_name,
                message=f"Run {pipeline_name} started",
                details=details,
            )
        )

    def emit_run_completed(
        self,
        pipeline_name: str,
        duration_seconds: float,
        events_generated: int = 0,
        **details,
    ) -> Alert:
        return self.emit(
            Alert(
                alert_type=AlertType.RUN_COMPLETED,
                severity=AlertSeverity.INFO,
                pipeline_name=pipeline_name,
                message=f"Run {pipeline_name} completed in {duration_seconds:.1f}s",
                details={
                    "duration_seconds": duration_seconds,
                    "events_generated": events_generated,
                    **details,
                },
            )
        )

    def emit_failure(
        self,
        alert_type: AlertType,
        pipeline_name: str,
        error: str,
        **details,
    ) -> Alert:
        """Convenience method for fatal errors."""
        return self.emit(
            Alert(
                alert_type=alert_type,
                severity=AlertSeverity.CRITICAL,
                pipeline_name=pipeline_name,
                message=f"{pipeline_name} failed: {error}",
                details={"error": error, **details},
            )
        )


# Default instance for callers outside a generation run (CLI upload/report)
_default_manager: Optional[AlertManager] = None


def get_alert_manager() -> AlertManager:
    """Get or create the default AlertManager instance."""
    global _default_manager
    if _default_manager is None:
        _default_manager = AlertManager()
    return _default_manager
