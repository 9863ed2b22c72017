"""
Observability module for the telemetry generator.

Provides structured alerts with severity levels for generation
warnings and fatal run errors.
"""

from observability.alerts import (
    Alert,
    AlertManager,
    AlertSeverity,
    AlertType,
    get_alert_manager,
)

__all__ = [
    "Alert",
    "AlertManager",
    "AlertSeverity",
    "AlertType",
    "get_alert_manager",
]
