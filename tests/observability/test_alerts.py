from observability.alerts import Alert, AlertManager, AlertSeverity, AlertType, get_alert_manager


class TestAlert:
    def test_to_dict(self):
        alert = Alert(
            alert_type=AlertType.TICKET_SHORTFALL,
            severity=AlertSeverity.WARNING,
            pipeline_name="tickets",
            message="Only 2 of 5 tickets could be resolved",
            details={"period": "2025-02"},
        )
        data = alert.to_dict()

        assert data["alert_type"] == "ticket_shortfall"
        assert data["severity"] == "warning"
        assert data["details"] == {"period": "2025-02"}
        assert data["timestamp"].endswith("+00:00")

    def test_structured_log_flattens_details(self):
        alert = Alert(
            alert_type=AlertType.RUN_FAILURE,
            severity=AlertSeverity.CRITICAL,
            pipeline_name="upload",
            message="upload failed",
            details={"batch_index": 3},
        )
        log = alert.to_structured_log()
        assert log["pipeline"] == "upload"
        assert log["batch_index"] == 3


class TestAlertManager:
    def test_history_and_filters(self):
        manager = AlertManager()
        manager.emit_run_started("generate", periods=5)
        manager.warn(AlertType.ACTIVE_TARGET_SHORTFALL, "users", "short", period="2025-01")
        manager.emit_failure(AlertType.GEO_EXHAUSTED, "generate", "no free points")

        assert len(manager.history) == 3
        assert [a.alert_type for a in manager.warnings] == [AlertType.ACTIVE_TARGET_SHORTFALL]
        (failure,) = manager.of_type(AlertType.GEO_EXHAUSTED)
        assert failure.severity == AlertSeverity.CRITICAL
        assert failure.details["error"] == "no free points"

    def test_run_completed_details(self):
        alert = AlertManager().emit_run_completed("generate", duration_seconds=1.5, events_generated=10)
        assert alert.details == {"duration_seconds": 1.5, "events_generated": 10}
        assert "1.5s" in alert.message

    def test_default_manager_is_shared(self):
        assert get_alert_manager() is get_alert_manager()
