"""
Tests for the fairwatch command line interface.
"""

import json

import pytest
from typer.testing import CliRunner

from fairwatch import cli
from fairwatch.data.models import AuditQuery
from fairwatch.utils.constants import AuditAction

runner = CliRunner()


@pytest.fixture
def cli_service(monkeypatch, service):
    monkeypatch.setattr(cli, "_service", service)
    return service


@pytest.fixture
def request_file(tmp_path, biased_outcomes):
    path = tmp_path / "event.json"
    path.write_text(
        json.dumps(
            {
                "process_id": "proc-1",
                "process_type": "hiring_decision",
                "outcomes": [o.model_dump(mode="json") for o in biased_outcomes],
            }
        ),
        encoding="utf-8",
    )
    return path


class TestVersion:
    def test_version(self):
        result = runner.invoke(cli.app, ["version"])
        assert result.exit_code == 0
        assert "version" in result.output


class TestEvaluate:
    def test_evaluate_file(self, cli_service, request_file):
        result = runner.invoke(cli.app, ["evaluate", str(request_file)])

        assert result.exit_code == 0
        assert "non_compliant" in result.output
        assert cli_service.list_alerts().total >= 1

    def test_missing_file(self, cli_service, tmp_path):
        result = runner.invoke(cli.app, ["evaluate", str(tmp_path / "missing.json")])
        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_invalid_request(self, cli_service, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"process_type": "hiring_decision"}), encoding="utf-8")
        result = runner.invoke(cli.app, ["evaluate", str(path)])
        assert result.exit_code == 1

    def test_quick_check(self, cli_service, tmp_path):
        path = tmp_path / "posting.json"
        path.write_text(
            json.dumps({"process_id": "job-1", "process_type": "application_review", "text": "young ninja"}),
            encoding="utf-8",
        )
        result = runner.invoke(cli.app, ["quick-check", str(path)])

        assert result.exit_code == 0
        assert "age_bias" in result.output
        assert "Provisional score" in result.output


class TestAlerts:
    def test_no_alerts(self, cli_service):
        result = runner.invoke(cli.app, ["alerts"])
        assert result.exit_code == 0
        assert "No alerts found" in result.output

    def test_acknowledge_and_resolve(self, cli_service, request_file):
        runner.invoke(cli.app, ["evaluate", str(request_file)])
        alert_id = cli_service.list_alerts().alerts[0].alert_id

        acknowledged = runner.invoke(cli.app, ["acknowledge", alert_id, "--actor", "ana"])
        resolved = runner.invoke(
            cli.app,
            ["resolve", alert_id, "--actor", "ana", "--action", "retrained", "--description", "Rebalanced"],
        )

        assert acknowledged.exit_code == 0
        assert resolved.exit_code == 0
        assert cli_service.get_alert(alert_id).status == "resolved"

    def test_acknowledge_unknown_alert(self, cli_service):
        result = runner.invoke(cli.app, ["acknowledge", "missing", "--actor", "ana"])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_invalid_filter(self, cli_service):
        result = runner.invoke(cli.app, ["alerts", "--severity", "extreme"])
        assert result.exit_code == 1


class TestThresholds:
    def test_show(self, cli_service):
        result = runner.invoke(cli.app, ["thresholds"])
        assert result.exit_code == 0
        assert "demographic_parity" in result.output

    def test_set(self, cli_service):
        result = runner.invoke(
            cli.app, ["thresholds", "--set", "demographic_parity.warning=0.85", "--actor", "ana"]
        )
        assert result.exit_code == 0
        assert cli_service.get_thresholds().demographic_parity.warning == 0.85

    def test_rejected_set(self, cli_service):
        result = runner.invoke(cli.app, ["thresholds", "--set", "demographic_parity.critical=0.95"])
        assert result.exit_code == 1
        assert cli_service.audit.count(AuditQuery(action=AuditAction.THRESHOLD_UPDATE_REJECTED)) == 1

    def test_malformed_assignment(self, cli_service):
        result = runner.invoke(cli.app, ["thresholds", "--set", "near_threshold_margin"])
        assert result.exit_code == 1


class TestDashboardAndReports:
    def test_dashboard(self, cli_service, request_file):
        runner.invoke(cli.app, ["evaluate", str(request_file)])
        result = runner.invoke(cli.app, ["dashboard", "--range", "1h"])
        assert result.exit_code == 0
        assert "Evaluations" in result.output

    def test_dashboard_invalid_range(self, cli_service):
        result = runner.invoke(cli.app, ["dashboard", "--range", "2y"])
        assert result.exit_code == 1
        assert "Unknown time range" in result.output

    def test_report(self, cli_service, request_file):
        runner.invoke(cli.app, ["evaluate", str(request_file)])
        result = runner.invoke(cli.app, ["report", "violation_summary", "--range", "24h"])
        assert result.exit_code == 0
        assert "violation_summary" in result.output

    def test_unknown_report(self, cli_service):
        result = runner.invoke(cli.app, ["report", "weekly"])
        assert result.exit_code == 1

    def test_audit_trail(self, cli_service, request_file):
        runner.invoke(cli.app, ["evaluate", str(request_file)])
        result = runner.invoke(cli.app, ["audit", "--action", "detection_run"])
        assert result.exit_code == 0
        assert "Audit Trail" in result.output

    def test_analysis(self, cli_service, request_file):
        runner.invoke(cli.app, ["evaluate", str(request_file)])
        result = runner.invoke(cli.app, ["analysis", "proc-1"])
        assert result.exit_code == 0
        assert "Compliance History" in result.output

    def test_analysis_unknown_process(self, cli_service):
        result = runner.invoke(cli.app, ["analysis", "missing"])
        assert result.exit_code == 1
        assert "No monitoring history" in result.output

    def test_purge(self, cli_service):
        result = runner.invoke(cli.app, ["purge"])
        assert result.exit_code == 0
        assert "Purged 0 alert(s)" in result.output
