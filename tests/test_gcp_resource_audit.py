"""
tests/test_gcp_resource_audit.py - command line tests
"""

import io
from unittest.mock import patch

import pytest

from audit_errors import AuditAbortedError, FetchError
from audit_runner import AuditTaskResult
from gcp_resource_audit import main, parse_project_ids, read_project_ids_from_stdin


class TestProjectIds:
    """Project ID list parsing"""

    def test_comma_separated(self):
        assert parse_project_ids("p1,p2,p3") == ["p1", "p2", "p3"]

    def test_trims_and_drops_empty(self):
        assert parse_project_ids(" p1 , ,p2,\n") == ["p1", "p2"]

    def test_stdin(self):
        assert read_project_ids_from_stdin(io.StringIO("p1, p2,\np3\n")) == ["p1", "p2", "p3"]


class TestMain:
    """Entry point"""

    def test_runs_audit_with_options(self):
        with patch("gcp_resource_audit.run_audit", return_value=[]) as run_audit:
            exit_code = main(["firewall", "p1,p2", "--split", "--port", "22", "--max-workers", "4"])

        assert exit_code == 0
        project_ids, command, options = run_audit.call_args[0]
        assert project_ids == ["p1", "p2"]
        assert command == "firewall"
        assert options.split is True
        assert options.port == "22"
        assert options.max_workers == 4
        assert options.days_threshold == 90
        assert options.fail_fast is False

    def test_split_flag_anywhere(self):
        with patch("gcp_resource_audit.run_audit", return_value=[]) as run_audit:
            main(["--split", "ips", "p1"])

        assert run_audit.call_args[0][2].split is True

    def test_reads_stdin(self, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO("p1,p2\n"))

        with patch("gcp_resource_audit.run_audit", return_value=[]) as run_audit:
            main(["instances", "-", "--days", "30"])

        assert run_audit.call_args[0][0] == ["p1", "p2"]
        assert run_audit.call_args[0][2].days_threshold == 30

    def test_billing_account(self):
        with patch("gcp_resource_audit.get_projects_under_billing_account", return_value=["p9"]) as get_projects, \
                patch("gcp_resource_audit.run_audit", return_value=[]) as run_audit:
            main(["all", "--billing-account", "0000-AAAA"])

        get_projects.assert_called_once_with("0000-AAAA")
        assert run_audit.call_args[0][0] == ["p9"]

    def test_billing_account_failure(self):
        error = FetchError("billingAccounts/0000-AAAA", "projects", Exception("denied"))

        with patch("gcp_resource_audit.get_projects_under_billing_account", side_effect=error):
            assert main(["all", "--billing-account", "0000-AAAA"]) == 1

    def test_unknown_command(self, capsys):
        with patch("gcp_resource_audit.run_audit") as run_audit:
            assert main(["vpn", "p1"]) == 1

        run_audit.assert_not_called()
        assert "Command 'vpn' not found" in capsys.readouterr().out

    def test_missing_arguments(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1

    def test_missing_project_list(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["ips"])

        assert exc_info.value.code == 1

    def test_empty_project_list(self):
        with patch("gcp_resource_audit.run_audit") as run_audit:
            assert main(["ips", " , "]) == 1

        run_audit.assert_not_called()

    def test_failed_task_exit_code(self, capsys):
        results = [
            AuditTaskResult("p1", "ips", status="exported", rows=[["a"]], destination="output/idle_external_ips.csv"),
            AuditTaskResult("p2", "ips", status="failed", error="403 Forbidden"),
        ]

        with patch("gcp_resource_audit.run_audit", return_value=results):
            assert main(["ips", "p1,p2"]) == 1

        output = capsys.readouterr().out
        assert "p2 [ips]: 403 Forbidden" in output
        assert "output/idle_external_ips.csv" in output

    def test_aborted_run_exit_code(self):
        error = AuditAbortedError("Aborting audit", [AuditTaskResult("p1", "ips", status="failed", error="x")])

        with patch("gcp_resource_audit.run_audit", side_effect=error):
            assert main(["ips", "p1,p2", "--fail-fast"]) == 1

    def test_interrupted_run_exit_code(self, capsys):
        with patch("gcp_resource_audit.run_audit", side_effect=KeyboardInterrupt):
            assert main(["ips", "p1"]) == 130

        assert "Audit interrupted" in capsys.readouterr().out

    def test_billing_account_with_project_list(self):
        with patch("gcp_resource_audit.get_projects_under_billing_account") as get_projects, \
                patch("gcp_resource_audit.run_audit") as run_audit:
            with pytest.raises(SystemExit) as exc_info:
                main(["ips", "p1", "--billing-account", "0000-AAAA"])

        assert exc_info.value.code == 1
        get_projects.assert_not_called()
        run_audit.assert_not_called()
