"""Tests for the CLI entry point."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from launchpad_monitor.__main__ import (
    EXIT_CONFIG_ERROR,
    EXIT_SETUP_ERROR,
    EXIT_SUCCESS,
    USE_CONFIGURED_INTERVAL,
    main,
    parse_args,
    run_monitor_job,
)
from launchpad_monitor.api.exceptions import ConnectivityError
from launchpad_monitor.config import ConfigurationError, MonitorSettings
from launchpad_monitor.models import Alert, ConditionKind, CycleResult, CycleStatus
from launchpad_monitor.reports import CycleReporter, ReportError


@pytest.fixture
def settings(tmp_path: Path) -> MonitorSettings:
    return MonitorSettings(
        groundcontrol_url="https://gc.example/launchpads?api_key=k",
        ws1_env_url="https://as1234.awmdm.com",
        ws1_client_id="client-id",
        base_dir=str(tmp_path),
    )


class TestParseArgs:
    def test_defaults_run_once(self) -> None:
        args = parse_args([])

        assert args.interval is None
        assert args.dry_run is False
        assert args.test is False

    def test_interval_without_value(self) -> None:
        assert parse_args(["--interval"]).interval == USE_CONFIGURED_INTERVAL

    def test_interval_with_value(self) -> None:
        assert parse_args(["--interval", "120"]).interval == 120

    def test_interval_must_be_positive(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["--interval", "0"])


class TestRunMonitorJob:
    """One cycle, end to end with a stubbed cycle."""

    def test_completed_cycle_is_reported(self, settings: MonitorSettings) -> None:
        cycle = MagicMock()
        cycle.run.return_value = CycleResult(
            device_count=1, alerts=[Alert("LP-01", ConditionKind.NO_HUB, 1)]
        )

        with patch("launchpad_monitor.cycle.build_cycle", return_value=cycle) as build:
            result = run_monitor_job(settings, dry_run=True)

        build.assert_called_once_with(settings, dry_run=True)
        cycle.close.assert_called_once()
        assert result.status is CycleStatus.ALERTED
        assert settings.status_path.read_text() == "2\n"
        assert len(list(settings.logs_dir.glob("monitor_log_*.txt"))) == 1

    def test_setup_error_becomes_failed_result(self, settings: MonitorSettings) -> None:
        cycle = MagicMock()
        cycle.run.side_effect = ConnectivityError()

        with patch("launchpad_monitor.cycle.build_cycle", return_value=cycle):
            result = run_monitor_job(settings)

        cycle.close.assert_called_once()
        assert result.status is CycleStatus.FAILED
        assert settings.status_path.read_text() == "❌ No internet connection detected\n"

    def test_unexpected_error_becomes_failed_result(self, settings: MonitorSettings) -> None:
        """A crash inside the cycle still leaves a status file behind."""
        cycle = MagicMock()
        cycle.run.side_effect = RuntimeError("boom")

        with patch("launchpad_monitor.cycle.build_cycle", return_value=cycle):
            result = run_monitor_job(settings)

        cycle.close.assert_called_once()
        assert result.status is CycleStatus.FAILED
        assert settings.status_path.read_text() == "❌ Unexpected error: boom\n"

    def test_report_failure_keeps_cycle_result(
        self, settings: MonitorSettings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        cycle = MagicMock()
        cycle.run.return_value = CycleResult(device_count=2)

        with patch("launchpad_monitor.cycle.build_cycle", return_value=cycle), patch.object(
            CycleReporter, "write_cycle_log", side_effect=ReportError("disk full")
        ):
            result = run_monitor_job(settings)

        assert result.status is CycleStatus.HEALTHY
        assert settings.status_path.read_text() == "1\n"
        assert "report_failed" in capsys.readouterr().out


class TestMain:
    """Exit codes."""

    @patch("launchpad_monitor.logging.configure_logging")
    @patch("launchpad_monitor.config.loader.load_config")
    def test_completed_cycle_exits_zero(
        self, mock_load: MagicMock, mock_logging: MagicMock, settings: MonitorSettings
    ) -> None:
        mock_load.return_value = settings

        with patch("launchpad_monitor.__main__.run_monitor_job", return_value=CycleResult()) as job:
            assert main([]) == EXIT_SUCCESS

        job.assert_called_once_with(settings, dry_run=False)

    @patch("launchpad_monitor.logging.configure_logging")
    @patch("launchpad_monitor.config.loader.load_config")
    def test_failed_cycle_exits_setup_error(
        self, mock_load: MagicMock, mock_logging: MagicMock, settings: MonitorSettings
    ) -> None:
        mock_load.return_value = settings
        failed = CycleResult(failure="Failed to fetch data from GroundControl")

        with patch("launchpad_monitor.__main__.run_monitor_job", return_value=failed):
            assert main([]) == EXIT_SETUP_ERROR

    @patch("launchpad_monitor.logging.configure_logging")
    @patch("launchpad_monitor.config.loader.load_config")
    def test_unwritable_cycle_log_still_exits_zero(
        self, mock_load: MagicMock, mock_logging: MagicMock, settings: MonitorSettings
    ) -> None:
        mock_load.return_value = settings
        cycle = MagicMock()
        cycle.run.return_value = CycleResult(device_count=2)

        with patch("launchpad_monitor.cycle.build_cycle", return_value=cycle), patch.object(
            CycleReporter, "write_cycle_log", side_effect=ReportError("disk full")
        ):
            assert main([]) == EXIT_SUCCESS

    @patch("launchpad_monitor.logging.configure_logging")
    @patch("launchpad_monitor.config.loader.load_config")
    def test_unexpected_cycle_error_exits_setup_error(
        self, mock_load: MagicMock, mock_logging: MagicMock, settings: MonitorSettings
    ) -> None:
        mock_load.return_value = settings
        cycle = MagicMock()
        cycle.run.side_effect = RuntimeError("boom")

        with patch("launchpad_monitor.cycle.build_cycle", return_value=cycle):
            assert main([]) == EXIT_SETUP_ERROR

        assert settings.status_path.read_text().startswith("❌")

    @patch("launchpad_monitor.logging.configure_logging")
    @patch("launchpad_monitor.config.loader.load_config")
    def test_cycle_preparation_error_exits_setup_error(
        self, mock_load: MagicMock, mock_logging: MagicMock, settings: MonitorSettings
    ) -> None:
        mock_load.return_value = settings

        with patch("launchpad_monitor.cycle.build_cycle", side_effect=OSError("read-only")):
            assert main([]) == EXIT_SETUP_ERROR

    @patch("launchpad_monitor.config.loader.load_config")
    def test_configuration_error(self, mock_load: MagicMock) -> None:
        mock_load.side_effect = ConfigurationError("Configuration file not found: x.yaml")

        assert main([]) == EXIT_CONFIG_ERROR

    @patch("launchpad_monitor.config.loader.load_config")
    def test_validation_problems_are_printed(
        self, mock_load: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        mock_load.side_effect = ConfigurationError(
            "Invalid configuration",
            problems=["ws1_client_id is required: set LPMON_WS1_CLIENT_ID or add 'ws1_client_id:' to the YAML file"],
        )

        assert main([]) == EXIT_CONFIG_ERROR
        assert "LPMON_WS1_CLIENT_ID" in capsys.readouterr().err

    @patch("launchpad_monitor.scheduler.ScheduledRunner")
    @patch("launchpad_monitor.logging.configure_logging")
    @patch("launchpad_monitor.config.loader.load_config")
    def test_interval_mode_uses_configured_period(
        self,
        mock_load: MagicMock,
        mock_logging: MagicMock,
        mock_runner_class: MagicMock,
        settings: MonitorSettings,
    ) -> None:
        mock_load.return_value = settings

        assert main(["--interval"]) == EXIT_SUCCESS

        mock_runner_class.return_value.run.assert_called_once()
        assert mock_runner_class.return_value.run.call_args.kwargs["interval_seconds"] == 60
