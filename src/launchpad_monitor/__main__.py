"""
Entry point for the launchpad-monitor CLI.

Usage:
    launchpad-monitor                  Run one monitoring cycle and exit
    launchpad-monitor --interval [S]   Run cycles every S seconds until interrupted
    launchpad-monitor --dry-run        Evaluate and report without state writes or resets
    launchpad-monitor --test           Validate configuration and collaborators, then exit
    launchpad-monitor --version        Show version and exit

Exit Codes:
    0 - Cycle completed (alerts or not)
    1 - Configuration error (invalid settings, missing required values)
    2 - Setup error (no connectivity, GroundControl unavailable)
    3 - Authentication error (Workspace ONE rejected the credentials)
"""

from __future__ import annotations

import argparse
import sys
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from launchpad_monitor.config import MonitorSettings
    from launchpad_monitor.models import CycleResult
    from launchpad_monitor.reports import CycleReporter

from launchpad_monitor import __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_SETUP_ERROR = 2
EXIT_AUTH_ERROR = 3

# --interval without a value uses the configured interval_seconds
USE_CONFIGURED_INTERVAL = 0


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: '{value}'")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {number}")
    return number


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="launchpad-monitor",
        description="Watch GroundControl Launchpads and soft reset the ones that stay unhealthy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0   Cycle completed
  1   Configuration error
  2   Setup error (no connectivity, GroundControl unavailable)
  3   Authentication error (Workspace ONE credentials)

Environment Variables:
  CONFIG_PATH                    Path to YAML configuration file
  LPMON_GROUNDCONTROL_URL        GroundControl launchpads endpoint (with api_key)
  LPMON_SCOPE_EMAIL              Only monitor Launchpads owned by this account
  LPMON_WS1_ENV_URL              Workspace ONE API base URL
  LPMON_WS1_CLIENT_ID            Workspace ONE OAuth client ID
  LPMON_WS1_CLIENT_SECRET        Workspace ONE OAuth client secret
  LPMON_WS1_CLIENT_SECRET_FILE   Path to file containing the secret (Docker secrets)
  LPMON_BASE_DIR                 State, logs and status directory (default: ./lpmonitor)
  LPMON_OCCURRENCES_BEFORE_ACTION  Unhealthy cycles before a soft reset (default: 2)
  LPMON_LOG_LEVEL                Logging level: DEBUG, INFO, WARNING, ERROR
  LPMON_LOG_FORMAT               Log format: json or text

Examples:
  # One cycle, as run by a per-minute LaunchAgent or cron entry
  CONFIG_PATH=/etc/lpmonitor/config.yaml launchpad-monitor

  # Long-running service, one cycle every 60 seconds
  launchpad-monitor --interval 60

  # See what would be reset without touching anything
  launchpad-monitor --dry-run
""",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--test",
        action="store_true",
        help="Test configuration, connectivity, GroundControl and Workspace ONE auth, then exit",
    )
    parser.add_argument(
        "--interval",
        type=positive_int,
        nargs="?",
        const=USE_CONFIGURED_INTERVAL,
        default=None,
        metavar="SECONDS",
        help="Run cycles forever, every SECONDS (default: interval_seconds setting)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Evaluate and report only: no debounce writes and no soft resets",
    )
    return parser.parse_args(argv)


def print_banner(config: "MonitorSettings", dry_run: bool = False) -> None:
    """Print startup banner with version and configuration summary."""
    lines = [
        "",
        f"Launchpad Monitor v{__version__}",
        "=" * 40,
        f"GroundControl: {config.groundcontrol_url.split('?')[0]}",
        f"Workspace ONE: {config.ws1_env_url}",
        f"Base Dir:      {config.base_path}",
        f"Threshold:     {config.occurrences_before_action} cycles",
        f"Log Level:     {config.log_level}",
        f"Log Format:    {config.log_format}",
    ]
    if dry_run:
        lines.append("Mode:          dry run")
    lines.extend(["=" * 40, ""])

    for line in lines:
        print(line)


def build_reporter(config: "MonitorSettings") -> "CycleReporter":
    from launchpad_monitor.reports import CycleReporter

    return CycleReporter(
        status_path=config.status_path,
        logs_dir=config.logs_dir,
        reboot_log_path=config.reboot_log_path,
        alert_command=config.alert_command,
        retention_days=config.log_retention_days,
        timezone=config.timezone,
    )


def run_monitor_job(config: "MonitorSettings", dry_run: bool = False) -> "CycleResult":
    """Execute one monitoring cycle and publish its result.

    Called directly in one-shot mode and by the scheduler on every tick.
    Any failure that stops the cycle is written to the status file and
    returned as a failed CycleResult rather than raised. A report that
    cannot be written is logged; the cycle's own outcome stands.
    """
    from launchpad_monitor.api.exceptions import SetupError
    from launchpad_monitor.cycle import build_cycle
    from launchpad_monitor.logging import get_logger
    from launchpad_monitor.models import CycleResult
    from launchpad_monitor.reports import ReportError

    log = get_logger()

    reporter = build_reporter(config)
    reporter.begin_cycle()

    log.info("job_starting", dry_run=dry_run)
    cycle = build_cycle(config, dry_run=dry_run)
    try:
        result = cycle.run()
    except SetupError as e:
        log.error("cycle_aborted", error=e.message, hint=e.hint)
        result = CycleResult(failure=e.message, dry_run=dry_run)
    except Exception as e:
        log.error("cycle_failed", error=str(e), error_type=type(e).__name__)
        result = CycleResult(failure=f"Unexpected error: {e}", dry_run=dry_run)
    finally:
        cycle.close()

    try:
        reporter.report(result)
    except (ReportError, OSError) as e:
        log.error("report_failed", error=str(e), status=result.status.value)

    log.info("job_complete", status=result.status.value)
    return result


def run_self_test(config: "MonitorSettings") -> int:
    """Check every collaborator once without evaluating or remediating."""
    from launchpad_monitor.api import (
        AuthenticationError,
        ConnectivityError,
        GroundControlClient,
        SetupError,
        TokenProvider,
        check_connectivity,
    )
    from launchpad_monitor.logging import get_logger
    from launchpad_monitor.lookup import SerialLookup, SerialLookupError

    log = get_logger()
    print_banner(config)

    try:
        if config.connectivity_check_url and not check_connectivity(
            config.connectivity_check_url, timeout=min(config.request_timeout, 5.0)
        ):
            raise ConnectivityError()

        with GroundControlClient(
            url=config.groundcontrol_url,
            scope_email=config.scope_email,
            timeout=config.request_timeout,
        ) as source:
            devices = source.fetch_devices()
        print(f"GroundControl: {len(devices)} Launchpads in scope")

        try:
            lookup = SerialLookup.load(config.serial_csv)
            print(f"Serial lookup: {len(lookup)} entries from {config.serial_csv}")
        except SerialLookupError as e:
            log.warning("serial_lookup_unavailable", error=str(e))
            print(f"Serial lookup: unavailable ({e})")

        # Cache is bypassed so the credentials themselves are exercised
        TokenProvider(
            token_url=config.ws1_token_url,
            client_id=config.ws1_client_id,
            client_secret=config.ws1_client_secret,
            cache_path=None,
            timeout=config.request_timeout,
        ).get_token()
        print("Workspace ONE: token issued")

        print("Configuration and connection: OK")
        return EXIT_SUCCESS
    except SetupError as e:
        log.error("setup_failed", error=e.message)
        print(f"\nSetup error: {e}", file=sys.stderr)
        return EXIT_SETUP_ERROR
    except AuthenticationError as e:
        log.error("authentication_failed", error=e.message)
        print(f"\nAuthentication error: {e}", file=sys.stderr)
        return EXIT_AUTH_ERROR


def main(argv: Optional[list] = None) -> int:
    """Main entry point for launchpad-monitor.

    Returns:
        Exit code (0=success, 1=config error, 2=setup error, 3=auth error)
    """
    args = parse_args(argv)

    # Import here to allow --help without dependencies
    from launchpad_monitor.config.loader import ConfigurationError, load_config
    from launchpad_monitor.logging import configure_logging, get_logger
    from launchpad_monitor.models import CycleStatus
    from launchpad_monitor.scheduler import ScheduledRunner

    # Load configuration
    try:
        config = load_config()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    configure_logging(log_format=config.log_format, log_level=config.log_level)
    log = get_logger()

    if args.test:
        return run_self_test(config)

    if args.interval is None:
        log.info("run_once_mode", dry_run=args.dry_run)
        try:
            result = run_monitor_job(config, dry_run=args.dry_run)
        except Exception as e:
            # Only preparing the cycle can get here
            log.error("run_once_failed", error=str(e), error_type=type(e).__name__)
            print(f"\nMonitor cycle failed: {e}", file=sys.stderr)
            return EXIT_SETUP_ERROR
        if result.status is CycleStatus.FAILED:
            return EXIT_SETUP_ERROR
        return EXIT_SUCCESS

    interval = args.interval or config.interval_seconds
    print_banner(config, dry_run=args.dry_run)
    log.info("starting", version=__version__, interval_seconds=interval)

    runner = ScheduledRunner(timezone=config.timezone)
    try:
        runner.run(
            func=lambda: run_monitor_job(config, dry_run=args.dry_run),
            interval_seconds=interval,
        )
        return EXIT_SUCCESS
    except KeyboardInterrupt:
        log.info("shutdown", reason="keyboard interrupt")
        print("\nShutdown requested, exiting...")
        runner.shutdown()
        return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
