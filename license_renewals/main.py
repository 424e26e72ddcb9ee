"""Main entry point for the license renewal reminder service."""

import argparse
import asyncio
import os
import signal
import sys
import time
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from license_renewals.config.environment import EnvironmentConfig
from license_renewals.config.exceptions import ConfigurationError
from license_renewals.config.loader import load_config
from license_renewals.config.models import AppConfig, EmailTransport
from license_renewals.logging import get_logger
from license_renewals.logging.config import configure_logging
from license_renewals.notifications import (
    DispatchOutcome,
    EmailDispatchPort,
    EmailJSDispatcher,
    EmailLayoutRenderer,
    RecordingDispatcher,
    SmtpEmailDispatcher,
)
from license_renewals.persistence import (
    SqlWatermarkStore,
    close_database,
    init_database,
    load_all_licenses,
)
from license_renewals.scheduler import NotificationScheduler
from license_renewals.utils.timestamps import make_clock, resolve_timezone

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI > environment > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def build_dispatcher(
    app_config: AppConfig, env_config: EnvironmentConfig, dry_run: bool = False
) -> EmailDispatchPort:
    """Choose the dispatch adapter for the configured transport."""
    if dry_run:
        return RecordingDispatcher()
    tz = resolve_timezone(app_config.scheduler.timezone)
    if app_config.email.transport == EmailTransport.SMTP:
        return SmtpEmailDispatcher(
            app_config.email, env_config, layout_renderer=EmailLayoutRenderer(timezone=tz)
        )
    return EmailJSDispatcher(app_config.email, env_config, timezone=tz)


def build_scheduler(
    app_config: AppConfig, dispatcher: EmailDispatchPort
) -> NotificationScheduler:
    """Wire the single scheduler instance used by the process."""
    return NotificationScheduler(
        license_source=load_all_licenses,
        dispatcher=dispatcher,
        watermark_store=SqlWatermarkStore(),
        check_interval_seconds=app_config.scheduler.check_interval_seconds,
        clock=make_clock(app_config.scheduler.timezone),
        failure_notifier=print_failure_notice,
    )


def print_failure_notice(outcome: DispatchOutcome) -> None:
    """Show a failed dispatch to the operator."""
    print(f"Notification failed: {outcome.failure_notice()}", file=sys.stderr)


async def run_manual_check(scheduler: NotificationScheduler, app_config: AppConfig) -> int:
    """Run one manual check and return the process exit code."""
    report = await scheduler.trigger_manual_check(app_config.email, app_config.notifications)

    logger.info(
        f"Manual check {report.status}: {report.total_matched} matched, "
        f"{report.total_sent} sent, {report.total_failed} failed",
        extra={
            "event": "service.manual_check.completed",
            "status": report.status,
            "total_matched": report.total_matched,
            "total_sent": report.total_sent,
            "total_failed": report.total_failed,
        },
    )
    for tier_report in report.tiers:
        print(
            f"{tier_report.tier.value}: matched={tier_report.matched} "
            f"sent={tier_report.sent} failed={tier_report.failed} "
            f"skipped_no_recipient={tier_report.skipped_no_recipient}"
        )
    return 1 if report.total_failed else 0


async def run_daemon(scheduler: NotificationScheduler, app_config: AppConfig) -> int:
    """Run the scheduler until SIGINT or SIGTERM."""
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def request_shutdown(signum: int) -> None:
        logger.info(
            f"Received signal {signum}, shutting down",
            extra={"event": "service.signal_received", "signal": signum},
        )
        shutdown_event.set()

    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, request_shutdown, signum)
        except NotImplementedError:
            # Windows event loops lack add_signal_handler
            signal.signal(signum, lambda s, _frame: loop.call_soon_threadsafe(request_shutdown, s))

    await scheduler.start(app_config.email, app_config.notifications)
    logger.info(
        "Scheduler started. Press Ctrl+C to stop",
        extra={"event": "service.daemon_mode.started"},
    )

    try:
        await shutdown_event.wait()
    finally:
        scheduler.stop()
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="license-renewals",
        description="License renewal reminders - daily check and email notifications",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml or config/config.yaml)",
    )
    parser.add_argument(
        "--manual-check",
        action="store_true",
        help="Run a single check immediately and exit",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Record reminders in memory instead of sending them",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    load_dotenv()
    args = parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)
    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1

    configure_logging(
        level=env_config.log_level,
        format_type=app_config.logging.format,
        environment=os.environ.get("ENVIRONMENT", "local"),
    )
    logger.info(
        "License renewal service starting",
        extra={
            "event": "service.starting",
            "config_path": str(args.config) if args.config else None,
            "log_level": env_config.log_level,
            "manual_check": args.manual_check,
            "dry_run": args.dry_run,
            "transport": app_config.email.transport,
        },
    )

    try:
        init_database(env_config.database_url)
        dispatcher = build_dispatcher(app_config, env_config, dry_run=args.dry_run)
        scheduler = build_scheduler(app_config, dispatcher)

        if args.manual_check:
            exit_code = asyncio.run(run_manual_check(scheduler, app_config))
        else:
            exit_code = asyncio.run(run_daemon(scheduler, app_config))

    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        exit_code = 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            extra={
                "event": "service.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        exit_code = 1
    finally:
        close_database()

    logger.info(
        "License renewal service stopped",
        extra={
            "event": "service.stopping",
            "uptime_seconds": round(time.time() - start_time, 2),
        },
    )
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
