"""Unit tests for the main entry point.

Tests the main() function including:
- CLI argument parsing
- Log level priority (CLI > env > config)
- Dispatcher selection per transport
- Manual check mode vs daemon mode
- Exit code handling
"""

import logging
import os
import signal
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from zoneinfo import ZoneInfo

import pytest
import yaml

from license_renewals.config.environment import EnvironmentConfig
from license_renewals.config.exceptions import ConfigurationError
from license_renewals.config.models import AppConfig, EmailSettings
from license_renewals.domain.models import Tier
from license_renewals.main import (
    build_dispatcher,
    load_runtime_config,
    main,
    parse_args,
    print_failure_notice,
    run_daemon,
    run_manual_check,
)
from license_renewals.notifications import (
    DispatchOutcome,
    EmailJSDispatcher,
    RecordingDispatcher,
    SmtpEmailDispatcher,
)
from license_renewals.persistence import (
    LicenseRepository,
    close_database,
    get_session,
    init_database,
)
from license_renewals.scheduler.cycle import CycleReport, TierReport
from license_renewals.utils.timestamps import utc_now

CONFIG = {
    "scheduler": {"check_interval": "1h"},
    "email": {
        "provider_id": "service_abc",
        "template_id": "template_xyz",
        "public_key": "public-key",
        "sender_email": "licenses@example.com",
    },
    "logging": {"level": "WARNING", "format": "key-value"},
}


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(CONFIG))
    return path


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def no_dotenv():
    with patch("license_renewals.main.load_dotenv"):
        yield


class TestParseArgs:
    """CLI parsing."""

    def test_defaults(self):
        args = parse_args([])

        assert args.config is None
        assert args.manual_check is False
        assert args.dry_run is False
        assert args.log_level is None

    def test_flags(self, tmp_path):
        args = parse_args(
            ["--config", str(tmp_path / "c.yaml"), "--manual-check", "--dry-run",
             "--log-level", "DEBUG"]
        )

        assert args.config == tmp_path / "c.yaml"
        assert args.manual_check is True
        assert args.dry_run is True
        assert args.log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(SystemExit):
            parse_args(["--log-level", "LOUD"])


class TestLoadRuntimeConfig:
    """Log level resolution."""

    def test_config_level_used_by_default(self, config_file, clean_env):
        _, env_config = load_runtime_config(config_file, None)

        assert env_config.log_level == "WARNING"

    def test_env_overrides_config(self, config_file, clean_env):
        clean_env.setenv("LOG_LEVEL", "error")

        _, env_config = load_runtime_config(config_file, None)

        assert env_config.log_level == "ERROR"

    def test_cli_overrides_env(self, config_file, clean_env):
        clean_env.setenv("LOG_LEVEL", "ERROR")

        _, env_config = load_runtime_config(config_file, "DEBUG")

        assert env_config.log_level == "DEBUG"


class TestBuildDispatcher:
    """Transport selection."""

    def test_dry_run(self):
        dispatcher = build_dispatcher(AppConfig(), EnvironmentConfig(), dry_run=True)

        assert isinstance(dispatcher, RecordingDispatcher)

    def test_emailjs_default(self):
        assert isinstance(build_dispatcher(AppConfig(), EnvironmentConfig()), EmailJSDispatcher)

    def test_smtp(self):
        app_config = AppConfig(email=EmailSettings(transport="smtp"))

        dispatcher = build_dispatcher(
            app_config, EnvironmentConfig(smtp_host="localhost", smtp_port=25)
        )

        assert isinstance(dispatcher, SmtpEmailDispatcher)

    @pytest.mark.parametrize("transport", ["emailjs", "smtp"])
    def test_dates_follow_scheduler_timezone(self, transport):
        app_config = AppConfig.model_validate(
            {"scheduler": {"timezone": "Europe/Amsterdam"}, "email": {"transport": transport}}
        )

        dispatcher = build_dispatcher(
            app_config, EnvironmentConfig(smtp_host="localhost", smtp_port=25)
        )

        assert dispatcher.layout_renderer.timezone == ZoneInfo("Europe/Amsterdam")


def test_print_failure_notice(capsys):
    outcome = DispatchOutcome(
        license_id="a",
        license_name="Adobe",
        tier=Tier.ONE_DAY,
        recipient="a@example.com",
        status="failed",
        error="timeout",
    )

    print_failure_notice(outcome)

    assert capsys.readouterr().err.strip() == (
        "Notification failed: Failed to send oneDay reminder for 'Adobe' "
        "to a@example.com: timeout"
    )


class TestRunModes:
    """run_manual_check and run_daemon."""

    async def test_manual_check_exit_codes(self, capsys, now):
        report = CycleReport(cycle_id="c", status="completed", trigger="manual", started_at=now)
        report.tiers.append(TierReport(tier=Tier.ONE_DAY, matched=1, sent=1))
        scheduler = MagicMock()
        scheduler.trigger_manual_check = AsyncMock(return_value=report)

        assert await run_manual_check(scheduler, AppConfig()) == 0
        assert "oneDay: matched=1 sent=1 failed=0" in capsys.readouterr().out

        report.outcomes.append(
            DispatchOutcome("a", "A", Tier.ONE_DAY, "a@example.com", "failed", "x")
        )
        assert await run_manual_check(scheduler, AppConfig()) == 1

    async def test_daemon_stops_on_sigterm(self):
        scheduler = MagicMock()

        async def start(email_settings, notification_settings):
            os.kill(os.getpid(), signal.SIGTERM)

        scheduler.start = AsyncMock(side_effect=start)

        assert await run_daemon(scheduler, AppConfig()) == 0
        scheduler.stop.assert_called_once()


class TestMain:
    """End-to-end behavior of main()."""

    def test_configuration_error_returns_1(self, no_dotenv, capsys):
        with patch(
            "license_renewals.main.load_config",
            side_effect=ConfigurationError("bad config", errors=["x"]),
        ):
            assert main([]) == 1

        assert "Configuration Error: bad config" in capsys.readouterr().err

    def test_database_failure_returns_1(
        self, config_file, clean_env, no_dotenv, restore_root_logger
    ):
        with patch(
            "license_renewals.main.init_database", side_effect=RuntimeError("disk full")
        ), patch("license_renewals.main.close_database") as close:
            assert main(["--config", str(config_file), "--manual-check"]) == 1

        close.assert_called_once()

    def test_daemon_mode_runs_daemon(
        self, config_file, clean_env, no_dotenv, restore_root_logger
    ):
        clean_env.setenv("DATABASE_URL", "sqlite://")

        with patch("license_renewals.main.run_daemon", new=AsyncMock(return_value=0)) as daemon:
            assert main(["--config", str(config_file)]) == 0

        daemon.assert_awaited_once()

    def test_keyboard_interrupt_returns_0(
        self, config_file, clean_env, no_dotenv, restore_root_logger
    ):
        clean_env.setenv("DATABASE_URL", "sqlite://")

        with patch(
            "license_renewals.main.run_daemon", new=AsyncMock(side_effect=KeyboardInterrupt)
        ):
            assert main(["--config", str(config_file)]) == 0

    def test_manual_dry_run_against_database(
        self, tmp_path, config_file, clean_env, no_dotenv, restore_root_logger, capsys,
        make_license,
    ):
        db_url = f"sqlite:///{tmp_path / 'licenses.db'}"
        init_database(db_url)
        with get_session() as session:
            repo = LicenseRepository(session)
            repo.upsert(make_license("soon", renewal_date=utc_now() + timedelta(days=1)))
            repo.upsert(make_license("later", renewal_date=utc_now() + timedelta(days=15)))
        close_database()
        clean_env.setenv("DATABASE_URL", db_url)

        exit_code = main(["--config", str(config_file), "--manual-check", "--dry-run"])

        assert exit_code == 0
        out = capsys.readouterr().out
        assert "oneDay: matched=1 sent=1 failed=0" in out
        assert "sevenDays: matched=0" in out
