"""Unit tests for the command-line entry point.

Covers:
- Log level priority (CLI > env > config)
- Mode dispatch: single job, sweep, status, daemon, config check
- Exit codes and error handling
"""

from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest

from talentmatch.config.environment import EnvironmentConfig
from talentmatch.config.exceptions import ConfigurationError
from talentmatch.config.models import AppConfig, LoggingConfig, ScoringConfig
from talentmatch.domain.models import MatchingStatus
from talentmatch.main import build_orchestrator, load_runtime_config, main, print_job_status
from talentmatch.pipeline import JobNotFoundError, MatchingOrchestrator
from talentmatch.pipeline.models import MatchRunResult, SweepResult
from tests.helpers.builders import make_job, make_profile, seed, store_match


def make_configs(config_level="WARNING", env_level=None):
    app_config = AppConfig(
        scoring=ScoringConfig(endpoint_url="https://scoring.ipmatch.io/v1/score"),
        logging=LoggingConfig(level=config_level),
    )
    env_config = EnvironmentConfig(
        smtp_host="smtp.ipmatch.io",
        smtp_port=587,
        smtp_user=None,
        smtp_pass=None,
        email_from="matches@ipmatch.io",
        log_level=env_level,
    )
    return app_config, env_config


@pytest.fixture
def runtime():
    """Patch everything main() wires up and hand back the mocks."""
    orchestrator = Mock()
    with patch("talentmatch.main.load_runtime_config") as load, patch(
        "talentmatch.main.configure_logging"
    ) as configure, patch("talentmatch.main.init_database") as init_db, patch(
        "talentmatch.main.close_database"
    ) as close_db, patch(
        "talentmatch.main.build_orchestrator", return_value=orchestrator
    ):
        load.return_value = make_configs(env_level="INFO")
        yield Mock(
            load=load,
            configure=configure,
            init_db=init_db,
            close_db=close_db,
            orchestrator=orchestrator,
        )


def run_result(status=MatchingStatus.COMPLETED, errors=None):
    return MatchRunResult(
        job_id="job-1",
        run_id="run-1",
        status=status,
        match_count=2,
        errors=errors or [],
    )


class TestLoadRuntimeConfig:
    """Test suite for load_runtime_config."""

    def test_log_level_priority(self, tmp_path):
        """CLI beats LOG_LEVEL, which beats the config file."""
        config_file = tmp_path / "config.yaml"

        with patch("talentmatch.main.load_config") as mock_load:
            mock_load.return_value = make_configs("WARNING", "INFO")
            _, env_config = load_runtime_config(config_file, "DEBUG")
            assert env_config.log_level == "DEBUG"

            mock_load.return_value = make_configs("WARNING", "INFO")
            _, env_config = load_runtime_config(config_file, None)
            assert env_config.log_level == "INFO"

            mock_load.return_value = make_configs("WARNING", None)
            _, env_config = load_runtime_config(config_file, None)
            assert env_config.log_level == "WARNING"

    def test_configuration_error_propagates(self, tmp_path):
        with patch("talentmatch.main.load_config") as mock_load:
            mock_load.side_effect = ConfigurationError("Config file not found")

            with pytest.raises(ConfigurationError):
                load_runtime_config(tmp_path / "missing.yaml", None)


class TestBuildOrchestrator:
    def test_wires_notifier_with_configured_floor(self):
        app_config, env_config = make_configs()
        app_config.matching.notify_min_score = 40

        orchestrator = build_orchestrator(app_config, env_config)

        assert isinstance(orchestrator, MatchingOrchestrator)
        assert orchestrator.notifier.min_score == 40


class TestMain:
    """Test suite for main()."""

    def test_single_job_success(self, runtime):
        runtime.orchestrator.run_for_job.return_value = run_result()

        exit_code = main(["--job-id", "job-1"])

        assert exit_code == 0
        runtime.orchestrator.run_for_job.assert_called_once_with("job-1")
        runtime.configure.assert_called_once()
        assert runtime.configure.call_args.kwargs["level"] == "INFO"
        runtime.init_db.assert_called_once_with("sqlite:///./data/talentmatch.db")
        runtime.close_db.assert_called_once()

    def test_single_job_failed_run(self, runtime):
        runtime.orchestrator.run_for_job.return_value = run_result(
            MatchingStatus.FAILED, ["Profile P1: timed out"]
        )

        assert main(["--job-id", "job-1"]) == 1

    def test_single_job_partial_errors_still_succeeds(self, runtime, capsys):
        runtime.orchestrator.run_for_job.return_value = run_result(
            errors=["Profile P2: timed out"]
        )

        assert main(["--job-id", "job-1"]) == 0
        err = capsys.readouterr().err
        assert "1 candidate(s) failed" in err
        assert "Profile P2: timed out" in err

    def test_single_job_clean_run_prints_no_errors(self, runtime, capsys):
        runtime.orchestrator.run_for_job.return_value = run_result()

        main(["--job-id", "job-1"])

        assert "failed" not in capsys.readouterr().err

    def test_single_job_not_found(self, runtime, capsys):
        runtime.orchestrator.run_for_job.side_effect = JobNotFoundError("nope")

        exit_code = main(["--job-id", "nope"])

        assert exit_code == 1
        assert "nope" in capsys.readouterr().err
        runtime.close_db.assert_called_once()

    def test_sweep(self, runtime):
        now = datetime(2025, 6, 1, tzinfo=timezone.utc)
        runtime.orchestrator.run_sweep.return_value = SweepResult(
            sweep_id="sweep-1",
            started_at=now,
            finished_at=now,
            job_results={"job-1": run_result()},
        )

        assert main(["--sweep"]) == 0
        runtime.orchestrator.run_sweep.assert_called_once_with()

    def test_sweep_with_failed_job(self, runtime):
        now = datetime(2025, 6, 1, tzinfo=timezone.utc)
        runtime.orchestrator.run_sweep.return_value = SweepResult(
            sweep_id="sweep-1",
            started_at=now,
            finished_at=now,
            failures={"job-2": "database is locked"},
        )

        assert main(["--sweep"]) == 1

    def test_daemon_mode_is_default(self, runtime):
        with patch("talentmatch.main.run_daemon", return_value=0) as run_daemon:
            exit_code = main([])

        assert exit_code == 0
        run_daemon.assert_called_once_with(runtime.orchestrator, 900)

    def test_daemon_keyboard_interrupt(self, runtime):
        with patch("talentmatch.main.SchedulerService") as scheduler_service, patch(
            "signal.signal"
        ):
            scheduler_service.return_value.start.side_effect = KeyboardInterrupt()

            exit_code = main([])

        assert exit_code == 0
        scheduler_service.return_value.start.assert_called_once()
        runtime.close_db.assert_called_once()

    def test_status_mode_skips_orchestrator(self, runtime):
        with patch("talentmatch.main.print_job_status", return_value=0) as status, patch(
            "talentmatch.main.build_orchestrator"
        ) as build:
            exit_code = main(["--status", "job-1"])

        assert exit_code == 0
        status.assert_called_once_with("job-1")
        build.assert_not_called()

    def test_configuration_error(self):
        with patch("talentmatch.main.load_runtime_config") as mock_load:
            mock_load.side_effect = ConfigurationError("Config file not found")

            assert main(["--config", "nonexistent.yaml"]) == 1

    def test_keyboard_interrupt(self):
        with patch("talentmatch.main.load_runtime_config") as mock_load:
            mock_load.side_effect = KeyboardInterrupt()

            assert main([]) == 0

    def test_unexpected_error(self, runtime):
        runtime.init_db.side_effect = RuntimeError("disk full")

        assert main(["--sweep"]) == 1

    def test_log_level_flag_forwarded(self, runtime):
        runtime.orchestrator.run_for_job.return_value = run_result()

        main(["--job-id", "job-1", "--log-level", "DEBUG"])

        assert runtime.load.call_args[0][1] == "DEBUG"

    def test_modes_are_exclusive(self):
        with pytest.raises(SystemExit):
            main(["--sweep", "--job-id", "job-1"])


class TestCheckConfig:
    def test_valid(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("scoring:\n  endpoint_url: https://scoring.ipmatch.io\n")

        assert main(["--check-config", "--config", str(config_file)]) == 0

    def test_invalid(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("sweep_interval: 15m\n")

        assert main(["--check-config", "--config", str(config_file)]) == 1


class TestPrintJobStatus:
    def test_known_job(self, database, capsys):
        seed(make_job(), profiles=[make_profile("P1")])
        store_match("job-1", "P1")

        assert print_job_status("job-1") == 0
        out = capsys.readouterr().out
        assert "Patent Counsel" in out
        assert "pending" in out
        assert "matches:         1" in out

    def test_unknown_job(self, database, capsys):
        assert print_job_status("nope") == 1
        assert "not found" in capsys.readouterr().err
