"""Command-line entry point for the talentmatch matching service."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import os
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Tuple

from talentmatch.config.environment import EnvironmentConfig
from talentmatch.config.duration import seconds_to_human_readable
from talentmatch.config.exceptions import ConfigurationError
from talentmatch.config.loader import load_config, validate_config_file
from talentmatch.config.models import AppConfig
from talentmatch.domain.models import MatchingStatus
from talentmatch.logging import get_logger
from talentmatch.logging.config import configure_logging
from talentmatch.matching.scoring import HttpScoreProvider
from talentmatch.notifications import MatchNotifier, SMTPClient
from talentmatch.persistence import (
    JobRepository,
    MatchRepository,
    close_database,
    get_session,
    init_database,
)
from talentmatch.pipeline import JobNotFoundError, MatchingOrchestrator
from talentmatch.scheduler import SchedulerService
from talentmatch.utils.timestamps import format_timestamp_for_log

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and settle the effective log level.

    Log level priority: CLI flag, then LOG_LEVEL, then the config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level

    return app_config, env_config


def build_orchestrator(
    app_config: AppConfig, env_config: EnvironmentConfig
) -> MatchingOrchestrator:
    """Wire the Score Provider, SMTP transport and notifier into an orchestrator."""
    score_provider = HttpScoreProvider.from_config(
        app_config.scoring, api_key=env_config.scoring_api_key
    )
    transport = SMTPClient(env_config, use_tls=app_config.email.use_tls)
    notifier = MatchNotifier(
        transport=transport,
        settings=app_config.notifications,
        email_config=app_config.email,
        min_score=app_config.matching.notify_min_score,
    )
    return MatchingOrchestrator(score_provider=score_provider, notifier=notifier)


def print_job_status(job_id: str) -> int:
    """Print a job's matching status and match count."""
    with get_session() as session:
        job = JobRepository(session).get(job_id)
        if job is None:
            print(f"Job {job_id} not found", file=sys.stderr)
            return 1
        match_count = MatchRepository(session).count_for_job(job_id)

    matched_at = format_timestamp_for_log(job.matched_at) or "never"
    print(f"{job.id}  {job.title}")
    print(f"  status:          {job.status.value}")
    print(f"  matching status: {job.matching_status.value}")
    print(f"  matches:         {match_count}")
    print(f"  last matched:    {matched_at}")
    return 0


def run_single_job(orchestrator: MatchingOrchestrator, job_id: str) -> int:
    try:
        result = orchestrator.run_for_job(job_id)
    except JobNotFoundError as e:
        print(str(e), file=sys.stderr)
        return 1

    logger.info(
        f"Manual run finished: {result.match_count} match(es), {len(result.errors)} error(s)",
        extra={
            "event": "service.manual_run.completed",
            "status": result.status.value,
            "match_count": result.match_count,
            "error_count": len(result.errors),
        },
    )
    if result.had_errors:
        print(f"{len(result.errors)} candidate(s) failed:", file=sys.stderr)
        for error in result.errors:
            print(f"  {error}", file=sys.stderr)
    return 0 if result.status == MatchingStatus.COMPLETED else 1


def run_daemon(orchestrator: MatchingOrchestrator, interval_seconds: int) -> int:
    shutdown_event = threading.Event()
    scheduler_service = SchedulerService(
        sweep_callable=orchestrator.run_sweep,
        interval_seconds=interval_seconds,
        shutdown_event=shutdown_event,
    )

    def signal_handler(signum, frame):
        logger.info(
            f"Received signal {signum}, shutting down",
            extra={"event": "service.signal_received", "signal": signum},
        )
        scheduler_service.shutdown(wait=False)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    scheduler_service.start()
    logger.info(
        f"Scheduler started, sweeping every {seconds_to_human_readable(interval_seconds)}. "
        "Press Ctrl+C to stop",
        extra={"event": "service.daemon_mode.started"},
    )

    try:
        shutdown_event.wait()
    except KeyboardInterrupt:
        scheduler_service.shutdown(wait=False)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="talentmatch",
        description="Candidate-job matching service: scores eligible candidates and notifies on new matches",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--job-id", help="Run matching for one job and exit")
    mode.add_argument(
        "--sweep",
        action="store_true",
        help="Run matching once for every open pending/failed job and exit",
    )
    mode.add_argument("--status", metavar="JOB_ID", help="Show a job's matching status and exit")
    mode.add_argument(
        "--check-config",
        action="store_true",
        help="Validate the configuration file and exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    return parser


def main(argv=None) -> int:
    """
    Entry point. Without a mode flag, runs as a daemon sweeping on the
    configured interval.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    if args.check_config:
        return 0 if validate_config_file(args.config or Path("config.yaml")) else 1

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=os.environ.get("ENVIRONMENT", "local"),
        )
        logger.info(
            "talentmatch starting",
            extra={
                "event": "service.starting",
                "log_level": env_config.log_level,
                "sweep_interval_seconds": app_config.sweep_interval_seconds,
            },
        )

        init_database(env_config.database_url)
        try:
            if args.status:
                return print_job_status(args.status)

            orchestrator = build_orchestrator(app_config, env_config)
            if args.job_id:
                return run_single_job(orchestrator, args.job_id)
            if args.sweep:
                result = orchestrator.run_sweep()
                return 1 if result.jobs_failed else 0
            return run_daemon(orchestrator, app_config.sweep_interval_seconds)
        finally:
            close_database()
            logger.info(
                "talentmatch stopped",
                extra={
                    "event": "service.stopping",
                    "uptime_seconds": round(time.time() - start_time, 2),
                },
            )

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            exc_info=True,
            extra={"event": "service.failed", "error_type": type(e).__name__},
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
