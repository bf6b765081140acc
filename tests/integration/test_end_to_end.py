"""Integration tests for the full matching flow.

Tests end-to-end flow:
- Eligibility → HTTP scoring → match storage → SMTP notifications
- Reuse of fresh matches on a rerun
- Requirement edits forcing a rescore
- Sweeps over the matching queue
- Real SQLite database (in-memory), mocked HTTP session and SMTP connection
"""

from unittest.mock import MagicMock, Mock

import pytest

from talentmatch.config.environment import EnvironmentConfig
from talentmatch.config.models import EmailConfig, NotificationsConfig
from talentmatch.domain.models import MatchingStatus, Recommendation
from talentmatch.matching.scoring import HttpScoreProvider
from talentmatch.notifications import MatchNotifier, SMTPClient
from talentmatch.persistence import MatchRepository, get_session
from talentmatch.pipeline import MatchingOrchestrator, apply_job_edit
from tests.helpers.builders import load_job, load_matches, make_job, make_profile, seed

SCORE_RESPONSE = {
    "overall_score": 84,
    "dimensions": {
        "specialization_match": {"score": 95, "explanation": "Prosecution focus"},
        "credentials": {"score": 100, "explanation": "USPTO registered"},
    },
    "requirement_tags": [{"requirement": "USPTO", "status": "met"}],
    "strengths": ["Registered patent attorney"],
    "gaps": [],
    "summary": "Strong prosecution background",
    "recommendation": "Strong Match",
}


@pytest.fixture
def http_session():
    session = Mock()
    session.headers = {}
    response = Mock(status_code=200, reason="OK")
    response.json.return_value = SCORE_RESPONSE
    session.post.return_value = response
    return session


@pytest.fixture
def smtp_conn():
    return MagicMock()


@pytest.fixture
def orchestrator(database, http_session, smtp_conn, clock):
    env_config = EnvironmentConfig(
        smtp_host="smtp.ipmatch.io",
        smtp_port=587,
        smtp_user="mailer",
        smtp_pass="secret",
        email_from="matches@ipmatch.io",
    )
    transport = SMTPClient(env_config, smtp_factory=Mock(return_value=smtp_conn))
    notifier = MatchNotifier(
        transport=transport,
        settings=NotificationsConfig(app_url="https://careers.ipmatch.io"),
        email_config=EmailConfig(),
        min_score=25,
        sleep=Mock(),
    )
    provider = HttpScoreProvider(
        "https://scoring.ipmatch.io/v1/score", timeout=30, session=http_session
    )
    return MatchingOrchestrator(score_provider=provider, notifier=notifier, clock=clock)


@pytest.fixture
def patent_job(database):
    """Prosecution job; only P1 holds both the specialization and the admission."""
    seed(
        make_job(
            required_specializations=["Patent Prosecution"],
            required_admissions=["USPTO"],
        ),
        profiles=[
            make_profile(
                "P1",
                specializations=["Patent Prosecution"],
                admissions=["USPTO"],
                account_email="p1@lawmail.com",
            ),
            make_profile(
                "P2",
                specializations=["Trademark"],
                admissions=["USPTO"],
                account_email="p2@lawmail.com",
            ),
            make_profile(
                "P3",
                specializations=["Patent Prosecution"],
                account_email="p3@lawmail.com",
            ),
        ],
    )


def sent_recipients(smtp_conn):
    return [call.args[0]["To"] for call in smtp_conn.send_message.call_args_list]


class TestEndToEnd:
    """Full runs against the in-memory database."""

    def test_match_score_store_and_notify(self, patent_job, orchestrator, http_session, smtp_conn):
        result = orchestrator.run_for_job("job-1")

        assert result.status == MatchingStatus.COMPLETED
        assert result.shortlist_size == 1
        assert result.match_count == 1
        assert result.errors == []

        http_session.post.assert_called_once()
        payload = http_session.post.call_args.kwargs["json"]
        assert payload["job"]["required_admissions"] == ["USPTO"]
        assert "id" not in payload["candidate"]

        matches = load_matches("job-1")
        assert [m.profile_id for m in matches] == ["P1"]
        assert matches[0].overall_score == 84
        assert matches[0].recommendation == Recommendation.STRONG
        assert matches[0].notified_at is not None

        job = load_job("job-1")
        assert job.matching_status == MatchingStatus.COMPLETED
        assert job.matched_at is not None

        assert result.notification.status == "sent"
        assert sent_recipients(smtp_conn) == ["hiring@ipfirm.com", "p1@lawmail.com"]
        smtp_conn.starttls.assert_called()
        smtp_conn.login.assert_called_with("mailer", "secret")

    def test_rerun_reuses_match_and_sends_nothing(
        self, patent_job, orchestrator, http_session, smtp_conn
    ):
        orchestrator.run_for_job("job-1")
        emails_before = smtp_conn.send_message.call_count

        result = orchestrator.run_for_job("job-1")

        assert result.cached_count == 1
        assert result.scored_count == 0
        assert http_session.post.call_count == 1
        assert smtp_conn.send_message.call_count == emails_before
        assert result.notification.status == "skipped"

    def test_requirement_edit_rescores_and_renotifies(
        self, patent_job, orchestrator, http_session, smtp_conn, clock
    ):
        orchestrator.run_for_job("job-1")

        edit = apply_job_edit(
            "job-1", {"required_specializations": ["Trademark"]}, clock=clock
        )
        assert edit.matches_deleted == 1

        result = orchestrator.run_for_job("job-1")

        assert [m.profile_id for m in load_matches("job-1")] == ["P2"]
        assert result.scored_count == 1
        assert http_session.post.call_count == 2
        assert sent_recipients(smtp_conn)[-1] == "p2@lawmail.com"

    def test_scoring_outage_fails_job_and_keeps_it_queued(
        self, patent_job, orchestrator, http_session, smtp_conn
    ):
        http_session.post.return_value = Mock(status_code=503, reason="Service Unavailable")

        result = orchestrator.run_for_job("job-1")

        assert result.status == MatchingStatus.FAILED
        assert result.errors == ["Profile P1: HTTP 503: Service Unavailable"]
        assert load_job("job-1").matching_status == MatchingStatus.FAILED
        assert load_matches("job-1") == []
        smtp_conn.send_message.assert_not_called()

    def test_sweep_matches_every_queued_job(self, patent_job, orchestrator, http_session):
        seed(
            make_job(
                "job-2",
                title="Trademark Associate",
                required_specializations=["Trademark"],
            )
        )

        sweep = orchestrator.run_sweep()

        assert sweep.jobs_attempted == 2
        assert sweep.jobs_completed == 2
        assert sweep.job_results["job-2"].match_count == 1
        with get_session() as session:
            assert MatchRepository(session).count_for_job("job-2") == 1

        second = orchestrator.run_sweep()
        assert second.jobs_attempted == 0
