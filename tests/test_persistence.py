"""Unit tests for the persistence layer."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import text

from talentmatch.domain.models import (
    EducationEntry,
    JobStatus,
    LanguageSkill,
    Match,
    MatchingStatus,
    ProfileStatus,
    WorkHistoryEntry,
)
from talentmatch.persistence import (
    DatabaseConnectionError,
    DataIntegrityError,
    JobRepository,
    MatchRepository,
    ProfileRepository,
    RecordNotFoundError,
    close_database,
    get_engine,
    get_session,
    init_database,
)
from talentmatch.persistence.schema import MatchModel
from tests.helpers.builders import (
    CREATED_AT,
    TickingClock,
    load_job,
    make_job,
    make_profile,
    make_score,
    seed,
    store_match,
)


class TestDatabaseInitialization:
    """Tests for database initialization."""

    def test_init_creates_parent_directories(self, tmp_path):
        db_file = tmp_path / "nested" / "dir" / "talentmatch.db"

        init_database(f"sqlite:///{db_file}")
        try:
            assert db_file.exists()
            with get_session() as session:
                assert session.execute(text("SELECT 1")).scalar() == 1
        finally:
            close_database()

    def test_schema_created(self, database):
        with get_session() as session:
            tables = {
                row[0]
                for row in session.execute(
                    text("SELECT name FROM sqlite_master WHERE type='table'")
                )
            }

        assert {"jobs", "profiles", "profile_specializations", "matches"} <= tables

    def test_foreign_keys_enabled(self, database):
        with get_engine().connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1

    def test_session_before_init(self):
        close_database()

        with pytest.raises(DatabaseConnectionError, match="not initialized"):
            with get_session():
                pass

    def test_invalid_url(self):
        with pytest.raises(DatabaseConnectionError):
            init_database("notadialect://nowhere")

    def test_empty_url(self):
        with pytest.raises(DatabaseConnectionError):
            init_database("")

    def test_rollback_on_error(self, database):
        with pytest.raises(RuntimeError):
            with get_session() as session:
                JobRepository(session).add(make_job())
                raise RuntimeError("abort")

        assert load_job("job-1") is None

    def test_close_is_idempotent(self, database):
        close_database()
        close_database()


class TestJobRepository:
    """Tests for job reads, status changes and edits."""

    def test_add_and_get(self, database):
        seed(make_job(required_specializations=["Patent Prosecution"], minimum_experience=3))

        job = load_job("job-1")

        assert job.title == "Patent Counsel"
        assert job.required_specializations == ["Patent Prosecution"]
        assert job.minimum_experience == 3
        assert job.created_at == CREATED_AT
        assert job.matching_status == MatchingStatus.PENDING

    def test_get_missing(self, database):
        assert load_job("nope") is None

    def test_duplicate_id(self, database):
        seed(make_job())

        with pytest.raises(DataIntegrityError):
            seed(make_job())

    def test_completed_sets_matched_at_but_not_updated_at(self, database, clock):
        seed(make_job())

        with get_session() as session:
            JobRepository(session, clock=clock).set_matching_status("job-1", MatchingStatus.COMPLETED)

        job = load_job("job-1")
        assert job.matching_status == MatchingStatus.COMPLETED
        assert job.matched_at == clock.current
        assert job.updated_at == CREATED_AT

    def test_running_and_failed_leave_matched_at(self, database):
        seed(make_job())

        for status in (MatchingStatus.RUNNING, MatchingStatus.FAILED):
            with get_session() as session:
                JobRepository(session).set_matching_status("job-1", status)

        job = load_job("job-1")
        assert job.matching_status == MatchingStatus.FAILED
        assert job.matched_at is None

    def test_status_for_missing_job(self, database):
        with pytest.raises(RecordNotFoundError):
            with get_session() as session:
                JobRepository(session).set_matching_status("nope", MatchingStatus.RUNNING)

    def test_list_for_matching(self, database):
        """Only open jobs that are pending or failed, oldest first."""
        seed(make_job("newer", created_at=datetime(2025, 2, 1, tzinfo=timezone.utc)))
        seed(make_job("older", matching_status=MatchingStatus.FAILED))
        seed(make_job("done", matching_status=MatchingStatus.COMPLETED))
        seed(make_job("busy", matching_status=MatchingStatus.RUNNING))
        seed(make_job("draft", status=JobStatus.DRAFT))
        seed(make_job("closed", status=JobStatus.CLOSED))

        with get_session() as session:
            jobs = JobRepository(session).list_for_matching()

        assert [job.id for job in jobs] == ["older", "newer"]


class TestRecordEdit:
    """Tests for JobRepository.record_edit."""

    @pytest.fixture
    def completed_job(self, database):
        seed(
            make_job(
                matching_status=MatchingStatus.COMPLETED,
                required_specializations=["Patent Prosecution", "Trademark"],
                minimum_experience=5,
            )
        )

    def edit(self, clock, changes):
        with get_session() as session:
            return JobRepository(session, clock=clock).record_edit("job-1", changes)

    def test_requirement_change_resets_to_pending(self, completed_job, clock):
        changed = self.edit(clock, {"minimum_experience": 8})

        job = load_job("job-1")
        assert changed is True
        assert job.minimum_experience == 8
        assert job.matching_status == MatchingStatus.PENDING
        assert job.updated_at == clock.current

    def test_reordered_list_is_not_a_change(self, completed_job, clock):
        changed = self.edit(
            clock, {"required_specializations": ["Trademark", "Patent Prosecution"]}
        )

        job = load_job("job-1")
        assert changed is False
        assert job.matching_status == MatchingStatus.COMPLETED
        assert job.updated_at == CREATED_AT

    def test_same_value_is_not_a_change(self, completed_job, clock):
        assert self.edit(clock, {"minimum_experience": 5, "title": "Patent Counsel"}) is False
        assert load_job("job-1").updated_at == CREATED_AT

    def test_non_requirement_edit_only_bumps_updated_at(self, completed_job, clock):
        changed = self.edit(clock, {"title": "Senior Patent Counsel"})

        job = load_job("job-1")
        assert changed is False
        assert job.title == "Senior Patent Counsel"
        assert job.matching_status == MatchingStatus.COMPLETED
        assert job.updated_at > CREATED_AT

    def test_unknown_field(self, completed_job, clock):
        with pytest.raises(ValueError, match="not editable"):
            self.edit(clock, {"matching_status": "pending"})

    def test_invalid_value(self, completed_job, clock):
        with pytest.raises(ValueError):
            self.edit(clock, {"minimum_experience": -2})

    def test_missing_job(self, database, clock):
        with pytest.raises(RecordNotFoundError):
            self.edit(clock, {"title": "x"})


class TestProfileRepository:
    """Tests for candidate storage, eligibility queries and scoring payloads."""

    def test_save_and_get(self, database):
        profile = make_profile(
            "P1",
            specializations=["Trademark", "Patent Prosecution"],
            admissions=["USPTO"],
            technical_domains=["Software"],
            account_email="p1@lawmail.com",
        )
        profile.education = [EducationEntry(institution="MIT", degree="BS", field="EE")]
        seed(profiles=[profile])

        with get_session() as session:
            loaded = ProfileRepository(session).get("P1")

        assert loaded.status == ProfileStatus.ACTIVE
        assert loaded.specializations == ["Patent Prosecution", "Trademark"]
        assert [a.jurisdiction for a in loaded.admissions] == ["USPTO"]
        assert loaded.technical_domains == ["Software"]
        assert loaded.education[0].field == "EE"
        assert loaded.account_email == "p1@lawmail.com"

    def test_save_replaces_categories(self, database):
        seed(profiles=[make_profile("P1", specializations=["Trademark"], admissions=["USPTO"])])
        seed(profiles=[make_profile("P1", specializations=["Patent Litigation"], admissions=["USPTO"])])

        with get_session() as session:
            loaded = ProfileRepository(session).get("P1")

        assert loaded.specializations == ["Patent Litigation"]
        assert [a.jurisdiction for a in loaded.admissions] == ["USPTO"]

    def test_list_active_ids(self, database):
        seed(
            profiles=[
                make_profile("P2"),
                make_profile("P1"),
                make_profile("P3", status=ProfileStatus.PENDING_REVIEW),
            ]
        )

        with get_session() as session:
            assert ProfileRepository(session).list_active_ids() == ["P1", "P2"]

    def test_find_eligible_any_of_each_category(self, database):
        seed(
            profiles=[
                make_profile("P1", specializations=["Patent Prosecution"], admissions=["USPTO"]),
                make_profile("P2", specializations=["Trademark"], admissions=["USPTO"]),
                make_profile("P3", specializations=["Patent Litigation"], admissions=["EPO"]),
                make_profile("P4", specializations=["Patent Prosecution"]),
            ]
        )

        with get_session() as session:
            eligible = ProfileRepository(session).find_eligible_ids(
                required_specializations=["Patent Prosecution", "Patent Litigation"],
                required_admissions=["USPTO", "EPO"],
            )

        assert eligible == ["P1", "P3"]

    def test_find_eligible_technical_domains(self, database):
        seed(
            profiles=[
                make_profile("P1", technical_domains=["Biotech"]),
                make_profile("P2", technical_domains=["Software"]),
            ]
        )

        with get_session() as session:
            eligible = ProfileRepository(session).find_eligible_ids(
                required_technical_domains=["Software"]
            )

        assert eligible == ["P2"]

    def test_find_eligible_excludes_inactive(self, database):
        seed(
            profiles=[
                make_profile("P1", specializations=["Trademark"], status=ProfileStatus.REJECTED),
                make_profile("P2", specializations=["Trademark"]),
            ]
        )

        with get_session() as session:
            eligible = ProfileRepository(session).find_eligible_ids(
                required_specializations=["Trademark"]
            )

        assert eligible == ["P2"]

    def test_get_for_scoring(self, database):
        profile = make_profile(
            "P1",
            specializations=["Patent Prosecution"],
            admissions=["USPTO"],
            work_history=[WorkHistoryEntry(start_date="2015-01", end_date="2020-01")],
            account_email="p1@lawmail.com",
        ).model_copy(
            update={
                "languages": [
                    LanguageSkill(language="German", proficiency="native"),
                    LanguageSkill(language="English", proficiency="fluent"),
                ]
            }
        )
        seed(profiles=[profile])

        with get_session() as session:
            candidate = ProfileRepository(session).get_for_scoring(
                "P1", today=datetime(2025, 6, 1).date()
            )

        assert candidate.experience_years == 5
        assert candidate.specializations == ["Patent Prosecution"]
        assert [skill.language for skill in candidate.languages] == ["English", "German"]
        assert candidate.languages[1].proficiency == "native"
        assert "account_email" not in candidate.model_dump()

    def test_get_for_scoring_missing(self, database):
        with get_session() as session:
            assert ProfileRepository(session).get_for_scoring("nope") is None

    def test_get_account_email(self, database):
        seed(profiles=[make_profile("P1", account_email="p1@lawmail.com"), make_profile("P2")])

        with get_session() as session:
            repo = ProfileRepository(session)
            assert repo.get_account_email("P1") == "p1@lawmail.com"
            assert repo.get_account_email("P2") is None
            assert repo.get_account_email("nope") is None


class TestMatchRepository:
    """Tests for the Match Store."""

    @pytest.fixture
    def pair(self, database):
        seed(make_job(), profiles=[make_profile("P1"), make_profile("P2")])

    def test_upsert_inserts(self, pair, clock):
        stored = store_match("job-1", "P1", 70, clock=clock)

        assert stored.id is not None
        assert stored.overall_score == 70
        assert stored.scored_at == clock.current
        assert stored.notified_at is None
        assert stored.dimensions["credentials"].score == 90

    def test_upsert_overwrites_same_row(self, pair, clock):
        first = store_match("job-1", "P1", 70, clock=clock)
        with get_session() as session:
            MatchRepository(session, clock=clock).mark_notified([first.id])

        second = store_match("job-1", "P1", 95, clock=clock)

        assert second.id == first.id
        assert second.overall_score == 95
        assert second.scored_at > first.scored_at
        assert second.notified_at is None
        with get_session() as session:
            assert MatchRepository(session).count_for_job("job-1") == 1

    def test_upsert_unknown_profile(self, pair):
        with pytest.raises(DataIntegrityError):
            store_match("job-1", "ghost")

    def test_list_for_job_best_first(self, pair):
        store_match("job-1", "P1", 40)
        store_match("job-1", "P2", 88)

        with get_session() as session:
            matches = MatchRepository(session).list_for_job("job-1")

        assert [m.profile_id for m in matches] == ["P2", "P1"]

    def test_list_unnotified_with_floor(self, pair):
        store_match("job-1", "P1", 20)
        store_match("job-1", "P2", 60)

        with get_session() as session:
            repo = MatchRepository(session)
            assert [m.profile_id for m in repo.list_unnotified("job-1")] == ["P2", "P1"]
            assert [m.profile_id for m in repo.list_unnotified("job-1", min_score=25)] == ["P2"]

    def test_mark_notified_only_once(self, pair, clock):
        first = store_match("job-1", "P1")
        second = store_match("job-1", "P2")

        with get_session() as session:
            repo = MatchRepository(session, clock=clock)
            assert repo.mark_notified([first.id]) == 1
            assert repo.mark_notified([first.id, second.id]) == 1
            assert repo.mark_notified([first.id, second.id]) == 0

        with get_session() as session:
            assert MatchRepository(session).list_unnotified("job-1") == []

    def test_mark_notified_empty(self, pair):
        with get_session() as session:
            assert MatchRepository(session).mark_notified([]) == 0

    def test_delete_all_for_job(self, pair):
        store_match("job-1", "P1")
        store_match("job-1", "P2")

        with get_session() as session:
            assert MatchRepository(session).delete_all_for_job("job-1") == 2

        with get_session() as session:
            assert MatchRepository(session).count_for_job("job-1") == 0

    def test_reads_legacy_v1_subscores(self, pair):
        """Rows written before the version tag are upgraded on read."""
        with get_session() as session:
            session.add(
                MatchModel(
                    job_id="job-1",
                    profile_id="P1",
                    overall_score=64,
                    dimensions={"barAdmissions": {"score": 100, "explanation": "USPTO"}},
                    requirement_tags=[],
                    strengths=[],
                    gaps=[],
                    summary="",
                    recommendation="Good Match",
                    scored_at="2025-01-02T00:00:00.000000Z",
                )
            )

        with get_session() as session:
            match = MatchRepository(session).get("job-1", "P1")

        assert match.dimensions["credentials"].score == 100
        assert match.scored_at == datetime(2025, 1, 2, tzinfo=timezone.utc)

    def test_matches_removed_with_job(self, pair):
        store_match("job-1", "P1")

        with get_session() as session:
            session.execute(text("DELETE FROM jobs WHERE id = 'job-1'"))

        with get_session() as session:
            assert MatchRepository(session).count_for_job("job-1") == 0

    def test_upsert_from_score_payload(self, pair):
        with get_session() as session:
            stored = MatchRepository(session).upsert(
                Match.from_score("job-1", "P2", make_score(55))
            )

        assert stored.profile_id == "P2"
        assert stored.summary == "Solid candidate"
