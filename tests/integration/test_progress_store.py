"""
Integration tests for progress tracking against the SQLAlchemy store.
"""
import pytest
from sqlalchemy import select

from pathway.core.exceptions import InvalidTransition, NotFound, StorageError, ValidationError
from pathway.models import OnboardingAnalytics, UserProgress
from pathway.schemas import MilestoneDefinition, PathDefinition, PathFilter, StepDefinition, StepResult
from pathway.services import import_milestone, import_path


def progress_rows(session_factory, session_id):
    with session_factory() as db:
        return db.execute(
            select(UserProgress).where(UserProgress.session_id == session_id)
        ).scalars().all()


def event_types(session_factory):
    with session_factory() as db:
        return [e.event_type for e in db.execute(select(OnboardingAnalytics)).scalars()]


class TestUpsertProgress:
    """Tests for SqlAlchemyStore.upsert_progress."""

    def test_repeated_writes_converge_on_one_row(self, store, session_factory, session):
        store.upsert_progress(session.id, "step-2", "user-1", {"status": "in_progress", "feedback": {"a": 1}})
        record = store.upsert_progress(session.id, "step-2", "user-1", {"feedback": {"b": 2}, "attempts": 2})

        rows = [r for r in progress_rows(session_factory, session.id) if r.step_id == "step-2"]
        assert len(rows) == 1
        assert record.status == "in_progress"
        assert record.feedback == {"a": 1, "b": 2}
        assert record.attempts == 2

    def test_new_row_defaults_to_in_progress(self, store, session):
        record = store.upsert_progress(session.id, "step-2", "user-1", {})
        assert record.status == "in_progress"

    def test_terminal_row_cannot_reopen(self, store, session):
        store.upsert_progress(session.id, "step-1", "user-1", {"status": "completed", "time_spent": 5})

        with pytest.raises(InvalidTransition):
            store.upsert_progress(session.id, "step-1", "user-1", {"status": "in_progress", "time_spent": 9})

        [record] = [r for r in store.list_progress(session.id) if r.step_id == "step-1"]
        assert record.status == "completed"
        assert record.time_spent == 5

    def test_null_required_field_is_rejected_by_store(self, store, session_factory, session):
        with pytest.raises(ValidationError) as exc_info:
            store.upsert_progress(session.id, "step-2", "user-1", {"attempts": None})
        assert exc_info.value.details == {"fields": ["attempts"]}
        assert [r.step_id for r in progress_rows(session_factory, session.id)] == ["step-1"]


class TestTrackStepProgressInput:
    """Malformed deltas and unknown targets never reach the progress table."""

    def test_null_status_on_new_row(self, service, session_factory, session):
        with pytest.raises(ValidationError) as exc_info:
            service.track_step_progress(session.id, "step-2", "user-1", {"status": None})

        assert exc_info.value.details["errors"][0]["msg"].endswith("may not be null: status")
        assert [r.step_id for r in progress_rows(session_factory, session.id)] == ["step-1"]

    def test_null_time_spent_on_existing_row(self, service, session):
        service.track_step_progress(session.id, "step-1", "user-1", {"time_spent": 4})

        with pytest.raises(ValidationError):
            service.track_step_progress(session.id, "step-1", "user-1", {"time_spent": None})

        [record] = service.store.list_progress(session.id)
        assert record.time_spent == 4

    def test_nullable_fields_may_be_cleared(self, service, session):
        service.track_step_progress(session.id, "step-1", "user-1", {"score": 70})
        record = service.track_step_progress(session.id, "step-1", "user-1", {"score": None})
        assert record.score is None

    def test_unknown_session(self, service, session_factory):
        with pytest.raises(NotFound):
            service.track_step_progress("no-such-session", "step-1", "user-1", {"status": "in_progress"})
        assert progress_rows(session_factory, "no-such-session") == []

    def test_step_outside_the_path(self, service, session_factory, session):
        with pytest.raises(NotFound) as exc_info:
            service.track_step_progress(session.id, "not-a-step", "user-1", {"status": "completed"})

        assert exc_info.value.details["step_id"] == "not-a-step"
        assert [r.step_id for r in progress_rows(session_factory, session.id)] == ["step-1"]
        assert service.get_overall_progress(session.id).completed_steps == []

    def test_orphan_rows_rejected_by_database(self, store):
        # Foreign keys are enforced on SQLite connections too
        with pytest.raises(StorageError):
            store.upsert_progress("no-such-session", "step-1", "user-1", {})


class TestStepCompletion:
    """Tests for record_step_completion and its side effects."""

    def test_first_step_row_created_on_start(self, store, session):
        [record] = store.list_progress(session.id)
        assert record.step_id == "step-1"
        assert record.status == "not_started"

    def test_completion_rolls_up_onto_session(self, service, session):
        service.record_step_completion(session.id, "step-1", "user-1", StepResult(time_spent=12, score=80))

        refreshed = service.get_session(session.id)
        assert refreshed.progress_percentage == 50.0
        assert refreshed.time_spent == 12
        assert refreshed.current_step_index == 1

        overall = service.get_overall_progress(session.id)
        assert overall.completed_steps == ["step-1"]
        assert overall.overall_progress == 50
        assert overall.time_spent == 12
        assert overall.last_updated is not None

    def test_finished_session_keeps_its_figures(self, service, session):
        service.sessions.complete_session(session.id)
        service.record_step_completion(session.id, "step-1", "user-1", StepResult(time_spent=12))

        refreshed = service.get_session(session.id)
        assert refreshed.status == "completed"
        assert refreshed.progress_percentage == 100.0
        assert refreshed.time_spent == 0

    def test_abandoned_session_is_not_rolled_up(self, service, session):
        service.sessions.abandon_session(session.id, "too long")
        service.record_step_completion(session.id, "step-1", "user-1", StepResult(time_spent=12))

        refreshed = service.get_session(session.id)
        assert refreshed.progress_percentage == 0.0
        assert refreshed.current_step_index == 0

    def test_next_step_follows_dependencies(self, service, session):
        assert service.get_next_step(session.id).id == "step-1"

        service.record_step_completion(session.id, "step-1", "user-1", StepResult())
        assert service.get_next_step(session.id).id == "step-2"

        service.record_step_completion(session.id, "step-2", "user-1", StepResult())
        assert service.get_next_step(session.id) is None
        assert service.get_overall_progress(session.id).current_step_index == 2

    def test_analytics_failure_does_not_fail_completion(self, service, store, session, monkeypatch):
        def broken(event):
            raise RuntimeError("analytics table is gone")

        monkeypatch.setattr(store, "insert_analytics_event", broken)
        record = service.record_step_completion(session.id, "step-1", "user-1", StepResult(time_spent=3))

        assert record.status == "completed"
        assert service.get_overall_progress(session.id).overall_progress == 50

    def test_events_recorded(self, service, session_factory, session):
        service.record_step_completion(session.id, "step-1", "user-1", StepResult())
        recorded = event_types(session_factory)
        assert "session_start" in recorded
        assert "step_complete" in recorded

    def test_unknown_session_roll_up(self, service):
        with pytest.raises(NotFound):
            service.get_overall_progress("missing")


class TestCompletionValidation:
    """Tests for validate_path_completion."""

    def test_missing_required_step(self, service, session):
        service.record_step_completion(session.id, "step-1", "user-1", StepResult())

        result = service.validate_path_completion(session.id)
        assert result.is_valid is False
        assert result.completion_percentage == 50
        assert result.missing_steps == ["step-2"]
        assert "Missing 1 required steps" in result.issues

    def test_all_required_steps_completed(self, service, session):
        service.record_step_completion(session.id, "step-1", "user-1", StepResult())
        service.record_step_completion(session.id, "step-2", "user-1", StepResult())

        result = service.validate_path_completion(session.id)
        assert result.is_valid is True
        assert result.completion_percentage == 100
        assert result.missing_steps == []
        assert result.issues == []

    def test_dependency_violation_is_reported(self, service, session):
        service.record_step_completion(session.id, "step-2", "user-1", StepResult())

        result = service.validate_path_completion(session.id)
        assert result.is_valid is False
        assert 'Step "Deploy a sample app" completed without meeting dependencies' in result.issues

    def test_unknown_session_is_a_soft_failure(self, service):
        result = service.validate_path_completion("missing")
        assert result.is_valid is False
        assert result.issues == ["Session or path not found"]


class TestMilestones:
    """Tests for milestone awards."""

    @pytest.fixture
    def milestones(self, store):
        halfway = import_milestone(store, MilestoneDefinition(
            id="halfway",
            name="Halfway There",
            criteria={"type": "progress_percentage", "progress_percentage": 50},
            points=10,
        ))
        finisher = import_milestone(store, MilestoneDefinition(
            id="first-deploy",
            name="First Deploy",
            criteria={"type": "required_steps", "required_steps": ["step-2"]},
            points=20,
        ))
        return halfway, finisher

    def test_awarded_once_newest_first(self, service, session_factory, session, milestones):
        service.record_step_completion(session.id, "step-1", "user-1", StepResult())
        assert [a.milestone_id for a in service.get_user_achievements(session.id)] == ["halfway"]

        service.record_step_completion(session.id, "step-2", "user-1", StepResult())
        achievements = service.get_user_achievements(session.id)
        assert [a.milestone_id for a in achievements] == ["first-deploy", "halfway"]
        assert event_types(session_factory).count("milestone_reached") == 2

    def test_award_is_idempotent(self, service, session, milestones):
        first = service.award_milestone("user-1", session.id, "halfway", {"source": "manual"})
        second = service.award_milestone("user-1", session.id, "halfway", {"source": "again"})

        assert first.id == second.id
        assert second.achievement_data == {"source": "manual"}
        assert len(service.get_user_achievements(session.id)) == 1

    def test_unknown_milestone(self, service, session):
        with pytest.raises(NotFound) as exc_info:
            service.award_milestone("user-1", session.id, "no-such-milestone")
        assert exc_info.value.details == {"milestone_id": "no-such-milestone"}

    def test_unknown_session(self, service, milestones):
        with pytest.raises(NotFound):
            service.award_milestone("user-1", "no-such-session", "halfway")


class TestBlockersAndReport:

    def test_failed_step_is_reported(self, service, session):
        service.tracker.fail_step(session.id, "step-1", "user-1", {"validation": "bad token"}, attempts=2)

        [blocker] = service.identify_blockers(session.id)
        assert blocker.step_id == "step-1"
        assert blocker.step_title == "Install the CLI"
        assert blocker.blocker_type == "user_understanding"

        report = service.generate_progress_report(session.id)
        assert report.blockers == [blocker]
        assert report.analytics.failure_rate == 100.0

    def test_skip_records_reason(self, service, session):
        record = service.tracker.skip_step(session.id, "step-1", "user-1", reason="already_known")
        assert record.status == "skipped"
        assert record.step_result == {"skip_reason": "already_known"}
        assert service.get_overall_progress(session.id).skipped_steps == ["step-1"]


class TestCatalog:
    """Tests for path storage and matching queries."""

    def test_reimport_replaces_steps(self, service, seeded_path, two_step_definition):
        definition = two_step_definition()
        definition = definition.model_copy(update={"steps": definition.steps[:1]})
        service.import_path(definition)

        path = service.get_path("path-dev")
        assert [s.id for s in path.steps] == ["step-1"]

    def test_missing_step_ids_are_assigned(self, store):
        path = import_path(store, PathDefinition(
            name="Designer Basics",
            target_role="designer",
            steps=[StepDefinition(title="Open the canvas", step_order=1)],
        ))
        assert all(step.id for step in path.steps)
        assert len(path.steps) == 1

    def test_find_matching_paths_filters(self, store, seeded_path, two_step_definition):
        import_path(store, two_step_definition(
            "path-pro", step_ids=("pro-1", "pro-2"), name="Pro Developer", subscription_tier="pro"
        ))
        import_path(store, two_step_definition(
            "path-old", step_ids=("old-1", "old-2"), name="Old Developer", is_active=False
        ))

        free = store.find_matching_paths(PathFilter(target_role="developer", subscription_tier="free"))
        assert [p.id for p in free] == ["path-dev"]

        pro = store.find_matching_paths(PathFilter(target_role="developer", subscription_tier="pro"))
        assert [p.id for p in pro] == ["path-dev", "path-pro"]

        short = store.find_matching_paths(PathFilter(target_role="developer", max_duration=30))
        assert short == []

    def test_unknown_path(self, service):
        with pytest.raises(NotFound):
            service.get_path("missing")
