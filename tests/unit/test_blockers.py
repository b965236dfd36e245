"""
Tests for blocker detection and progress reports.
"""
import pytest

from pathway.core.exceptions import NotFound
from pathway.schemas import SessionRecord
from pathway.services import EventRecorder, ProgressTracker
from pathway.services.progress_tracker import PATTERN_STEP_ID, classify_errors, report_recommendations


class ProgressStub:

    def __init__(self, session=None, records=None):
        self.session = session
        self.records = records or []

    def get_session_with_path(self, session_id):
        return self.session

    def list_progress(self, session_id):
        return list(self.records)

    def list_achievements(self, session_id):
        return []


@pytest.fixture
def dev_session(dev_path):
    return SessionRecord(
        id="session-1",
        user_id="user-1",
        path_id=dev_path.id,
        session_type="individual",
        status="active",
        path=dev_path,
    )


def tracker_for(store):
    return ProgressTracker(store, EventRecorder(store, enabled=False))


class TestClassifyErrors:

    @pytest.mark.parametrize("errors,expected", [
        ({"validation": "bad email"}, "user_understanding"),
        ({"input": 1}, "user_understanding"),
        ({"technical": "500"}, "technical"),
        ({"system": "crash"}, "technical"),
        ({"timeout": 30}, "system"),
        ({"network": "offline"}, "system"),
        ({"other": 1}, None),
        ({}, None),
    ])
    def test_classify(self, errors, expected):
        assert classify_errors(errors) == expected


class TestIdentifyBlockers:
    """Tests for ProgressTracker.identify_blockers."""

    def test_clean_progress_has_no_blockers(self, dev_session, make_progress):
        store = ProgressStub(dev_session, [make_progress("step-1"), make_progress("step-2", "in_progress")])
        assert tracker_for(store).identify_blockers("session-1") == []

    def test_failed_step_with_technical_errors(self, dev_session, make_progress):
        record = make_progress("step-2", "failed", errors={"technical": "build failed"}, attempts=2)
        blockers = tracker_for(ProgressStub(dev_session, [record])).identify_blockers("session-1")

        assert len(blockers) == 1
        blocker = blockers[0]
        assert blocker.step_id == "step-2"
        assert blocker.step_title == "Deploy a sample app"
        assert blocker.blocker_type == "technical"
        assert blocker.severity == "high"
        assert blocker.frequency == 2
        assert blocker.patterns == ["technical_errors"]

    def test_high_error_rate_is_a_content_blocker(self, dev_session, make_progress):
        record = make_progress("step-1", "completed", step_result={"error_rate": 0.5})
        [blocker] = tracker_for(ProgressStub(dev_session, [record])).identify_blockers("session-1")

        assert blocker.blocker_type == "content"
        assert blocker.severity == "medium"
        assert blocker.frequency == 1
        assert "high_error_rate" in blocker.patterns

    def test_many_attempts_without_errors(self, dev_session, make_progress):
        record = make_progress("step-1", "in_progress", attempts=6)
        [blocker] = tracker_for(ProgressStub(dev_session, [record])).identify_blockers("session-1")

        assert blocker.blocker_type == "user_understanding"
        assert blocker.severity == "high"
        assert blocker.description == "Multiple failed attempts indicate comprehension issues"
        assert blocker.frequency == 6

    def test_unknown_step_title(self, dev_session, make_progress):
        record = make_progress("retired-step", "failed")
        [blocker] = tracker_for(ProgressStub(dev_session, [record])).identify_blockers("session-1")
        assert blocker.step_title == "Unknown Step"

    def test_pattern_blockers(self, dev_session, make_progress):
        records = [make_progress(f"f{i}", "failed") for i in range(3)]
        records += [make_progress(f"s{i}", "skipped") for i in range(4)]
        blockers = tracker_for(ProgressStub(dev_session, records)).identify_blockers("session-1")

        patterns = [b for b in blockers if b.step_id == PATTERN_STEP_ID]
        assert [b.blocker_type for b in patterns] == ["user_understanding", "engagement"]
        assert [b.frequency for b in patterns] == [3, 4]

    def test_unknown_session(self):
        with pytest.raises(NotFound):
            tracker_for(ProgressStub()).identify_blockers("missing")


class TestProgressReport:

    def test_report_for_struggling_session(self, dev_session, make_progress):
        records = [
            make_progress("step-1", "completed", time_spent=10),
            make_progress("step-2", "failed", errors={"validation": "x"}),
        ]
        report = tracker_for(ProgressStub(dev_session, records)).generate_progress_report("session-1")

        assert report.overall_progress.overall_progress == 50
        assert report.analytics.completion_rate == 50.0
        assert report.analytics.failure_rate == 50.0
        assert report.analytics.average_time_per_step == 10.0
        assert report.analytics.engagement_score == 0.0
        assert len(report.blockers) == 1
        assert "Simplify step instructions and provide better examples" in report.analytics.recommendations

    def test_on_track_recommendation(self):
        assert report_recommendations(100, 0, 0, 100, 0, 5, 0) == [
            "Progress is on track, continue with current approach"
        ]
