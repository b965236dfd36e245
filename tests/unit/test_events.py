"""
Tests for best-effort analytics and audit writes.
"""
from concurrent.futures import ThreadPoolExecutor

from pathway.services import EventRecorder, best_effort


class RecordingStore:

    def __init__(self, fail=False):
        self.fail = fail
        self.events = []
        self.audit_entries = []

    def insert_analytics_event(self, event):
        if self.fail:
            raise RuntimeError("analytics store unavailable")
        self.events.append(event)

    def create_audit_log(self, entry):
        if self.fail:
            raise RuntimeError("audit store unavailable")
        self.audit_entries.append(entry)


def test_best_effort_swallows_failures(caplog):
    def boom():
        raise RuntimeError("nope")

    assert best_effort("do the thing", boom) is None
    assert "Failed to do the thing: nope" in caplog.text


def test_best_effort_returns_result():
    assert best_effort("add", lambda a, b: a + b, 2, 3) == 5


def test_track_writes_event():
    store = RecordingStore()
    EventRecorder(store, enabled=True).track("session_start", {"path_id": "path-dev"}, session_id="session-1")

    [event] = store.events
    assert event.event_type == "session_start"
    assert event.session_id == "session-1"
    assert event.event_data == {"path_id": "path-dev"}


def test_disabled_recorder_skips_analytics_but_audits():
    store = RecordingStore()
    recorder = EventRecorder(store, enabled=False)
    recorder.track("session_start")
    recorder.audit("path_switched", "session", entity_id="session-1")

    assert store.events == []
    assert [entry.action for entry in store.audit_entries] == ["path_switched"]


def test_failures_never_reach_the_caller():
    recorder = EventRecorder(RecordingStore(fail=True), enabled=True)
    recorder.track("step_complete")
    recorder.audit("path_adapted", "session")


def test_executor_dispatch():
    store = RecordingStore()
    recorder = EventRecorder(store, enabled=True, executor=ThreadPoolExecutor(max_workers=1))
    recorder.track("step_progress")
    recorder.shutdown()

    assert [event.event_type for event in store.events] == ["step_progress"]

    # writes after shutdown are dropped
    recorder.track("step_progress")
    assert len(store.events) == 1
