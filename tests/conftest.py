"""
Pytest Configuration and Fixtures.

Provides an in-memory SQLite store, a seeded two-step path and
helpers shared by the unit and integration suites.
"""
import pytest
from sqlalchemy.orm import sessionmaker

from pathway.core.database import DatabaseManager, create_db_engine
from pathway.schemas import (
    OnboardingContext,
    PathDefinition,
    PathRecord,
    ProgressRecord,
    StepDefinition,
    StepRecord,
)
from pathway.services import EventRecorder, OnboardingService, import_path
from pathway.storage import SqlAlchemyStore


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (in-memory database and HTTP client)")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_db_engine("sqlite:///:memory:", timeout=5)
    DatabaseManager.create_all_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def store(session_factory):
    return SqlAlchemyStore(session_factory, max_retries=1)


@pytest.fixture
def events(store):
    return EventRecorder(store, enabled=True)


@pytest.fixture
def service(store, events):
    return OnboardingService(store, events)


def _two_step_definition(path_id="path-dev", step_ids=("step-1", "step-2"), **overrides):
    """step-1 (required, no deps) then step-2 (required, depends on step-1).

    Step ids are global, so a second path needs its own ``step_ids``.
    """
    first, second = step_ids
    data = dict(
        id=path_id,
        name="Developer Basics",
        description="Get a developer productive",
        target_role="developer",
        difficulty_level="intermediate",
        estimated_duration=45,
        steps=[
            StepDefinition(
                id=first,
                title="Install the CLI",
                step_type="setup",
                step_order=1,
                estimated_time=10,
                content={"content_type": "text"},
            ),
            StepDefinition(
                id=second,
                title="Deploy a sample app",
                step_type="exercise",
                step_order=2,
                dependencies=[first],
                estimated_time=20,
                content={"content_type": "interactive"},
            ),
        ],
    )
    data.update(overrides)
    return PathDefinition(**data)


@pytest.fixture
def seeded_path(store):
    return import_path(store, _two_step_definition())


@pytest.fixture
def developer_context():
    return OnboardingContext(user_role="developer")


@pytest.fixture
def session(service, seeded_path, developer_context):
    return service.start_session("user-1", developer_context)


def _make_progress(step_id, status="completed", **fields):
    """Build a ProgressRecord without touching storage."""
    return ProgressRecord(
        id=f"progress-{step_id}",
        session_id=fields.pop("session_id", "session-1"),
        step_id=step_id,
        user_id=fields.pop("user_id", "user-1"),
        status=status,
        **fields,
    )


@pytest.fixture
def two_step_definition():
    """Factory for the two-step developer path definition."""
    return _two_step_definition


@pytest.fixture
def make_progress():
    """Factory for in-memory progress records."""
    return _make_progress


@pytest.fixture
def dev_path():
    """The two-step developer path as an in-memory record."""
    return PathRecord(
        id="path-dev",
        name="Developer Basics",
        target_role="developer",
        difficulty_level="intermediate",
        estimated_duration=45,
        steps=[
            StepRecord(
                id="step-2",
                path_id="path-dev",
                title="Deploy a sample app",
                step_order=2,
                dependencies=["step-1"],
                estimated_time=20,
                content={"content_type": "interactive"},
            ),
            StepRecord(
                id="step-1",
                path_id="path-dev",
                title="Install the CLI",
                step_order=1,
                estimated_time=10,
                content={"content_type": "text"},
            ),
        ],
    )
