import pytest

from engine.activity_log import ActivityLog
from engine.integrations import IntegrationRegistry
from engine.job_manager import JobManager
from engine.models import IntegrationTarget
from factories import FakeAnalyzer, RecordingNotifier, StepClock


@pytest.fixture
def analyzer():
    return FakeAnalyzer()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def integrations():
    return IntegrationRegistry([
        IntegrationTarget(name="Asana", connected=True, project_id="asana-1"),
        IntegrationTarget(name="Monday.com", connected=True, project_id="board-7"),
    ])


@pytest.fixture
def job_manager(analyzer, notifier, integrations):
    return JobManager(
        analyzer,
        notifier,
        integrations=integrations,
        activity_log=ActivityLog(),
        clock=StepClock(),
    )
