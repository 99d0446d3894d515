import pytest

from voicelab.crt.helpers.result_sink import InMemoryResultSink
from voicelab.crt.helpers.scheduler import ManualScheduler
from voicelab.crt.helpers.scoring import ConfidenceOverrides
from voicelab.crt.helpers.trial import TrialTiming


@pytest.fixture(autouse=True)
def _media_storage(settings, tmpdir) -> None:
    settings.MEDIA_ROOT = tmpdir.strpath


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def sink() -> InMemoryResultSink:
    return InMemoryResultSink()


@pytest.fixture
def timing() -> TrialTiming:
    return TrialTiming()


@pytest.fixture
def no_overrides() -> ConfidenceOverrides:
    return ConfidenceOverrides()
