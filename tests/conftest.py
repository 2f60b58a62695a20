"""Shared fixtures for Sound Decoder tests."""

import pytest

from fakes import ControllableService, FakeResourceFactory
from sounddecoder.core.history import HistoryStore
from sounddecoder.core.intake import FileIntakeValidator
from sounddecoder.core.orchestrator import AnalysisOrchestrator
from sounddecoder.core.playback import PlaybackController
from sounddecoder.core.session import SessionCoordinator


@pytest.fixture
def resource_factory():
    """FakeResourceFactory whose resources report a 10 s duration."""
    return FakeResourceFactory()


@pytest.fixture
def service():
    """ControllableService with no pending requests."""
    return ControllableService()


@pytest.fixture
def history():
    """Empty in-memory HistoryStore."""
    return HistoryStore()


@pytest.fixture
def make_session(resource_factory, history):
    """Build a SessionCoordinator over fakes; pass a service and optional timeout."""

    def _make(service, timeout: float = 30.0, max_file_size: int = 10 * 1024 * 1024) -> SessionCoordinator:
        return SessionCoordinator(
            validator=FileIntakeValidator(max_file_size=max_file_size),
            playback=PlaybackController(resource_factory),
            orchestrator=AnalysisOrchestrator(service, timeout=timeout),
            history=history,
        )

    return _make
