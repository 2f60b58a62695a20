"""
Session coordinator for the Sound Decoder application.

Composes intake, playback, analysis and history into one state machine:

    EMPTY -> FILE_LOADED -> (ANALYZING -> {RESULTED, ANALYSIS_FAILED})*

Every state change goes through ``_dispatch``. Events raised while
another event is being applied (for example the settlement fired by a
cancellation) wait in a FIFO queue and are applied afterwards, in
arrival order.
"""

import threading
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Iterable, List, Optional, Union

from sounddecoder.core.history import DEFAULT_RECENT_LIMIT, HistoryStore, create_history_store
from sounddecoder.core.intake import FileIntakeValidator, create_intake_validator
from sounddecoder.core.models import (
    AnalysisStatus,
    AnalysisTask,
    AudioAsset,
    FileCandidate,
    HistoryEntry,
    SessionSnapshot,
    SessionState,
)
from sounddecoder.core.orchestrator import DEFAULT_TIMEOUT, AnalysisOrchestrator, TaskHandle
from sounddecoder.core.playback import PlaybackController, ResourceFactory
from sounddecoder.services.protocols import ClassificationService
from sounddecoder.utils.errors import NoFileLoadedError, ResourceUnavailableError
from sounddecoder.utils.logging import create_logger_with_context


@dataclass(frozen=True)
class FileAccepted:
    asset: AudioAsset


@dataclass(frozen=True)
class FileCleared:
    pass


@dataclass(frozen=True)
class AnalysisStarted:
    task_id: str


@dataclass(frozen=True)
class CancelRequested:
    pass


@dataclass(frozen=True)
class AnalysisSettled:
    task: AnalysisTask


SessionEvent = Union[FileAccepted, FileCleared, AnalysisStarted, CancelRequested, AnalysisSettled]


class SessionCoordinator:
    """
    One user's analysis session.

    Owns the active asset, the playback controller and the orchestrator;
    the history store is shared and outlives any one file. A single
    reentrant lock serializes commands and signals, so a session may be
    driven from several threads, though analysis itself must be started
    from the event loop's thread.
    """

    def __init__(
        self,
        validator: FileIntakeValidator,
        playback: PlaybackController,
        orchestrator: AnalysisOrchestrator,
        history: HistoryStore,
        display_limit: int = DEFAULT_RECENT_LIMIT,
    ):
        self.session_id = uuid.uuid4().hex
        self._validator = validator
        self._playback = playback
        self._orchestrator = orchestrator
        self._history = history
        self.display_limit = display_limit

        self._state = SessionState.EMPTY
        self._asset: Optional[AudioAsset] = None
        self._task_id: Optional[str] = None
        self._last_outcome: Optional[AnalysisTask] = None
        self._playback_error: Optional[ResourceUnavailableError] = None

        self._events: Deque[SessionEvent] = deque()
        self._dispatching = False
        self._lock = threading.RLock()
        self.logger = create_logger_with_context("session", {"session_id": self.session_id[:8]})

        self._orchestrator.add_listener(self._on_settled)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def asset(self) -> Optional[AudioAsset]:
        return self._asset

    @property
    def playback(self) -> PlaybackController:
        return self._playback

    @property
    def orchestrator(self) -> AnalysisOrchestrator:
        return self._orchestrator

    @property
    def history(self) -> HistoryStore:
        return self._history

    @property
    def last_outcome(self) -> Optional[AnalysisTask]:
        """Terminal task of the most recent analysis of the current file."""
        return self._last_outcome

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                state=self._state,
                asset=self._asset,
                playback=self._playback.state,
                analysis=self._orchestrator.current_state(),
                history=tuple(self._history.recent(self.display_limit)),
            )

    def recent_history(self, n: Optional[int] = None) -> List[HistoryEntry]:
        return self._history.recent(self.display_limit if n is None else n)

    # ------------------------------------------------------------------
    # File commands
    # ------------------------------------------------------------------

    def accept_file(self, candidate: FileCandidate) -> AudioAsset:
        """
        Validate and load a new file, replacing any current one.

        Raises:
            IntakeRejectedError: Candidate refused; the session is untouched
            ResourceUnavailableError: File accepted but cannot be played;
                the session is FILE_LOADED with playback unbound
        """
        return self._load(self._validator.validate(candidate))

    def accept_drop(self, candidates: Iterable[FileCandidate]) -> AudioAsset:
        """Load the first acceptable file from a multi-file drop."""
        return self._load(self._validator.select(candidates))

    def clear_file(self) -> None:
        """Drop the current file and any in-flight analysis. History stays."""
        self._dispatch(FileCleared())

    # ------------------------------------------------------------------
    # Analysis commands
    # ------------------------------------------------------------------

    def start_analysis(self) -> TaskHandle:
        """
        Start classifying the current file.

        Raises:
            NoFileLoadedError: Nothing is loaded
            AlreadyRunningError: An analysis is in flight; nothing changes
        """
        with self._lock:
            if self._asset is None:
                raise NoFileLoadedError()
            handle = self._orchestrator.start(self._asset)
            self._dispatch(AnalysisStarted(handle.task_id))
            return handle

    def cancel_analysis(self) -> None:
        self._dispatch(CancelRequested())

    # ------------------------------------------------------------------
    # Transport commands (no-ops with nothing loaded)
    # ------------------------------------------------------------------

    def play(self) -> None:
        with self._lock:
            self._playback.play()

    def pause(self) -> None:
        with self._lock:
            self._playback.pause()

    def toggle_playback(self) -> None:
        with self._lock:
            self._playback.toggle()

    def seek(self, seconds: float) -> None:
        with self._lock:
            self._playback.seek(seconds)

    def reset_playback(self) -> None:
        with self._lock:
            self._playback.reset()

    # ------------------------------------------------------------------
    # History commands
    # ------------------------------------------------------------------

    def remove_history(self, entry_id: str) -> bool:
        return self._history.remove(entry_id)

    def clear_history(self) -> None:
        self._history.clear()

    async def aclose(self) -> None:
        """Cancel in-flight work and release the loaded file."""
        await self._orchestrator.aclose()
        self.clear_file()

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _load(self, asset: AudioAsset) -> AudioAsset:
        with self._lock:
            self._playback_error = None
            self._dispatch(FileAccepted(asset))
            error = self._playback_error
            self._playback_error = None
        if error is not None:
            raise error
        return asset

    def _on_settled(self, task: AnalysisTask) -> None:
        self._dispatch(AnalysisSettled(task))

    def _dispatch(self, event: SessionEvent) -> None:
        with self._lock:
            self._events.append(event)
            if self._dispatching:
                return
            self._dispatching = True
            try:
                while self._events:
                    self._transition(self._events.popleft())
            finally:
                self._dispatching = False

    def _transition(self, event: SessionEvent) -> None:
        previous = self._state

        if isinstance(event, FileAccepted):
            self._discard_analysis()
            if self._asset is not None:
                self.logger.info(f"Replacing {self._asset.name} with {event.asset.name}")
            self._asset = event.asset
            try:
                self._playback.load(event.asset)
            except ResourceUnavailableError as e:
                self.logger.warning(f"Playback unavailable for {event.asset.name}: {e}")
                self._playback_error = e
            self._state = SessionState.FILE_LOADED

        elif isinstance(event, FileCleared):
            self._discard_analysis()
            self._playback.unload()
            self._asset = None
            self._state = SessionState.EMPTY

        elif isinstance(event, AnalysisStarted):
            self._task_id = event.task_id
            self._state = SessionState.ANALYZING

        elif isinstance(event, CancelRequested):
            self._orchestrator.cancel()

        elif isinstance(event, AnalysisSettled):
            self._settle(event.task)

        if self._state is not previous:
            self.logger.debug(f"{previous.value} -> {self._state.value}")

    def _settle(self, task: AnalysisTask) -> None:
        if task.task_id is None or task.task_id != self._task_id or self._asset is None:
            self.logger.debug(f"Ignoring settlement of superseded task {(task.task_id or '')[:8]}")
            return

        self._task_id = None
        self._last_outcome = task
        if task.status is AnalysisStatus.SUCCEEDED and task.result is not None:
            self._history.append(self._asset.name, task.result)
            self._state = SessionState.RESULTED
            self.logger.info(f"{self._asset.name}: {task.result.get_summary()}")
        else:
            self._state = SessionState.ANALYSIS_FAILED

    def _discard_analysis(self) -> None:
        """Forget the current task; its settlement will be ignored."""
        self._task_id = None
        self._last_outcome = None
        self._orchestrator.reset()


def create_session(
    config: Dict[str, Any],
    service: Optional[ClassificationService] = None,
    resource_factory: Optional[ResourceFactory] = None,
    history: Optional[HistoryStore] = None,
) -> SessionCoordinator:
    """
    Factory function to create a fully wired SessionCoordinator.

    Args:
        config: Full configuration dict
        service: Classification backend; built from ``analysis.service`` if None
        resource_factory: Playback resource factory; DecodedAudioResource if None
        history: Shared history store; built from the 'history' section if None
    """
    if service is None:
        from sounddecoder.services import create_classification_service
        service = create_classification_service(config)

    analysis_config = config.get('analysis', {})
    history_config = config.get('history', {})

    return SessionCoordinator(
        validator=create_intake_validator(config.get('intake', {})),
        playback=PlaybackController(resource_factory),
        orchestrator=AnalysisOrchestrator(
            service,
            timeout=analysis_config.get('timeout', DEFAULT_TIMEOUT),
        ),
        history=history if history is not None else create_history_store(history_config),
        display_limit=history_config.get('display_limit', DEFAULT_RECENT_LIMIT),
    )
