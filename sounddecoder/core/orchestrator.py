"""
Analysis orchestrator for the Sound Decoder application.

Runs one classification request at a time against the injected
service and resolves each request to exactly one terminal state.
"""

import asyncio
import contextlib
import logging
import threading
from typing import Any, Callable, List, Optional

from sounddecoder.core.models import AnalysisResult, AnalysisTask, AudioAsset
from sounddecoder.services.protocols import ClassificationService
from sounddecoder.utils.errors import (
    AlreadyRunningError,
    ClassificationServiceError,
    FailureReason,
)

DEFAULT_TIMEOUT: float = 30.0  # seconds

SettledListener = Callable[[AnalysisTask], None]


def _call_in_loop(loop: asyncio.AbstractEventLoop, callback: Callable[..., Any], *args: Any) -> None:
    """Run callback now when already on loop's thread, else hand it to the loop."""
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None

    if running is loop:
        callback(*args)
    elif not loop.is_closed():
        loop.call_soon_threadsafe(callback, *args)


class TaskHandle:
    """
    Caller's view of one analysis attempt.

    ``state`` always reflects this task, even after the orchestrator has
    moved on to a newer one.
    """

    def __init__(self, task: AnalysisTask, loop: asyncio.AbstractEventLoop):
        self.task_id: str = task.task_id  # type: ignore[assignment]
        self._state = task
        self._loop = loop
        self._future: "asyncio.Future[AnalysisTask]" = loop.create_future()

    @property
    def state(self) -> AnalysisTask:
        return self._state

    def done(self) -> bool:
        return self._state.is_terminal

    async def wait(self) -> AnalysisTask:
        """Wait for this task's terminal state."""
        return await asyncio.shield(self._future)

    def _resolve(self, task: AnalysisTask) -> None:
        self._state = task
        _call_in_loop(self._loop, self._set_future, task)

    def _set_future(self, task: AnalysisTask) -> None:
        if not self._future.done():
            self._future.set_result(task)


class AnalysisOrchestrator:
    """
    Single-flight driver for classification requests.

    Design:
    - At most one RUNNING task; a second start() is rejected, not queued
    - Responses are applied only when their task id is the current one
      and it is still RUNNING, so late or duplicate responses are dropped
    - Every request is bounded by ``timeout``; no automatic retry
    - A timeout resolves as FAILED with reason TIMEOUT, not SERVICE_ERROR
    - Must be started from inside a running event loop
    """

    def __init__(
        self,
        service: ClassificationService,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._service = service
        self.timeout = timeout
        self._current = AnalysisTask.idle()
        self._handle: Optional[TaskHandle] = None
        self._runner: Optional["asyncio.Task[None]"] = None
        self._listeners: List[SettledListener] = []
        self._lock = threading.RLock()
        self.logger = logging.getLogger("orchestrator")

    @property
    def service(self) -> ClassificationService:
        return self._service

    def current_state(self) -> AnalysisTask:
        return self._current

    def add_listener(self, listener: SettledListener) -> None:
        """Call listener once with every task that reaches a terminal state."""
        self._listeners.append(listener)

    def start(self, asset: AudioAsset) -> TaskHandle:
        """
        Begin classifying asset.

        Raises:
            AlreadyRunningError: A task is already RUNNING; nothing changes
            RuntimeError: Called outside a running event loop
        """
        loop = asyncio.get_running_loop()

        with self._lock:
            if self._current.is_running:
                raise AlreadyRunningError(self._current.task_id or "")

            task = AnalysisTask.running(asset.asset_id)
            handle = TaskHandle(task, loop)
            self._current = task
            self._handle = handle
            self._runner = loop.create_task(self._run(task.task_id, asset))

        self.logger.info(f"Started analysis {task.task_id[:8]} for {asset.name}")
        return handle

    def cancel(self) -> bool:
        """
        Cancel the running task, if any.

        Returns:
            True if a running task was cancelled
        """
        with self._lock:
            if not self._current.is_running:
                return False
            runner = self._runner
            task_id = self._current.task_id or ""

        # A response settling first makes this a no-op
        applied = self.fail(task_id, FailureReason.CANCELLED, "Cancelled before a response arrived")
        if applied and runner is not None and not runner.done():
            _call_in_loop(runner.get_loop(), runner.cancel)
        return applied

    def reset(self) -> None:
        """Cancel anything running and go back to IDLE."""
        with self._lock:
            self.cancel()
            self._current = AnalysisTask.idle()
            self._handle = None
            self._runner = None

    def complete(self, task_id: str, result: AnalysisResult) -> bool:
        """Apply a successful response for task_id. Returns whether it applied."""
        return self._settle(task_id, lambda task: task.succeeded(result))

    def fail(self, task_id: str, reason: FailureReason, detail: Optional[str] = None) -> bool:
        """Apply a failure for task_id. Returns whether it applied."""
        return self._settle(task_id, lambda task: task.failed(reason, detail))

    async def aclose(self) -> None:
        """Cancel any running task and wait for its runner to unwind."""
        with self._lock:
            runner = self._runner
        self.cancel()
        if runner is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await runner

    def _settle(
        self,
        task_id: str,
        transition: Callable[[AnalysisTask], AnalysisTask],
    ) -> bool:
        with self._lock:
            current = self._current
            if current.task_id != task_id or not current.is_running:
                self.logger.debug(f"Discarding stale response for task {task_id[:8]}")
                return False
            settled = transition(current)
            self._current = settled
            handle = self._handle

        if settled.failure is not None:
            self.logger.info(
                f"Analysis {task_id[:8]} failed: {settled.failure.value}"
                + (f" ({settled.detail})" if settled.detail else "")
            )
        else:
            self.logger.info(f"Analysis {task_id[:8]} succeeded")

        if handle is not None and handle.task_id == task_id:
            handle._resolve(settled)
        for listener in list(self._listeners):
            try:
                listener(settled)
            except Exception:
                self.logger.exception(f"Settlement listener failed for task {task_id[:8]}")
        return True

    async def _run(self, task_id: str, asset: AudioAsset) -> None:
        try:
            result = await asyncio.wait_for(
                self._service.classify(asset), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            self.fail(task_id, FailureReason.TIMEOUT, f"No response within {self.timeout:g}s")
        except asyncio.CancelledError:
            self.fail(task_id, FailureReason.CANCELLED)
            raise
        except ClassificationServiceError as e:
            self.fail(task_id, FailureReason.SERVICE_ERROR, str(e))
        except Exception as e:
            self.logger.error(f"Classification service raised unexpectedly: {e!r}")
            self.fail(task_id, FailureReason.SERVICE_ERROR, f"Unexpected service failure: {e}")
        else:
            if not isinstance(result, AnalysisResult):
                self.fail(
                    task_id,
                    FailureReason.SERVICE_ERROR,
                    f"Malformed response of type {type(result).__name__}",
                )
            else:
                self.complete(task_id, result)
