"""
Task runners for blocking I/O.

HTTP calls to the order service must not freeze the sales desk UI, so they
run on TaskWorker threads. Results and errors are delivered back to the UI
thread through queued signals, where all state changes happen.

Both runners share one interface:

    runner.run(fn, on_success, on_error=None, name='task')

ImmediateTaskRunner calls fn inline, which keeps tests and headless use
single-threaded.
"""

from typing import Callable, Optional

from PySide6.QtCore import QObject, QThread, Signal, Slot

from logger import get_logger

logger = get_logger(__name__)


class TaskWorker(QThread):
    """
    Runs one callable on a background thread.

    Signals:
        task_succeeded: Emitted with the callable's return value
        task_failed: Emitted with the exception it raised
    """

    task_succeeded = Signal(object)
    task_failed = Signal(object)

    def __init__(self, fn: Callable[[], object], name: str = 'task'):
        super().__init__()
        self.fn = fn
        self.name = name

    def run(self):
        try:
            result = self.fn()
        except Exception as e:
            logger.error(f"Background task '{self.name}' failed: {e}", exc_info=True)
            self.task_failed.emit(e)
            return
        self.task_succeeded.emit(result)


class _TaskCallbacks(QObject):
    """Lives on the UI thread so worker signals are queued onto it."""

    def __init__(self, on_success, on_error, parent=None):
        super().__init__(parent)
        self._on_success = on_success
        self._on_error = on_error

    @Slot(object)
    def deliver_result(self, result):
        self._on_success(result)

    @Slot(object)
    def deliver_error(self, error):
        if self._on_error is not None:
            self._on_error(error)


class BackgroundTaskRunner(QObject):
    """
    Starts a TaskWorker per task and keeps it alive until it finishes.

    Attributes:
        active_count (int): Tasks started and not yet finished
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self._tasks = {}

    @property
    def active_count(self) -> int:
        return len(self._tasks)

    def run(
        self,
        fn: Callable[[], object],
        on_success: Callable[[object], None],
        on_error: Optional[Callable[[Exception], None]] = None,
        name: str = 'task',
    ):
        worker = TaskWorker(fn, name)
        callbacks = _TaskCallbacks(on_success, on_error, self)

        worker.task_succeeded.connect(callbacks.deliver_result)
        worker.task_failed.connect(callbacks.deliver_error)
        worker.finished.connect(self._on_worker_finished)

        self._tasks[worker] = callbacks
        logger.debug(f"Starting background task '{name}'")
        worker.start()

    @Slot()
    def _on_worker_finished(self):
        worker = self.sender()
        callbacks = self._tasks.pop(worker, None)
        if callbacks is not None:
            callbacks.deleteLater()
        worker.deleteLater()

    def shutdown(self, timeout_ms: int = 5000):
        """Wait for running tasks before the window closes."""
        for worker in list(self._tasks):
            if worker.isRunning():
                logger.info(f"Waiting for background task '{worker.name}' to finish")
                if not worker.wait(timeout_ms):
                    logger.warning(f"Background task '{worker.name}' still running after {timeout_ms}ms")


class ImmediateTaskRunner:
    """Runs tasks synchronously on the calling thread."""

    active_count = 0

    def run(
        self,
        fn: Callable[[], object],
        on_success: Callable[[object], None],
        on_error: Optional[Callable[[Exception], None]] = None,
        name: str = 'task',
    ):
        try:
            result = fn()
        except Exception as e:
            logger.error(f"Task '{name}' failed: {e}")
            if on_error is None:
                raise
            on_error(e)
            return
        on_success(result)

    def shutdown(self, timeout_ms: int = 5000):
        pass
