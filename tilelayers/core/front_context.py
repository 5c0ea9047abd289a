"""Delivery of work to the single front (UI/render) thread.

Layers are only mutated, and user callbacks only invoked, on the front
context. Background tasks hand finished work over with ``post``; the front
context runs posted callables later, in submission order.
"""

import logging
import queue
import threading
import time
from typing import Any, Callable, Optional

from PyQt6.QtCore import QCoreApplication, QEventLoop, QObject, Qt, QTimer, pyqtSignal, pyqtSlot

logger = logging.getLogger(__name__)


class FrontContext:
    """Interface of a front execution context."""

    def post(self, fn: Callable[[], Any]) -> None:
        """Queue a zero-argument callable to run later on the front context."""
        raise NotImplementedError

    def request_redraw(self) -> None:
        """Signal that rendered content changed. Called on the front context."""
        raise NotImplementedError

    def process_events_until(self, predicate: Callable[[], bool], timeout: Optional[float] = None) -> bool:
        """
        Run posted work on the calling (front) thread until a condition holds.

        Args:
            predicate: Checked before each wait
            timeout: Seconds to wait at most, or None to wait forever

        Returns:
            True if the predicate became true, False on timeout
        """
        raise NotImplementedError

    @staticmethod
    def _run(fn: Callable[[], Any]) -> None:
        try:
            fn()
        except Exception:
            logger.exception("Error running task on front context")


class QueueFrontContext(FrontContext):
    """Front context backed by a FIFO queue drained by its owning thread.

    Suitable for headless programs and tests: whichever thread calls
    ``process_pending`` or ``process_events_until`` acts as the front thread.
    """

    def __init__(self):
        self._queue: "queue.Queue[Callable[[], Any]]" = queue.Queue()
        self.redraw_count = 0

    def post(self, fn: Callable[[], Any]) -> None:
        self._queue.put(fn)

    def request_redraw(self) -> None:
        self.redraw_count += 1

    def pending_count(self) -> int:
        return self._queue.qsize()

    def process_pending(self) -> int:
        """
        Run everything posted so far without waiting.

        Returns:
            Number of callables run
        """
        processed = 0
        while True:
            try:
                fn = self._queue.get_nowait()
            except queue.Empty:
                return processed
            self._run(fn)
            processed += 1

    def process_events_until(self, predicate: Callable[[], bool], timeout: Optional[float] = None) -> bool:
        deadline = None if timeout is None else time.monotonic() + timeout
        while not predicate():
            wait = 0.1
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                wait = min(wait, remaining)

            try:
                fn = self._queue.get(timeout=wait)
            except queue.Empty:
                continue
            self._run(fn)
        return True


class _QtPoster(QObject):
    """Receives posted callables on the thread it lives in."""

    posted = pyqtSignal(object)
    redraw_requested = pyqtSignal()

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        # Always queued, so posting from the front thread still defers the call
        self.posted.connect(self.run_posted, Qt.ConnectionType.QueuedConnection)

    @pyqtSlot(object)
    def run_posted(self, fn):
        FrontContext._run(fn)


class QtFrontContext(FrontContext):
    """Front context bound to the Qt main thread.

    Must be created on the thread running the Qt event loop.
    """

    def __init__(self, parent: Optional[QObject] = None):
        """
        Initialize Qt front context.

        Args:
            parent: Optional QObject parent for the internal poster
        """
        self._poster = _QtPoster(parent)

    @property
    def redraw_requested(self):
        """Signal emitted after every successful layer mutation."""
        return self._poster.redraw_requested

    def post(self, fn: Callable[[], Any]) -> None:
        self._poster.posted.emit(fn)

    def request_redraw(self) -> None:
        self._poster.redraw_requested.emit()

    def process_events_until(self, predicate: Callable[[], bool], timeout: Optional[float] = None) -> bool:
        deadline = None if timeout is None else time.monotonic() + timeout

        # Wake the event loop periodically so the deadline is honoured
        wakeup = QTimer()
        wakeup.setInterval(50)
        wakeup.start()
        try:
            while not predicate():
                if deadline is not None and time.monotonic() >= deadline:
                    return False
                QCoreApplication.processEvents(QEventLoop.ProcessEventsFlag.WaitForMoreEvents)
            return True
        finally:
            wakeup.stop()


_front_context: Optional[FrontContext] = None
_front_context_lock = threading.Lock()


def get_front_context() -> FrontContext:
    """Get the process-wide front context, defaulting to a QueueFrontContext."""
    global _front_context
    with _front_context_lock:
        if _front_context is None:
            _front_context = QueueFrontContext()
        return _front_context


def set_front_context(context: FrontContext) -> None:
    """Install the process-wide front context, e.g. a QtFrontContext in GUI hosts."""
    global _front_context
    with _front_context_lock:
        _front_context = context
