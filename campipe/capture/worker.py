###############################################################################
# Camera worker
#
# One background thread executing posted jobs in order. All hardware calls
# and all session state changes run here. Each post returns a Future.
#
# 2026 Initial release
###############################################################################

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Callable, Optional

_STOP = object()


class CameraWorker:
    """Serializing job thread (owns the thread, not a Thread subclass)."""

    def __init__(self, name: str = "camera-worker", log_queue: Optional[queue.Queue] = None) -> None:
        self.name = name
        self.log = log_queue
        self._jobs: "queue.SimpleQueue" = queue.SimpleQueue()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._accepting = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            # one queue per thread, a stopping thread keeps its own
            self._jobs = queue.SimpleQueue()
            self._accepting = True
            self._thread = threading.Thread(target=self._loop, args=(self._jobs,), name=self.name, daemon=True)
            self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Finish queued jobs, then end and join the thread."""
        with self._lock:
            t = self._thread
            jobs = self._jobs
            self._accepting = False
            self._thread = None
        if t is None:
            return
        jobs.put(_STOP)
        if t is not threading.current_thread():
            t.join(timeout=timeout)

    @property
    def is_alive(self) -> bool:
        t = self._thread
        return t is not None and t.is_alive()

    def in_worker(self) -> bool:
        return threading.current_thread() is self._thread

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def post(self, fn: Callable, *args, **kwargs) -> Future:
        """Queue fn(*args, **kwargs). When stopped, the Future is cancelled."""
        fut: Future = Future()
        with self._lock:
            if not self._accepting:
                fut.cancel()
                self._log(logging.DEBUG, f"Worker:{self.name} stopped; dropped {getattr(fn, '__name__', fn)}")
                return fut
            self._jobs.put((fut, fn, args, kwargs))
        return fut

    def _loop(self, jobs: "queue.SimpleQueue") -> None:
        while True:
            job = jobs.get()
            if job is _STOP:
                break
            fut, fn, args, kwargs = job
            if not fut.set_running_or_notify_cancel():
                continue
            try:
                fut.set_result(fn(*args, **kwargs))
            except Exception as exc:
                self._log(logging.ERROR, f"Worker:{self.name} job {getattr(fn, '__name__', fn)} failed: {exc}")
                fut.set_exception(exc)

    def _log(self, level: int, msg: str) -> None:
        q = self.log
        if q is None:
            return
        try:
            if not q.full():
                q.put_nowait((int(level), str(msg)))
        except Exception:
            pass


__all__ = ["CameraWorker"]
