###############################################################################
# Image file saver
#
# Writes captured JPEG bytes to disk on a short lived thread and reports the
# result through a callback.
#
# 2026 Initial release
###############################################################################

from __future__ import annotations

import logging
import os
import time
from threading import Thread
from typing import Callable, Optional

from .interface import ImageSaver


class FileImageSaver(ImageSaver):
    """Byte image saver, one thread per image."""

    def __init__(self) -> None:
        self.logger = logging.getLogger("FileImageSaver")
        self._threads: list[Thread] = []

    def save(self, data: bytes, path: str, on_done: Callable[[str, Optional[BaseException]], None]) -> None:
        T = Thread(target=self._write, args=(bytes(data), str(path), on_done), daemon=True)
        self._threads = [t for t in self._threads if t.is_alive()]
        self._threads.append(T)
        T.start()

    def join(self, timeout: float | None = None) -> None:
        """Wait for pending writes."""
        for t in list(self._threads):
            t.join(timeout=timeout)

    def _write(self, data: bytes, path: str, on_done) -> None:
        start_time = time.perf_counter()
        error: Optional[BaseException] = None
        try:
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except OSError as exc:
            error = exc
            self.logger.log(logging.ERROR, "Status:Failed to save image %s: %s", path, exc)
        else:
            self.logger.log(
                logging.DEBUG,
                "Status:Saved %d bytes to %s in %.1f ms",
                len(data), path, (time.perf_counter() - start_time) * 1000.0,
            )
        on_done(path, error)


__all__ = ["FileImageSaver"]
