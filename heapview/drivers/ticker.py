from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

log = logging.getLogger("heapview.drivers")

DEFAULT_INTERVAL_MS = 17


class FrameTicker:
    """Fixed-interval frame loop for programs that advance in ticks.

    Every frame calls `tick(elapsed_ms)` and then `on_frame()` (typically a
    diagram refresh). The loop ends when `tick` returns False, after
    `max_frames`, on `stop()`, or on the first exception, which is logged and
    kept in `error`. Failed frames are not retried.
    """

    def __init__(
        self,
        tick: Callable[[float], Any],
        *,
        on_frame: Optional[Callable[[], Any]] = None,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        max_frames: Optional[int] = None,
    ):
        self._tick = tick
        self._on_frame = on_frame
        self.interval_ms = max(1, int(interval_ms))
        self.max_frames = max_frames
        self.frames = 0
        self.error: Optional[BaseException] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run(self) -> int:
        """Run the loop on the calling thread; returns the frame count."""

        start = time.monotonic()
        while not self._stop.is_set():
            elapsed_ms = (time.monotonic() - start) * 1000.0
            try:
                keep_going = self._tick(elapsed_ms)
                if self._on_frame is not None:
                    self._on_frame()
            except Exception as e:
                self.error = e
                log.error("frame_failed", extra={"frame": self.frames, "error": repr(e)})
                break

            self.frames += 1
            if keep_going is False:
                break
            if self.max_frames is not None and self.frames >= self.max_frames:
                break
            self._stop.wait(self.interval_ms / 1000.0)

        log.info("frame_loop_finished", extra={"frames": self.frames})
        return self.frames

    def start(self) -> threading.Thread:
        """Run the loop on a daemon thread."""

        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("frame loop already running")
        self._thread = threading.Thread(target=self.run, name="heapview-ticker", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)
