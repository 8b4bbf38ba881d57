import threading


class FrameGate:
    """
    Single-flight gate for the decode+track cycle.

    ``try_begin_frame`` admits a frame only when no other frame is in flight;
    frames arriving while busy are dropped, not queued. The worker that was
    admitted must call ``end_frame`` when it is done, also on failure.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._busy = False
        self.accepted_frames = 0
        self.dropped_frames = 0

    def try_begin_frame(self) -> bool:
        with self._lock:
            if self._busy:
                self.dropped_frames += 1
                return False
            self._busy = True
            self.accepted_frames += 1
            return True

    def end_frame(self) -> None:
        with self._lock:
            self._busy = False

    @property
    def is_busy(self) -> bool:
        with self._lock:
            return self._busy
