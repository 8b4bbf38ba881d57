"""
Unit tests for the single-flight FrameGate.
"""

import threading

from vision_detect_track.core.frame_gate import FrameGate


class TestFrameGate:
    """Tests for FrameGate."""

    def test_first_frame_accepted(self):
        """An idle gate admits a frame."""
        gate = FrameGate()
        assert gate.try_begin_frame() is True
        assert gate.is_busy is True

    def test_rejects_while_busy(self):
        """Every call between begin and end is rejected."""
        gate = FrameGate()
        gate.try_begin_frame()

        assert [gate.try_begin_frame() for _ in range(5)] == [False] * 5
        assert gate.dropped_frames == 5

    def test_accepts_after_end(self):
        """The gate admits a frame immediately after end_frame."""
        gate = FrameGate()
        gate.try_begin_frame()
        gate.end_frame()

        assert gate.is_busy is False
        assert gate.try_begin_frame() is True
        assert gate.accepted_frames == 2

    def test_end_frame_when_idle(self):
        """end_frame on an idle gate is a no-op."""
        gate = FrameGate()
        gate.end_frame()
        assert gate.try_begin_frame() is True

    def test_single_admission_under_contention(self):
        """Only one of many concurrent callers gets in."""
        gate = FrameGate()
        results = []
        lock = threading.Lock()
        start = threading.Barrier(8)

        def attempt():
            start.wait()
            admitted = gate.try_begin_frame()
            with lock:
                results.append(admitted)

        threads = [threading.Thread(target=attempt) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == 1
        assert gate.dropped_frames == 7
