import time

import numpy as np
import pytest

from OverlayErrors import CameraUnavailable
from VideoSource import VideoSample, VideoSource


class FakeCapture:
    def __init__(self, index, opened=True):
        self.index = index
        self.opened = opened
        self.props = {}
        self.released = False
        self.reads = 0

    def isOpened(self):
        return self.opened

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def read(self):
        self.reads += 1
        frame = np.zeros((48, 64, 3), dtype=np.uint8)
        frame[:, :32] = 255
        time.sleep(0.001)
        return True, frame

    def release(self):
        self.released = True


def test_unopenable_camera_raises():
    source = VideoSource({"index": 3}, capture_factory=lambda i: FakeCapture(i, opened=False))
    with pytest.raises(CameraUnavailable):
        source.open()


def test_nothing_before_first_frame():
    source = VideoSource()
    assert source.poll() is None
    assert source.current_frame() is None
    assert source.intrinsic_size() is None
    assert not source.is_active()


def test_latest_sample_wins_and_playing_fires_once():
    source = VideoSource()
    playing = []
    source.on_playing.append(lambda: playing.append(True))
    frames = [np.full((10, 20, 3), v, dtype=np.uint8) for v in (1, 2, 3)]
    for i, frame in enumerate(frames):
        source._publish(VideoSample(frame, float(i)))
    sample = source.poll()
    assert sample.frame[0, 0, 0] == 3
    assert source.intrinsic_size() == (20, 10)
    assert source.is_active()

    source._publish(VideoSample(frames[0], 4.0))
    source.poll()
    assert playing == [True]


def test_capture_thread_delivers_mirrored_frames():
    captures = []

    def factory(index):
        cap = FakeCapture(index)
        captures.append(cap)
        return cap

    source = VideoSource({"index": 0, "mirror": True, "frame_width": 64}, capture_factory=factory)
    source.open()
    try:
        deadline = time.time() + 2.0
        sample = None
        while sample is None and time.time() < deadline:
            sample = source.poll()
            time.sleep(0.005)
    finally:
        source.release()

    assert sample is not None
    # white half moved from the left to the right
    assert sample.frame[0, 0, 0] == 0
    assert sample.frame[0, 63, 0] == 255
    assert captures[0].released
    assert not source.is_active()


def test_release_is_idempotent():
    source = VideoSource(capture_factory=FakeCapture)
    source.open()
    source.release()
    source.release()


class BrokenHands:
    def __init__(self):
        self.calls = 0

    def process_frame(self, frame):
        self.calls += 1
        raise RuntimeError("graph crashed")


def test_hand_tracking_errors_do_not_stop_capture():
    hands = BrokenHands()
    source = VideoSource(hand_source=hands, capture_factory=FakeCapture)
    source.open()
    try:
        samples = []
        deadline = time.time() + 2.0
        while len(samples) < 2 and time.time() < deadline:
            sample = source.poll()
            if sample is not None:
                samples.append(sample)
            time.sleep(0.005)
        alive = source._thread.is_alive()
    finally:
        source.release()

    assert len(samples) == 2
    assert all(s.hand_pointers is None for s in samples)
    assert hands.calls >= 2
    assert alive
