"""Shared pytest configuration and fixtures for the overlay test suite."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Modules live flat under python/; the launcher sits at the project root.
PROJECT_ROOT = Path(__file__).parent.parent
PY_DIR = PROJECT_ROOT / "python"
for path in (PROJECT_ROOT, PY_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from ImageLoader import OverlayImage  # noqa: E402


class FakeVideo:
    """Stands in for VideoSource: a fixed frame and a release counter."""

    def __init__(self, frame=None, active=True):
        self.frame = frame
        self.active = active
        self.released = 0

    def current_frame(self):
        return self.frame

    def intrinsic_size(self):
        if self.frame is None:
            return None
        h, w = self.frame.shape[:2]
        return (w, h)

    def is_active(self):
        return self.active

    def release(self):
        self.released += 1


class ManualClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def solid_image(width, height, color=(255, 255, 255), alpha=None):
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[:] = color
    mask = None
    if alpha is not None:
        mask = np.full((height, width), alpha, dtype=np.float32)
    return OverlayImage(pixels, mask)


@pytest.fixture
def project_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture
def manual_clock():
    return ManualClock()


@pytest.fixture
def gray_frame():
    """A 160x90 mid-gray camera frame (16:9)."""
    return np.full((90, 160, 3), 100, dtype=np.uint8)


@pytest.fixture
def fake_video(gray_frame):
    return FakeVideo(gray_frame)


@pytest.fixture
def overlay_factory():
    return solid_image


@pytest.fixture
def video_factory():
    return FakeVideo
