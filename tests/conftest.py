"""Shared fixtures: synthetic frames and fake collaborators for the frame loop."""
import numpy as np
import pytest

from eyeblow.detectors.base import EYE, FACE, MOUTH, Detector
from eyeblow.geometry import Rect


class FakeCapture:
    def __init__(self, frames):
        self.frames = list(frames)
        self.reads = 0

    def read(self):
        self.reads += 1
        if not self.frames:
            return None
        return self.frames.pop(0)


class FakeDetector(Detector):
    def __init__(self, boxes=()):
        self.boxes = [Rect(*b) for b in boxes]
        self.calls = []

    def detect(self, frame_bgr, params):
        self.calls.append(params)
        return list(self.boxes)


class FakeDisplay:
    def __init__(self, size=(640, 480)):
        self._size = size
        self.shown = []

    def size(self):
        return self._size

    def show(self, frame, viewport):
        self.shown.append((frame.copy(), viewport))


def gradient_frame(h=120, w=160):
    """BGR frame whose pixels are all distinct enough to spot moves and flips."""
    ys, xs = np.mgrid[0:h, 0:w]
    frame = np.zeros((h, w, 3), dtype=np.uint8)
    frame[..., 0] = xs % 256
    frame[..., 1] = ys % 256
    frame[..., 2] = 128
    return frame


@pytest.fixture
def frame():
    return gradient_frame()


@pytest.fixture
def make_detectors():
    def _make(faces=(), eyes=(), mouths=()):
        return {FACE: FakeDetector(faces), EYE: FakeDetector(eyes), MOUTH: FakeDetector(mouths)}
    return _make
