import threading

import numpy as np
import pytest

from eyeblow.config import Configuration, ConfigurationState
from eyeblow.geometry import InvalidArgument, Rect
from eyeblow.loop import FrameLoop, LoopState, compute_viewport

from conftest import FakeCapture, FakeDisplay

PLAIN = Configuration(
    outline_faces=False,
    outline_eyes=False,
    magnify_primary_eye=False,
    mirror_input=False,
)


def make_loop(frames, detectors, config=PLAIN, display=None):
    display = display or FakeDisplay()
    loop = FrameLoop(FakeCapture(frames), detectors, display, ConfigurationState(config))
    return loop, display


def test_viewport_center_crops_vertically():
    assert compute_viewport(640, 480, 1280, 720) == Rect(0, 60, 640, 360)


def test_viewport_same_aspect_is_full_frame():
    assert compute_viewport(640, 480, 320, 240) == Rect(0, 0, 640, 480)


def test_viewport_unknown_display_size():
    assert compute_viewport(640, 480, 0, 0) == Rect(0, 0, 640, 480)


def test_missing_frame_is_silent_noop(make_detectors):
    detectors = make_detectors(faces=[(0, 0, 10, 10)])
    loop, display = make_loop([], detectors)
    assert loop.tick() is None
    assert loop.state is LoopState.IDLE
    assert display.shown == []
    assert detectors["face"].calls == []


def test_tick_publishes_frame(frame, make_detectors):
    loop, display = make_loop([frame.copy()], make_detectors(), display=FakeDisplay((320, 240)))
    out, viewport = loop.tick()
    assert loop.state is LoopState.DISPLAYING
    assert viewport == Rect(0, 0, 160, 120)
    assert len(display.shown) == 1
    assert np.array_equal(display.shown[0][0], frame)
    assert np.array_equal(out, frame)


def test_mirror_flips_horizontally(frame, make_detectors):
    cfg = Configuration(outline_faces=False, outline_eyes=False, magnify_primary_eye=False)
    loop, display = make_loop([frame.copy()], make_detectors(), config=cfg)
    out, _ = loop.tick()
    assert np.array_equal(out, frame[:, ::-1])


def test_detector_params_passed_through(frame, make_detectors):
    cfg = Configuration(mirror_input=False, detect_mouths=True)
    detectors = make_detectors()
    loop, _ = make_loop([frame], detectors, config=cfg)
    loop.tick()
    assert detectors["face"].calls == [cfg.face_params]
    assert detectors["eye"].calls == [cfg.eye_params]
    assert detectors["mouth"].calls == [cfg.mouth_params]


def test_mouths_not_detected_unless_enabled(frame, make_detectors):
    detectors = make_detectors()
    loop, _ = make_loop([frame], detectors)
    loop.tick()
    assert detectors["mouth"].calls == []


def test_mouth_detector_optional(frame, make_detectors):
    detectors = make_detectors()
    del detectors["mouth"]
    loop, display = make_loop([frame], detectors, config=Configuration(detect_mouths=True))
    assert loop.tick() is not None
    assert len(display.shown) == 1


def test_freeze_skips_display(frame, make_detectors):
    cfg = Configuration(mirror_input=False, freeze_display=True)
    loop, display = make_loop([frame], make_detectors(), config=cfg)
    assert loop.tick() is not None
    assert display.shown == []
    assert loop.state is LoopState.IDLE


def test_render_applied_before_display(frame, make_detectors):
    cfg = Configuration(mirror_input=False, magnify_primary_eye=False, outline_eyes=False)
    loop, display = make_loop([frame], make_detectors(faces=[(20, 20, 80, 80)]), config=cfg)
    loop.tick()
    shown, _ = display.shown[0]
    assert tuple(shown[20, 20]) == (0, 255, 0)


def test_config_snapshot_taken_at_tick_start(frame, make_detectors):
    state = ConfigurationState(Configuration(mirror_input=False))

    class TogglingDetector:
        def detect(self, frame_bgr, params):
            # input arrives mid-tick
            state.toggle("freeze_display")
            return []

    detectors = make_detectors()
    detectors["face"] = TogglingDetector()
    display = FakeDisplay()
    loop = FrameLoop(FakeCapture([frame]), detectors, display, state)
    loop.tick()
    assert len(display.shown) == 1
    assert state.snapshot().freeze_display is True


def test_invalid_geometry_abandons_tick(frame, make_detectors):
    cfg = Configuration(mirror_input=False)
    loop, display = make_loop([frame], make_detectors(faces=[(0, 0, -5, 10)]), config=cfg)
    with pytest.raises(InvalidArgument):
        loop.tick()
    assert display.shown == []
    assert loop.state is LoopState.IDLE


def test_reentrant_tick_is_dropped(frame, make_detectors):
    started, release = threading.Event(), threading.Event()
    results = []

    class SlowCapture:
        def read(self):
            started.set()
            release.wait(5)
            return frame.copy()

    loop = FrameLoop(SlowCapture(), make_detectors(), FakeDisplay(), ConfigurationState(PLAIN))
    worker = threading.Thread(target=lambda: results.append(loop.tick()))
    worker.start()
    assert started.wait(5)
    assert loop.tick() is None
    release.set()
    worker.join(5)
    assert loop.dropped_ticks == 1
    assert results[0] is not None


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_run_ticks_on_fixed_interval(frame, make_detectors):
    clock = FakeClock()
    stop = threading.Event()
    loop, display = make_loop([frame.copy() for _ in range(10)], make_detectors(),
                              config=Configuration(mirror_input=False, tick_interval_ms=250))
    waits = []

    def idle(ms):
        waits.append(ms)
        clock.now += ms / 1000.0
        if len(waits) == 3:
            stop.set()

    loop.run(stop, idle=idle, clock=clock)
    assert waits == [250, 250, 250]
    assert len(display.shown) == 3


def test_run_drops_missed_deadlines(frame, make_detectors):
    clock = FakeClock()
    stop = threading.Event()
    cfg = Configuration(mirror_input=False, tick_interval_ms=250)
    loop, display = make_loop([frame.copy() for _ in range(10)], make_detectors(), config=cfg)
    real_tick = loop.tick

    def slow_tick():
        clock.now += 0.875
        return real_tick()

    loop.tick = slow_tick
    waits = []

    def idle(ms):
        waits.append(ms)
        clock.now += ms / 1000.0
        stop.set()

    loop.run(stop, idle=idle, clock=clock)
    # tick at t=0 overran to 0.875; deadlines 0.25, 0.5, 0.75 skipped, next at 1.0
    assert loop.dropped_ticks == 3
    assert waits == [125]


def test_run_survives_failing_tick(frame, make_detectors):
    clock = FakeClock()
    stop = threading.Event()
    cfg = Configuration(mirror_input=False, tick_interval_ms=250)
    frames = [frame.copy(), frame.copy()]
    detectors = make_detectors(faces=[(0, 0, -1, 1)])
    loop, display = make_loop(frames, detectors, config=cfg)
    calls = []

    def idle(ms):
        calls.append(ms)
        clock.now += ms / 1000.0
        if len(calls) == 2:
            stop.set()

    loop.run(stop, idle=idle, clock=clock)
    assert display.shown == []
    assert calls == [250, 250]
