"""Per-tick orchestration: capture, mirror, detect, render, display."""
import enum
import logging
import threading
import time
from typing import Callable, Mapping, Optional, Tuple

import cv2

from .config import Configuration, ConfigurationState
from .detectors.base import EYE, FACE, MOUTH, DetectionSet, Detector
from .geometry import Rect
from .overlay import render

logger = logging.getLogger(__name__)


class LoopState(enum.Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    DISPLAYING = "displaying"


def compute_viewport(frame_w: int, frame_h: int, display_w: float, display_h: float) -> Rect:
    """Part of the frame shown on a display of the given size.

    Width is fitted to the display; the height that keeps the display aspect
    ratio is taken from the vertical centre of the frame.
    """
    if display_w <= 0 or display_h <= 0:
        return Rect(0, 0, frame_w, frame_h)
    ratio = display_w / float(frame_w)
    source_h = display_h / ratio
    source_y = (frame_h - source_h) / 2
    return Rect(0, source_y, frame_w, source_h)


class FrameLoop:
    def __init__(self, capture, detectors: Mapping[str, Detector], display, state: ConfigurationState):
        self.capture = capture
        self.detectors = detectors
        self.display = display
        self.config_state = state
        self.state = LoopState.IDLE
        self.dropped_ticks = 0
        self._busy = threading.Lock()

    def detect(self, frame, config: Configuration) -> DetectionSet:
        faces = self.detectors[FACE].detect(frame, config.face_params)
        eyes = self.detectors[EYE].detect(frame, config.eye_params)
        mouths = []
        if config.detect_mouths and MOUTH in self.detectors:
            mouths = self.detectors[MOUTH].detect(frame, config.mouth_params)
        return DetectionSet(faces=tuple(faces), eyes=tuple(eyes), mouths=tuple(mouths))

    def tick(self) -> Optional[Tuple[object, Rect]]:
        """Process one frame.

        Returns (frame, viewport) when a frame was rendered, None when the tick
        was skipped (no frame yet, or the previous tick is still running).
        """
        if not self._busy.acquire(blocking=False):
            self.dropped_ticks += 1
            logger.debug("Tick dropped, previous tick still processing")
            return None
        try:
            return self._tick()
        finally:
            if self.state is LoopState.PROCESSING:
                self.state = LoopState.IDLE
            self._busy.release()

    def _tick(self) -> Optional[Tuple[object, Rect]]:
        config = self.config_state.snapshot()
        frame = self.capture.read()
        if frame is None:
            logger.debug("No frame available")
            return None

        self.state = LoopState.PROCESSING
        if config.mirror_input:
            frame = cv2.flip(frame, 1)
        detections = self.detect(frame, config)
        render(frame, detections, config)

        h, w = frame.shape[:2]
        display_w, display_h = self.display.size()
        viewport = compute_viewport(w, h, display_w, display_h)

        if config.freeze_display:
            self.state = LoopState.IDLE
        else:
            self.display.show(frame, viewport)
            self.state = LoopState.DISPLAYING
        return frame, viewport

    def run(self, stop_event: threading.Event, idle: Optional[Callable[[int], None]] = None,
            clock: Callable[[], float] = time.monotonic) -> None:
        """Tick on a fixed wall-clock interval until stop_event is set.

        idle(ms) is called between ticks with the time left until the next
        one; it defaults to sleeping. Deadlines missed by a slow tick are
        dropped rather than caught up.
        """
        if idle is None:
            idle = lambda ms: stop_event.wait(ms / 1000.0)
        next_due = clock()
        while not stop_event.is_set():
            now = clock()
            if now >= next_due:
                try:
                    self.tick()
                except Exception:
                    logger.exception("Tick abandoned, keeping previous display")
                interval = max(1, self.config_state.snapshot().tick_interval_ms) / 1000.0
                next_due += interval
                now = clock()
                if next_due <= now:
                    missed = int((now - next_due) // interval) + 1
                    self.dropped_ticks += missed
                    next_due += missed * interval
            idle(max(1, int((next_due - now) * 1000)))
