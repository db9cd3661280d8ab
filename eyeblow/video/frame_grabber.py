import logging
import threading
import time
from typing import Optional

import cv2

logger = logging.getLogger(__name__)

# consecutive failed reads before the camera is reported as stalled
STALL_READS = 100


class FrameGrabber:
    """Capture collaborator: a background thread keeps the newest camera frame.

    Each captured frame is handed out by read() at most once. Polling again
    before the camera delivered another frame gives None, so a camera that
    stops producing frames makes the frame loop skip its ticks instead of
    re-processing a stale image.
    """

    def __init__(self, device_index: int, resize_width: Optional[int] = None):
        self.cap = cv2.VideoCapture(device_index)
        if not self.cap.isOpened():
            raise RuntimeError(f"Cannot open camera index {device_index}")
        self.device_index = device_index
        self.resize_width = resize_width if resize_width and resize_width > 0 else None
        self._lock = threading.Lock()
        self._pending = None
        self._running = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.frames_captured = 0
        self.frames_overwritten = 0

    def start(self) -> "FrameGrabber":
        self._running.set()
        self._thread = threading.Thread(target=self._capture, name="frame-grabber", daemon=True)
        self._thread.start()
        logger.info("Capturing from camera %d", self.device_index)
        return self

    def _shrink(self, frame):
        if not self.resize_width or frame.shape[1] <= self.resize_width:
            return frame
        h, w = frame.shape[:2]
        height = int(h * self.resize_width / float(w))
        return cv2.resize(frame, (self.resize_width, height), interpolation=cv2.INTER_AREA)

    def _capture(self) -> None:
        failures = 0
        while self._running.is_set():
            ok, frame = self.cap.read()
            if not ok or frame is None:
                failures += 1
                if failures == STALL_READS:
                    logger.warning("Camera %d stopped delivering frames", self.device_index)
                time.sleep(0.01)
                continue
            if failures >= STALL_READS:
                logger.info("Camera %d delivering frames again", self.device_index)
            failures = 0
            frame = self._shrink(frame)
            with self._lock:
                if self._pending is not None:
                    self.frames_overwritten += 1
                self._pending = frame
                self.frames_captured += 1

    def read(self):
        """Take the frame captured since the last call, or None if there is none.

        The caller owns the returned array; the grabber keeps no reference to it.
        """
        with self._lock:
            frame, self._pending = self._pending, None
        return frame

    def stop(self) -> None:
        self._running.clear()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=1)
        self.cap.release()
        logger.info("Camera %d released (%d frames captured)", self.device_index, self.frames_captured)
