import logging
from typing import Tuple

import cv2

from ..geometry import Rect

logger = logging.getLogger(__name__)


def crop_to_viewport(frame, viewport: Rect):
    """Slice of frame inside viewport. The viewport may overhang the frame."""
    h, w = frame.shape[:2]
    r = viewport.as_int()
    x1, y1 = max(0, r.x), max(0, r.y)
    x2, y2 = min(w, r.x + r.width), min(h, r.y + r.height)
    if x2 <= x1 or y2 <= y1:
        return frame
    return frame[y1:y2, x1:x2]


def fit_to_window(frame, viewport: Rect, size: Tuple[int, int]):
    """Viewport of frame scaled to the window size; unscaled if the size is unknown."""
    crop = crop_to_viewport(frame, viewport)
    w, h = size
    if w <= 0 or h <= 0 or (crop.shape[1], crop.shape[0]) == (w, h):
        return crop
    return cv2.resize(crop, (w, h), interpolation=cv2.INTER_LINEAR)


class OpenCVDisplay:
    """HighGUI window acting as display sink and key source."""

    def __init__(self, window_name: str, size: Tuple[int, int] = (640, 480), fullscreen: bool = False):
        self.window_name = window_name
        cv2.namedWindow(window_name, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(window_name, *size)
        self.fullscreen = None
        self.shown = False
        self.set_fullscreen(fullscreen)

    def set_fullscreen(self, on: bool) -> None:
        if on == self.fullscreen:
            return
        mode = cv2.WINDOW_FULLSCREEN if on else cv2.WINDOW_NORMAL
        cv2.setWindowProperty(self.window_name, cv2.WND_PROP_FULLSCREEN, mode)
        self.fullscreen = on
        logger.info("Fullscreen %s", "on" if on else "off")

    def size(self) -> Tuple[int, int]:
        try:
            _, _, w, h = cv2.getWindowImageRect(self.window_name)
        except cv2.error:
            return (0, 0)
        return (w, h)

    def show(self, frame, viewport: Rect) -> None:
        cv2.imshow(self.window_name, fit_to_window(frame, viewport, self.size()))
        self.shown = True

    def poll_key(self, delay_ms: int) -> int:
        return cv2.waitKeyEx(max(1, delay_ms))

    def is_open(self) -> bool:
        if not self.shown:
            return True
        try:
            return cv2.getWindowProperty(self.window_name, cv2.WND_PROP_VISIBLE) >= 1
        except cv2.error:
            return False

    def close(self) -> None:
        cv2.destroyAllWindows()
