import logging
from pathlib import Path
from typing import List, Union

import cv2

from .base import ClassParams, Detector
from ..geometry import Rect

logger = logging.getLogger(__name__)


def min_size_pixels(frame_height: int, ratio: float) -> int:
    return int(round(frame_height * ratio))


class HaarDetector(Detector):
    """One Haar cascade, i.e. one anatomical class."""

    def __init__(self, cascade_path: Union[str, Path]):
        cascade_path = Path(cascade_path)
        if not cascade_path.exists():
            raise FileNotFoundError(f"Cascade not found: {cascade_path}")
        self.cascade = cv2.CascadeClassifier(str(cascade_path))
        if self.cascade.empty():
            raise RuntimeError(f"Failed to load cascade: {cascade_path}")
        self.cascade_path = cascade_path
        logger.info("Loaded cascade %s", cascade_path.name)

    @staticmethod
    def prepare(frame_bgr):
        # equalised grayscale copy; the colour frame is left untouched
        gray = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2GRAY)
        return cv2.equalizeHist(gray)

    def detect(self, frame_bgr, params: ClassParams) -> List[Rect]:
        gray = self.prepare(frame_bgr)
        side = min_size_pixels(gray.shape[0], params.min_size_ratio)
        raw = self.cascade.detectMultiScale(
            gray,
            scaleFactor=params.scale_factor,
            minNeighbors=params.min_neighbors,
            flags=cv2.CASCADE_SCALE_IMAGE,
            minSize=(side, side),
        )
        return [Rect(int(x), int(y), int(w), int(h)) for (x, y, w, h) in raw]
