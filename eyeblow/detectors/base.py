from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Tuple

from ..geometry import Rect

FACE = "face"
EYE = "eye"
MOUTH = "mouth"


@dataclass(frozen=True)
class ClassParams:
    """Detector tuning for one class; handed to the detector untouched."""
    min_size_ratio: float  # min box side relative to frame height
    scale_factor: float = 1.1
    min_neighbors: int = 2


@dataclass(frozen=True)
class DetectionSet:
    faces: Tuple[Rect, ...] = ()
    eyes: Tuple[Rect, ...] = ()
    mouths: Tuple[Rect, ...] = ()


class Detector(ABC):
    @abstractmethod
    def detect(self, frame_bgr, params: ClassParams) -> List[Rect]:
        ...
