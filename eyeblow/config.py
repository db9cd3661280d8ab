import logging
import threading
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional, Tuple

import cv2

from .detectors.base import ClassParams

logger = logging.getLogger(__name__)

# General
WINDOW_NAME = "Eyeblow"
DEFAULT_TICK_INTERVAL_MS = 1000
DEFAULT_CAPTURE_WIDTH = 0  # 0 = keep camera resolution

# Haar defaults
DEFAULT_SCALE = 1.1
DEFAULT_MIN_NEIGHBORS = 2
FACE_MIN_SIZE_RATIO = 0.10
EYE_MIN_SIZE_RATIO = 0.05
MOUTH_MIN_SIZE_RATIO = 0.20

FACE_CASCADE_PATH = Path(cv2.data.haarcascades) / "haarcascade_frontalface_alt.xml"
EYE_CASCADE_PATH = Path(cv2.data.haarcascades) / "haarcascade_eye.xml"
# not shipped with opencv-python; drop the file under resources/haarcascades
MOUTH_CASCADE_FILENAME = "haarcascade_mcs_mouth.xml"

# Drawing (BGR)
FACE_COLOR = (0, 255, 0)
FACE_THICKNESS = 3
EYE_COLOR = (255, 255, 0)
EYE_THICKNESS = 2
MOUTH_COLOR = (0, 0, 255)
MOUTH_THICKNESS = 2
MASK_COLOR = (0, 0, 0)

Color = Tuple[int, int, int]


def project_path(*names: str) -> Path:
    return Path(__file__).resolve().parent.parent.joinpath(*names)


MOUTH_CASCADE_PATH = project_path("resources", "haarcascades", MOUTH_CASCADE_FILENAME)


@dataclass(frozen=True)
class Configuration:
    """Everything one tick reads. Immutable; take a new one per tick."""
    outline_faces: bool = True
    outline_eyes: bool = True
    outline_mouths: bool = False
    magnify_primary_eye: bool = True
    draw_masks: bool = False
    freeze_display: bool = False
    fullscreen: bool = True
    mirror_input: bool = True
    detect_mouths: bool = False

    tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS
    face_params: ClassParams = ClassParams(FACE_MIN_SIZE_RATIO, DEFAULT_SCALE, DEFAULT_MIN_NEIGHBORS)
    eye_params: ClassParams = ClassParams(EYE_MIN_SIZE_RATIO, DEFAULT_SCALE, DEFAULT_MIN_NEIGHBORS)
    mouth_params: ClassParams = ClassParams(MOUTH_MIN_SIZE_RATIO, DEFAULT_SCALE, DEFAULT_MIN_NEIGHBORS)

    mask_color: Color = MASK_COLOR


TOGGLES = tuple(f.name for f in fields(Configuration) if f.type is bool)

# F12 as reported by cv2.waitKeyEx on Windows and on GTK/Qt under X11
F12_KEYS = (0x7B0000, 0xFFC9)
ESC_KEY = 27
QUIT_KEYS = (ord("q"), ESC_KEY)

KEY_BINDINGS = {
    ord("b"): "magnify_primary_eye",
    ord("f"): "outline_faces",
    ord("e"): "outline_eyes",
    ord("m"): "outline_mouths",
    ord("k"): "draw_masks",
    ord("r"): "freeze_display",
    ord("t"): "fullscreen",
    ord("x"): "mirror_input",
    ord("d"): "detect_mouths",
}
KEY_BINDINGS.update({code: "fullscreen" for code in F12_KEYS})


def normalize_key(key: int) -> int:
    """Key code from cv2.waitKeyEx reduced to what KEY_BINDINGS holds.

    Function keys keep their full code; other keys drop the modifier bits
    (Caps/Num Lock) some backends set above the low byte. -1 means no key.
    """
    if key < 0 or key in F12_KEYS:
        return key
    return key & 0xFF


class ConfigurationState:
    """Holder shared by the input handler (writer) and the frame loop (reader)."""

    def __init__(self, initial: Optional[Configuration] = None):
        self._lock = threading.Lock()
        self._config = initial or Configuration()

    def snapshot(self) -> Configuration:
        with self._lock:
            return self._config

    def toggle(self, name: str) -> bool:
        if name not in TOGGLES:
            raise KeyError(f"Unknown toggle: {name}")
        with self._lock:
            value = not getattr(self._config, name)
            self._config = replace(self._config, **{name: value})
        logger.info("%s -> %s", name, "on" if value else "off")
        return value

    def handle_key(self, key: int) -> Optional[str]:
        """Apply the toggle bound to a key code. Returns the toggled flag name."""
        name = KEY_BINDINGS.get(normalize_key(key))
        if name is None:
            return None
        self.toggle(name)
        return name
