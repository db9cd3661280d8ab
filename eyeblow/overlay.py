"""Frame annotation stages.

Stages run in a fixed order on the same BGR buffer, each one in place:

1. magnify   - the primary eye is scaled up to cover the whole frame
2. mask      - faces with eyes get an opaque mask leaving only an eye slit
3. outline   - borders around faces, eyes and mouths

The order matters: outlines are drawn on top of whatever the earlier stages
left, and magnification throws away everything outside the eye box.
"""
import logging
from typing import Callable, List, Sequence, Tuple

import cv2

from .association import associate_eyes_to_faces, select_primary_eye
from .config import (
    Configuration,
    EYE_COLOR,
    EYE_THICKNESS,
    FACE_COLOR,
    FACE_THICKNESS,
    MOUTH_COLOR,
    MOUTH_THICKNESS,
)
from .detectors.base import DetectionSet
from .geometry import Rect, bounding_box, validate

logger = logging.getLogger(__name__)

Stage = Callable[[object, DetectionSet, Configuration], None]


def _clip(rect: Rect, frame_shape) -> Tuple[int, int, int, int]:
    """Integer (x1, y1, x2, y2) of rect limited to the frame."""
    h, w = frame_shape[:2]
    r = rect.as_int()
    x1, y1 = max(0, r.x), max(0, r.y)
    x2, y2 = min(w, r.x + r.width), min(h, r.y + r.height)
    return x1, y1, x2, y2


def fill(frame, rect: Rect, color) -> None:
    x1, y1, x2, y2 = _clip(rect, frame.shape)
    if x2 <= x1 or y2 <= y1:
        return
    frame[y1:y2, x1:x2] = color


def magnify_primary_eye(frame, detections: DetectionSet, config: Configuration) -> None:
    if not config.magnify_primary_eye:
        return
    eye = select_primary_eye(detections.faces, detections.eyes)
    if eye is None:
        return
    x1, y1, x2, y2 = _clip(validate(eye), frame.shape)
    if x2 <= x1 or y2 <= y1:
        logger.debug("Primary eye %s lies outside the frame", eye)
        return
    h, w = frame.shape[:2]
    crop = frame[y1:y2, x1:x2]
    frame[:] = cv2.resize(crop, (w, h), interpolation=cv2.INTER_LINEAR)


def mask_pieces(face: Rect, eyes_rect: Rect) -> List[Rect]:
    """The four rects that cover face minus eyes_rect.

    Left and right columns span the full face height; above and below strips
    span the width of eyes_rect.
    """
    (fx1, fy1), (fx2, fy2) = face.top_left, face.bottom_right
    (ex1, ey1), (ex2, ey2) = eyes_rect.top_left, eyes_rect.bottom_right
    return [
        Rect.from_xyxy(fx1, fy1, ex1, fy2),
        Rect.from_xyxy(ex1, fy1, ex2, ey1),
        Rect.from_xyxy(ex1, ey2, ex2, fy2),
        Rect.from_xyxy(ex2, fy1, fx2, fy2),
    ]


def draw_masks(frame, detections: DetectionSet, config: Configuration) -> None:
    if not config.draw_masks:
        return
    for group in associate_eyes_to_faces(detections.faces, detections.eyes):
        # TODO: eyeless faces stay unmasked; decide whether to black out the whole face
        if not group.eyes:
            continue
        eyes_rect = bounding_box(group.eyes)
        for piece in mask_pieces(group.face, eyes_rect):
            fill(frame, piece, config.mask_color)


def outline(frame, rects: Sequence[Rect], color, thickness: int) -> None:
    for rect in rects:
        r = validate(rect).as_int()
        cv2.rectangle(frame, r.top_left, r.bottom_right, color, thickness)


def draw_outlines(frame, detections: DetectionSet, config: Configuration) -> None:
    if config.outline_faces:
        outline(frame, detections.faces, FACE_COLOR, FACE_THICKNESS)
    if config.outline_eyes:
        outline(frame, detections.eyes, EYE_COLOR, EYE_THICKNESS)
    if config.outline_mouths:
        outline(frame, detections.mouths, MOUTH_COLOR, MOUTH_THICKNESS)


STAGES: Tuple[Tuple[str, Stage], ...] = (
    ("magnify", magnify_primary_eye),
    ("mask", draw_masks),
    ("outline", draw_outlines),
)


def render(frame, detections: DetectionSet, config: Configuration):
    """Run every stage on frame in order. Returns the same (mutated) buffer."""
    for _name, stage in STAGES:
        stage(frame, detections, config)
    return frame
