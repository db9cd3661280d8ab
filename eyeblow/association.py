"""Link eye boxes to face boxes by containment.

The detector returns faces and eyes as unrelated lists, so every tick the
relation is rebuilt from geometry alone. Inputs are never modified.
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .geometry import Rect, contains


@dataclass(frozen=True)
class EyeGroup:
    face: Rect
    eyes: Tuple[Rect, ...] = ()


def eyes_in_face(face: Rect, eyes: Sequence[Rect]) -> Tuple[Rect, ...]:
    return tuple(e for e in eyes if contains(e, face))


def associate_eyes_to_faces(faces: Sequence[Rect], eyes: Sequence[Rect]) -> List[EyeGroup]:
    """One group per face, in face order. Faces without eyes get an empty group."""
    return [EyeGroup(face=f, eyes=eyes_in_face(f, eyes)) for f in faces]


def select_primary_eye(faces: Sequence[Rect], eyes: Sequence[Rect]) -> Optional[Rect]:
    """Pick the eye to magnify.

    First eye found inside a face, scanning faces then eyes in input order.
    When no face holds an eye, the first detected eye is used anyway.
    Returns None only if there are no eyes at all.
    """
    for f in faces:
        for e in eyes:
            if contains(e, f):
                return e
    if eyes:
        return eyes[0]
    return None
