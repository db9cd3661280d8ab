"""Rectangle helpers used by association and rendering (pure, no OpenCV)."""
from dataclasses import dataclass
from typing import Iterable, Tuple, Union

Number = Union[int, float]


class InvalidArgument(ValueError):
    """Raised for geometry that cannot be used: negative extents, empty input."""


@dataclass(frozen=True)
class Rect:
    x: Number
    y: Number
    width: Number
    height: Number

    @classmethod
    def from_xyxy(cls, x1: Number, y1: Number, x2: Number, y2: Number) -> "Rect":
        return cls(x1, y1, x2 - x1, y2 - y1)

    @property
    def top_left(self) -> Tuple[Number, Number]:
        return (self.x, self.y)

    @property
    def bottom_right(self) -> Tuple[Number, Number]:
        return (self.x + self.width, self.y + self.height)

    def as_int(self) -> "Rect":
        """Round the corners to whole pixels."""
        x1, y1 = round(self.x), round(self.y)
        x2, y2 = round(self.x + self.width), round(self.y + self.height)
        return Rect(x1, y1, x2 - x1, y2 - y1)


def validate(rect: Rect) -> Rect:
    if rect.width < 0 or rect.height < 0:
        raise InvalidArgument(f"Rect with negative extent: {rect}")
    return rect


def contains(inner: Rect, outer: Rect) -> bool:
    """True if inner lies within outer, edges included."""
    validate(inner)
    validate(outer)
    (ix1, iy1), (ix2, iy2) = inner.top_left, inner.bottom_right
    (ox1, oy1), (ox2, oy2) = outer.top_left, outer.bottom_right
    return ix1 >= ox1 and iy1 >= oy1 and ix2 <= ox2 and iy2 <= oy2


def bounding_box(rects: Iterable[Rect]) -> Rect:
    """Smallest rect enclosing every input rect.

    The caller decides what an empty input means; here it is an error.
    """
    boxes = [validate(r) for r in rects]
    if not boxes:
        raise InvalidArgument("bounding_box() needs at least one rect")
    left = min(r.x for r in boxes)
    top = min(r.y for r in boxes)
    right = max(r.bottom_right[0] for r in boxes)
    bottom = max(r.bottom_right[1] for r in boxes)
    return Rect.from_xyxy(left, top, right, bottom)
