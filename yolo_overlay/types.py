from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Box:
    """
    Single-class detection in center form, in network input pixel space.
    """

    x: float
    y: float
    w: float
    h: float
    conf: float

    @property
    def area(self) -> float:
        return self.w * self.h

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        half_w = self.w / 2
        half_h = self.h / 2
        return self.x - half_w, self.y - half_h, self.x + half_w, self.y + half_h


@dataclass(frozen=True)
class Rect:
    """
    Overlay rectangle primitive in top-left form.
    """

    x: float
    y: float
    width: float
    height: float

    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.width, self.y + self.height


@dataclass(frozen=True)
class Overlay:
    width: int
    height: int
    rects: Tuple[Rect, ...] = ()

    def __len__(self) -> int:
        return len(self.rects)
