"""
Data models shared by the geometry engine, the exporter and the UI.

All geometry lives in *display* coordinates (the same space as the bounds
box the crop must stay inside) until ``geometry.map_to_source`` converts a
rectangle to a source-pixel window.  Rectangles are plain value objects;
the engine hands out copies only.
"""

from dataclasses import dataclass, replace
from enum import Enum


# Sentinel aspect constraint: follow the bounds' own width/height ratio
ORIGINAL = "original"

# Either ORIGINAL or a positive width/height ratio
AspectConstraint = float | str

Point = tuple[float, float]


# =============================================================================
# Data classes
# =============================================================================
@dataclass
class Rect:
    """Axis-aligned crop rectangle in display coordinates."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return self.x + self.width / 2, self.y + self.height / 2

    def contains(self, pos: Point) -> bool:
        px, py = pos
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def copy(self) -> "Rect":
        return replace(self)


@dataclass(frozen=True)
class Bounds:
    """Region the crop rectangle must stay within (the displayed image box)."""
    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class SourceCropWindow:
    """Integer crop window in source-image pixels."""
    sx: int
    sy: int
    sw: int
    sh: int

    def box(self) -> tuple[int, int, int, int]:
        """Return the window as a Pillow ``(left, upper, right, lower)`` box."""
        return self.sx, self.sy, self.sx + self.sw, self.sy + self.sh


# =============================================================================
# Drag interaction
# =============================================================================
class Handle(Enum):
    """Corner resize handles.  The value is (x sign, y sign) of growth."""
    NW = (-1, -1)
    NE = (1, -1)
    SW = (-1, 1)
    SE = (1, 1)

    @property
    def grows_right(self) -> bool:
        return self.value[0] > 0

    @property
    def grows_down(self) -> bool:
        return self.value[1] > 0

    def anchor(self, rect: Rect) -> Point:
        """Return the corner of *rect* opposite this handle."""
        ax = rect.x if self.grows_right else rect.right
        ay = rect.y if self.grows_down else rect.bottom
        return ax, ay

    def corner(self, rect: Rect) -> Point:
        """Return the corner of *rect* this handle sits on."""
        cx = rect.right if self.grows_right else rect.x
        cy = rect.bottom if self.grows_down else rect.y
        return cx, cy


class DragMode(Enum):
    MOVE = "move"
    RESIZE = "resize"


@dataclass(frozen=True)
class DragSession:
    """State captured on pointer-down, valid for one drag gesture."""
    mode: DragMode
    start_rect: Rect
    start_pos: Point
    handle: Handle | None = None
