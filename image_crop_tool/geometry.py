"""
Crop-rectangle geometry: aspect fitting, drag handling and source mapping.

The module-level functions are pure coordinate transforms over the
``models`` value types.  ``GeometryEngine`` wraps them with the session
state an editor needs (current rectangle, bounds, aspect constraint and
the single active drag) and applies each operation atomically: a
transform that cannot produce a valid rectangle leaves the state as it
was.

Constraint precedence, strongest first: containment in bounds, the
aspect ratio, then ``MIN_SIZE``.  When the bounds (at the active ratio)
are too small to hold a ``MIN_SIZE`` rectangle, the constrained axis
follows the bounds exactly and the rectangle ends up below ``MIN_SIZE``.
This module is Qt-free.
"""

import logging
import math
from collections.abc import Callable

from image_crop_tool.config import GEOMETRY_EPSILON, HANDLE_SIZE, INITIAL_COVERAGE, MIN_SIZE
from image_crop_tool.models import (
    ORIGINAL, AspectConstraint, Bounds, DragMode, DragSession, Handle, Point, Rect,
    SourceCropWindow,
)

logger = logging.getLogger(__name__)

HitTest = Callable[[Point], object]


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(value, hi))


# =============================================================================
# Aspect-ratio helpers
# =============================================================================
def is_valid_aspect(aspect: object) -> bool:
    """True for ORIGINAL or a finite positive ratio."""
    if aspect == ORIGINAL:
        return True
    try:
        value = float(aspect)
    except (TypeError, ValueError):
        return False
    return math.isfinite(value) and value > 0


def resolve_ratio(aspect: AspectConstraint, bounds: Bounds) -> float:
    """Return the width/height ratio *aspect* stands for within *bounds*."""
    if aspect == ORIGINAL:
        return bounds.width / bounds.height
    return float(aspect)


def _min_size_for(ratio: float) -> tuple[float, float]:
    """Smallest size with the given ratio whose short side is MIN_SIZE."""
    if ratio >= 1:
        return MIN_SIZE * ratio, float(MIN_SIZE)
    return float(MIN_SIZE), MIN_SIZE / ratio


# =============================================================================
# Fitting
# =============================================================================
def initial_rect(bounds: Bounds, aspect: AspectConstraint) -> Rect:
    """Centered rectangle sized from INITIAL_COVERAGE of the shorter bounds side.

    A square of that side is placed on the bounds' center and then fitted
    to *aspect*, so the longer axis of the result keeps the full coverage.
    """
    side = INITIAL_COVERAGE * min(bounds.width, bounds.height)
    cx = bounds.left + bounds.width / 2
    cy = bounds.top + bounds.height / 2
    square = Rect(cx - side / 2, cy - side / 2, side, side)
    return apply_aspect(square, bounds, aspect)


def apply_aspect(rect: Rect, bounds: Bounds, aspect: AspectConstraint) -> Rect:
    """
    Re-fit *rect* to *aspect* around its center and keep it inside *bounds*.

    The rectangle is shrunk along its over-long axis to match the ratio,
    grown to MIN_SIZE if needed, scaled down proportionally only when it
    cannot fit, and finally translated (never resized) into bounds.  Applying
    the same aspect twice gives the same rectangle.
    """
    ratio = resolve_ratio(aspect, bounds)
    w, h = rect.width, rect.height

    if w <= 0 or h <= 0:
        w, h = _min_size_for(ratio)
    elif not math.isclose(w / h, ratio, rel_tol=GEOMETRY_EPSILON):
        if w / h > ratio:
            w = h * ratio
        else:
            h = w / ratio

    if w < MIN_SIZE or h < MIN_SIZE:
        w, h = _min_size_for(ratio)

    if w > bounds.width or h > bounds.height:
        scale = min(bounds.width / w, bounds.height / h)
        w = min(w * scale, bounds.width)
        h = min(h * scale, bounds.height)

    if w == rect.width and h == rect.height:
        x, y = rect.x, rect.y
    else:
        cx, cy = rect.center
        x, y = cx - w / 2, cy - h / 2

    x = _clamp(x, bounds.left, bounds.right - w)
    y = _clamp(y, bounds.top, bounds.bottom - h)
    return Rect(x, y, w, h)


def rescale_rect(rect: Rect, old: Bounds, new: Bounds) -> Rect:
    """Map *rect* from *old* bounds to *new* bounds, keeping its relative placement."""
    sx = new.width / old.width
    sy = new.height / old.height
    return Rect(
        new.left + (rect.x - old.left) * sx,
        new.top + (rect.y - old.top) * sy,
        rect.width * sx,
        rect.height * sy,
    )


def fit_image_box(container_w: float, container_h: float, image_w: float, image_h: float) -> Bounds:
    """Return the letterboxed, centered box an image occupies in its container."""
    if container_w <= 0 or container_h <= 0 or image_w <= 0 or image_h <= 0:
        return Bounds()
    scale = min(container_w / image_w, container_h / image_h)
    disp_w = image_w * scale
    disp_h = image_h * scale
    return Bounds((container_w - disp_w) / 2, (container_h - disp_h) / 2, disp_w, disp_h)


# =============================================================================
# Dragging
# =============================================================================
def hit_test_handles(rect: Rect, pos: Point, handle_size: float = HANDLE_SIZE) -> Handle | None:
    """Return the corner handle whose hit box contains *pos*, if any."""
    px, py = pos
    for handle in Handle:
        cx, cy = handle.corner(rect)
        if abs(px - cx) <= handle_size and abs(py - cy) <= handle_size:
            return handle
    return None


def begin_drag(rect: Rect, pos: Point, hit_test: HitTest | None = None) -> DragSession | None:
    """
    Start a drag gesture at *pos*.

    *hit_test* maps a point to a ``Handle`` (resize) or anything else; when no
    handle is hit a point inside *rect* starts a move.  Returns None when the
    pointer is neither on a handle nor on the rectangle.
    """
    target = hit_test(pos) if hit_test is not None else None
    if isinstance(target, Handle):
        return DragSession(DragMode.RESIZE, rect.copy(), pos, target)
    if rect.contains(pos):
        return DragSession(DragMode.MOVE, rect.copy(), pos)
    return None


def update_drag(
    session: DragSession,
    pos: Point,
    bounds: Bounds,
    aspect: AspectConstraint,
) -> Rect | None:
    """Rectangle for *session* with the pointer at *pos*, or None to keep the previous one."""
    dx = pos[0] - session.start_pos[0]
    dy = pos[1] - session.start_pos[1]
    start = session.start_rect

    if session.mode is DragMode.MOVE:
        x = _clamp(start.x + dx, bounds.left, bounds.right - start.width)
        y = _clamp(start.y + dy, bounds.top, bounds.bottom - start.height)
        return Rect(x, y, start.width, start.height)

    return _resize_from_handle(start, session.handle, dx, dy, bounds, aspect)


def _resize_from_handle(
    start: Rect,
    handle: Handle,
    dx: float,
    dy: float,
    bounds: Bounds,
    aspect: AspectConstraint,
) -> Rect | None:
    """Resize *start* from a corner handle, keeping the opposite corner fixed."""
    ratio = resolve_ratio(aspect, bounds)
    sign_x, sign_y = handle.value

    want_w = max(start.width + sign_x * dx, MIN_SIZE)
    want_h = max(start.height + sign_y * dy, MIN_SIZE)

    # Project onto the ratio from the limiting dimension
    if want_w / want_h > ratio:
        w, h = want_h * ratio, want_h
    else:
        w, h = want_w, want_w / ratio

    anchor_x, anchor_y = handle.anchor(start)
    max_w = bounds.right - anchor_x if handle.grows_right else anchor_x - bounds.left
    max_h = bounds.bottom - anchor_y if handle.grows_down else anchor_y - bounds.top

    # Width-first, then height-first if the height would overflow
    proj_h = h
    w = min(w, max_w)
    h = w / ratio
    if h > max_h:
        h = min(proj_h, max_h)
        w = h * ratio

    if w < MIN_SIZE - GEOMETRY_EPSILON or h < MIN_SIZE - GEOMETRY_EPSILON:
        logger.debug("Resize from %s aborted: %.2f x %.2f below minimum", handle.name, w, h)
        return None

    x = anchor_x if handle.grows_right else anchor_x - w
    y = anchor_y if handle.grows_down else anchor_y - h
    return Rect(x, y, w, h)


# =============================================================================
# Source mapping
# =============================================================================
def map_to_source(
    rect: Rect,
    image_box: Bounds,
    source_width: int,
    source_height: int,
    display_width: float,
    display_height: float,
) -> SourceCropWindow:
    """
    Convert a display rectangle to a crop window in source-image pixels.

    The offset is floored and the size rounded (halves up) per axis, then both are
    clamped so the window never reaches outside the source image.
    """
    scale_x = source_width / display_width
    scale_y = source_height / display_height

    sx = math.floor((rect.x - image_box.left) * scale_x)
    sy = math.floor((rect.y - image_box.top) * scale_y)
    sx = min(max(0, sx), source_width - 1)
    sy = min(max(0, sy), source_height - 1)

    sw = math.floor(rect.width * scale_x + 0.5)
    sh = math.floor(rect.height * scale_y + 0.5)
    sw = max(1, min(sw, source_width - sx))
    sh = max(1, min(sh, source_height - sy))

    return SourceCropWindow(sx, sy, sw, sh)


# =============================================================================
# Stateful engine
# =============================================================================
class GeometryEngine:
    """Owns the crop rectangle for one editing session."""

    def __init__(self):
        self._rect: Rect | None = None
        self._bounds: Bounds | None = None
        self._aspect: AspectConstraint = ORIGINAL
        self._session: DragSession | None = None

    @property
    def rect(self) -> Rect | None:
        return self._rect.copy() if self._rect is not None else None

    @property
    def bounds(self) -> Bounds | None:
        return self._bounds

    @property
    def aspect(self) -> AspectConstraint:
        return self._aspect

    @property
    def active_session(self) -> DragSession | None:
        return self._session

    def initialize(self, bounds: Bounds, aspect: AspectConstraint) -> Rect | None:
        """Reset to a centered rectangle for new bounds (e.g. a new image)."""
        if bounds.is_empty() or not is_valid_aspect(aspect):
            logger.debug("Ignoring initialize with bounds %s, aspect %r", bounds, aspect)
            return self.rect
        self._bounds = bounds
        self._aspect = aspect
        self._session = None
        self._rect = initial_rect(bounds, aspect)
        return self.rect

    def set_aspect(self, aspect: AspectConstraint) -> Rect | None:
        if not is_valid_aspect(aspect):
            logger.debug("Ignoring invalid aspect %r", aspect)
            return self.rect
        self._aspect = aspect
        # Drag snapshots were taken under the previous ratio
        self._session = None
        if self._rect is not None and self._bounds is not None:
            self._rect = apply_aspect(self._rect, self._bounds, aspect)
        return self.rect

    def set_bounds(self, bounds: Bounds) -> Rect | None:
        if bounds.is_empty():
            logger.debug("Ignoring empty bounds %s", bounds)
            return self.rect
        self._bounds = bounds
        self._session = None
        if self._rect is None:
            self._rect = initial_rect(bounds, self._aspect)
        else:
            self._rect = apply_aspect(self._rect, bounds, self._aspect)
        return self.rect

    def rescale(self, bounds: Bounds) -> Rect | None:
        """Follow a resized display: scale the rectangle with the bounds, then re-fit."""
        if self._rect is None or self._bounds is None or bounds.is_empty():
            return self.set_bounds(bounds)
        # Drag snapshots are in the old display space
        self._session = None
        self._rect = rescale_rect(self._rect, self._bounds, bounds)
        self._bounds = bounds
        self._rect = apply_aspect(self._rect, bounds, self._aspect)
        return self.rect

    def begin_drag(self, pos: Point, hit_test: HitTest | None = None) -> DragSession | None:
        if self._rect is None:
            return None
        session = begin_drag(self._rect, pos, hit_test)
        if session is not None:
            self._session = session
        return session

    def update_drag(self, session: DragSession | None, pos: Point) -> Rect | None:
        """Apply the pointer position to the active drag; stale sessions are ignored."""
        if session is None or session is not self._session or self._bounds is None:
            return self.rect
        updated = update_drag(session, pos, self._bounds, self._aspect)
        if updated is not None:
            self._rect = updated
        return self.rect

    def end_drag(self, session: DragSession | None = None) -> None:
        """Finish the active drag.  Safe to call repeatedly."""
        if session is None or session is self._session:
            self._session = None

    def source_window(self, image_box: Bounds, source_width: int, source_height: int) -> SourceCropWindow | None:
        """Map the current rectangle to source pixels for an image shown in *image_box*."""
        if self._rect is None or image_box.is_empty():
            return None
        return map_to_source(
            self._rect, image_box, source_width, source_height,
            image_box.width, image_box.height,
        )
