"""
Interactive crop-overlay widget and Qt image helpers.

This module contains everything that touches both Qt **and** image display:
``pil_to_qimage``, the background ``ImageLoaderThread``, and the
``ImageCropWidget`` editor.  All crop geometry is delegated to
``geometry.GeometryEngine``; the widget only translates events and paints.
"""

from pathlib import Path

from PIL import Image
from PyQt6.QtWidgets import QWidget, QSizePolicy
from PyQt6.QtCore import Qt, QRectF, QPointF, pyqtSignal, QThread
from PyQt6.QtGui import (
    QPainter, QPixmap, QColor, QPen, QBrush, QImage,
    QKeyEvent, QMouseEvent, QPaintEvent, QResizeEvent,
)

from image_crop_tool.config import HANDLE_SIZE, NUDGE_SMALL, NUDGE_LARGE
from image_crop_tool.geometry import GeometryEngine, fit_image_box, hit_test_handles
from image_crop_tool.image_io import open_image
from image_crop_tool.models import ORIGINAL, AspectConstraint, Bounds, DragMode, Handle, Rect, SourceCropWindow


# =============================================================================
# Qt ↔ PIL helpers
# =============================================================================

def pil_to_qimage(pil_img: Image.Image) -> QImage:
    """Convert a PIL Image to a QImage that owns its pixel data."""
    img_rgba = pil_img.convert("RGBA")
    data = img_rgba.tobytes("raw", "RGBA")
    qimg = QImage(data, img_rgba.width, img_rgba.height, QImage.Format.Format_RGBA8888)
    return qimg.copy()


def _qrect(rect: Rect | Bounds) -> QRectF:
    if isinstance(rect, Bounds):
        return QRectF(rect.left, rect.top, rect.width, rect.height)
    return QRectF(rect.x, rect.y, rect.width, rect.height)


# =============================================================================
# Background image loader
# =============================================================================

class ImageLoaderThread(QThread):
    """Background thread for decoding an image with its orientation applied."""
    finished = pyqtSignal(QImage)
    error = pyqtSignal(str)

    def __init__(self, path: Path, parent=None):
        super().__init__(parent)
        self._path = path

    def run(self):
        try:
            self.finished.emit(pil_to_qimage(open_image(self._path)))
        except Exception as e:
            self.error.emit(str(e))


# =============================================================================
# Image Crop Widget — interactive crop overlay on image
# =============================================================================

class ImageCropWidget(QWidget):
    """Widget that displays an image with an interactive, resizable crop overlay."""

    crop_changed = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setMinimumSize(400, 300)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setMouseTracking(True)

        self._pixmap: QPixmap | None = None
        self._img_w = 0
        self._img_h = 0
        self._aspect: AspectConstraint = ORIGINAL
        self._image_box = Bounds()
        self._engine = GeometryEngine()
        self._session = None
        self._loading = False

    def set_loading(self, loading: bool):
        """Show/hide loading indicator."""
        self._loading = loading
        self.update()

    def set_image(self, pixmap: QPixmap, img_w: int, img_h: int):
        """Set the image to display and start a fresh crop."""
        self._loading = False
        self._pixmap = pixmap
        self._img_w = img_w
        self._img_h = img_h
        self._session = None
        self._image_box = fit_image_box(self.width(), self.height(), img_w, img_h)
        self._engine.initialize(self._image_box, self._aspect)
        self.crop_changed.emit()
        self.update()

    def set_aspect(self, aspect: AspectConstraint):
        """Change the aspect constraint and re-fit the crop around its center."""
        self._aspect = aspect
        self._engine.set_aspect(aspect)
        self.crop_changed.emit()
        self.update()

    def crop_rect(self) -> Rect | None:
        """Current crop in widget coordinates."""
        return self._engine.rect

    def source_window(self) -> SourceCropWindow | None:
        """Current crop in source-image pixels."""
        if not self._pixmap:
            return None
        return self._engine.source_window(self._image_box, self._img_w, self._img_h)

    def has_image(self) -> bool:
        """Return True if an image is loaded and ready for crop operations."""
        return self._pixmap is not None

    def clear(self):
        self._pixmap = None
        self._img_w = 0
        self._img_h = 0
        self._image_box = Bounds()
        self._engine = GeometryEngine()
        self._session = None
        self.update()

    # --- Coordinate mapping ---

    def _update_image_box(self):
        """Recompute the letterboxed image box and carry the crop along."""
        if not self._pixmap or self._img_w == 0 or self._img_h == 0:
            return
        box = fit_image_box(self.width(), self.height(), self._img_w, self._img_h)
        if box.is_empty():
            return
        self._image_box = box
        self._session = None
        self._engine.rescale(box)
        self.crop_changed.emit()

    def _hit_test(self, pos: tuple[float, float]) -> Handle | None:
        rect = self._engine.rect
        if rect is None:
            return None
        return hit_test_handles(rect, pos, HANDLE_SIZE)

    def _handle_rects(self, rect: Rect) -> list[QRectF]:
        """Return screen-coordinate rectangles for the 4 corner handles."""
        hs = HANDLE_SIZE
        rects = []
        for handle in Handle:
            cx, cy = handle.corner(rect)
            rects.append(QRectF(cx - hs, cy - hs, hs * 2, hs * 2))
        return rects

    # --- Painting ---

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(30, 30, 30))

        rect = self._engine.rect
        if not self._pixmap or rect is None:
            painter.setPen(QColor(128, 128, 128))
            msg = "Loading image…" if self._loading else "No image loaded"
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, msg)
            painter.end()
            return

        # Draw image
        dest = _qrect(self._image_box)
        painter.drawPixmap(dest.toRect(), self._pixmap)

        # Dim area outside crop
        crop_rect = _qrect(rect)
        dim = QColor(0, 0, 0, 140)

        # Top strip
        painter.fillRect(QRectF(dest.left(), dest.top(), dest.width(), crop_rect.top() - dest.top()), dim)
        # Bottom strip
        painter.fillRect(QRectF(dest.left(), crop_rect.bottom(), dest.width(), dest.bottom() - crop_rect.bottom()), dim)
        # Left strip
        painter.fillRect(QRectF(dest.left(), crop_rect.top(), crop_rect.left() - dest.left(), crop_rect.height()), dim)
        # Right strip
        painter.fillRect(QRectF(crop_rect.right(), crop_rect.top(), dest.right() - crop_rect.right(), crop_rect.height()), dim)

        # Draw crop border
        painter.setPen(QPen(QColor(0, 163, 255), 2))
        painter.drawRect(crop_rect)

        # Draw rule-of-thirds lines
        pen_thirds = QPen(QColor(255, 255, 255, 80), 1, Qt.PenStyle.DashLine)
        painter.setPen(pen_thirds)
        for i in range(1, 3):
            x = crop_rect.left() + crop_rect.width() * i / 3
            painter.drawLine(QPointF(x, crop_rect.top()), QPointF(x, crop_rect.bottom()))
            y = crop_rect.top() + crop_rect.height() * i / 3
            painter.drawLine(QPointF(crop_rect.left(), y), QPointF(crop_rect.right(), y))

        # Draw corner handles
        painter.setPen(QPen(QColor(0, 0, 0), 1))
        painter.setBrush(QBrush(QColor(0, 163, 255)))
        for handle_rect in self._handle_rects(rect):
            painter.drawRect(handle_rect)

        # Draw source-pixel size label
        window = self.source_window()
        if window is not None:
            painter.setPen(QColor(255, 255, 255))
            painter.drawText(
                crop_rect.adjusted(0, -20, 0, 0).toRect(),
                Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignBottom,
                f"{window.sw} × {window.sh}",
            )

        painter.end()

    def resizeEvent(self, event: QResizeEvent):
        self._update_image_box()
        super().resizeEvent(event)

    # --- Mouse interaction ---

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton or not self._pixmap:
            return
        pos = event.position()
        self._session = self._engine.begin_drag((pos.x(), pos.y()), self._hit_test)

    def mouseMoveEvent(self, event: QMouseEvent):
        if not self._pixmap:
            return

        pos = event.position()
        point = (pos.x(), pos.y())

        if self._session is None:
            self._update_cursor(point)
            return

        self._engine.update_drag(self._session, point)
        self.crop_changed.emit()
        self.update()

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            self._engine.end_drag(self._session)
            self._session = None

    def _update_cursor(self, point: tuple[float, float]):
        handle = self._hit_test(point)
        rect = self._engine.rect
        if handle in (Handle.NW, Handle.SE):
            self.setCursor(Qt.CursorShape.SizeFDiagCursor)
        elif handle in (Handle.NE, Handle.SW):
            self.setCursor(Qt.CursorShape.SizeBDiagCursor)
        elif rect is not None and rect.contains(point):
            self.setCursor(Qt.CursorShape.SizeAllCursor)
        else:
            self.setCursor(Qt.CursorShape.ArrowCursor)

    # --- Keyboard nudge ---

    def keyPressEvent(self, event: QKeyEvent):
        rect = self._engine.rect
        if not self._pixmap or rect is None or self._session is not None:
            return
        amount = NUDGE_LARGE if event.modifiers() & Qt.KeyboardModifier.ShiftModifier else NUDGE_SMALL
        offsets = {
            Qt.Key.Key_Left: (-amount, 0),
            Qt.Key.Key_Right: (amount, 0),
            Qt.Key.Key_Up: (0, -amount),
            Qt.Key.Key_Down: (0, amount),
        }
        offset = offsets.get(event.key())
        if offset is None:
            super().keyPressEvent(event)
            return

        # A nudge is a one-step move gesture from the crop's center
        cx, cy = rect.center
        session = self._engine.begin_drag((cx, cy))
        if session is not None and session.mode is DragMode.MOVE:
            self._engine.update_drag(session, (cx + offset[0], cy + offset[1]))
        self._engine.end_drag(session)
        self.crop_changed.emit()
        self.update()
