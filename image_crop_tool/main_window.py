"""
Main application window.

Orchestrates image loading, target selection, the capture-date and
quality readouts, and export of the cropped, resampled result.
"""

from pathlib import Path

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QLabel,
    QFileDialog, QGroupBox, QMessageBox, QStatusBar, QToolBar, QComboBox,
    QProgressBar, QApplication,
)
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QPixmap, QImage, QAction, QKeySequence, QShortcut

from image_crop_tool.config import (
    DEFAULT_EXPORT_SUFFIX, IMAGE_EXTENSIONS, JPEG_QUALITY_DEFAULT,
    JPEG_SUBSAMPLING_DEFAULT, JPEG_SUBSAMPLING_MAP, ORIGINAL_TARGET_NAME,
    OUTPUT_FORMATS, OUTPUT_FORMAT_DEFAULT, PNG_COMPRESS_LEVEL,
)
from image_crop_tool.crop_widget import ImageCropWidget, ImageLoaderThread
from image_crop_tool.exif import format_exif_date, parse_exif_date
from image_crop_tool.image_io import (
    crop_and_resize, get_image_size, open_image, read_image_bytes, save_image,
    unique_path, validate_image_file,
)
from image_crop_tool.models import ORIGINAL
from image_crop_tool.quality import estimate_quality
from image_crop_tool.targets import aspect_label, load_targets, target_aspect


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("Image Crop & Resize")
        self.setMinimumSize(900, 500)

        # Screen-aware startup size, clamped to 80% of screen
        preferred_w, preferred_h = 1280, 800
        screen = QApplication.primaryScreen()
        if screen is not None:
            avail = screen.availableGeometry()
            preferred_w = min(preferred_w, int(avail.width() * 0.8))
            preferred_h = min(preferred_h, int(avail.height() * 0.8))
        self.resize(preferred_w, preferred_h)

        self._targets = load_targets()
        self._image_path: Path | None = None
        self._output_root: Path | None = None
        self._loader: ImageLoaderThread | None = None

        self._build_ui()
        self._update_button_states()

    # =========================================================================
    # UI construction
    # =========================================================================

    def _build_ui(self):
        self._build_toolbar()

        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QHBoxLayout(central)
        main_layout.setContentsMargins(4, 4, 4, 4)

        self._crop_widget = ImageCropWidget()
        self._crop_widget.crop_changed.connect(self._on_crop_changed)
        main_layout.addWidget(self._crop_widget, stretch=1)

        main_layout.addWidget(self._build_right_panel())

        self._status = QStatusBar()
        self.setStatusBar(self._status)
        self._status.showMessage("Open an image to begin.")

        QShortcut(QKeySequence(Qt.Key.Key_Tab), self, self._next_target)
        QShortcut(QKeySequence(Qt.KeyboardModifier.ShiftModifier | Qt.Key.Key_Tab), self, self._prev_target)

    def _build_toolbar(self):
        toolbar = QToolBar("Main")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        act_open = QAction("📂 Open Image", self)
        act_open.setShortcut(QKeySequence.StandardKey.Open)
        act_open.triggered.connect(self._select_image)
        toolbar.addAction(act_open)

        act_output = QAction("💾 Set Output Folder", self)
        act_output.triggered.connect(self._select_output_folder)
        toolbar.addAction(act_output)

        toolbar.addSeparator()

        self._act_export = QAction("✂ Export Crop", self)
        self._act_export.setShortcut(QKeySequence("Ctrl+E"))
        self._act_export.triggered.connect(self._export_current)
        toolbar.addAction(self._act_export)

    def _build_right_panel(self) -> QWidget:
        panel = QWidget()
        panel.setFixedWidth(260)
        layout = QVBoxLayout(panel)
        layout.setContentsMargins(0, 0, 0, 0)

        # --- Target ---
        target_group = QGroupBox("Target")
        tg_layout = QVBoxLayout(target_group)
        self._target_combo = QComboBox()
        self._target_combo.addItem(ORIGINAL_TARGET_NAME)
        for t in self._targets:
            self._target_combo.addItem(f"{t['name']} ({t['width']}x{t['height']})")
        self._target_combo.currentIndexChanged.connect(self._on_target_selected)
        tg_layout.addWidget(self._target_combo)
        self._target_info_label = QLabel()
        tg_layout.addWidget(self._target_info_label)
        layout.addWidget(target_group)

        # --- Crop / quality ---
        quality_group = QGroupBox("Crop")
        qg_layout = QVBoxLayout(quality_group)
        self._crop_info_label = QLabel("Crop: —")
        qg_layout.addWidget(self._crop_info_label)
        self._quality_label = QLabel("Quality: —")
        qg_layout.addWidget(self._quality_label)
        self._quality_bar = QProgressBar()
        self._quality_bar.setRange(0, 100)
        self._quality_bar.setTextVisible(False)
        self._quality_bar.setValue(0)
        qg_layout.addWidget(self._quality_bar)
        layout.addWidget(quality_group)

        # --- File info ---
        file_group = QGroupBox("File Info")
        fg_layout = QVBoxLayout(file_group)
        self._file_info_label = QLabel("No file")
        self._file_info_label.setWordWrap(True)
        fg_layout.addWidget(self._file_info_label)
        self._date_label = QLabel(f"Taken: {format_exif_date(None)}")
        fg_layout.addWidget(self._date_label)
        layout.addWidget(file_group)

        # --- Export ---
        export_group = QGroupBox("Export")
        eg_layout = QVBoxLayout(export_group)
        row = QHBoxLayout()
        row.addWidget(QLabel("Format:"))
        self._format_combo = QComboBox()
        self._format_combo.addItems(OUTPUT_FORMATS)
        self._format_combo.setCurrentText(OUTPUT_FORMAT_DEFAULT)
        row.addWidget(self._format_combo)
        eg_layout.addLayout(row)
        self._btn_export = QPushButton("Export Crop")
        self._btn_export.clicked.connect(self._export_current)
        eg_layout.addWidget(self._btn_export)
        self._output_label = QLabel("Output: next to source")
        self._output_label.setWordWrap(True)
        eg_layout.addWidget(self._output_label)
        layout.addWidget(export_group)

        layout.addStretch(1)
        self._on_target_selected(0)
        return panel

    # =========================================================================
    # Folder / file selection
    # =========================================================================

    def _select_image(self):
        start = str(self._image_path.parent if self._image_path else Path.home())
        patterns = " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
        path, _ = QFileDialog.getOpenFileName(self, "Open Image", start, f"Images ({patterns})")
        if path:
            self._load_image(Path(path))

    def _select_output_folder(self):
        start = str(self._output_root or (self._image_path.parent if self._image_path else Path.home()))
        folder = QFileDialog.getExistingDirectory(self, "Select Output Folder", start)
        if folder:
            self._output_root = Path(folder)
            self._output_label.setText(f"Output: {self._output_root}")

    # =========================================================================
    # Image loading
    # =========================================================================

    def _load_image(self, path: Path):
        try:
            fmt = validate_image_file(path)
            data = read_image_bytes(path)
            img_w, img_h = get_image_size(path)
        except (ValueError, OSError) as exc:
            QMessageBox.warning(self, "Cannot Open Image", str(exc))
            return

        self._image_path = path
        taken = parse_exif_date(data)
        self._date_label.setText(f"Taken: {format_exif_date(taken)}")
        self._file_info_label.setText(
            f"Name: {path.name}\n"
            f"Size: {len(data) / 1024 / 1024:.2f} MB\n"
            f"Type: {fmt}\n"
            f"Dimensions: {img_w}×{img_h}"
        )

        if self._loader is not None and self._loader.isRunning():
            self._loader.finished.disconnect()
            self._loader.error.disconnect()
        self._crop_widget.clear()
        self._crop_widget.set_loading(True)
        self._loader = ImageLoaderThread(path, self)
        self._loader.finished.connect(lambda qimg: self._on_image_loaded(qimg, img_w, img_h))
        self._loader.error.connect(self._on_image_load_error)
        self._loader.start()
        self._status.showMessage(f"Loading {path.name}…")

    def _on_image_loaded(self, qimg: QImage, img_w: int, img_h: int):
        self._crop_widget.set_image(QPixmap.fromImage(qimg), img_w, img_h)
        self._update_button_states()
        self._status.showMessage(f"Loaded {self._image_path.name}")

    def _on_image_load_error(self, error: str):
        self._crop_widget.set_loading(False)
        self._update_button_states()
        QMessageBox.critical(self, "Error", f"Failed to load image:\n{error}")

    # =========================================================================
    # Target selection
    # =========================================================================

    def _current_target(self) -> dict | None:
        idx = self._target_combo.currentIndex()
        if idx <= 0:
            return None
        return self._targets[idx - 1]

    def _on_target_selected(self, idx: int):
        target = self._current_target()
        if target is None:
            self._crop_widget.set_aspect(ORIGINAL)
            self._target_info_label.setText("Aspect: image\nOutput: native crop size")
        else:
            self._crop_widget.set_aspect(target_aspect(target))
            self._target_info_label.setText(
                f"Aspect: {aspect_label(target['width'], target['height'])}\n"
                f"Output: {target['width']}×{target['height']}"
            )
        self._update_crop_info()

    def _next_target(self):
        count = self._target_combo.count()
        self._target_combo.setCurrentIndex((self._target_combo.currentIndex() + 1) % count)

    def _prev_target(self):
        count = self._target_combo.count()
        self._target_combo.setCurrentIndex((self._target_combo.currentIndex() - 1) % count)

    # =========================================================================
    # Crop info / quality
    # =========================================================================

    def _on_crop_changed(self):
        self._update_crop_info()

    def _update_crop_info(self):
        window = self._crop_widget.source_window()
        if window is None:
            self._crop_info_label.setText("Crop: —")
            self._quality_label.setText("Quality: —")
            self._quality_bar.setValue(0)
            return

        self._crop_info_label.setText(
            f"Crop: {window.sw}×{window.sh}\n"
            f"Position: ({window.sx}, {window.sy})"
        )
        target = self._current_target()
        out_w, out_h = (target["width"], target["height"]) if target else (window.sw, window.sh)
        estimate = estimate_quality(window.sw, window.sh, out_w, out_h)
        self._quality_label.setText(f"Quality: {estimate.tier.label} (×{estimate.scale_factor:.2f})")
        self._quality_bar.setValue(estimate.tier.fill_percent)

    def _update_button_states(self):
        ready = self._crop_widget.has_image()
        self._act_export.setEnabled(ready)
        self._btn_export.setEnabled(ready)

    # =========================================================================
    # Export
    # =========================================================================

    def _export_current(self):
        window = self._crop_widget.source_window()
        if self._image_path is None or window is None:
            return

        target = self._current_target()
        output_size = (target["width"], target["height"]) if target else None
        fmt = self._format_combo.currentText()
        ext = ".jpg" if fmt == "JPEG" else ".png"
        suffix = target["id"] if target else DEFAULT_EXPORT_SUFFIX
        out_dir = self._output_root or self._image_path.parent
        out_path = unique_path(out_dir / f"{self._image_path.stem}-{suffix}{ext}")

        QApplication.setOverrideCursor(Qt.CursorShape.WaitCursor)
        try:
            img = open_image(self._image_path)
            result = crop_and_resize(img, window, output_size)
            save_image(
                result, out_path, fmt,
                compress_level=PNG_COMPRESS_LEVEL,
                jpeg_quality=JPEG_QUALITY_DEFAULT,
                jpeg_subsampling=JPEG_SUBSAMPLING_MAP[JPEG_SUBSAMPLING_DEFAULT],
            )
        except (ValueError, OSError) as exc:
            QMessageBox.critical(self, "Error", f"Failed to export {self._image_path.name}:\n{exc}")
            return
        finally:
            QApplication.restoreOverrideCursor()

        self._status.showMessage(f"Exported: {out_path}")
