"""Desktop editor window bound to an EditorSession."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Coroutine, TYPE_CHECKING

from PySide6.QtCore import Qt, QPointF, QRect, QRectF, Signal
from PySide6.QtGui import QColor, QCursor, QPainter
from PySide6.QtWidgets import (
  QWidget, QHBoxLayout, QVBoxLayout, QFormLayout, QPushButton, QLineEdit,
  QLabel, QSlider, QComboBox, QSpinBox, QListWidget, QListWidgetItem,
  QColorDialog,
)

from adjustments import ADJUSTMENT_RANGES
from errors import EditorError
from log import get_logger
from overlays import FONT_FAMILIES, DEFAULT_TEXT_COLOR
from platform_utils import save_export
from session import EditorSession

if TYPE_CHECKING:
  from PySide6.QtGui import QPaintEvent, QMouseEvent

log = get_logger("editor")

FONT_SIZE_RANGE = (10, 200)
ADJUSTMENT_LABELS = {
  "brightness": "Brightness",
  "contrast": "Contrast",
  "saturation": "Saturation",
  "grayscale": "Grayscale",
  "sepia": "Sepia",
  "blur": "Blur",
}


# -- Color button -------------------------------------------------------------

class ColorButton(QPushButton):
  """Color swatch button that opens a QColorDialog on click."""
  color_changed = Signal(str)

  def __init__(self, color: str = DEFAULT_TEXT_COLOR, parent: QWidget | None = None):
    super().__init__(parent)
    self._color = QColor(color)
    self.setFixedSize(28, 28)
    self.setToolTip("Text color")
    self._update_style()
    self.clicked.connect(self._pick_color)

  def color(self) -> str:
    return self._color.name()

  def set_color(self, color: str) -> None:
    self._color = QColor(color)
    self._update_style()

  def _update_style(self) -> None:
    self.setStyleSheet(
      "QPushButton { background-color: %s; border: 2px solid #555; border-radius: 4px; }"
      "QPushButton:hover { border-color: #aaa; }"
      % self._color.name()
    )

  def _pick_color(self) -> None:
    c = QColorDialog.getColor(self._color, self.parentWidget(), "Text Color")
    if c.isValid():
      self._color = c
      self._update_style()
      self.color_changed.emit(c.name())


# -- Preview canvas -----------------------------------------------------------

class PreviewCanvas(QWidget):
  """Shows the session's preview surface scaled to fit and forwards pointer
  events, together with the displayed image rect, to the session."""

  def __init__(self, session: EditorSession, parent: QWidget | None = None):
    super().__init__(parent)
    self._session = session
    self._image_rect = QRect()
    self.setMinimumSize(320, 180)
    self.setMouseTracking(False)
    self._session.rendered.connect(self._on_rendered)

  def image_rect(self) -> QRectF:
    return QRectF(self._image_rect)

  def _compute_layout(self) -> None:
    """Fit the preview inside the widget, keeping its aspect ratio."""
    size = self._session.preview.size()
    sw, sh = self.width(), self.height()
    if size.isEmpty():
      self._image_rect = QRect()
      return
    iw, ih = size.width(), size.height()
    scale = min(sw / iw, sh / ih)
    dw = int(iw * scale)
    dh = int(ih * scale)
    self._image_rect = QRect((sw - dw) // 2, (sh - dh) // 2, dw, dh)

  def _on_rendered(self) -> None:
    self._compute_layout()
    self.update()

  def resizeEvent(self, event) -> None:
    super().resizeEvent(event)
    self._compute_layout()

  def paintEvent(self, event: QPaintEvent) -> None:
    painter = QPainter(self)
    painter.fillRect(self.rect(), QColor(5, 5, 5))
    image = self._session.preview.image
    if image is None:
      painter.setPen(QColor(0, 100, 0))
      painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, "NO SIGNAL")
    else:
      painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
      painter.drawImage(self._image_rect, image)
    painter.end()

  def mousePressEvent(self, event: QMouseEvent) -> None:
    if event.button() != Qt.MouseButton.LeftButton or self._image_rect.isEmpty():
      return
    if self._session.pointer_down(QPointF(event.position()), self.image_rect()):
      self.setCursor(QCursor(Qt.CursorShape.ClosedHandCursor))

  def mouseMoveEvent(self, event: QMouseEvent) -> None:
    if self._image_rect.isEmpty():
      return
    self._session.pointer_move(QPointF(event.position()), self.image_rect())

  def mouseReleaseEvent(self, event: QMouseEvent) -> None:
    if event.button() != Qt.MouseButton.LeftButton:
      return
    self._session.pointer_up()
    self.unsetCursor()

  def leaveEvent(self, event) -> None:
    self._session.pointer_leave()
    self.unsetCursor()
    super().leaveEvent(event)


# -- Main window --------------------------------------------------------------

class EditorWindow(QWidget):
  """Fetch / adjust / annotate / export window.

  Long-running session calls are coroutines scheduled on *loop*; the Qt
  main thread pumps that loop, so everything stays on one thread.
  """

  def __init__(self, session: EditorSession, config: dict[str, Any],
               loop: asyncio.AbstractEventLoop,
               on_saved: Callable[[str], None] | None = None,
               parent: QWidget | None = None):
    super().__init__(parent)
    self._session = session
    self._config = config
    self._loop = loop
    self.on_saved = on_saved
    self._syncing = False
    self.setWindowTitle("Thumbforge")
    self.resize(1280, 760)

    # Top bar
    self._url_edit = QLineEdit()
    self._url_edit.setPlaceholderText("Paste YouTube URL...")
    self._fetch_btn = QPushButton("Fetch")
    self._export_btn = QPushButton("Export")
    top = QHBoxLayout()
    top.addWidget(self._url_edit, 1)
    top.addWidget(self._fetch_btn)
    top.addWidget(self._export_btn)

    # Left: AI edit
    self._prompt_edit = QLineEdit()
    self._prompt_edit.setPlaceholderText("Describe the edit...")
    self._ai_btn = QPushButton("Apply AI edit")
    self._error_label = QLabel()
    self._error_label.setWordWrap(True)
    self._error_label.setStyleSheet("QLabel { color: #e53935; }")
    left = QVBoxLayout()
    left.addWidget(QLabel("AI edit"))
    left.addWidget(self._prompt_edit)
    left.addWidget(self._ai_btn)
    left.addWidget(self._error_label)
    left.addStretch(1)

    # Center
    self._canvas = PreviewCanvas(session, self)

    # Right: adjustments + text
    right = QVBoxLayout()
    form = QFormLayout()
    self._sliders: dict[str, QSlider] = {}
    for name, (lo, hi, neutral) in ADJUSTMENT_RANGES.items():
      slider = QSlider(Qt.Orientation.Horizontal)
      slider.setRange(int(lo), int(hi))
      slider.setValue(int(neutral))
      slider.valueChanged.connect(
        lambda v, n=name: self._on_slider(n, v)
      )
      self._sliders[name] = slider
      form.addRow(ADJUSTMENT_LABELS[name], slider)
    right.addLayout(form)
    self._reset_btn = QPushButton("Reset")
    right.addWidget(self._reset_btn)

    self._text_edit = QLineEdit()
    self._text_edit.setPlaceholderText("Enter text...")
    self._add_btn = QPushButton("Add")
    add_row = QHBoxLayout()
    add_row.addWidget(self._text_edit, 1)
    add_row.addWidget(self._add_btn)
    right.addLayout(add_row)

    self._font_combo = QComboBox()
    self._font_combo.setEditable(True)
    self._font_combo.addItems(FONT_FAMILIES)
    self._size_spin = QSpinBox()
    self._size_spin.setRange(*FONT_SIZE_RANGE)
    self._color_btn = ColorButton()
    props = QFormLayout()
    props.addRow("Font", self._font_combo)
    props.addRow("Size", self._size_spin)
    props.addRow("Color", self._color_btn)
    self._props = QWidget()
    self._props.setLayout(props)
    right.addWidget(self._props)

    self._overlay_list = QListWidget()
    self._delete_btn = QPushButton("Delete text")
    right.addWidget(self._overlay_list, 1)
    right.addWidget(self._delete_btn)

    body = QHBoxLayout()
    left_panel = QWidget()
    left_panel.setLayout(left)
    left_panel.setFixedWidth(260)
    right_panel = QWidget()
    right_panel.setLayout(right)
    right_panel.setFixedWidth(300)
    body.addWidget(left_panel)
    body.addWidget(self._canvas, 1)
    body.addWidget(right_panel)

    root = QVBoxLayout(self)
    root.addLayout(top)
    root.addLayout(body, 1)

    # Wiring
    self._fetch_btn.clicked.connect(self._fetch)
    self._url_edit.returnPressed.connect(self._fetch)
    self._export_btn.clicked.connect(self._export)
    self._ai_btn.clicked.connect(self._ai_edit)
    self._reset_btn.clicked.connect(self._session.reset)
    self._add_btn.clicked.connect(self._add_text)
    self._text_edit.returnPressed.connect(self._add_text)
    # Commit the family on pick or Enter, not on every keystroke
    self._font_combo.textActivated.connect(self._commit_font_family)
    self._font_combo.lineEdit().editingFinished.connect(
      lambda: self._commit_font_family(self._font_combo.currentText())
    )
    self._size_spin.valueChanged.connect(
      lambda size: self._update_selected("font_size", size)
    )
    self._color_btn.color_changed.connect(
      lambda color: self._update_selected("color", color)
    )
    self._overlay_list.currentItemChanged.connect(self._on_list_selection)
    self._delete_btn.clicked.connect(self._delete_selected)
    self._session.rendered.connect(self._sync_from_session)
    self._session.busy_changed.connect(lambda _busy: self._sync_controls())

    self._sync_from_session()

  # -- Async plumbing ---------------------------------------------------------

  def _run(self, coro: Coroutine, on_success: Callable[[Any], None] | None = None) -> asyncio.Future:
    """Schedule *coro* on the session loop and report failures in the UI."""
    self._error_label.clear()
    future = asyncio.ensure_future(coro, loop=self._loop)

    def _done(fut: asyncio.Future) -> None:
      if fut.cancelled():
        return
      exc = fut.exception()
      if isinstance(exc, EditorError):
        log.error("Operation failed: %s", exc)
        self._error_label.setText(str(exc))
      elif exc is not None:
        log.error("Unexpected error: %r", exc)
        self._error_label.setText("Operation failed, see log for details")
      elif on_success:
        on_success(fut.result())

    future.add_done_callback(_done)
    return future

  def _fetch(self) -> asyncio.Future:
    return self._run(self._session.fetch(self._url_edit.text()))

  def _export(self) -> asyncio.Future:
    fmt = self._config.get("format", "jpg")
    return self._run(
      self._session.export(fmt, self._config.get("jpeg_quality", 90)),
      lambda data: self._save(data, fmt),
    )

  def _save(self, data: bytes, fmt: str) -> None:
    path = save_export(
      data, self._config["save_folder"], fmt,
      self._config.get("filename_prefix", "thumbnail"),
      self._config.get("filename_suffix", "%Y-%m-%d_%H-%M-%S"),
    )
    if path is None:
      self._error_label.setText("Export failed: could not save to disk")
      return
    log.info("Exported: %s", path)
    if self.on_saved:
      self.on_saved(path)

  def _ai_edit(self) -> asyncio.Future:
    return self._run(
      self._session.ai_edit(self._prompt_edit.text()),
      lambda _result: self._prompt_edit.clear(),
    )

  # -- Session bindings -------------------------------------------------------

  def _on_slider(self, name: str, value: int) -> None:
    if not self._syncing:
      self._session.set_adjustment(name, value)

  def _add_text(self) -> None:
    if self._session.add_text(self._text_edit.text()) is not None:
      self._text_edit.clear()

  def _update_selected(self, field: str, value) -> None:
    if self._syncing:
      return
    try:
      self._session.update_selected(field, value)
    except EditorError as e:
      self._error_label.setText(str(e))

  def _commit_font_family(self, family: str) -> None:
    if family.strip():
      self._update_selected("font_family", family)

  def _on_list_selection(self, current: QListWidgetItem | None, _previous) -> None:
    if self._syncing or current is None:
      return
    self._session.select(current.data(Qt.ItemDataRole.UserRole))

  def _delete_selected(self) -> None:
    if self._session.selected_id is not None:
      self._session.remove_overlay(self._session.selected_id)

  def _sync_from_session(self) -> None:
    """Mirror session state into the widgets without feeding it back."""
    self._syncing = True
    try:
      for name, slider in self._sliders.items():
        slider.setValue(int(round(getattr(self._session.adjustments, name))))

      self._overlay_list.clear()
      for overlay in self._session.overlay_list():
        item = QListWidgetItem(overlay.text)
        item.setData(Qt.ItemDataRole.UserRole, overlay.id)
        self._overlay_list.addItem(item)
        if overlay.id == self._session.selected_id:
          self._overlay_list.setCurrentItem(item)

      selected = self._session.overlays.selected()
      self._props.setVisible(selected is not None)
      if selected is not None:
        self._font_combo.setCurrentText(selected.font_family)
        self._size_spin.setValue(int(round(selected.font_size)))
        self._color_btn.set_color(selected.color)
    finally:
      self._syncing = False
    self._sync_controls()

  def _sync_controls(self) -> None:
    busy = self._session.busy
    ready = self._session.has_bitmap and not busy
    self._fetch_btn.setEnabled(not busy)
    for widget in self._edit_widgets():
      widget.setEnabled(ready)
    self._delete_btn.setEnabled(ready and self._session.selected_id is not None)

  def _edit_widgets(self) -> list[QWidget]:
    """Controls that need a loaded bitmap and an idle session."""
    return [
      self._export_btn, self._ai_btn, self._prompt_edit, self._reset_btn,
      self._text_edit, self._add_btn, self._props, self._overlay_list,
      *self._sliders.values(),
    ]
