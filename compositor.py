"""Render base bitmap + adjustments + text overlays onto a surface.

The same ``render`` serves the interactive preview and headless export.
The only difference between the two is the selection outline, which is
drawn on preview surfaces alone. With no selection the output pixels
are identical.
"""

from __future__ import annotations

import enum
from typing import Sequence

from PySide6.QtCore import QPointF, QRectF, QSize, Qt
from PySide6.QtGui import QColor, QImage, QPainter, QPen

from adjustments import AdjustmentSettings, apply_adjustments
from bitmap import Bitmap, pil_to_qimage
from overlays import TextOverlay
from text_metrics import (
  MeasureText, font_spec_for, overlay_anchor, overlay_box, qt_font, qt_measure_text,
)

SHADOW_COLOR = QColor(0, 0, 0)
SHADOW_OFFSET = QPointF(4.0, 4.0)
SELECTION_COLOR = QColor("#00ff00")
SELECTION_WIDTH = 2.0


class SurfaceKind(enum.Enum):
  PREVIEW = "preview"
  EXPORT = "export"


class Surface:
  """A render target. ``image`` is replaced at native size on every render."""

  def __init__(self, kind: SurfaceKind) -> None:
    self.kind = kind
    self.image: QImage | None = None

  @property
  def interactive(self) -> bool:
    return self.kind is SurfaceKind.PREVIEW

  def size(self) -> QSize:
    return QSize() if self.image is None else self.image.size()


def _paint_text(painter: QPainter, overlay: TextOverlay, bitmap_size: QSize,
                measure_text: MeasureText) -> None:
  spec = font_spec_for(overlay, bitmap_size)
  painter.setFont(qt_font(spec))
  anchor = overlay_anchor(overlay, bitmap_size)
  # Generous layout box centered on the anchor; AlignCenter does the rest
  width = measure_text(overlay.text, spec) + spec.pixel_size
  height = spec.pixel_size * 2.0
  flags = Qt.AlignmentFlag.AlignCenter | Qt.TextFlag.TextDontClip
  box = QRectF(anchor.x() - width / 2, anchor.y() - height / 2, width, height)

  painter.setPen(SHADOW_COLOR)
  painter.drawText(box.translated(SHADOW_OFFSET), flags, overlay.text)
  painter.setPen(QColor(overlay.color))
  painter.drawText(box, flags, overlay.text)


def _paint_selection(painter: QPainter, overlay: TextOverlay, bitmap_size: QSize,
                     measure_text: MeasureText) -> None:
  pen = QPen(SELECTION_COLOR, SELECTION_WIDTH, Qt.PenStyle.DashLine)
  painter.setPen(pen)
  painter.setBrush(Qt.BrushStyle.NoBrush)
  painter.drawRect(overlay_box(overlay, bitmap_size, measure_text))


def render(surface: Surface, bitmap: Bitmap, adjustments: AdjustmentSettings,
           overlays: Sequence[TextOverlay], selected_id: str | None = None,
           measure_text: MeasureText = qt_measure_text) -> None:
  """Composite one frame onto *surface* at the bitmap's native resolution.

  *bitmap* must already be decoded (``Bitmap.decode``) so that nothing
  here can fail half way through.
  """
  base = apply_adjustments(adjustments).paint(bitmap.image)
  image = pil_to_qimage(base)
  size = image.size()

  painter = QPainter(image)
  painter.setRenderHint(QPainter.RenderHint.Antialiasing)
  painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
  for overlay in overlays:
    _paint_text(painter, overlay, size, measure_text)

  if selected_id is not None and surface.interactive:
    for overlay in overlays:
      if overlay.id == selected_id:
        _paint_selection(painter, overlay, size, measure_text)
        break
  painter.end()

  surface.image = image
