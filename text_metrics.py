"""Overlay text geometry shared by hit-testing and compositing.

Text measurement is a narrow capability, ``measure_text(text, font_spec)``
returning the advance width in pixels. ``qt_measure_text`` is the
QFontMetricsF backed implementation used by the compositor. Tests and
other backends can pass any callable with the same shape.
"""

from __future__ import annotations

import dataclasses
from typing import Callable

from PySide6.QtCore import QPointF, QRectF, QSize
from PySide6.QtGui import QFont, QFontMetricsF

from coords import percent_to_pixel
from overlays import TextOverlay

# Overlay font sizes are expressed for a bitmap this many pixels wide.
REFERENCE_WIDTH = 1000.0


@dataclasses.dataclass(frozen=True)
class FontSpec:
  family: str
  pixel_size: int
  bold: bool = True


MeasureText = Callable[[str, FontSpec], float]


def effective_font_px(font_size: float, bitmap_width: int) -> int:
  """Scale a logical font size to whole pixels for a bitmap of this width."""
  return max(1, round(font_size * bitmap_width / REFERENCE_WIDTH))


def font_spec_for(overlay: TextOverlay, bitmap_size: QSize) -> FontSpec:
  return FontSpec(overlay.font_family, effective_font_px(overlay.font_size, bitmap_size.width()))


def qt_font(spec: FontSpec) -> QFont:
  font = QFont(spec.family)
  font.setStyleHint(QFont.StyleHint.Monospace)
  font.setPixelSize(spec.pixel_size)
  font.setBold(spec.bold)
  return font


def qt_measure_text(text: str, spec: FontSpec) -> float:
  return QFontMetricsF(qt_font(spec)).horizontalAdvance(text)


def overlay_anchor(overlay: TextOverlay, bitmap_size: QSize) -> QPointF:
  """Pixel position of the overlay's center."""
  return percent_to_pixel(QPointF(overlay.x, overlay.y), bitmap_size)


def overlay_box(overlay: TextOverlay, bitmap_size: QSize,
                measure_text: MeasureText) -> QRectF:
  """Bounding box of the rendered text, centered on the anchor.

  Height is the effective font size rather than real ascent + descent.
  """
  spec = font_spec_for(overlay, bitmap_size)
  width = measure_text(overlay.text, spec)
  height = float(spec.pixel_size)
  anchor = overlay_anchor(overlay, bitmap_size)
  return QRectF(anchor.x() - width / 2, anchor.y() - height / 2, width, height)
