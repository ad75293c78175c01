"""Conversions between display, bitmap-pixel and percentage coordinates."""

from __future__ import annotations

from PySide6.QtCore import QPointF, QRectF, QSize


def display_to_bitmap(display_pos: QPointF, display_rect: QRectF,
                      bitmap_size: QSize) -> QPointF:
  """Map a pointer position on the displayed image to bitmap pixels.

  *display_rect* is where the bitmap is drawn on screen. Its size can
  differ from the bitmap's native resolution (scaled to fit), so both axes
  are rescaled by bitmap / display.
  """
  if display_rect.width() <= 0 or display_rect.height() <= 0:
    return QPointF(0.0, 0.0)
  scale_x = bitmap_size.width() / display_rect.width()
  scale_y = bitmap_size.height() / display_rect.height()
  return QPointF(
    (display_pos.x() - display_rect.x()) * scale_x,
    (display_pos.y() - display_rect.y()) * scale_y,
  )


def percent_to_pixel(percent: QPointF, bitmap_size: QSize) -> QPointF:
  return QPointF(
    percent.x() / 100.0 * bitmap_size.width(),
    percent.y() / 100.0 * bitmap_size.height(),
  )


def pixel_to_percent(pixel: QPointF, bitmap_size: QSize) -> QPointF:
  """Inverse of ``percent_to_pixel``. Zero-sized bitmaps map to the origin."""
  w, h = bitmap_size.width(), bitmap_size.height()
  if w <= 0 or h <= 0:
    return QPointF(0.0, 0.0)
  return QPointF(pixel.x() / w * 100.0, pixel.y() / h * 100.0)
