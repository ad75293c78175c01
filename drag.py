"""Pointer-driven select-and-drag state machine for text overlays."""

from __future__ import annotations

import dataclasses
import enum

from PySide6.QtCore import QPointF, QSize

from coords import pixel_to_percent
from hit_test import hit_test
from log import get_logger
from overlays import OverlayModel
from text_metrics import MeasureText, overlay_anchor

log = get_logger("drag")


class DragState(enum.Enum):
  IDLE = "idle"
  SELECTED = "selected"
  DRAGGING = "dragging"


@dataclasses.dataclass(frozen=True)
class DragGrab:
  """Transient grab: which overlay, and where on it the pointer caught it."""
  overlay_id: str
  offset: QPointF  # pointer - anchor, bitmap pixels


class DragController:
  """Turns pointer down/move/up sequences into overlay position updates.

  All points are in bitmap-pixel space; mapping from display coordinates
  happens before they reach the controller.
  """

  def __init__(self, model: OverlayModel, measure_text: MeasureText) -> None:
    self._model = model
    self._measure_text = measure_text
    self._grab: DragGrab | None = None

  @property
  def state(self) -> DragState:
    if self._grab is not None:
      return DragState.DRAGGING
    if self._model.selected_id is not None:
      return DragState.SELECTED
    return DragState.IDLE

  @property
  def grab(self) -> DragGrab | None:
    return self._grab

  def pointer_down(self, point: QPointF, bitmap_size: QSize) -> str | None:
    """Select and start dragging the overlay under *point*, if any."""
    hit_id = hit_test(point, self._model.list(), bitmap_size, self._measure_text)
    if hit_id is None:
      self._grab = None
      self._model.select(None)
      return None
    anchor = overlay_anchor(self._model.get(hit_id), bitmap_size)
    self._model.select(hit_id)
    self._grab = DragGrab(hit_id, QPointF(point.x() - anchor.x(), point.y() - anchor.y()))
    log.debug("Drag start on %s", hit_id)
    return hit_id

  def pointer_move(self, point: QPointF, bitmap_size: QSize) -> bool:
    """Move the grabbed overlay so the grab offset is preserved.

    Returns True when an overlay position changed.
    """
    if self._grab is None:
      return False
    anchor = QPointF(point.x() - self._grab.offset.x(), point.y() - self._grab.offset.y())
    percent = pixel_to_percent(anchor, bitmap_size)
    overlay_id = self._grab.overlay_id
    if not self._model.update(overlay_id, "x", percent.x()):
      # Overlay vanished mid-drag
      self._grab = None
      return False
    self._model.update(overlay_id, "y", percent.y())
    return True

  def pointer_up(self) -> None:
    if self._grab is not None:
      log.debug("Drag end on %s", self._grab.overlay_id)
    self._grab = None

  pointer_leave = pointer_up
