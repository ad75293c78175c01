"""Editor session: canonical state, busy gating and reactive re-rendering."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Awaitable, Callable

from PySide6.QtCore import QObject, QPointF, QRectF, Signal

import compositor
from adjustments import DEFAULT_ADJUSTMENTS, AdjustmentSettings
from ai_edit import edit_image
from bitmap import Bitmap, encode_qimage
from coords import display_to_bitmap
from drag import DragController, DragState
from errors import ConcurrencyViolation, InvalidInput
from log import get_logger
from overlays import OverlayModel, TextOverlay
from sources import fetch_thumbnail, require_video_id
from text_metrics import MeasureText, qt_measure_text

log = get_logger("session")

Fetcher = Callable[[str], Awaitable[bytes]]
ImageEditor = Callable[[bytes, str, str], bytes]


class EditorSession(QObject):
  """Owns the bitmap, adjustments, overlays, selection and busy flag.

  Every mutation ends by re-rendering the preview surface and emitting
  ``rendered``. Fetch, export and AI edit are long-running and mutually
  exclusive: starting one while ``busy`` raises ConcurrencyViolation and
  leaves the state alone.
  """

  rendered = Signal()
  busy_changed = Signal(bool)

  def __init__(self, fetcher: Fetcher = fetch_thumbnail,
               image_editor: ImageEditor = edit_image,
               measure_text: MeasureText = qt_measure_text,
               parent: QObject | None = None) -> None:
    super().__init__(parent)
    self._fetcher = fetcher
    self._image_editor = image_editor
    self._measure_text = measure_text

    self.bitmap: Bitmap | None = None
    self.adjustments: AdjustmentSettings = DEFAULT_ADJUSTMENTS
    self.overlays = OverlayModel()
    self.drag = DragController(self.overlays, measure_text)
    self.preview = compositor.Surface(compositor.SurfaceKind.PREVIEW)
    self._export_surface = compositor.Surface(compositor.SurfaceKind.EXPORT)
    self._busy = False
    self._operation: str | None = None

  # -- State ------------------------------------------------------------------

  @property
  def busy(self) -> bool:
    return self._busy

  @property
  def has_bitmap(self) -> bool:
    return self.bitmap is not None

  @property
  def selected_id(self) -> str | None:
    return self.overlays.selected_id

  @property
  def drag_state(self) -> DragState:
    return self.drag.state

  def overlay_list(self) -> tuple[TextOverlay, ...]:
    return self.overlays.list()

  def _rerender(self) -> None:
    if self.bitmap is None:
      self.preview.image = None
    else:
      compositor.render(
        self.preview, self.bitmap, self.adjustments, self.overlays.list(),
        self.overlays.selected_id, self._measure_text,
      )
    self.rendered.emit()

  def _require_bitmap(self) -> Bitmap:
    if self.bitmap is None:
      raise InvalidInput("No image loaded")
    return self.bitmap

  # -- Image lifecycle --------------------------------------------------------

  def load_bitmap(self, bitmap: Bitmap) -> None:
    """Swap in a new bitmap, resetting adjustments and overlays.

    The bitmap is decoded first; a decode failure leaves the session as it
    was.
    """
    bitmap.decode()
    self.bitmap = bitmap
    self.adjustments = DEFAULT_ADJUSTMENTS
    self.drag.pointer_up()
    self.overlays.clear()
    log.info("Loaded bitmap %dx%d", bitmap.size.width(), bitmap.size.height())
    self._rerender()

  def reset(self) -> None:
    """Neutral adjustments and no overlays; the bitmap stays."""
    self.adjustments = DEFAULT_ADJUSTMENTS
    self.drag.pointer_up()
    self.overlays.clear()
    self._rerender()

  # -- Adjustments ------------------------------------------------------------

  def set_adjustment(self, name: str, value: float) -> None:
    """Set one knob. Out-of-range values are clamped."""
    self._require_bitmap()
    self.adjustments = self.adjustments.with_value(name, value)
    self._rerender()

  # -- Overlays ---------------------------------------------------------------

  def add_text(self, text: str) -> str | None:
    self._require_bitmap()
    overlay_id = self.overlays.add(text)
    if overlay_id is not None:
      self._rerender()
    return overlay_id

  def update_overlay(self, overlay_id: str, field: str, value) -> None:
    if self.overlays.update(overlay_id, field, value):
      self._rerender()

  def update_selected(self, field: str, value) -> None:
    if self.overlays.selected_id is not None:
      self.update_overlay(self.overlays.selected_id, field, value)

  def remove_overlay(self, overlay_id: str) -> None:
    if self.overlays.remove(overlay_id):
      self._rerender()

  def select(self, overlay_id: str | None) -> None:
    if self.overlays.select(overlay_id):
      self._rerender()

  # -- Pointer ----------------------------------------------------------------

  def _to_bitmap(self, display_pos: QPointF, display_rect: QRectF) -> QPointF:
    return display_to_bitmap(display_pos, display_rect, self.bitmap.size)

  def pointer_down(self, display_pos: QPointF, display_rect: QRectF) -> str | None:
    """Pointer pressed on the displayed preview occupying *display_rect*."""
    if self.bitmap is None:
      return None
    hit_id = self.drag.pointer_down(self._to_bitmap(display_pos, display_rect), self.bitmap.size)
    self._rerender()
    return hit_id

  def pointer_move(self, display_pos: QPointF, display_rect: QRectF) -> None:
    if self.bitmap is None:
      return
    if self.drag.pointer_move(self._to_bitmap(display_pos, display_rect), self.bitmap.size):
      self._rerender()

  def pointer_up(self) -> None:
    self.drag.pointer_up()

  def pointer_leave(self) -> None:
    self.drag.pointer_leave()

  # -- Long-running operations ------------------------------------------------

  def _ensure_idle(self, operation: str) -> None:
    if self._busy:
      log.warning("Rejected %s: %s already in progress", operation, self._operation)
      raise ConcurrencyViolation(f"Cannot {operation} while {self._operation} is running")

  @contextlib.contextmanager
  def _busy_gate(self, operation: str):
    self._ensure_idle(operation)
    self._busy = True
    self._operation = operation
    self.busy_changed.emit(True)
    try:
      yield
    finally:
      self._busy = False
      self._operation = None
      self.busy_changed.emit(False)

  def _render_export(self) -> None:
    compositor.render(
      self._export_surface, self._require_bitmap(), self.adjustments,
      self.overlays.list(), None, self._measure_text,
    )

  async def fetch(self, url: str) -> None:
    """Fetch the thumbnail for a YouTube URL and load it."""
    self._ensure_idle("fetch")
    video_id = require_video_id(url)
    with self._busy_gate("fetch"):
      log.info("Fetching thumbnail for %s", video_id)
      data = await self._fetcher(video_id)
      self.load_bitmap(Bitmap(data))

  async def export(self, fmt: str = "jpg", quality: int = 90) -> bytes:
    """Render without the selection outline and encode at native size."""
    self._ensure_idle("export")
    self._require_bitmap()
    with self._busy_gate("export"):
      self._render_export()
      data = encode_qimage(self._export_surface.image, fmt, quality)
      log.info("Exported %s (%d bytes)", fmt, len(data))
      return data

  def _edit_source(self) -> tuple[bytes, str]:
    """Bytes to send for an AI edit: the source as-is when nothing was
    changed, otherwise the composited frame as PNG."""
    bitmap = self._require_bitmap()
    if self.adjustments.is_neutral() and not self.overlays:
      return bitmap.data, bitmap.mime_type
    self._render_export()
    return encode_qimage(self._export_surface.image, "png"), "image/png"

  async def ai_edit(self, instruction: str) -> None:
    """Send the composited image through the AI editor and load the result."""
    self._ensure_idle("AI edit")
    self._require_bitmap()
    if not instruction or not instruction.strip():
      raise InvalidInput("Edit instruction must not be empty")
    with self._busy_gate("AI edit"):
      data, mime_type = self._edit_source()
      data = await asyncio.to_thread(self._image_editor, data, mime_type, instruction.strip())
      self.load_bitmap(Bitmap(data))
