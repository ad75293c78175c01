"""Text overlay records and the ordered overlay list with its selection."""

from __future__ import annotations

import dataclasses
import itertools
import math

from PySide6.QtGui import QColor

from errors import InvalidInput, NotFound
from log import get_logger

log = get_logger("overlays")

FONT_FAMILIES = ("Share Tech Mono", "Courier New", "Impact", "Arial", "Verdana")

DEFAULT_TEXT_COLOR = "#00ff00"
DEFAULT_FONT_FAMILY = "Share Tech Mono"
DEFAULT_FONT_SIZE = 48.0
DEFAULT_POSITION = (50.0, 50.0)


@dataclasses.dataclass(frozen=True)
class TextOverlay:
  id: str
  text: str
  x: float  # percent of bitmap width
  y: float  # percent of bitmap height
  color: str = DEFAULT_TEXT_COLOR
  font_size: float = DEFAULT_FONT_SIZE
  font_family: str = DEFAULT_FONT_FAMILY


def _coerce_field(field: str, value):
  """Validate a new value for *field*, returning its normalized form."""
  if field == "text":
    if not isinstance(value, str):
      raise InvalidInput("Overlay text must be a string")
    return value
  if field in ("x", "y", "font_size"):
    try:
      number = float(value)
    except (TypeError, ValueError):
      raise InvalidInput(f"Overlay {field} must be a number, got {value!r}") from None
    if not math.isfinite(number):
      raise InvalidInput(f"Overlay {field} must be finite")
    if field == "font_size" and number <= 0:
      raise InvalidInput("Overlay font size must be positive")
    return number
  if field == "color":
    color = QColor(value) if isinstance(value, str) else QColor()
    if not color.isValid():
      raise InvalidInput(f"Invalid overlay color: {value!r}")
    return color.name()
  if field == "font_family":
    if not isinstance(value, str) or not value.strip():
      raise InvalidInput("Font family must be a non-empty string")
    return value.strip()
  raise InvalidInput(f"Unknown overlay field: {field!r}")


class OverlayModel:
  """Insertion-ordered overlays plus the (single) selected id.

  Later overlays paint on top and win hit-tests. Ids come from a counter
  that is never rewound, so ``clear()`` does not make old ids valid again.
  """

  def __init__(self) -> None:
    self._overlays: list[TextOverlay] = []
    self._selected_id: str | None = None
    self._ids = itertools.count(1)

  def __len__(self) -> int:
    return len(self._overlays)

  def __contains__(self, overlay_id) -> bool:
    return self._index(overlay_id) is not None

  @property
  def selected_id(self) -> str | None:
    return self._selected_id

  def list(self) -> tuple[TextOverlay, ...]:
    return tuple(self._overlays)

  def get(self, overlay_id: str) -> TextOverlay:
    idx = self._index(overlay_id)
    if idx is None:
      raise NotFound(f"No overlay with id {overlay_id!r}")
    return self._overlays[idx]

  def selected(self) -> TextOverlay | None:
    if self._selected_id is None:
      return None
    return self.get(self._selected_id)

  def _index(self, overlay_id) -> int | None:
    for i, ov in enumerate(self._overlays):
      if ov.id == overlay_id:
        return i
    return None

  def add(self, text: str) -> str | None:
    """Append a new overlay at the center and select it.

    Returns None without touching anything when *text* is blank.
    """
    if not isinstance(text, str) or not text.strip():
      return None
    overlay_id = f"overlay-{next(self._ids)}"
    x, y = DEFAULT_POSITION
    self._overlays.append(TextOverlay(id=overlay_id, text=text, x=x, y=y))
    self._selected_id = overlay_id
    log.debug("Added overlay %s (%r)", overlay_id, text)
    return overlay_id

  def update(self, overlay_id: str, field: str, value) -> bool:
    """Replace exactly one field. Stale ids are a silent no-op."""
    idx = self._index(overlay_id)
    if idx is None:
      log.debug("Ignoring update of stale overlay %s", overlay_id)
      return False
    value = _coerce_field(field, value)
    self._overlays[idx] = dataclasses.replace(self._overlays[idx], **{field: value})
    return True

  def remove(self, overlay_id: str) -> bool:
    idx = self._index(overlay_id)
    if idx is None:
      log.debug("Ignoring removal of stale overlay %s", overlay_id)
      return False
    del self._overlays[idx]
    if self._selected_id == overlay_id:
      self._selected_id = None
    return True

  def select(self, overlay_id: str | None) -> bool:
    """Select *overlay_id*, or clear the selection with None."""
    if overlay_id is None:
      self._selected_id = None
      return True
    if self._index(overlay_id) is None:
      return False
    self._selected_id = overlay_id
    return True

  def clear(self) -> None:
    self._overlays.clear()
    self._selected_id = None
