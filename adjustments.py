"""Photographic adjustment settings and the render transform they describe.

The transform is a plain description: an ordered tuple of stages. Painting
it onto pixels is done by ``RenderTransform.paint`` with Pillow, so the
interactive preview and the export share one code path.
"""

from __future__ import annotations

import dataclasses
import math
from typing import Union

from PIL import Image, ImageFilter

from errors import InvalidInput

# name -> (minimum, maximum, neutral)
ADJUSTMENT_RANGES = {
  "brightness": (0.0, 200.0, 100.0),
  "contrast": (0.0, 200.0, 100.0),
  "saturation": (0.0, 200.0, 100.0),
  "grayscale": (0.0, 100.0, 0.0),
  "sepia": (0.0, 100.0, 0.0),
  "blur": (0.0, 20.0, 0.0),
}


def clamp_adjustment(name: str, value) -> float:
  """Validate *value* for the knob *name* and clamp it into range."""
  if name not in ADJUSTMENT_RANGES:
    raise InvalidInput(f"Unknown adjustment: {name!r}")
  if isinstance(value, bool):
    raise InvalidInput(f"Adjustment {name} must be a number")
  try:
    value = float(value)
  except (TypeError, ValueError):
    raise InvalidInput(f"Adjustment {name} must be a number, got {value!r}") from None
  if math.isnan(value):
    raise InvalidInput(f"Adjustment {name} must be a number, got NaN")
  lo, hi, _ = ADJUSTMENT_RANGES[name]
  return min(max(value, lo), hi)


@dataclasses.dataclass(frozen=True)
class AdjustmentSettings:
  brightness: float = 100.0
  contrast: float = 100.0
  saturation: float = 100.0
  grayscale: float = 0.0
  sepia: float = 0.0
  blur: float = 0.0

  def __post_init__(self) -> None:
    for field in dataclasses.fields(self):
      object.__setattr__(
        self, field.name, clamp_adjustment(field.name, getattr(self, field.name)),
      )

  def with_value(self, name: str, value) -> AdjustmentSettings:
    """Return a copy with one knob replaced (clamped)."""
    return dataclasses.replace(self, **{name: clamp_adjustment(name, value)})

  def is_neutral(self) -> bool:
    return self == DEFAULT_ADJUSTMENTS


DEFAULT_ADJUSTMENTS = AdjustmentSettings()


# -- Transform stages ---------------------------------------------------------

# Rows of a 3x4 RGB matrix flattened for Image.convert(): (r, g, b, offset) x 3
Matrix = tuple


@dataclasses.dataclass(frozen=True)
class ColorMatrixStage:
  name: str
  matrix: Matrix


@dataclasses.dataclass(frozen=True)
class BlurStage:
  radius: float
  name: str = "blur"


Stage = Union[ColorMatrixStage, BlurStage]


def _brightness_matrix(amount: float) -> Matrix:
  return (
    amount, 0.0, 0.0, 0.0,
    0.0, amount, 0.0, 0.0,
    0.0, 0.0, amount, 0.0,
  )


def _contrast_matrix(amount: float) -> Matrix:
  offset = 127.5 * (1.0 - amount)
  return (
    amount, 0.0, 0.0, offset,
    0.0, amount, 0.0, offset,
    0.0, 0.0, amount, offset,
  )


def _saturation_matrix(s: float) -> Matrix:
  return (
    0.213 + 0.787 * s, 0.715 - 0.715 * s, 0.072 - 0.072 * s, 0.0,
    0.213 - 0.213 * s, 0.715 + 0.285 * s, 0.072 - 0.072 * s, 0.0,
    0.213 - 0.213 * s, 0.715 - 0.715 * s, 0.072 + 0.928 * s, 0.0,
  )


def _grayscale_matrix(amount: float) -> Matrix:
  s = 1.0 - amount
  return (
    0.2126 + 0.7874 * s, 0.7152 - 0.7152 * s, 0.0722 - 0.0722 * s, 0.0,
    0.2126 - 0.2126 * s, 0.7152 + 0.2848 * s, 0.0722 - 0.0722 * s, 0.0,
    0.2126 - 0.2126 * s, 0.7152 - 0.7152 * s, 0.0722 + 0.9278 * s, 0.0,
  )


def _sepia_matrix(amount: float) -> Matrix:
  s = 1.0 - amount
  return (
    0.393 + 0.607 * s, 0.769 - 0.769 * s, 0.189 - 0.189 * s, 0.0,
    0.349 - 0.349 * s, 0.686 + 0.314 * s, 0.168 - 0.168 * s, 0.0,
    0.272 - 0.272 * s, 0.534 - 0.534 * s, 0.131 + 0.869 * s, 0.0,
  )


@dataclasses.dataclass(frozen=True)
class RenderTransform:
  """Ordered stages to run over the base bitmap. Empty means identity."""
  stages: tuple = ()

  @property
  def is_identity(self) -> bool:
    return not self.stages

  def paint(self, image: Image.Image) -> Image.Image:
    """Run every stage over *image* and return a new RGBA image.

    Each colour stage is clamped to 0..255 before the next one runs. Alpha
    is carried through untouched.
    """
    if self.is_identity:
      return image.copy()
    alpha = image.getchannel("A") if "A" in image.getbands() else None
    rgb = image.convert("RGB")
    for stage in self.stages:
      if isinstance(stage, BlurStage):
        rgb = rgb.filter(ImageFilter.GaussianBlur(stage.radius))
      else:
        rgb = rgb.convert("RGB", stage.matrix)
    if alpha is not None:
      rgb.putalpha(alpha)
      return rgb
    return rgb.convert("RGBA")


def apply_adjustments(settings: AdjustmentSettings) -> RenderTransform:
  """Map adjustment settings to the render transform.

  Stage order is fixed: brightness, contrast, saturation, grayscale, sepia,
  blur. Stages at their neutral value are left out entirely, so neutral
  settings produce the identity transform and blur 0 never softens.
  """
  stages = []
  if settings.brightness != 100.0:
    stages.append(ColorMatrixStage("brightness", _brightness_matrix(settings.brightness / 100.0)))
  if settings.contrast != 100.0:
    stages.append(ColorMatrixStage("contrast", _contrast_matrix(settings.contrast / 100.0)))
  if settings.saturation != 100.0:
    stages.append(ColorMatrixStage("saturation", _saturation_matrix(settings.saturation / 100.0)))
  if settings.grayscale != 0.0:
    stages.append(ColorMatrixStage("grayscale", _grayscale_matrix(settings.grayscale / 100.0)))
  if settings.sepia != 0.0:
    stages.append(ColorMatrixStage("sepia", _sepia_matrix(settings.sepia / 100.0)))
  if settings.blur > 0.0:
    stages.append(BlurStage(settings.blur))
  return RenderTransform(tuple(stages))
