"""Bitmap handles plus Pillow <-> QImage conversion and encoding."""

from __future__ import annotations

import functools
import io

from PIL import Image, UnidentifiedImageError
from PySide6.QtCore import QSize
from PySide6.QtGui import QImage

from errors import InvalidInput, ResourceUnavailable
from log import get_logger

log = get_logger("bitmap")

# export format -> (Pillow writer, MIME type)
EXPORT_FORMATS = {
  "jpg": ("JPEG", "image/jpeg"),
  "jpeg": ("JPEG", "image/jpeg"),
  "png": ("PNG", "image/png"),
  "webp": ("WEBP", "image/webp"),
}


class Bitmap:
  """Opaque handle around encoded image bytes.

  Decoding happens once, on first access to ``image``, and the result is
  cached on the handle, so re-renders never re-decode the source.
  """

  def __init__(self, data: bytes) -> None:
    self.data = bytes(data)

  @functools.cached_property
  def image(self) -> Image.Image:
    try:
      with Image.open(io.BytesIO(self.data)) as im:
        self._format = im.format
        decoded = im.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError) as e:
      log.error("Cannot decode bitmap (%d bytes): %s", len(self.data), e)
      raise ResourceUnavailable(f"Cannot decode image: {e}") from e
    log.debug("Decoded %s bitmap %dx%d", self._format, *decoded.size)
    return decoded

  def decode(self) -> Bitmap:
    """Force decoding now. Raises ResourceUnavailable on bad data."""
    self.image
    return self

  @property
  def size(self) -> QSize:
    w, h = self.image.size
    return QSize(w, h)

  @property
  def mime_type(self) -> str:
    self.image
    return Image.MIME.get(self._format or "", "image/png")


def pil_to_qimage(image: Image.Image) -> QImage:
  rgba = image.convert("RGBA")
  w, h = rgba.size
  qimage = QImage(rgba.tobytes("raw", "RGBA"), w, h, w * 4, QImage.Format.Format_RGBA8888)
  # Detach from the Python bytes buffer
  return qimage.copy()


def qimage_to_pil(qimage: QImage) -> Image.Image:
  img = qimage.convertToFormat(QImage.Format.Format_RGBA8888)
  w, h = img.width(), img.height()
  return Image.frombuffer(
    "RGBA", (w, h), bytes(img.constBits()), "raw", "RGBA", img.bytesPerLine(), 1,
  )


def encode_qimage(qimage: QImage, fmt: str = "jpg", quality: int = 90) -> bytes:
  """Encode *qimage* as jpg/png/webp bytes through Pillow."""
  try:
    writer, _ = EXPORT_FORMATS[fmt.lower()]
  except KeyError:
    raise InvalidInput(f"Unsupported export format: {fmt!r}") from None
  image = qimage_to_pil(qimage)
  params = {}
  if writer == "JPEG":
    # No alpha in JPEG
    image = image.convert("RGB")
    params["quality"] = quality
  elif writer == "WEBP":
    params["quality"] = quality
  buf = io.BytesIO()
  try:
    image.save(buf, writer, **params)
  except (OSError, ValueError) as e:
    log.error("Failed to encode %dx%d image as %s: %s", *image.size, fmt, e)
    raise ResourceUnavailable(f"Failed to encode image as {fmt}") from e
  return buf.getvalue()
