"""Generative image editing through Google Gemini."""

from __future__ import annotations

import os

import google.generativeai as genai

from errors import InvalidInput, ResourceUnavailable
from log import get_logger

log = get_logger("ai_edit")

DEFAULT_MODEL = "gemini-2.5-flash-image"
API_KEY_ENV = "GEMINI_API_KEY"


def _first_inline_image(response) -> bytes | None:
  """Return the bytes of the first inline image part in *response*."""
  for candidate in getattr(response, "candidates", None) or []:
    content = getattr(candidate, "content", None)
    for part in getattr(content, "parts", None) or []:
      inline = getattr(part, "inline_data", None)
      if inline is not None and inline.data:
        return bytes(inline.data)
  return None


def edit_image(image_bytes: bytes, mime_type: str, instruction: str,
               api_key: str | None = None, model_name: str = DEFAULT_MODEL) -> bytes:
  """Send an image plus an edit instruction and return the edited image bytes.

  Blocking; callers on an event loop should run it in a worker thread.
  Raises ResourceUnavailable for missing credentials, transport errors and
  responses that carry no image.
  """
  if not instruction or not instruction.strip():
    raise InvalidInput("Edit instruction must not be empty")
  api_key = api_key or os.environ.get(API_KEY_ENV)
  if not api_key:
    raise ResourceUnavailable("Access denied: missing Gemini API key")

  genai.configure(api_key=api_key)
  model = genai.GenerativeModel(model_name)
  log.info("Requesting AI edit from %s (%d bytes, %s)", model_name, len(image_bytes), mime_type)
  try:
    response = model.generate_content([
      {"mime_type": mime_type, "data": image_bytes},
      instruction.strip(),
    ])
  except Exception as e:
    log.error("Gemini request failed: %s", e)
    raise ResourceUnavailable(f"AI edit failed: {e}") from e

  data = _first_inline_image(response)
  if data is None:
    log.error("Gemini response contained no image data")
    raise ResourceUnavailable("Generation failed: no image data returned")
  return data
