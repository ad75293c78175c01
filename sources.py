"""Bitmap source: YouTube video thumbnails fetched over HTTP."""

from __future__ import annotations

import re

import httpx

from errors import InvalidInput, ResourceUnavailable
from log import get_logger

log = get_logger("sources")

_YOUTUBE_URL_RE = re.compile(
  r"^.*((youtu.be/)|(v/)|(/u/\w/)|(embed/)|(watch\?))\??v?=?([^#&?]*).*"
)
VIDEO_ID_LENGTH = 11

THUMBNAIL_URL = "https://img.youtube.com/vi/{video_id}/{variant}.jpg"
# Not every video has a maxres thumbnail; hqdefault always exists.
THUMBNAIL_VARIANTS = ("maxresdefault", "hqdefault")
DEFAULT_TIMEOUT = 20.0


def extract_video_id(url: str) -> str | None:
  """Pull the 11-character video id out of a YouTube URL, or None."""
  if not isinstance(url, str):
    return None
  match = _YOUTUBE_URL_RE.match(url.strip())
  if match and len(match.group(7)) == VIDEO_ID_LENGTH:
    return match.group(7)
  return None


def require_video_id(url: str) -> str:
  video_id = extract_video_id(url)
  if video_id is None:
    raise InvalidInput("Invalid YouTube URL")
  return video_id


async def fetch_thumbnail(video_id: str, client: httpx.AsyncClient | None = None,
                          timeout: float = DEFAULT_TIMEOUT) -> bytes:
  """Download the best available thumbnail for *video_id*."""
  if client is None:
    async with httpx.AsyncClient(follow_redirects=True, timeout=timeout) as own_client:
      return await fetch_thumbnail(video_id, own_client)

  for variant in THUMBNAIL_VARIANTS:
    url = THUMBNAIL_URL.format(video_id=video_id, variant=variant)
    try:
      response = await client.get(url)
    except httpx.HTTPError as e:
      log.error("Thumbnail request failed for %s: %s", url, e)
      raise ResourceUnavailable(f"Connection failed: {e}") from e
    if response.status_code == 404:
      log.debug("No %s thumbnail for %s", variant, video_id)
      continue
    if response.status_code != 200:
      log.error("Thumbnail request for %s returned HTTP %d", url, response.status_code)
      raise ResourceUnavailable(f"Thumbnail access denied (HTTP {response.status_code})")
    log.info("Fetched %s thumbnail for %s (%d bytes)", variant, video_id, len(response.content))
    return response.content

  raise ResourceUnavailable(f"No thumbnail found for video {video_id}")
