"""Platform-specific defaults and export file writing."""

import os
import platform
from datetime import datetime

from log import get_logger

SYSTEM = platform.system()

log = get_logger("platform")


def default_save_folder():
  """Return a sensible default export folder per platform."""
  home = os.path.expanduser("~")

  if SYSTEM == "Windows":
    # Check OneDrive first, then local
    onedrive = os.path.join(home, "OneDrive", "Pictures")
    if os.path.isdir(onedrive):
      return "~/OneDrive/Pictures/Thumbnails"
    return "~/Pictures/Thumbnails"
  elif SYSTEM == "Darwin":
    return "~/Desktop"
  else:
    return "~/Pictures/Thumbnails"


def save_export(data, save_folder, fmt="jpg", filename_prefix="thumbnail",
                filename_suffix="%Y-%m-%d_%H-%M-%S"):
  """Write encoded export bytes to ``<prefix>_<timestamp>.<fmt>``.

  Returns the file path, or None if the folder or file can't be written.
  """
  try:
    folder = os.path.expanduser(save_folder)
    os.makedirs(folder, exist_ok=True)
  except OSError as e:
    log.error("Cannot create save folder '%s': %s", save_folder, e)
    return None

  timestamp = datetime.now().strftime(filename_suffix)
  filepath = os.path.join(folder, f"{filename_prefix}_{timestamp}.{fmt}")
  # Don't clobber an export made within the same second
  n = 1
  while os.path.exists(filepath):
    filepath = os.path.join(folder, f"{filename_prefix}_{timestamp}_{n}.{fmt}")
    n += 1

  try:
    with open(filepath, "wb") as f:
      f.write(data)
  except OSError as e:
    log.error("Failed to save export to %s: %s", filepath, e)
    return None

  log.debug("Saved export: %s", filepath)
  return filepath
