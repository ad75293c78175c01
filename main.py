from __future__ import annotations

import asyncio
import functools
import json
import os
import sys
from typing import Any

from PySide6.QtCore import QObject, QTimer
from PySide6.QtWidgets import QApplication

from ai_edit import DEFAULT_MODEL, edit_image
from bitmap import EXPORT_FORMATS
from log import get_logger, install_qt_handler
from platform_utils import default_save_folder
from session import EditorSession
from sources import DEFAULT_TIMEOUT, fetch_thumbnail

log = get_logger("main")

# When frozen as exe, config lives next to the executable
if getattr(sys, "frozen", False):
  APP_DIR = os.path.dirname(sys.executable)
else:
  APP_DIR = os.path.dirname(os.path.abspath(__file__))
CONFIG_PATH = os.path.join(APP_DIR, "config.json")


CONFIG_VERSION = 1

DEFAULT_CONFIG = {
  "config_version": CONFIG_VERSION,
  "save_folder": default_save_folder(),
  "format": "jpg",
  "jpeg_quality": 90,
  "filename_prefix": "thumbnail",
  "filename_suffix": "%Y-%m-%d_%H-%M-%S",
  "gemini_model": DEFAULT_MODEL,
  "gemini_api_key": "",
  "fetch_timeout": DEFAULT_TIMEOUT,
}

# Interval at which the Qt event loop runs ready asyncio callbacks
ASYNC_PUMP_MS = 10

JPEG_QUALITY_RANGE = (1, 100)


def _check_format(value: Any) -> str | None:
  if isinstance(value, str) and value.lower() in EXPORT_FORMATS:
    return value.lower()
  return None


def _check_quality(value: Any) -> int | None:
  if isinstance(value, bool) or not isinstance(value, (int, float)):
    return None
  lo, hi = JPEG_QUALITY_RANGE
  return int(min(max(value, lo), hi))


def _check_timeout(value: Any) -> float | None:
  if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
    return None
  return float(value)


def _check_text(value: Any) -> str | None:
  return value if isinstance(value, str) and value.strip() else None


# key -> normalizer returning the cleaned value, or None to fall back to default
CONFIG_CHECKS = {
  "save_folder": _check_text,
  "format": _check_format,
  "jpeg_quality": _check_quality,
  "filename_prefix": _check_text,
  "filename_suffix": _check_text,
  "gemini_model": _check_text,
  "fetch_timeout": _check_timeout,
}


def migrate_config(config: dict[str, Any]) -> bool:
  """Fill in missing keys, repair bad values and bump the version.

  Returns True if anything changed and the file should be rewritten.
  """
  changed = False
  for key, default_val in DEFAULT_CONFIG.items():
    if key not in config:
      config[key] = default_val
      log.info("Config: added '%s' = %r", key, default_val)
      changed = True
      continue
    check = CONFIG_CHECKS.get(key)
    if check is None:
      continue
    cleaned = check(config[key])
    if cleaned is None:
      log.warning("Config: invalid '%s' = %r, using %r", key, config[key], default_val)
      cleaned = default_val
    if cleaned != config[key]:
      config[key] = cleaned
      changed = True

  version = config.get("config_version", 1)
  if not isinstance(version, int) or version < CONFIG_VERSION:
    config["config_version"] = CONFIG_VERSION
    log.info("Config migrated from v%s to v%d", version, CONFIG_VERSION)
    changed = True
  return changed


def _read_config() -> Any:
  with open(CONFIG_PATH, encoding="utf-8") as f:
    return json.load(f)


def load_config() -> dict[str, Any]:
  """Load config.json, creating or repairing it as needed."""
  if not os.path.exists(CONFIG_PATH):
    log.info("No config found, creating defaults at %s", CONFIG_PATH)
    save_config(DEFAULT_CONFIG)
    return dict(DEFAULT_CONFIG)
  try:
    config = _read_config()
  except OSError as e:
    log.error("Cannot read config file: %s", e)
    return dict(DEFAULT_CONFIG)
  except json.JSONDecodeError as e:
    log.error("Corrupted config file, resetting to defaults: %s", e)
    config = None

  if not isinstance(config, dict):
    if config is not None:
      log.error("Config file is not a JSON object, resetting to defaults")
    save_config(DEFAULT_CONFIG)
    return dict(DEFAULT_CONFIG)

  if migrate_config(config):
    save_config(config)
  return config


def save_config(config: dict[str, Any]) -> None:
  try:
    with open(CONFIG_PATH, "w", encoding="utf-8") as f:
      json.dump(config, f, indent=2)
      f.write("\n")
  except OSError as e:
    log.error("Failed to save config: %s", e)


class AsyncioPump(QObject):
  """Run an asyncio loop inside the Qt event loop, on the GUI thread."""

  def __init__(self, loop: asyncio.AbstractEventLoop, interval_ms: int = ASYNC_PUMP_MS,
               parent: QObject | None = None):
    super().__init__(parent)
    self.loop = loop
    self._timer = QTimer(self)
    self._timer.setInterval(interval_ms)
    self._timer.timeout.connect(self.tick)

  def start(self) -> None:
    self._timer.start()

  def stop(self) -> None:
    self._timer.stop()

  def tick(self) -> None:
    """Run one pass over whatever is ready, then return to Qt."""
    self.loop.call_soon(self.loop.stop)
    self.loop.run_forever()


def build_session(config: dict[str, Any]) -> EditorSession:
  """Wire the session to the thumbnail fetcher and Gemini editor."""
  fetcher = functools.partial(
    fetch_thumbnail, timeout=float(config.get("fetch_timeout", DEFAULT_TIMEOUT)),
  )
  editor = functools.partial(
    edit_image,
    api_key=config.get("gemini_api_key") or None,
    model_name=config.get("gemini_model", DEFAULT_MODEL),
  )
  return EditorSession(fetcher=fetcher, image_editor=editor)


class Thumbforge:
  def __init__(self) -> None:
    self.config: dict[str, Any] = load_config()
    self.loop = asyncio.new_event_loop()
    self.session: EditorSession | None = None
    self._window = None

  def run(self) -> None:
    from editor_window import EditorWindow

    install_qt_handler()
    self.app = QApplication(sys.argv)
    self.pump = AsyncioPump(self.loop)
    self.pump.start()

    self.session = build_session(self.config)
    self._window = EditorWindow(self.session, self.config, self.loop)
    self._window.show()

    self.app.aboutToQuit.connect(self._shutdown)
    log.info("Thumbforge running (save_folder=%s, format=%s)",
      self.config.get("save_folder"), self.config.get("format"))

    exit_code = self.app.exec()
    sys.exit(exit_code)

  def _shutdown(self) -> None:
    """Stop pumping and close the asyncio loop before exit."""
    self.pump.stop()
    pending = [t for t in asyncio.all_tasks(self.loop) if not t.done()]
    if pending:
      log.warning("Exiting with %d operation(s) still running", len(pending))
      for task in pending:
        task.cancel()
      self.loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
    self.loop.close()
    log.info("Thumbforge exiting")


if __name__ == "__main__":
  app = Thumbforge()
  app.run()
