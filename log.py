"""Centralized logging for Thumbforge.

Everything goes to ``thumbforge.log`` (rotated) and stderr. Qt's own
diagnostics, such as missing fonts or image plugins, are routed into the
``thumbforge.qt`` logger once ``install_qt_handler`` has run.
"""

from __future__ import annotations

import logging
import os
import sys
import tempfile
from logging.handlers import RotatingFileHandler

from PySide6.QtCore import QtMsgType, qInstallMessageHandler

LOG_FILENAME = "thumbforge.log"


def _candidate_log_dirs() -> list[str]:
  """Directories to try, most preferred first."""
  if getattr(sys, "frozen", False):
    dirs = [os.path.dirname(sys.executable)]
  else:
    dirs = [os.path.dirname(os.path.abspath(__file__))]
  if sys.platform == "win32":
    appdata = os.environ.get("APPDATA", "")
    if appdata:
      dirs.append(os.path.join(appdata, "Thumbforge"))
  else:
    state = os.environ.get("XDG_STATE_HOME") or os.path.expanduser("~/.local/state")
    dirs.append(os.path.join(state, "thumbforge"))
  return dirs


def _resolve_log_dir() -> str:
  """Pick the first directory where the log file can be opened for append."""
  for log_dir in _candidate_log_dirs():
    try:
      os.makedirs(log_dir, exist_ok=True)
      with open(os.path.join(log_dir, LOG_FILENAME), "a"):
        pass
    except OSError:
      continue
    return log_dir
  return tempfile.gettempdir()


LOG_PATH = os.path.join(_resolve_log_dir(), LOG_FILENAME)

_formatter = logging.Formatter(
  "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
  datefmt="%Y-%m-%d %H:%M:%S",
)

try:
  _file_handler = RotatingFileHandler(
    LOG_PATH, maxBytes=1_000_000, backupCount=3, encoding="utf-8",
  )
  _file_handler.setFormatter(_formatter)
except OSError:
  _file_handler = None

_console_handler = logging.StreamHandler()
_console_handler.setFormatter(_formatter)


def get_logger(name: str) -> logging.Logger:
  """Get a named logger with file and console handlers."""
  logger = logging.getLogger(f"thumbforge.{name}")
  if not logger.handlers:
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    if _file_handler:
      logger.addHandler(_file_handler)
    logger.addHandler(_console_handler)
  return logger


# -- Qt messages --------------------------------------------------------------

QT_LEVELS = {
  QtMsgType.QtDebugMsg: logging.DEBUG,
  QtMsgType.QtInfoMsg: logging.INFO,
  QtMsgType.QtWarningMsg: logging.WARNING,
  QtMsgType.QtCriticalMsg: logging.ERROR,
  QtMsgType.QtFatalMsg: logging.CRITICAL,
}

_qt_log = get_logger("qt")


def qt_message_handler(msg_type, context, message: str) -> None:
  _qt_log.log(QT_LEVELS.get(msg_type, logging.WARNING), "%s", message)


def install_qt_handler() -> None:
  """Send qDebug/qWarning output through the Thumbforge log."""
  qInstallMessageHandler(qt_message_handler)
