"""Error kinds raised at the editor boundary."""


class EditorError(Exception):
  """Base class for all user-visible editor failures."""


class InvalidInput(EditorError):
  """Malformed input rejected before any state change."""


class NotFound(EditorError):
  """Reference to an overlay that no longer exists."""


class ResourceUnavailable(EditorError):
  """Fetch, decode or AI-edit failure."""


class ConcurrencyViolation(EditorError):
  """A long-running operation was requested while another is in flight."""
