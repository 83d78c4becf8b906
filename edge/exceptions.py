"""Error taxonomy for the edge redirect node.

- ``StoreUnavailableError``: the local Redis store could not serve a command.
  Fatal during startup, a 500 on the request path, a skipped cycle for sync.
- ``OriginError``: the origin service was unreachable, timed out or answered
  with a non-2xx status. Never fatal.
- ``MalformedOriginResponseError``: the origin answered but the body did not
  validate. The whole cycle's data is dropped.
"""

__all__ = [
    "EdgeError",
    "MalformedOriginResponseError",
    "OriginError",
    "StoreUnavailableError",
]


class EdgeError(Exception):
    """Base class for all edge node errors."""


class StoreUnavailableError(EdgeError):
    """Raised when the local store fails a command."""


class OriginError(EdgeError):
    """Raised when a call to the origin service fails."""


class MalformedOriginResponseError(OriginError):
    """Raised when the origin returns a body that does not match the contract."""
