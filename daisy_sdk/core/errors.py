"""Error kinds raised by the SDK.

Callers branch on the exception class instead of matching message text:

- ``NetworkError`` — HTTP status outside 2xx, or the transport failed.
- ``ValidationError`` — a required argument is missing or malformed.
  Always raised before any I/O happens.
- ``NotMinedYetError`` — the watched transaction is unknown to the node or
  has no block yet.  Only delivered through a watcher's ``error`` event.
"""

from __future__ import annotations

from typing import Any


class DaisyError(Exception):
    """Base class for every error raised by the SDK."""


class NetworkError(DaisyError):
    """Raised when a request fails at the HTTP or transport level."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        status_text: str = "",
        body: Any = None,
        url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.status_text = status_text
        self.body = body
        self.url = url


class ValidationError(DaisyError, ValueError):
    """Raised when a required argument is missing or invalid."""


class NotMinedYetError(DaisyError):
    """Raised when a transaction has not been included in a block yet."""

    def __init__(self, transaction_hash: str) -> None:
        super().__init__(f"Transaction {transaction_hash} not mined yet. Retry.")
        self.transaction_hash = transaction_hash
