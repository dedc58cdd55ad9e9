"""Error taxonomy for Company Arena.

Every error the service raises on purpose derives from ArenaError and
carries the HTTP status it maps to plus a message that is safe to show
to clients. Anything else reaching the app is treated as an unknown
failure and rendered as a generic 500.
"""

from __future__ import annotations


class ArenaError(Exception):
    """Base exception for all Company Arena errors."""

    status_code = 500

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ClientInputError(ArenaError):
    """Missing or malformed fields, or ids that reference no company.

    Not retried automatically; the client has to fix the request.
    """

    status_code = 400


class RateLimited(ArenaError):
    """The identity has used up its votes for the current window.

    Clients should back off until the window has elapsed.
    """

    status_code = 429

    def __init__(self, identity_key: str, count: int, limit: int):
        self.identity_key = identity_key
        self.count = count
        self.limit = limit
        super().__init__(
            "Too many votes",
            details=f"{count} votes in window, limit is {limit}",
        )


class ResourceNotFound(ArenaError):
    """A requested resource does not exist."""

    status_code = 400


class InsufficientRoster(ResourceNotFound):
    """Fewer companies exist than a matchup needs."""

    def __init__(self, available: int, required: int = 2):
        self.available = available
        self.required = required
        super().__init__(
            "Not enough companies",
            details=f"{available} available, {required} required",
        )


class TransientStoreFailure(ArenaError):
    """The store timed out or rejected the transaction.

    Nothing was applied; retrying the whole operation is safe.
    """

    status_code = 500
