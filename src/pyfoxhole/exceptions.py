"""Custom exception hierarchy for pyfoxhole."""

from __future__ import annotations


class FoxholeError(Exception):
    """Base exception for all pyfoxhole errors."""


class FoxholeConfigError(FoxholeError):
    """Invalid or missing configuration."""


class FoxholeTransportError(FoxholeError):
    """HTTP-level failure (network, timeout, unexpected status, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FoxholeApiError(FoxholeError):
    """The War API answered with a payload of an unexpected shape."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class FoxholeFetchError(FoxholeError):
    """A single region could not be fetched or reconciled.

    Region-scoped: the sync engine records it and carries on with the
    remaining regions.
    """

    def __init__(self, message: str, *, region: str) -> None:
        self.region = region
        super().__init__(message)


class FoxholeCycleError(FoxholeError):
    """A whole poll cycle was aborted.

    Raised when the war state or the region list cannot be fetched.
    No territory is touched in that case; the next tick retries.
    """


class FoxholeRenderError(FoxholeError):
    """Rendering the conquest snapshot failed."""


class FoxholeStoreError(FoxholeError):
    """The territory store could not be read or written."""
