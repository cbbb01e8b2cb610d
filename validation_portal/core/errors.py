from __future__ import annotations


class PortalError(Exception):
    """Base class for errors raised by the portal core.

    `status_code` is what the global exception handler answers with when the
    error reaches the HTTP layer.
    """

    status_code: int = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ConfigurationError(PortalError):
    """Store or catalog unreachable at process start. Startup must abort."""


class PartitionKeyError(PortalError, ValueError):
    status_code = 400


class PartitionFetchError(PortalError):
    """A single partition could not be read.

    Absorbed by the aggregation engine; never surfaces to a caller.
    """

    def __init__(self, table_name: str, cause: BaseException | None = None):
        super().__init__(f"failed to read partition {table_name}: {cause}")
        self.table_name = table_name
        self.cause = cause


class ValidationError(PortalError):
    """Malformed write payload, rejected before any mutation."""

    status_code = 400


class NotFoundError(PortalError):
    status_code = 404


class StoreUnavailableError(PortalError):
    status_code = 503


class CacheInvalidationError(PortalError):
    status_code = 503


class AccessDeniedError(PortalError):
    status_code = 403
