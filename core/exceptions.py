"""
Domain-specific exception hierarchy for the catalog service.

Exception hierarchy:
- Separate client errors (4xx) from system errors (5xx)
- Identify transient vs permanent failures (retry vs abort)
- Capture operational context (what failed, which record)
"""


# ============================================================================
# Base Exception Hierarchy
# ============================================================================


class CatalogError(Exception):
    """
    Base exception for all catalog errors.

    Catching this handles every domain error while letting system errors
    (MemoryError, KeyboardInterrupt) propagate.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize exception with message and optional context.

        Args:
            message: Human-readable error description
            details: Additional context for debugging (record_id, topic, etc.)
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


# ============================================================================
# Operational Error Categories
# ============================================================================


class PermanentError(CatalogError):
    """
    Permanent error that will never succeed even with retries.

    ABORT: Don't retry - fix the input or system state first.
    """
    pass


# ============================================================================
# Resource Not Found Errors (404 class)
# ============================================================================


class ResourceNotFoundError(PermanentError):
    """Base for all "resource not found" errors."""
    pass


class RecordNotFoundError(ResourceNotFoundError):
    """
    No record with the requested id exists in the catalog.

    RECOVERY: Verify the id, or check if the record was already deleted.
    """

    def __init__(self, record_id: int):
        super().__init__(
            f"Record {record_id} not found",
            details={"record_id": record_id},
        )
        self.record_id = record_id


# ============================================================================
# Subscription Errors
# ============================================================================


class SubscriptionClosedError(CatalogError):
    """
    Read attempted on a subscription that has been unsubscribed.

    RECOVERY: Subscribe again. Past events are not replayed.
    """
    pass
