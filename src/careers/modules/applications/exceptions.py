"""
Applications Service Errors

ApplicationServiceError subclasses carry the machine-readable code and HTTP
status the admin router reports. ApplicationFailure subclasses have no HTTP
status: they are recorded and logged by the services and never reach a
caller.
"""

from typing import Any


class ApplicationServiceError(Exception):
    """Base exception for application service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class ApplicationValidationError(ApplicationServiceError):
    """Raised when a request carries a malformed source, id or status."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
        )


class ApplicationNotFoundError(ApplicationServiceError):
    """Raised when no application matches (source, id)."""

    def __init__(self, source: Any = None, application_id: int | None = None):
        if source is not None and application_id is not None:
            source_value = getattr(source, "value", source)
            message = f"Application {source_value}/{application_id} not found"
        else:
            message = "Application not found"
        super().__init__(
            message=message,
            error_code="APPLICATION_NOT_FOUND",
            status_code=404,
        )


class InvalidStateTransitionError(ApplicationServiceError):
    """
    Raised when an application is no longer pending.

    Covers both re-deciding an already decided application and losing a
    race against a concurrent decision.
    """

    def __init__(self, current_status: Any, requested_status: Any):
        self.current_status = current_status
        self.requested_status = requested_status
        current = getattr(current_status, "value", current_status)
        requested = getattr(requested_status, "value", requested_status)
        super().__init__(
            message=f"Cannot move application from '{current}' to '{requested}'. "
            "Only pending applications can be accepted or rejected.",
            error_code="INVALID_STATE_TRANSITION",
            status_code=409,
        )


class AmbiguousApplicationError(ApplicationServiceError):
    """Raised when (source, id) matches rows in more than one partition."""

    def __init__(self, source: Any, application_id: int, partitions: list[Any]):
        self.partitions = partitions
        source_value = getattr(source, "value", source)
        names = ", ".join(getattr(p, "value", str(p)) for p in partitions)
        super().__init__(
            message=f"Application {source_value}/{application_id} exists in several "
            f"partitions ({names}). Pass the partition to select one.",
            error_code="AMBIGUOUS_APPLICATION",
            status_code=409,
        )


# ============================================
# Absorbed failures (logged, never sent to a caller)
# ============================================


class ApplicationFailure(Exception):
    """Base for failures the services record and log instead of raising."""

    def __init__(self, message: str, error_code: str):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class PartialAggregationFailure(ApplicationFailure):
    """One partition could not be listed; its rows are omitted from the result."""

    def __init__(self, partition: Any, cause: BaseException):
        self.partition = partition
        self.cause = cause
        partition_value = getattr(partition, "value", partition)
        reason = str(cause) or type(cause).__name__
        super().__init__(
            message=f"Partition '{partition_value}' unavailable: {reason}",
            error_code="PARTITION_UNAVAILABLE",
        )


class TransportFailure(ApplicationFailure):
    """The mail transport failed or did not answer in time."""

    def __init__(self, to_address: str, reason: str = "transport reported failure"):
        self.to_address = to_address
        super().__init__(
            message=f"Could not deliver notification to {to_address}: {reason}",
            error_code="TRANSPORT_FAILURE",
        )
