"""Error taxonomy for discovery, validation and application of changes.

Every error surfaces immediately to the caller. Nothing here retries or
rolls back; a failed pass is recovered by running the pass again, at which
point discovery observes whatever was partially applied.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from azure.core.exceptions import AzureError, ResourceNotFoundError


class ReconcileError(Exception):
    """Base class for reconciliation failures."""

    pass


class DiscoveryError(ReconcileError):
    """Raised when listing actual state fails.

    Absence of a resource is not an error; find() returns None for that.
    """

    pass


class ChangeValidationError(ReconcileError):
    """Raised when a computed change is not allowed."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class RequiredFieldError(ChangeValidationError):
    """A field required for creation is absent on the desired resource."""

    def __init__(self, field: str) -> None:
        super().__init__(field, f"Field is required: {field}")


class CannotChangeFieldError(ChangeValidationError):
    """An immutable field differs between actual and desired state."""

    def __init__(self, field: str) -> None:
        super().__init__(field, f"Field cannot be changed: {field}")


class ApplyError(ReconcileError):
    """Raised when a create, update or delete against the backend fails."""

    pass


class BackendError(ReconcileError):
    """Failure reported by the cloud API, wrapped with call context.

    Attributes:
        operation: Logical operation name (e.g. "record_sets.delete").
        resource: Identifying path of the resource the call targeted.
        status_code: HTTP status reported by the service, if any.
    """

    def __init__(
        self,
        operation: str,
        resource: str,
        message: str,
        status_code: int | None = None,
        not_found: bool = False,
    ) -> None:
        super().__init__(f"{operation} failed for {resource}: {message}")
        self.operation = operation
        self.resource = resource
        self.status_code = status_code
        self._not_found = not_found

    @property
    def is_not_found(self) -> bool:
        """True when the service reported the target as missing."""
        return self._not_found or self.status_code == 404


@contextmanager
def backend_call(operation: str, resource: str) -> Iterator[None]:
    """Translate Azure SDK failures raised inside the block into BackendError.

    Pagers are lazy, so list calls must be drained inside the block for
    page-fetch failures to be translated as well.
    """
    try:
        yield
    except AzureError as e:
        raise BackendError(
            operation,
            resource,
            getattr(e, "message", None) or str(e),
            status_code=getattr(e, "status_code", None),
            not_found=isinstance(e, ResourceNotFoundError),
        ) from e
