"""
Core exception hierarchy.

Every service in the core raises one of these types. Blueprints register
handlers against them once and get a consistent structured body
(``{"error", "code", "kind"}``) and HTTP status everywhere. No service lets
an opaque exception cross the core boundary.

Usage:
    from prioriwise.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Job", resource_id=42, owner_id="user_1")
    raise ValidationError("Task is not pending", details={"task_id": 7})
"""


class CoreError(Exception):
    """Base class; `kind` names the failure in structured responses."""

    kind = "CoreError"

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": str(self)}


class NotFoundError(CoreError):
    """Raised when a referenced Job, Task, PI or QBO does not exist for the owner.

    Used for BOTH genuinely missing records, soft-deleted records AND rows
    of another owner. A foreign-owner row is indistinguishable from a
    missing one.

    Args:
        resource: Human-readable model name (e.g. "Job", "Task").
        resource_id: The PK that was looked up.
        owner_id: Optional - the scope that was enforced. For debug logging only.
    """

    kind = "NotFoundError"

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        owner_id: str | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.owner_id = owner_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(CoreError):
    """Raised when a sequencing request would break the next-task invariant.

    Examples: task not pending, task not in job, moving the next task,
    reorder id set mismatch. The data was well-formed but the operation is
    refused; nothing is written.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    kind = "ValidationError"

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.details:
            body["details"] = self.details
        return body


class ComputationSkipped(CoreError):
    """A QBO or PI could not contribute to a propagation run.

    Raised by the impact engine's range guards (zero or non-finite progress
    range) and caught inside the run: the entity contributes exactly 0 and
    the run continues. Never escapes the engine; collected for diagnostics.
    """

    kind = "ComputationSkipped"

    def __init__(self, resource: str, resource_id: int | None, reason: str) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.reason = reason
        super().__init__(f"{resource} id={resource_id} skipped: {reason}")

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "resource": self.resource,
            "resource_id": self.resource_id,
            "reason": self.reason,
        }


class StoreUnavailable(CoreError):
    """The entity store could not be read or written.

    Maps to HTTP 503. Callers should retry later; the core never retries.

    Args:
        operation: Name of the core operation that failed.
        message: Underlying cause, already safe to show.
    """

    kind = "StoreUnavailable"

    def __init__(self, operation: str, message: str = "entity store unavailable") -> None:
        self.operation = operation
        super().__init__(f"{operation}: {message}")
