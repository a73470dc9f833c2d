class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ScheduleValidationError(AppError):
    """Raised when a scheduling request is malformed before any conflict check can run."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )
        self.resource_type = resource_type
        self.resource_id = resource_id

class PartialSpanError(AppError):
    """Raised when a span rollback could not remove every already-created member.

    The span invariant is broken at this point and needs operator attention.
    """
    def __init__(self, span_id: str, orphaned_ids: list[str], cause: str):
        super().__init__(
            f"Spanned class {span_id} was only partially rolled back",
            status_code=500,
            details={
                "type": "partial_span_failure",
                "span_id": span_id,
                "orphaned_ids": list(orphaned_ids),
                "cause": cause,
            },
        )
        self.span_id = span_id
        self.orphaned_ids = list(orphaned_ids)


class UniquenessViolation(Exception):
    """Raised by a commitment store when a write collides with an existing claim."""
    def __init__(self, resource_kind: str, resource_id: str, existing_commitment_id: str | None = None):
        self.resource_kind = resource_kind
        self.resource_id = resource_id
        self.existing_commitment_id = existing_commitment_id
        super().__init__(f"{resource_kind} {resource_id} is already claimed by {existing_commitment_id}")
