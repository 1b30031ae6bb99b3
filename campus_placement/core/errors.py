"""
Domain errors raised by the placement services.

Every rejected operation raises a subclass of PlacementError carrying a
human-readable reason. The HTTP layer maps status_code straight onto the
response; service callers can catch by kind.
"""

from pydantic import ValidationError


class PlacementError(Exception):
    """Base class for all rejected placement operations."""

    status_code = 400
    kind = "error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(PlacementError):
    """Entity does not exist, or exists but is not visible to the caller."""

    status_code = 404
    kind = "not_found"


class ConflictError(PlacementError):
    """Duplicate application, account, or like."""

    status_code = 409
    kind = "conflict"


class ValidationFailedError(PlacementError):
    """Schema or range violation in caller-supplied data."""

    status_code = 400
    kind = "validation_failed"


class IneligibleOperationError(PlacementError):
    """The operation is well-formed but not allowed in the current state."""

    status_code = 400
    kind = "ineligible_operation"


class IllegalTransitionError(IneligibleOperationError):
    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move application from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class IllegalWithdrawalError(IneligibleOperationError):
    def __init__(self, current: str):
        super().__init__(f"Cannot withdraw after processing has started (status '{current}')")
        self.current = current


class InvalidCredentialsError(PlacementError):
    status_code = 401
    kind = "invalid_credentials"


class ExternalServiceFailure(PlacementError):
    """
    The resume/job matcher was unreachable or returned unusable output.

    Raised inside the matcher client only; the analysis service recovers
    with the default payload, so callers never see it.
    """

    status_code = 502
    kind = "external_service_failure"


def describe_errors(errors) -> str:
    """First pydantic error as "field: message"; request locations like "body" are dropped."""
    first = errors[0] if errors else {}
    loc = list(first.get("loc", ()))
    if loc and loc[0] in ("body", "query", "path"):
        loc = loc[1:]
    location = ".".join(str(part) for part in loc)
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def validate_payload(model_cls, payload):
    """
    Coerce a dict (or an existing model instance) into model_cls.

    Pydantic errors become ValidationFailedError with the first message,
    so service callers only ever deal with the domain taxonomy.
    """
    if isinstance(payload, model_cls):
        return payload
    try:
        return model_cls.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailedError(describe_errors(exc.errors())) from exc
