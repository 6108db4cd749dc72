"""Workflow error taxonomy shared by services and routers.

Services raise these; ``main.py`` translates them into HTTP responses in one
place so the information-leakage policy stays consistent.
"""


class WorkflowError(Exception):
    """Base exception for case workflow errors."""

    status_code = 400
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthorized(WorkflowError):
    """No or invalid caller identity. Never carries detail."""

    status_code = 401
    default_detail = "Not authenticated"

    def __init__(self, detail: str | None = None):
        super().__init__(None)


class Forbidden(WorkflowError):
    """Caller is known but may not act on a resource whose existence is not sensitive."""

    status_code = 403
    default_detail = "Not permitted"


class NotFound(WorkflowError):
    """Resource absent, or owned by someone else."""

    status_code = 404
    default_detail = "Not found"


class ValidationError(WorkflowError):
    """Malformed input, with field-level detail."""

    status_code = 422
    default_detail = "Invalid input"

    def __init__(self, detail: str | None = None, fields: dict[str, str] | None = None):
        super().__init__(detail)
        self.fields = fields or {}


class Conflict(WorkflowError):
    """Operation would break a uniqueness or state invariant."""

    status_code = 409
    default_detail = "Conflict"


class Expired(WorkflowError):
    """Time-boxed credential past its validity window."""

    status_code = 410
    default_detail = "This link has expired. Please start again to get a new one."


class UpstreamFailure(WorkflowError):
    """An external collaborator (render, storage, email, SMS) failed."""

    status_code = 502
    default_detail = "A required service is unavailable. Please try again."


class RateLimited(WorkflowError):
    """Caller exceeded a throttle window."""

    status_code = 429
    default_detail = "Too many requests. Please wait and try again."
