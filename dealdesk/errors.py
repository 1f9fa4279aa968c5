"""Domain error taxonomy shared by services and the HTTP layer."""

from __future__ import annotations


class DomainError(Exception):
    """Base class for failures raised by the service layer."""

    status_code = 500
    kind = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(DomainError):
    """Entity is absent or belongs to another organization."""

    status_code = 404
    kind = "not_found"


class ConflictError(DomainError):
    status_code = 409
    kind = "conflict"


class BadRequestError(DomainError):
    """Referenced entity exists but cannot be used for this operation."""

    status_code = 400
    kind = "bad_request"


class LimitExceededError(BadRequestError):
    kind = "limit_exceeded"

    def __init__(self, resource: str, limit: int, usage: int) -> None:
        self.resource = resource
        self.limit = limit
        self.usage = usage
        super().__init__(f"Limit reached for resource: {resource}")


class ForbiddenError(DomainError):
    status_code = 403
    kind = "forbidden"


class UnauthorizedError(DomainError):
    status_code = 401
    kind = "unauthorized"
