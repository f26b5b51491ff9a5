"""
Typed domain errors raised by the service layer.

Services never deal in HTTP status codes; ``forum.main`` registers the
exception handlers that translate these into responses.
"""


class ForumError(Exception):
    """Base class for every error a service may raise on purpose."""

    default_message = "Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(ForumError):
    """Entity is absent, or hidden from the actor by the visibility policy."""

    default_message = "Not found"


class ForbiddenError(ForumError):
    """Authenticated but not allowed, including lock violations."""

    default_message = "Forbidden"


class BadRequestError(ForumError):
    default_message = "Bad request"


class ConflictError(ForumError):
    default_message = "Conflict"


class UnauthorizedError(ForumError):
    default_message = "Unauthorized"
