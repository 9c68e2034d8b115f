"""
Domain error taxonomy.

Every failure surfaced by the collaboration engine is one of the exceptions
below. Each carries a stable machine-readable `kind` that clients branch on,
plus a human-readable message. The HTTP layer maps them to status codes in a
single exception handler (see `collab_engine.main`).
"""


class CollaborationError(Exception):
    """Base class of all typed failures returned to callers."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "detail": self.message}


class NotFoundError(CollaborationError):
    """The subject or the collaboration does not exist."""

    kind = "not_found"
    status_code = 404


class UnauthenticatedError(CollaborationError):
    """No actor identity was supplied with the request."""

    kind = "unauthenticated"
    status_code = 401


class ForbiddenError(CollaborationError):
    """The actor lacks the role or ownership the operation requires."""

    kind = "forbidden"
    status_code = 403


class InvalidStateError(CollaborationError):
    """The operation is not legal in the collaboration's current status."""

    kind = "invalid_state"
    status_code = 409


class ConflictError(CollaborationError):
    """A live collaboration already exists on the subject."""

    kind = "conflict"
    status_code = 409


class ValidationError(CollaborationError):
    """A parameter value is malformed (step name, role, compensation...)."""

    kind = "validation_error"
    status_code = 400


class ConcurrentModification(Exception):
    """
    Raised by a repository when a conditional write finds a newer revision.

    Internal only: the service layer catches it and re-runs the operation
    against a fresh snapshot.
    """
