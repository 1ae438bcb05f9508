"""Domain error taxonomy.

Every error raised on purpose by the repositories, services and
interactors is a `DomainError`. Ignorable errors are expected,
client-attributable conditions: they map to a 4xx response and are only
logged. Anything else is wrapped into an `InternalError`, reported to the
error reporter and answered with a bare 500.
"""

from typing import Optional


class DomainError(Exception):
    """Base class for errors the HTTP layer knows how to answer."""
    status_code = 400
    ignorable = True
    default_message = "request could not be processed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class UserDoesNotExist(DomainError):
    status_code = 401
    default_message = "user does not exist"


class PasswordIncorrect(DomainError):
    status_code = 401
    default_message = "invalid password supplied"


class InvalidPassword(DomainError):
    default_message = "password does not meet the requirements"


class UserIDPresent(DomainError):
    default_message = "user with an id could not be created"


class EmailAlreadyTaken(DomainError):
    status_code = 409
    default_message = "email is already registered"


class NotFound(DomainError):
    status_code = 404
    default_message = "not found"


class InvalidContest(DomainError):
    default_message = "contest is invalid"


class ContestIDMissing(DomainError):
    default_message = "contest id is missing"


class OpenContestAlreadyExists(DomainError):
    status_code = 409
    default_message = "an open contest already exists"


class ContestNotOpen(DomainError):
    default_message = "contest is not open for registration"


class ContestNotRunning(DomainError):
    default_message = "contest is not running"


class InvalidRegistration(DomainError):
    default_message = "registration is invalid"


class InvalidProfile(DomainError):
    default_message = "profile is invalid"


class AlreadyRegistered(DomainError):
    status_code = 409
    default_message = "user is already registered for this contest"


class InvalidContestLog(DomainError):
    default_message = "contest log is invalid"


class ContestLogIDMissing(DomainError):
    default_message = "contest log id is missing"


class UserNotRegistered(DomainError):
    default_message = "user is not registered for this contest and language"


class Forbidden(DomainError):
    status_code = 403
    default_message = "forbidden"


class Unauthorized(DomainError):
    status_code = 401
    default_message = "unauthorized"


class InternalError(DomainError):
    """A persistence, signing or serialization failure with context."""
    status_code = 500
    ignorable = False
    default_message = "internal error"


def wrap_error(exc: Exception, context: str) -> DomainError:
    """Return `exc` when it is already a domain error, else wrap it.

    The caller is expected to ``raise wrap_error(e, ...) from e`` so the
    original cause stays chained.
    """
    if isinstance(exc, DomainError):
        return exc
    return InternalError(f"{context}: {exc.__class__.__name__}: {exc}")
