"""Exceptions."""


class NoteboardError(RuntimeError):
    """Base class for failures that are reported back to the caller."""

    @property
    def kind(self) -> str:
        """Name of the failure kind, e.g. ``'DuplicateUsername'``."""
        return type(self).__name__

    @property
    def reason(self) -> str:
        """Human-readable message."""
        return str(self.args[0]) if self.args else self.kind


class NotFound(NoteboardError):
    """The requested account or note does not exist."""


class DuplicateUsername(NoteboardError):
    """An account with that username already exists."""


class DuplicateEmail(NoteboardError):
    """An account with that email address already exists."""


class EmailBanned(NoteboardError):
    """The email address is in the ban registry."""


class AlreadyBanned(NoteboardError):
    """The email address is already in the ban registry."""


class NotBanned(NoteboardError):
    """The email address is not in the ban registry."""


class CannotBanAdmin(NoteboardError):
    """Administrators must have their privileges revoked before a ban."""


class Forbidden(NoteboardError):
    """The requester may not see or change the resource."""


class AccountBanned(Forbidden):
    """The requesting account has been banned."""


class EmailNotVerified(Forbidden):
    """The requesting account has not verified its email address."""


class Unauthenticated(NoteboardError):
    """No usable identity was presented."""


class AuthenticationFailed(NoteboardError):
    """Failed to authenticate user with provided credentials."""


class TokenInvalidOrExpired(NoteboardError):
    """A verification or password reset token did not match or has expired."""


class ValidationError(NoteboardError):
    """Input could not be interpreted."""


class Unavailable(NoteboardError):
    """The database is temporarily unavailable."""
