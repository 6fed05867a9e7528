"""
Domain errors for registration, login, sessions and note access.

All of them are recovered at the request boundary and turned into a
redirect; none is ever shown to the client verbatim.
"""


class NotesError(Exception):
    """Base class for application errors."""


class InvalidInput(NotesError):
    """A required field was blank."""


class UsernameTaken(NotesError):
    """Registration hit the unique constraint on username."""


class AuthenticationFailed(NotesError):
    """Login failed. Callers must not tell the user which subclass it was."""


class UnknownUser(AuthenticationFailed):
    pass


class WrongPassword(AuthenticationFailed):
    pass


class SessionInvalid(NotesError):
    """Stored session is missing, expired or corrupt."""


class LoginRequired(NotesError):
    """A protected route was hit without an authenticated session."""


class NotOwner(NotesError):
    """A request tried to act on behalf of another user."""
