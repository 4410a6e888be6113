"""Exceptions."""


class StoreUnavailable(RuntimeError):
    """The session store could not be reached."""


class UnknownSession(RuntimeError):
    """Failed to locate a session in the session store."""


class InvalidCookie(RuntimeError):
    """Session cookie is malformed or was not signed with our secret."""


class InvalidSessionData(RuntimeError):
    """Session data in the store is not a JSON object."""
