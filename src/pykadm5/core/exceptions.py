"""
pykadm5 Exception Types

Typed errors raised by the kadm5 bindings. Every native status code that
is not success ends up as one of these.
"""

from typing import Optional


class KAdminError(Exception):
    """Base exception for all pykadm5 errors."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"{self.message} (code: {self.code})"


class ConnectionError(KAdminError):  # noqa: A001
    """
    Authentication or network failure.

    Raised by every connect variant when the native initialisation call
    fails, and by operations whose status indicates the admin server
    could not be reached or the session is not authenticated.
    """

    pass


class NotFound(KAdminError):
    """The principal or policy does not exist."""

    pass


class AlreadyExists(KAdminError):
    """The principal or policy already exists."""

    pass


class InvalidArgument(KAdminError):
    """
    Malformed name, policy, or parameter.

    Raised both for values rejected by the native library and for values
    rejected before any native call is made.
    """

    pass


class ConversionError(KAdminError):
    """
    Marshalling between native structures and owned values failed.

    Invalid text encoding, embedded NUL bytes, out-of-range timestamps or
    durations, and unknown encryption or salt types all land here.
    """

    pass


class LibraryError(KAdminError):
    """
    Unmapped native status code.

    Always carries the native numeric code and the message verbatim.
    """

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message, code)


class LibraryLoadError(KAdminError):
    """The native kadm5 library could not be located or loaded."""

    pass


class HandleClosed(KAdminError):
    """An operation was attempted on a handle that was already torn down."""

    def __init__(self, message: str = "kadmin handle is closed") -> None:
        super().__init__(message)


class HandleBusy(KAdminError):
    """
    A native call is already in flight on this handle.

    libkadm5 handles are not reentrant. Share a handle between threads
    through ``SyncKAdmin`` instead.
    """

    def __init__(self, message: str = "kadmin handle is already in use") -> None:
        super().__init__(message)
