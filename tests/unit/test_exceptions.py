"""
Unit tests for pykadm5.core.exceptions.
"""

import builtins

import pytest

from pykadm5.core.exceptions import (
    AlreadyExists,
    ConnectionError,
    ConversionError,
    HandleBusy,
    HandleClosed,
    InvalidArgument,
    KAdminError,
    LibraryError,
    LibraryLoadError,
    NotFound,
)


class TestKAdminError:
    """Tests for the base error."""

    def test_message_only(self):
        """Without a code the message is the whole string."""
        error = KAdminError("Something broke")
        assert str(error) == "Something broke"
        assert error.code is None

    def test_message_with_code(self):
        """The code is appended to the rendered message."""
        error = KAdminError("Something broke", 43787520)
        assert str(error) == "Something broke (code: 43787520)"
        assert error.message == "Something broke"

    @pytest.mark.parametrize(
        "cls",
        [
            ConnectionError,
            NotFound,
            AlreadyExists,
            InvalidArgument,
            ConversionError,
            LibraryLoadError,
            HandleClosed,
            HandleBusy,
        ],
    )
    def test_taxonomy(self, cls):
        """Every error is a KAdminError."""
        assert issubclass(cls, KAdminError)

    def test_connection_error_is_not_builtin(self):
        """The package's ConnectionError does not shadow catching OSError."""
        assert not issubclass(ConnectionError, builtins.ConnectionError)


class TestLibraryError:
    """Tests for unmapped native codes."""

    def test_carries_code_and_message(self):
        error = LibraryError(43787542, "Password is too short")
        assert error.code == 43787542
        assert error.message == "Password is too short"
        assert isinstance(error, KAdminError)


class TestHandleErrors:
    """Tests for handle state errors."""

    def test_default_messages(self):
        assert str(HandleClosed()) == "kadmin handle is closed"
        assert str(HandleBusy()) == "kadmin handle is already in use"

    def test_custom_message(self):
        assert str(HandleClosed("gone")) == "gone"
