"""
Unit tests for pykadm5.native.memory.
"""

import pytest

from pykadm5.core.exceptions import ConversionError
from pykadm5.native.cdefs import ffi
from pykadm5.native.memory import NativeScope, encode_c_string


class TestNativeScope:
    """Tests for scoped release of native allocations."""

    def test_releases_in_reverse_order(self):
        calls = []
        with NativeScope() as scope:
            scope.adopt("first", calls.append, "first")
            scope.adopt("second", calls.append, "second")
            assert calls == []
        assert calls == ["second", "first"]
        assert scope.released == ["second", "first"]

    def test_releases_on_error(self):
        """Pending releases run when the block raises."""
        calls = []
        with pytest.raises(ValueError):
            with NativeScope() as scope:
                scope.adopt("buffer", calls.append, "buffer")
                raise ValueError("boom")
        assert calls == ["buffer"]

    def test_early_release_runs_once(self):
        calls = []
        with NativeScope() as scope:
            token = scope.adopt("buffer", calls.append, "buffer")
            token()
            token()
            assert token.fired
        assert calls == ["buffer"]
        assert scope.released == ["buffer"]

    def test_close_is_idempotent(self):
        calls = []
        scope = NativeScope()
        scope.adopt("buffer", calls.append, "buffer")
        scope.close()
        scope.close()
        assert calls == ["buffer"]

    def test_adopt_after_close_releases_immediately(self):
        """An allocation handed to a closed scope is not leaked."""
        calls = []
        scope = NativeScope()
        scope.close()
        with pytest.raises(RuntimeError):
            scope.adopt("late", calls.append, "late")
        assert calls == ["late"]

    def test_failing_release_does_not_skip_others(self):
        calls = []

        def broken():
            raise OSError("release failed")

        with pytest.raises(OSError):
            with NativeScope() as scope:
                scope.adopt("first", calls.append, "first")
                scope.adopt("broken", broken)
        assert calls == ["first"]


class TestBuffers:
    """Tests for Python-owned buffers."""

    def test_cstring(self):
        with NativeScope() as scope:
            buffer = scope.cstring("alice@EXAMPLE.ORG")
            assert ffi.string(buffer) == b"alice@EXAMPLE.ORG"

    def test_cstring_none_is_null(self):
        with NativeScope() as scope:
            assert scope.cstring(None) == ffi.NULL

    def test_cstring_rejects_nul(self):
        with NativeScope() as scope:
            with pytest.raises(ConversionError):
                scope.cstring("alice\0@EXAMPLE.ORG")

    def test_secret_wiped_on_exit(self):
        """Secret buffers are zeroed before the scope lets go of them."""
        with NativeScope() as scope:
            buffer = scope.secret("hunter2")
            assert ffi.string(buffer) == b"hunter2"
        assert bytes(ffi.buffer(buffer)) == b"\0" * 8

    def test_secret_wiped_on_error(self):
        with pytest.raises(RuntimeError):
            with NativeScope() as scope:
                buffer = scope.secret("hunter2")
                raise RuntimeError("call failed")
        assert ffi.string(buffer) == b""

    def test_new_is_zeroed(self):
        with NativeScope() as scope:
            ent = scope.new("kadm5_principal_ent_rec *")
            assert ent.principal == ffi.NULL
            assert ent.kvno == 0


class TestEncodeCString:
    """Tests for encode_c_string."""

    def test_utf8(self):
        assert encode_c_string("josé") == "josé".encode("utf-8")

    def test_embedded_nul(self):
        with pytest.raises(ConversionError):
            encode_c_string("a\0b")
