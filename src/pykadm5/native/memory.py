"""
pykadm5 Native Memory Scopes

Every native allocation handed to us by libkadm5 or libkrb5 must be
released with the free routine matching its type, exactly once. A
``NativeScope`` binds each allocation to its release routine at the
moment it is obtained and runs all pending releases, in reverse order,
when the scope exits, on success and on error alike.

Python-owned buffers (``ffi.new``) passed into native calls are kept
alive by the scope for the same duration. Secret buffers are wiped
before they are dropped.

Example:
    with NativeScope() as scope:
        principal = context.parse_name(scope, "user@EXAMPLE.ORG")
        ...
    # krb5_free_principal has run here
"""

from __future__ import annotations

from contextlib import ExitStack
from typing import Any, Callable, List, Optional

import attrs
import structlog

from pykadm5.core.exceptions import ConversionError
from pykadm5.native.cdefs import ffi

logger = structlog.get_logger()


# =============================================================================
# RELEASE TOKENS
# =============================================================================


@attrs.define
class NativeRelease:
    """
    A pending release of one native allocation.

    Calling the token releases the allocation immediately; the scope then
    skips it on exit. Calling it again does nothing.
    """

    kind: str
    _release: Callable[..., Any] = attrs.field(repr=False)
    _args: tuple = attrs.field(repr=False, default=())
    _journal: Optional[List[str]] = attrs.field(repr=False, default=None)
    fired: bool = False

    def __call__(self) -> None:
        if self.fired:
            return
        self.fired = True
        logger.debug("native_release", kind=self.kind)
        if self._journal is not None:
            self._journal.append(self.kind)
        self._release(*self._args)


# =============================================================================
# SCOPE
# =============================================================================


@attrs.define
class NativeScope:
    """
    Scoped ownership of native allocations.

    Attributes:
        released: Kinds of the allocations released so far, in order
    """

    _stack: ExitStack = attrs.Factory(ExitStack)
    _kept: List[Any] = attrs.Factory(list)
    released: List[str] = attrs.Factory(list)
    _closed: bool = False

    def __enter__(self) -> NativeScope:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Run every pending release and drop kept buffers."""
        if self._closed:
            return
        self._closed = True
        try:
            self._stack.close()
        finally:
            self._kept.clear()

    def adopt(self, kind: str, release: Callable[..., Any], *args: Any) -> NativeRelease:
        """
        Take ownership of a native allocation.

        Args:
            kind: Short name of the allocation, used for logging
            release: The native free routine for this allocation type
            *args: Arguments passed to ``release``

        Returns:
            A token that releases the allocation early when called
        """
        if self._closed:
            # Nothing would ever run the release, so do it now
            token = NativeRelease(kind, release, args)
            token()
            raise RuntimeError("native scope is already closed")

        token = NativeRelease(kind, release, args, self.released)
        self._stack.callback(token)
        return token

    def keep(self, cdata: Any) -> Any:
        """Keep a Python-owned buffer alive until the scope exits."""
        self._kept.append(cdata)
        return cdata

    def new(self, ctype: str, init: Any = None) -> Any:
        """Allocate a zeroed ``ctype`` owned by this scope."""
        return self.keep(ffi.new(ctype, init))

    def cstring(self, value: Optional[str]) -> Any:
        """
        Copy ``value`` into a NUL-terminated ``char[]`` owned by the scope.

        ``None`` becomes ``NULL``.

        Raises:
            ConversionError: if the text contains a NUL character
        """
        if value is None:
            return ffi.NULL
        return self.new("char[]", encode_c_string(value))

    def secret(self, value: str) -> Any:
        """
        Copy a secret into a native buffer that is zeroed on scope exit.
        """
        data = encode_c_string(value)
        buffer = self.new("char[]", data)
        size = len(data)

        def wipe() -> None:
            ffi.memmove(buffer, b"\0" * size, size)

        self._stack.callback(wipe)
        return buffer


def encode_c_string(value: str) -> bytes:
    """
    Encode text for a C string argument.

    Raises:
        ConversionError: if the text contains a NUL character
    """
    data = value.encode("utf-8")
    if b"\0" in data:
        raise ConversionError("String contains an embedded NUL character")
    return data
