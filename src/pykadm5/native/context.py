"""
pykadm5 Kerberos Context

The ``krb5_context`` a kadmin handle is bound to, plus the small set of
libkrb5 helpers needed around it: principal name parsing, default realm
lookup, credential cache access and error-string lookup.
"""

from __future__ import annotations

import threading
from typing import Any, Optional

import attrs
import structlog

from pykadm5.core.exceptions import KAdminError
from pykadm5.native.cdefs import KRB5_NT_SRV_HST, ffi
from pykadm5.native.conv import c_string
from pykadm5.native.errors import check_status, error_from_status
from pykadm5.native.library import Kadm5Library
from pykadm5.native.memory import NativeScope

logger = structlog.get_logger()

# libkrb5 context creation is not thread-safe on every platform. Reentrant
# for the same reason as the kadm5 init lock.
_CONTEXT_INIT_LOCK = threading.RLock()


@attrs.define(eq=False)
class Krb5Context:
    """
    An initialised ``krb5_context``.

    Created with ``Krb5Context.create`` and released exactly once with
    ``free``.

    Attributes:
        library: The library the context was created with
        context: The native ``krb5_context``
        default_realm: Default realm from krb5.conf, if one is configured
    """

    library: Kadm5Library
    context: Any
    default_realm: Optional[str] = None
    _freed: bool = False

    @classmethod
    def create(cls, library: Kadm5Library) -> Krb5Context:
        """
        Create a context with ``kadm5_init_krb5_context``.

        The kadm5 variant reads kdc.conf as well as krb5.conf when the
        server library is in use.

        Raises:
            KAdminError: if the native initialisation fails
        """
        out = ffi.new("krb5_context *")
        with _CONTEXT_INIT_LOCK:
            code = library.lib.kadm5_init_krb5_context(out)
        if code:
            # No context to ask for the message
            raise error_from_status(code, None)

        context = cls(library=library, context=out[0])
        try:
            context.default_realm = context._lookup_default_realm()
        except BaseException:
            context.free()
            raise
        logger.debug("krb5_context_created", default_realm=context.default_realm)
        return context

    @property
    def lib(self) -> Any:
        return self.library.lib

    @property
    def is_freed(self) -> bool:
        return self._freed

    def free(self) -> None:
        """Release the native context. Later calls do nothing."""
        if self._freed:
            return
        self._freed = True
        with _CONTEXT_INIT_LOCK:
            self.lib.krb5_free_context(self.context)
        logger.debug("krb5_context_freed")

    # =========================================================================
    # ERRORS
    # =========================================================================

    def error_message(self, code: int) -> str:
        """
        Look up the message for a krb5 error code.

        Only krb5 error tables are known to the library; kadm5 messages
        come from the fixed table in ``pykadm5.native.errors``.
        """
        message = self.lib.krb5_get_error_message(self.context, code)
        if message == ffi.NULL:
            return f"Unknown error code {code}"
        try:
            return ffi.string(message).decode("utf-8", errors="replace")
        finally:
            self.lib.krb5_free_error_message(self.context, message)

    def check(self, code: int) -> None:
        """Raise the mapped error for a nonzero status code."""
        check_status(code, self.error_message)

    # =========================================================================
    # PRINCIPAL NAMES
    # =========================================================================

    def parse_name(self, scope: NativeScope, name: str) -> Any:
        """
        Parse ``name`` into a ``krb5_principal`` owned by ``scope``.

        Raises:
            InvalidArgument: if the name is malformed
            ConversionError: if the name contains a NUL character
        """
        out = ffi.new("krb5_principal *")
        self.check(self.lib.krb5_parse_name(self.context, scope.cstring(name), out))
        scope.adopt("krb5_principal", self.lib.krb5_free_principal, self.context, out[0])
        return out[0]

    def unparse_name(self, principal: Any) -> Optional[str]:
        """Render a ``krb5_principal`` as text. ``NULL`` gives ``None``."""
        if principal == ffi.NULL:
            return None
        out = ffi.new("char **")
        self.check(self.lib.krb5_unparse_name(self.context, principal, out))
        try:
            return c_string(out[0])
        finally:
            self.lib.krb5_free_unparsed_name(self.context, out[0])

    def host_principal_name(self, service: str = "host") -> str:
        """Name of ``service/<fqdn>`` for the local host."""
        with NativeScope() as scope:
            out = ffi.new("krb5_principal *")
            self.check(
                self.lib.krb5_sname_to_principal(
                    self.context, ffi.NULL, scope.cstring(service), KRB5_NT_SRV_HST, out
                )
            )
            scope.adopt("krb5_principal", self.lib.krb5_free_principal, self.context, out[0])
            return self._required_name(out[0])

    # =========================================================================
    # CREDENTIAL CACHES
    # =========================================================================

    def open_ccache(self, scope: NativeScope, name: Optional[str] = None) -> Any:
        """
        Open a credential cache, closed when ``scope`` exits.

        Args:
            scope: Scope owning the cache handle
            name: Cache name such as ``FILE:/tmp/krb5cc_1000``; the default
                cache when omitted
        """
        out = ffi.new("krb5_ccache *")
        if name is None:
            code = self.lib.krb5_cc_default(self.context, out)
        else:
            code = self.lib.krb5_cc_resolve(self.context, scope.cstring(name), out)
        self.check(code)
        scope.adopt("krb5_ccache", self.lib.krb5_cc_close, self.context, out[0])
        return out[0]

    def ccache_principal_name(self, ccache: Any) -> str:
        """Name of the default principal stored in ``ccache``."""
        with NativeScope() as scope:
            out = ffi.new("krb5_principal *")
            self.check(self.lib.krb5_cc_get_principal(self.context, ccache, out))
            scope.adopt("krb5_principal", self.lib.krb5_free_principal, self.context, out[0])
            return self._required_name(out[0])

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _required_name(self, principal: Any) -> str:
        name = self.unparse_name(principal)
        if name is None:
            raise KAdminError("Native library returned no principal")
        return name

    def _lookup_default_realm(self) -> Optional[str]:
        out = ffi.new("char **")
        code = self.lib.krb5_get_default_realm(self.context, out)
        if code:
            logger.debug("default_realm_unavailable", code=code)
            return None
        try:
            return c_string(out[0])
        finally:
            self.lib.krb5_free_default_realm(self.context, out[0])
