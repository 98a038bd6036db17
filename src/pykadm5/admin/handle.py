"""
pykadm5 Admin Handle

``KAdmin`` owns one initialised kadm5 server handle together with the
krb5 context it was created in, and exposes the principal and policy
operations on it.

Lifecycle:
- a ``connect_with_*`` function creates the context, calls the matching
  ``kadm5_init_*`` routine, and on failure frees the context and raises
  ``ConnectionError``
- ``close()``, leaving a ``with`` block, or garbage collection of the
  last reference runs ``kadm5_flush``, ``kadm5_destroy`` and
  ``krb5_free_context`` exactly once

A ``KAdmin`` is not safe to share between threads: libkadm5 handles are
not reentrant. Overlapping calls raise ``HandleBusy`` instead of reaching
the library. Wrap the handle in ``SyncKAdmin`` to share it.

Example:
    with connect_with_password("admin/admin@EXAMPLE.ORG", password) as kadmin:
        if not kadmin.principal_exists("alice@EXAMPLE.ORG"):
            kadmin.add_principal("alice@EXAMPLE.ORG")
"""

from __future__ import annotations

import threading
import weakref
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, Tuple

import attrs
import structlog
from returns.result import Failure

from pykadm5.admin.builders import (
    PolicyBuilder,
    PolicyModifier,
    PolicySpec,
    PrincipalBuilder,
    PrincipalKey,
    PrincipalModifier,
    PrincipalSpec,
)
from pykadm5.admin.params import DbArgs, Params
from pykadm5.config import KAdminConfig
from pykadm5.core.exceptions import (
    ConnectionError,
    HandleBusy,
    HandleClosed,
    InvalidArgument,
    KAdminError,
)
from pykadm5.core.types import KAdminPrivileges, KeySaltList, Policy, Principal
from pykadm5.native import cdefs as c
from pykadm5.native.cdefs import ffi
from pykadm5.native.context import Krb5Context
from pykadm5.native.conv import (
    db_args_to_native,
    keysalts_to_native,
    name_list_from_native,
    params_to_native,
    policy_from_native,
    policy_to_native,
    principal_from_native,
    principal_to_native,
)
from pykadm5.native.errors import status_to_result
from pykadm5.native.library import Kadm5Library, KAdm5Variant, load_library
from pykadm5.native.memory import NativeScope

logger = structlog.get_logger()

# Held around kadm5 initialisation and teardown, which touch process-wide
# state inside libkadm5 (RPC and GSS-API setup). Reentrant because a
# garbage collected handle can be torn down while an init holds it.
_KADMIN_INIT_LOCK = threading.RLock()


# =============================================================================
# OPERATION SET
# =============================================================================


class KAdminOperations(ABC):
    """
    Operations shared by ``KAdmin`` and ``SyncKAdmin``.

    Existence checks are derived from the lookups: a missing record is an
    ordinary ``False``, never an error.
    """

    @abstractmethod
    def get_principal(self, name: str) -> Optional[Principal]:
        ...

    def principal_exists(self, name: str) -> bool:
        return self.get_principal(name) is not None

    @abstractmethod
    def add_principal(self, builder: PrincipalSpec, password: Optional[str] = None) -> None:
        ...

    @abstractmethod
    def modify_principal(self, modifier: PrincipalModifier) -> None:
        ...

    @abstractmethod
    def rename_principal(self, old_name: str, new_name: str) -> None:
        ...

    @abstractmethod
    def delete_principal(self, name: str) -> None:
        ...

    @abstractmethod
    def change_password(self, name: str, password: str) -> None:
        ...

    @abstractmethod
    def randkey_principal(
        self, name: str, keysalts: Optional[KeySaltList] = None, keepold: bool = False
    ) -> None:
        ...

    @abstractmethod
    def list_principals(self, query: Optional[str] = "*") -> List[str]:
        ...

    @abstractmethod
    def get_policy(self, name: str) -> Optional[Policy]:
        ...

    def policy_exists(self, name: str) -> bool:
        return self.get_policy(name) is not None

    @abstractmethod
    def add_policy(self, builder: PolicySpec) -> None:
        ...

    @abstractmethod
    def modify_policy(self, modifier: PolicyModifier) -> None:
        ...

    @abstractmethod
    def delete_policy(self, name: str) -> None:
        ...

    @abstractmethod
    def list_policies(self, query: Optional[str] = "*") -> List[str]:
        ...

    @abstractmethod
    def get_privileges(self) -> KAdminPrivileges:
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    def __enter__(self) -> Any:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


# =============================================================================
# HANDLE
# =============================================================================


def _destroy(library: Kadm5Library, context: Krb5Context, server_handle: Any) -> None:
    """Tear down a server handle and its context. Runs once per handle."""
    lib = library.lib
    try:
        with _KADMIN_INIT_LOCK:
            lib.kadm5_flush(server_handle)
            code = lib.kadm5_destroy(server_handle)
        if code:
            logger.warning("kadmin_destroy_failed", code=code)
    finally:
        context.free()
    logger.info("kadmin_destroyed", variant=library.variant.value)


@attrs.define(eq=False)
class KAdmin(KAdminOperations):
    """
    Exclusive owner of an initialised kadm5 server handle.

    Create instances with the ``connect_with_*`` functions.

    Attributes:
        library: The kadm5 library the handle belongs to
    """

    library: Kadm5Library
    _context: Krb5Context
    _server_handle: Any = attrs.field(repr=False)
    _in_flight: threading.Lock = attrs.Factory(threading.Lock)
    _finalizer: Any = attrs.field(default=None, init=False, repr=False)

    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def __attrs_post_init__(self) -> None:
        self._finalizer = weakref.finalize(
            self, _destroy, self.library, self._context, self._server_handle
        )

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    @property
    def default_realm(self) -> Optional[str]:
        return self._context.default_realm

    def close(self) -> None:
        """
        Destroy the native handle. Later calls do nothing.

        Raises:
            HandleBusy: if a native call is in flight on this handle
        """
        if not self._in_flight.acquire(blocking=False):
            raise HandleBusy()
        try:
            self._finalizer()
        finally:
            self._in_flight.release()

    @contextmanager
    def _native(self) -> Iterator[NativeScope]:
        """Guard one operation: open handle, nothing else in flight, scoped memory."""
        if not self._in_flight.acquire(blocking=False):
            raise HandleBusy()
        try:
            if not self._finalizer.alive:
                raise HandleClosed()
            with NativeScope() as scope:
                yield scope
        finally:
            self._in_flight.release()

    @property
    def _lib(self) -> Any:
        return self.library.lib

    def _check(self, code: int) -> None:
        self._context.check(code)

    # =========================================================================
    # PRINCIPALS
    # =========================================================================

    def get_principal(self, name: str) -> Optional[Principal]:
        """
        Fetch a principal.

        Returns:
            The principal, or None if it does not exist
        """
        with self._native() as scope:
            principal = self._context.parse_name(scope, name)
            ent = scope.new("kadm5_principal_ent_rec *")
            code = self._lib.kadm5_get_principal(
                self._server_handle,
                principal,
                ent,
                c.KADM5_PRINCIPAL_NORMAL_MASK | c.KADM5_TL_DATA,
            )
            result = status_to_result(code, self._context.error_message)
            if isinstance(result, Failure):
                error = result.failure()
                if error.code == c.KADM5_UNK_PRINC:
                    return None
                raise error
            # Frees the record's contents; the struct itself is ours
            scope.adopt(
                "kadm5_principal_ent", self._lib.kadm5_free_principal_ent, self._server_handle, ent
            )
            record = principal_from_native(self._context, ent)

        self._logger.debug("principal_fetched", principal=record.name)
        return record

    def add_principal(self, builder: PrincipalSpec, password: Optional[str] = None) -> None:
        """
        Create a principal.

        Args:
            builder: Name or ``PrincipalBuilder`` describing the principal
            password: Password to derive keys from

        Raises:
            AlreadyExists: if the principal exists
            InvalidArgument: if the key mode and password disagree
        """
        if isinstance(builder, str):
            builder = PrincipalBuilder(builder)
        key_mode = _resolve_key_mode(builder.key_mode, password)

        with self._native() as scope:
            ent, mask = principal_to_native(scope, self._context, builder.name, builder.changes)
            mask |= c.KADM5_PRINCIPAL
            if key_mode is PrincipalKey.NONE:
                mask |= c.KADM5_KEY_DATA
            n_keysalts, keysalts = keysalts_to_native(scope, builder.keysalts_list)
            secret = scope.secret(password) if key_mode is PrincipalKey.PASSWORD else ffi.NULL
            self._check(
                self._lib.kadm5_create_principal_3(
                    self._server_handle, ent, mask, n_keysalts, keysalts, secret
                )
            )

        self._logger.info(
            "principal_created", principal=builder.name, key=key_mode.name.lower(), mask=hex(mask)
        )

    def modify_principal(self, modifier: PrincipalModifier) -> None:
        """
        Apply the fields set on ``modifier``.

        A modifier with no fields set makes no native call. The native
        update is treated as all-or-nothing: on error no field is assumed
        to have changed.
        """
        with self._native() as scope:
            if not modifier.changes:
                self._logger.info("principal_modify_skipped", principal=modifier.name)
                return
            ent, mask = principal_to_native(scope, self._context, modifier.name, modifier.changes)
            self._check(self._lib.kadm5_modify_principal(self._server_handle, ent, mask))

        self._logger.info("principal_modified", principal=modifier.name, mask=hex(mask))

    def rename_principal(self, old_name: str, new_name: str) -> None:
        with self._native() as scope:
            source = self._context.parse_name(scope, old_name)
            target = self._context.parse_name(scope, new_name)
            self._check(self._lib.kadm5_rename_principal(self._server_handle, source, target))

        self._logger.info("principal_renamed", principal=old_name, new_name=new_name)

    def delete_principal(self, name: str) -> None:
        """
        Delete a principal.

        Raises:
            NotFound: if the principal does not exist
        """
        with self._native() as scope:
            principal = self._context.parse_name(scope, name)
            self._check(self._lib.kadm5_delete_principal(self._server_handle, principal))

        self._logger.info("principal_deleted", principal=name)

    def change_password(self, name: str, password: str) -> None:
        """
        Set a new password on a principal.

        The password is copied into a native buffer that is wiped as soon
        as the call returns; it is not logged.
        """
        with self._native() as scope:
            principal = self._context.parse_name(scope, name)
            secret = scope.secret(password)
            self._check(self._lib.kadm5_chpass_principal(self._server_handle, principal, secret))

        self._logger.info("principal_password_changed", principal=name)

    def randkey_principal(
        self, name: str, keysalts: Optional[KeySaltList] = None, keepold: bool = False
    ) -> None:
        """
        Replace the keys of a principal with random keys.

        Args:
            name: Principal name
            keysalts: Key-salt pairs to generate; the server default when None
            keepold: Keep the previous keys alongside the new ones
        """
        with self._native() as scope:
            principal = self._context.parse_name(scope, name)
            n_keysalts, native_keysalts = keysalts_to_native(scope, keysalts)
            self._check(
                self._lib.kadm5_randkey_principal_3(
                    self._server_handle,
                    principal,
                    1 if keepold else 0,
                    n_keysalts,
                    native_keysalts,
                    ffi.NULL,
                    ffi.NULL,
                )
            )

        self._logger.info("principal_randkey", principal=name, keepold=keepold)

    def list_principals(self, query: Optional[str] = "*") -> List[str]:
        """
        List principal names matching a glob (``*`` and ``?``).

        A query without ``@`` is matched within the default realm. Order
        is whatever the server returns.
        """
        with self._native() as scope:
            names = ffi.new("char ***")
            count = ffi.new("int *")
            self._check(
                self._lib.kadm5_get_principals(
                    self._server_handle, scope.cstring(query or "*"), names, count
                )
            )
            # One call frees every element and the array
            scope.adopt(
                "name_list", self._lib.kadm5_free_name_list, self._server_handle, names[0], count[0]
            )
            result = name_list_from_native(names[0], count[0])

        self._logger.debug("principals_listed", query=query, count=len(result))
        return result

    # =========================================================================
    # POLICIES
    # =========================================================================

    def get_policy(self, name: str) -> Optional[Policy]:
        """
        Fetch a policy.

        Returns:
            The policy, or None if it does not exist
        """
        with self._native() as scope:
            ent = scope.new("kadm5_policy_ent_rec *")
            code = self._lib.kadm5_get_policy(self._server_handle, scope.cstring(name), ent)
            result = status_to_result(code, self._context.error_message)
            if isinstance(result, Failure):
                error = result.failure()
                if error.code == c.KADM5_UNK_POLICY:
                    return None
                raise error
            scope.adopt("kadm5_policy_ent", self._lib.kadm5_free_policy_ent, self._server_handle, ent)
            record = policy_from_native(ent)

        self._logger.debug("policy_fetched", policy=record.name)
        return record

    def add_policy(self, builder: PolicySpec) -> None:
        """
        Create a policy.

        Raises:
            AlreadyExists: if the policy exists
        """
        if isinstance(builder, str):
            builder = PolicyBuilder(builder)

        with self._native() as scope:
            ent, mask = policy_to_native(scope, builder.name, builder.changes)
            mask |= c.KADM5_POLICY
            self._check(self._lib.kadm5_create_policy(self._server_handle, ent, mask))

        self._logger.info("policy_created", policy=builder.name, mask=hex(mask))

    def modify_policy(self, modifier: PolicyModifier) -> None:
        """Apply the fields set on ``modifier``; no native call when none are."""
        with self._native() as scope:
            if not modifier.changes:
                self._logger.info("policy_modify_skipped", policy=modifier.name)
                return
            ent, mask = policy_to_native(scope, modifier.name, modifier.changes)
            self._check(self._lib.kadm5_modify_policy(self._server_handle, ent, mask))

        self._logger.info("policy_modified", policy=modifier.name, mask=hex(mask))

    def delete_policy(self, name: str) -> None:
        """
        Delete a policy.

        Raises:
            NotFound: if the policy does not exist
        """
        with self._native() as scope:
            self._check(self._lib.kadm5_delete_policy(self._server_handle, scope.cstring(name)))

        self._logger.info("policy_deleted", policy=name)

    def list_policies(self, query: Optional[str] = "*") -> List[str]:
        """List policy names matching a glob."""
        with self._native() as scope:
            names = ffi.new("char ***")
            count = ffi.new("int *")
            self._check(
                self._lib.kadm5_get_policies(
                    self._server_handle, scope.cstring(query or "*"), names, count
                )
            )
            scope.adopt(
                "name_list", self._lib.kadm5_free_name_list, self._server_handle, names[0], count[0]
            )
            result = name_list_from_native(names[0], count[0])

        self._logger.debug("policies_listed", query=query, count=len(result))
        return result

    # =========================================================================
    # MISC
    # =========================================================================

    def get_privileges(self) -> KAdminPrivileges:
        """Privileges the authenticated client holds on the admin server."""
        with self._native():
            privs = ffi.new("long *")
            self._check(self._lib.kadm5_get_privs(self._server_handle, privs))
            return KAdminPrivileges(privs[0])


def _resolve_key_mode(mode: Optional[PrincipalKey], password: Optional[str]) -> PrincipalKey:
    if mode is None:
        mode = PrincipalKey.RANDOM if password is None else PrincipalKey.PASSWORD
    if mode is PrincipalKey.PASSWORD and password is None:
        raise InvalidArgument("A password is required to create a principal with a password key")
    if mode is not PrincipalKey.PASSWORD and password is not None:
        raise InvalidArgument(f"A password cannot be used with key mode {mode.name}")
    return mode


# =============================================================================
# CONNECTING
# =============================================================================

# (context, scope, service, params, db_args, out) -> (client name, native init call)
Initializer = Callable[
    [Krb5Context, NativeScope, Any, Any, Any, Any], Tuple[str, Callable[[], int]]
]


def _open_library(config: KAdminConfig, library: Optional[Kadm5Library]) -> Kadm5Library:
    if library is not None:
        return library
    return load_library(config.variant, config.library_path)


def _establish(
    method: str,
    library: Kadm5Library,
    config: KAdminConfig,
    params: Optional[Params],
    db_args: Optional[DbArgs],
    initializer: Initializer,
) -> KAdmin:
    """
    Create a context and initialise a server handle in it.

    Every failure leaves no native state behind and surfaces as
    ``ConnectionError`` chained from the underlying error.
    """
    try:
        context = Krb5Context.create(library)
    except ConnectionError:
        raise
    except KAdminError as e:
        raise ConnectionError(e.message, e.code) from e

    try:
        with NativeScope() as scope:
            out = ffi.new("void **")
            native_params = params_to_native(scope, params)
            native_db_args = db_args_to_native(scope, db_args)
            service = scope.cstring(config.service_name)
            client_name, init = initializer(
                context, scope, service, native_params, native_db_args, out
            )
            with _KADMIN_INIT_LOCK:
                code = init()
            context.check(code)
    except BaseException as e:
        context.free()
        if isinstance(e, KAdminError) and not isinstance(e, ConnectionError):
            logger.warning("kadmin_connect_failed", method=method, code=e.code)
            raise ConnectionError(e.message, e.code) from e
        raise

    kadmin = KAdmin(library, context, out[0])
    logger.info(
        "kadmin_connected", method=method, client=client_name, variant=library.variant.value
    )
    return kadmin


def connect_with_password(
    client_name: str,
    password: str,
    params: Optional[Params] = None,
    db_args: Optional[DbArgs] = None,
    *,
    config: Optional[KAdminConfig] = None,
    library: Optional[Kadm5Library] = None,
) -> KAdmin:
    """
    Authenticate to the admin server with a principal name and password.

    Raises:
        ConnectionError: if authentication or the connection fails
        LibraryLoadError: if the kadm5 library cannot be loaded
    """
    config = config or KAdminConfig()
    library = _open_library(config, library)

    def initializer(context, scope, service, native_params, native_db_args, out):
        client = scope.cstring(client_name)
        secret = scope.secret(password)
        return client_name, lambda: library.lib.kadm5_init_with_password(
            context.context, client, secret, service, native_params,
            c.KADM5_STRUCT_VERSION, config.api_version, native_db_args, out,
        )

    return _establish("password", library, config, params, db_args, initializer)


def connect_with_keytab(
    client_name: Optional[str] = None,
    keytab: Optional[str] = None,
    params: Optional[Params] = None,
    db_args: Optional[DbArgs] = None,
    *,
    config: Optional[KAdminConfig] = None,
    library: Optional[Kadm5Library] = None,
) -> KAdmin:
    """
    Authenticate with keys from a keytab.

    Args:
        client_name: Principal to authenticate as; ``host/<fqdn>`` when omitted
        keytab: Keytab path; ``config.default_keytab`` when omitted
    """
    config = config or KAdminConfig()
    library = _open_library(config, library)

    def initializer(context, scope, service, native_params, native_db_args, out):
        name = client_name or context.host_principal_name()
        client = scope.cstring(name)
        native_keytab = scope.cstring(keytab or config.default_keytab)
        return name, lambda: library.lib.kadm5_init_with_skey(
            context.context, client, native_keytab, service, native_params,
            c.KADM5_STRUCT_VERSION, config.api_version, native_db_args, out,
        )

    return _establish("keytab", library, config, params, db_args, initializer)


def connect_with_ccache(
    client_name: Optional[str] = None,
    ccache_name: Optional[str] = None,
    params: Optional[Params] = None,
    db_args: Optional[DbArgs] = None,
    *,
    config: Optional[KAdminConfig] = None,
    library: Optional[Kadm5Library] = None,
) -> KAdmin:
    """
    Authenticate with tickets from a credential cache.

    Args:
        client_name: Principal to authenticate as; the cache's principal
            when omitted
        ccache_name: Cache to use; the default cache when omitted
    """
    config = config or KAdminConfig()
    library = _open_library(config, library)

    def initializer(context, scope, service, native_params, native_db_args, out):
        ccache = context.open_ccache(scope, ccache_name)
        name = client_name or context.ccache_principal_name(ccache)
        client = scope.cstring(name)
        return name, lambda: library.lib.kadm5_init_with_creds(
            context.context, client, ccache, service, native_params,
            c.KADM5_STRUCT_VERSION, config.api_version, native_db_args, out,
        )

    return _establish("ccache", library, config, params, db_args, initializer)


def connect_with_anonymous(
    client_name: str,
    params: Optional[Params] = None,
    db_args: Optional[DbArgs] = None,
    *,
    config: Optional[KAdminConfig] = None,
    library: Optional[Kadm5Library] = None,
) -> KAdmin:
    """Connect using anonymous PKINIT as ``client_name``."""
    config = config or KAdminConfig()
    library = _open_library(config, library)

    def initializer(context, scope, service, native_params, native_db_args, out):
        client = scope.cstring(client_name)
        return client_name, lambda: library.lib.kadm5_init_anonymous(
            context.context, client, service, native_params,
            c.KADM5_STRUCT_VERSION, config.api_version, native_db_args, out,
        )

    return _establish("anonymous", library, config, params, db_args, initializer)


def connect_with_local(
    params: Optional[Params] = None,
    db_args: Optional[DbArgs] = None,
    *,
    config: Optional[KAdminConfig] = None,
    library: Optional[Kadm5Library] = None,
) -> KAdmin:
    """
    Open the local KDC database directly, like kadmin.local.

    Uses the server library and acts as ``root/admin@<default realm>``.

    Raises:
        InvalidArgument: if ``library`` is the client library
    """
    config = (config or KAdminConfig()).with_variant(KAdm5Variant.SERVER)
    library = _open_library(config, library)
    if not library.is_server:
        raise InvalidArgument("Local connections require the kadm5 server library")

    def initializer(context, scope, service, native_params, native_db_args, out):
        realm = context.default_realm
        name = f"root/admin@{realm}" if realm else "root/admin"
        client = scope.cstring(name)
        return name, lambda: library.lib.kadm5_init_with_creds(
            context.context, client, ffi.NULL, service, native_params,
            c.KADM5_STRUCT_VERSION, config.api_version, native_db_args, out,
        )

    return _establish("local", library, config, params, db_args, initializer)
