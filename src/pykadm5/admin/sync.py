"""
pykadm5 Synchronized Handle

``SyncKAdmin`` makes one ``KAdmin`` usable from many threads. Every
operation holds a single lock for its whole duration (native call,
conversion, release of native intermediates), so calls on the shared
handle execute one at a time in the order they acquire the lock.

Share the ``SyncKAdmin`` object itself between threads. The native handle
is destroyed on ``close()`` or when the last reference goes away.
"""

from __future__ import annotations

import threading
from typing import Any, List, Optional

import attrs

from pykadm5.admin import handle as _handle
from pykadm5.admin.builders import PolicyModifier, PolicySpec, PrincipalModifier, PrincipalSpec
from pykadm5.admin.handle import KAdmin, KAdminOperations
from pykadm5.core.types import KAdminPrivileges, KeySaltList, Policy, Principal


@attrs.define(eq=False)
class SyncKAdmin(KAdminOperations):
    """
    Thread-safe wrapper around a ``KAdmin``.

    Example:
        kadmin = SyncKAdmin.connect_with_keytab("admin/admin@EXAMPLE.ORG")
        with ThreadPoolExecutor() as pool:
            principals = list(pool.map(kadmin.get_principal, names))
    """

    _kadmin: KAdmin
    _lock: threading.Lock = attrs.Factory(threading.Lock)

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def connect_with_password(cls, *args: Any, **kwargs: Any) -> SyncKAdmin:
        return cls(_handle.connect_with_password(*args, **kwargs))

    @classmethod
    def connect_with_keytab(cls, *args: Any, **kwargs: Any) -> SyncKAdmin:
        return cls(_handle.connect_with_keytab(*args, **kwargs))

    @classmethod
    def connect_with_ccache(cls, *args: Any, **kwargs: Any) -> SyncKAdmin:
        return cls(_handle.connect_with_ccache(*args, **kwargs))

    @classmethod
    def connect_with_anonymous(cls, *args: Any, **kwargs: Any) -> SyncKAdmin:
        return cls(_handle.connect_with_anonymous(*args, **kwargs))

    @classmethod
    def connect_with_local(cls, *args: Any, **kwargs: Any) -> SyncKAdmin:
        return cls(_handle.connect_with_local(*args, **kwargs))

    @property
    def closed(self) -> bool:
        return self._kadmin.closed

    @property
    def default_realm(self) -> Optional[str]:
        return self._kadmin.default_realm

    def close(self) -> None:
        """Destroy the handle once the operation in progress, if any, finishes."""
        with self._lock:
            self._kadmin.close()

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def get_principal(self, name: str) -> Optional[Principal]:
        with self._lock:
            return self._kadmin.get_principal(name)

    def add_principal(self, builder: PrincipalSpec, password: Optional[str] = None) -> None:
        with self._lock:
            self._kadmin.add_principal(builder, password=password)

    def modify_principal(self, modifier: PrincipalModifier) -> None:
        with self._lock:
            self._kadmin.modify_principal(modifier)

    def rename_principal(self, old_name: str, new_name: str) -> None:
        with self._lock:
            self._kadmin.rename_principal(old_name, new_name)

    def delete_principal(self, name: str) -> None:
        with self._lock:
            self._kadmin.delete_principal(name)

    def change_password(self, name: str, password: str) -> None:
        with self._lock:
            self._kadmin.change_password(name, password)

    def randkey_principal(
        self, name: str, keysalts: Optional[KeySaltList] = None, keepold: bool = False
    ) -> None:
        with self._lock:
            self._kadmin.randkey_principal(name, keysalts=keysalts, keepold=keepold)

    def list_principals(self, query: Optional[str] = "*") -> List[str]:
        with self._lock:
            return self._kadmin.list_principals(query)

    def get_policy(self, name: str) -> Optional[Policy]:
        with self._lock:
            return self._kadmin.get_policy(name)

    def add_policy(self, builder: PolicySpec) -> None:
        with self._lock:
            self._kadmin.add_policy(builder)

    def modify_policy(self, modifier: PolicyModifier) -> None:
        with self._lock:
            self._kadmin.modify_policy(modifier)

    def delete_policy(self, name: str) -> None:
        with self._lock:
            self._kadmin.delete_policy(name)

    def list_policies(self, query: Optional[str] = "*") -> List[str]:
        with self._lock:
            return self._kadmin.list_policies(query)

    def get_privileges(self) -> KAdminPrivileges:
        with self._lock:
            return self._kadmin.get_privileges()
