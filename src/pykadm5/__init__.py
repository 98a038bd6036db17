"""
pykadm5 - Python bindings to the Kerberos administration library

pykadm5 wraps MIT krb5's libkadm5 (client or server flavour) so that
principals and policies can be managed from Python with owned, immutable
records and typed errors, and without leaking or double-freeing native
memory.

Components:
- admin: connecting, the operation set, builders, thread-safe sharing
- core: owned value types and the error taxonomy
- native: cffi declarations, memory scopes, conversion and error mapping

Example Usage:
    from pykadm5 import PrincipalBuilder, connect_with_ccache

    with connect_with_ccache() as kadmin:
        for name in kadmin.list_principals("host/*"):
            print(name)

        principal = PrincipalBuilder("alice@EXAMPLE.ORG").policy("users").create(kadmin)
        print(principal.kvno, principal.policy)
"""

from pykadm5.admin.builders import (
    PolicyBuilder,
    PolicyModifier,
    PrincipalBuilder,
    PrincipalKey,
    PrincipalModifier,
)
from pykadm5.admin.handle import (
    KAdmin,
    connect_with_anonymous,
    connect_with_ccache,
    connect_with_keytab,
    connect_with_local,
    connect_with_password,
)
from pykadm5.admin.params import DbArgs, Params
from pykadm5.admin.sync import SyncKAdmin
from pykadm5.config import KAdminConfig
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
from pykadm5.core.types import (
    EncryptionType,
    KAdminPrivileges,
    KeySalt,
    KeySaltList,
    Policy,
    Principal,
    PrincipalAttributes,
    SaltType,
    TlData,
    TlDataEntry,
)

__version__ = "0.1.0"

__all__ = [
    # Connecting
    "KAdmin",
    "SyncKAdmin",
    "KAdminConfig",
    "Params",
    "DbArgs",
    "connect_with_password",
    "connect_with_keytab",
    "connect_with_ccache",
    "connect_with_anonymous",
    "connect_with_local",
    # Builders
    "PrincipalBuilder",
    "PrincipalModifier",
    "PrincipalKey",
    "PolicyBuilder",
    "PolicyModifier",
    # Types
    "Principal",
    "Policy",
    "PrincipalAttributes",
    "KAdminPrivileges",
    "EncryptionType",
    "SaltType",
    "KeySalt",
    "KeySaltList",
    "TlData",
    "TlDataEntry",
    # Exceptions
    "KAdminError",
    "ConnectionError",
    "NotFound",
    "AlreadyExists",
    "InvalidArgument",
    "ConversionError",
    "LibraryError",
    "LibraryLoadError",
    "HandleClosed",
    "HandleBusy",
    # Metadata
    "__version__",
]
