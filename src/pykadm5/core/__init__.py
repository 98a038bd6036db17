"""
pykadm5 Core Module

Types that do not depend on the native library.

Components:
- types: owned snapshots of principals and policies, key-salt and TL-data values
- exceptions: the error taxonomy
"""

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

__all__ = [
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
]
