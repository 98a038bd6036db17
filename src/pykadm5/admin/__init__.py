"""
pykadm5 Admin Module

Connecting to kadmin and operating on principals and policies.

Components:
- handle: KAdmin and the connect_with_* functions
- sync: SyncKAdmin, a lock-serialised handle for sharing between threads
- builders: partial-update builders for principals and policies
- params: connection parameters and database arguments
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
    KAdminOperations,
    connect_with_anonymous,
    connect_with_ccache,
    connect_with_keytab,
    connect_with_local,
    connect_with_password,
)
from pykadm5.admin.params import DbArgs, Params
from pykadm5.admin.sync import SyncKAdmin

__all__ = [
    "KAdmin",
    "KAdminOperations",
    "SyncKAdmin",
    "Params",
    "DbArgs",
    "PrincipalBuilder",
    "PrincipalModifier",
    "PrincipalKey",
    "PolicyBuilder",
    "PolicyModifier",
    "connect_with_password",
    "connect_with_keytab",
    "connect_with_ccache",
    "connect_with_anonymous",
    "connect_with_local",
]
