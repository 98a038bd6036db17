"""
pykadm5 Connection Parameters

Owned configuration consumed once by a connect call: ``Params`` mirrors
the subset of ``kadm5_config_params`` callers may override, ``DbArgs``
holds database module arguments for the server library.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import attrs
from attrs import field

from pykadm5.core.exceptions import InvalidArgument
from pykadm5.native import cdefs as c


def _check_port(instance: object, attribute: attrs.Attribute, value: Optional[int]) -> None:
    if value is None:
        return
    if not isinstance(value, int) or not 0 <= value <= 65535:
        raise InvalidArgument(f"{attribute.name} must be between 0 and 65535, got {value!r}")


@attrs.define(frozen=True)
class Params:
    """
    Connection parameters.

    Fields left as ``None`` are taken from krb5.conf/kdc.conf by the
    native library.

    Attributes:
        realm: Realm to administer
        kadmind_port: Port of the admin server
        kpasswd_port: Port of the password change server
        admin_server: Admin server host, optionally ``host:port``
        dbname: KDC database name (server library only)
        acl_file: kadmind ACL file (server library only)
        dict_file: Password dictionary (server library only)
        stash_file: Master key stash file (server library only)
    """

    realm: Optional[str] = None
    kadmind_port: Optional[int] = field(default=None, validator=_check_port)
    kpasswd_port: Optional[int] = field(default=None, validator=_check_port)
    admin_server: Optional[str] = None
    dbname: Optional[str] = None
    acl_file: Optional[str] = None
    dict_file: Optional[str] = None
    stash_file: Optional[str] = None

    @property
    def mask(self) -> int:
        """``KADM5_CONFIG_*`` bits for the fields that are set."""
        mask = 0
        for name, bit in _PARAM_MASKS:
            if getattr(self, name) is not None:
                mask |= bit
        return mask


_PARAM_MASKS: Tuple[Tuple[str, int], ...] = (
    ("realm", c.KADM5_CONFIG_REALM),
    ("kadmind_port", c.KADM5_CONFIG_KADMIND_PORT),
    ("kpasswd_port", c.KADM5_CONFIG_KPASSWD_PORT),
    ("admin_server", c.KADM5_CONFIG_ADMIN_SERVER),
    ("dbname", c.KADM5_CONFIG_DBNAME),
    ("acl_file", c.KADM5_CONFIG_ACL_FILE),
    ("dict_file", c.KADM5_CONFIG_DICT_FILE),
    ("stash_file", c.KADM5_CONFIG_STASH_FILE),
)


@attrs.define
class DbArgs:
    """
    Database module arguments, as passed with ``kadmin.local -x``.

    Example:
        db_args = DbArgs().arg("dbname", "/var/lib/krb5kdc/principal").flag("lockiter")
        db_args.render()  # ["dbname=/var/lib/krb5kdc/principal", "lockiter"]
    """

    _args: List[Tuple[str, Optional[str]]] = attrs.Factory(list)

    @classmethod
    def from_dict(cls, args: Dict[str, Optional[str]]) -> DbArgs:
        db_args = cls()
        for key, value in args.items():
            db_args.arg(key, value)
        return db_args

    def arg(self, key: str, value: Optional[str] = None) -> DbArgs:
        """Add ``key=value``, or a bare ``key`` when ``value`` is None."""
        if not key or "=" in key:
            raise InvalidArgument(f"Invalid database argument name: {key!r}")
        self._args.append((key, value))
        return self

    def flag(self, key: str) -> DbArgs:
        return self.arg(key)

    def render(self) -> List[str]:
        """Arguments as strings, in insertion order."""
        return [key if value is None else f"{key}={value}" for key, value in self._args]

    def __len__(self) -> int:
        return len(self._args)
