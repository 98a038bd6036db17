"""
pykadm5 Record Builders

Partial-update builders for principals and policies.

A builder records only the fields a caller sets. A field never touched is
left alone by the server; a field set to ``None`` is written as unset
(or, for a principal's policy, explicitly cleared). The conversion layer
turns the recorded fields into the native entry and its field mask.

Example:
    principal = (
        PrincipalBuilder("alice@EXAMPLE.ORG")
        .policy("users")
        .max_life(timedelta(hours=10))
        .create(kadmin, password="s3cret")
    )

    principal.modifier().policy(None).modify(kadmin)
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum, auto
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, TypeVar, Union

import attrs

from pykadm5.core.types import KeySaltList, Policy, Principal, PrincipalAttributes, TlData

T = TypeVar("T", bound="_Changes")


class PrincipalKey(Enum):
    """How keys are set for a new principal."""

    RANDOM = auto()     # server generated random key
    PASSWORD = auto()   # derived from a password given at creation
    NONE = auto()       # no keys at all


@attrs.define
class _Changes:
    """Ordered record of the fields set on a builder."""

    name: str
    _changes: Dict[str, Any] = attrs.Factory(dict)

    @property
    def changes(self) -> Mapping[str, Any]:
        """Read-only view of the fields set so far."""
        return MappingProxyType(self._changes)

    def _set(self: T, key: str, value: Any) -> T:
        self._changes[key] = value
        return self


# =============================================================================
# PRINCIPALS
# =============================================================================


@attrs.define
class _PrincipalChanges(_Changes):
    def expire_time(self: T, value: Optional[datetime]) -> T:
        """When the principal expires. None means never."""
        return self._set("expire_time", value)

    def password_expiration(self: T, value: Optional[datetime]) -> T:
        return self._set("password_expiration", value)

    def max_life(self: T, value: Optional[timedelta]) -> T:
        return self._set("max_life", value)

    def max_renewable_life(self: T, value: Optional[timedelta]) -> T:
        return self._set("max_renewable_life", value)

    def attributes(self: T, value: PrincipalAttributes) -> T:
        return self._set("attributes", value)

    def aux_attributes(self: T, value: int) -> T:
        return self._set("aux_attributes", value)

    def policy(self: T, value: Optional[str]) -> T:
        """
        Associate a policy by name. None clears the association.

        Without a call, a new principal gets the ``default`` policy if one
        exists.
        """
        return self._set("policy", value)

    def kvno(self: T, value: int) -> T:
        return self._set("kvno", value)

    def fail_auth_count(self: T, value: int) -> T:
        """Only resetting to 0 is accepted by the server."""
        return self._set("fail_auth_count", value)

    def tl_data(self: T, value: TlData) -> T:
        return self._set("tl_data", value)


@attrs.define
class PrincipalBuilder(_PrincipalChanges):
    """
    Describe a principal to create.

    Keys default to a random key, or to ``PrincipalKey.PASSWORD`` when a
    password is given at creation. The password itself is never stored
    on the builder.
    """

    key_mode: Optional[PrincipalKey] = None
    keysalts_list: Optional[KeySaltList] = None

    def key(self, mode: PrincipalKey) -> PrincipalBuilder:
        self.key_mode = mode
        return self

    def keysalts(self, keysalts: Optional[KeySaltList]) -> PrincipalBuilder:
        """Key-salt pairs for the initial keys; the server default when None."""
        self.keysalts_list = keysalts
        return self

    def create(self, kadmin: Any, password: Optional[str] = None) -> Optional[Principal]:
        """Create the principal and return the record as stored."""
        kadmin.add_principal(self, password=password)
        return kadmin.get_principal(self.name)


@attrs.define
class PrincipalModifier(_PrincipalChanges):
    """Describe changes to an existing principal."""

    def modify(self, kadmin: Any) -> Optional[Principal]:
        """Apply the changes and return the updated record."""
        kadmin.modify_principal(self)
        return kadmin.get_principal(self.name)


# =============================================================================
# POLICIES
# =============================================================================


@attrs.define
class _PolicyChanges(_Changes):
    def password_min_life(self: T, value: Optional[timedelta]) -> T:
        return self._set("password_min_life", value)

    def password_max_life(self: T, value: Optional[timedelta]) -> T:
        return self._set("password_max_life", value)

    def password_min_length(self: T, value: int) -> T:
        return self._set("password_min_length", value)

    def password_min_classes(self: T, value: int) -> T:
        return self._set("password_min_classes", value)

    def password_history_num(self: T, value: int) -> T:
        return self._set("password_history_num", value)

    def password_max_fail(self: T, value: int) -> T:
        return self._set("password_max_fail", value)

    def password_failcount_interval(self: T, value: Optional[timedelta]) -> T:
        return self._set("password_failcount_interval", value)

    def password_lockout_duration(self: T, value: Optional[timedelta]) -> T:
        return self._set("password_lockout_duration", value)

    def attributes(self: T, value: int) -> T:
        return self._set("attributes", value)

    def max_life(self: T, value: Optional[timedelta]) -> T:
        return self._set("max_life", value)

    def max_renewable_life(self: T, value: Optional[timedelta]) -> T:
        return self._set("max_renewable_life", value)

    def allowed_keysalts(self: T, value: Optional[KeySaltList]) -> T:
        """Restrict the key-salt pairs principals may use. None lifts the restriction."""
        return self._set("allowed_keysalts", value)

    def tl_data(self: T, value: TlData) -> T:
        return self._set("tl_data", value)


@attrs.define
class PolicyBuilder(_PolicyChanges):
    """Describe a policy to create."""

    def create(self, kadmin: Any) -> Optional[Policy]:
        kadmin.add_policy(self)
        return kadmin.get_policy(self.name)


@attrs.define
class PolicyModifier(_PolicyChanges):
    """Describe changes to an existing policy."""

    def modify(self, kadmin: Any) -> Optional[Policy]:
        kadmin.modify_policy(self)
        return kadmin.get_policy(self.name)


PrincipalSpec = Union[str, PrincipalBuilder]
PolicySpec = Union[str, PolicyBuilder]
