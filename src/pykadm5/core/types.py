"""
pykadm5 Core Types

Owned value types for kadm5 records. Nothing in this module refers to
native memory: every instance is a deep copy made by the conversion layer
and stays valid after the handle that produced it is gone.

Design Principles:
- Immutable: snapshot types use frozen attrs
- Detached: mutating the server always takes the handle explicitly
- Lossless: sentinel native values map to ``None`` and back
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from enum import Enum, IntFlag
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, Iterable, Iterator, Optional, Tuple

import attrs
from attrs import field, validators

from pykadm5.core.exceptions import InvalidArgument

if TYPE_CHECKING:
    from pykadm5.admin.builders import PolicyModifier, PrincipalModifier


# =============================================================================
# ENCRYPTION AND SALT TYPES
# =============================================================================


class EncryptionType(Enum):
    """
    Kerberos encryption types understood by MIT krb5.

    Values are the ``ENCTYPE_*`` assigned numbers.
    """

    DES_CBC_CRC = 1
    DES_CBC_MD4 = 2
    DES_CBC_MD5 = 3
    DES3_CBC_RAW = 6
    DES3_CBC_SHA1 = 16
    AES128_CTS_HMAC_SHA1_96 = 17
    AES256_CTS_HMAC_SHA1_96 = 18
    AES128_CTS_HMAC_SHA256_128 = 19
    AES256_CTS_HMAC_SHA384_192 = 20
    ARCFOUR_HMAC = 23
    ARCFOUR_HMAC_EXP = 24
    CAMELLIA128_CTS_CMAC = 25
    CAMELLIA256_CTS_CMAC = 26

    @property
    def canonical_name(self) -> str:
        """Name used by krb5.conf and kadmin for this encryption type."""
        return _ENCTYPE_NAMES[self][0]

    @property
    def is_deprecated(self) -> bool:
        """Return True if this encryption type is weak or deprecated."""
        return self in (
            EncryptionType.DES_CBC_CRC,
            EncryptionType.DES_CBC_MD4,
            EncryptionType.DES_CBC_MD5,
            EncryptionType.DES3_CBC_RAW,
            EncryptionType.DES3_CBC_SHA1,
            EncryptionType.ARCFOUR_HMAC,
            EncryptionType.ARCFOUR_HMAC_EXP,
        )

    @classmethod
    def from_name(cls, name: str) -> EncryptionType:
        """
        Parse an encryption type name or alias (case-insensitive).

        Raises:
            InvalidArgument: if the name is unknown
        """
        try:
            return _ENCTYPE_BY_NAME[name.strip().lower()]
        except KeyError:
            raise InvalidArgument(f"Unknown encryption type: {name!r}") from None


# First entry is the canonical name, the rest are accepted aliases
_ENCTYPE_NAMES: Dict[EncryptionType, Tuple[str, ...]] = {
    EncryptionType.DES_CBC_CRC: ("des-cbc-crc",),
    EncryptionType.DES_CBC_MD4: ("des-cbc-md4",),
    EncryptionType.DES_CBC_MD5: ("des-cbc-md5", "des"),
    EncryptionType.DES3_CBC_RAW: ("des3-cbc-raw",),
    EncryptionType.DES3_CBC_SHA1: ("des3-cbc-sha1", "des3-hmac-sha1", "des3-cbc-sha1-kd"),
    EncryptionType.AES128_CTS_HMAC_SHA1_96: ("aes128-cts-hmac-sha1-96", "aes128-cts", "aes128-sha1"),
    EncryptionType.AES256_CTS_HMAC_SHA1_96: ("aes256-cts-hmac-sha1-96", "aes256-cts", "aes256-sha1"),
    EncryptionType.AES128_CTS_HMAC_SHA256_128: ("aes128-cts-hmac-sha256-128", "aes128-sha2"),
    EncryptionType.AES256_CTS_HMAC_SHA384_192: ("aes256-cts-hmac-sha384-192", "aes256-sha2"),
    EncryptionType.ARCFOUR_HMAC: ("arcfour-hmac", "rc4-hmac", "arcfour-hmac-md5"),
    EncryptionType.ARCFOUR_HMAC_EXP: ("arcfour-hmac-exp", "rc4-hmac-exp", "arcfour-hmac-md5-exp"),
    EncryptionType.CAMELLIA128_CTS_CMAC: ("camellia128-cts-cmac", "camellia128-cts"),
    EncryptionType.CAMELLIA256_CTS_CMAC: ("camellia256-cts-cmac", "camellia256-cts"),
}

_ENCTYPE_BY_NAME: Dict[str, EncryptionType] = {
    name: enctype for enctype, names in _ENCTYPE_NAMES.items() for name in names
}


class SaltType(Enum):
    """
    Kerberos salt types (``KRB5_KDB_SALTTYPE_*``).
    """

    NORMAL = 0
    V4 = 1
    NOREALM = 2
    ONLYREALM = 3
    SPECIAL = 4
    AFS3 = 5
    CERTHASH = 6

    @property
    def canonical_name(self) -> str:
        return self.name.lower()

    @classmethod
    def from_name(cls, name: Optional[str]) -> SaltType:
        """
        Parse a salt type name. An empty or missing name means ``NORMAL``.

        Raises:
            InvalidArgument: if the name is unknown
        """
        if not name:
            return cls.NORMAL
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise InvalidArgument(f"Unknown salt type: {name!r}") from None


def _to_enctype(value: Any) -> EncryptionType:
    try:
        return EncryptionType(value)
    except ValueError:
        raise InvalidArgument(f"Unknown encryption type: {value!r}") from None


def _to_salttype(value: Any) -> SaltType:
    try:
        return SaltType(value)
    except ValueError:
        raise InvalidArgument(f"Unknown salt type: {value!r}") from None


@attrs.define(frozen=True, slots=True)
class KeySalt:
    """
    An (encryption type, salt type) pair.

    Integers are accepted for both members and converted to the enums.

    Raises:
        InvalidArgument: if a number is not a known type
    """

    enctype: EncryptionType = field(converter=_to_enctype)
    salttype: SaltType = field(default=SaltType.NORMAL, converter=_to_salttype)

    @classmethod
    def from_string(cls, value: str) -> KeySalt:
        """Parse ``enctype[:salttype]``."""
        enctype, _, salttype = value.partition(":")
        return cls(EncryptionType.from_name(enctype), SaltType.from_name(salttype))

    def __str__(self) -> str:
        return f"{self.enctype.canonical_name}:{self.salttype.canonical_name}"


def _to_keysalts(values: Iterable[Any]) -> FrozenSet[KeySalt]:
    keysalts = set()
    for value in values:
        if isinstance(value, KeySalt):
            keysalts.add(value)
        else:
            keysalts.add(KeySalt(*value))
    return frozenset(keysalts)


_KEYSALT_SEPARATORS = re.compile(r"[,\s]+")


@attrs.define(frozen=True, slots=True)
class KeySaltList:
    """
    Set of key-salt pairs.

    Duplicate pairs collapse to a single entry and order is not
    significant. Accepts ``KeySalt`` instances or ``(enctype, salttype)``
    tuples.

    Example:
        ksl = KeySaltList([
            (EncryptionType.AES256_CTS_HMAC_SHA1_96, SaltType.NORMAL),
            (EncryptionType.AES256_CTS_HMAC_SHA1_96, SaltType.NORMAL),
        ])
        assert len(ksl) == 1
    """

    keysalts: FrozenSet[KeySalt] = field(factory=frozenset, converter=_to_keysalts)

    @classmethod
    def from_string(cls, value: str) -> KeySaltList:
        """
        Parse a kadmin style key-salt list.

        Entries are separated by commas or whitespace, e.g.
        ``"aes256-cts-hmac-sha1-96:normal aes128-cts"``.

        Raises:
            InvalidArgument: if an entry names an unknown type
        """
        tokens = [token for token in _KEYSALT_SEPARATORS.split(value) if token]
        return cls(KeySalt.from_string(token) for token in tokens)

    def to_string(self) -> str:
        """Render as a comma separated list, sorted for stable output."""
        ordered = sorted(self.keysalts, key=lambda ks: (ks.enctype.value, ks.salttype.value))
        return ",".join(str(ks) for ks in ordered)

    def __len__(self) -> int:
        return len(self.keysalts)

    def __iter__(self) -> Iterator[KeySalt]:
        return iter(self.keysalts)

    def __contains__(self, item: object) -> bool:
        return item in self.keysalts


# =============================================================================
# TL-DATA
# =============================================================================


@attrs.define(frozen=True, slots=True)
class TlDataEntry:
    """A single TL-data block: a type tag and opaque contents."""

    data_type: int = field(validator=validators.instance_of(int))
    contents: bytes = field(converter=bytes, repr=False)


@attrs.define(frozen=True, slots=True)
class TlData:
    """Ordered TL-data entries, in the order the native layer returned them."""

    entries: Tuple[TlDataEntry, ...] = field(factory=tuple, converter=tuple)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[TlDataEntry]:
        return iter(self.entries)

    def __bool__(self) -> bool:
        return bool(self.entries)


# =============================================================================
# FLAGS
# =============================================================================


class PrincipalAttributes(IntFlag):
    """
    Attributes set on a principal (``KRB5_KDB_*``).

    See the ``add_principal`` section of kadmin(1) for their meaning.
    """

    DISALLOW_POSTDATED = 0x00000001
    DISALLOW_FORWARDABLE = 0x00000002
    DISALLOW_TGT_BASED = 0x00000004
    DISALLOW_RENEWABLE = 0x00000008
    DISALLOW_PROXIABLE = 0x00000010
    DISALLOW_DUP_SKEY = 0x00000020
    DISALLOW_ALL_TIX = 0x00000040
    REQUIRES_PRE_AUTH = 0x00000080
    REQUIRES_HW_AUTH = 0x00000100
    REQUIRES_PWCHANGE = 0x00000200
    DISALLOW_SVR = 0x00001000
    PWCHANGE_SERVICE = 0x00002000
    SUPPORT_DESMD5 = 0x00004000
    NEW_PRINC = 0x00008000
    OK_AS_DELEGATE = 0x00100000
    OK_TO_AUTH_AS_DELEGATE = 0x00200000
    NO_AUTH_DATA_REQUIRED = 0x00400000
    LOCKDOWN_KEYS = 0x00800000


class KAdminPrivileges(IntFlag):
    """Privileges the authenticated client holds (``KADM5_PRIV_*``)."""

    GET = 0x01
    ADD = 0x02
    MODIFY = 0x04
    DELETE = 0x08


# =============================================================================
# RECORD SNAPSHOTS
# =============================================================================


@attrs.define(frozen=True, slots=True)
class Principal:
    """
    Snapshot of a kadm5 principal record.

    ``policy`` is the policy name only; the policy itself is not fetched.
    Methods that change the server take the handle explicitly.

    Attributes:
        name: Fully qualified principal name (``user@REALM``)
        expire_time: When the principal expires, None for never
        last_password_change: When the password was last changed
        password_expiration: When the password expires, None for never
        max_life: Maximum ticket life, None when unset
        modified_by: Principal that last modified this record
        modified_at: When the record was last modified
        attributes: See ``PrincipalAttributes``
        kvno: Current key version number
        mkvno: Master key version number
        policy: Associated policy name
        aux_attributes: Auxiliary attribute bits
        max_renewable_life: Maximum renewable ticket life, None when unset
        last_success: Last successful authentication
        last_failed: Last failed authentication
        fail_auth_count: Failed authentication attempts since last success
        tl_data: TL-data attached to the record
    """

    name: str
    expire_time: Optional[datetime] = None
    last_password_change: Optional[datetime] = None
    password_expiration: Optional[datetime] = None
    max_life: Optional[timedelta] = None
    modified_by: Optional[str] = None
    modified_at: Optional[datetime] = None
    attributes: PrincipalAttributes = PrincipalAttributes(0)
    kvno: int = 0
    mkvno: int = 0
    policy: Optional[str] = None
    aux_attributes: int = 0
    max_renewable_life: Optional[timedelta] = None
    last_success: Optional[datetime] = None
    last_failed: Optional[datetime] = None
    fail_auth_count: int = 0
    tl_data: TlData = field(factory=TlData)

    def modifier(self) -> PrincipalModifier:
        """Start a partial update of this principal."""
        from pykadm5.admin.builders import PrincipalModifier

        return PrincipalModifier(self.name)

    def change_password(self, kadmin: Any, password: str) -> None:
        """Change the password of this principal through ``kadmin``."""
        kadmin.change_password(self.name, password)

    def delete(self, kadmin: Any) -> None:
        """
        Delete this principal.

        The snapshot stays readable afterwards but no longer describes a
        record on the server.
        """
        kadmin.delete_principal(self.name)

    def rename(self, kadmin: Any, new_name: str) -> Optional[Principal]:
        """Rename this principal and return the renamed record."""
        kadmin.rename_principal(self.name, new_name)
        return kadmin.get_principal(new_name)


@attrs.define(frozen=True, slots=True)
class Policy:
    """
    Snapshot of a kadm5 password policy.

    Durations of ``None`` mean the native value was 0 (unset, or "forever"
    for the lockout fields).
    """

    name: str
    password_min_life: Optional[timedelta] = None
    password_max_life: Optional[timedelta] = None
    password_min_length: int = 0
    password_min_classes: int = 0
    password_history_num: int = 0
    policy_refcnt: int = 0
    password_max_fail: int = 0
    password_failcount_interval: Optional[timedelta] = None
    password_lockout_duration: Optional[timedelta] = None
    attributes: int = 0
    max_life: Optional[timedelta] = None
    max_renewable_life: Optional[timedelta] = None
    allowed_keysalts: Optional[KeySaltList] = None
    tl_data: TlData = field(factory=TlData)

    def modifier(self) -> PolicyModifier:
        """Start a partial update of this policy."""
        from pykadm5.admin.builders import PolicyModifier

        return PolicyModifier(self.name)

    def delete(self, kadmin: Any) -> None:
        """Delete this policy."""
        kadmin.delete_policy(self.name)
