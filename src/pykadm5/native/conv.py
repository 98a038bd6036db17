"""
pykadm5 Conversion Layer

Deep copies between native kadm5 structures and the owned types in
``pykadm5.core.types``.

Native to owned:
- C strings are decoded as strict UTF-8
- timestamps and durations of 0 mean "unset" and become ``None``
- TL-data lists are copied node by node before the native record is freed

Owned to native:
- only the fields being changed are written
- the returned mask names exactly those fields; ``None`` for a policy
  name on a principal is a clear (``KADM5_POLICY_CLR``), not an omission
- every buffer is owned by the caller's ``NativeScope``
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from pykadm5.core.exceptions import ConversionError, InvalidArgument
from pykadm5.core.types import (
    KeySaltList,
    Policy,
    Principal,
    PrincipalAttributes,
    TlData,
    TlDataEntry,
)
from pykadm5.native import cdefs as c
from pykadm5.native.cdefs import ffi
from pykadm5.native.memory import NativeScope

if TYPE_CHECKING:
    from pykadm5.admin.params import DbArgs, Params
    from pykadm5.native.context import Krb5Context

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1
UINT32_MAX = 2**32 - 1
INT16_MIN = -(2**15)
INT16_MAX = 2**15 - 1
UINT16_MAX = 2**16 - 1


# =============================================================================
# SCALARS
# =============================================================================


def c_string(ptr: Any) -> Optional[str]:
    """
    Copy a NUL-terminated native string. ``NULL`` gives ``None``.

    Raises:
        ConversionError: if the bytes are not valid UTF-8
    """
    if ptr == ffi.NULL:
        return None
    data = ffi.string(ptr)
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ConversionError(f"Invalid UTF-8 in native string: {e}") from e


def ts_to_dt(ts: int) -> Optional[datetime]:
    """``krb5_timestamp`` to an aware UTC datetime; 0 means unset."""
    if ts == 0:
        return None
    # krb5 timestamps are unsigned seconds stored in a signed field
    return datetime.fromtimestamp(ts & UINT32_MAX, tz=timezone.utc)


def dt_to_ts(dt: Optional[datetime]) -> int:
    """
    Datetime to ``krb5_timestamp``. Naive datetimes are taken as UTC.

    Raises:
        ConversionError: if the time is outside the 32-bit unsigned range
    """
    if dt is None:
        return 0
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    ts = int(dt.timestamp())
    if not 0 <= ts <= UINT32_MAX:
        raise ConversionError(f"Timestamp out of range for krb5_timestamp: {dt.isoformat()}")
    return ts - 2**32 if ts > INT32_MAX else ts


def delta_to_td(delta: int) -> Optional[timedelta]:
    """``krb5_deltat`` to a timedelta; 0 means unset, negatives are kept."""
    if delta == 0:
        return None
    return timedelta(seconds=delta)


def td_to_delta(td: Optional[timedelta]) -> int:
    """
    Timedelta to ``krb5_deltat``, truncated to whole seconds.

    Raises:
        ConversionError: if the duration does not fit in 32 bits
    """
    if td is None:
        return 0
    seconds = int(td.total_seconds())
    if not INT32_MIN <= seconds <= INT32_MAX:
        raise ConversionError(f"Duration out of range for krb5_deltat: {td}")
    return seconds


def _int_in_range(value: int, low: int, high: int, what: str) -> int:
    if not low <= value <= high:
        raise ConversionError(f"{what} out of range: {value}")
    return value


# =============================================================================
# TL-DATA
# =============================================================================


def tl_data_from_native(head: Any) -> TlData:
    """Copy a native ``krb5_tl_data`` list, keeping its order."""
    entries = []
    node = head
    while node != ffi.NULL:
        if node.tl_data_length and node.tl_data_contents != ffi.NULL:
            contents = bytes(ffi.buffer(node.tl_data_contents, node.tl_data_length))
        else:
            contents = b""
        entries.append(TlDataEntry(data_type=node.tl_data_type, contents=contents))
        node = node.tl_data_next
    return TlData(entries)


def tl_data_to_native(scope: NativeScope, tl_data: TlData) -> Tuple[Any, int]:
    """
    Build a native ``krb5_tl_data`` list owned by ``scope``.

    Returns:
        (head pointer, number of entries); ``NULL`` head for no entries
    """
    head = ffi.NULL
    entries = list(tl_data)
    for entry in reversed(entries):
        node = scope.new("krb5_tl_data *")
        node.tl_data_type = _int_in_range(entry.data_type, INT16_MIN, INT16_MAX, "TL-data type")
        node.tl_data_length = _int_in_range(len(entry.contents), 0, UINT16_MAX, "TL-data length")
        if entry.contents:
            node.tl_data_contents = scope.new("krb5_octet[]", list(entry.contents))
        node.tl_data_next = head
        head = node
    return head, _int_in_range(len(entries), 0, INT16_MAX, "TL-data count")


# =============================================================================
# KEY-SALTS
# =============================================================================


def keysalts_to_native(scope: NativeScope, keysalts: Optional[KeySaltList]) -> Tuple[int, Any]:
    """
    Build a ``krb5_key_salt_tuple`` array owned by ``scope``.

    Returns:
        (count, array); ``(0, NULL)`` when no list is given
    """
    if keysalts is None or len(keysalts) == 0:
        return 0, ffi.NULL
    ordered = sorted(keysalts, key=lambda ks: (ks.enctype.value, ks.salttype.value))
    array = scope.new("krb5_key_salt_tuple[]", len(ordered))
    for i, keysalt in enumerate(ordered):
        array[i].ks_enctype = keysalt.enctype.value
        array[i].ks_salttype = keysalt.salttype.value
    return len(ordered), array


def keysalts_from_string(value: Optional[str]) -> Optional[KeySaltList]:
    """
    Parse a key-salt string read from a native record.

    Raises:
        ConversionError: if the string names unknown types
    """
    if value is None:
        return None
    try:
        return KeySaltList.from_string(value)
    except InvalidArgument as e:
        raise ConversionError(e.message) from e


# =============================================================================
# NAME LISTS
# =============================================================================


def name_list_from_native(names: Any, count: int) -> List[str]:
    """Copy ``count`` strings out of a native ``char **``."""
    if names == ffi.NULL:
        return []
    result = []
    for i in range(count):
        name = c_string(names[i])
        if name is not None:
            result.append(name)
    return result


# =============================================================================
# PRINCIPALS
# =============================================================================


def principal_from_native(context: Krb5Context, ent: Any) -> Principal:
    """
    Copy a ``kadm5_principal_ent_rec`` into a ``Principal``.

    Raises:
        ConversionError: if a field cannot be decoded
    """
    name = context.unparse_name(ent.principal)
    if name is None:
        raise ConversionError("Principal record has no name")

    return Principal(
        name=name,
        expire_time=ts_to_dt(ent.princ_expire_time),
        last_password_change=ts_to_dt(ent.last_pwd_change),
        password_expiration=ts_to_dt(ent.pw_expiration),
        max_life=delta_to_td(ent.max_life),
        modified_by=context.unparse_name(ent.mod_name),
        modified_at=ts_to_dt(ent.mod_date),
        attributes=PrincipalAttributes(ent.attributes & UINT32_MAX),
        kvno=ent.kvno,
        mkvno=ent.mkvno,
        policy=c_string(ent.policy),
        aux_attributes=ent.aux_attributes,
        max_renewable_life=delta_to_td(ent.max_renewable_life),
        last_success=ts_to_dt(ent.last_success),
        last_failed=ts_to_dt(ent.last_failed),
        fail_auth_count=ent.fail_auth_count,
        tl_data=tl_data_from_native(ent.tl_data),
    )


def principal_to_native(
    scope: NativeScope,
    context: Krb5Context,
    name: str,
    changes: Mapping[str, Any],
) -> Tuple[Any, int]:
    """
    Build a ``kadm5_principal_ent_rec`` holding only ``changes``.

    The principal name is always filled in; ``KADM5_PRINCIPAL`` is not
    part of the returned mask and is added by callers that create.

    Returns:
        (entry pointer, field mask)

    Raises:
        ConversionError: if a value cannot be represented natively
        InvalidArgument: if the name cannot be parsed
    """
    ent = scope.new("kadm5_principal_ent_rec *")
    ent.principal = context.parse_name(scope, name)
    mask = 0

    for key, value in changes.items():
        if key == "expire_time":
            ent.princ_expire_time = dt_to_ts(value)
            mask |= c.KADM5_PRINC_EXPIRE_TIME
        elif key == "password_expiration":
            ent.pw_expiration = dt_to_ts(value)
            mask |= c.KADM5_PW_EXPIRATION
        elif key == "max_life":
            ent.max_life = td_to_delta(value)
            mask |= c.KADM5_MAX_LIFE
        elif key == "max_renewable_life":
            ent.max_renewable_life = td_to_delta(value)
            mask |= c.KADM5_MAX_RLIFE
        elif key == "attributes":
            ent.attributes = _int_in_range(int(value), 0, INT32_MAX, "Attributes")
            mask |= c.KADM5_ATTRIBUTES
        elif key == "aux_attributes":
            ent.aux_attributes = _int_in_range(value, INT32_MIN, INT32_MAX, "Aux attributes")
            mask |= c.KADM5_AUX_ATTRIBUTES
        elif key == "policy":
            if value is None:
                mask |= c.KADM5_POLICY_CLR
            else:
                ent.policy = scope.cstring(value)
                mask |= c.KADM5_POLICY
        elif key == "kvno":
            ent.kvno = _int_in_range(value, 0, UINT32_MAX, "Key version number")
            mask |= c.KADM5_KVNO
        elif key == "fail_auth_count":
            ent.fail_auth_count = _int_in_range(value, 0, UINT32_MAX, "Failed auth count")
            mask |= c.KADM5_FAIL_AUTH_COUNT
        elif key == "tl_data":
            ent.tl_data, ent.n_tl_data = tl_data_to_native(scope, value)
            mask |= c.KADM5_TL_DATA
        else:
            raise ConversionError(f"Unknown principal field: {key}")

    return ent, mask


# =============================================================================
# POLICIES
# =============================================================================


def policy_from_native(ent: Any) -> Policy:
    """
    Copy a ``kadm5_policy_ent_rec`` into a ``Policy``.

    Raises:
        ConversionError: if a field cannot be decoded
    """
    name = c_string(ent.policy)
    if name is None:
        raise ConversionError("Policy record has no name")

    return Policy(
        name=name,
        password_min_life=delta_to_td(ent.pw_min_life),
        password_max_life=delta_to_td(ent.pw_max_life),
        password_min_length=ent.pw_min_length,
        password_min_classes=ent.pw_min_classes,
        password_history_num=ent.pw_history_num,
        policy_refcnt=ent.policy_refcnt,
        password_max_fail=ent.pw_max_fail,
        password_failcount_interval=delta_to_td(ent.pw_failcnt_interval),
        password_lockout_duration=delta_to_td(ent.pw_lockout_duration),
        attributes=ent.attributes,
        max_life=delta_to_td(ent.max_life),
        max_renewable_life=delta_to_td(ent.max_renewable_life),
        allowed_keysalts=keysalts_from_string(c_string(ent.allowed_keysalts)),
        tl_data=tl_data_from_native(ent.tl_data),
    )


# Policy fields written as plain integers: field -> (struct member, mask, max)
_POLICY_INTS: Dict[str, Tuple[str, int, int]] = {
    "password_min_length": ("pw_min_length", c.KADM5_PW_MIN_LENGTH, INT32_MAX),
    "password_min_classes": ("pw_min_classes", c.KADM5_PW_MIN_CLASSES, INT32_MAX),
    "password_history_num": ("pw_history_num", c.KADM5_PW_HISTORY_NUM, INT32_MAX),
    "password_max_fail": ("pw_max_fail", c.KADM5_PW_MAX_FAILURE, UINT32_MAX),
    "attributes": ("attributes", c.KADM5_POLICY_ATTRIBUTES, INT32_MAX),
}

# Policy fields written as durations
_POLICY_DURATIONS: Dict[str, Tuple[str, int]] = {
    "password_min_life": ("pw_min_life", c.KADM5_PW_MIN_LIFE),
    "password_max_life": ("pw_max_life", c.KADM5_PW_MAX_LIFE),
    "password_failcount_interval": ("pw_failcnt_interval", c.KADM5_PW_FAILURE_COUNT_INTERVAL),
    "password_lockout_duration": ("pw_lockout_duration", c.KADM5_PW_LOCKOUT_DURATION),
    "max_life": ("max_life", c.KADM5_POLICY_MAX_LIFE),
    "max_renewable_life": ("max_renewable_life", c.KADM5_POLICY_MAX_RLIFE),
}


def policy_to_native(
    scope: NativeScope, name: str, changes: Mapping[str, Any]
) -> Tuple[Any, int]:
    """
    Build a ``kadm5_policy_ent_rec`` holding only ``changes``.

    ``KADM5_POLICY`` is not part of the returned mask; creation adds it,
    modification must not.

    Returns:
        (entry pointer, field mask)
    """
    ent = scope.new("kadm5_policy_ent_rec *")
    ent.policy = scope.cstring(name)
    mask = 0

    for key, value in changes.items():
        if key in _POLICY_INTS:
            member, bit, high = _POLICY_INTS[key]
            setattr(ent, member, _int_in_range(int(value), 0, high, key))
            mask |= bit
        elif key in _POLICY_DURATIONS:
            member, bit = _POLICY_DURATIONS[key]
            setattr(ent, member, td_to_delta(value))
            mask |= bit
        elif key == "allowed_keysalts":
            if value is not None:
                ent.allowed_keysalts = scope.cstring(value.to_string())
            mask |= c.KADM5_POLICY_ALLOWED_KEYSALTS
        elif key == "tl_data":
            ent.tl_data, ent.n_tl_data = tl_data_to_native(scope, value)
            mask |= c.KADM5_POLICY_TL_DATA
        else:
            raise ConversionError(f"Unknown policy field: {key}")

    return ent, mask


# =============================================================================
# CONNECTION PARAMETERS
# =============================================================================


def params_to_native(scope: NativeScope, params: Optional[Params]) -> Any:
    """
    Build a ``kadm5_config_params`` owned by ``scope``.

    ``None`` gives ``NULL`` so the library reads its own configuration.
    """
    if params is None:
        return ffi.NULL

    native = scope.new("kadm5_config_params *")
    native.mask = params.mask
    if params.realm is not None:
        native.realm = scope.cstring(params.realm)
    if params.kadmind_port is not None:
        native.kadmind_port = params.kadmind_port
    if params.kpasswd_port is not None:
        native.kpasswd_port = params.kpasswd_port
    if params.admin_server is not None:
        native.admin_server = scope.cstring(params.admin_server)
    if params.dbname is not None:
        native.dbname = scope.cstring(params.dbname)
    if params.acl_file is not None:
        native.acl_file = scope.cstring(params.acl_file)
    if params.dict_file is not None:
        native.dict_file = scope.cstring(params.dict_file)
    if params.stash_file is not None:
        native.stash_file = scope.cstring(params.stash_file)
    return native


def db_args_to_native(scope: NativeScope, db_args: Optional[DbArgs]) -> Any:
    """
    Build a NULL-terminated ``char **`` owned by ``scope``.

    ``None`` or an empty ``DbArgs`` gives ``NULL``.
    """
    if db_args is None:
        return ffi.NULL
    rendered = db_args.render()
    if not rendered:
        return ffi.NULL

    array = scope.new("char *[]", len(rendered) + 1)
    for i, arg in enumerate(rendered):
        array[i] = scope.cstring(arg)
    array[len(rendered)] = ffi.NULL
    return array
