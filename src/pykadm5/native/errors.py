"""
pykadm5 Error Mapper

Turns native status codes into the pykadm5 error taxonomy.

kadm5 status codes carry their message in a fixed table (libkadm5 does not
export its com_err table through krb5_get_error_message); every other code
is looked up through the krb5 context.

The mapping is total: any nonzero code yields an error, unmapped codes
becoming ``LibraryError`` with the numeric code and message verbatim.
"""

from __future__ import annotations

from typing import Callable, Dict, FrozenSet, Optional, Type

import structlog
from returns.result import Failure, Result, Success

from pykadm5.core.exceptions import (
    AlreadyExists,
    ConnectionError,
    InvalidArgument,
    KAdminError,
    LibraryError,
    NotFound,
)
from pykadm5.native import cdefs as c

logger = structlog.get_logger()

MessageLookup = Callable[[int], str]


# =============================================================================
# CODE CLASSES
# =============================================================================

NOT_FOUND_CODES: FrozenSet[int] = frozenset({
    c.KADM5_UNK_PRINC,
    c.KADM5_UNK_POLICY,
    c.KRB5_KDB_NOENTRY,
})

ALREADY_EXISTS_CODES: FrozenSet[int] = frozenset({
    c.KADM5_DUP,
})

CONNECTION_CODES: FrozenSet[int] = frozenset({
    c.KADM5_RPC_ERROR,
    c.KADM5_NO_SRV,
    c.KADM5_NOT_INIT,
    c.KADM5_BAD_PASSWORD,
    c.KADM5_GSS_ERROR,
    c.KADM5_BAD_SERVER_NAME,
    c.KADM5_CANT_RESOLVE,
    c.KADM5_MISSING_CONF_PARAMS,
    c.KADM5_MISSING_KRB5_CONF_PARAMS,
    c.KADM5_BAD_SERVER_HANDLE,
    c.KRB5KDC_ERR_C_PRINCIPAL_UNKNOWN,
    c.KRB5KDC_ERR_S_PRINCIPAL_UNKNOWN,
    c.KRB5KDC_ERR_PREAUTH_FAILED,
    c.KRB5_KDC_UNREACH,
    c.KRB5_CC_NOTFOUND,
    c.KRB5_CC_BADNAME,
    c.KRB5_FCC_NOFILE,
    c.KRB5_KT_NOTFOUND,
})

INVALID_ARGUMENT_CODES: FrozenSet[int] = frozenset({
    c.KADM5_BAD_MASK,
    c.KADM5_BAD_CLASS,
    c.KADM5_BAD_LENGTH,
    c.KADM5_BAD_POLICY,
    c.KADM5_BAD_PRINCIPAL,
    c.KADM5_BAD_AUX_ATTR,
    c.KADM5_BAD_HISTORY,
    c.KADM5_BAD_MIN_PASS_LIFE,
    c.KADM5_BAD_TL_TYPE,
    c.KADM5_BAD_CLIENT_PARAMS,
    c.KADM5_BAD_SERVER_PARAMS,
    c.KADM5_BAD_KEYSALTS,
    c.KRB5_PARSE_ILLCHAR,
    c.KRB5_PARSE_MALFORMED,
})


# =============================================================================
# KADM5 MESSAGES
# =============================================================================

KADM5_MESSAGES: Dict[int, str] = {
    c.KADM5_FAILURE: "Operation failed for unspecified reason",
    c.KADM5_AUTH_GET: "Operation requires ``get'' privilege",
    c.KADM5_AUTH_ADD: "Operation requires ``add'' privilege",
    c.KADM5_AUTH_MODIFY: "Operation requires ``modify'' privilege",
    c.KADM5_AUTH_DELETE: "Operation requires ``delete'' privilege",
    c.KADM5_AUTH_INSUFFICIENT: "Insufficient authorization for operation",
    c.KADM5_BAD_DB: "Database inconsistency detected",
    c.KADM5_DUP: "Principal or policy already exists",
    c.KADM5_RPC_ERROR: "Communication failure with server",
    c.KADM5_NO_SRV: "No administration server found for realm",
    c.KADM5_BAD_HIST_KEY: "Password history principal key version mismatch",
    c.KADM5_NOT_INIT: "Connection to server not initialized",
    c.KADM5_UNK_PRINC: "Principal does not exist",
    c.KADM5_UNK_POLICY: "Policy does not exist",
    c.KADM5_BAD_MASK: "Invalid field mask for operation",
    c.KADM5_BAD_CLASS: "Invalid number of character classes",
    c.KADM5_BAD_LENGTH: "Invalid password length",
    c.KADM5_BAD_POLICY: "Illegal policy name",
    c.KADM5_BAD_PRINCIPAL: "Illegal principal name",
    c.KADM5_BAD_AUX_ATTR: "Invalid auxillary attributes",
    c.KADM5_BAD_HISTORY: "Invalid password history count",
    c.KADM5_BAD_MIN_PASS_LIFE: "Password minimum life is greater than password maximum life",
    c.KADM5_PASS_Q_TOOSHORT: "Password is too short",
    c.KADM5_PASS_Q_CLASS: "Password does not contain enough character classes",
    c.KADM5_PASS_Q_DICT: "Password is in the password dictionary",
    c.KADM5_PASS_REUSE: "Cannot reuse password",
    c.KADM5_PASS_TOOSOON: "Current password's minimum life has not expired",
    c.KADM5_POLICY_REF: "Policy is in use",
    c.KADM5_INIT: "Connection to server already initialized",
    c.KADM5_BAD_PASSWORD: "Incorrect password",
    c.KADM5_PROTECT_PRINCIPAL: "Cannot change protected principal",
    c.KADM5_BAD_SERVER_HANDLE: "Programmer error! Bad Admin server handle",
    c.KADM5_BAD_STRUCT_VERSION: "Programmer error! Bad API structure version",
    c.KADM5_OLD_STRUCT_VERSION: (
        "API structure version specified by application is no longer supported "
        "(to fix, recompile application against current Admin API header files and libraries)"
    ),
    c.KADM5_NEW_STRUCT_VERSION: (
        "API structure version specified by application is unknown to libraries "
        "(to fix, obtain current Admin API header files and libraries and recompile application)"
    ),
    c.KADM5_BAD_API_VERSION: "Programmer error! Bad API version",
    c.KADM5_OLD_LIB_API_VERSION: (
        "API version specified by application is no longer supported by libraries "
        "(to fix, update application to adhere to current API version and recompile)"
    ),
    c.KADM5_OLD_SERVER_API_VERSION: (
        "API version specified by application is no longer supported by server "
        "(to fix, update application to adhere to current API version and recompile)"
    ),
    c.KADM5_NEW_LIB_API_VERSION: (
        "API version specified by application is unknown to libraries "
        "(to fix, obtain current Admin API header files and libraries and recompile application)"
    ),
    c.KADM5_NEW_SERVER_API_VERSION: (
        "API version specified by application is unknown to server "
        "(to fix, obtain and install newest Admin Server)"
    ),
    c.KADM5_SECURE_PRINC_MISSING: "Database error! Required principal missing",
    c.KADM5_NO_RENAME_SALT: "The salt type of the specified principal does not support renaming",
    c.KADM5_BAD_CLIENT_PARAMS: "Illegal configuration parameter for remote KADM5 client",
    c.KADM5_BAD_SERVER_PARAMS: "Illegal configuration parameter for local KADM5 client.",
    c.KADM5_AUTH_LIST: "Operation requires ``list'' privilege",
    c.KADM5_AUTH_CHANGEPW: "Operation requires ``change-password'' privilege",
    c.KADM5_GSS_ERROR: "GSS-API (or Kerberos) error",
    c.KADM5_BAD_TL_TYPE: "Programmer error! Illegal tagged data list element type",
    c.KADM5_MISSING_CONF_PARAMS: "Required parameters in kdc.conf missing",
    c.KADM5_BAD_SERVER_NAME: "Bad krb5 admin server hostname",
    c.KADM5_AUTH_SETKEY: "Operation requires ``set-key'' privilege",
    c.KADM5_SETKEY_DUP_ENCTYPES: "Multiple values for single or folded enctype",
    c.KADM5_SETV4KEY_INVAL_ENCTYPE: "Invalid enctype for setv4key",
    c.KADM5_SETKEY3_ETYPE_MISMATCH: "Mismatched enctypes for setkey3",
    c.KADM5_MISSING_KRB5_CONF_PARAMS: "Missing parameters in krb5.conf required for kadmin client",
    c.KADM5_XDR_FAILURE: "XDR encoding error",
    c.KADM5_CANT_RESOLVE: "Cannot resolve network address for admin server in requested realm",
    c.KADM5_PASS_Q_GENERIC: "Unspecified password quality failure",
    c.KADM5_BAD_KEYSALTS: "Invalid key/salt tuples",
    c.KADM5_SETKEY_BAD_KVNO: "Invalid multiple or duplicate kvnos in setkey operation",
    c.KADM5_AUTH_EXTRACT: "Operation requires ``extract-keys'' privilege",
    c.KADM5_PROTECT_KEYS: "Principal keys are locked down",
    c.KADM5_AUTH_INITIAL: "Operation requires initial ticket",
}


# =============================================================================
# MAPPING
# =============================================================================


def normalize_status(code: int) -> int:
    """
    Bring a status code into the signed 32-bit range.

    ``kadm5_ret_t`` is a ``long``; krb5 codes stored in it may arrive
    zero-extended.
    """
    if 0x7FFFFFFF < code <= 0xFFFFFFFF:
        return code - 0x100000000
    return code


def status_message(code: int, lookup: Optional[MessageLookup] = None) -> str:
    """Message for ``code``, from the kadm5 table or through ``lookup``."""
    message = KADM5_MESSAGES.get(code)
    if message is not None:
        return message
    if lookup is not None:
        return lookup(code)
    return f"Unknown error code {code}"


def error_class(code: int) -> Type[KAdminError]:
    """Error type a nonzero status code maps to."""
    if code in NOT_FOUND_CODES:
        return NotFound
    if code in ALREADY_EXISTS_CODES:
        return AlreadyExists
    if code in CONNECTION_CODES:
        return ConnectionError
    if code in INVALID_ARGUMENT_CODES:
        return InvalidArgument
    return LibraryError


def error_from_status(code: int, lookup: Optional[MessageLookup] = None) -> Optional[KAdminError]:
    """
    Map a native status code to an error.

    Args:
        code: Status returned by a native call
        lookup: Message lookup for non-kadm5 codes, usually
            ``Krb5Context.error_message``

    Returns:
        None for success, otherwise the mapped error (not raised)
    """
    code = normalize_status(code)
    if code == 0:
        return None

    message = status_message(code, lookup)
    cls = error_class(code)
    # Missing records are an ordinary outcome for lookups
    log = logger.debug if cls is NotFound else logger.warning
    log("native_call_failed", code=code, message=message, error=cls.__name__)
    if cls is LibraryError:
        return LibraryError(code, message)
    return cls(message, code)


def status_to_result(
    code: int, lookup: Optional[MessageLookup] = None
) -> Result[None, KAdminError]:
    """
    Map a native status code to a ``Result``.

    Used where a failure such as ``NotFound`` is an expected outcome.
    """
    error = error_from_status(code, lookup)
    if error is None:
        return Success(None)
    return Failure(error)


def check_status(code: int, lookup: Optional[MessageLookup] = None) -> None:
    """Raise the mapped error for a nonzero status code."""
    error = error_from_status(code, lookup)
    if error is not None:
        raise error
