"""
Property-based tests for whole-record conversions.

A native record read into an owned snapshot and written back with every
writable field set must reproduce the native values it came from.
"""

from hypothesis import given, settings, strategies as st

from pykadm5.core.types import EncryptionType, KeySalt, KeySaltList, SaltType, TlData, TlDataEntry
from pykadm5.native import cdefs as c
from pykadm5.native.context import Krb5Context
from pykadm5.native.conv import (
    INT16_MAX,
    INT16_MIN,
    INT32_MAX,
    INT32_MIN,
    UINT32_MAX,
    policy_from_native,
    policy_to_native,
    principal_from_native,
    principal_to_native,
    tl_data_to_native,
)
from pykadm5.native.memory import NativeScope
from tests.fake_kadm5 import FakeKadm5


# =============================================================================
# STRATEGIES
# =============================================================================

# Stored durations and timestamps, 0 ("unset") included
int32_strategy = st.integers(min_value=INT32_MIN, max_value=INT32_MAX)
count_strategy = st.integers(min_value=0, max_value=INT32_MAX)
uint32_strategy = st.integers(min_value=0, max_value=UINT32_MAX)

tl_data_strategy = st.lists(
    st.builds(
        TlDataEntry,
        st.integers(min_value=INT16_MIN, max_value=INT16_MAX),
        st.binary(max_size=32),
    ),
    max_size=4,
).map(TlData)

keysalt_strategy = st.builds(
    KeySalt,
    st.sampled_from(list(EncryptionType)),
    st.sampled_from(list(SaltType)),
)

allowed_keysalts_strategy = st.none() | st.lists(keysalt_strategy, max_size=4).map(KeySaltList)

name_strategy = st.from_regex(r"[a-z][a-z0-9_-]{0,15}", fullmatch=True)

POLICY_DURATIONS = (
    "pw_min_life",
    "pw_max_life",
    "pw_failcnt_interval",
    "pw_lockout_duration",
    "max_life",
    "max_renewable_life",
)

policy_record_strategy = st.fixed_dictionaries({
    "name": name_strategy,
    "pw_min_length": count_strategy,
    "pw_min_classes": count_strategy,
    "pw_history_num": count_strategy,
    "pw_max_fail": uint32_strategy,
    "attributes": count_strategy,
    "allowed_keysalts": allowed_keysalts_strategy,
    "tl_data": tl_data_strategy,
    **{member: int32_strategy for member in POLICY_DURATIONS},
})

principal_record_strategy = st.fixed_dictionaries({
    "name": name_strategy,
    "princ_expire_time": int32_strategy,
    "pw_expiration": int32_strategy,
    "max_life": int32_strategy,
    "max_renewable_life": int32_strategy,
    "attributes": count_strategy,
    "aux_attributes": int32_strategy,
    "kvno": uint32_strategy,
    "fail_auth_count": uint32_strategy,
    "policy": st.none() | name_strategy,
    "tl_data": tl_data_strategy,
})

# Owned fields that principal_to_native and policy_to_native accept
PRINCIPAL_WRITABLE = (
    "expire_time",
    "password_expiration",
    "max_life",
    "max_renewable_life",
    "attributes",
    "aux_attributes",
    "kvno",
    "fail_auth_count",
    "policy",
    "tl_data",
)

POLICY_WRITABLE = (
    "password_min_life",
    "password_max_life",
    "password_min_length",
    "password_min_classes",
    "password_history_num",
    "password_max_fail",
    "password_failcount_interval",
    "password_lockout_duration",
    "attributes",
    "max_life",
    "max_renewable_life",
    "allowed_keysalts",
    "tl_data",
)

POLICY_SCALARS = (
    "pw_min_length",
    "pw_min_classes",
    "pw_history_num",
    "pw_max_fail",
    "attributes",
) + POLICY_DURATIONS

PRINCIPAL_SCALARS = (
    "princ_expire_time",
    "pw_expiration",
    "max_life",
    "max_renewable_life",
    "attributes",
    "aux_attributes",
    "kvno",
    "fail_auth_count",
)


def _policy_entry(scope, record):
    ent = scope.new("kadm5_policy_ent_rec *")
    ent.policy = scope.cstring(record["name"])
    for member in POLICY_SCALARS:
        setattr(ent, member, record[member])
    if record["allowed_keysalts"] is not None:
        ent.allowed_keysalts = scope.cstring(record["allowed_keysalts"].to_string())
    ent.tl_data, ent.n_tl_data = tl_data_to_native(scope, record["tl_data"])
    return ent


def _principal_entry(scope, context, record):
    ent = scope.new("kadm5_principal_ent_rec *")
    ent.principal = context.parse_name(scope, record["name"])
    for member in PRINCIPAL_SCALARS:
        setattr(ent, member, record[member])
    ent.policy = scope.cstring(record["policy"])
    ent.tl_data, ent.n_tl_data = tl_data_to_native(scope, record["tl_data"])
    return ent


# =============================================================================
# ROUND-TRIP PROPERTIES
# =============================================================================


class TestRecordRoundTrip:
    """Property-based tests for native -> owned -> native record conversion."""

    @settings(deadline=None)
    @given(policy_record_strategy)
    def test_policy_round_trip(self, record):
        """Property: every writable policy field survives a round trip."""
        with NativeScope() as scope:
            policy = policy_from_native(_policy_entry(scope, record))
            changes = {name: getattr(policy, name) for name in POLICY_WRITABLE}
            target, _ = policy_to_native(scope, policy.name, changes)

            for member in POLICY_SCALARS:
                assert getattr(target, member) == record[member]
            assert policy_from_native(target) == policy

    @settings(deadline=None)
    @given(principal_record_strategy)
    def test_principal_round_trip(self, record):
        """Property: every writable principal field survives a round trip."""
        fake = FakeKadm5()
        context = Krb5Context.create(fake.library())
        try:
            with NativeScope() as scope:
                principal = principal_from_native(
                    context, _principal_entry(scope, context, record)
                )
                changes = {name: getattr(principal, name) for name in PRINCIPAL_WRITABLE}
                target, mask = principal_to_native(scope, context, principal.name, changes)

                for member in PRINCIPAL_SCALARS:
                    assert getattr(target, member) == record[member]
                # A missing policy is written as a clear, a present one as a set
                if record["policy"] is None:
                    assert mask & c.KADM5_POLICY_CLR
                    assert not mask & c.KADM5_POLICY
                else:
                    assert mask & c.KADM5_POLICY
                    assert not mask & c.KADM5_POLICY_CLR
                assert principal_from_native(context, target) == principal
        finally:
            context.free()
        fake.assert_clean()
