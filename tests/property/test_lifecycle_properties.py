"""
Property-based tests for native resource handling.

Random sequences of operations, with and without injected failures, must
always leave the fake library with no live allocations and no double
frees once the handle is closed.
"""

from datetime import timedelta

import pytest
from hypothesis import given, settings, strategies as st

from pykadm5.admin.builders import PolicyBuilder, PrincipalBuilder, PrincipalModifier
from pykadm5.admin.handle import connect_with_password
from pykadm5.core.exceptions import KAdminError
from pykadm5.native import cdefs as c
from tests.fake_kadm5 import FakeKadm5


# =============================================================================
# STRATEGIES
# =============================================================================

name_strategy = st.sampled_from(["alice", "bob", "carol", "admin/admin", "bad name"])

policy_strategy = st.sampled_from(["users", "admins", "missing"])

operation_strategy = st.one_of(
    st.tuples(st.just("get"), name_strategy),
    st.tuples(st.just("add"), name_strategy),
    st.tuples(st.just("add_with_password"), name_strategy),
    st.tuples(st.just("delete"), name_strategy),
    st.tuples(st.just("rename"), name_strategy),
    st.tuples(st.just("change_password"), name_strategy),
    st.tuples(st.just("set_policy"), name_strategy, policy_strategy),
    st.tuples(st.just("max_life"), name_strategy, st.integers(min_value=0, max_value=10**6)),
    st.tuples(st.just("list"), st.sampled_from(["*", "a*", None])),
    st.tuples(st.just("add_policy"), policy_strategy),
    st.tuples(st.just("get_policy"), policy_strategy),
    st.tuples(st.just("delete_policy"), policy_strategy),
    st.tuples(st.just("privileges"),),
)

failing_function_strategy = st.sampled_from([
    "kadm5_get_principal",
    "kadm5_create_principal_3",
    "kadm5_modify_principal",
    "kadm5_get_principals",
    "kadm5_get_policy",
    "kadm5_chpass_principal",
    "krb5_parse_name",
])

failure_code_strategy = st.sampled_from([
    c.KADM5_FAILURE,
    c.KADM5_RPC_ERROR,
    c.KADM5_AUTH_GET,
    c.KADM5_BAD_MASK,
    c.KRB5_PARSE_MALFORMED,
])


def _run(kadmin, operation):
    kind, *args = operation
    if kind == "get":
        kadmin.get_principal(args[0])
    elif kind == "add":
        kadmin.add_principal(args[0])
    elif kind == "add_with_password":
        kadmin.add_principal(PrincipalBuilder(args[0]), password="pw-" + args[0])
    elif kind == "delete":
        kadmin.delete_principal(args[0])
    elif kind == "rename":
        kadmin.rename_principal(args[0], args[0] + "-renamed")
    elif kind == "change_password":
        kadmin.change_password(args[0], "new-password")
    elif kind == "set_policy":
        kadmin.modify_principal(PrincipalModifier(args[0]).policy(args[1]))
    elif kind == "max_life":
        kadmin.modify_principal(PrincipalModifier(args[0]).max_life(timedelta(seconds=args[1])))
    elif kind == "list":
        kadmin.list_principals(args[0])
    elif kind == "add_policy":
        kadmin.add_policy(PolicyBuilder(args[0]).password_min_length(1))
    elif kind == "get_policy":
        kadmin.get_policy(args[0])
    elif kind == "delete_policy":
        kadmin.delete_policy(args[0])
    elif kind == "privileges":
        kadmin.get_privileges()


def _connect(fake):
    return connect_with_password("admin/admin", "adminpass", library=fake.library())


# =============================================================================
# LEAK PROPERTIES
# =============================================================================


class TestResourceProperties:
    """Property-based tests for leak-free teardown."""

    @pytest.mark.slow
    @settings(max_examples=60, deadline=None)
    @given(st.lists(operation_strategy, max_size=25))
    def test_no_leaks_after_any_sequence(self, operations):
        """Property: any sequence of operations releases everything it obtains."""
        fake = FakeKadm5()
        kadmin = _connect(fake)
        for operation in operations:
            try:
                _run(kadmin, operation)
            except KAdminError:
                pass
            assert fake.live_allocations().keys() <= {"context", "server_handle"}
        kadmin.close()

        fake.assert_clean()
        assert fake.calls["kadm5_destroy"] == 1
        assert fake.overlaps == 0

    @pytest.mark.slow
    @settings(max_examples=60, deadline=None)
    @given(
        st.lists(operation_strategy, min_size=1, max_size=10),
        failing_function_strategy,
        failure_code_strategy,
    )
    def test_no_leaks_with_injected_failures(self, operations, function, code):
        """Property: native failures at any point still release everything."""
        fake = FakeKadm5()
        kadmin = _connect(fake)
        for operation in operations:
            fake.fail_next[function] = code
            try:
                _run(kadmin, operation)
            except KAdminError:
                pass
        kadmin.close()

        fake.assert_clean()

    @settings(max_examples=30, deadline=None)
    @given(failure_code_strategy)
    def test_failed_connect_releases_context(self, code):
        """Property: a failed connect leaves nothing behind."""
        fake = FakeKadm5()
        fake.fail_next["kadm5_init_with_password"] = code
        with pytest.raises(KAdminError):
            _connect(fake)
        fake.assert_clean()
        assert fake.calls["krb5_free_context"] == 1
