"""
Property-based tests for value types and scalar conversions.
"""

from datetime import timedelta

from hypothesis import given, strategies as st

from pykadm5.admin.params import DbArgs
from pykadm5.core.types import EncryptionType, KeySalt, KeySaltList, SaltType
from pykadm5.native.conv import (
    INT32_MAX,
    INT32_MIN,
    delta_to_td,
    dt_to_ts,
    td_to_delta,
    ts_to_dt,
)


# =============================================================================
# STRATEGIES
# =============================================================================

keysalt_strategy = st.builds(
    KeySalt,
    st.sampled_from(list(EncryptionType)),
    st.sampled_from(list(SaltType)),
)

# Stored krb5 values: any 32-bit signed value except the "unset" sentinel
stored_int32_strategy = st.integers(min_value=INT32_MIN, max_value=INT32_MAX).filter(bool)

db_arg_key_strategy = st.from_regex(r"[a-z][a-z_]{0,15}", fullmatch=True)


# =============================================================================
# KEY-SALT PROPERTIES
# =============================================================================


class TestKeySaltListProperties:
    """Property-based tests for KeySaltList."""

    @given(st.lists(keysalt_strategy, max_size=30))
    def test_duplicates_collapse(self, keysalts):
        """Property: a list holds each distinct pair exactly once."""
        assert len(KeySaltList(keysalts)) == len(set(keysalts))

    @given(st.lists(keysalt_strategy, max_size=30))
    def test_order_irrelevant(self, keysalts):
        """Property: permuting the input yields an equal list."""
        assert KeySaltList(keysalts) == KeySaltList(reversed(keysalts))

    @given(st.lists(keysalt_strategy, max_size=30))
    def test_string_form_parses_back(self, keysalts):
        """Property: the rendered string parses to the same set."""
        keysalt_list = KeySaltList(keysalts)
        assert KeySaltList.from_string(keysalt_list.to_string()) == keysalt_list


# =============================================================================
# TIME PROPERTIES
# =============================================================================


class TestTimeProperties:
    """Property-based tests for timestamp and duration conversion."""

    @given(stored_int32_strategy)
    def test_timestamp_round_trip(self, ts):
        """Property: every stored timestamp survives a trip through datetime."""
        assert dt_to_ts(ts_to_dt(ts)) == ts

    @given(stored_int32_strategy)
    def test_timestamp_is_utc(self, ts):
        """Property: converted timestamps are timezone aware."""
        assert ts_to_dt(ts).utcoffset() == timedelta(0)

    @given(stored_int32_strategy)
    def test_duration_round_trip(self, delta):
        """Property: every stored duration survives a trip through timedelta."""
        assert td_to_delta(delta_to_td(delta)) == delta


# =============================================================================
# DB ARGS PROPERTIES
# =============================================================================


class TestDbArgsProperties:
    """Property-based tests for DbArgs."""

    @given(st.lists(st.tuples(db_arg_key_strategy, st.none() | st.text(max_size=20)), max_size=10))
    def test_render_preserves_arguments(self, pairs):
        """Property: one rendered string per argument, keys first."""
        db_args = DbArgs()
        for key, value in pairs:
            db_args.arg(key, value)
        rendered = db_args.render()
        assert len(rendered) == len(pairs)
        for (key, value), text in zip(pairs, rendered):
            expected = key if value is None else f"{key}={value}"
            assert text == expected
