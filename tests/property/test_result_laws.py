"""Property-based tests for Result: fold and map behave like a functor."""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from people_registry.domain.result import (
    Conflict,
    Error,
    Failure,
    NotFound,
    Success,
    ValidationFailed,
    failure,
    success,
)

values = st.integers() | st.text() | st.lists(st.integers(), max_size=5)
reasons = st.one_of(
    st.builds(NotFound, st.text(min_size=1)),
    st.builds(Conflict, st.text(min_size=1)),
    st.builds(Error, st.text(min_size=1)),
    st.builds(
        ValidationFailed,
        st.text(min_size=1),
        st.dictionaries(st.text(min_size=1, max_size=5), st.text(max_size=10), max_size=3),
    ),
)
functions = st.sampled_from([repr, len, lambda v: (v,), lambda v: [v, v]])


class TestSuccessLaws:
    @given(value=values)
    @settings(max_examples=200)
    def test_fold_selects_success_branch(self, value):
        assert success(value).fold(lambda v: ("ok", v), lambda r: ("bad", r)) == ("ok", value)

    @given(value=values)
    def test_map_identity(self, value):
        assert success(value).map(lambda v: v) == success(value)

    @given(value=values, f=functions, g=functions)
    def test_map_composition(self, value, f, g):
        # len only applies to sized values
        try:
            expected = success(g(f(value)))
        except TypeError:
            return
        assert success(value).map(f).map(g) == expected

    @given(value=values, default=values)
    def test_get_or_default_ignores_default(self, value, default):
        assert success(value).get_or_default(default) == value


class TestFailureLaws:
    @given(reason=reasons)
    @settings(max_examples=200)
    def test_fold_selects_failure_branch(self, reason):
        assert failure(reason).fold(lambda v: ("ok", v), lambda r: ("bad", r)) == ("bad", reason)

    @given(reason=reasons, f=functions)
    def test_map_never_calls_transform(self, reason, f):
        calls = []

        def spy(value):
            calls.append(value)
            return f(value)

        mapped = failure(reason).map(spy)

        assert calls == []
        assert isinstance(mapped, Failure)
        assert mapped.fold(lambda v: None, lambda r: r) == reason

    @given(reason=reasons, default=values)
    def test_accessors(self, reason, default):
        result = failure(reason)
        assert result.get_or_none() is None
        assert result.get_or_default(default) == default
        assert result.is_failure() and not result.is_success()


class TestExclusivity:
    @given(value=values, reason=reasons)
    def test_success_and_failure_never_equal(self, value, reason):
        assert Success(value) != Failure(reason)
