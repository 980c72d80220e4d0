"""Property-based tests for value types.

A value type accepts a string exactly when the string fully matches its
documented format, and an accepted value keeps the raw string unchanged.
"""

from __future__ import annotations

import re

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from people_registry.core.errors import ValidationError
from people_registry.domain.values import CountryCode, Email, Phone, PostalCode

_label = st.from_regex(r"[a-z0-9-]{1,12}", fullmatch=True)

emails = st.builds(
    lambda local, domain, tld: f"{local}@{domain}.{tld}",
    st.from_regex(r"[A-Za-z0-9_.-]{1,20}", fullmatch=True),
    _label,
    st.from_regex(r"[a-z]{2,6}", fullmatch=True),
)
phones = st.from_regex(r"\+?[0-9]{10,15}", fullmatch=True)
postal_codes = st.from_regex(r"[A-Za-z0-9 -]{3,10}", fullmatch=True)
country_codes = st.from_regex(r"[A-Z]{2}", fullmatch=True)

# documented formats; the classes must agree with these exactly
FORMATS = {
    Email: re.compile(r"[\w.-]+@([\w-]+\.)+[\w-]{2,}", re.ASCII),
    Phone: re.compile(r"\+?[0-9]{10,15}"),
    PostalCode: re.compile(r"[A-Za-z0-9 -]{3,10}"),
    CountryCode: re.compile(r"[A-Z]{2}"),
}

candidates = st.one_of(
    st.text(max_size=30),
    st.text(alphabet="aZ9_.-@+ \né", max_size=20),
    emails,
    phones,
    postal_codes,
    country_codes,
)


class TestAcceptedValues:
    @given(raw=emails)
    @settings(max_examples=200)
    def test_email_keeps_raw(self, raw):
        assert Email.create(raw).value == raw

    @given(raw=phones)
    @settings(max_examples=200)
    def test_phone_keeps_raw(self, raw):
        assert Phone.create(raw).value == raw

    @given(raw=postal_codes)
    @settings(max_examples=200)
    def test_postal_code_keeps_raw(self, raw):
        assert PostalCode.create(raw).value == raw

    @given(raw=country_codes)
    def test_country_code_keeps_raw(self, raw):
        assert CountryCode.create(raw).value == raw


class TestPredicateAgreement:
    @pytest.mark.parametrize("cls", [Email, Phone, PostalCode, CountryCode])
    @given(raw=candidates)
    @settings(max_examples=300)
    def test_create_succeeds_iff_format_matches(self, cls, raw):
        matches = FORMATS[cls].fullmatch(raw) is not None
        assert cls.is_valid(raw) == matches
        if matches:
            assert cls.create(raw).value == raw
        else:
            with pytest.raises(ValidationError):
                cls.create(raw)

    @pytest.mark.parametrize(
        ("cls", "raw"),
        [
            (Email, "a@b.co\n"),
            (Email, "ann@localhost"),
            (Email, "ann@example.c"),
            (Email, "é@example.com"),
            (Phone, "+123456789"),
            (Phone, "1234567890123456"),
            (Phone, "++1234567890"),
            (PostalCode, "AB"),
            (PostalCode, "SW1A_1AA"),
            (CountryCode, "us"),
            (CountryCode, "USA"),
        ],
    )
    def test_near_misses_rejected(self, cls, raw):
        assert FORMATS[cls].fullmatch(raw) is None
        assert not cls.is_valid(raw)

    @given(raw=phones, sep=st.sampled_from(" -()."))
    def test_punctuated_phone_rejected(self, raw, sep):
        punctuated = raw[:4] + sep + raw[4:]
        assert not Phone.is_valid(punctuated)


class TestEquality:
    @given(raw=emails)
    def test_equal_iff_same_string(self, raw):
        assert Email.create(raw) == Email.create(raw)
        assert hash(Email.create(raw)) == hash(Email.create(raw))

    @given(a=phones, b=phones)
    def test_distinct_strings_distinct_values(self, a, b):
        assert (Phone.create(a) == Phone.create(b)) == (a == b)
