"""
Tests for canonical permission identifiers.
"""
import pytest

from core.exceptions import InvalidIdentifier
from core.identifiers import is_canonical, normalize, split_identifier


class TestNormalize:
    """Delimiter styles collapse to one canonical identifier."""

    def test_space_and_hyphen_variants_are_equivalent(self):
        assert normalize("business units", "read") == "business_units:read"
        assert normalize("business-units", "read") == "business_units:read"
        assert normalize("business_units", "read") == "business_units:read"

    def test_case_and_surrounding_whitespace(self):
        assert normalize("  Deals ", " READ") == "deals:read"

    def test_whitespace_runs_collapse(self):
        assert normalize("business  -  units", "read") == "business_units:read"

    @pytest.mark.parametrize("resource,action", [
        ("", "read"),
        ("deals", ""),
        ("   ", "read"),
        ("deals", None),
        ("deals:x", "read"),
        ("deals", "read:all"),
        ("---", "read"),
    ])
    def test_rejects_malformed_parts(self, resource, action):
        with pytest.raises(InvalidIdentifier):
            normalize(resource, action)

    def test_invalid_identifier_is_a_value_error(self):
        with pytest.raises(ValueError):
            normalize("", "read")


class TestHelpers:
    """Helpers used when repairing stored rows."""

    def test_split_identifier(self):
        assert split_identifier("business-units:read") == ("business-units", "read")

    @pytest.mark.parametrize("name", ["", "deals", "a:b:c"])
    def test_split_identifier_rejects(self, name):
        with pytest.raises(InvalidIdentifier):
            split_identifier(name)

    def test_is_canonical(self):
        assert is_canonical("deals", "read", "deals:read")
        assert not is_canonical("business-units", "read", "business-units:read")
        assert not is_canonical("business_units", "read", "business-units:read")
        assert not is_canonical("", "read", ":read")
