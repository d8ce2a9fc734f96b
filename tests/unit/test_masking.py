"""Unit tests for personal data masking."""

import pytest

from certflow.utils.masking import mask_email, mask_phone, mask_string


class TestMaskEmail:
    """Tests for mask_email."""

    def test_standard(self):
        assert mask_email("john.doe@example.com") == "jo***@ex***.com"

    def test_short_parts(self):
        assert mask_email("a@b.io") == "a***@b***.io"

    def test_domain_without_dot(self):
        assert mask_email("jane@localhost") == "ja***@lo***"

    @pytest.mark.parametrize("value", ["not-an-email", "@example.com", "jane@", "a@b@c"])
    def test_malformed(self, value: str):
        assert mask_email(value) == "***@***.***"

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing(self, value):
        assert mask_email(value) == ""


class TestMaskPhone:
    """Tests for mask_phone."""

    def test_keeps_last_digits(self):
        assert mask_phone("+1 (555) 123-4567") == "*******4567"

    def test_too_short(self):
        assert mask_phone("12") == "***"

    def test_missing(self):
        assert mask_phone(None) == ""


class TestMaskString:
    """Tests for mask_string."""

    def test_keeps_prefix(self):
        assert mask_string("secret") == "se***"

    def test_short_value(self):
        assert mask_string("ab") == "a***"

    def test_missing(self):
        assert mask_string("") == ""
