"""
Tests for core.helpers.

Covers identifier parsing and bearer credential extraction, both used on
every inbound frame and request.
"""

import uuid

import pytest

from core.exceptions import ValidationError
from core.helpers import extract_bearer_token, parse_uuid, validate_uuid


class TestValidateUuid:
    """
    Verifies: validate_uuid accepts UUIDs in any accepted form.
    """

    def test_accepts_uuid_instance_and_string(self):
        value = uuid.uuid4()

        assert validate_uuid(value) is True
        assert validate_uuid(str(value)) is True

    @pytest.mark.parametrize("value", [None, "", "abc", 42, "listing_1"])
    def test_rejects_non_uuids(self, value):
        assert validate_uuid(value) is False


class TestParseUuid:
    """
    Verifies: parse_uuid returns a UUID or raises INVALID_IDENTIFIER.
    """

    def test_parses_string(self):
        value = uuid.uuid4()

        assert parse_uuid(str(value)) == value

    def test_missing_value_names_the_field(self):
        """
        Missing values report which field was missing.

        Why it matters: Clients get "listingId is required", not a stack trace.
        """
        with pytest.raises(ValidationError) as exc_info:
            parse_uuid(None, field="listingId")

        assert exc_info.value.error_code == "INVALID_IDENTIFIER"
        assert "listingId" in exc_info.value.message

    def test_malformed_value_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_uuid("not-a-uuid", field="buyerId")

        assert exc_info.value.error_code == "INVALID_IDENTIFIER"
        assert exc_info.value.details["value"] == "not-a-uuid"


class TestExtractBearerToken:
    """
    Verifies: only "Bearer <token>" values yield a token.
    """

    @pytest.mark.parametrize(
        "header, expected",
        [
            ("Bearer abc.def.ghi", "abc.def.ghi"),
            ("bearer abc", "abc"),
            (b"Bearer xyz", "xyz"),
            ("  Bearer   padded  ", "padded"),
        ],
    )
    def test_extracts_token(self, header, expected):
        assert extract_bearer_token(header) == expected

    @pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer   ", "Basic dXNlcjpw", "abc"])
    def test_returns_none_for_unusable_values(self, header):
        """
        Other schemes and empty tokens yield None.

        Why it matters: The connect frame is rejected as UNAUTHENTICATED
        instead of verifying an empty string.
        """
        assert extract_bearer_token(header) is None
