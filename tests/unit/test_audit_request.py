"""Tests for audit request validation and URL handling."""

import pytest

from api.exceptions import ValidationError
from api.models.audit import AuditSource
from api.schemas.audit import AuditRequest, ensure_scheme, validate_audit_request


class TestEnsureScheme:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("example.com", "https://example.com"),
            ("  example.com/about ", "https://example.com/about"),
            ("http://example.com", "http://example.com"),
            ("https://example.com", "https://example.com"),
        ],
    )
    def test_coercion(self, raw: str, expected: str) -> None:
        assert ensure_scheme(raw) == expected


class TestValidateAuditRequest:
    """Tests for validate_audit_request."""

    def test_minimal_body(self) -> None:
        request = validate_audit_request(
            {"name": "Dana", "email": "dana@example.com", "website": "example.com"}
        )

        assert request.website == "https://example.com"
        assert request.phone == ""
        assert request.source == AuditSource.LANDING_PAGE_SECTION

    def test_strips_whitespace(self) -> None:
        request = validate_audit_request(
            {
                "name": "  Dana ",
                "email": "dana@example.com",
                "phone": " 050 ",
                "website": " https://example.com ",
            }
        )

        assert request.name == "Dana"
        assert request.phone == "050"
        assert request.website == "https://example.com"

    def test_known_source_kept(self) -> None:
        request = validate_audit_request(
            {
                "name": "Dana",
                "email": "dana@example.com",
                "website": "example.com",
                "source": "contact_form",
            }
        )
        assert request.source == AuditSource.CONTACT_FORM

    @pytest.mark.parametrize("source", ["banner", None, 42])
    def test_unknown_source_defaults(self, source: object) -> None:
        request = validate_audit_request(
            {"name": "Dana", "email": "dana@example.com", "website": "x.com", "source": source}
        )
        assert request.source == AuditSource.LANDING_PAGE_SECTION

    def test_non_string_phone_dropped(self) -> None:
        request = validate_audit_request(
            {"name": "Dana", "email": "dana@example.com", "website": "x.com", "phone": 5551234}
        )
        assert request.phone == ""

    def test_missing_fields_listed(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_audit_request({"email": "dana@example.com"})

        assert exc_info.value.message == "Missing required fields: name, email, website"
        assert exc_info.value.details == {"fields": ["name", "website"]}

    @pytest.mark.parametrize("body", [None, [], "text", 3])
    def test_non_object_body(self, body: object) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_audit_request(body)

        assert exc_info.value.details == {"fields": ["name", "email", "website"]}

    def test_non_string_required_field_is_missing(self) -> None:
        with pytest.raises(ValidationError):
            validate_audit_request({"name": 7, "email": "dana@example.com", "website": "x.com"})

    def test_unusual_email_and_long_name_accepted(self) -> None:
        request = validate_audit_request(
            {"name": "D" * 500, "email": "felix@ppcadvisor", "website": "example.com"}
        )

        assert request.email == "felix@ppcadvisor"
        assert len(request.name) == 500
        assert request.website == "https://example.com"


class TestAuditRequest:
    def test_domain(self) -> None:
        request = AuditRequest(
            name="Dana", email="dana@example.com", website="https://www.acme.co.il/about"
        )
        assert request.domain == "www.acme.co.il"

    def test_is_immutable(self) -> None:
        request = AuditRequest(name="Dana", email="dana@example.com", website="acme.co.il")
        with pytest.raises(Exception):
            request.name = "Other"  # type: ignore[misc]
