"""
Tests for Input Validation Utilities

Registration fields are validated before any identity row is written;
these tests pin down what is accepted and the Italian messages returned
for what is not.
"""

from datetime import date, time

import pytest
from medhubb.utils.validators import (
    InputValidator, ValidationResult, validate_email, validate_password_hash,
    validate_password_strength, validate_name, sanitize_input, parse_date, parse_time
)


class TestEmailValidation:
    """Test email validation"""

    def test_valid_emails(self):
        """Test that valid email addresses pass validation"""
        valid_emails = [
            "test@example.com",
            "user.name@domain.co.uk",
            "user+tag@example.org",
            "user-name@subdomain.example.com",
            "Mario.Rossi@Ospedale.IT",
            "a@b.c",
        ]

        for email in valid_emails:
            result = validate_email(email)
            assert result.is_valid, f"Email '{email}' should be valid: {result.error_message}"
            assert result.sanitized_value == email.lower()

    def test_invalid_emails(self):
        """Test that invalid email addresses fail validation"""
        invalid_emails = [
            "invalid-email",
            "@example.com",
            "user@",
            "user@.com",
            "user name@example.com",
            "user@example..com",
            "user@-example.com",
            ".user@example.com",
            "user.@example.com",
        ]

        for email in invalid_emails:
            result = validate_email(email)
            assert not result.is_valid, f"Email '{email}' should be invalid"
            assert result.error_message == "Formato email non valido"

    def test_missing_email(self):
        for email in (None, "", "   "):
            result = validate_email(email)
            assert not result.is_valid
            assert result.error_message == "L'email è obbligatoria"

    def test_email_length_limits(self):
        """Test RFC length limits"""
        long_local = "a" * 65 + "@example.com"
        assert validate_email(long_local).error_message == "Indirizzo email troppo lungo"

        long_email = "user@" + ("a" * 63 + ".") * 4 + "com"
        assert not validate_email(long_email).is_valid

    def test_email_is_trimmed(self):
        result = validate_email("  paziente@example.com  ")
        assert result.is_valid
        assert result.sanitized_value == "paziente@example.com"


class TestPasswordHashValidation:
    """Test bcrypt hash format validation"""

    def test_valid_bcrypt_hash(self):
        valid_hash = "$2b$12$" + "a" * 53
        result = validate_password_hash(valid_hash)
        assert result.is_valid
        assert result.sanitized_value == valid_hash

    def test_invalid_hashes(self):
        invalid_hashes = [
            "",
            None,
            "plaintext",
            "$2b$12$short",
            "$1$12$" + "a" * 53,
        ]
        for value in invalid_hashes:
            assert not validate_password_hash(value).is_valid


class TestPasswordStrength:
    """Test password strength requirements"""

    def test_accepts_reasonable_password(self):
        assert validate_password_strength("Segreta123").is_valid

    def test_rejects_short_password(self):
        result = validate_password_strength("abc")
        assert not result.is_valid
        assert result.error_message == "La password deve contenere almeno 6 caratteri"

    def test_rejects_missing_password(self):
        result = validate_password_strength("")
        assert result.error_message == "La password è obbligatoria"

    def test_rejects_passwords_beyond_bcrypt_limit(self):
        result = validate_password_strength("x" * 73)
        assert not result.is_valid
        assert result.error_message == "Password troppo lunga"

    @pytest.mark.parametrize("password", ["password", "123456", "Qwerty", "WELCOME"])
    def test_rejects_common_passwords(self, password):
        result = validate_password_strength(password)
        assert not result.is_valid
        assert "troppo comune" in result.error_message


class TestNameValidation:
    """Test person-name fields"""

    def test_valid_name_is_trimmed(self):
        result = validate_name("  Mario ", "Il nome")
        assert result.is_valid
        assert result.sanitized_value == "Mario"

    def test_missing_name_uses_field_label(self):
        result = validate_name("", "Il cognome")
        assert not result.is_valid
        assert result.error_message == "Il cognome è obbligatorio"

    @pytest.mark.parametrize("value", [
        "<script>alert(1)</script>",
        "Mario<b>",
        "javascript:alert(1)",
        "x onerror=alert(1)",
    ])
    def test_rejects_markup(self, value):
        result = validate_name(value, "Il nome")
        assert not result.is_valid
        assert result.error_message == "Il nome contiene caratteri non validi"


class TestSanitizeInput:
    """Test generic input sanitization"""

    def test_strips_and_bounds(self):
        assert sanitize_input("  abc  ") == "abc"
        assert sanitize_input("x" * 20, max_length=5) == "xxxxx"

    def test_removes_null_bytes_and_normalizes_newlines(self):
        assert sanitize_input("a\x00b\r\nc\rd") == "ab\nc\nd"

    def test_empty_values(self):
        assert sanitize_input(None) == ""
        assert sanitize_input("") == ""

    def test_validation_result_defaults(self):
        result = ValidationResult(True)
        assert result.error_message is None
        assert result.sanitized_value is None
        assert InputValidator.MAX_PASSWORD_LENGTH == 72


class TestDateAndTimeParsing:
    """Dates and clock times sent by the booking forms"""

    def test_parse_date(self):
        assert parse_date("2030-05-17") == date(2030, 5, 17)
        assert parse_date(" 2030-05-17T08:00:00Z") == date(2030, 5, 17)

    @pytest.mark.parametrize("value", [None, "", "17/05/2030", "2030-02-30", 20300517, "domani"])
    def test_rejects_bad_dates(self, value):
        assert parse_date(value) is None

    def test_parse_time(self):
        assert parse_time("09:30") == time(9, 30)
        assert parse_time("14:05:00") == time(14, 5)

    @pytest.mark.parametrize("value", [None, "", "25:00", "9.30", 930, "mezzogiorno"])
    def test_rejects_bad_times(self, value):
        assert parse_time(value) is None
