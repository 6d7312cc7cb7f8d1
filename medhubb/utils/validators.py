"""
Input Validation Utilities

FLOW OVERVIEW
- validate_email(email)
  • RFC-like syntax checks; returns sanitized lowercased value.
- validate_password_hash(hash)
  • Enforce bcrypt hash format ($2a$/$2b$/$2y$, 60 characters).
- validate_password_strength(password)
  • Enforce length bounds accepted by bcrypt and reject trivially common passwords.
- validate_name(value, field)
  • Required person-name field, trimmed, bounded, no markup.
- sanitize_input(input, max_length)
  • Trim, bound length, normalize, and remove null bytes.
- parse_date(value) / parse_time(value)
  • ISO dates (YYYY-MM-DD) and clock times (HH:MM or HH:MM:SS); None when malformed.

Error messages are in Italian because they are returned verbatim to the client.
"""

import re
from datetime import date, datetime, time
from typing import Optional
from dataclasses import dataclass


@dataclass
class ValidationResult:
    """Result of validation operation"""
    is_valid: bool
    error_message: Optional[str] = None
    sanitized_value: Optional[str] = None


class InputValidator:
    """Input validation for registration and profile fields"""

    # RFC 5322 compliant email regex (simplified)
    EMAIL_PATTERN = re.compile(
        r'^[a-zA-Z0-9.!#$%&\'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$'
    )

    BCRYPT_PATTERN = re.compile(r'^\$2[aby]\$\d{2}\$[./A-Za-z0-9]{53}$')

    XSS_PATTERNS = [
        r'<script[^>]*>.*?</script>',
        r'javascript:',
        r'on\w+\s*=',
        r'<iframe[^>]*>',
        r'<svg[^>]*>',
        r'data:text/html',
        r'vbscript:',
    ]

    MIN_PASSWORD_LENGTH = 6
    # bcrypt ignores everything past 72 bytes
    MAX_PASSWORD_LENGTH = 72

    @classmethod
    def validate_email(cls, email: str) -> ValidationResult:
        """
        Validate email address

        Args:
            email: Email address to validate

        Returns:
            ValidationResult with validation status and sanitized value
        """
        if not email or not isinstance(email, str):
            return ValidationResult(False, "L'email è obbligatoria")

        email = email.strip()
        if email == "":
            return ValidationResult(False, "L'email è obbligatoria")

        # RFC 5321 limits
        if len(email) > 254:
            return ValidationResult(False, "Indirizzo email troppo lungo")

        if not cls.EMAIL_PATTERN.match(email):
            return ValidationResult(False, "Formato email non valido")

        local_part, domain = email.split('@')
        if len(local_part) > 64:
            return ValidationResult(False, "Indirizzo email troppo lungo")

        if local_part.startswith('.') or local_part.endswith('.') or '..' in local_part:
            return ValidationResult(False, "Formato email non valido")

        if '..' in domain:
            return ValidationResult(False, "Formato email non valido")

        return ValidationResult(True, sanitized_value=email.lower())

    @classmethod
    def validate_password_hash(cls, password_hash: str) -> ValidationResult:
        """
        Validate bcrypt password hash format

        Args:
            password_hash: Password hash to validate

        Returns:
            ValidationResult with validation status
        """
        if not password_hash or not isinstance(password_hash, str):
            return ValidationResult(False, "Password hash must be a non-empty string")

        password_hash = password_hash.strip()
        if not cls.BCRYPT_PATTERN.match(password_hash):
            return ValidationResult(False, "Invalid password hash format: expected a bcrypt hash")

        return ValidationResult(True, sanitized_value=password_hash)

    @classmethod
    def validate_password_strength(cls, password: str) -> ValidationResult:
        """
        Validate password strength requirements

        Args:
            password: Password to validate

        Returns:
            ValidationResult with validation status
        """
        if not password or not isinstance(password, str):
            return ValidationResult(False, "La password è obbligatoria")

        if len(password) < cls.MIN_PASSWORD_LENGTH:
            return ValidationResult(
                False, f"La password deve contenere almeno {cls.MIN_PASSWORD_LENGTH} caratteri")

        if len(password.encode('utf-8')) > cls.MAX_PASSWORD_LENGTH:
            return ValidationResult(False, "Password troppo lunga")

        weak_passwords = {
            'password', '123456', '1234567', '12345678', 'qwerty', 'abc123',
            'password123', 'admin', 'letmein', 'welcome'
        }
        if password.lower() in weak_passwords:
            return ValidationResult(False, "Password troppo comune, scegline una più sicura")

        return ValidationResult(True)

    @classmethod
    def validate_name(cls, value, field_label: str, max_length: int = 100) -> ValidationResult:
        """Validate a required person-name style field"""
        sanitized = cls.sanitize_input(value, max_length)
        if not sanitized:
            return ValidationResult(False, f"{field_label} è obbligatorio")

        if cls._contains_xss(sanitized) or '<' in sanitized or '>' in sanitized:
            return ValidationResult(False, f"{field_label} contiene caratteri non validi")

        return ValidationResult(True, sanitized_value=sanitized)

    @classmethod
    def sanitize_input(cls, input_string, max_length: int = 1000) -> str:
        """
        Sanitize user input

        Args:
            input_string: Input string to sanitize
            max_length: Maximum allowed length

        Returns:
            Sanitized string
        """
        if not input_string:
            return ""

        sanitized = str(input_string).strip()

        if len(sanitized) > max_length:
            sanitized = sanitized[:max_length]

        sanitized = sanitized.replace('\x00', '')
        sanitized = sanitized.replace('\r\n', '\n').replace('\r', '\n')

        return sanitized

    @classmethod
    def parse_date(cls, value) -> Optional[date]:
        """Parse a YYYY-MM-DD date (a trailing time part is ignored)"""
        if not value or not isinstance(value, str):
            return None
        try:
            return datetime.strptime(value.strip()[:10], '%Y-%m-%d').date()
        except ValueError:
            return None

    @classmethod
    def parse_time(cls, value) -> Optional[time]:
        """Parse an HH:MM or HH:MM:SS clock time"""
        if not value or not isinstance(value, str):
            return None
        for fmt in ('%H:%M', '%H:%M:%S'):
            try:
                return datetime.strptime(value.strip(), fmt).time()
            except ValueError:
                continue
        return None

    @classmethod
    def _contains_xss(cls, text: str) -> bool:
        """Check if text contains XSS patterns"""
        text_lower = text.lower()
        for pattern in cls.XSS_PATTERNS:
            if re.search(pattern, text_lower, re.IGNORECASE):
                return True
        return False


# Convenience functions for common validations
def validate_email(email: str) -> ValidationResult:
    """Validate email address"""
    return InputValidator.validate_email(email)


def validate_password_hash(password_hash: str) -> ValidationResult:
    """Validate password hash"""
    return InputValidator.validate_password_hash(password_hash)


def validate_password_strength(password: str) -> ValidationResult:
    """Validate password strength"""
    return InputValidator.validate_password_strength(password)


def validate_name(value, field_label: str, max_length: int = 100) -> ValidationResult:
    """Validate a person-name field"""
    return InputValidator.validate_name(value, field_label, max_length)


def sanitize_input(input_string, max_length: int = 1000) -> str:
    """Sanitize user input"""
    return InputValidator.sanitize_input(input_string, max_length)


def parse_date(value) -> Optional[date]:
    """Parse an ISO date"""
    return InputValidator.parse_date(value)


def parse_time(value) -> Optional[time]:
    """Parse a clock time"""
    return InputValidator.parse_time(value)
