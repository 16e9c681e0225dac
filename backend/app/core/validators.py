"""
Input validation and sanitization utilities shared by the request schemas.
"""

import re
import html
from datetime import date
from typing import Any, Optional


class PasswordValidator:
    """
    Password rules for account creation and password changes.
    """

    MIN_LENGTH = 6
    MAX_LENGTH = 128

    @classmethod
    def validate(cls, password: str) -> tuple[bool, Optional[str]]:
        """
        Validate password strength.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if len(password) < cls.MIN_LENGTH:
            return False, f"Password must be at least {cls.MIN_LENGTH} characters long"

        if len(password) > cls.MAX_LENGTH:
            return False, f"Password must not exceed {cls.MAX_LENGTH} characters"

        if not re.search(r"\d", password):
            return False, "Password must contain at least one number"

        return True, None


class StringSanitizer:
    """
    String sanitization utilities for preventing XSS and injection attacks.
    """

    # Control characters to strip (except newlines, tabs, carriage returns)
    CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

    @classmethod
    def _base_sanitize(cls, value: str, escape_html: bool = True) -> str:
        value = cls.CONTROL_CHARS_PATTERN.sub("", value)
        value = value.strip()
        if escape_html:
            value = html.escape(value, quote=False)
        return value

    @classmethod
    def sanitize_string(cls, value: str, allow_html: bool = False) -> str:
        """
        Sanitize free-text input (titles, content, questions, answers).

        Args:
            value: String to sanitize
            allow_html: Whether to keep HTML markup as-is (default: False)
        """
        return cls._base_sanitize(value, escape_html=not allow_html)

    @classmethod
    def sanitize_name(cls, name: str) -> str:
        """Sanitize person names, collapsing repeated whitespace."""
        name = cls._base_sanitize(name, escape_html=True)
        return re.sub(r"\s+", " ", name)


class EmailValidator:
    """
    Email normalization utilities.
    """

    @classmethod
    def normalize_email(cls, email: str) -> str:
        """Lowercase and strip an email address."""
        return email.lower().strip().replace(" ", "")


class UsernameValidator:
    """Username format rules."""

    MIN_LENGTH = 3
    MAX_LENGTH = 30
    PATTERN = re.compile(r"^[a-zA-Z0-9_.]+$")

    @classmethod
    def validate(cls, username: str) -> tuple[bool, Optional[str]]:
        if not cls.MIN_LENGTH <= len(username) <= cls.MAX_LENGTH:
            return (
                False,
                f"Username must be between {cls.MIN_LENGTH} and {cls.MAX_LENGTH} characters",
            )
        if not cls.PATTERN.match(username):
            return (
                False,
                "Username can only contain letters, numbers, underscores and dots",
            )
        return True, None


class PhoneValidator:
    """Phone number format rules."""

    PATTERN = re.compile(r"^[0-9+\s()-]{8,15}$")

    @classmethod
    def validate(cls, phone: str) -> tuple[bool, Optional[str]]:
        if not cls.PATTERN.match(phone):
            return False, "Please provide a valid phone number"
        return True, None


def calculate_age(date_of_birth: date, today: Optional[date] = None) -> int:
    """
    Age in whole years as the difference of calendar years.

    Birthdays later in the current year are not subtracted; eligibility
    checks throughout the API use this year-based age.
    """
    today = today or date.today()
    return today.year - date_of_birth.year


class DateOfBirthValidator:
    """Date of birth plausibility rules."""

    MIN_AGE = 5
    MAX_AGE = 100

    @classmethod
    def validate(
        cls, date_of_birth: date, today: Optional[date] = None
    ) -> tuple[bool, Optional[str]]:
        today = today or date.today()
        if date_of_birth > today:
            return False, "Date of birth cannot be in the future"
        age = calculate_age(date_of_birth, today)
        if not cls.MIN_AGE <= age <= cls.MAX_AGE:
            return False, f"Age must be between {cls.MIN_AGE} and {cls.MAX_AGE} years"
        return True, None


def sanitize_text_input(value: Any) -> Any:
    """
    Sanitize raw free-text input before field constraints run.

    Used as a ``mode="before"`` validator so ``min_length``/``max_length``
    apply to the stored, escaped value. Non-strings pass through for the
    field's own type validation.
    """
    if isinstance(value, str):
        return StringSanitizer.sanitize_string(value)
    return value
