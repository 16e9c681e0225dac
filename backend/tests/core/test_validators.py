"""
Tests for shared input validators and sanitizers.
"""
from datetime import date

import pytest
from pydantic import ValidationError

from app.core.validators import (
    DateOfBirthValidator,
    EmailValidator,
    PasswordValidator,
    PhoneValidator,
    StringSanitizer,
    UsernameValidator,
    calculate_age,
    sanitize_text_input,
)
from app.models import TestTarget
from app.schemas.blogs import BlogCreate, BlogUpdate
from app.schemas.galleries import GalleryCreate
from app.schemas.services import ServiceCreate
from app.schemas.tests import TestCreate


class TestPasswordValidator:
    def test_valid_password(self):
        assert PasswordValidator.validate("secret1") == (True, None)

    @pytest.mark.parametrize(
        "password,message",
        [
            ("ab1", "Password must be at least 6 characters long"),
            ("a" * 128 + "1", "Password must not exceed 128 characters"),
            ("nodigits", "Password must contain at least one number"),
        ],
    )
    def test_invalid_passwords(self, password, message):
        assert PasswordValidator.validate(password) == (False, message)


class TestStringSanitizer:
    def test_escapes_markup(self):
        assert StringSanitizer.sanitize_string("<script>x</script>") == (
            "&lt;script&gt;x&lt;/script&gt;"
        )

    def test_keeps_quotes(self):
        assert StringSanitizer.sanitize_string('It\'s "fine"') == 'It\'s "fine"'

    def test_strips_control_characters(self):
        assert StringSanitizer.sanitize_string("  a\x00b\x07c\n ") == "abc"

    def test_allow_html(self):
        assert StringSanitizer.sanitize_string("<b>x</b>", allow_html=True) == "<b>x</b>"

    def test_sanitize_name_collapses_whitespace(self):
        assert StringSanitizer.sanitize_name("  Jane    Q   Doe ") == "Jane Q Doe"


def test_normalize_email():
    assert EmailValidator.normalize_email("  Jane.Doe @Example.COM ") == "jane.doe@example.com"


class TestUsernameValidator:
    @pytest.mark.parametrize("username", ["abc", "jane.doe", "user_42"])
    def test_valid(self, username):
        assert UsernameValidator.validate(username)[0]

    def test_too_short(self):
        ok, message = UsernameValidator.validate("ab")

        assert not ok
        assert message == "Username must be between 3 and 30 characters"

    def test_bad_characters(self):
        ok, message = UsernameValidator.validate("jane doe!")

        assert not ok
        assert "letters, numbers, underscores and dots" in message


class TestPhoneValidator:
    @pytest.mark.parametrize("phone", ["081234567890", "+62 812-3456", "(021) 555 01"])
    def test_valid(self, phone):
        assert PhoneValidator.validate(phone) == (True, None)

    @pytest.mark.parametrize("phone", ["123", "phone-number", "0812345678901234"])
    def test_invalid(self, phone):
        assert PhoneValidator.validate(phone) == (False, "Please provide a valid phone number")


class TestDateOfBirth:
    def test_calculate_age_is_year_difference(self):
        assert calculate_age(date(2000, 12, 31), today=date(2024, 1, 1)) == 24

    def test_future_date(self):
        ok, message = DateOfBirthValidator.validate(date(2030, 1, 1), today=date(2024, 1, 1))

        assert not ok
        assert message == "Date of birth cannot be in the future"

    def test_too_young(self):
        ok, _ = DateOfBirthValidator.validate(date(2022, 1, 1), today=date(2024, 1, 1))

        assert not ok

    def test_plausible(self):
        assert DateOfBirthValidator.validate(date(1990, 5, 17), today=date(2024, 1, 1)) == (
            True,
            None,
        )


class TestSanitizedLengthLimits:
    """Length constraints apply to the sanitized text that gets stored."""

    CONTENT = "x" * 50

    def test_sanitize_text_input_passes_non_strings_through(self):
        assert sanitize_text_input(None) is None
        assert sanitize_text_input(42) == 42

    def test_escaping_past_max_length_is_rejected(self):
        with pytest.raises(ValidationError):
            BlogCreate(title="a" * 99 + "&", content=self.CONTENT)

    def test_escaped_title_at_max_length_is_accepted(self):
        blog = BlogCreate(title="a" * 95 + "&", content=self.CONTENT)

        assert blog.title == "a" * 95 + "&amp;"
        assert len(blog.title) == 100

    def test_service_title_checked_after_escaping(self):
        with pytest.raises(ValidationError):
            ServiceCreate(
                title="<" * 30, short_desc="A short description", content=self.CONTENT
            )

    def test_padding_does_not_count_towards_min_length(self):
        with pytest.raises(ValidationError):
            TestCreate(
                title="  ab  ",
                short_desc="Short",
                long_desc="Long",
                min_age=10,
                max_age=20,
                target=TestTarget.SELF,
            )

    def test_stored_value_is_stripped(self):
        gallery = GalleryCreate(title="  Summer camp  ")

        assert gallery.title == "Summer camp"

    def test_partial_update_keeps_none(self):
        assert BlogUpdate(title=None).title is None

    def test_non_string_still_fails_type_validation(self):
        with pytest.raises(ValidationError):
            GalleryCreate(title=12345)
