"""
Test suite for field validators

Covers email normalization and TLD rules, age checks, state codes, phone
formats, password complexity, Luhn checks, amount limits, free-text
sanitization, routing numbers and whole-form signup validation.
"""

import pytest
from datetime import date
from decimal import Decimal

from demo_banking.errors import ValidationFailure
from demo_banking.validators import (
    FieldResult, calculate_age, luhn_check, parse_amount_text, validate_address,
    validate_amount, validate_card_number, validate_city, validate_date_of_birth,
    validate_email, validate_name, validate_password, validate_phone,
    validate_routing_number, validate_signup, validate_ssn, validate_state,
    validate_zip_code, US_STATE_CODES
)


TODAY = date(2024, 6, 15)


def valid_signup_data(**overrides):
    data = {
        "email": "jane@example.com",
        "password": "Password123!",
        "first_name": "Jane",
        "last_name": "O'Connor",
        "phone_number": "(555) 123-4567",
        "date_of_birth": "1990-01-15",
        "ssn": "123456789",
        "address": "123 Main St, Apt 2B",
        "city": "Springfield",
        "state": "il",
        "zip_code": "62701",
    }
    data.update(overrides)
    return data


class TestFieldResult:
    """Test the tagged result type"""

    def test_ok_result_returns_value(self):
        result = FieldResult(field="email", value="a@b.com")
        assert result.ok
        assert result.raise_for_errors() == "a@b.com"

    def test_failed_result_raises(self):
        result = FieldResult(field="email", errors=("Invalid email format",))
        assert not result.ok
        with pytest.raises(ValidationFailure) as exc_info:
            result.raise_for_errors()
        assert exc_info.value.field == "email"
        assert exc_info.value.reasons == ["Invalid email format"]


class TestEmailValidation:
    """Test email validation"""

    def test_accepts_valid_emails(self):
        for email in ["test@example.com", "user@domain.org", "name@company.co"]:
            assert validate_email(email).ok, email

    def test_lowercases_and_flags_case_change(self):
        result = validate_email("TEST@EXAMPLE.COM")
        assert result.ok
        assert result.value == "test@example.com"
        assert result.notice is not None

    def test_no_notice_when_already_lowercase(self):
        result = validate_email("test@example.com")
        assert result.ok
        assert result.notice is None

    def test_rejects_typo_tlds(self):
        for email in ["test@example.con", "test@example.c0m", "test@example.comm",
                      "test@example.netl", "test@example.orgn"]:
            assert not validate_email(email).ok, email

    def test_typo_tld_reason(self):
        result = validate_email("test@example.con")
        assert result.errors == ("Email contains invalid domain extension",)

    def test_rejects_malformed(self):
        for email in ["", "plainaddress", "@example.com", "user@", "user@example", None]:
            assert not validate_email(email).ok, email

    def test_accepts_generic_tld(self):
        assert validate_email("someone@example.museum").ok


class TestDateOfBirthValidation:
    """Test age and future-date rules"""

    def test_rejects_future_date(self):
        result = validate_date_of_birth("2025-01-01", today=TODAY)
        assert not result.ok
        assert "future" in result.errors[0]

    def test_rejects_minor(self):
        assert not validate_date_of_birth("2007-06-15", today=TODAY).ok
        assert not validate_date_of_birth("2010-01-01", today=TODAY).ok

    def test_accepts_adult(self):
        result = validate_date_of_birth("1999-06-15", today=TODAY)
        assert result.ok
        assert result.value == date(1999, 6, 15)

    def test_exact_eighteenth_birthday_is_accepted(self):
        assert validate_date_of_birth("2006-06-15", today=TODAY).ok

    def test_day_before_eighteenth_birthday_is_rejected(self):
        assert not validate_date_of_birth("2006-06-16", today=TODAY).ok

    def test_age_rounds_down_before_anniversary(self):
        assert calculate_age(date(2000, 12, 31), date(2024, 12, 30)) == 23
        assert calculate_age(date(2000, 12, 31), date(2024, 12, 31)) == 24

    def test_rejects_garbage(self):
        assert not validate_date_of_birth("not-a-date", today=TODAY).ok

    def test_accepts_datetime_string(self):
        assert validate_date_of_birth("1990-01-15T00:00:00Z", today=TODAY).value == date(1990, 1, 15)
        assert validate_date_of_birth("1990-01-15T08:30:00+00:00", today=TODAY).value == date(1990, 1, 15)

    def test_rejects_trailing_characters(self):
        for text in ["1990-01-15-garbage!!", "1990-01-15x", "1990-01-15 extra"]:
            result = validate_date_of_birth(text, today=TODAY)
            assert not result.ok, text
            assert result.errors == ("Invalid date format, expected YYYY-MM-DD",)

    def test_accepts_date_objects(self):
        assert validate_date_of_birth(date(1990, 1, 15), today=TODAY).value == date(1990, 1, 15)


class TestStateValidation:
    """Test state code validation"""

    def test_fifty_one_codes(self):
        assert len(US_STATE_CODES) == 51
        assert "DC" in US_STATE_CODES

    def test_accepts_valid_codes(self):
        for code in ["CA", "NY", "TX", "DC"]:
            assert validate_state(code).value == code

    def test_uppercases(self):
        assert validate_state("ca").value == "CA"

    def test_rejects_unknown_codes(self):
        for code in ["XX", "ZZ", "AB"]:
            assert not validate_state(code).ok

    def test_rejects_wrong_length(self):
        assert not validate_state("CAL").ok
        assert not validate_state("C").ok

    def test_every_two_letter_string(self):
        """Accepted iff the uppercased pair is a known code"""
        letters = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
        for first in letters:
            for second in letters:
                code = first + second
                assert validate_state(code.lower()).ok == (code in US_STATE_CODES)


class TestPhoneValidation:
    """Test phone number validation"""

    def test_accepts_us_formats(self):
        for phone in ["(123) 456-7890", "123-456-7890", "123.456.7890",
                      "1234567890", "+11234567890", "+1 123 456 7890"]:
            assert validate_phone(phone).ok, phone

    def test_accepts_international(self):
        assert validate_phone("+441234567890").ok
        assert validate_phone("+33123456789").ok

    def test_normalizes_to_digits(self):
        assert validate_phone("(123) 456-7890").value == "1234567890"
        assert validate_phone("+441234567890").value == "441234567890"

    def test_rejects_invalid(self):
        for phone in ["12345", "abc-def-ghij", "+1234567890123456", ""]:
            assert not validate_phone(phone).ok, phone


class TestPasswordValidation:
    """Test password complexity"""

    def test_accepts_valid(self):
        assert validate_password("Password123!").ok
        assert validate_password("MyP@ssw0rd").ok

    def test_rejects_each_missing_class(self):
        assert not validate_password("password123!").ok
        assert not validate_password("PASSWORD123!").ok
        assert not validate_password("Password!").ok
        assert not validate_password("Password123").ok
        assert not validate_password("Pass1!").ok

    def test_reports_every_failure(self):
        result = validate_password("abc")
        assert len(result.errors) == 4
        assert any("at least 8" in reason for reason in result.errors)
        assert any("uppercase" in reason for reason in result.errors)
        assert any("number" in reason for reason in result.errors)
        assert any("special" in reason for reason in result.errors)


class TestCardValidation:
    """Test Luhn checksum and card number validation"""

    def test_luhn_valid_numbers(self):
        assert luhn_check("4111111111111111")
        assert luhn_check("5555555555554444")
        assert luhn_check("378282246310005")

    def test_luhn_invalid_numbers(self):
        assert not luhn_check("4111111111111112")
        assert not luhn_check("1234567890123456")

    def test_luhn_rejects_non_digits(self):
        assert not luhn_check("")
        assert not luhn_check("4111-1111")

    def test_card_number_strips_separators(self):
        assert validate_card_number("4111 1111 1111 1111").value == "4111111111111111"
        assert validate_card_number("4111-1111-1111-1111").ok

    def test_card_number_length(self):
        assert not validate_card_number("4111111").ok

    def test_card_number_checksum(self):
        result = validate_card_number("4111111111111112")
        assert result.errors == ("Invalid card number",)


class TestAmountValidation:
    """Test amount limits"""

    def test_rejects_zero_and_negative(self):
        assert not validate_amount(0).ok
        assert not validate_amount(0.0).ok
        assert not validate_amount(-10).ok

    def test_rejects_below_minimum(self):
        assert not validate_amount("0.001").ok

    def test_accepts_within_limits(self):
        assert validate_amount(0.01).value == Decimal("0.01")
        assert validate_amount(100).ok
        assert validate_amount(1000.50).value == Decimal("1000.5")
        assert validate_amount(1000000).ok

    def test_rejects_above_maximum(self):
        assert not validate_amount(1000001).ok
        assert not validate_amount(2000000).ok

    def test_rejects_non_numbers(self):
        assert not validate_amount("abc").ok
        assert not validate_amount(None).ok
        assert not validate_amount(True).ok
        assert not validate_amount("NaN").ok

    def test_rejects_sub_cent_precision(self):
        assert not validate_amount("10.005").ok

    def test_text_rejects_leading_zeros(self):
        result = parse_amount_text("007.50")
        assert not result.ok
        assert "leading zeros" in result.errors[0]
        assert not parse_amount_text("00.50").ok

    def test_text_accepts_plain_numbers(self):
        assert parse_amount_text("0.50").value == Decimal("0.50")
        assert parse_amount_text("125.75").value == Decimal("125.75")

    def test_text_rejects_other_formats(self):
        for text in ["-5", "1e3", "$10", "10.", ""]:
            assert not parse_amount_text(text).ok, text


class TestFreeTextValidation:
    """Test name, city and address sanitization"""

    def test_rejects_markup(self):
        assert not validate_name("<script>alert('xss')</script>").ok
        assert not validate_name("John<script>").ok
        assert not validate_address("123 Main St<script>").ok
        assert not validate_address("<img src=x>").ok
        assert not validate_city("Spring>field").ok

    def test_accepts_punctuation(self):
        assert validate_name("John Doe").ok
        assert validate_name("Mary-Jane O'Connor").ok
        assert validate_name("John & Jane").ok
        assert validate_address("456 Oak Ave, Apt 2B").ok

    def test_length_bounds(self):
        assert not validate_name("a" * 101).ok
        assert validate_name("a" * 100).ok
        assert not validate_city("a" * 101).ok
        assert not validate_address("a" * 201).ok
        assert validate_address("a" * 200).ok
        assert not validate_name("").ok


class TestIdentifierValidation:
    """Test SSN, ZIP and routing numbers"""

    def test_ssn(self):
        assert validate_ssn("123456789").ok
        assert not validate_ssn("123-45-6789").ok
        assert not validate_ssn("12345678").ok

    def test_zip(self):
        assert validate_zip_code("62701").ok
        assert not validate_zip_code("6270").ok
        assert not validate_zip_code("62701-1234").ok

    def test_routing_required_for_bank(self):
        assert not validate_routing_number("bank", None).ok
        assert not validate_routing_number("bank", "").ok
        assert validate_routing_number("bank", "123456789").ok

    def test_routing_optional_for_card(self):
        assert validate_routing_number("card", None).ok
        assert validate_routing_number("card", "").ok

    def test_routing_must_be_nine_digits(self):
        assert not validate_routing_number("bank", "12345").ok


class TestSignupValidation:
    """Test whole-form validation"""

    def test_valid_form_is_normalized(self):
        signup = validate_signup(valid_signup_data(email="Jane@Example.com"), today=TODAY)
        assert signup.email == "jane@example.com"
        assert signup.state == "IL"
        assert signup.phone_number == "5551234567"
        assert signup.date_of_birth == date(1990, 1, 15)
        assert len(signup.notices) == 1

    def test_collects_every_failure(self):
        data = valid_signup_data(email="bad@example.con", state="XX", zip_code="1", password="weak")
        with pytest.raises(ValidationFailure) as exc_info:
            validate_signup(data, today=TODAY)
        errors = exc_info.value.errors
        assert set(errors) == {"email", "state", "zip_code", "password"}
        assert len(errors["password"]) == 4

    def test_missing_field(self):
        data = valid_signup_data()
        del data["city"]
        with pytest.raises(ValidationFailure) as exc_info:
            validate_signup(data, today=TODAY)
        assert "city" in exc_info.value.errors
