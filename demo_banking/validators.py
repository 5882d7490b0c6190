"""
Field Validation Module

Validators for signup, funding and free-text input. Each validator takes a
raw value and returns a FieldResult: either the normalized value or the
list of reasons it was rejected. Validators never raise on bad input;
callers decide when to turn a failure into a ValidationFailure.

Validators are built from small step functions applied in order. A step
receives the current value and returns a FieldResult whose value feeds
the next step.
"""

from dataclasses import dataclass, field as dataclass_field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple
import re

from .currency import to_decimal, decimal_places
from .errors import ValidationFailure


@dataclass(frozen=True)
class FieldResult:
    """Tagged outcome of validating one field"""
    field: str
    value: Any = None
    errors: Tuple[str, ...] = ()
    notice: Optional[str] = None  # Non-blocking message for the user

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> Any:
        """Return the normalized value or raise ValidationFailure"""
        if self.errors:
            raise ValidationFailure(self.field, list(self.errors))
        return self.value


Step = Callable[[str, Any], FieldResult]


def accept(field: str, value: Any, notice: Optional[str] = None) -> FieldResult:
    return FieldResult(field=field, value=value, notice=notice)


def reject(field: str, *reasons: str) -> FieldResult:
    return FieldResult(field=field, errors=tuple(reasons))


def chain(field: str, value: Any, *steps: Step) -> FieldResult:
    """Apply steps in order, stopping at the first failure"""
    notice = None
    for step in steps:
        result = step(field, value)
        if not result.ok:
            return result
        value = result.value
        notice = result.notice or notice
    return accept(field, value, notice)


def check_all(field: str, value: Any, *checks: Step) -> FieldResult:
    """Apply every check to the same value and report every failure"""
    errors: List[str] = []
    for check in checks:
        errors.extend(check(field, value).errors)
    if errors:
        return reject(field, *errors)
    return accept(field, value)


def _require_string(field: str, value: Any) -> FieldResult:
    if not isinstance(value, str):
        return reject(field, f"{_label(field)} must be a string")
    return accept(field, value)


def _label(field: str) -> str:
    return field.replace("_", " ").capitalize()


# --- Email ---------------------------------------------------------------

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)*\.[a-zA-Z]{2,}$')
TYPO_TLDS = (".con", ".c0m", ".comm", ".netl", ".orgn")
KNOWN_TLDS = (".com", ".org", ".net", ".edu", ".gov", ".io", ".co", ".us")
GENERIC_TLD_PATTERN = re.compile(r'\.([a-z]{2,})$')


def _email_shape(field: str, value: str) -> FieldResult:
    if not EMAIL_PATTERN.match(value.strip()):
        return reject(field, "Invalid email format")
    return accept(field, value.strip())


def _email_lowercase(field: str, value: str) -> FieldResult:
    normalized = value.lower()
    if normalized != value:
        return accept(field, normalized, notice=f"Email will be saved as {normalized}")
    return accept(field, normalized)


def _email_no_typo_tld(field: str, value: str) -> FieldResult:
    if value.endswith(TYPO_TLDS):
        return reject(field, "Email contains invalid domain extension")
    return accept(field, value)


def _email_valid_tld(field: str, value: str) -> FieldResult:
    if value.endswith(KNOWN_TLDS) or GENERIC_TLD_PATTERN.search(value):
        return accept(field, value)
    return reject(field, "Email must have a valid domain extension")


def validate_email(value: Any, field: str = "email") -> FieldResult:
    """
    Validate and lowercase an email address.

    The result carries a notice when only the letter case changed, so the
    caller can tell the user without blocking the request.
    """
    return chain(field, value, _require_string, _email_shape, _email_lowercase,
                 _email_no_typo_tld, _email_valid_tld)


# --- Date of birth -------------------------------------------------------

MINIMUM_AGE = 18


def calculate_age(birth_date: date, today: date) -> int:
    """Whole years between birth_date and today"""
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def _parse_date(field: str, value: Any) -> FieldResult:
    if isinstance(value, datetime):
        return accept(field, value.date())
    if isinstance(value, date):
        return accept(field, value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return accept(field, date.fromisoformat(text))
        except ValueError:
            pass
        # Full ISO timestamps; fromisoformat only accepts a trailing "Z" from 3.11
        if "T" in text:
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            try:
                return accept(field, datetime.fromisoformat(text).date())
            except ValueError:
                pass
    return reject(field, "Invalid date format, expected YYYY-MM-DD")


def validate_date_of_birth(value: Any, today: Optional[date] = None,
                           field: str = "date_of_birth") -> FieldResult:
    """Parse a birth date and require it to be in the past and at least 18 years ago"""
    today = today or datetime.now(timezone.utc).date()

    def not_in_future(field: str, birth_date: date) -> FieldResult:
        if birth_date > today:
            return reject(field, "Date of birth cannot be in the future")
        return accept(field, birth_date)

    def old_enough(field: str, birth_date: date) -> FieldResult:
        if calculate_age(birth_date, today) < MINIMUM_AGE:
            return reject(field, f"You must be at least {MINIMUM_AGE} years old")
        return accept(field, birth_date)

    return chain(field, value, _parse_date, not_in_future, old_enough)


# --- State code ----------------------------------------------------------

US_STATE_CODES = frozenset({
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
    "DC",
})


def validate_state(value: Any, field: str = "state") -> FieldResult:
    """Uppercase a 2-letter code and require a US state or DC"""

    def two_characters(field: str, text: str) -> FieldResult:
        if len(text) != 2:
            return reject(field, "State must be exactly 2 characters")
        return accept(field, text.upper())

    def known_state(field: str, code: str) -> FieldResult:
        if code not in US_STATE_CODES:
            return reject(field, "Invalid state code. Please use a valid 2-letter US state code.")
        return accept(field, code)

    return chain(field, value, _require_string, two_characters, known_state)


# --- Phone number --------------------------------------------------------

US_PHONE_PATTERN = re.compile(r'^(\+?1[-.\s]?)?\(?([0-9]{3})\)?[-.\s]?([0-9]{3})[-.\s]?([0-9]{4})$')
INTL_PHONE_PATTERN = re.compile(r'^\+\d{1,15}$')


def validate_phone(value: Any, field: str = "phone_number") -> FieldResult:
    """Accept US or international (+digits) formats and store digits only"""

    def known_format(field: str, text: str) -> FieldResult:
        compact = re.sub(r'\s', '', text)
        if US_PHONE_PATTERN.match(compact) or INTL_PHONE_PATTERN.match(text):
            return accept(field, re.sub(r'\D', '', text))
        return reject(
            field,
            "Invalid phone number format. Use US format (xxx) xxx-xxxx "
            "or international +xxxxxxxxxxxxx"
        )

    return chain(field, value, _require_string, known_format)


# --- Password ------------------------------------------------------------

PASSWORD_SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'


def validate_password(value: Any, min_length: int = 8, field: str = "password") -> FieldResult:
    """
    Check length and character classes.

    All checks run independently so every missing requirement is reported
    at once. The result value is the unchanged password.
    """

    def long_enough(field: str, text: str) -> FieldResult:
        if len(text) < min_length:
            return reject(field, f"Password must be at least {min_length} characters")
        return accept(field, text)

    def has_upper(field: str, text: str) -> FieldResult:
        if not re.search(r'[A-Z]', text):
            return reject(field, "Password must contain an uppercase letter")
        return accept(field, text)

    def has_lower(field: str, text: str) -> FieldResult:
        if not re.search(r'[a-z]', text):
            return reject(field, "Password must contain a lowercase letter")
        return accept(field, text)

    def has_digit(field: str, text: str) -> FieldResult:
        if not re.search(r'\d', text):
            return reject(field, "Password must contain a number")
        return accept(field, text)

    def has_special(field: str, text: str) -> FieldResult:
        if not any(c in PASSWORD_SPECIAL_CHARACTERS for c in text):
            return reject(field, "Password must contain a special character")
        return accept(field, text)

    type_check = _require_string(field, value)
    if not type_check.ok:
        return type_check
    return check_all(field, value, long_enough, has_upper, has_lower, has_digit, has_special)


# --- Card number ---------------------------------------------------------

def luhn_check(card_number: str) -> bool:
    """
    Luhn checksum: from the rightmost digit, double every second digit,
    subtract 9 from doubled values above 9, and require sum % 10 == 0.
    """
    if not card_number or not card_number.isdigit():
        return False
    total = 0
    for position, char in enumerate(reversed(card_number)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def validate_card_number(value: Any, field: str = "card_number") -> FieldResult:
    """Strip spaces and hyphens, require 13-19 digits and a valid Luhn checksum"""

    def digits_only(field: str, text: str) -> FieldResult:
        compact = re.sub(r'[\s-]', '', text)
        if not compact.isdigit():
            return reject(field, "Card number must contain only digits")
        if not 13 <= len(compact) <= 19:
            return reject(field, "Card number must be between 13 and 19 digits")
        return accept(field, compact)

    def checksum(field: str, number: str) -> FieldResult:
        if not luhn_check(number):
            return reject(field, "Invalid card number")
        return accept(field, number)

    return chain(field, value, _require_string, digits_only, checksum)


# --- Monetary amount -----------------------------------------------------

MIN_AMOUNT = Decimal("0.01")
MAX_AMOUNT = Decimal("1000000.00")
AMOUNT_TEXT_PATTERN = re.compile(r'^(0|[1-9]\d*)(\.\d+)?$')


def validate_amount(value: Any, minimum: Decimal = MIN_AMOUNT, maximum: Decimal = MAX_AMOUNT,
                    field: str = "amount") -> FieldResult:
    """Require a positive amount between minimum and maximum with at most 2 decimal places"""

    def numeric(field: str, raw: Any) -> FieldResult:
        try:
            return accept(field, to_decimal(raw))
        except ValueError:
            return reject(field, "Amount must be a number")

    def in_range(field: str, amount: Decimal) -> FieldResult:
        errors = []
        if amount <= 0 or amount < minimum:
            errors.append(f"Amount must be at least ${minimum}")
        if amount > maximum:
            errors.append(f"Amount cannot exceed ${maximum:,}")
        if errors:
            return reject(field, *errors)
        return accept(field, amount)

    def cents_precision(field: str, amount: Decimal) -> FieldResult:
        if decimal_places(amount) > 2:
            return reject(field, "Amount cannot have more than 2 decimal places")
        return accept(field, amount)

    return chain(field, value, numeric, in_range, cents_precision)


def parse_amount_text(value: Any, minimum: Decimal = MIN_AMOUNT, maximum: Decimal = MAX_AMOUNT,
                      field: str = "amount") -> FieldResult:
    """
    Validate an amount typed as text.

    Leading-zero padding such as "007.50" or "00.5" is rejected before the
    numeric checks run; "0.50" is accepted as text.
    """

    def plain_number(field: str, text: str) -> FieldResult:
        stripped = text.strip()
        if not AMOUNT_TEXT_PATTERN.match(stripped):
            if re.match(r'^0\d', stripped):
                return reject(field, "Amount cannot have leading zeros")
            return reject(field, "Invalid amount format")
        return accept(field, stripped)

    type_check = _require_string(field, value)
    if not type_check.ok:
        return type_check
    text_check = plain_number(field, value)
    if not text_check.ok:
        return text_check
    return validate_amount(text_check.value, minimum, maximum, field)


# --- Free text -----------------------------------------------------------

NAME_MAX_LENGTH = 100
CITY_MAX_LENGTH = 100
ADDRESS_MAX_LENGTH = 200
MARKUP_CHARACTERS = re.compile(r'[<>]')


def validate_text(value: Any, field: str, max_length: int, min_length: int = 1) -> FieldResult:
    """Length-bounded text without '<' or '>'; apostrophes, hyphens and '&' are allowed"""

    def bounded(field: str, text: str) -> FieldResult:
        if len(text) < min_length:
            return reject(field, f"{_label(field)} is required")
        if len(text) > max_length:
            return reject(field, f"{_label(field)} must be at most {max_length} characters")
        return accept(field, text)

    def no_markup(field: str, text: str) -> FieldResult:
        if MARKUP_CHARACTERS.search(text):
            return reject(field, f"{_label(field)} contains invalid characters")
        return accept(field, text)

    return chain(field, value, _require_string, bounded, no_markup)


def validate_name(value: Any, field: str = "name") -> FieldResult:
    return validate_text(value, field, NAME_MAX_LENGTH)


def validate_city(value: Any, field: str = "city") -> FieldResult:
    return validate_text(value, field, CITY_MAX_LENGTH)


def validate_address(value: Any, field: str = "address") -> FieldResult:
    return validate_text(value, field, ADDRESS_MAX_LENGTH)


# --- Identifiers ---------------------------------------------------------

def _digits(field: str, value: Any, count: int, message: str) -> FieldResult:
    if not isinstance(value, str) or not re.fullmatch(rf'\d{{{count}}}', value):
        return reject(field, message)
    return accept(field, value)


def validate_ssn(value: Any, field: str = "ssn") -> FieldResult:
    return _digits(field, value, 9, "SSN must be exactly 9 digits")


def validate_zip_code(value: Any, field: str = "zip_code") -> FieldResult:
    return _digits(field, value, 5, "ZIP code must be exactly 5 digits")


def validate_routing_number(funding_type: str, routing_number: Optional[str],
                            field: str = "routing_number") -> FieldResult:
    """Routing number is required for bank funding and ignored for card funding"""
    if funding_type != "bank":
        return accept(field, routing_number or None)
    if not routing_number:
        return reject(field, "Routing number is required for bank transfers")
    return _digits(field, routing_number, 9, "Routing number must be exactly 9 digits")


# --- Signup form ---------------------------------------------------------

@dataclass
class SignupData:
    """Normalized signup fields"""
    email: str
    password: str
    first_name: str
    last_name: str
    phone_number: str
    date_of_birth: date
    ssn: str
    address: str
    city: str
    state: str
    zip_code: str
    notices: List[str] = dataclass_field(default_factory=list)


def validate_signup(data: Dict[str, Any], today: Optional[date] = None,
                    password_min_length: int = 8) -> SignupData:
    """
    Validate every signup field and collect all failures.

    Raises:
        ValidationFailure: With ``errors`` mapping each failing field to its reasons
    """
    results = [
        validate_email(data.get("email")),
        validate_password(data.get("password"), min_length=password_min_length),
        validate_name(data.get("first_name"), field="first_name"),
        validate_name(data.get("last_name"), field="last_name"),
        validate_phone(data.get("phone_number")),
        validate_date_of_birth(data.get("date_of_birth"), today=today),
        validate_ssn(data.get("ssn")),
        validate_address(data.get("address")),
        validate_city(data.get("city")),
        validate_state(data.get("state")),
        validate_zip_code(data.get("zip_code")),
    ]

    failures = [result for result in results if not result.ok]
    if failures:
        errors = {result.field: list(result.errors) for result in failures}
        raise ValidationFailure(failures[0].field, list(failures[0].errors), errors=errors)

    values = {result.field: result.value for result in results}
    notices = [result.notice for result in results if result.notice]
    return SignupData(notices=notices, **values)
