import pytest

from registration.schema import FORM_SCHEMA, FieldDefinition, FieldType, ValidationRule, get_step
from registration.validator import (
    PATTERN_FALLBACK,
    REQUIRED_FALLBACK,
    RegistrationValidator,
    validate_field,
)

STEP1 = get_step(1)
STEP2 = get_step(2)
ALL_FIELDS = [f for step in FORM_SCHEMA.values() for f in step.fields]


@pytest.mark.parametrize("field", [f for f in ALL_FIELDS if f.validation.required], ids=lambda f: f.name)
def test_required_fields_reject_empty_values(field):
    empty = False if field.is_checkbox else ""
    assert validate_field(field, empty) == field.validation.message
    assert validate_field(field, None) == field.validation.message


@pytest.mark.parametrize(
    "value, valid",
    [("123456789012", True), ("12345", False), ("1234567890123", False), ("12345678901a", False)],
)
def test_aadhaar_pattern(value, valid):
    error = validate_field(STEP1.field("aadhaar"), value)
    assert (error is None) is valid


@pytest.mark.parametrize(
    "value, valid",
    [("ABCDE1234F", True), ("abcde1234f", True), ("12345ABCDE", False), ("ABCDE1234", False)],
)
def test_pan_pattern(value, valid):
    error = validate_field(STEP2.field("pan"), value)
    assert (error is None) is valid


def test_pattern_must_match_whole_value():
    assert validate_field(STEP1.field("aadhaar"), "123456789012\n") is not None


def test_consent_checkbox():
    consent = STEP1.field("consent")
    assert validate_field(consent, True) is None
    assert validate_field(consent, False) == "You must give consent to proceed with Udyam Registration"


def test_optional_empty_field_never_errors():
    field = FieldDefinition(
        id="gst", name="gst", label="GSTIN", validation=ValidationRule(pattern=r"^[0-9]{2}$")
    )
    assert validate_field(field, "") is None
    assert validate_field(field, None) is None
    assert validate_field(field, "abc") == PATTERN_FALLBACK


def test_fallback_messages():
    field = FieldDefinition(id="x", name="x", label="X", validation=ValidationRule(required=True))
    assert validate_field(field, "") == REQUIRED_FALLBACK


def test_pattern_ignored_for_checkbox():
    field = FieldDefinition(
        id="c",
        name="c",
        label="C",
        type=FieldType.CHECKBOX,
        validation=ValidationRule(pattern=r"^never$", message="bad"),
    )
    assert validate_field(field, True) is None


def test_step_validation_skips_hidden_otp():
    validator = RegistrationValidator()
    errors = validator.validate_step(STEP1, {}, otp_sent=False)
    assert set(errors) == {"aadhaar", "entrepreneurName", "consent"}

    errors = validator.validate_step(STEP1, {}, otp_sent=True)
    assert set(errors) == {"aadhaar", "entrepreneurName", "consent", "otp"}


def test_step_validation_reports_only_invalid_fields():
    validator = RegistrationValidator()
    errors = validator.validate_step(
        STEP1, {"aadhaar": "12345", "entrepreneurName": "Khushi", "consent": True}, otp_sent=False
    )
    assert errors == {"aadhaar": "Aadhaar number shall be required for Udyam Registration."}


def test_validate_input_outside_step_returns_none():
    validator = RegistrationValidator()
    assert validator.validate_input(STEP1, "pan", "bad") is None
    assert validator.validate_input(STEP1, "aadhaar", "123456789012") == {"aadhaar": None}
