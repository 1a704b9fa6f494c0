import pytest
from pydantic import ValidationError

from registration.schema import FORM_SCHEMA, FieldDefinition, StepSchema, get_step, is_visible


def test_field_names_unique_within_step():
    with pytest.raises(ValidationError):
        StepSchema(
            title="dup",
            fields=[
                FieldDefinition(id="a", name="same", label="A"),
                FieldDefinition(id="b", name="same", label="B"),
            ],
        )


def test_schema_is_frozen():
    field = get_step(1).field("aadhaar")
    with pytest.raises(ValidationError):
        field.label = "changed"


def test_only_otp_is_conditional():
    conditional = [f.name for step in FORM_SCHEMA.values() for f in step.fields if f.conditional]
    assert conditional == ["otp"]


def test_visibility_follows_otp_flag():
    otp = get_step(1).field("otp")
    assert not is_visible(otp, otp_sent=False)
    assert is_visible(otp, otp_sent=True)
    assert [f.name for f in get_step(1).visible_fields(False)] == ["aadhaar", "entrepreneurName", "consent"]


def test_unknown_step():
    with pytest.raises(ValueError):
        get_step(3)
