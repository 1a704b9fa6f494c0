from typing import Any, Dict, Iterable, Mapping, Optional

from registration.schema import FieldDefinition, StepSchema

REQUIRED_FALLBACK = "This field is required"
PATTERN_FALLBACK = "Invalid format"


def validate_field(field: FieldDefinition, value: Any) -> Optional[str]:
    """Return the field's error message for ``value``, or ``None`` when it is valid."""
    rule = field.validation

    if rule.required and not value:
        return rule.message or REQUIRED_FALLBACK

    pattern = rule.compiled()
    if pattern is not None and value and not field.is_checkbox:
        if pattern.fullmatch(str(value)) is None:
            return rule.message or PATTERN_FALLBACK

    return None


class RegistrationValidator:
    def __init__(self, validate=validate_field):
        self.validate = validate

    def validate_fields(
        self, fields: Iterable[FieldDefinition], values: Mapping[str, Any]
    ) -> Dict[str, str]:
        errors: Dict[str, str] = {}
        for field in fields:
            error = self.validate(field, values.get(field.name))
            if error:
                errors[field.name] = error
        return errors

    def validate_step(
        self, step: StepSchema, values: Mapping[str, Any], otp_sent: bool
    ) -> Dict[str, str]:
        """
        Full-step pass. Conditional fields only take part once the OTP
        has been sent.
        """
        return self.validate_fields(step.visible_fields(otp_sent), values)

    def validate_input(
        self, step: StepSchema, name: str, value: Any
    ) -> Optional[Dict[str, Optional[str]]]:
        """
        Keystroke validation for a single field of the active step. Returns
        the errors patch, or ``None`` when the field is not part of the step.
        """
        field = step.field(name)
        if field is None:
            return None
        return {name: self.validate(field, value)}
