import re
from enum import Enum
from functools import lru_cache
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FieldType(str, Enum):
    TEXT = "text"
    CHECKBOX = "checkbox"


class ValidationRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    required: bool = False
    pattern: Optional[str] = Field(default=None, description="Regular expression, anchored as given")
    message: Optional[str] = None

    def compiled(self) -> Optional["re.Pattern[str]"]:
        if self.pattern is None:
            return None
        return _compile(self.pattern)


@lru_cache(maxsize=None)
def _compile(pattern: str) -> "re.Pattern[str]":
    return re.compile(pattern)


class FieldDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = Field(description="Key under which the value is stored")
    label: str
    type: FieldType = FieldType.TEXT
    placeholder: Optional[str] = None
    validation: ValidationRule = Field(default_factory=ValidationRule)
    help_text: Optional[List[str]] = None
    # hidden and skipped by step validation until an OTP has been sent
    conditional: bool = False

    @property
    def is_checkbox(self) -> bool:
        return self.type == FieldType.CHECKBOX


class StepSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    subtitle: Optional[str] = None
    fields: List[FieldDefinition]

    @model_validator(mode="after")
    def _unique_names(self) -> "StepSchema":
        seen = set()
        for field in self.fields:
            if field.name in seen:
                raise ValueError(f"Duplicate field name in step {self.title!r}: {field.name}")
            seen.add(field.name)
        return self

    def field(self, name: str) -> Optional[FieldDefinition]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def visible_fields(self, otp_sent: bool) -> List[FieldDefinition]:
        return [f for f in self.fields if is_visible(f, otp_sent)]


def is_visible(field: FieldDefinition, otp_sent: bool) -> bool:
    return otp_sent or not field.conditional


DEFAULT_TITLE = "UDYAM REGISTRATION FORM"

FORM_SCHEMA: Dict[int, StepSchema] = {
    1: StepSchema(
        title="Aadhaar Verification With OTP",
        subtitle="UDYAM REGISTRATION FORM - For New Enterprise who are not Registered yet as MSME",
        fields=[
            FieldDefinition(
                id="aadhaar",
                name="aadhaar",
                label="1. Aadhaar Number / आधार संख्या",
                placeholder="Your Aadhaar No",
                validation=ValidationRule(
                    required=True,
                    pattern=r"^[0-9]{12}$",
                    message="Aadhaar number shall be required for Udyam Registration.",
                ),
                help_text=[
                    "Aadhaar number shall be required for Udyam Registration.",
                    "The Aadhaar number shall be of the proprietor in the case of a proprietorship "
                    "firm, of the managing partner in the case of a partnership firm and of a karta "
                    "in the case of a Hindu Undivided Family (HUF).",
                    "In case of a Company or a Limited Liability Partnership or a Cooperative Society "
                    "or a Society or a Trust, the organisation or its authorised signatory shall "
                    "provide its GST/PAN as per applicability of CGST Act 2017 and as notified by the "
                    "ministry of MSME vide S.O. 1055(E) dated 05th March 2021 and PAN along with its "
                    "Aadhaar number.",
                ],
            ),
            FieldDefinition(
                id="entrepreneurName",
                name="entrepreneurName",
                label="2. Name of Entrepreneur / उद्यमी का नाम",
                placeholder="Name as per Aadhaar",
                validation=ValidationRule(required=True, message="Please enter name as per Aadhaar"),
            ),
            FieldDefinition(
                id="consent",
                name="consent",
                label=(
                    "I, the holder of the above Aadhaar, hereby give my consent to Ministry of MSME, "
                    "Government of India, for using my Aadhaar number as allotted by UIDAI for Udyam "
                    "Registration. NIC / Ministry of MSME, Government of India, have informed me that "
                    "my aadhaar data will not be stored/shared."
                ),
                type=FieldType.CHECKBOX,
                validation=ValidationRule(
                    required=True,
                    message="You must give consent to proceed with Udyam Registration",
                ),
            ),
            FieldDefinition(
                id="otp",
                name="otp",
                label="Enter OTP",
                placeholder="Enter 6-digit OTP",
                validation=ValidationRule(
                    required=True,
                    pattern=r"^[0-9]{6}$",
                    message="Please enter a valid 6-digit OTP",
                ),
                conditional=True,
            ),
        ],
    ),
    2: StepSchema(
        title="Enterprise Details",
        fields=[
            FieldDefinition(
                id="pan",
                name="pan",
                label="PAN Number",
                placeholder="Enter PAN number (e.g., ABCDE1234F)",
                validation=ValidationRule(
                    required=True,
                    pattern=r"^[A-Za-z]{5}[0-9]{4}[A-Za-z]{1}$",
                    message="Please enter a valid PAN number",
                ),
            ),
            FieldDefinition(
                id="panName",
                name="panName",
                label="Name as per PAN",
                placeholder="Enter name as per PAN card",
                validation=ValidationRule(required=True, message="Please enter name as per PAN card"),
            ),
        ],
    ),
}

TOTAL_STEPS = len(FORM_SCHEMA)


def get_step(step: int) -> StepSchema:
    try:
        return FORM_SCHEMA[step]
    except KeyError:
        raise ValueError(f"Unknown form step: {step}") from None


def find_field(name: str) -> Optional[FieldDefinition]:
    """Look a field up by name across every step of the form."""
    for step in FORM_SCHEMA.values():
        field = step.field(name)
        if field is not None:
            return field
    return None
