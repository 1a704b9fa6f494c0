from enum import Enum
from typing import Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

FieldValue = Union[bool, str]

EventName = Literal["input", "send_otp", "advance", "submit"]


class Phase(str, Enum):
    STEP1_COLLECTING = "step1_collecting"
    STEP1_OTP_SENT = "step1_otp_sent"
    STEP2_COLLECTING = "step2_collecting"
    COMPLETED = "completed"


class FormState(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    current_step: int = Field(default=1, ge=1)
    values: Dict[str, FieldValue] = Field(default_factory=dict)
    errors: Dict[str, Optional[str]] = Field(default_factory=dict)
    loading: bool = False
    otp_sent: bool = False
    completed: bool = False
    notice: Optional[str] = Field(default=None, description="Message shown to the user after an async call")

    # the event being applied by the current graph run
    event: Optional[EventName] = None
    field_name: Optional[str] = None
    field_value: Optional[FieldValue] = None

    @property
    def phase(self) -> Phase:
        if self.completed:
            return Phase.COMPLETED
        if self.current_step >= 2:
            return Phase.STEP2_COLLECTING
        if self.otp_sent:
            return Phase.STEP1_OTP_SENT
        return Phase.STEP1_COLLECTING

    def error_for(self, name: str) -> Optional[str]:
        return self.errors.get(name)
