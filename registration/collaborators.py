"""
Outbound calls made by the registration flow.

The OTP provider and the step submitter are opaque asynchronous services.
Implementations raise ``CollaboratorError`` on failure; the flow turns that
into a notice for the user and never retries.
"""

import asyncio
import logging
from typing import Mapping, Protocol

from registration.state import FieldValue

logger = logging.getLogger("udyam")


class CollaboratorError(Exception):
    """A remote call made on behalf of the form failed."""


class OtpProvider(Protocol):
    async def send_otp(self, aadhaar: str, name: str) -> None:
        ...


class StepSubmitter(Protocol):
    async def submit_step(self, step: int, values: Mapping[str, FieldValue]) -> None:
        ...


class SimulatedOtpProvider:
    """Stands in for the UIDAI OTP gateway: waits, then reports success."""

    def __init__(self, delay: float = 2.0):
        self.delay = delay

    async def send_otp(self, aadhaar: str, name: str) -> None:
        await asyncio.sleep(self.delay)
        logger.info("otp.sent", extra={"aadhaar_suffix": aadhaar[-4:]})


class SimulatedStepSubmitter:
    def __init__(self, delay: float = 1.5):
        self.delay = delay

    async def submit_step(self, step: int, values: Mapping[str, FieldValue]) -> None:
        await asyncio.sleep(self.delay)
        logger.info("step.submitted", extra={"step": step})
