import asyncio
import logging
from typing import Any, Awaitable, Dict, Literal, Optional

from langchain_core.runnables import RunnableConfig
from langgraph.graph import StateGraph, START, END

from registration.collaborators import CollaboratorError, OtpProvider, StepSubmitter
from registration.schema import get_step
from registration.state import FormState
from registration.validator import RegistrationValidator

logger = logging.getLogger("udyam")

OTP_SENT_NOTICE = "OTP sent successfully to your registered mobile number"
COMPLETED_NOTICE = "Registration completed successfully!"
CANCELLED_NOTICE = "Request cancelled."

FAILURE_NOTICES = {
    "send_otp": "Failed to send OTP. Please try again.",
    "advance": "Validation failed. Please try again.",
    "submit": "Validation failed. Please try again.",
}
TIMEOUT_NOTICES = {
    "send_otp": "Sending the OTP timed out. Please try again.",
    "advance": "Verification timed out. Please try again.",
    "submit": "Submission timed out. Please try again.",
}


class CallCancelled(Exception):
    pass


class RegistrationGraphFactory:
    def __init__(
        self,
        validator: RegistrationValidator,
        otp_provider: OtpProvider,
        submitter: StepSubmitter,
        timeout: float = 10.0,
    ):
        self.validator = validator
        self.otp_provider = otp_provider
        self.submitter = submitter
        self.timeout = timeout

    @staticmethod
    def route_event(state: FormState) -> Literal["collect", "validate"]:
        return "collect" if state.event == "input" else "validate"

    def collect_node(self, state: FormState) -> Dict[str, Any]:
        """
        Stores the typed value and re-validates just that field. Fields
        outside the active step are stored without validation.
        """
        values = dict(state.values)
        values[state.field_name] = state.field_value
        update: Dict[str, Any] = {"values": values}

        patch = self.validator.validate_input(
            get_step(state.current_step), state.field_name, state.field_value
        )
        if patch is not None:
            errors = dict(state.errors)
            errors.update(patch)
            update["errors"] = errors
        return update

    def validate_node(self, state: FormState) -> Dict[str, Any]:
        errors = self.validator.validate_step(
            get_step(state.current_step), state.values, state.otp_sent
        )
        return {"errors": errors}

    @staticmethod
    def should_call(state: FormState) -> Literal["end", "begin"]:
        return "end" if state.errors else "begin"

    @staticmethod
    def begin_node(state: FormState) -> Dict[str, Any]:
        return {"loading": True}

    async def call_node(self, state: FormState, config: RunnableConfig) -> Dict[str, Any]:
        token = (config.get("configurable") or {}).get("cancel_token")
        event = state.event

        try:
            await self._run(self._request(state), token)
        except CallCancelled:
            logger.info("registration.call_cancelled", extra={"event": event})
            return {"loading": False, "notice": CANCELLED_NOTICE}
        except asyncio.TimeoutError:
            logger.warning("registration.call_timeout", extra={"event": event, "timeout": self.timeout})
            return {"loading": False, "notice": TIMEOUT_NOTICES[event]}
        except CollaboratorError as exc:
            logger.warning("registration.call_failed", extra={"event": event, "error": str(exc)})
            return {"loading": False, "notice": FAILURE_NOTICES[event]}
        except Exception as exc:
            # transport errors from real providers (ConnectionError, httpx, ...)
            logger.warning(
                "registration.call_failed",
                exc_info=True,
                extra={"event": event, "error": f"{type(exc).__name__}: {exc}"},
            )
            return {"loading": False, "notice": FAILURE_NOTICES[event]}

        update: Dict[str, Any] = {"loading": False}
        update.update(self._transition(state))
        return update

    def _request(self, state: FormState) -> Awaitable[None]:
        if state.event == "send_otp":
            return self.otp_provider.send_otp(
                str(state.values.get("aadhaar", "")),
                str(state.values.get("entrepreneurName", "")),
            )
        return self.submitter.submit_step(state.current_step, dict(state.values))

    @staticmethod
    def _transition(state: FormState) -> Dict[str, Any]:
        if state.event == "send_otp":
            return {"otp_sent": True, "notice": OTP_SENT_NOTICE}
        if state.event == "advance":
            return {"current_step": state.current_step + 1, "otp_sent": False}
        return {"completed": True, "notice": COMPLETED_NOTICE}

    async def _run(self, call: Awaitable[None], token: Optional[asyncio.Event]) -> None:
        task = asyncio.ensure_future(call)
        if token is None:
            await asyncio.wait_for(task, self.timeout)
            return

        waiter = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, timeout=self.timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()

        if task in done:
            task.result()
            return

        task.cancel()
        if waiter in done:
            raise CallCancelled()
        raise asyncio.TimeoutError()

    def build(self) -> StateGraph:
        g = StateGraph(FormState)

        g.add_node("collect", self.collect_node)
        g.add_node("validate", self.validate_node)
        g.add_node("begin", self.begin_node)
        g.add_node("call", self.call_node)

        g.add_conditional_edges(
            START,
            self.route_event,
            {"collect": "collect", "validate": "validate"},
        )
        g.add_edge("collect", END)

        g.add_conditional_edges(
            "validate",
            self.should_call,
            {"end": END, "begin": "begin"},
        )
        g.add_edge("begin", "call")
        g.add_edge("call", END)

        return g

    def compile(self, checkpointer: Any):
        return self.build().compile(checkpointer=checkpointer)
