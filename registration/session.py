import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence
from uuid import uuid4

from langchain_core.runnables import RunnableConfig

from registration.schema import find_field
from registration.state import FieldValue, FormState, Phase

logger = logging.getLogger("udyam")

# phase an action event must be dispatched from
ALLOWED_PHASES = {
    "send_otp": Phase.STEP1_COLLECTING,
    "advance": Phase.STEP1_OTP_SENT,
    "submit": Phase.STEP2_COLLECTING,
}


class RegistrationBusyError(Exception):
    """An OTP or submit call is still in flight for this form."""


class InvalidTransitionError(Exception):
    """The requested action is not available in the form's current phase."""


class InvalidInputError(ValueError):
    """The field name is unknown or the value does not match the field type."""


class SessionNotFoundError(KeyError):
    pass


def check_input(name: str, value: Any) -> None:
    field = find_field(name)
    if field is None:
        raise InvalidInputError(f"Unknown field: {name}")
    if field.is_checkbox and not isinstance(value, bool):
        raise InvalidInputError(f"Field {name} expects true or false")
    if not field.is_checkbox and not isinstance(value, str):
        raise InvalidInputError(f"Field {name} expects a string")


def _coerce(values: Any) -> FormState:
    if isinstance(values, FormState):
        return values
    return FormState.model_validate(values)


class RegistrationSession:
    """
    One open registration form. Events are applied through the compiled
    graph; the latest state is mirrored on ``state`` after every graph step,
    so ``loading`` is visible while a call is in flight.
    """

    def __init__(
        self,
        graph: Any,
        session_id: str,
        encrypt_keys: Sequence[str] = (),
        clock: Callable[[], float] = time.monotonic,
    ):
        self.graph = graph
        self.session_id = session_id
        self.encrypt_keys: List[str] = list(encrypt_keys)
        self._clock = clock
        self.last_active = clock()
        self.state = FormState()
        self._busy = False
        self._cancel_token: Optional[asyncio.Event] = None

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def config(self) -> RunnableConfig:
        return {
            "configurable": {
                "thread_id": self.session_id,
                "encrypt_keys": self.encrypt_keys,
            }
        }

    async def input(self, name: str, value: FieldValue) -> FormState:
        check_input(name, value)
        return await self._dispatch({"event": "input", "field_name": name, "field_value": value})

    async def send_otp(self) -> FormState:
        return await self._dispatch({"event": "send_otp"})

    async def advance(self) -> FormState:
        return await self._dispatch({"event": "advance"})

    async def submit(self) -> FormState:
        return await self._dispatch({"event": "submit"})

    def touch(self) -> None:
        self.last_active = self._clock()

    def idle_for(self) -> float:
        return self._clock() - self.last_active

    def cancel(self) -> bool:
        """Abort the in-flight call, if any. The form keeps its values and errors."""
        if self._cancel_token is None:
            return False
        self._cancel_token.set()
        return True

    async def _dispatch(self, event: Dict[str, Any]) -> FormState:
        name = event["event"]
        if self._busy or self.state.loading:
            raise RegistrationBusyError("A request for this form is already in progress")
        if self.state.completed:
            raise InvalidTransitionError("Registration is already completed")

        expected = ALLOWED_PHASES.get(name)
        if expected is not None and self.state.phase != expected:
            raise InvalidTransitionError(
                f"Cannot {name.replace('_', ' ')} while form is in {self.state.phase.value}"
            )

        token = asyncio.Event()
        config = self.config
        config["configurable"]["cancel_token"] = token

        self._busy = True
        self._cancel_token = token
        self.touch()
        before = self.state
        try:
            async for values in self.graph.astream(
                {**event, "loading": False, "notice": None}, config, stream_mode="values"
            ):
                self.state = _coerce(values)
        except Exception:
            logger.exception("registration.dispatch_failed", extra={"session_id": self.session_id})
            self.state = before
            raise
        finally:
            self._busy = False
            self._cancel_token = None
            self.touch()

        return self.state


class SessionRegistry:
    """
    Open forms keyed by session id, one checkpoint thread each. Forms left
    idle longer than ``ttl`` seconds are evicted by ``evict_idle`` along with
    their checkpoints; ``ttl=None`` keeps them until closed.
    """

    def __init__(
        self,
        graph: Any,
        checkpointer: Any,
        encrypt_keys: Sequence[str] = (),
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.graph = graph
        self.checkpointer = checkpointer
        self.encrypt_keys = list(encrypt_keys)
        self.ttl = ttl
        self.clock = clock
        self._sessions: Dict[str, RegistrationSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> RegistrationSession:
        session = RegistrationSession(self.graph, uuid4().hex, self.encrypt_keys, clock=self.clock)
        self._sessions[session.session_id] = session
        logger.info("registration.session_opened", extra={"session_id": session.session_id})
        return session

    def get(self, session_id: str) -> RegistrationSession:
        try:
            session = self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(session_id) from None
        session.touch()
        return session

    async def close(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        session.cancel()
        await self.checkpointer.adelete_thread(session_id)
        logger.info("registration.session_closed", extra={"session_id": session_id})

    async def evict_idle(self) -> List[str]:
        if self.ttl is None:
            return []
        # busy sessions are skipped, their call finishes under its own timeout
        expired = [
            sid
            for sid, session in self._sessions.items()
            if not session.busy and session.idle_for() > self.ttl
        ]
        for sid in expired:
            await self.close(sid)
        if expired:
            logger.info("registration.sessions_evicted", extra={"count": len(expired)})
        return expired
