from typing import Union

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, StrictBool, StrictStr

from api.deps import get_registry
from api.errors import ConflictError, NotFoundError, ValidationError
from registration.renderer import RenderedStep, render_step, to_html
from registration.session import (
    InvalidInputError,
    InvalidTransitionError,
    RegistrationBusyError,
    RegistrationSession,
    SessionNotFoundError,
    SessionRegistry,
)

router = APIRouter(prefix="/api/registration", tags=["registration"])


class FieldInput(BaseModel):
    name: str
    value: Union[StrictBool, StrictStr]


class SessionView(BaseModel):
    session_id: str
    phase: str
    view: RenderedStep


def _session(session_id: str, registry: SessionRegistry) -> RegistrationSession:
    try:
        return registry.get(session_id)
    except SessionNotFoundError:
        raise NotFoundError("Registration session not found") from None


def _view(session: RegistrationSession) -> SessionView:
    return SessionView(
        session_id=session.session_id,
        phase=session.state.phase.value,
        view=render_step(session.state),
    )


async def _apply(session: RegistrationSession, registry: SessionRegistry, action) -> SessionView:
    try:
        await action()
    except RegistrationBusyError as exc:
        raise ConflictError(str(exc), code="busy") from exc
    except InvalidTransitionError as exc:
        raise ConflictError(str(exc), code="invalid_transition") from exc
    except InvalidInputError as exc:
        raise ValidationError(str(exc), code="invalid_input") from exc

    view = _view(session)
    if session.state.completed:
        await registry.close(session.session_id)
    return view


@router.post("", status_code=201, response_model=SessionView)
async def open_session(registry: SessionRegistry = Depends(get_registry)):
    await registry.evict_idle()
    return _view(registry.create())


@router.get("/{session_id}", response_model=SessionView)
def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return _view(_session(session_id, registry))


@router.get("/{session_id}/form", response_class=HTMLResponse)
def get_form(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = _session(session_id, registry)
    return HTMLResponse(str(to_html(render_step(session.state))))


@router.post("/{session_id}/input", response_model=SessionView)
async def field_input(session_id: str, body: FieldInput, registry: SessionRegistry = Depends(get_registry)):
    session = _session(session_id, registry)
    return await _apply(session, registry, lambda: session.input(body.name, body.value))


@router.post("/{session_id}/send-otp", response_model=SessionView)
async def send_otp(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = _session(session_id, registry)
    return await _apply(session, registry, session.send_otp)


@router.post("/{session_id}/verify-otp", response_model=SessionView)
async def verify_otp(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = _session(session_id, registry)
    return await _apply(session, registry, session.advance)


@router.post("/{session_id}/submit", response_model=SessionView)
async def submit(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = _session(session_id, registry)
    return await _apply(session, registry, session.submit)


@router.post("/{session_id}/cancel")
async def cancel(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = _session(session_id, registry)
    return {"cancelled": session.cancel()}


@router.delete("/{session_id}", status_code=204)
async def close_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    try:
        await registry.close(session_id)
    except SessionNotFoundError:
        raise NotFoundError("Registration session not found") from None
