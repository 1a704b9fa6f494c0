"""
Maps form state to what the user sees.

``render_field`` and ``render_step`` are pure: they read a field definition
or step schema plus the current ``FormState`` and return plain view models.
``to_html`` turns a step view into escaped markup.
"""

from typing import List, Optional, Union

from markupsafe import Markup
from pydantic import BaseModel, Field

from registration.schema import DEFAULT_TITLE, TOTAL_STEPS, FieldDefinition, FieldType, get_step, is_visible
from registration.state import FieldValue, FormState

SEND_OTP_FIELDS = ("aadhaar", "entrepreneurName", "consent")


class RenderedField(BaseModel):
    id: str
    name: str
    label: str
    type: FieldType
    value: Union[bool, str]
    placeholder: Optional[str] = None
    required: bool = False
    help_text: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    disabled: bool = False


class RenderedAction(BaseModel):
    action: str
    label: str
    disabled: bool


class RenderedStep(BaseModel):
    step: int
    total_steps: int
    badge: str
    heading: str
    title: str
    fields: List[RenderedField]
    actions: List[RenderedAction]
    loading: bool
    otp_sent: bool
    completed: bool
    notice: Optional[str] = None


def render_field(
    field: FieldDefinition,
    value: Optional[FieldValue],
    error: Optional[str],
    loading: bool,
    otp_sent: bool,
) -> Optional[RenderedField]:
    if not is_visible(field, otp_sent):
        return None

    if field.is_checkbox:
        shown: Union[bool, str] = bool(value)
    else:
        shown = "" if value is None or value is False else str(value)

    return RenderedField(
        id=field.id,
        name=field.name,
        label=field.label,
        type=field.type,
        value=shown,
        placeholder=field.placeholder,
        required=field.validation.required,
        help_text=list(field.help_text or []),
        error=error or None,
        disabled=loading,
    )


def _actions(state: FormState) -> List[RenderedAction]:
    values = state.values
    if state.completed:
        return []
    if state.current_step == 1 and not state.otp_sent:
        return [
            RenderedAction(
                action="send_otp",
                label="Validating..." if state.loading else "Validate & Generate OTP",
                disabled=state.loading or not all(values.get(n) for n in SEND_OTP_FIELDS),
            )
        ]
    if state.current_step == 1:
        return [
            RenderedAction(
                action="advance",
                label="Verifying..." if state.loading else "Verify OTP",
                disabled=state.loading or not values.get("otp"),
            )
        ]
    return [
        RenderedAction(
            action="submit",
            label="Submitting..." if state.loading else "Complete Registration",
            disabled=state.loading,
        )
    ]


def render_step(state: FormState) -> RenderedStep:
    schema = get_step(state.current_step)
    fields = []
    for field in schema.fields:
        rendered = render_field(
            field,
            state.values.get(field.name),
            state.errors.get(field.name),
            state.loading,
            state.otp_sent,
        )
        if rendered is not None:
            fields.append(rendered)

    return RenderedStep(
        step=state.current_step,
        total_steps=TOTAL_STEPS,
        badge=f"Step {state.current_step} of {TOTAL_STEPS}",
        heading=schema.subtitle or DEFAULT_TITLE,
        title=schema.title,
        fields=fields,
        actions=_actions(state),
        loading=state.loading,
        otp_sent=state.otp_sent,
        completed=state.completed,
        notice=state.notice,
    )


def _disabled(flag: bool) -> Markup:
    return Markup(" disabled") if flag else Markup("")


def field_to_html(field: RenderedField) -> Markup:
    parts: List[Markup] = []
    if field.type == FieldType.CHECKBOX:
        checked = Markup(" checked") if field.value else Markup("")
        parts.append(
            Markup('<div class="form-field checkbox-field">'
                   '<input id="{id}" name="{name}" type="checkbox"{checked}{disabled}>'
                   '<label for="{id}">{label}</label>').format(
                id=field.id, name=field.name, checked=checked,
                disabled=_disabled(field.disabled), label=field.label,
            )
        )
    else:
        required = Markup(' <span class="required">*</span>') if field.required else Markup("")
        parts.append(
            Markup('<div class="form-field">'
                   '<label for="{id}">{label}{required}</label>'
                   '<input id="{id}" name="{name}" type="text" value="{value}" placeholder="{placeholder}"{disabled}>').format(
                id=field.id, name=field.name, label=field.label, required=required,
                value=field.value, placeholder=field.placeholder or "",
                disabled=_disabled(field.disabled),
            )
        )
        if field.help_text:
            items = Markup("").join(Markup("<li>{}</li>").format(text) for text in field.help_text)
            parts.append(Markup('<ol class="help-text">{}</ol>').format(items))

    if field.error:
        parts.append(Markup('<span class="error-message">{}</span>').format(field.error))
    parts.append(Markup("</div>"))
    return Markup("").join(parts)


def to_html(view: RenderedStep) -> Markup:
    fields = Markup("").join(field_to_html(f) for f in view.fields)
    buttons = Markup("").join(
        Markup('<button type="button" name="action" value="{action}"{disabled}>{label}</button>').format(
            action=a.action, disabled=_disabled(a.disabled), label=a.label
        )
        for a in view.actions
    )
    notice = Markup('<p class="notice">{}</p>').format(view.notice) if view.notice else Markup("")

    return Markup(
        '<section class="registration-card">'
        "<h1>{heading}</h1>"
        '<h2 class="step-title">{title}</h2>'
        '<span class="step-badge">{badge}</span>'
        "{notice}"
        "<form>{fields}<div class=\"button-container\">{buttons}</div></form>"
        "</section>"
    ).format(
        heading=view.heading, title=view.title, badge=view.badge,
        notice=notice, fields=fields, buttons=buttons,
    )
