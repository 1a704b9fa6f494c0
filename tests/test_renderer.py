from registration.renderer import render_field, render_step, to_html
from registration.schema import DEFAULT_TITLE, get_step
from registration.state import FormState

STEP1 = get_step(1)


def test_otp_hidden_until_sent():
    otp = STEP1.field("otp")
    assert render_field(otp, None, None, loading=False, otp_sent=False) is None
    assert render_field(otp, "", None, loading=False, otp_sent=True) is not None

    names = [f.name for f in render_step(FormState()).fields]
    assert names == ["aadhaar", "entrepreneurName", "consent"]

    names = [f.name for f in render_step(FormState(otp_sent=True)).fields]
    assert names == ["aadhaar", "entrepreneurName", "consent", "otp"]


def test_checkbox_and_text_values():
    consent = render_field(STEP1.field("consent"), None, None, False, False)
    assert consent.value is False

    aadhaar = render_field(STEP1.field("aadhaar"), None, None, False, False)
    assert aadhaar.value == ""
    assert aadhaar.placeholder == "Your Aadhaar No"


def test_help_text_error_and_loading():
    field = render_field(STEP1.field("aadhaar"), "12", "bad aadhaar", loading=True, otp_sent=False)
    assert len(field.help_text) == 3
    assert field.error == "bad aadhaar"
    assert field.disabled is True


def test_send_otp_action_enablement():
    view = render_step(FormState(values={"aadhaar": "123456789012", "entrepreneurName": "K"}))
    assert [a.action for a in view.actions] == ["send_otp"]
    assert view.actions[0].disabled is True

    state = FormState(values={"aadhaar": "123456789012", "entrepreneurName": "K", "consent": True})
    assert render_step(state).actions[0].disabled is False

    loading = render_step(state.model_copy(update={"loading": True})).actions[0]
    assert loading.disabled is True
    assert loading.label == "Validating..."


def test_verify_and_complete_actions():
    view = render_step(FormState(otp_sent=True))
    assert view.actions[0].action == "advance"
    assert view.actions[0].disabled is True

    view = render_step(FormState(otp_sent=True, values={"otp": "123456"}))
    assert view.actions[0].disabled is False

    view = render_step(FormState(current_step=2))
    assert view.actions[0].action == "submit"
    assert view.badge == "Step 2 of 2"
    assert view.heading == DEFAULT_TITLE
    assert view.title == "Enterprise Details"

    assert render_step(FormState(current_step=2, completed=True)).actions == []


def test_html_is_escaped():
    state = FormState(values={"entrepreneurName": '<script>alert("x")</script>'}, errors={"aadhaar": "a < b"})
    html = str(to_html(render_step(state)))

    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "a &lt; b" in html
    assert "Step 1 of 2" in html
    assert '<ol class="help-text"><li>' in html
    assert 'type="checkbox"' in html
