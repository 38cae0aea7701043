import pytest
from unittest.mock import patch
from leadform.form.models import (
    Constraints, Control, ControlKind, FormRegistry, SubmissionState, Trigger, Validity,
)
from leadform.form.validator import FieldValidator, default_message


def _validator(attempted=False, registry=None):
    return FieldValidator(SubmissionState(attempted_submit=attempted), registry)


def test_precedence_required_first():
    v = _validator()
    c = Control(key="name", constraints=Constraints(required=True, min_length=3))
    assert v.first_failure(c) == "required"


def test_precedence_minlength_before_pattern():
    v = _validator()
    c = Control(key="zip", value="1", constraints=Constraints(min_length=5, pattern=r"\d{5}"))
    assert v.first_failure(c) == "minlength"


def test_precedence_pattern_before_type():
    v = _validator()
    c = Control(key="email", kind=ControlKind.EMAIL, value="nope", constraints=Constraints(pattern=r".+@corp\.com"))
    assert v.first_failure(c) == "pattern"


def test_number_bounds_and_step():
    v = _validator()
    c = Control(key="n", kind=ControlKind.NUMBER, constraints=Constraints(minimum=1, maximum=10, step=2))
    c.value = "abc"
    assert v.first_failure(c) == "number"
    c.value = "0"
    assert v.first_failure(c) == "min"
    c.value = "11"
    assert v.first_failure(c) == "max"
    c.value = "4"
    assert v.first_failure(c) == "step"
    c.value = "5"
    assert v.first_failure(c) is None


def test_step_handles_decimal_steps():
    v = _validator()
    c = Control(key="n", kind=ControlKind.NUMBER, value="0.3", constraints=Constraints(step=0.1))
    assert v.first_failure(c) is None


def test_default_messages():
    c = Control(key="n", kind=ControlKind.NUMBER, constraints=Constraints(minimum=1, maximum=5.5, min_length=2, max_length=9))
    assert default_message(c, "required") == "This field is required."
    assert default_message(c, "minlength") == "Please enter at least 2 characters."
    assert default_message(c, "maxlength") == "Please enter no more than 9 characters."
    assert default_message(c, "min") == "Value must be ≥ 1."
    assert default_message(c, "max") == "Value must be ≤ 5.5."
    assert default_message(c, "step") == "Please select a valid step value."


def test_custom_message_wins():
    v = _validator()
    c = Control(key="email", kind=ControlKind.EMAIL, value="x",
                constraints=Constraints(messages={"email": "We need a real inbox."}))
    assert v.check(c) == (False, "We need a real inbox.")


def test_input_never_shows_invalid_before_attempt():
    v = _validator()
    c = Control(key="email", kind=ControlKind.EMAIL, value="bad")
    assert v.validate(c, Trigger.INPUT) is False
    assert c.state == Validity.NEUTRAL
    assert c.aria_invalid is False
    assert c.message == "Please enter a valid email address."


def test_blur_shows_invalid_before_attempt():
    v = _validator()
    c = Control(key="email", kind=ControlKind.EMAIL, value="bad")
    v.validate(c, Trigger.BLUR)
    assert c.state == Validity.INVALID
    assert c.aria_invalid is True


def test_input_shows_invalid_after_attempt():
    v = _validator(attempted=True)
    c = Control(key="email", kind=ControlKind.EMAIL, value="bad")
    v.validate(c, Trigger.INPUT)
    assert c.state == Validity.INVALID


def test_valid_value_marks_valid():
    v = _validator()
    c = Control(key="email", kind=ControlKind.EMAIL, value="a@b.com")
    assert v.validate(c, Trigger.INPUT) is True
    assert c.state == Validity.VALID
    assert c.message == ""


def test_empty_stays_quiet_until_attempt():
    v = _validator()
    c = Control(key="first", constraints=Constraints(required=True), state=Validity.INVALID, aria_invalid=True)
    assert v.validate(c, Trigger.BLUR) is False
    assert c.state == Validity.NEUTRAL
    assert c.aria_invalid is False

    v.submission.mark_attempted()
    v.validate(c, Trigger.BLUR)
    assert c.state == Validity.INVALID
    assert c.message == "This field is required."


def test_submit_trigger_flags_empty_required():
    v = _validator()
    c = Control(key="first", constraints=Constraints(required=True))
    assert v.validate(c, Trigger.SUBMIT) is False
    assert c.state == Validity.INVALID


@pytest.mark.parametrize("flag", ["disabled", "readonly", "hidden"])
def test_inactive_controls_skipped(flag):
    v = _validator(attempted=True)
    c = Control(key="x", constraints=Constraints(required=True))
    setattr(c, flag, True)
    assert v.validate(c, Trigger.SUBMIT) is True
    assert c.state == Validity.NEUTRAL


def test_validate_idempotent_for_same_value_and_trigger():
    v = _validator()
    c = Control(key="email", kind=ControlKind.EMAIL, value="bad@", constraints=Constraints(required=True))
    for trigger in Trigger:
        first = v.validate(c, trigger)
        snapshot = (c.state, c.message, c.aria_invalid)
        assert v.validate(c, trigger) == first
        assert (c.state, c.message, c.aria_invalid) == snapshot


def test_required_choice_satisfied_by_sibling():
    reg = FormRegistry()
    a = reg.add_control(Control(key="tl_asap", kind=ControlKind.CHOICE, name="timeline", label="ASAP",
                                constraints=Constraints(required=True)))
    reg.add_control(Control(key="tl_month", kind=ControlKind.CHOICE, name="timeline", label="Within a month",
                            checked=True))
    v = _validator(registry=reg)
    assert v.first_failure(a) is None


@patch("leadform.form.validator.log")
def test_pattern_on_number_is_ignored_and_logged(mock_log):
    v = _validator()
    c = Control(key="n", kind=ControlKind.NUMBER, value="7", constraints=Constraints(pattern=r"\d{3}"))
    assert v.first_failure(c) is None
    assert mock_log.call_args.kwargs["event"] == "validator_pattern_ignored"
