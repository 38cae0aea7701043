"""
Field Validator
---------------
Computes a control's validity for a triggering event and writes its
presentation (valid / invalid / neutral state, accessible-invalid flag and
feedback message).

Predicates run in a fixed precedence; the first failing one selects the
message:

    required > too-short > too-long > pattern > type > min > max > step

Red marking is withheld while the user is typing: an `input` trigger before
the first failed submit never shows invalid, it only clears or shows valid.
"""
from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple
from urllib.parse import urlparse

from leadform.form.models import Control, ControlKind, FormRegistry, SubmissionState, Trigger, Validity
from leadform.observability.logging import log

# WHATWG "valid e-mail address"
_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)

# Kinds on which a pattern constraint applies
_PATTERN_KINDS = {ControlKind.TEXT, ControlKind.EMAIL, ControlKind.URL, ControlKind.TEL, ControlKind.TEXTAREA}
_TYPED_KINDS = {ControlKind.EMAIL, ControlKind.URL, ControlKind.NUMBER, ControlKind.TEL, ControlKind.SELECT}

# Shown red on these triggers even before the first submit attempt
_SHOW_INVALID_TRIGGERS = {Trigger.BLUR, Trigger.CHANGE, Trigger.SUBMIT}


def _fmt_number(n: float) -> str:
    f = float(n)
    return str(int(f)) if f.is_integer() else str(f)


def _parse_number(value: str) -> Optional[float]:
    try:
        f = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    if math.isnan(f) or math.isinf(f):
        return None
    return f


def _valid_url(value: str) -> bool:
    try:
        p = urlparse(value.strip())
    except ValueError:
        return False
    return bool(p.scheme) and bool(p.netloc or p.path) and " " not in value.strip()


def _step_mismatch(value: float, step: float, base: float) -> bool:
    try:
        q = (Decimal(str(value)) - Decimal(str(base))) / Decimal(str(step))
    except (InvalidOperation, ZeroDivisionError):
        return False
    return q != q.to_integral_value()


def default_message(control: Control, failure: str) -> str:
    c = control.constraints
    custom = c.messages.get(failure)
    if custom:
        return custom
    if failure == "required":
        return "This field is required."
    if failure == "minlength":
        return f"Please enter at least {c.min_length} characters."
    if failure == "maxlength":
        return f"Please enter no more than {c.max_length} characters."
    if failure == "pattern":
        return "Please match the requested format."
    if failure == "email":
        return "Please enter a valid email address."
    if failure == "url":
        return "Please enter a valid URL."
    if failure == "number":
        return "Please enter a valid number."
    if failure == "min":
        return f"Value must be ≥ {_fmt_number(c.minimum)}."
    if failure == "max":
        return f"Value must be ≤ {_fmt_number(c.maximum)}."
    if failure == "step":
        return "Please select a valid step value."
    return "Please enter a valid value."


class FieldValidator:
    def __init__(self, submission: SubmissionState, registry: Optional[FormRegistry] = None):
        self.submission = submission
        self.registry = registry

    def should_validate(self, control: Control) -> bool:
        if control.disabled or control.readonly or control.hidden:
            return False
        return control.constraints.declared() or control.kind in _TYPED_KINDS

    def _is_missing(self, control: Control) -> bool:
        if control.kind == ControlKind.CHOICE and self.registry is not None:
            # A required radio set is satisfied by any checked sibling
            if control.checked:
                return False
            return not any(s.checked for s in self.registry.siblings(control))
        return control.is_empty()

    def first_failure(self, control: Control) -> Optional[str]:
        """Name of the first failing predicate, or None when every predicate holds."""
        c = control.constraints
        if c.required and self._is_missing(control):
            return "required"
        if control.is_checkable or control.is_empty():
            return None

        value = str(control.value)
        text = value.strip()
        length = len(value)
        if c.min_length is not None and length < c.min_length:
            return "minlength"
        if c.max_length is not None and length > c.max_length:
            return "maxlength"

        if c.pattern:
            if control.kind in _PATTERN_KINDS:
                try:
                    if re.fullmatch(c.pattern, value) is None:
                        return "pattern"
                except re.error as e:
                    log(event="validator_pattern_invalid", control=control.key, error=str(e))
            else:
                log(event="validator_pattern_ignored", control=control.key, kind=control.kind.value)

        if control.kind == ControlKind.EMAIL and not _EMAIL_RE.match(text):
            return "email"
        if control.kind == ControlKind.URL and not _valid_url(text):
            return "url"

        if control.kind == ControlKind.NUMBER:
            num = _parse_number(text)
            if num is None:
                return "number"
            if c.minimum is not None and num < c.minimum:
                return "min"
            if c.maximum is not None and num > c.maximum:
                return "max"
            if c.step and _step_mismatch(num, c.step, c.minimum if c.minimum is not None else 0):
                return "step"
        return None

    def check(self, control: Control) -> Tuple[bool, str]:
        failure = self.first_failure(control)
        if failure is None:
            return True, ""
        return False, default_message(control, failure)

    def validate(self, control: Control, trigger: Trigger = Trigger.INPUT) -> bool:
        """
        Validate and render one control. Controls that are not validated
        (disabled, read-only, hidden, nothing declared) keep their state and
        report True so they never block a step.
        """
        trigger = Trigger(trigger)
        if not self.should_validate(control):
            return True

        attempted = self.submission.attempted_submit
        if control.is_empty() and trigger != Trigger.SUBMIT and not attempted:
            control.reset_presentation()
            return not control.constraints.required

        ok, message = self.check(control)
        if ok:
            control.state = Validity.VALID
            control.message = ""
            control.aria_invalid = False
            return True

        control.message = message
        if attempted or trigger in _SHOW_INVALID_TRIGGERS:
            control.state = Validity.INVALID
            control.aria_invalid = True
        else:
            control.state = Validity.NEUTRAL
            control.aria_invalid = False
        return False
