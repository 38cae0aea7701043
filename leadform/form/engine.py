"""
Form Engine: the event-facing facade over one form instance.

Owns the registry and the single SubmissionState, and routes interaction
events (keystroke, input, paste, drop, change, blur, focus, step navigation,
final submit) to the sanitizer, validator, group engine, binder, wizard,
scorer and handoff encoder. Event methods are serialized per instance.
"""
from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from leadform.form import handoff, sanitizer, scoring
from leadform.form.conditional import BOUND_SUFFIX, ConditionalFieldBinder, TriggerRule
from leadform.form.groups import GroupConstraintEngine
from leadform.form.models import (
    Control,
    ControlKind,
    FormRegistry,
    HandoffPayload,
    ScoreResult,
    SubmissionState,
    Trigger,
    WizardStep,
)
from leadform.form.validator import FieldValidator
from leadform.form.wizard import WizardController
from leadform.observability.logging import log

_ANY = re.compile("")

UNCERTAIN_SUFFIX = "_unsure"


@dataclass
class Submission:
    result: ScoreResult
    payload: HandoffPayload
    url: Optional[str] = None


class FormEngine:
    def __init__(
        self,
        registry: FormRegistry,
        vocabulary: Optional[List[TriggerRule]] = None,
        session_store=None,
        durable_store=None,
        results_url: str = "",
        on_enter: Optional[Callable[[WizardStep], None]] = None,
    ):
        self.registry = registry
        self.submission = SubmissionState()
        self.session_store = session_store
        self.durable_store = durable_store
        self.results_url = results_url
        self._lock = threading.RLock()

        self.validator = FieldValidator(self.submission, registry)
        self.binder = ConditionalFieldBinder(registry, self.submission, self.validator, vocabulary)
        # Every uncertain member reveals an elaboration field, whatever its label says
        for g in registry.groups.values():
            if g.uncertain:
                self.binder.vocabulary.insert(0, TriggerRule(control=g.uncertain, pattern=_ANY, placeholder="Tell us a bit more"))
        self.groups = GroupConstraintEngine(
            registry, self.submission, on_uncertain_toggled=lambda g, c: self.binder.sync(c)
        )
        self.wizard = WizardController(registry, self.validator, self.groups, self.submission, on_enter=on_enter)

        for g in registry.groups.values():
            self.groups.evaluate(g, show_errors=False)

    # -- text channels ---------------------------------------------------

    def keystroke(self, key: str, data: Optional[str]) -> bool:
        """False means the keystroke is rejected and never reaches the value."""
        control = self.registry.control(key)
        if not control.is_name_field:
            return True
        return sanitizer.accept_keystroke(data)

    def input(self, key: str, value: str, caret: Optional[int] = None) -> Control:
        with self._lock:
            control = self.registry.control(key)
            control.value = "" if value is None else str(value)
            control.caret = caret if caret is not None else len(control.value)
            if control.is_name_field:
                sanitizer.clean_value(control)
            self.validator.validate(control, Trigger.INPUT)
            return control

    def paste(self, key: str, text: str) -> Control:
        return self._insert(key, text)

    def drop(self, key: str, text: str) -> Control:
        return self._insert(key, text)

    def _insert(self, key: str, text: str) -> Control:
        with self._lock:
            control = self.registry.control(key)
            if control.is_name_field:
                sanitizer.insert_at_caret(control, text)
            else:
                value = control.value or ""
                pos = control.caret if control.caret is not None else len(value)
                control.value = value[:pos] + (text or "") + value[pos:]
                control.caret = pos + len(text or "")
            self.validator.validate(control, Trigger.INPUT)
            return control

    # -- change / focus channels ----------------------------------------

    def change(self, key: str, value: Any = None, checked: Optional[bool] = None) -> bool:
        """
        Change event. Selects and text take `value`; checkboxes and choices
        take `checked`. Returns False when a locked checkbox refuses the change.
        """
        with self._lock:
            control = self.registry.control(key)
            if control.kind == ControlKind.CHECKBOX:
                return self._change_checkbox(control, bool(checked))
            if control.kind == ControlKind.CHOICE:
                self._change_choice(control, True if checked is None else bool(checked))
                return True

            if value is not None:
                control.value = str(value)
            if control.is_name_field:
                sanitizer.clean_value(control)
            self.validator.validate(control, Trigger.CHANGE)
            self.binder.sync(control)
            return True

    def _change_checkbox(self, control: Control, checked: bool) -> bool:
        group = self.registry.group_of(control.key)
        if group is None:
            control.checked = checked
            self.validator.validate(control, Trigger.CHANGE)
            self.binder.sync(control)
            return True
        if not self.groups.toggle(group, control.key, checked):
            log(event="group_member_locked", group=group.key, control=control.key)
            return False
        for member_key in group.members:
            if member_key == group.uncertain:
                continue
            member = self.registry.control(member_key)
            if self.binder.is_trigger(member):
                self.binder.sync(member)
        return True

    def _change_choice(self, control: Control, checked: bool) -> None:
        control.checked = checked
        siblings = self.registry.siblings(control)
        if checked:
            for s in siblings:
                s.checked = False
        for c in [control] + siblings:
            self.binder.sync(c)
        self.validator.validate(control, Trigger.CHANGE)

    def blur(self, key: str) -> bool:
        with self._lock:
            return self.validator.validate(self.registry.control(key), Trigger.BLUR)

    def focus(self, key: str) -> bool:
        with self._lock:
            return self.validator.validate(self.registry.control(key), Trigger.FOCUS)

    # -- navigation ------------------------------------------------------

    def next(self) -> bool:
        with self._lock:
            return self.wizard.next()

    def prev(self) -> bool:
        with self._lock:
            return self.wizard.prev()

    @property
    def focus_key(self) -> Optional[str]:
        return self.wizard.focus_key

    @property
    def progress(self) -> Optional[int]:
        return self.wizard.progress

    # -- answers & submit -----------------------------------------------

    def answers(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        grouped = set()
        for g in self.registry.groups.values():
            grouped.update(g.members)
            out[g.key] = [
                (self.registry.control(k).value or self.registry.control(k).label)
                for k in g.members
                if self.registry.control(k).checked
            ]
        for c in self.registry.controls.values():
            if c.key in grouped or c.hidden:
                continue
            if c.kind == ControlKind.CHOICE:
                if c.checked:
                    out[c.name or c.key] = c.value or c.label
                continue
            if c.kind == ControlKind.CHECKBOX:
                out[c.key] = c.checked
                continue
            out[c.key] = c.value
        # Elaboration text of a group member is also exposed under the group's name;
        # the uncertain member's text is kept apart so it never reads as a location
        for binding in self.registry.bindings.values():
            group = self.registry.group_of(binding.trigger_key)
            if group is not None and binding.active:
                suffix = UNCERTAIN_SUFFIX if binding.trigger_key == group.uncertain else BOUND_SUFFIX
                out[f"{group.key}{suffix}"] = self.registry.control(binding.bound_key).value
        return out

    def validate_all(self) -> bool:
        """Whole-form gate used by the final submit; focuses the first failure."""
        ok = True
        first_invalid: Optional[str] = None
        saved = self.submission.step_index
        for step in self.registry.steps:
            self.submission.step_index = step.index
            step_ok, invalid = self.wizard.validate_current_step()
            if not step_ok:
                ok = False
                first_invalid = first_invalid or invalid
        self.submission.step_index = saved
        if not ok:
            self.submission.mark_attempted()
            self.wizard.focus_key = first_invalid
        return ok

    def submit(self) -> Optional[Submission]:
        with self._lock:
            if not self.validate_all():
                log(event="form_submit_blocked", focus=self.wizard.focus_key)
                return None

            answers = self.answers()
            result = scoring.evaluate(answers)
            payload = handoff.build_payload(answers, result)
            url = None
            if self.session_store is not None and self.durable_store is not None:
                url = handoff.publish(payload, self.session_store, self.durable_store, self.results_url)
            log(event="form_submitted", score=result.score, tier=result.tier)
            return Submission(result=result, payload=payload, url=url)
