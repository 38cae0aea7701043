"""
Conditional Field Binder
------------------------
Table-driven: a trigger vocabulary maps a control key (or "*" for any
control) to a case-insensitive pattern. A select matches through its
options, a checkbox/choice through its label. When the trigger becomes
active, one free-text control is materialized next to it (once) and made
visible + required; when inactive it is hidden, cleared and made optional.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern

from leadform.form.models import (
    ConditionalBinding,
    Constraints,
    Control,
    ControlKind,
    FormRegistry,
    SubmissionState,
    Trigger,
)
from leadform.form.validator import FieldValidator
from leadform.observability.logging import log

OTHER_RE = re.compile(r"^\s*others?\b", re.I)
NOT_SURE_RE = re.compile(r"\bnot\s+sure\b|\bunsure\b|\bdon[’']?t\s+know\b", re.I)

BOUND_SUFFIX = "_other"


@dataclass(frozen=True)
class TriggerRule:
    control: str              # control key, or "*" for any control
    pattern: Pattern[str]
    placeholder: str = "Please specify"

    def applies_to(self, key: str) -> bool:
        return self.control == "*" or self.control == key


DEFAULT_VOCABULARY: List[TriggerRule] = [
    TriggerRule(control="*", pattern=OTHER_RE, placeholder="Please specify"),
    TriggerRule(control="*", pattern=NOT_SURE_RE, placeholder="Tell us a bit more"),
]


class ConditionalFieldBinder:
    def __init__(
        self,
        registry: FormRegistry,
        submission: SubmissionState,
        validator: FieldValidator,
        vocabulary: Optional[List[TriggerRule]] = None,
    ):
        self.registry = registry
        self.submission = submission
        self.validator = validator
        self.vocabulary = list(vocabulary if vocabulary is not None else DEFAULT_VOCABULARY)

    def _rules(self, key: str) -> List[TriggerRule]:
        specific = [r for r in self.vocabulary if r.control == key]
        return specific or [r for r in self.vocabulary if r.control == "*"]

    def rule_for(self, control: Control) -> Optional[TriggerRule]:
        """The rule whose pattern this control can trigger, if any."""
        if control.kind == ControlKind.SELECT:
            candidates = control.options
        elif control.is_checkable:
            candidates = [control.label]
        else:
            return None
        for rule in self._rules(control.key):
            if any(rule.pattern.search(c or "") for c in candidates):
                return rule
        return None

    def is_trigger(self, control: Control) -> bool:
        return self.rule_for(control) is not None

    def active_rule(self, control: Control) -> Optional[TriggerRule]:
        """The rule matched by the current selection; a select may offer several."""
        if control.kind == ControlKind.SELECT:
            value = control.value or ""
            if not value or self.rule_for(control) is None:
                return None
            return next((r for r in self._rules(control.key) if r.pattern.search(value)), None)
        if control.checked:
            return self.rule_for(control)
        return None

    def is_active(self, control: Control) -> bool:
        return self.active_rule(control) is not None

    def bound_control(self, trigger_key: str) -> Optional[Control]:
        binding = self.registry.bindings.get(trigger_key)
        if binding is None or not binding.created:
            return None
        return self.registry.controls.get(binding.bound_key)

    def _materialize(self, trigger: Control, rule: TriggerRule) -> Control:
        binding = self.registry.bindings.get(trigger.key)
        if binding is not None and binding.created:
            return self.registry.control(binding.bound_key)

        bound = Control(
            key=f"{trigger.key}{BOUND_SUFFIX}",
            kind=ControlKind.TEXT,
            constraints=Constraints(required=True),
            label=rule.placeholder,
            hidden=True,
        )
        self.registry.add_control(bound)

        # Place it in the trigger's step, directly after the trigger when listed there
        step = self.registry.step_of(trigger.key)
        if step is not None:
            if trigger.key in step.controls:
                step.controls.insert(step.controls.index(trigger.key) + 1, bound.key)
            else:
                step.controls.append(bound.key)

        self.registry.bindings[trigger.key] = ConditionalBinding(
            trigger_key=trigger.key, bound_key=bound.key, created=True
        )
        log(event="conditional_field_created", trigger=trigger.key, bound=bound.key)
        return bound

    def sync(self, trigger: Control) -> Optional[Control]:
        """Bring the bound control in line with the trigger's current state."""
        if self.rule_for(trigger) is None:
            return None

        rule = self.active_rule(trigger)
        active = rule is not None
        if active:
            bound = self._materialize(trigger, rule)
            bound.label = rule.placeholder
            bound.hidden = False
            bound.constraints.required = True
        else:
            bound = self.bound_control(trigger.key)
            if bound is None:
                return None
            bound.hidden = True
            bound.constraints.required = False
            bound.value = ""
            bound.reset_presentation()

        self.registry.bindings[trigger.key].active = active
        if active and self.submission.attempted_submit:
            self.validator.validate(bound, Trigger.CHANGE)
        return bound
