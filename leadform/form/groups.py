"""
Group Constraint Engine
-----------------------
Checkbox-group cardinality (min/max), the mutually exclusive "uncertain"
member, and the at-maximum lockout.

Groups are never shown red until a validation gate (step advance or submit)
has failed once; before that they only carry a neutral helper message.
Individual unchecked items are never marked invalid.
"""
from __future__ import annotations

from typing import Callable, List, Optional

from leadform.form.models import CheckboxGroup, Control, FormRegistry, SubmissionState, Validity


def helper_message(group: CheckboxGroup) -> str:
    lo, hi = group.minimum, group.maximum
    if hi is not None and lo > 0:
        if lo == hi:
            return f"Select exactly {lo}."
        return f"Select between {lo} and {hi}."
    if hi is not None:
        return f"Select up to {hi}."
    if lo > 0:
        return f"Select at least {lo}."
    return ""


class GroupConstraintEngine:
    def __init__(
        self,
        registry: FormRegistry,
        submission: SubmissionState,
        on_uncertain_toggled: Optional[Callable[[CheckboxGroup, Control], None]] = None,
    ):
        self.registry = registry
        self.submission = submission
        # Wired to the conditional binder so the uncertain member's elaboration
        # field follows its checked state
        self.on_uncertain_toggled = on_uncertain_toggled

    def members(self, group: CheckboxGroup) -> List[Control]:
        return [self.registry.control(k) for k in group.members]

    def checked_count(self, group: CheckboxGroup) -> int:
        return sum(1 for c in self.members(group) if c.checked)

    def is_valid(self, group: CheckboxGroup) -> bool:
        n = self.checked_count(group)
        if n < group.minimum:
            return False
        if group.maximum is not None and n > group.maximum:
            return False
        return True

    def _apply_lockout(self, group: CheckboxGroup, count: int) -> None:
        at_max = group.maximum is not None and count >= group.maximum
        for c in self.members(group):
            if at_max and not c.checked:
                if not c.disabled:
                    c.disabled = True
                    group.locked_keys.add(c.key)
            elif c.key in group.locked_keys:
                # Release only what the lockout disabled; checked members never stay locked
                c.disabled = False
                group.locked_keys.discard(c.key)
        group.locked = at_max

    def evaluate(self, group: CheckboxGroup, show_errors: Optional[bool] = None) -> bool:
        if show_errors is None:
            show_errors = self.submission.attempted_submit

        count = self.checked_count(group)
        valid = self.is_valid(group)
        self._apply_lockout(group, count)

        if show_errors and not valid:
            if group.maximum is not None and count > group.maximum:
                group.message = f"Select no more than {group.maximum}."
            else:
                group.message = f"Select at least {group.minimum}."
            group.message_is_error = True
        else:
            group.message = helper_message(group)
            group.message_is_error = False

        for c in self.members(group):
            c.state = Validity.VALID if (c.checked and valid) else Validity.NEUTRAL
            c.aria_invalid = False
            c.message = ""

        group.valid = valid
        return valid

    def _resolve_exclusivity(self, group: CheckboxGroup, changed: Control) -> Optional[Control]:
        """Returns the uncertain member when its checked state changed."""
        if not group.uncertain:
            return None
        uncertain = self.registry.control(group.uncertain)
        if changed.key == uncertain.key:
            if changed.checked:
                for c in self.members(group):
                    if c.key != uncertain.key:
                        c.checked = False
            return uncertain
        if changed.checked and uncertain.checked:
            uncertain.checked = False
            return uncertain
        return None

    def toggle(self, group: CheckboxGroup, member_key: str, checked: bool) -> bool:
        """
        Change event on one member. Checking a disabled (locked) member is
        rejected and returns False; otherwise returns True.
        """
        if member_key not in group.members:
            raise KeyError(member_key)
        control = self.registry.control(member_key)
        if checked and control.disabled and not control.checked:
            return False

        control.checked = bool(checked)
        uncertain = self._resolve_exclusivity(group, control)
        self.evaluate(group)
        if uncertain is not None and self.on_uncertain_toggled is not None:
            self.on_uncertain_toggled(group, uncertain)
        return True
