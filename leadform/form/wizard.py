"""
Wizard Controller
-----------------
One state per step index (0..N-1). `next()` is gated on the current step's
validity; `prev()` is always allowed. Exactly one step is visible.

Progress is hidden on step 0 and shown at max(5, round(index / (N-1) * 100))
afterwards.
"""
from __future__ import annotations

from typing import Callable, Optional, Tuple

from leadform.form.groups import GroupConstraintEngine
from leadform.form.models import ControlKind, FormRegistry, SubmissionState, Trigger, WizardStep
from leadform.form.validator import FieldValidator
from leadform.observability.logging import log

MIN_PROGRESS = 5


def progress_for(index: int, total: int) -> Optional[int]:
    if index <= 0 or total <= 1:
        return None
    pct = index * 100 / (total - 1)
    # Half-up rounding, not banker's rounding
    return max(MIN_PROGRESS, int(pct + 0.5))


class WizardController:
    def __init__(
        self,
        registry: FormRegistry,
        validator: FieldValidator,
        groups: GroupConstraintEngine,
        submission: Optional[SubmissionState] = None,
        on_enter: Optional[Callable[[WizardStep], None]] = None,
    ):
        self.registry = registry
        self.validator = validator
        self.groups = groups
        self.submission = submission or validator.submission
        self.on_enter = on_enter
        self.focus_key: Optional[str] = None
        self._show(self.index)

    @property
    def index(self) -> int:
        return self.submission.step_index

    @property
    def total(self) -> int:
        return len(self.registry.steps)

    @property
    def current(self) -> Optional[WizardStep]:
        if not self.registry.steps:
            return None
        return self.registry.steps[self.index]

    @property
    def is_last(self) -> bool:
        return self.index >= self.total - 1

    @property
    def progress(self) -> Optional[int]:
        return progress_for(self.index, self.total)

    def validate_current_step(self) -> Tuple[bool, Optional[str]]:
        """Returns (ok, key of the first invalid control or group)."""
        step = self.current
        if step is None:
            return True, None

        ok = True
        first_invalid: Optional[str] = None
        for key in step.controls:
            control = self.registry.control(key)
            if control.kind == ControlKind.CHECKBOX:
                continue
            if not control.constraints.required or control.hidden or control.disabled:
                continue
            if not self.validator.validate(control, Trigger.SUBMIT):
                ok = False
                first_invalid = first_invalid or key
        for gkey in step.groups:
            if not self.groups.evaluate(self.registry.group(gkey), show_errors=True):
                ok = False
                first_invalid = first_invalid or gkey
        return ok, first_invalid

    def _show(self, index: int) -> None:
        for s in self.registry.steps:
            s.visible = s.index == index

    def _enter(self, step: WizardStep) -> None:
        if self.on_enter is not None:
            try:
                self.on_enter(step)
            except Exception as e:
                log(event="wizard_enter_hook_failed", step=step.key, error=str(e))
        self.focus_key = self._first_focusable(step)

    def _first_focusable(self, step: WizardStep) -> Optional[str]:
        keys = list(step.controls)
        for gkey in step.groups:
            keys.extend(self.registry.group(gkey).members)
        for key in keys:
            c = self.registry.controls.get(key)
            if c is not None and not c.hidden and not c.disabled and not c.readonly:
                return key
        return None

    def next(self) -> bool:
        ok, first_invalid = self.validate_current_step()
        if not ok:
            self.submission.mark_attempted()
            self.focus_key = first_invalid
            log(event="wizard_step_blocked", step=self.index, focus=first_invalid)
            return False
        if self.is_last:
            return True

        self.submission.step_index = min(self.index + 1, self.total - 1)
        self._show(self.index)
        self._enter(self.current)
        log(event="wizard_step_advanced", step=self.index, progress=self.progress)
        return True

    def prev(self) -> bool:
        if self.index == 0:
            return False
        self.submission.step_index = max(self.index - 1, 0)
        self._show(self.index)
        self._enter(self.current)
        return True

    def go_to(self, index: int) -> bool:
        """Backward jumps are free; forward jumps pass through each gate."""
        index = max(0, min(index, self.total - 1))
        while self.index > index:
            self.prev()
        while self.index < index:
            if not self.next():
                return False
        return True
