from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set


class ControlKind(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    NUMBER = "number"
    URL = "url"
    TEL = "tel"
    TEXTAREA = "textarea"
    CHOICE = "choice"      # radio
    CHECKBOX = "checkbox"
    SELECT = "select"


class Validity(str, Enum):
    NEUTRAL = "neutral"
    VALID = "valid"
    INVALID = "invalid"


class Trigger(str, Enum):
    INPUT = "input"
    CHANGE = "change"
    BLUR = "blur"
    FOCUS = "focus"
    SUBMIT = "submit"


@dataclass
class Constraints:
    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    step: Optional[float] = None
    pattern: Optional[str] = None
    # Custom messages keyed by: required, minlength, maxlength, pattern,
    # email, url, number, min, max, step
    messages: Dict[str, str] = field(default_factory=dict)

    def declared(self) -> bool:
        return bool(
            self.required
            or self.min_length is not None
            or self.max_length is not None
            or self.minimum is not None
            or self.maximum is not None
            or self.step is not None
            or self.pattern
        )


@dataclass
class Control:
    key: str
    kind: ControlKind = ControlKind.TEXT
    constraints: Constraints = field(default_factory=Constraints)
    value: str = ""
    checked: bool = False
    label: str = ""
    options: List[str] = field(default_factory=list)
    # Shared by choice (radio) siblings; checkbox group membership lives on CheckboxGroup
    name: str = ""
    is_name_field: bool = False

    disabled: bool = False
    readonly: bool = False
    hidden: bool = False

    # Presentation, written by the validator
    state: Validity = Validity.NEUTRAL
    message: str = ""
    aria_invalid: bool = False

    # Caret position for name-field paste/drop handling
    caret: Optional[int] = None
    selection_end: Optional[int] = None

    @property
    def is_checkable(self) -> bool:
        return self.kind in (ControlKind.CHECKBOX, ControlKind.CHOICE)

    def is_empty(self) -> bool:
        if self.is_checkable:
            return not self.checked
        return self.value is None or str(self.value).strip() == ""

    def reset_presentation(self) -> None:
        self.state = Validity.NEUTRAL
        self.message = ""
        self.aria_invalid = False


@dataclass
class CheckboxGroup:
    key: str
    members: List[str] = field(default_factory=list)
    minimum: int = 0
    maximum: Optional[int] = None
    uncertain: Optional[str] = None

    locked: bool = False
    message: str = ""
    message_is_error: bool = False
    valid: bool = True
    # Members disabled by the at-maximum lockout (and only those)
    locked_keys: Set[str] = field(default_factory=set)


@dataclass
class ConditionalBinding:
    trigger_key: str
    bound_key: str
    created: bool = False
    active: bool = False


@dataclass
class WizardStep:
    index: int
    key: str = ""
    controls: List[str] = field(default_factory=list)
    groups: List[str] = field(default_factory=list)
    visible: bool = False


@dataclass
class SubmissionState:
    attempted_submit: bool = False
    step_index: int = 0

    def mark_attempted(self) -> None:
        # Never reset once set
        self.attempted_submit = True


@dataclass(frozen=True)
class ScoreResult:
    score: int
    tier: str
    notes: str


@dataclass
class HandoffPayload:
    first: str = ""
    last: str = ""
    to_name: str = ""
    email: str = ""
    lead_score: Optional[int] = None
    lead_tier: str = ""
    auto_notes: str = ""
    cameraCount: Optional[int] = None
    nvrChannel: Optional[int] = None
    cameraRecommendedLocations: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.__dict__)
        for k in ("cameraCount", "nvrChannel", "cameraRecommendedLocations"):
            if out.get(k) is None:
                out.pop(k, None)
        return out


class FormRegistry:
    """
    Identifier-keyed registry of every control, group, step and binding of a
    form. Adapters map on-screen elements to these keys.
    """

    def __init__(self):
        self.controls: Dict[str, Control] = {}
        self.groups: Dict[str, CheckboxGroup] = {}
        self.steps: List[WizardStep] = []
        self.bindings: Dict[str, ConditionalBinding] = {}

    def add_control(self, control: Control) -> Control:
        if control.key in self.controls:
            raise ValueError(f"duplicate control key: {control.key}")
        self.controls[control.key] = control
        return control

    def add_group(self, group: CheckboxGroup) -> CheckboxGroup:
        for m in group.members:
            if m not in self.controls:
                raise KeyError(m)
        if group.uncertain and group.uncertain not in group.members:
            raise ValueError(f"uncertain member {group.uncertain} not in group {group.key}")
        self.groups[group.key] = group
        return group

    def add_step(self, controls: Optional[List[str]] = None, groups: Optional[List[str]] = None, key: str = "") -> WizardStep:
        step = WizardStep(
            index=len(self.steps),
            key=key or f"step-{len(self.steps)}",
            controls=list(controls or []),
            groups=list(groups or []),
            visible=not self.steps,
        )
        self.steps.append(step)
        return step

    def control(self, key: str) -> Control:
        return self.controls[key]

    def group(self, key: str) -> CheckboxGroup:
        return self.groups[key]

    def group_of(self, control_key: str) -> Optional[CheckboxGroup]:
        for g in self.groups.values():
            if control_key in g.members:
                return g
        return None

    def step_of(self, control_key: str) -> Optional[WizardStep]:
        for s in self.steps:
            if control_key in s.controls:
                return s
            for gk in s.groups:
                if control_key in self.groups[gk].members:
                    return s
        return None

    def siblings(self, control: Control) -> List[Control]:
        """Choice controls sharing the same name (radio set), excluding itself."""
        if control.kind != ControlKind.CHOICE or not control.name:
            return []
        return [
            c for c in self.controls.values()
            if c.kind == ControlKind.CHOICE and c.name == control.name and c.key != control.key
        ]
