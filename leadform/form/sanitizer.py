"""
Name-field input guard.

Allowed: Unicode letters, combining marks, whitespace, hyphen and apostrophes.
Runs of two or more whitespace characters collapse to one space.
"""
import re
import unicodedata
from typing import Optional

from leadform.form.models import Control

_ALLOWED_PUNCT = {"-", "'", "’"}
_MULTI_SPACE_RE = re.compile(r"\s{2,}")


def _allowed(ch: str) -> bool:
    if ch in _ALLOWED_PUNCT or ch.isspace():
        return True
    return unicodedata.category(ch)[0] in ("L", "M")


def sanitize(text: Optional[str]) -> str:
    if text is None:
        return ""
    out = unicodedata.normalize("NFC", str(text))
    out = "".join(ch for ch in out if _allowed(ch))
    out = _MULTI_SPACE_RE.sub(" ", out)
    # Dropping a character can leave a letter and a mark adjacent; recompose
    return unicodedata.normalize("NFC", out)


def accept_keystroke(data: Optional[str]) -> bool:
    """Reject a keystroke whose text would be altered by sanitizing; deletions pass."""
    if not data:
        return True
    return sanitize(data) == data


def insert_at_caret(control: Control, raw: str) -> str:
    """Paste/drop: insert the sanitized text at the caret, replacing the selection."""
    text = sanitize(raw)
    value = control.value or ""
    start = control.caret if control.caret is not None else len(value)
    end = control.selection_end if control.selection_end is not None else start
    start = max(0, min(start, len(value)))
    end = max(start, min(end, len(value)))
    before, after = value[:start], value[end:]
    control.value = before + text + after
    control.caret = len(before) + len(text)
    control.selection_end = control.caret
    return control.value


def clean_value(control: Control) -> bool:
    """
    Sanitize whatever reached the control by other means (IME, autofill,
    programmatic set). Caret moves back by the number of removed characters.
    Returns True when the value changed.
    """
    value = control.value or ""
    cleaned = sanitize(value)
    if cleaned == value:
        return False
    pos = control.caret if control.caret is not None else len(cleaned)
    delta = len(value) - len(cleaned)
    control.value = cleaned
    control.caret = max(0, min(len(cleaned), pos - delta))
    control.selection_end = control.caret
    return True
