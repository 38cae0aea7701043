from typing import Any, Dict

# Accepted spellings for identity fields -> canonical answer keys
_ALIASES = {
    "first": ("first", "first_name", "firstName", "firstname", "fname"),
    "last": ("last", "last_name", "lastName", "lastname", "lname"),
    "email": ("email", "emailAddress", "email_address", "to_email"),
}


def normalize_answers(payload: Any) -> Dict[str, Any]:
    """
    Accept the final answer set in a few shapes (bare mapping, or wrapped in
    "answers" / "data") and map identity aliases onto first / last / email.
    """
    if not isinstance(payload, dict):
        return {}

    answers = payload.get("answers")
    if not isinstance(answers, dict):
        answers = payload.get("data") if isinstance(payload.get("data"), dict) else payload
    answers = dict(answers)

    for canonical, names in _ALIASES.items():
        if str(answers.get(canonical) or "").strip():
            continue
        for name in names:
            v = answers.get(name)
            if v is not None and str(v).strip():
                answers[canonical] = str(v).strip()
                break

    # Split a lone full name when first/last were not given
    full = str(answers.get("name") or answers.get("to_name") or "").strip()
    if full and not answers.get("first"):
        parts = full.split()
        answers["first"] = parts[0]
        if len(parts) > 1 and not answers.get("last"):
            answers["last"] = " ".join(parts[1:])
    return answers
