import re
from typing import Any, Dict, Mapping


def to_md_bullet_list(value: Any) -> str:
    """One "• item" per line; strings are split on newlines, commas and semicolons."""
    if isinstance(value, (list, tuple)):
        return "\n".join(f"• {str(s).strip()}" for s in value)
    s = str(value or "").strip()
    if not s:
        return ""
    parts = [p.strip() for p in re.split(r"[\n,;]+", s)]
    return "\n".join(f"• {p}" for p in parts if p)


def _locations_text(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(x).strip() for x in value if str(x).strip())
    return str(value or "")


def build_template_params(p: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Flatten a handoff payload into notifier template parameters. Names are
    repeated under several aliases so any template token resolves.
    """
    name = str(p.get("to_name") or " ".join(x for x in (p.get("first"), p.get("last")) if x) or "").strip()
    words = name.split()
    first = str(p.get("first") or (words[0] if words else "")).strip()
    if p.get("last"):
        last = str(p.get("last")).strip()
    else:
        last = re.sub(r"^" + re.escape(first) + r"\b", "", name).strip() if first else name

    locations = p.get("cameraRecommendedLocations") or p.get("camera_locations") or ""
    score = p.get("lead_score")

    return {
        "to_email": p.get("email") or "",
        "email": p.get("email") or "",
        "to_name": name,

        "first": first,
        "last": last,
        "firstname": first,
        "first_name": first,
        "firstName": first,
        "lastname": last,
        "last_name": last,
        "lastName": last,

        "lead_tier": p.get("lead_tier") or "",
        "lead_score": "" if score is None else score,
        "auto_notes": p.get("auto_notes") or "",

        "camera_count": p.get("cameraCount") or 0,
        "camera_locations": _locations_text(locations),
        "camera_locations_md": to_md_bullet_list(locations),
        "nvr_channel": p.get("nvrChannel") or 0,
    }
