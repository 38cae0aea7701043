import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

DEFAULT_LOCATIONS = [
    "Front door / porch",
    "Back door / patio",
    "Driveway / garage",
    "Side gate / alley",
    "Living room (main entry view)",
    "Stair landing / hallway",
]


@dataclass
class ResultView:
    first_name: str
    camera_count: Optional[int]
    nvr_channel: Optional[int]
    locations: List[str] = field(default_factory=list)


def pick_first_name(p: Mapping[str, Any]) -> str:
    for key in ("first", "firstname", "first_name"):
        v = str(p.get(key) or "").strip()
        if v:
            return v
    words = str(p.get("to_name") or "").split()
    return words[0] if words else ""


def parse_int_safe(v: Any) -> Optional[int]:
    # parseInt semantics: leading integer part of the text
    m = re.match(r"\s*([+-]?\d+)", str(v if v is not None else ""))
    return int(m.group(1)) if m else None


def pick_locations(p: Mapping[str, Any], fallback_count: Optional[int]) -> List[str]:
    raw = p.get("cameraRecommendedLocations")
    if isinstance(raw, list):
        locs = list(raw)
    elif isinstance(raw, str):
        locs = re.split(r"[\n,;]+", raw)
    elif isinstance(p.get("camera_locations"), str):
        locs = re.split(r"[\n,;]+", p["camera_locations"])
    else:
        locs = []

    seen = set()
    tidy: List[str] = []
    for s in locs:
        s = str(s).strip()
        if s and s not in seen:
            seen.add(s)
            tidy.append(s)

    if not tidy:
        take = min(len(DEFAULT_LOCATIONS), max(2, fallback_count or 4))
        tidy = DEFAULT_LOCATIONS[:take]
    return tidy


def build_result_view(p: Mapping[str, Any]) -> ResultView:
    cam = parse_int_safe(p.get("cameraCount"))
    return ResultView(
        first_name=pick_first_name(p) or "there",
        camera_count=cam,
        nvr_channel=parse_int_safe(p.get("nvrChannel")),
        locations=pick_locations(p, cam),
    )
