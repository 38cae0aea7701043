"""
Handoff Encoder
---------------
Carries the submission (identity + score + plan summary) to the next page
through three redundant channels, written most-to-least durable:

  (a) URL fragment  `#p=<base64(percent-encoded JSON)>`  survives new tabs/exports
  (b) session store                                         same-tab navigation
  (c) durable store                                         last-resort backup

Readers go the same way: fragment, then session, then durable, then `{}`.
"""
from __future__ import annotations

import base64
import binascii
import json
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote, unquote, urljoin, urlsplit, urlunsplit

from leadform.form.models import HandoffPayload, ScoreResult
from leadform.observability.logging import log
from leadform.settings import settings

# Characters encodeURIComponent leaves untouched
_URI_COMPONENT_SAFE = "-_.!~*'()"

_FRAGMENT_RE = re.compile(r"(?:^|#|&)\s*p=([^&]+)", re.I)

NVR_CHANNELS = (4, 8, 16, 32)

_UNSURE_RE = re.compile(r"\bnot\s+sure\b|\bunsure\b", re.I)


def _split_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = [str(x) for x in value]
    else:
        items = re.split(r"[\n,;]+", str(value))
    return [s.strip() for s in items if s and s.strip()]


def nvr_channel_for(count: int) -> int:
    for ch in NVR_CHANNELS:
        if count <= ch:
            return ch
    return NVR_CHANNELS[-1]


def build_plan_summary(answers: Mapping[str, Any]) -> Tuple[Optional[int], Optional[int], Optional[List[str]]]:
    """(cameraCount, nvrChannel, cameraRecommendedLocations) from the answers."""
    locations = [x for x in _split_list(answers.get("priority_areas")) if not _UNSURE_RE.search(x)]
    locations = [x for x in locations if x.lower() not in ("other", "others")]
    locations.extend(_split_list(answers.get("priority_areas_other")))

    count: Optional[int] = None
    explicit = answers.get("camera_count")
    if explicit not in (None, ""):
        try:
            count = max(0, int(float(explicit)))
        except (TypeError, ValueError):
            count = None
    if count is None and locations:
        count = max(2, len(locations))

    if count is None:
        return None, None, (locations or None)
    return count, nvr_channel_for(count), (locations or None)


def build_payload(answers: Mapping[str, Any], result: ScoreResult) -> HandoffPayload:
    first = str(answers.get("first") or "").strip()
    last = str(answers.get("last") or "").strip()
    cam, nvr, locs = build_plan_summary(answers)
    return HandoffPayload(
        first=first,
        last=last,
        to_name=" ".join(x for x in (first, last) if x),
        email=str(answers.get("email") or "").strip(),
        lead_score=int(result.score),
        lead_tier=result.tier,
        auto_notes=result.notes,
        cameraCount=cam,
        nvrChannel=nvr,
        cameraRecommendedLocations=locs,
    )


def serialize(payload: Mapping[str, Any]) -> str:
    return json.dumps(dict(payload), ensure_ascii=False, separators=(",", ":"))


def encode_fragment_value(payload: Mapping[str, Any]) -> str:
    raw = serialize(payload)
    pct = quote(raw, safe=_URI_COMPONENT_SAFE)
    return base64.b64encode(pct.encode("ascii")).decode("ascii")


def decode_fragment_value(value: str) -> Optional[Dict[str, Any]]:
    try:
        pct = base64.b64decode(value, validate=True).decode("ascii")
        raw = unquote(pct, errors="strict")
        data = json.loads(raw)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def read_fragment(fragment: Optional[str]) -> Optional[Dict[str, Any]]:
    m = _FRAGMENT_RE.search(fragment or "")
    if not m:
        return None
    # A value forwarded through a query string arrives with "+" decoded to " "
    return decode_fragment_value(m.group(1).replace(" ", "+").strip())


def destination_url(base_url: str, payload: Mapping[str, Any], current_url: str = "") -> str:
    target = urljoin(current_url, base_url) if current_url else base_url
    parts = urlsplit(target)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, "p=" + encode_fragment_value(payload)))


def _try_json(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def publish(payload: Mapping[str, Any], session_store, durable_store, results_url: str = "") -> str:
    """Write all three channels in priority order; returns the destination URL."""
    data = payload.to_dict() if isinstance(payload, HandoffPayload) else dict(payload)
    url = destination_url(results_url or settings.RESULTS_URL, data)
    raw = serialize(data)
    session_store.set(settings.SESSION_PAYLOAD_KEY, raw)
    try:
        durable_store.set(settings.DURABLE_PAYLOAD_KEY, raw)
    except Exception as e:
        # The durable copy is a backup only; the first two channels already hold the payload
        log(event="handoff_durable_write_failed", error=str(e))
    log(event="handoff_published", tier=data.get("lead_tier"), hasEmail=bool(data.get("email")))
    return url


def read_payload(fragment: Optional[str] = None, session_store=None, durable_store=None) -> Dict[str, Any]:
    p = read_fragment(fragment)
    if p is not None:
        return p
    for source, store, key in (
        ("session", session_store, settings.SESSION_PAYLOAD_KEY),
        ("durable", durable_store, settings.DURABLE_PAYLOAD_KEY),
    ):
        if store is None:
            continue
        try:
            p = _try_json(store.get(key))
        except Exception as e:
            log(event="handoff_store_read_failed", source=source, error=str(e))
            p = None
        if p is not None:
            return p
    return {}


def already_notified(session_store, template_id: str = "") -> bool:
    return session_store.get(settings.guard_key(template_id)) == "1"


def mark_notified(session_store, template_id: str = "") -> None:
    session_store.set(settings.guard_key(template_id), "1")
