"""
Thank-you page tier resolution.

Precedence: URL `tier` query parameter > session payload `lead_tier` >
durable last-known tier > "Warm". The resolved tier (and the payload score
when present) is written back to the durable store for later visits.
"""
import re
from typing import Any, Dict, Mapping, Optional
from urllib.parse import unquote

from leadform.observability.logging import log
from leadform.settings import settings

DEFAULT_TIER = "Warm"


def normalize_tier(value: Any) -> str:
    t = str(value or "").strip()
    if re.fullmatch(r"hot", t, re.I):
        return "Hot"
    if re.fullmatch(r"warm", t, re.I):
        return "Warm"
    if re.fullmatch(r"nurture", t, re.I):
        return "Nurture"
    return DEFAULT_TIER


def resolve_tier(url_tier: Optional[str], payload: Optional[Mapping[str, Any]], durable_store=None) -> str:
    payload = payload or {}
    raw = unquote(url_tier) if url_tier else ""
    if not raw:
        raw = str(payload.get("lead_tier") or "")
    if not raw and durable_store is not None:
        try:
            raw = durable_store.get(settings.LAST_TIER_KEY) or ""
        except Exception as e:
            log(event="tier_durable_read_failed", error=str(e))
    tier = normalize_tier(raw)

    if durable_store is not None:
        try:
            durable_store.set(settings.LAST_TIER_KEY, tier)
            if payload.get("lead_score") is not None:
                durable_store.set(settings.LAST_SCORE_KEY, str(payload.get("lead_score")))
        except Exception as e:
            log(event="tier_durable_write_failed", error=str(e))
    return tier


def tier_copy(tier: str) -> Dict[str, Any]:
    """Title, subtitle, CTA (Warm only) and accent class for the thank-you page."""
    copy = {
        "Hot": {
            "title": "Congratulations",
            "subtitle": (
                "You are an excellent fit for our services! Our team is excited to assist you "
                "in achieving your goals. Expect a call from us within the next 24 hours to "
                "discuss the next steps."
            ),
            "cta": None,
            "accent": "bg-success-subtle",
        },
        "Warm": {
            "title": "Congratulations on taking the next step!",
            "subtitle": (
                "A short discovery call will speed things up and avoid guesswork. "
                "Pick a time that works for you."
            ),
            "cta": {
                "text": "Book a 15-min Discovery Call",
                "url": settings.BOOKING_URL or settings.PLAN_URL,
                "track": "cta_warm",
            },
            "accent": "bg-warning-subtle",
        },
        "Nurture": {
            "title": "Thank You for Your Interest!",
            "subtitle": (
                "Check your inbox for your plan and quick-win tips. "
                "Explore when you’re ready — we’re here to help."
            ),
            "cta": None,
            "accent": "bg-secondary-subtle",
        },
    }
    return copy[normalize_tier(tier)]
