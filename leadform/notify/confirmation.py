"""
Confirmation flow
-----------------
Sends ONE notification per template/session, then moves the user on to the
results page carrying the payload. A notifier failure never strands the
user: the guard stays unset and a manual "continue" link (which still
carries the payload) becomes visible.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from leadform.form import handoff
from leadform.notify.emailjs_client import NotifierError, send_email
from leadform.notify.template_params import build_template_params
from leadform.observability.logging import log
from leadform.settings import settings

MSG_ALREADY_SENT = "Taking you to your results…"
MSG_NO_PAYLOAD = "We couldn't find your answers. Taking you to your results…"
MSG_NO_EMAIL = "Missing email address. Taking you to your results…"
MSG_SENT = "Email sent! Redirecting to your results…"
MSG_FAILED = "Sorry—there was a problem sending your email."

Notifier = Callable[..., Any]


@dataclass
class ConfirmationOutcome:
    status: str
    continue_url: str
    redirect_url: Optional[str] = None
    show_continue: bool = False
    notified: bool = False
    delay_ms: int = 0


def _read_session_payload(session_store) -> Optional[Dict[str, Any]]:
    try:
        raw = session_store.get(settings.SESSION_PAYLOAD_KEY)
    except Exception as e:
        log(event="confirm_session_read_failed", error=str(e))
        return None
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def results_url_with_payload(session_store, durable_store, results_url: str = "") -> str:
    """Refresh the durable backup and build the results URL carrying the payload."""
    target = results_url or settings.RESULTS_URL
    try:
        raw = session_store.get(settings.SESSION_PAYLOAD_KEY) or "{}"
        durable_store.set(settings.DURABLE_PAYLOAD_KEY, raw)
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            payload = {}
        return handoff.destination_url(target, payload)
    except Exception as e:
        log(event="confirm_redirect_fallback", error=str(e))
        return target


def run_confirmation(
    session_store,
    durable_store,
    notifier: Notifier = send_email,
    template_id: str = "",
    results_url: str = "",
) -> ConfirmationOutcome:
    template_id = template_id or settings.EMAILJS_TEMPLATE_ID
    continue_url = results_url_with_payload(session_store, durable_store, results_url)
    delay = int(settings.REDIRECT_DELAY_MS)

    def _redirect(status: str, notified: bool = False) -> ConfirmationOutcome:
        return ConfirmationOutcome(
            status=status, continue_url=continue_url, redirect_url=continue_url,
            notified=notified, delay_ms=delay,
        )

    if handoff.already_notified(session_store, template_id):
        return _redirect(MSG_ALREADY_SENT)

    payload = _read_session_payload(session_store)
    if not payload:
        return _redirect(MSG_NO_PAYLOAD)
    if not payload.get("email"):
        # The results page renders fine without an email
        return _redirect(MSG_NO_EMAIL)

    params = build_template_params(payload)
    log(event="confirm_sending", templateId=template_id, tier=payload.get("lead_tier"))
    try:
        notifier(params, template_id=template_id)
    except NotifierError as e:
        log(event="confirm_notify_failed", templateId=template_id, error=str(e), statusCode=e.status_code)
        return ConfirmationOutcome(status=MSG_FAILED, continue_url=continue_url, show_continue=True)

    handoff.mark_notified(session_store, template_id)
    return _redirect(MSG_SENT, notified=True)
