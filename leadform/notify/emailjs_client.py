"""
Notifier client (EmailJS REST API).

Black box from the engine's point of view: template parameters in,
success or NotifierError out.
"""
import time
from typing import Any, Dict, Optional

import httpx

from leadform.observability.logging import log
from leadform.settings import settings


class NotifierError(RuntimeError):
    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


def build_request_body(template_params: Dict[str, Any], template_id: str = "") -> Dict[str, Any]:
    body = {
        "service_id": settings.EMAILJS_SERVICE_ID,
        "template_id": template_id or settings.EMAILJS_TEMPLATE_ID,
        "user_id": settings.EMAILJS_PUBLIC_KEY,
        "template_params": template_params,
    }
    if settings.EMAILJS_PRIVATE_KEY:
        body["accessToken"] = settings.EMAILJS_PRIVATE_KEY
    return body


def send_email(template_params: Dict[str, Any], template_id: str = "", timeout: Optional[float] = None) -> int:
    """POST one email; returns the HTTP status on 2xx, raises NotifierError otherwise."""
    if not (settings.EMAILJS_SERVICE_ID and settings.EMAILJS_PUBLIC_KEY and (template_id or settings.EMAILJS_TEMPLATE_ID)):
        raise NotifierError("EmailJS is not configured")

    body = build_request_body(template_params, template_id)
    start = time.time()
    try:
        with httpx.Client(timeout=timeout or settings.NOTIFY_TIMEOUT_SEC) as client:
            resp = client.post(settings.EMAILJS_API_URL, json=body)
    except httpx.HTTPError as e:
        log(
            event="notify_send_exception",
            templateId=body["template_id"],
            elapsedMs=int((time.time() - start) * 1000),
            errorType=type(e).__name__,
            error=str(e)[:300],
        )
        raise NotifierError(f"{type(e).__name__}: {e}") from e

    elapsed_ms = int((time.time() - start) * 1000)
    if 200 <= resp.status_code < 300:
        log(event="notify_send_success", templateId=body["template_id"], statusCode=int(resp.status_code), elapsedMs=elapsed_ms)
        return int(resp.status_code)

    log(
        event="notify_send_failed",
        templateId=body["template_id"],
        statusCode=int(resp.status_code),
        elapsedMs=elapsed_ms,
        responseText=(resp.text or "")[:300],
    )
    raise NotifierError(f"EmailJS send failed: {resp.status_code}", status_code=int(resp.status_code))
