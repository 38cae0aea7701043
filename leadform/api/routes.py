import time
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Header, Query
from starlette.concurrency import run_in_threadpool

from leadform.api.auth import require_api_key
from leadform.api.normalize import normalize_answers
from leadform.api.schemas import ConfirmResponse, ResultsResponse, SubmitResponse
from leadform.form import handoff, scoring
from leadform.notify import emailjs_client
from leadform.notify.confirmation import run_confirmation
from leadform.observability.logging import log
from leadform.results.tier import resolve_tier, tier_copy
from leadform.results.view import build_result_view
from leadform.settings import settings
from leadform.store.kv import durable_store, session_store
from leadform.utils.lock import session_lock
import leadform.observability.metrics as metrics

router = APIRouter(prefix="/api", dependencies=[Depends(require_api_key)])


def _session_id(x_session_id: str = Header(default="", alias="x-session-id")) -> str:
    return x_session_id.strip()


def _device_id(x_device_id: str = Header(default="", alias="x-device-id")) -> str:
    return x_device_id.strip()


def _record(fn, *args, **kwargs):
    # Metrics are best-effort; a redis hiccup must not affect the user flow
    try:
        fn(*args, **kwargs)
    except Exception as e:
        log(event="metrics_write_failed", metric=getattr(fn, "__name__", "?"), error=str(e))


def _measured_notifier(params, template_id: str = ""):
    start = time.time()
    _record(metrics.increment_notify_attempt)
    try:
        emailjs_client.send_email(params, template_id=template_id)
    except emailjs_client.NotifierError:
        _record(metrics.increment_notify_failed)
        raise
    _record(metrics.increment_notify_delivered)
    _record(metrics.record_notify_latency, int((time.time() - start) * 1000))


@router.post("/submit", response_model=SubmitResponse)
def submit(payload: Any = Body(None), sid: str = Depends(_session_id), did: str = Depends(_device_id)):
    """Final submission: score the answers and publish the handoff payload."""
    sid = sid or uuid.uuid4().hex
    did = did or sid
    answers = normalize_answers(payload)

    result = scoring.evaluate(answers)
    hp = handoff.build_payload(answers, result)
    results_url = handoff.publish(hp, session_store(sid), durable_store(did))
    _record(metrics.increment_submission, result.tier)
    log(event="submit_scored", sessionId=sid, score=result.score, tier=result.tier)

    return SubmitResponse(
        sessionId=sid,
        lead_score=result.score,
        lead_tier=result.tier,
        auto_notes=result.notes,
        breakdown=scoring.breakdown(answers),
        confirmUrl=settings.CONFIRM_URL,
        resultsUrl=results_url,
    )


@router.post("/confirm", response_model=ConfirmResponse)
async def confirm(sid: str = Depends(_session_id), did: str = Depends(_device_id)):
    """Send the confirmation email once per session, then point at the results page."""
    def _run():
        sstore, dstore = session_store(sid or "anonymous"), durable_store(did or sid or "anonymous")
        if not sid:
            return run_confirmation(sstore, dstore, notifier=_measured_notifier)
        with session_lock(sid, ttl_ms=settings.CONFIRM_LOCK_TTL_MS):
            return run_confirmation(sstore, dstore, notifier=_measured_notifier)

    out = await run_in_threadpool(_run)
    return ConfirmResponse(
        status=out.status,
        notified=out.notified,
        redirectUrl=out.redirect_url,
        continueUrl=out.continue_url,
        showContinue=out.show_continue,
        delayMs=out.delay_ms,
    )


@router.get("/results", response_model=ResultsResponse)
def results(
    p: Optional[str] = Query(default=None),
    fragment: Optional[str] = Query(default=None),
    tier: Optional[str] = Query(default=None),
    sid: str = Depends(_session_id),
    did: str = Depends(_device_id),
):
    """
    Result view. Browsers never send the URL fragment, so the page forwards
    either the raw fragment or just the `p` value.
    """
    frag = fragment or (f"p={p}" if p else "")
    sstore = session_store(sid) if sid else None
    dstore = durable_store(did or sid) if (did or sid) else None

    data = handoff.read_payload(frag, sstore, dstore)
    resolved = resolve_tier(tier, data, dstore)
    view = build_result_view(data)
    return ResultsResponse(
        firstName=view.first_name,
        cameraCount=view.camera_count,
        nvrChannel=view.nvr_channel,
        locations=view.locations,
        tier=resolved,
        tierCopy=tier_copy(resolved),
    )
