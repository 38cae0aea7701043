"""
Submission & Notifier Metrics
-----------------------------
Lightweight redis counters for lead submissions (per tier) and notifier
deliveries, plus one snapshot function consumed by /admin/metrics.
Missing keys (first boot) read as zero.
"""
from __future__ import annotations
import time
from typing import List
from statistics import median
from leadform.store.redis_conn import get_redis
from leadform.settings import settings

K_SUBMIT_TOTAL = "metrics:submit:total"             # INCR
K_SUBMIT_TIER = "metrics:submit:tier:{tier}"        # INCR per tier

K_NOTIFY_ATT = "metrics:notify:attempts"            # INCR
K_NOTIFY_OK = "metrics:notify:delivered"            # INCR
K_NOTIFY_FAIL = "metrics:notify:failed"             # INCR
K_NOTIFY_LAT = "metrics:notify:latencies"           # LPUSH ms

TIERS = ("Hot", "Warm", "Nurture")

_MAX_SAMPLES = 500

def _percentile(data: List[float], p: float) -> float:
    """Nearest-rank percentile on sorted data."""
    if not data:
        return 0.0
    d = sorted(data)
    k = max(1, int(round(p * len(d))))
    return float(d[k - 1])

def increment_submission(tier: str) -> None:
    if not settings.ENABLE_METRICS:
        return
    r = get_redis()
    r.incr(K_SUBMIT_TOTAL, 1)
    if tier in TIERS:
        r.incr(K_SUBMIT_TIER.format(tier=tier), 1)

def increment_notify_attempt() -> None:
    if not settings.ENABLE_METRICS:
        return
    get_redis().incr(K_NOTIFY_ATT, 1)

def increment_notify_delivered() -> None:
    if not settings.ENABLE_METRICS:
        return
    get_redis().incr(K_NOTIFY_OK, 1)

def increment_notify_failed() -> None:
    if not settings.ENABLE_METRICS:
        return
    get_redis().incr(K_NOTIFY_FAIL, 1)

def record_notify_latency(ms: int) -> None:
    if not settings.ENABLE_METRICS:
        return
    try:
        ms = int(ms)
    except (TypeError, ValueError):
        return
    r = get_redis()
    r.lpush(K_NOTIFY_LAT, ms)
    r.ltrim(K_NOTIFY_LAT, 0, _MAX_SAMPLES - 1)

def _read_latencies() -> List[float]:
    raw = get_redis().lrange(K_NOTIFY_LAT, 0, _MAX_SAMPLES - 1) or []
    out: List[float] = []
    for x in raw:
        try:
            out.append(float(x))
        except (TypeError, ValueError):
            continue
    return out

def get_metrics_snapshot() -> dict:
    r = get_redis()
    attempts = int(r.get(K_NOTIFY_ATT) or 0)
    delivered = int(r.get(K_NOTIFY_OK) or 0)
    latencies = _read_latencies()
    return {
        "submissions": int(r.get(K_SUBMIT_TOTAL) or 0),
        "submissionsByTier": {t: int(r.get(K_SUBMIT_TIER.format(tier=t)) or 0) for t in TIERS},
        "notifyAttempts": attempts,
        "notifyDelivered": delivered,
        "notifyFailed": int(r.get(K_NOTIFY_FAIL) or 0),
        "notifySuccessRate": round((delivered / attempts) * 100.0, 3) if attempts else 0.0,
        "notifyLatencyP50Ms": float(median(latencies)) if latencies else 0.0,
        "notifyLatencyP95Ms": _percentile(latencies, 0.95),
        "snapshotAt": int(time.time()),
    }
