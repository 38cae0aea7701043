from contextlib import contextmanager
import time
from leadform.store.redis_conn import get_redis

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

@contextmanager
def session_lock(session_id: str, ttl_ms: int = 5000, retries: int = 5):
    """
    Single-writer lock per session, used around the confirmation flow so two
    concurrent requests cannot both call the notifier.
    """
    r = get_redis()
    key = f"lock:confirm:{session_id}"
    token = str(time.time())
    acquired = r.set(key, token, px=ttl_ms, nx=True)

    try:
        if not acquired:
            for _ in range(retries):
                time.sleep(0.1)
                if r.set(key, token, px=ttl_ms, nx=True):
                    acquired = True
                    break

            if not acquired:
                raise RuntimeError(f"Could not acquire lock for session {session_id}")

        yield
    finally:
        if acquired:
            # Release only if we still own it
            try:
                r.eval(_RELEASE_SCRIPT, 1, key, token)
            except Exception:
                pass
