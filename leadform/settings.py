import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    API_KEY: str = os.getenv("API_KEY", "")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Session-scoped store lives as long as a browsing session; durable store has no TTL.
    SESSION_TTL_SEC: int = int(os.getenv("SESSION_TTL_SEC", "86400"))

    # Persisted keys (session + durable stores)
    SESSION_PAYLOAD_KEY: str = os.getenv("SESSION_PAYLOAD_KEY", "autoReplyPayload")
    DURABLE_PAYLOAD_KEY: str = os.getenv("DURABLE_PAYLOAD_KEY", "autoReplyPayload")
    LAST_TIER_KEY: str = os.getenv("LAST_TIER_KEY", "ssh_last_tier")
    LAST_SCORE_KEY: str = os.getenv("LAST_SCORE_KEY", "ssh_last_score")
    SEND_GUARD_PREFIX: str = os.getenv("SEND_GUARD_PREFIX", "emailjs_sent:")

    # Notifier (EmailJS REST)
    EMAILJS_API_URL: str = os.getenv("EMAILJS_API_URL", "https://api.emailjs.com/api/v1.0/email/send")
    EMAILJS_PUBLIC_KEY: str = os.getenv("EMAILJS_PUBLIC_KEY", "")
    EMAILJS_PRIVATE_KEY: str = os.getenv("EMAILJS_PRIVATE_KEY", "")
    EMAILJS_SERVICE_ID: str = os.getenv("EMAILJS_SERVICE_ID", "")
    EMAILJS_TEMPLATE_ID: str = os.getenv("EMAILJS_TEMPLATE_ID", "")
    NOTIFY_TIMEOUT_SEC: float = float(os.getenv("NOTIFY_TIMEOUT_SEC", "8"))

    # Confirmation / result pages
    RESULTS_URL: str = os.getenv("RESULTS_URL", "results.html")
    CONFIRM_URL: str = os.getenv("CONFIRM_URL", "confirm.html")
    REDIRECT_DELAY_MS: int = int(os.getenv("REDIRECT_DELAY_MS", "400"))
    PLAN_URL: str = os.getenv("PLAN_URL", "/form.html")
    BOOKING_URL: str = os.getenv("BOOKING_URL", "")

    # Per-session lock around the confirmation flow
    CONFIRM_LOCK_TTL_MS: int = int(os.getenv("CONFIRM_LOCK_TTL_MS", "15000"))

    ENABLE_PII_REDACTION: bool = os.getenv("ENABLE_PII_REDACTION", "true").lower() == "true"
    ENABLE_METRICS: bool = os.getenv("ENABLE_METRICS", "true").lower() == "true"

    ADMIN_RBAC_ENABLED: bool = os.getenv("ADMIN_RBAC_ENABLED", "true").lower() == "true"
    ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")

    def guard_key(self, template_id: str = "") -> str:
        return f"{self.SEND_GUARD_PREFIX}{template_id or self.EMAILJS_TEMPLATE_ID}"

settings = Settings()
