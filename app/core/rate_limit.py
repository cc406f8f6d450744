"""Inbound request rate limiting configuration."""
import os
from slowapi import Limiter
from slowapi.util import get_remote_address


def get_client_ip(request):
    """Get client IP for rate limiting, considering proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For can contain multiple IPs, take the first one
        return forwarded.split(",")[0].strip()

    return get_remote_address(request)


# Uses Redis if REDIS_URL is set, falls back to memory for local dev
limiter = Limiter(
    key_func=get_client_ip,
    default_limits=["100/minute"],
    storage_uri=os.getenv("REDIS_URL", "memory://"),
    strategy="fixed-window"
)

# Limits per endpoint category. Mini-app traffic arrives through a handful of
# client proxies, so per-IP limits are generous.
RATE_LIMITS = {
    "vote": "120/minute",
    "create": "30/minute",
    "quiz_play": "300/minute",
    "claim": "60/minute",
    "webhook": "600/minute",
    "read": "300/minute",
}
