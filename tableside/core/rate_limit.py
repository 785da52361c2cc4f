"""
Request rate limiting (slowapi).

Limits are counted per client address over 15-minute windows. The
limiter uses in-memory storage by default; point RATE_LIMIT_STORAGE_URI
at Redis when running more than one worker.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from tableside.core.config import get_settings

settings = get_settings()

GENERAL_LIMIT = settings.rate_limit_general
AUTH_LIMIT = settings.rate_limit_auth
AI_LIMIT = settings.rate_limit_ai
ADMIN_LIMIT = settings.rate_limit_admin

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)
