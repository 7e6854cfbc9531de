from slowapi import Limiter
from slowapi.util import get_remote_address

from galleria.config import settings

# IP-based; only the account endpoints are decorated
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
