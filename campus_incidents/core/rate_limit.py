"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address.

Usage in routes:
    from fastapi import Request
    from campus_incidents.core.rate_limit import limiter

    @router.post("/some-endpoint")
    @limiter.limit("20/minute")
    async def my_endpoint(request: Request, payload: MyRequest):
        ...

Wire into app (in main.py):
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

CREATE_INCIDENT_LIMIT = "20/minute"
DUPLICATE_CHECK_LIMIT = "60/minute"

# Key requests by client IP.
limiter = Limiter(key_func=get_remote_address)
