"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address.

Only the event endpoints (selection change, range change, refresh) are
limited: each of them fans out into one or more calls to the upstream
provider, and a client hammering the selector would otherwise translate
straight into provider traffic.

Usage in routes:
    from fastapi import Request
    from covid_tracker.core.rate_limit import limiter

    @router.put("/selection")
    @limiter.limit(settings.selection_rate_limit)
    async def change_selection(request: Request, payload: SelectionChange):
        ...
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
