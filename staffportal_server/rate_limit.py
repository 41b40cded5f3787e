# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""In-memory rate limiting for admin login and the public OTP endpoints.

Counts are per client address and endpoint, in a sliding window. State lives in the
process, so each worker limits independently.
"""

import logging
import math
import time
from collections import deque
from dataclasses import dataclass

from fastapi import HTTPException, Request, status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Limit:
    max_requests: int
    window_seconds: float


LIMITS: dict[str, Limit] = {
    "/api/v1/auth/login": Limit(10, 60),
    "/api/v1/invitations/verify-otp": Limit(10, 60),
    # Each request sends an email
    "/api/v1/invitations/request-otp": Limit(3, 300),
}

# (client, path) -> request times inside the window, oldest first
_hits: dict[tuple[str, str], deque[float]] = {}
# Idle keys are swept once this many are tracked
SWEEP_THRESHOLD = 1024


def client_address(request: Request) -> str:
    """First X-Forwarded-For hop when behind a proxy, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def check_rate_limit(client: str, path: str, now: float | None = None) -> None:
    """Record a request; raise 429 with Retry-After once the client is over the limit."""
    limit = LIMITS.get(path)
    if limit is None:
        return
    now = time.monotonic() if now is None else now
    if len(_hits) >= SWEEP_THRESHOLD:
        _sweep(now)
    hits = _hits.setdefault((client, path), deque())
    while hits and hits[0] <= now - limit.window_seconds:
        hits.popleft()
    if len(hits) >= limit.max_requests:
        retry_after = max(1, math.ceil(hits[0] + limit.window_seconds - now))
        logger.warning("Rate limit hit for %s on %s", client, path)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again later.",
            headers={"Retry-After": str(retry_after)},
        )
    hits.append(now)


def _sweep(now: float) -> None:
    """Forget keys whose newest request has left its window."""
    for key, hits in list(_hits.items()):
        if not hits or hits[-1] <= now - LIMITS[key[1]].window_seconds:
            del _hits[key]


def reset_rate_limits() -> None:
    _hits.clear()


async def rate_limit_dep(request: Request) -> None:
    """Route dependency for the endpoints listed in LIMITS."""
    check_rate_limit(client_address(request), request.url.path.rstrip("/"))
