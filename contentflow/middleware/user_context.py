"""Middleware that binds the calling user to content requests.

The upstream auth gateway sets ``X-User-Id`` (and optionally ``X-User-Plan``)
after verifying the caller. Requests under /api/v1/content and /api/v1/models
without a user id are rejected before reaching a route handler.

Does NOT authenticate: the gateway owns that responsibility.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"
USER_PLAN_HEADER = "X-User-Plan"

# Paths that require X-User-Id
_PROTECTED_PREFIXES = ("/api/v1/content", "/api/v1/models")


class UserContextMiddleware(BaseHTTPMiddleware):
    """Copy the caller identity headers onto ``request.state``.

    Sets ``request.state.user_id`` and ``request.state.user_plan``. Returns
    401 for protected paths with no user id.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
        plan = (request.headers.get(USER_PLAN_HEADER) or "").strip() or None

        if not user_id and path.startswith(_PROTECTED_PREFIXES):
            # CORS preflight carries no identity headers
            if request.method != "OPTIONS":
                logger.warning("MISSING_USER_ID: Rejected %s %s", request.method, path)
                return JSONResponse(
                    status_code=401,
                    content={
                        "success": False,
                        "error": "Authentication required",
                        "code": "MISSING_USER_ID",
                    },
                )

        request.state.user_id = user_id or None
        request.state.user_plan = plan
        return await call_next(request)
