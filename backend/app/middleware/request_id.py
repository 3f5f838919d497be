"""
BranchRelay Backend — Request ID Middleware
=============================================

What:  Assigns a correlation ID to each request and echoes it in X-Request-ID.
Why:   The three concurrent uploads of one submission log from worker
       threads; the ID ties those lines back to one HTTP request.
How:   Reuses a client-provided X-Request-ID or generates a short UUID, stores
       it in a ContextVar (copied into asyncio.to_thread workers) and in
       request.state.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # 8 chars is enough for correlation and stays readable in logs
        rid = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid

        return response
