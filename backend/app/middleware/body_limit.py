"""
BranchRelay Backend — Request Body Size Middleware
====================================================

What:  Rejects requests whose body exceeds the configured ceiling.
Why:   Three base64 images are decoded in memory; the ceiling bounds that
       memory per request (default 10MB).
How:   A declared Content-Length over settings.max_body_size is answered with
       413 before the body is read. Bodies without one (chunked transfer) are
       counted as they are received, and the read fails with 413 as soon as
       the running total passes the ceiling.
When:  First in the middleware chain.

Pure ASGI rather than BaseHTTPMiddleware: only the `receive` callable sees
each chunk of the body as it arrives.
"""

import logging

from fastapi import HTTPException
from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.config import settings

logger = logging.getLogger(__name__)

TOO_LARGE = "Request body too large"


def _limit_detail(size: int, limit: int) -> str:
    return f"Body of {size} bytes exceeds the limit of {limit} bytes"


class BodySizeLimitMiddleware:
    """
    Body size guard for declared and streamed request bodies.

    Response on oversized body:
        HTTP 413 {"success": false, "error": "Request body too large", "details": ...}

    Streamed bodies raise HTTPException(413) from inside the read, so the
    envelope comes from the application's HTTPException handler.
    """

    def __init__(self, app: ASGIApp, max_body_size: int = 0):
        self.app = app
        self.max_body_size = max_body_size or settings.max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit():
            size = int(content_length)
            if size > self.max_body_size:
                self._log_rejection(scope, size)
                response = JSONResponse(
                    status_code=413,
                    content={
                        "success": False,
                        "error": TOO_LARGE,
                        "details": _limit_detail(size, self.max_body_size),
                    },
                )
                await response(scope, receive, send)
                return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_size:
                    self._log_rejection(scope, received)
                    raise HTTPException(
                        status_code=413,
                        detail=_limit_detail(received, self.max_body_size),
                    )
            return message

        await self.app(scope, limited_receive, send)

    def _log_rejection(self, scope: Scope, size: int) -> None:
        logger.warning(
            "Rejected %s %s: body of %d bytes exceeds %d",
            scope.get("method"),
            scope.get("path"),
            size,
            self.max_body_size,
        )
