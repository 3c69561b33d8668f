"""Correlation ID middleware for tracing one request through the logs."""

import uuid
from typing import Callable

import logfire
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Attach a correlation ID to every request and response.

    An incoming ``X-Correlation-ID`` header is reused so a browser session can
    tie a scrape-stream to the upload that follows it; otherwise a new UUID is
    generated. The ID is stored on ``request.state`` and carried by a logfire
    span around the request.
    """

    def __init__(self, app: ASGIApp, header_name: str = "X-Correlation-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(self.header_name.lower()) or str(
            uuid.uuid4()
        )
        request.state.correlation_id = correlation_id

        with logfire.span(
            "{method} {path}",
            method=request.method,
            path=request.url.path,
            correlation_id=correlation_id,
        ):
            response = await call_next(request)

        response.headers[self.header_name] = correlation_id
        return response
