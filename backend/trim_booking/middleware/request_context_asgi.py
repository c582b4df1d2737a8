"""
Pure ASGI request context middleware.

Assigns a request id (or honours an incoming X-Request-ID), echoes it on
the response, times the request and records Prometheus HTTP metrics.
"""

import logging
import time
import uuid

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.request_context import reset_request_id, set_request_id
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_MS = 500


class RequestContextMiddlewareASGI:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        method = scope.get("method", "")
        request_id = Headers(scope=scope).get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = set_request_id(request_id)
        start_time = time.time()
        status_code = 500

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = MutableHeaders(scope=message)
                headers[REQUEST_ID_HEADER] = request_id
                headers["X-Process-Time"] = f"{(time.time() - start_time) * 1000:.2f}ms"
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration = time.time() - start_time
            route = scope.get("route")
            endpoint = getattr(route, "path", None) or path
            if path != "/metrics":
                prometheus_metrics.record_http_request(method, endpoint, duration, status_code)
            if duration * 1000 > SLOW_REQUEST_MS:
                logger.warning(f"Slow request: {method} {path} took {duration * 1000:.2f}ms")
            reset_request_id(token)
