"""CORS, rate limiting, security headers and audit trail middleware."""

import time
from collections import defaultdict
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from user_api.core.config import Settings
from user_api.core.logging import operational_logger
from user_api.services.audit_service import AuditRecorder, RequestMeta, snapshot_body

_DEFAULT_TRUSTED_HEADERS = ["CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP"]
_MAX_ENDPOINT_LENGTH = 2048
_MAX_USER_AGENT_LENGTH = 512


def get_client_ip(request: Request, trusted_headers: list[str] | None = None) -> str:
    """Extract the real client IP from proxy headers or direct connection.

    Checks headers in priority order. For X-Forwarded-For, uses the
    leftmost (client-supplied) IP. Falls back to request.client.host.

    Args:
        request: The incoming Starlette request.
        trusted_headers: Ordered list of header names to check.
            Defaults to ["CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP"].

    Returns:
        The client IP address string, or "unknown" if not determinable.
    """
    headers = trusted_headers if trusted_headers is not None else _DEFAULT_TRUSTED_HEADERS

    for header in headers:
        value = request.headers.get(header, "").strip()
        if not value:
            continue
        # X-Forwarded-For can contain multiple IPs: "client, proxy1, proxy2"
        if header.lower() == "x-forwarded-for":
            return value.split(",")[0].strip()
        return value

    if request.client:
        return request.client.host
    return "unknown"


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Configure CORS middleware on the FastAPI app.

    Args:
        app: The FastAPI application.
        settings: Application settings.
    """
    kwargs: dict[str, Any] = {
        "allow_credentials": True,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
    }
    if settings.cors_origin_list:
        kwargs["allow_origins"] = settings.cors_origin_list
    if settings.cors_origin_regex.strip():
        kwargs["allow_origin_regex"] = settings.cors_origin_regex.strip()
    app.add_middleware(CORSMiddleware, **kwargs)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Simple in-memory rate limiting middleware.

    Limits requests per IP address with a sliding window approach.
    Uses proxy headers to identify real client IPs behind reverse proxies.
    """

    def __init__(
        self,
        app: ASGIApp,
        requests_per_minute: int = 60,
        trusted_proxy_headers: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.trusted_proxy_headers = trusted_proxy_headers
        self._request_counts: dict[str, list[float]] = defaultdict(list)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Check rate limit and process request.

        Args:
            request: The incoming request.
            call_next: The next middleware/handler.

        Returns:
            Response, or 429 if rate limited.
        """
        client_ip = get_client_ip(request, self.trusted_proxy_headers)
        now = time.time()
        window_start = now - 60.0

        self._prune(window_start)
        timestamps = self._request_counts[client_ip]

        if len(timestamps) >= self.requests_per_minute:
            return Response(
                content='{"status":"error","message":"Rate limit exceeded"}',
                status_code=429,
                media_type="application/json",
            )

        timestamps.append(now)
        return await call_next(request)

    def _prune(self, window_start: float) -> None:
        """Drop timestamps outside the window and forget clients with none left."""
        for ip in list(self._request_counts):
            recent = [t for t in self._request_counts[ip] if t > window_start]
            if recent:
                self._request_counts[ip] = recent
            else:
                del self._request_counts[ip]


class AuditMiddleware:
    """Record one audit entry per HTTP request without delaying the response.

    Wraps the downstream app: for non-GET requests the raw body is read in
    full before the app runs and replayed to it, the status is taken from
    ``http.response.start``, and once the wrapped call returns the write is
    handed to the recorder, which schedules it as a detached background task.
    A downstream exception is recorded as a 500 and re-raised.
    """

    def __init__(self, app: ASGIApp, trusted_proxy_headers: list[str] | None = None) -> None:
        self.app = app
        self.trusted_proxy_headers = trusted_proxy_headers

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        recorder: AuditRecorder = request.app.state.container.audit_recorder
        if not recorder.should_record(request.url.path):
            await self.app(scope, receive, send)
            return

        capture_body = request.method != "GET"
        buffered: list[Message] = []
        status_code = 500

        if capture_body:
            # Read the whole body up front so it is recorded even when no handler reads it.
            while True:
                message = await receive()
                buffered.append(message)
                if message["type"] != "http.request" or not message.get("more_body", False):
                    break
        body = b"".join(m.get("body", b"") for m in buffered if m["type"] == "http.request")
        pending = list(buffered)

        async def replay_receive() -> Message:
            if pending:
                return pending.pop(0)
            return await receive()

        async def send_and_observe(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, replay_receive, send_and_observe)
        finally:
            self._capture(request, recorder, body, status_code)

    def _capture(self, request: Request, recorder: AuditRecorder, body: bytes, status_code: int) -> None:
        try:
            identity = request.scope.get("state", {}).get("identity")
            client_ip = get_client_ip(request, self.trusted_proxy_headers)
            user_agent = request.headers.get("user-agent")
            endpoint = request.url.path
            if request.url.query:
                endpoint = f"{endpoint}?{request.url.query}"
            meta = RequestMeta(
                endpoint=endpoint[:_MAX_ENDPOINT_LENGTH],
                method=request.method,
                user_id=identity.user_id if identity is not None else None,
                request_body=snapshot_body(body, request.headers.get("content-type"), recorder.redacted_fields),
                ip_address=None if client_ip == "unknown" else client_ip,
                user_agent=user_agent[:_MAX_USER_AGENT_LENGTH] if user_agent else None,
            )
            recorder.capture(meta, status_code)
        except Exception:
            operational_logger.exception(f"Error in audit middleware for {request.method} {request.url.path}")
