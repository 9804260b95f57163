"""Per-request logging and last-resort fault handling.

Written as a plain ASGI middleware: the endpoint must see the server's
own ``receive`` so that ``Request.is_disconnected()`` notices a client
that hangs up while its command is still running.
"""

from __future__ import annotations

import logging
import time

from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from hookshell.gateway.formatter import ERR_BODY

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware:
    """Logs one line per request and turns unexpected faults into a 500.

    The endpoint may leave the ExecutionOutcome in ``request.state.outcome``;
    in verbose mode its captured output is added to the log line.
    """

    def __init__(self, app: ASGIApp, verbose: bool = False) -> None:
        self.app = app
        self._verbose = verbose

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        started = time.monotonic()
        status_code = 500
        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code, response_started
            if message["type"] == "http.response.start":
                status_code = message["status"]
                response_started = True
            await send(message)

        fault: Exception | None = None
        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as e:
            fault = e
            logger.exception("Unhandled error serving %s %s", request.method, request.url.path)
            if not response_started:
                status_code = 500
                await PlainTextResponse(ERR_BODY, status_code=500)(scope, receive, send)

        self._log(request, status_code, time.monotonic() - started, fault)

        # Too late for a 500; let the server drop the connection.
        if fault is not None and response_started:
            raise fault

    def _log(
        self,
        request: Request,
        status_code: int,
        duration: float,
        fault: Exception | None,
    ) -> None:
        remote = f"{request.client.host}:{request.client.port}" if request.client else "-"
        outcome = getattr(request.state, "outcome", None)
        if self._verbose and outcome is not None:
            logger.info(
                "webreq method=%s path=%s ip=%s status=%d duration=%.3fs err=%s stdout=%r stderr=%r",
                request.method, request.url.path, remote, status_code, duration,
                fault, outcome.stdout, outcome.stderr,
            )
        else:
            logger.info(
                "webreq method=%s path=%s ip=%s status=%d duration=%.3fs err=%s",
                request.method, request.url.path, remote, status_code, duration, fault,
            )
