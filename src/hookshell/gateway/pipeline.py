"""The request-handling pipeline.

A request passes, in order, through the method check, the address
allowlist, route lookup, the per-path rate limiter, parameter
substitution and command execution; the first stage that refuses the
request decides the response.
"""

from __future__ import annotations

import logging

from hookshell.config.settings import Settings
from hookshell.domain.models import (
    ExecutionOutcome,
    GatewayResponse,
    IncomingRequest,
    RouteTable,
)
from hookshell.gateway.access import AccessGuard
from hookshell.gateway.executor import CommandExecutor, DisconnectProbe
from hookshell.gateway.formatter import ResponseFormatter
from hookshell.gateway.params import ParamSubstitutor, ParamValidationError
from hookshell.gateway.ratelimit import RateLimiter

logger = logging.getLogger(__name__)


class Gateway:
    """Turns an IncomingRequest into a GatewayResponse.

    Transport independent: the HTTP layer converts to and from these
    models. All collaborators are injected so each stage can be replaced
    in tests.
    """

    def __init__(
        self,
        routes: RouteTable,
        guard: AccessGuard,
        limiter: RateLimiter,
        substitutor: ParamSubstitutor,
        executor: CommandExecutor,
        formatter: ResponseFormatter,
        allow_post: bool = True,
        pipe_body: bool = False,
        body_param: str = "$body",
    ) -> None:
        self.routes = routes
        self.guard = guard
        self.limiter = limiter
        self.substitutor = substitutor
        self.executor = executor
        self.formatter = formatter
        self._methods = frozenset({"GET", "POST"} if allow_post else {"GET"})
        self._pipe_body = pipe_body
        self._body_param = body_param

    @property
    def methods(self) -> frozenset[str]:
        return self._methods

    async def handle(
        self,
        request: IncomingRequest,
        is_disconnected: DisconnectProbe | None = None,
    ) -> GatewayResponse:
        if request.method not in self._methods:
            return self.formatter.method_not_allowed()

        if not self.guard.check(request.remote_address):
            return self.formatter.denied()

        template = self.routes.get(request.path)
        if template is None:
            return self.formatter.not_found()

        if not self.limiter.allow(request.path):
            return self.formatter.rate_limited()

        try:
            command = self.substitutor.substitute(
                template, self._candidate_params(request), path=request.path
            )
        except ParamValidationError as e:
            return self.formatter.from_outcome(ExecutionOutcome.validation_failure(str(e)))

        stdin = request.body if self._pipe_body and request.body is not None else None
        outcome = await self.executor.execute(
            command, stdin=stdin, is_disconnected=is_disconnected, path=request.path
        )
        return self.formatter.from_outcome(outcome)

    def _candidate_params(self, request: IncomingRequest) -> dict[str, list[str]]:
        params = {name: list(values) for name, values in request.query.items()}
        if request.body is not None:
            body = request.body.decode("utf-8", errors="replace")
            params.setdefault(self._body_param, []).append(body)
        return params


def build_gateway(settings: Settings, routes: RouteTable) -> Gateway:
    """Assemble a Gateway from resolved settings and routes."""
    return Gateway(
        routes=routes,
        guard=AccessGuard(settings.access.allowed_ips, enabled=settings.access.enabled),
        limiter=RateLimiter(
            settings.rate_limit.max_requests,
            shared_window=settings.rate_limit.shared_window,
        ),
        substitutor=ParamSubstitutor(
            settings.params.allow_regex,
            enabled=settings.params.enabled,
            stop_on_error=settings.params.stop_on_error,
        ),
        executor=CommandExecutor(
            shell=settings.execution.shell,
            timeout=settings.execution.timeout,
            combine_output=settings.execution.combine_output,
            max_concurrency=settings.execution.max_concurrency,
        ),
        formatter=ResponseFormatter(verbose=settings.response.verbose),
        allow_post=settings.server.allow_post,
        pipe_body=settings.execution.pipe_body,
        body_param=settings.params.body_param,
    )
