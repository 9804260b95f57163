"""Mapping of pipeline results to HTTP status codes and bodies."""

from __future__ import annotations

from hookshell.domain.models import ExecutionOutcome, GatewayResponse, OutcomeKind

OK_BODY = "OK"
ERR_BODY = "ERR"
NOACCESS_BODY = "NOACCESS"
NOT_FOUND_BODY = "Not Found"
METHOD_NOT_ALLOWED_BODY = "Method Not Allowed"


class ResponseFormatter:
    """Builds gateway responses.

    In quiet mode bodies are the terse ``OK``/``ERR`` tokens; in verbose
    mode they carry the command output or the reason for failing.
    """

    def __init__(self, verbose: bool = False) -> None:
        self._verbose = verbose

    @property
    def verbose(self) -> bool:
        return self._verbose

    def from_outcome(self, outcome: ExecutionOutcome) -> GatewayResponse:
        if outcome.ok:
            body = outcome.stdout if self._verbose else OK_BODY
            return GatewayResponse(status_code=200, body=body, outcome=outcome)
        body = self._failure_body(outcome) if self._verbose else ERR_BODY
        return GatewayResponse(status_code=500, body=body, outcome=outcome)

    def _failure_body(self, outcome: ExecutionOutcome) -> str:
        if outcome.kind is OutcomeKind.VALIDATION_FAILED:
            return outcome.message
        output = outcome.stdout if outcome.combined else outcome.stderr
        return output or outcome.message

    @staticmethod
    def denied() -> GatewayResponse:
        return GatewayResponse(status_code=403, body=NOACCESS_BODY)

    @staticmethod
    def rate_limited() -> GatewayResponse:
        return GatewayResponse(status_code=429, body="")

    @staticmethod
    def not_found() -> GatewayResponse:
        return GatewayResponse(status_code=404, body=NOT_FOUND_BODY)

    @staticmethod
    def method_not_allowed() -> GatewayResponse:
        return GatewayResponse(status_code=405, body=METHOD_NOT_ALLOWED_BODY)
