"""Tests for outcome to response mapping."""

from __future__ import annotations

from hookshell.domain.models import ExecutionOutcome, OutcomeKind
from hookshell.gateway.formatter import ResponseFormatter

SUCCESS = ExecutionOutcome(kind=OutcomeKind.SUCCESS, exit_code=0, stdout="hi\n")
FAILURE = ExecutionOutcome(
    kind=OutcomeKind.COMMAND_FAILED,
    exit_code=127,
    stdout="",
    stderr="bash: line 1: nope: command not found\n",
    message="exit status 127",
)


class TestQuiet:
    def test_success_is_ok(self) -> None:
        resp = ResponseFormatter().from_outcome(SUCCESS)
        assert resp.status_code == 200
        assert resp.body == "OK"
        assert resp.outcome is SUCCESS

    def test_failure_is_err(self) -> None:
        resp = ResponseFormatter().from_outcome(FAILURE)
        assert resp.status_code == 500
        assert resp.body == "ERR"

    def test_validation_failure_is_500(self) -> None:
        resp = ResponseFormatter().from_outcome(ExecutionOutcome.validation_failure("bad"))
        assert resp.status_code == 500
        assert resp.body == "ERR"


class TestVerbose:
    def test_success_returns_stdout(self) -> None:
        resp = ResponseFormatter(verbose=True).from_outcome(SUCCESS)
        assert resp.body == "hi\n"

    def test_failure_returns_stderr(self) -> None:
        resp = ResponseFormatter(verbose=True).from_outcome(FAILURE)
        assert resp.status_code == 500
        assert "command not found" in resp.body

    def test_failure_combined_returns_stdout(self) -> None:
        outcome = ExecutionOutcome(
            kind=OutcomeKind.COMMAND_FAILED, exit_code=1, stdout="out\nerr\n", combined=True
        )
        resp = ResponseFormatter(verbose=True).from_outcome(outcome)
        assert resp.body == "out\nerr\n"

    def test_failure_without_output_returns_message(self) -> None:
        outcome = ExecutionOutcome(kind=OutcomeKind.TIMEOUT, message="command timed out after 1.0s")
        resp = ResponseFormatter(verbose=True).from_outcome(outcome)
        assert resp.body == "command timed out after 1.0s"

    def test_validation_failure_returns_message(self) -> None:
        outcome = ExecutionOutcome.validation_failure("parameter 'x' must be $ followed by a name")
        resp = ResponseFormatter(verbose=True).from_outcome(outcome)
        assert resp.status_code == 500
        assert resp.body == "parameter 'x' must be $ followed by a name"


class TestFixedResponses:
    def test_fixed(self) -> None:
        assert ResponseFormatter.denied().status_code == 403
        assert ResponseFormatter.denied().body == "NOACCESS"
        assert ResponseFormatter.rate_limited().status_code == 429
        assert ResponseFormatter.rate_limited().body == ""
        assert ResponseFormatter.not_found().status_code == 404
        assert ResponseFormatter.method_not_allowed().status_code == 405
        assert ResponseFormatter.method_not_allowed().body == "Method Not Allowed"
