"""Shared test fixtures for the hookshell test suite.

Provides a route table covering the common command shapes, settings
factories, a fake clock for the rate limiter and a check that processes
started by a command are really gone.
"""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Any, Callable

import pytest

from hookshell.config.settings import Settings
from hookshell.domain.models import IncomingRequest, RouteTable
from hookshell.routes.loader import parse_routes

# TestClient reports this as the peer host.
TEST_CLIENT_HOST = "testclient"

ROUTES_CSV = """/,echo hi
/testBasic,echo 'hi'
/testMultiline,"echo 'newline
text
file
here'"
/testReplace,"echo 'newline
$parm1
$parm2
here'"
/testError,somethingthatdoesntexist
/testFuzz,echo -n '$parm1'
/testPost,echo -n '$body'
/testCat,cat
/testFail,echo partial; echo broken >&2; exit 3
"""


# ---------------------------------------------------------------------------
# Routes / requests
# ---------------------------------------------------------------------------


@pytest.fixture
def route_table() -> RouteTable:
    """The standard test route table."""
    return parse_routes(ROUTES_CSV)


@pytest.fixture
def make_request() -> Callable[..., IncomingRequest]:
    """Factory for IncomingRequest with sensible defaults."""

    def _make(
        path: str = "/testBasic",
        method: str = "GET",
        remote_address: str = "127.0.0.1:123",
        query: dict[str, list[str]] | None = None,
        body: bytes | None = None,
    ) -> IncomingRequest:
        return IncomingRequest(
            method=method,
            path=path,
            remote_address=remote_address,
            query=query or {},
            body=body,
        )

    return _make


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Factory for Settings allowing the test client, with section overrides.

    Example::

        make_settings(response={"verbose": True}, params={"enabled": True})
    """

    def _make(**sections: Any) -> Settings:
        data: dict[str, Any] = {
            "access": {"enabled": True, "allowed_ips": [TEST_CLIENT_HOST, "127.0.0.1"]},
            "rate_limit": {"max_requests": 10},
            "params": {"enabled": True},
        }
        for name, values in sections.items():
            data.setdefault(name, {}).update(values)
        return Settings(**data)

    return _make


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Processes
# ---------------------------------------------------------------------------


def _pid_alive(pid: int) -> bool:
    """True while ``pid`` is running; reparented zombies count as dead."""
    if not os.path.isdir("/proc"):
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        return True
    try:
        with open(f"/proc/{pid}/stat") as f:
            stat = f.read()
    except FileNotFoundError:
        return False
    return stat.rsplit(")", 1)[1].split()[0] != "Z"


@pytest.fixture
def process_gone() -> Callable[..., bool]:
    """Check that the process whose pid a command wrote to a file has exited.

    Example::

        executor.execute(f"sleep 30 & echo $! > {pidfile}")
        assert process_gone(pidfile)
    """

    def _check(pidfile: Path, timeout: float = 2.0) -> bool:
        pid = int(pidfile.read_text().split()[0])
        deadline = time.monotonic() + timeout
        while _pid_alive(pid):
            if time.monotonic() > deadline:
                return False
            time.sleep(0.02)
        return True

    return _check
