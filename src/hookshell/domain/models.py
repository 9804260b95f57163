"""Core domain models for the hookshell gateway.

These models represent the data flowing through a single request: the
route table consulted for the command template, the transport-neutral
request handed to the pipeline, the outcome of running the command, and
the response produced from it.
"""

from __future__ import annotations

import enum
from collections.abc import Iterator, Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class OutcomeKind(str, enum.Enum):
    """How a command execution attempt ended."""

    SUCCESS = "success"
    COMMAND_FAILED = "command_failed"  # Non-zero exit status
    SPAWN_FAILED = "spawn_failed"  # Shell could not be started
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"  # Client went away mid-execution
    VALIDATION_FAILED = "validation_failed"  # Parameter rejected before spawn


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


class Route(BaseModel):
    """A single URL path bound to a shell command template."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Exact URL path, e.g. '/deploy'")
    template: str = Field(description="Shell script, may contain $name placeholders")


class RouteTable(Mapping[str, str]):
    """Read-only mapping of URL path to command template.

    Built once at startup and never mutated afterwards, so concurrent
    request handlers can read it without locking.
    """

    def __init__(self, routes: Mapping[str, str] | None = None) -> None:
        self._routes: Mapping[str, str] = MappingProxyType(dict(routes or {}))

    @classmethod
    def from_routes(cls, routes: list[Route]) -> RouteTable:
        return cls({route.path: route.template for route in routes})

    def __getitem__(self, path: str) -> str:
        return self._routes[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def __repr__(self) -> str:
        return f"RouteTable({sorted(self._routes)!r})"

    def routes(self) -> list[Route]:
        return [Route(path=p, template=t) for p, t in self._routes.items()]


# ---------------------------------------------------------------------------
# Request / outcome / response
# ---------------------------------------------------------------------------


class IncomingRequest(BaseModel):
    """Transport-neutral view of an inbound HTTP request."""

    model_config = ConfigDict(frozen=True)

    method: str = Field(description="Upper-case HTTP method")
    path: str = Field(description="URL path without query string")
    remote_address: str = Field(description="Peer address, with or without port")
    query: dict[str, list[str]] = Field(
        default_factory=dict, description="Query parameters, name -> ordered values"
    )
    body: bytes | None = Field(
        default=None, description="Raw request body, only for methods that carry one"
    )


class ExecutionOutcome(BaseModel):
    """Result of attempting to run a route's command."""

    model_config = ConfigDict(frozen=True)

    kind: OutcomeKind
    exit_code: int | None = Field(default=None, description="Process exit status, if it exited")
    stdout: str = Field(default="", description="Captured standard output (or combined output)")
    stderr: str = Field(default="", description="Captured standard error")
    combined: bool = Field(default=False, description="stderr was merged into stdout")
    message: str = Field(default="", description="Human-readable reason for a failure")
    duration: float = Field(default=0.0, ge=0, description="Wall-clock seconds spent")

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @classmethod
    def validation_failure(cls, message: str) -> ExecutionOutcome:
        return cls(kind=OutcomeKind.VALIDATION_FAILED, message=message)


class GatewayResponse(BaseModel):
    """Status and body the gateway wants sent back to the caller."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    body: str = ""
    outcome: ExecutionOutcome | None = None
