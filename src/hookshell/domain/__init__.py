"""Domain models for hookshell.

All request-scoped data structures are Pydantic v2 models; the route
table is a read-only mapping.
"""

from hookshell.domain.models import (
    ExecutionOutcome,
    GatewayResponse,
    IncomingRequest,
    OutcomeKind,
    Route,
    RouteTable,
)

__all__ = [
    "ExecutionOutcome",
    "GatewayResponse",
    "IncomingRequest",
    "OutcomeKind",
    "Route",
    "RouteTable",
]
