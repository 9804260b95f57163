"""Request-handling pipeline for hookshell.

Public API:
    Gateway -- Runs a request through every stage
    build_gateway -- Assembles a Gateway from Settings
    AccessGuard, RateLimiter, ParamSubstitutor, CommandExecutor,
    ResponseFormatter -- The individual stages
"""

from hookshell.gateway.access import AccessGuard
from hookshell.gateway.executor import CommandExecutor
from hookshell.gateway.formatter import ResponseFormatter
from hookshell.gateway.params import ParamSubstitutor, ParamValidationError
from hookshell.gateway.pipeline import Gateway, build_gateway
from hookshell.gateway.ratelimit import RateLimiter

__all__ = [
    "AccessGuard",
    "CommandExecutor",
    "Gateway",
    "ParamSubstitutor",
    "ParamValidationError",
    "RateLimiter",
    "ResponseFormatter",
    "build_gateway",
]
