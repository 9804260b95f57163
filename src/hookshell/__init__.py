"""hookshell -- HTTP-triggered shell command gateway.

Maps inbound HTTP request paths to pre-approved shell command templates,
optionally fills them with validated request values, runs them, and turns
the result into the HTTP response. Callers are filtered by network address
and each path is rate limited.
"""

__version__ = "0.1.0"
