"""HTTP server for hookshell.

Wraps the Gateway pipeline in a FastAPI application served by uvicorn.
"""

from hookshell.server.app import create_app

__all__ = ["create_app"]
