"""Command-line interface for the hookshell gateway.

Provides the main entry point for serving the gateway and for checking
which routes a configuration resolves to.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from hookshell.domain.models import RouteTable

logger = logging.getLogger(__name__)

USAGE_EXIT_CODE = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="hookshell",
        description="Run pre-approved shell commands on HTTP requests",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/hookshell.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP gateway")
    _add_route_arguments(serve_parser)
    serve_parser.add_argument("--ip", dest="host", help="Address to listen on (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, help="Port to listen on (default: 4870)")
    serve_parser.add_argument(
        "--allowed-ips",
        help='Comma-separated caller addresses, e.g. "1.1.1.1,3.3.3.3"; "" disables filtering',
    )
    serve_parser.add_argument("--log", help='Log file to append to, or "stdout"')
    serve_parser.add_argument(
        "--return-result", action="store_true", default=None,
        help="Return command output in the response instead of OK/ERR",
    )
    serve_parser.add_argument(
        "--max-rate-limit", type=int,
        help="Requests allowed per path per minute, 0 = unlimited (default: 10)",
    )
    serve_parser.add_argument(
        "--replace-param", action="store_true", default=None,
        help="Replace $name query parameters (and $body for POST) inside the command",
    )
    serve_parser.add_argument(
        "--replace-regex",
        help="Regex every replaced parameter value must fully match",
    )
    serve_parser.add_argument(
        "--no-stop", action="store_true", default=None,
        help="Skip bad parameters instead of failing the request",
    )
    serve_parser.add_argument("--timeout", type=float, help="Kill commands after this many seconds")
    serve_parser.add_argument(
        "--pipe-body", action="store_true", default=None,
        help="Stream the POST body to the command's standard input",
    )
    serve_parser.add_argument(
        "--combine-output", action="store_true", default=None,
        help="Merge stderr into stdout",
    )
    serve_parser.add_argument(
        "--max-concurrency", type=int,
        help="Maximum commands running at once, 0 = unbounded",
    )

    routes_parser = subparsers.add_parser("routes", help="Print the resolved route table")
    _add_route_arguments(routes_parser)

    return parser.parse_args(argv)


def _add_route_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--routes", type=Path, help="Routes CSV file, e.g. ./routes.csv")
    parser.add_argument(
        "--cmd",
        help="Static command served at /do; when set no routes file is loaded",
    )
    parser.add_argument(
        "--strict-routes", action="store_true", default=None,
        help="Abort on malformed route rows instead of skipping them",
    )


def build_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Translate parsed CLI flags into a nested settings override dict.

    Flags left unset do not appear, so YAML and environment values stay
    in effect.
    """
    overrides: dict[str, dict[str, Any]] = {}

    def put(section: str, key: str, value: Any) -> None:
        if value is not None:
            overrides.setdefault(section, {})[key] = value

    put("routes", "file", getattr(args, "routes", None))
    put("routes", "static_command", getattr(args, "cmd", None))
    put("routes", "strict", getattr(args, "strict_routes", None))

    put("server", "host", getattr(args, "host", None))
    put("server", "port", getattr(args, "port", None))

    allowed_ips = getattr(args, "allowed_ips", None)
    if allowed_ips is not None:
        ips = [ip.strip() for ip in allowed_ips.split(",") if ip.strip()]
        put("access", "enabled", bool(ips))
        put("access", "allowed_ips", ips)

    log = getattr(args, "log", None)
    if log is not None:
        overrides.setdefault("logging", {})["file"] = None if log == "stdout" else log

    put("response", "verbose", getattr(args, "return_result", None))
    put("rate_limit", "max_requests", getattr(args, "max_rate_limit", None))
    put("params", "enabled", getattr(args, "replace_param", None))
    put("params", "allow_regex", getattr(args, "replace_regex", None))
    if getattr(args, "no_stop", None):
        put("params", "stop_on_error", False)
    put("execution", "timeout", getattr(args, "timeout", None))
    put("execution", "pipe_body", getattr(args, "pipe_body", None))
    put("execution", "combine_output", getattr(args, "combine_output", None))
    put("execution", "max_concurrency", getattr(args, "max_concurrency", None))

    if args.verbose:
        put("logging", "level", "DEBUG")

    return overrides


def _fail(message: str) -> None:
    print(f"hookshell: error: {message}", file=sys.stderr)
    sys.exit(USAGE_EXIT_CODE)


def _print_routes(table: RouteTable) -> None:
    if not table:
        print("(no routes)")
        return
    for route in sorted(table.routes(), key=lambda r: r.path):
        lines = route.template.splitlines() or [""]
        print(f"{route.path}\t{lines[0]}")
        for line in lines[1:]:
            print(f"\t{line}")


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the hookshell CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from hookshell.config.settings import ConfigError, load_settings
    from hookshell.routes.loader import load_route_table
    from hookshell.utils.logging import setup_logging

    try:
        settings = load_settings(args.config, build_overrides(args))
        setup_logging(settings.logging)
        table = load_route_table(settings.routes)
    except ConfigError as e:
        _fail(str(e))
        return
    except OSError as e:
        _fail(f"cannot open log file: {e}")
        return

    if args.command == "routes":
        _print_routes(table)

    elif args.command == "serve":
        import uvicorn

        from hookshell.server.app import create_app

        app = create_app(settings, table)
        logger.info(
            "Starting gateway on %s:%d (routes from %s)",
            settings.server.host,
            settings.server.port,
            "static command" if settings.routes.static_command else settings.routes.file,
        )
        uvicorn.run(
            app,
            host=settings.server.host,
            port=settings.server.port,
            access_log=False,
        )


if __name__ == "__main__":
    main()
