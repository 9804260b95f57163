"""Route table loading.

Routes come either from a two-column CSV file (``path,command``) or from
a single static command. Quoted CSV fields may span several lines, so a
multi-line shell script fits in one row.
"""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path

from hookshell.config.settings import ConfigError, RoutesConfig
from hookshell.domain.models import RouteTable

logger = logging.getLogger(__name__)


def parse_routes(text: str, strict: bool = False) -> RouteTable:
    """Parse CSV text into a RouteTable.

    Rows with an empty path or an empty command are skipped with a
    warning, or raise ConfigError when ``strict`` is set. Extra columns
    are ignored. A path listed twice keeps its last command.

    Raises:
        ConfigError: On malformed CSV, or on a bad row in strict mode.
    """
    routes: dict[str, str] = {}
    reader = csv.reader(io.StringIO(text))
    try:
        for row_number, row in enumerate(reader, start=1):
            if not row or all(not cell.strip() for cell in row):
                continue
            path = row[0].strip()
            command = row[1] if len(row) > 1 else ""
            problem = None
            if not path:
                problem = "missing URL"
            elif not command.strip():
                problem = "missing command"
            if problem is not None:
                if strict:
                    raise ConfigError(f"route row {row_number}: {problem}")
                logger.warning("Skipping route row %d because of %s", row_number, problem)
                continue
            if path in routes:
                logger.warning("Route %s redefined on row %d, keeping the later one", path, row_number)
            routes[path] = command
    except csv.Error as e:
        raise ConfigError(f"error parsing routes csv: {e}") from e

    return RouteTable(routes)


def load_routes_file(path: Path | str, strict: bool = False) -> RouteTable:
    """Read and parse a routes CSV file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"error reading routes file {path}: {e}") from e
    table = parse_routes(text, strict=strict)
    logger.info("Loaded %d routes from %s", len(table), path)
    return table


def load_route_table(config: RoutesConfig) -> RouteTable:
    """Resolve the route table from configuration.

    A static command takes precedence over a routes file.

    Raises:
        ConfigError: If neither source is configured or loading fails.
    """
    if config.static_command:
        logger.info("Serving static command at %s", config.static_path)
        return RouteTable({config.static_path: config.static_command})
    if config.file is not None:
        return load_routes_file(config.file, strict=config.strict)
    raise ConfigError("please provide either a routes file or a static command")
