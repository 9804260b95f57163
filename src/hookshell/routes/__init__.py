"""Route table loading for hookshell."""

from hookshell.routes.loader import load_route_table, load_routes_file, parse_routes

__all__ = ["load_route_table", "load_routes_file", "parse_routes"]
