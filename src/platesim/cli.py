"""Command-line interface for PlateSim."""

import argparse
import logging
import sys

import uvicorn

from platesim import __version__
from platesim.config import SimulationSettings, get_settings
from platesim.logging_config import configure_logging

APP_IMPORT_PATH = "platesim.server.app:app"


def build_parser(settings: SimulationSettings) -> argparse.ArgumentParser:
    """Argument parser whose bind defaults come from ``settings``."""
    parser = argparse.ArgumentParser(
        prog="platesim",
        description="PlateSim - interactive silver electroplating simulation",
    )
    server = parser.add_argument_group("server")
    server.add_argument("--host", default=settings.host, help="Bind address (%(default)s)")
    server.add_argument("--port", type=int, default=settings.port, help="Bind port (%(default)s)")
    server.add_argument("--reload", action="store_true", help="Restart on code changes")

    logs = parser.add_argument_group("logging")
    logs.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override LOG_LEVEL",
    )
    logs.add_argument("--log-format", choices=["text", "json"], help="Override LOG_FORMAT")

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(args: list[str] | None = None) -> int:
    """Run the PlateSim server.

    Args:
        args: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Exit code (0 for success).
    """
    parsed = build_parser(get_settings()).parse_args(args)

    level = getattr(logging, parsed.log_level) if parsed.log_level else None
    configure_logging(level=level, format_type=parsed.log_format)

    print(f"PlateSim listening on http://{parsed.host}:{parsed.port} (Ctrl+C to quit)")
    uvicorn.run(APP_IMPORT_PATH, host=parsed.host, port=parsed.port, reload=parsed.reload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
