from __future__ import annotations

"""
Tile server entry point: parse flags, start logging, serve.

Examples:
  python -m tile_server.service --tiles-dir data/tiles --host 0.0.0.0 --port 5000 --log-level warn
  python -m tile_server.service --config config/params.yaml
"""

import argparse
from typing import List, Optional

from common.logging_setup import get_logger, setup_file_logging, setup_logging
from tile_server.config import ENV_VAR_LOG_DIR, LOG_LEVELS, ConfigError, ServerConfig, load_config
from tile_server.server import run_server

DESCRIPTION = """\
A lightweight map tile server.

Serves pre-rendered PNG tiles stored on disk as {tiles_dir}/{z}/{x}/{y}.png
to web-mapping clients over HTTP.
"""

EPILOG = f"""\
api:
  /tiles/{{z}}/{{x}}/{{y}}
    {{z}} - the current zoom level
    {{x}} - the horizontal (X) index of the requested tile
    {{y}} - the vertical (Y) index of the requested tile

example:
  tile-server --tiles-dir=/srv/tiles --host=0.0.0.0 --port=5000 --log-level=warn

The log directory can also be set with the {ENV_VAR_LOG_DIR} environment variable.
"""


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="tile-server",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    defaults = ServerConfig()
    # Flag defaults stay None so the YAML file can fill in what was not given.
    ap.add_argument("--config", help="Optional YAML config (server:/logging: sections)")
    ap.add_argument("--tiles-dir", help=f"Directory containing tile images (default: {defaults.tiles_dir})")
    ap.add_argument("--host", help=f"Host to bind the server to (default: {defaults.host})")
    ap.add_argument("--port", type=int, help=f"Port to bind the server to (default: {defaults.port})")
    ap.add_argument(
        "--log-level",
        type=str.lower,
        choices=LOG_LEVELS,
        help=f"Log level (default: {defaults.log_level})",
    )
    ap.add_argument("--log-dir", help=f"Directory for rotating log files (default: {defaults.log_dir})")
    ap.add_argument("--version", action="version", version="%(prog)s 0.1.0")
    return ap


def config_from_args(argv: Optional[List[str]] = None) -> ServerConfig:
    args = build_parser().parse_args(argv)
    return load_config(
        args.config,
        overrides={
            "tiles_dir": args.tiles_dir,
            "host": args.host,
            "port": args.port,
            "log_level": args.log_level,
            "log_dir": args.log_dir,
        },
    )


def start_logging(config: ServerConfig) -> None:
    try:
        setup_file_logging(config.log_level, config.log_dir)
    except OSError as e:
        setup_logging(config.log_level, force=True)
        get_logger(__name__).warning("Using fallback logging due to an error: %r", e)


def main(argv: Optional[List[str]] = None) -> None:
    try:
        config = config_from_args(argv)
    except ConfigError as e:
        raise SystemExit(f"Invalid configuration: {e}")

    start_logging(config)
    run_server(config)


if __name__ == "__main__":
    main()
