"""Command-line entry point: ``python -m remcpy [--port N]``."""
import argparse
import logging
from typing import List, Optional

import uvicorn

from remcpy.config import AppSettings, load_config, set_config
from remcpy.main import create_app

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="remcpy", description="remcpy - Remote Copy Service")
    parser.add_argument("--port", type=int, default=None, help="Port to run remcpy on (default 5000)")
    parser.add_argument("--host", type=str, default=None, help="Host to bind to")
    parser.add_argument("--config", type=str, default=None, help="Path to remcpy.settings.yaml")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    if args.port is not None:
        config.server.port = args.port
    if args.host is not None:
        config.server.host = args.host
    config = AppSettings.model_validate(config.model_dump())
    set_config(config)

    logger.info("remcpy listening on %s:%d", config.server.host, config.server.port)
    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level,
    )


if __name__ == "__main__":
    main()
