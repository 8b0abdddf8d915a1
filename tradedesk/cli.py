"""
Command line entry point.

Usage:
    # Serve the API
    python -m tradedesk.cli serve --port 8000

    # Create missing tables without starting the server
    python -m tradedesk.cli init-db
"""

import argparse
import logging

from tradedesk.core.config import settings
from tradedesk.shared.logging import configure_logging

logger = logging.getLogger(__name__)


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the API server."""
    import uvicorn

    logger.info("Starting %s at http://%s:%d", settings.project_name, args.host, args.port)
    uvicorn.run("tradedesk.main:app", host=args.host, port=args.port, reload=False)


def cmd_init_db(args: argparse.Namespace) -> None:
    """Create every table of the exchange context that does not exist yet."""
    from tradedesk.infrastructure.exchange.tables import metadata
    from tradedesk.interfaces.exchange.dependencies import get_engine

    metadata.create_all(get_engine())
    logger.info("Database schema ensured: %s", ", ".join(sorted(metadata.tables)))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="TradeDesk exchange service")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.set_defaults(func=cmd_serve)

    init_parser = subparsers.add_parser("init-db", help="Create missing tables")
    init_parser.set_defaults(func=cmd_init_db)

    return parser


def main(argv: list[str] | None = None) -> None:
    configure_logging(level=settings.log_level)
    args = build_parser().parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
