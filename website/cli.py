"""
CLI entry point for the website server.

Usage:
    # Serve the site on the default port
    python -m website.cli serve

    # Serve on a specific interface and port, reloading on code changes
    python -m website.cli serve --host 127.0.0.1 --port 3000 --reload
"""

import argparse
import logging

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the application under uvicorn.

    The ``Server`` header is suppressed so responses do not disclose the
    software the site runs on.
    """
    import uvicorn

    logger.info("Starting website at http://%s:%d", args.host, args.port)
    uvicorn.run(
        "website.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        server_header=False,
        access_log=False,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Modules website server")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", default=DEFAULT_HOST)
    serve_parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    serve_parser.add_argument(
        "--reload", action="store_true", help="Reload on code changes"
    )
    serve_parser.set_defaults(func=cmd_serve)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
