"""Bender CLI: engine report, route listing, and the server.

Entry point registered as ``bender`` in ``pyproject.toml``::

    [project.scripts]
    bender = "bender.cli:main"
"""

import argparse
import logging
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``bender`` command."""
    parser = argparse.ArgumentParser(
        prog="bender",
        description="Bender: one routing API over aiohttp, Quart, FastAPI, Starlette and Falcon.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command")

    # -- bender engines ---------------------------------------------------
    subparsers.add_parser("engines", help="List engines and whether they are installed")

    # -- bender routes ----------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="Show the route table discovered in a directory")
    routes_parser.add_argument("directory", help="Handler directory (e.g. handlers)")
    routes_parser.add_argument("--marker", default="_", help="Exclusion prefix (default: _)")

    # -- bender run -------------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Discover routes and start the server")
    run_parser.add_argument("--engine", default=None, help="Force an engine instead of detecting one")
    run_parser.add_argument("--host", default=None, help="Bind host address")
    run_parser.add_argument("--port", type=int, default=None, help="Bind port number")
    run_parser.add_argument("--routes", default=None, help="Handler directory")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    if args.command == "engines":
        from bender.cli._engines import run_engines

        run_engines(args)
    elif args.command == "routes":
        from bender.cli._routes import run_routes

        run_routes(args)
    elif args.command == "run":
        from bender.cli._run import run_server

        run_server(args)
