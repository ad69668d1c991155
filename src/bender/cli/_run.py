"""``bender run``: bootstrap from the environment and serve.

CLI flags override the environment, which overrides the defaults.
"""

import argparse
import sys

from bender.config import AppConfig
from bender.errors import ConfigurationError


def run_server(args: argparse.Namespace) -> None:
    """Build the config, then hand over to :func:`bender.server.run`."""
    try:
        config = AppConfig.from_env(
            engine=args.engine,
            host=args.host,
            port=args.port,
            routes_dir=args.routes,
        )
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    from bender.server import run

    try:
        run(config)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
