"""``bender routes``: show the table discovery would mount.

Nothing is bound or served; modules are imported to find their handlers.
"""

import argparse
import sys

import anyio

from bender.routes.discovery import discover_routes


def run_routes(args: argparse.Namespace) -> None:
    """Print ``SEGMENT  HANDLER`` rows, then any import failures."""
    table = anyio.run(lambda: discover_routes(args.directory, marker=args.marker))

    rows = [(f"/{segment}", name) for segment, names in table.describe() for name in names]
    if not rows:
        print("No routes discovered.")
    else:
        width = max(4, *(len(path) for path, _ in rows))
        fmt = f"{{:<{width}}}  {{}}"
        print(fmt.format("PATH", "HANDLER"))
        print("-" * min(width + 2 + max(len(name) for _, name in rows), 80))
        for path, name in rows:
            print(fmt.format(path, name))

    for failure in table.failures:
        print(f"Failed: {failure.path}: {failure.reason}", file=sys.stderr)
    if table.failures:
        raise SystemExit(1)
