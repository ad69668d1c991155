"""``bender engines``: which engines can be bound here."""

import argparse

from bender.engines import ENGINES, engine_report


def run_engines(args: argparse.Namespace) -> None:
    """Print every engine in priority order with its availability."""
    priorities = {descriptor.name: descriptor.priority for descriptor in ENGINES}
    report = engine_report()
    width = max(len(name) for name, _ in report)
    print(f"{'ENGINE':<{width}}  PRIORITY  STATUS")
    for name, available in report:
        status = "available" if available else "not installed"
        print(f"{name:<{width}}  {priorities[name]:>8}  {status}")
