"""Users: a route tree discovered from ``handlers/``.

``handlers/users/*.py`` mounts under ``/users``. Runs on whichever
engine is installed; set ``BENDER_ENGINE`` to pick one.

Run:
    cd examples/users && python app.py
"""

from pathlib import Path

from bender import AppConfig, run
from bender.middleware import CORSConfig

HANDLERS = Path(__file__).parent / "handlers"

config = AppConfig.from_env(
    routes_dir=HANDLERS,
    cors=CORSConfig(allow_origins=("*",)),
)

if __name__ == "__main__":
    run(config)
