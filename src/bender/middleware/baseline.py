"""The baseline middleware stack.

Installed in a fixed order, each step only when its config section is
set: static files, body parsing, CORS, security headers, rate limiting,
request logging, signed cookies. A step that fails to install is logged
and skipped; the rest still go in.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from bender.middleware.cookies import CookieMiddleware
from bender.middleware.cors import CORSMiddleware
from bender.middleware.rate_limit import RateLimitMiddleware
from bender.middleware.request_log import RequestLogMiddleware
from bender.middleware.security_headers import SecurityHeadersMiddleware

if TYPE_CHECKING:
    from bender.adapter import UniversalAdapter
    from bender.config import AppConfig, BodyConfig, StaticConfig

logger = logging.getLogger("bender.adapter")

type Installer = Callable[[UniversalAdapter, Any], None]


def _static(adapter: UniversalAdapter, section: StaticConfig) -> None:
    adapter.binding.add_static(section.prefix, section.directory)


def _body(adapter: UniversalAdapter, section: BodyConfig) -> None:
    adapter.binding.configure_body_parsing(section)


def _middleware(factory: Callable[[Any], Any]) -> Installer:
    def install(adapter: UniversalAdapter, section: Any) -> None:
        adapter.use(factory(section))

    return install


# (name, config attribute, installer), in installation order.
# Each installer receives the non-None config section it is keyed on.
STEPS: tuple[tuple[str, str, Installer], ...] = (
    ("static", "static", _static),
    ("body", "body", _body),
    ("cors", "cors", _middleware(CORSMiddleware)),
    ("security_headers", "security_headers", _middleware(SecurityHeadersMiddleware)),
    ("rate_limit", "rate_limit", _middleware(RateLimitMiddleware)),
    ("request_log", "request_log", _middleware(RequestLogMiddleware)),
    ("cookies", "cookies", _middleware(CookieMiddleware)),
)


def install_baseline(adapter: UniversalAdapter, config: AppConfig) -> list[str]:
    """Install every configured step. Returns the names installed."""
    installed: list[str] = []
    for name, attribute, install in STEPS:
        section = getattr(config, attribute)
        if section is None:
            continue
        try:
            install(adapter, section)
        except Exception as exc:
            logger.warning("Skipping %s middleware: %s", name, exc)
            continue
        installed.append(name)
    logger.debug("Baseline middleware on %s: %s", adapter.engine, ", ".join(installed) or "none")
    return installed
