"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups. Optional sections are ``None`` when disabled;
the baseline middleware installer only runs the sections that are set.

``AppConfig.from_env()`` reads the process environment::

    PORT            listen port (default 3000)
    BENDER_ENV      environment mode (default "development")
    BENDER_ENGINE   force an engine instead of detecting one
    BENDER_HOST     bind address (default 127.0.0.1)
    BENDER_ROUTES   handler directory (default "handlers")
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from bender.errors import ConfigurationError
from bender.http.body import BodyConfig
from bender.middleware.cookies import CookieConfig
from bender.middleware.cors import CORSConfig
from bender.middleware.rate_limit import RateLimitConfig
from bender.middleware.request_log import RequestLogConfig
from bender.middleware.security_headers import SecurityHeadersConfig

logger = logging.getLogger("bender.config")

DEFAULT_PORT = 3000

ENVELOPES = ("raw", "data")

REQUIRED_ENV = ("PORT", "BENDER_ENV")


@dataclass(frozen=True, slots=True)
class StaticConfig:
    """Serve files from *directory* under the URL *prefix*."""

    directory: str | Path = "public"
    prefix: str = "/static"


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(port=8080, engine="starlette", cors=CORSConfig(allow_origins=("*",)))
    """

    # Server
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    env: str = "development"
    engine: str | None = None

    # Route tree
    routes_dir: str | Path | None = "handlers"
    exclusion_marker: str = "_"
    error_log_name: str = "_error_log.json"

    # Success responses: "raw" payload or {"data": payload}
    response_envelope: str = "raw"

    # Baseline middleware sections (None = skip)
    static: StaticConfig | None = None
    body: BodyConfig | None = field(default_factory=BodyConfig)
    cors: CORSConfig | None = None
    security_headers: SecurityHeadersConfig | None = None
    rate_limit: RateLimitConfig | None = None
    request_log: RequestLogConfig | None = field(default_factory=RequestLogConfig)
    cookies: CookieConfig | None = None

    # Environment variables whose absence is worth a warning
    required_env: tuple[str, ...] = REQUIRED_ENV

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 65535:
            msg = f"Port out of range: {self.port}"
            raise ConfigurationError(msg)
        if self.response_envelope not in ENVELOPES:
            msg = f"response_envelope must be one of {ENVELOPES}, got {self.response_envelope!r}"
            raise ConfigurationError(msg)
        if not self.exclusion_marker:
            msg = "exclusion_marker must not be empty"
            raise ConfigurationError(msg)

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def is_development(self) -> bool:
        return self.env == "development"

    def with_overrides(self, **overrides: Any) -> AppConfig:
        """Return a copy with the non-``None`` *overrides* applied."""
        return replace(self, **{key: value for key, value in overrides.items() if value is not None})

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> AppConfig:
        """Build a config from environment variables.

        Missing required variables are logged as warnings, never fatal.
        Keyword *overrides* win over the environment; ``None`` overrides
        are ignored so CLI flags can be passed straight through.
        """
        environ = os.environ if environ is None else environ
        overrides = {key: value for key, value in overrides.items() if value is not None}
        for name in overrides.get("required_env", REQUIRED_ENV):
            if not environ.get(name):
                logger.warning("Environment variable %s is not set; using the default", name)

        values: dict[str, Any] = {}
        raw_port = environ.get("PORT")
        if raw_port:
            try:
                values["port"] = int(raw_port)
            except ValueError as exc:
                msg = f"PORT must be an integer, got {raw_port!r}"
                raise ConfigurationError(msg) from exc
        if environ.get("BENDER_ENV"):
            values["env"] = environ["BENDER_ENV"]
        if environ.get("BENDER_ENGINE"):
            values["engine"] = environ["BENDER_ENGINE"]
        if environ.get("BENDER_HOST"):
            values["host"] = environ["BENDER_HOST"]
        if environ.get("BENDER_ROUTES"):
            values["routes_dir"] = environ["BENDER_ROUTES"]
        values.update(overrides)
        return cls(**values)
