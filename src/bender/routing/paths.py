"""Canonical path syntax and prefix arithmetic.

Bender paths use ``{name}`` placeholders. The Express style ``:name``
is accepted on input and rewritten, so every engine binding only has to
translate one syntax into its own (``{name}`` for the ASGI engines and
aiohttp, ``<name>`` for Quart).
"""

import re

from bender.errors import ConfigurationError

_COLON_PARAM_RE = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")
_BRACE_PARAM_RE = re.compile(r"\{([^{}]*)\}")
_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def normalize_path(path: str) -> str:
    """Return *path* in canonical form.

    Leading slash enforced, duplicate and trailing slashes removed
    (except for the root), ``:name`` rewritten to ``{name}``.

    Raises:
        ConfigurationError: If a placeholder name is not an identifier.
    """
    if not isinstance(path, str):
        msg = f"Route path must be a string, got {type(path).__name__}"
        raise ConfigurationError(msg)
    path = _COLON_PARAM_RE.sub(r"{\1}", path.strip())
    segments = [segment for segment in path.split("/") if segment]
    for name in _BRACE_PARAM_RE.findall(path):
        if not _IDENT_RE.match(name):
            msg = f"Invalid path parameter {{{name}}} in route {path!r}"
            raise ConfigurationError(msg)
    return "/" + "/".join(segments)


def join_paths(prefix: str, path: str) -> str:
    """Join a mount prefix and a route path.

    ``join_paths("/users", "/")`` is ``"/users"``, never ``"/users/"``.
    """
    return normalize_path(f"{prefix}/{path}")


def param_names(path: str) -> tuple[str, ...]:
    """The placeholder names in *path*, in order."""
    return tuple(_BRACE_PARAM_RE.findall(normalize_path(path)))


def path_matches(prefix: str, path: str) -> bool:
    """True if *path* is *prefix* or lies beneath it.

    ``"/"`` matches everything; ``"/api"`` matches ``/api`` and
    ``/api/x`` but not ``/apix``.
    """
    if prefix in ("", "/"):
        return True
    prefix = prefix.rstrip("/")
    return path == prefix or path.startswith(f"{prefix}/")


def to_angle_syntax(path: str) -> str:
    """Rewrite ``{name}`` placeholders as ``<name>`` (Werkzeug/Quart rules)."""
    return _BRACE_PARAM_RE.sub(r"<\1>", path)


def slash_variants(path: str) -> tuple[str, ...]:
    """*path* plus its trailing-slash twin.

    Every binding answers ``/users`` and ``/users/`` with the same route;
    engines that match slashes strictly register both forms.
    """
    return (path,) if path == "/" else (path, f"{path}/")
