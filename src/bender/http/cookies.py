"""Cookies on the canonical request and response.

Incoming ``Cookie`` headers and outgoing ``Set-Cookie`` values go through
werkzeug's cookie codec, so quoting and date formatting match what the
Quart engine produces natively. Engines that take cookies as arguments
rather than raw headers (Falcon) read the ``SetCookie`` fields directly.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass

from werkzeug.http import dump_cookie, parse_cookie

SAMESITE_VALUES = frozenset({"Strict", "Lax", "None"})

_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.UTC)


def parse_cookies(header: str | None) -> dict[str, str]:
    """Cookies sent in a ``Cookie`` header.

    When a name repeats, the first occurrence wins; browsers send the
    most specific path first.
    """
    if not header:
        return {}
    return parse_cookie(header).to_dict()


@dataclass(frozen=True, slots=True)
class SetCookie:
    """One ``Set-Cookie`` queued on a CanonicalResponse."""

    name: str
    value: str
    max_age: int | None = None
    expires: datetime.datetime | None = None
    path: str | None = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str | None = "Lax"

    def __post_init__(self) -> None:
        if self.samesite is not None and self.samesite.title() not in SAMESITE_VALUES:
            msg = f"SameSite must be one of {', '.join(sorted(SAMESITE_VALUES))}, got {self.samesite!r}"
            raise ValueError(msg)

    @classmethod
    def expired(cls, name: str, *, path: str | None = "/", domain: str | None = None) -> SetCookie:
        """A directive telling the client to drop *name* right away."""
        return cls(name, "", max_age=0, expires=_EPOCH, path=path, domain=domain)

    def render(self) -> str:
        """The ``Set-Cookie`` header value."""
        return dump_cookie(
            self.name,
            self.value,
            max_age=self.max_age,
            expires=self.expires,
            path=self.path,
            domain=self.domain,
            secure=self.secure,
            httponly=self.httponly,
            samesite=self.samesite,
        )
