"""Signed cookie middleware.

Cookies themselves are parsed by every binding into ``request.cookies``.
This middleware adds signing on top, backed by ``itsdangerous``:

- incoming cookies carrying a valid signature are exposed, unsigned,
  in ``request.state["signed_cookies"]``; tampered ones are dropped
- ``response.set_cookie(..., signed=True)`` signs outgoing values

Requires ``secret``; without one only plain cookies are available.
"""

from dataclasses import dataclass

from itsdangerous import BadSignature, Signer

from bender.errors import ConfigurationError
from bender.http.request import CanonicalRequest
from bender.http.response import CanonicalResponse
from bender.middleware.protocol import Next

SIGNED_COOKIES_KEY = "signed_cookies"


@dataclass(frozen=True, slots=True)
class CookieConfig:
    """Configuration for signed cookies."""

    secret: str = ""
    salt: str = "bender.cookies"


class CookieMiddleware:
    """Verify signed request cookies and enable signing on the response."""

    __slots__ = ("_signer", "config")

    def __init__(self, config: CookieConfig | None = None) -> None:
        self.config = config or CookieConfig()
        if not self.config.secret:
            msg = "CookieMiddleware requires a secret"
            raise ConfigurationError(msg)
        self._signer = Signer(self.config.secret, salt=self.config.salt)

    def sign(self, value: str) -> str:
        return self._signer.sign(value).decode("utf-8")

    def unsign(self, value: str) -> str | None:
        """The original value, or None if the signature doesn't check out."""
        try:
            return self._signer.unsign(value).decode("utf-8")
        except BadSignature:
            return None

    async def __call__(self, request: CanonicalRequest, response: CanonicalResponse, next: Next) -> None:
        verified: dict[str, str] = {}
        for name, value in request.cookies.items():
            unsigned = self.unsign(value)
            if unsigned is not None:
                verified[name] = unsigned
        request.state[SIGNED_COOKIES_KEY] = verified
        response.signer = self._signer
        await next()
