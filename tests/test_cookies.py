"""Tests for signed cookies."""

import pytest
from itsdangerous import Signer

from bender.errors import ConfigurationError
from bender.middleware import CookieConfig, CookieMiddleware
from bender.middleware.cookies import SIGNED_COOKIES_KEY
from bender.testing import TestClient

SECRET = "test-secret"


class TestCookieMiddleware:
    def test_requires_secret(self) -> None:
        with pytest.raises(ConfigurationError, match="requires a secret"):
            CookieMiddleware(CookieConfig())

    def test_sign_roundtrip_and_tamper(self) -> None:
        mw = CookieMiddleware(CookieConfig(secret=SECRET))
        signed = mw.sign("alice")
        assert mw.unsign(signed) == "alice"
        assert mw.unsign(signed[:-1] + "x") is None
        assert mw.unsign("plain") is None

    async def test_signed_cookie_is_set(self, adapter) -> None:
        adapter.use(CookieMiddleware(CookieConfig(secret=SECRET)))
        adapter.get("/login", lambda req, res: res.set_cookie("user", "alice", signed=True).send_json({}))
        async with TestClient(adapter) as client:
            response = await client.get("/login")
        cookie = response.set_cookies[0]
        value = cookie.split(";", 1)[0].split("=", 1)[1]
        assert Signer(SECRET, salt="bender.cookies").unsign(value) == b"alice"

    async def test_verified_cookies_in_state(self, adapter) -> None:
        adapter.use(CookieMiddleware(CookieConfig(secret=SECRET)))
        adapter.get("/me", lambda req, res: req.state[SIGNED_COOKIES_KEY])
        good = Signer(SECRET, salt="bender.cookies").sign("alice").decode()
        async with TestClient(adapter) as client:
            response = await client.get("/me", headers={"Cookie": f"user={good}; forged=bob.bad; plain=1"})
        assert response.json == {"user": "alice"}


class TestCookiesOnEveryEngine:
    async def test_request_cookies_parsed(self, adapter) -> None:
        adapter.get("/", lambda req, res: dict(req.cookies))
        async with TestClient(adapter) as client:
            response = await client.get("/", headers={"Cookie": 'theme=dark; note="hi there"'})
        assert response.json == {"theme": "dark", "note": "hi there"}

    async def test_delete_cookie_expires_in_the_past(self, adapter) -> None:
        adapter.post("/logout", lambda req, res: res.delete_cookie("sid").send_json({}))
        async with TestClient(adapter) as client:
            response = await client.post("/logout")
        [cookie] = response.set_cookies
        assert cookie.startswith("sid=")
        assert "01 Jan 1970 00:00:00 GMT" in cookie
