"""Tests for Headers, cookies, status phrases and the canonical request."""

import dataclasses

import pytest

from bender.http.cookies import SetCookie, parse_cookies
from bender.http.headers import Headers
from bender.http.request import CanonicalRequest
from bender.http.status import error_body, reason_phrase
from bender.testing import TestClient


class TestHeaders:
    def test_case_insensitive(self) -> None:
        headers = Headers([("Content-Type", "text/html")])
        assert headers["content-type"] == "text/html"
        assert headers.get("CONTENT-TYPE") == "text/html"
        assert "Content-type" in headers

    def test_get_list(self) -> None:
        headers = Headers([("Set-Cookie", "a=1"), ("set-cookie", "b=2")])
        assert headers.get_list("SET-COOKIE") == ["a=1", "b=2"]
        assert len(headers) == 1

    def test_missing(self) -> None:
        assert Headers().get("x", "default") == "default"

    def test_from_mapping(self) -> None:
        assert Headers.from_mapping({"X-A": "1"}).raw == (("x-a", "1"),)


class TestCookies:
    def test_parse(self) -> None:
        assert parse_cookies('a=1; b="two"') == {"a": "1", "b": "two"}

    def test_parse_first_duplicate_wins(self) -> None:
        assert parse_cookies("sid=narrow; sid=wide") == {"sid": "narrow"}

    def test_parse_empty(self) -> None:
        assert parse_cookies(None) == {}
        assert parse_cookies("") == {}

    def test_set_cookie_attributes(self) -> None:
        cookie = SetCookie("sid", "x", domain="example.com", secure=True, httponly=False, samesite="strict")
        name_value, *attributes = cookie.render().split("; ")
        assert name_value == "sid=x"
        assert set(attributes) == {"Path=/", "Domain=example.com", "Secure", "SameSite=Strict"}

    def test_max_age_adds_expires(self) -> None:
        attributes = SetCookie("sid", "x", max_age=60).render().split("; ")
        assert "Max-Age=60" in attributes
        assert any(part.startswith("Expires=") for part in attributes)
        assert {"HttpOnly", "SameSite=Lax"} <= set(attributes)

    def test_expired(self) -> None:
        attributes = SetCookie.expired("sid", path="/app").render().split("; ")
        assert "Max-Age=0" in attributes
        assert "Expires=Thu, 01 Jan 1970 00:00:00 GMT" in attributes
        assert "Path=/app" in attributes

    def test_rejects_unknown_samesite(self) -> None:
        with pytest.raises(ValueError, match="SameSite"):
            SetCookie("sid", "x", samesite="sometimes")

    def test_quotes_values_that_need_it(self) -> None:
        assert SetCookie("note", "a b").render().startswith('note="')


class TestStatus:
    def test_known(self) -> None:
        assert reason_phrase(404) == "Not Found"

    def test_unknown(self) -> None:
        assert reason_phrase(599) == "Unknown Error"

    def test_error_body(self) -> None:
        assert error_body(400, "Invalid ID") == {"error": "Bad Request", "message": "Invalid ID"}
        assert error_body(500) == {"error": "Internal Server Error", "message": "Internal Server Error"}


class TestCanonicalRequest:
    def test_frozen(self) -> None:
        request = CanonicalRequest(method="GET", path="/", headers=Headers())
        with pytest.raises(dataclasses.FrozenInstanceError):
            request.path = "/other"  # type: ignore[misc]

    def test_state_is_shared_and_ignored_by_equality(self) -> None:
        state: dict = {}
        first = CanonicalRequest(method="GET", path="/", headers=Headers(), state=state)
        second = CanonicalRequest(method="GET", path="/", headers=Headers(), state={"user": "alice"})
        first.state["seen"] = True
        assert state == {"seen": True}
        assert first == second

    def test_content_type_helpers(self) -> None:
        request = CanonicalRequest(
            method="POST", path="/", headers=Headers([("Content-Type", "application/json; charset=utf-8")])
        )
        assert request.content_type == "application/json; charset=utf-8"
        assert request.is_json

    async def test_handlers_see_params_and_body(self, adapter) -> None:
        adapter.put("/items/{id}", lambda req, res: {"params": dict(req.params), "body": req.body})
        async with TestClient(adapter) as client:
            response = await client.put("/items/3", json={"name": "lamp"})
        assert response.json == {"params": {"id": "3"}, "body": {"name": "lamp"}}
