"""Tests for CanonicalResponse: setters, terminal calls, write-once."""

import datetime
import logging
import uuid

import pytest

from bender.errors import ConfigurationError
from bender.http.response import CanonicalResponse, encode_json, is_readable_stream, iter_chunks


class TestSetters:
    def test_chainable(self) -> None:
        res = CanonicalResponse().set_status(201).set_header("X-A", "1")
        assert res.status == 201
        assert res.get_header("x-a") == "1"

    def test_set_header_replaces(self) -> None:
        res = CanonicalResponse().set_header("X-A", "1").set_header("x-a", "2")
        assert res.headers == [("x-a", "2")]

    def test_append_header_keeps_both(self) -> None:
        res = CanonicalResponse().append_header("Vary", "Origin").append_header("Vary", "Cookie")
        assert res.headers == [("Vary", "Origin"), ("Vary", "Cookie")]

    def test_set_cookie(self) -> None:
        res = CanonicalResponse().set_cookie("sid", "abc", max_age=60)
        cookie = res.cookies[0]
        assert (cookie.name, cookie.value, cookie.max_age, cookie.samesite) == ("sid", "abc", 60, "Lax")
        assert cookie.render().startswith("sid=abc; ")

    def test_delete_cookie(self) -> None:
        res = CanonicalResponse().delete_cookie("sid")
        assert "Max-Age=0" in res.cookies[0].render()
        assert res.cookies[0].expires == datetime.datetime(1970, 1, 1, tzinfo=datetime.UTC)

    def test_signed_cookie_needs_signer(self) -> None:
        with pytest.raises(ConfigurationError, match="cookie secret"):
            CanonicalResponse().set_cookie("sid", "abc", signed=True)


class TestTerminal:
    def test_send_json(self) -> None:
        res = CanonicalResponse().send_json({"a": [1, 2]})
        assert res.sent
        assert res.body == b'{"a":[1,2]}'
        assert res.content_type == "application/json"

    def test_send_raw_bytes_is_octet_stream(self) -> None:
        res = CanonicalResponse().send_raw(b"\x00\x01")
        assert res.content_type == "application/octet-stream"

    def test_send_raw_explicit_type(self) -> None:
        res = CanonicalResponse().send_raw("<p>x</p>", "text/html; charset=utf-8")
        assert res.body == b"<p>x</p>"
        assert res.content_type == "text/html; charset=utf-8"

    def test_redirect(self) -> None:
        res = CanonicalResponse().redirect("/login")
        assert res.status == 302
        assert res.get_header("Location") == "/login"
        assert res.sent

    def test_send_negotiates(self) -> None:
        assert CanonicalResponse().send([1]).body == b"[1]"
        assert CanonicalResponse().send("x").content_type.startswith("text/plain")
        assert CanonicalResponse().send(None).sent is False

    def test_end(self) -> None:
        res = CanonicalResponse().set_status(204).end()
        assert res.sent
        assert res.body == b""


class TestWriteOnce:
    def test_second_terminal_call_is_ignored(self, caplog) -> None:
        res = CanonicalResponse().send_json({"first": True})
        with caplog.at_level(logging.WARNING, logger="bender.response"):
            res.send_json({"second": True})
        assert res.body == b'{"first":true}'
        assert "already sent" in caplog.text

    def test_mutation_after_send_is_ignored(self) -> None:
        res = CanonicalResponse().send_json({})
        res.set_status(500).set_header("X-Late", "1").set_cookie("late", "1")
        assert res.status == 200
        assert res.get_header("X-Late") is None
        assert res.cookies == []


class TestFinish:
    def test_callbacks_run_once(self) -> None:
        seen: list[int] = []
        res = CanonicalResponse()
        res.on_finish(lambda r: seen.append(r.status))
        res.finish(418)
        res.finish(500)
        assert seen == [418]

    def test_failing_callback_does_not_stop_others(self) -> None:
        seen: list[str] = []
        res = CanonicalResponse()
        res.on_finish(lambda r: 1 / 0)
        res.on_finish(lambda r: seen.append("ok"))
        res.finish()
        assert seen == ["ok"]


class TestEncodeJson:
    def test_extended_types(self) -> None:
        value = {
            "when": datetime.date(2024, 1, 2),
            "id": uuid.UUID("12345678-1234-5678-1234-567812345678"),
            "tags": {"b", "a"},
        }
        assert encode_json(value) == (
            b'{"when":"2024-01-02","id":"12345678-1234-5678-1234-567812345678","tags":["a","b"]}'
        )

    def test_unknown_type(self) -> None:
        with pytest.raises(TypeError):
            encode_json(object())


class TestStreams:
    def test_readable(self) -> None:
        def gen():
            yield b"x"

        assert is_readable_stream(gen())
        assert not is_readable_stream("text")
        assert not is_readable_stream([b"a"])
        assert not is_readable_stream({"a": 1})

    async def test_iter_chunks_async(self) -> None:
        async def agen():
            yield "a"
            yield b"b"

        assert [chunk async for chunk in iter_chunks(agen())] == [b"a", b"b"]

    async def test_iter_chunks_file(self, tmp_path) -> None:
        path = tmp_path / "data.bin"
        path.write_bytes(b"payload")
        with path.open("rb") as handle:
            assert b"".join([chunk async for chunk in iter_chunks(handle)]) == b"payload"

    def test_send_stream_rejects_non_stream(self) -> None:
        with pytest.raises(TypeError):
            CanonicalResponse().send_stream(123)
