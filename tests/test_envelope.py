"""Tests for responser, tryer and the error log."""

import asyncio
import json

import pytest

from bender.http.response import CanonicalResponse
from bender.routes import ErrorLog, ErrorLogEntry, responser, tryer


class TestResponser:
    def test_error_envelope(self) -> None:
        res = responser(CanonicalResponse(), 400, "Invalid ID")
        assert res.status == 400
        assert json.loads(res.body) == {"error": "Bad Request", "message": "Invalid ID"}

    def test_unknown_error_code(self) -> None:
        res = responser(CanonicalResponse(), 599, "odd")
        assert json.loads(res.body) == {"error": "Unknown Error", "message": "odd"}

    def test_raw_success(self) -> None:
        res = responser(CanonicalResponse(), 200, [1, 2])
        assert json.loads(res.body) == [1, 2]

    def test_data_envelope(self) -> None:
        res = responser(CanonicalResponse(), 201, {"id": 1}, envelope="data")
        assert res.status == 201
        assert json.loads(res.body) == {"data": {"id": 1}}

    def test_html_and_text(self) -> None:
        html = responser(CanonicalResponse(), 200, "<b>x</b>", response_type="html")
        text = responser(CanonicalResponse(), 200, 42, response_type="text")
        assert html.content_type.startswith("text/html")
        assert text.body == b"42"
        assert text.content_type.startswith("text/plain")

    async def test_stream(self) -> None:
        async def chunks():
            yield b"a"

        res = responser(CanonicalResponse(), 200, chunks(), response_type="stream")
        assert res.stream is not None

    def test_invalid_stream(self) -> None:
        res = responser(CanonicalResponse(), 200, {"not": "a stream"}, response_type="stream")
        assert res.status == 500
        assert json.loads(res.body) == {"error": "Internal Server Error", "message": "Invalid stream payload"}

    def test_unknown_response_type(self) -> None:
        with pytest.raises(ValueError, match="Unknown response type"):
            responser(CanonicalResponse(), 200, {}, response_type="xml")


class TestTryer:
    async def test_success(self) -> None:
        async def fetch(x):
            return x * 2

        result = await tryer(fetch, 21, success_code=201)
        assert (result.code, result.data, result.ok) == (201, 42, True)

    async def test_failure_is_logged(self, tmp_path) -> None:
        def explode():
            raise ValueError("boom")

        log = ErrorLog(tmp_path)
        result = await tryer(explode, error_log=log)
        assert (result.code, result.data, result.ok) == (500, "boom", False)
        await log.drain()
        entries = await log.read()
        assert len(entries) == 1
        assert entries[0]["error"].endswith("explode: boom")

    async def test_failure_without_log(self) -> None:
        def explode():
            raise KeyError

        assert (await tryer(explode)).data == "KeyError"


class TestErrorLog:
    async def test_missing_file_reads_empty(self, tmp_path) -> None:
        assert await ErrorLog(tmp_path).read() == []

    async def test_corrupt_file_is_replaced(self, tmp_path) -> None:
        (tmp_path / "_error_log.json").write_text("{not json")
        log = ErrorLog(tmp_path)
        await log.append(RuntimeError("x"))
        entries = json.loads((tmp_path / "_error_log.json").read_text())
        assert [entry["error"] for entry in entries] == ["RuntimeError: x"]

    async def test_entry_shape(self, tmp_path) -> None:
        log = ErrorLog(tmp_path, name="_custom.json")
        await log.append(ErrorLogEntry(timestamp="2024-01-01T00:00:00+00:00", error="f: m"))
        assert await log.read() == [{"timestamp": "2024-01-01T00:00:00+00:00", "error": "f: m", "stack": None}]

    async def test_concurrent_appends_are_serialized(self, tmp_path) -> None:
        log = ErrorLog(tmp_path)
        await asyncio.gather(*(log.append(RuntimeError(str(i)), origin="worker") for i in range(20)))
        entries = await log.read()
        assert sorted(entry["error"] for entry in entries) == sorted(f"worker: {i}" for i in range(20))

    async def test_schedule_and_drain(self, tmp_path) -> None:
        log = ErrorLog(tmp_path)
        for i in range(5):
            log.schedule(RuntimeError(str(i)))
        await log.drain()
        assert len(await log.read()) == 5

    async def test_schedule_swallows_write_failures(self, tmp_path, caplog) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        log = ErrorLog(blocker)  # parent is a regular file: writes must fail
        log.schedule(RuntimeError("x"))
        await log.drain()
        assert "Could not write error log" in caplog.text
