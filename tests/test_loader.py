"""Tests for mounting route tables: readiness join, isolation, capture."""

import textwrap
from pathlib import Path

from bender.errors import BadRequest
from bender.routes import Handler, RouteTable, RouterContext, load_routes
from bender.testing import TestClient


class Items(Handler):
    async def setup(self) -> None:
        self.router.get("/", lambda req, res: ["a"])
        self.router.get("/{id}", self.show)

    def show(self, req, res):
        return {"id": req.params["id"], "segment": self.context.segment}


class Writes(Handler):
    async def setup(self) -> None:
        self.router.post("/", lambda req, res: res.set_status(201).send_json(req.body))


class BrokenSetup(Handler):
    async def setup(self) -> None:
        raise RuntimeError("database unreachable")


class Crashy(Handler):
    async def setup(self) -> None:
        self.router.get("/boom", self.boom)
        self.router.get("/invalid", self.invalid)
        self.router.get("/chained", self.guard, self.after)

    async def boom(self, req, res):
        raise ValueError("kaboom")

    def invalid(self, req, res):
        raise BadRequest("Invalid ID")

    async def guard(self, req, res, next):
        req.state["guarded"] = True
        await next()

    def after(self, req, res):
        return {"guarded": req.state["guarded"]}


def explode_on_create(context: RouterContext) -> Handler:
    raise TypeError("bad factory")


class TestLoadRoutes:
    async def test_mounts_segments(self, adapter) -> None:
        table = RouteTable().add("items", Items).add("items", Writes)
        report = await load_routes(adapter, table)
        assert report.ok
        assert report.mounted == ["items"]
        assert report.handlers == 2
        async with TestClient(adapter) as client:
            assert (await client.get("/items")).json == ["a"]
            assert (await client.get("/items/7")).json == {"id": "7", "segment": "items"}
            created = await client.post("/items", json={"name": "x"})
            assert created.status == 201
            assert created.json == {"name": "x"}

    async def test_failed_setup_is_not_mounted(self, adapter) -> None:
        table = RouteTable().add("items", Items).add("items", BrokenSetup).add("down", BrokenSetup)
        report = await load_routes(adapter, table)
        assert report.mounted == ["items"]
        assert report.handlers == 1
        assert len(report.failures) == 2
        assert all("database unreachable" in failure.error for failure in report.failures)
        async with TestClient(adapter) as client:
            assert (await client.get("/items")).status == 200
            assert (await client.get("/down")).status == 404

    async def test_factory_failure_is_isolated(self, adapter) -> None:
        table = RouteTable().add("items", explode_on_create).add("items", Items)
        report = await load_routes(adapter, table)
        assert report.mounted == ["items"]
        assert report.failures[0].source.endswith("explode_on_create")
        assert "TypeError: bad factory" == report.failures[0].error

    async def test_summary(self, adapter) -> None:
        report = await load_routes(adapter, RouteTable().add("items", Items).add("down", BrokenSetup))
        assert report.summary() == "1 handler(s) on 1 segment(s), 1 failure(s)"


class TestHandlerLifecycle:
    async def test_ready_set_after_success_and_failure(self, adapter) -> None:
        created: list[Handler] = []

        def track(cls):
            def factory(context):
                handler = cls(context)
                created.append(handler)
                return handler

            return factory

        table = RouteTable().add("a", track(Items)).add("b", track(BrokenSetup))
        await load_routes(adapter, table)
        ok, broken = created
        assert ok.ready.is_set() and ok.error is None and ok.ok
        assert broken.ready.is_set() and isinstance(broken.error, RuntimeError) and not broken.ok


class TestErrorCapture:
    async def _load(self, adapter, directory: Path) -> Handler:
        created: list[Handler] = []

        def factory(context):
            created.append(Crashy(context))
            return created[-1]

        await load_routes(adapter, RouteTable().add("crash", factory, directory=directory))
        return created[0]

    async def test_unhandled_error_is_500_and_logged(self, adapter, tmp_path) -> None:
        handler = await self._load(adapter, tmp_path)
        async with TestClient(adapter) as client:
            response = await client.get("/crash/boom")
        assert response.status == 500
        assert response.json == {"error": "Internal Server Error", "message": "Internal Server Error"}
        await handler.context.error_log.drain()
        entries = await handler.context.error_log.read()
        assert len(entries) == 1
        assert entries[0]["error"].endswith("boom: kaboom")
        assert "ValueError" in entries[0]["stack"]
        assert (tmp_path / "_error_log.json").is_file()

    async def test_http_error_is_enveloped_not_logged(self, adapter, tmp_path) -> None:
        handler = await self._load(adapter, tmp_path)
        async with TestClient(adapter) as client:
            response = await client.get("/crash/invalid")
        assert response.status == 400
        assert response.json == {"error": "Bad Request", "message": "Invalid ID"}
        await handler.context.error_log.drain()
        assert not (tmp_path / "_error_log.json").exists()

    async def test_capture_keeps_next(self, adapter, tmp_path) -> None:
        await self._load(adapter, tmp_path)
        async with TestClient(adapter) as client:
            assert (await client.get("/crash/chained")).json == {"guarded": True}


class TestLoadFromDirectory:
    async def test_discovers_and_mounts(self, adapter, tmp_path) -> None:
        root = tmp_path / "handlers"
        (root / "hello").mkdir(parents=True)
        (root / "hello" / "hello.py").write_text(
            textwrap.dedent(
                """
                def register(router, context):
                    router.get("/", lambda req, res: {"hello": context.segment})
                """
            )
        )
        (root / "hello" / "broken.py").write_text("import does_not_exist_anywhere\n")
        report = await load_routes(adapter, root)
        assert report.mounted == ["hello"]
        assert len(report.failures) == 1
        assert report.failures[0].segment is None
        assert "ModuleNotFoundError" in report.failures[0].error
        async with TestClient(adapter) as client:
            assert (await client.get("/hello")).json == {"hello": "hello"}
