"""Tests for filesystem route discovery."""

import sys
import textwrap
from pathlib import Path

import pytest

from bender.routes import Handler, Registrar, RouteTable, discover_routes
from bender.routes.discovery import module_name_for

GOOD = """
from bender.routes import Handler


class Items(Handler):
    async def setup(self) -> None:
        self.router.get("/", lambda req, res: ["a", "b"])


class Base(Handler):
    pass
"""

REGISTER = """
def register(router, context):
    router.get("/ping", lambda req, res: {"segment": context.segment})
"""

EXPLODES = """
raise RuntimeError("this module must never be imported")
"""


def _write(path: Path, source: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source))


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    root = tmp_path / "handlers"
    _write(root / "items" / "items.py", GOOD)
    _write(root / "items" / "ping.py", REGISTER)
    _write(root / "items" / "_private.py", EXPLODES)
    _write(root / "items" / "types.pyi", EXPLODES)
    _write(root / "items" / "data.json", "{}")
    _write(root / "_drafts" / "draft.py", EXPLODES)
    _write(root / ".hidden" / "hidden.py", EXPLODES)
    _write(root / "alpha" / "alpha.py", REGISTER)
    (root / "README.md").write_text("not a directory")
    return root


class TestDiscoverRoutes:
    async def test_segments_in_lexicographic_order(self, tree: Path) -> None:
        table = await discover_routes(tree)
        assert table.segments() == ["alpha", "items"]
        assert table.failures == []

    async def test_collects_concrete_handlers_and_register(self, tree: Path) -> None:
        table = await discover_routes(tree)
        factories = table.factories("items")
        assert len(factories) == 2
        handler_class, registrar = factories
        assert issubclass(handler_class, Handler)
        assert handler_class.__name__ == "Items"
        assert isinstance(registrar, Registrar)
        assert registrar.register.__name__ == "register"

    async def test_directories_recorded(self, tree: Path) -> None:
        table = await discover_routes(tree)
        assert table.directories["items"] == tree / "items"

    async def test_excluded_names_are_never_imported(self, tree: Path) -> None:
        await discover_routes(tree)
        for excluded in (tree / "items" / "_private.py", tree / "_drafts" / "draft.py", tree / ".hidden" / "hidden.py"):
            assert module_name_for(excluded) not in sys.modules

    async def test_idempotent(self, tree: Path) -> None:
        first = await discover_routes(tree)
        second = await discover_routes(tree)
        assert first.describe() == second.describe()
        assert first.factories("items") == second.factories("items")

    async def test_custom_marker(self, tmp_path: Path) -> None:
        root = tmp_path / "handlers"
        _write(root / "users" / "skip_me.py", EXPLODES)
        _write(root / "users" / "users.py", REGISTER)
        table = await discover_routes(root, marker="skip")
        assert table.failures == []
        assert len(table.factories("users")) == 1

    async def test_import_failure_is_isolated(self, tmp_path: Path) -> None:
        root = tmp_path / "handlers"
        _write(root / "users" / "a_broken.py", "def oops(:\n")
        _write(root / "users" / "b_good.py", REGISTER)
        table = await discover_routes(root)
        assert len(table.factories("users")) == 1
        assert len(table.failures) == 1
        failure = table.failures[0]
        assert Path(failure.path).name == "a_broken.py"
        assert "SyntaxError" in failure.reason
        assert module_name_for(root / "users" / "a_broken.py") not in sys.modules

    async def test_missing_root(self, tmp_path: Path, caplog) -> None:
        table = await discover_routes(tmp_path / "nope")
        assert table.segments() == []
        assert "does not exist" in caplog.text

    async def test_fills_given_table(self, tree: Path) -> None:
        table = RouteTable()
        result = await discover_routes(tree, table=table)
        assert result is table


class TestModuleNames:
    def test_deterministic(self, tmp_path: Path) -> None:
        path = tmp_path / "users" / "list-users.py"
        assert module_name_for(path) == module_name_for(path)
        assert module_name_for(path).endswith("_list_users")

    def test_distinct_directories(self, tmp_path: Path) -> None:
        assert module_name_for(tmp_path / "a" / "x.py") != module_name_for(tmp_path / "b" / "x.py")
