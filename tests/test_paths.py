"""Tests for canonical path syntax and prefix arithmetic."""

import pytest

from bender.errors import ConfigurationError
from bender.routing.paths import join_paths, normalize_path, param_names, path_matches, to_angle_syntax


class TestNormalizePath:
    def test_adds_leading_slash(self) -> None:
        assert normalize_path("users") == "/users"

    def test_strips_trailing_and_duplicate_slashes(self) -> None:
        assert normalize_path("//users///list/") == "/users/list"

    def test_root_stays_root(self) -> None:
        assert normalize_path("/") == "/"
        assert normalize_path("") == "/"

    def test_colon_params_rewritten(self) -> None:
        assert normalize_path("/users/:id/posts/:post_id") == "/users/{id}/posts/{post_id}"

    def test_invalid_placeholder(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid path parameter"):
            normalize_path("/users/{1st}")

    def test_non_string(self) -> None:
        with pytest.raises(ConfigurationError):
            normalize_path(42)  # type: ignore[arg-type]


class TestJoinPaths:
    def test_join(self) -> None:
        assert join_paths("/users", "/{id}") == "/users/{id}"

    def test_root_child(self) -> None:
        assert join_paths("/users", "/") == "/users"

    def test_root_prefix(self) -> None:
        assert join_paths("/", "/health") == "/health"


class TestParamNames:
    def test_in_order(self) -> None:
        assert param_names("/a/{x}/b/:y") == ("x", "y")

    def test_none(self) -> None:
        assert param_names("/static") == ()


class TestPathMatches:
    def test_root_matches_everything(self) -> None:
        assert path_matches("/", "/anything/at/all")

    def test_exact_and_beneath(self) -> None:
        assert path_matches("/api", "/api")
        assert path_matches("/api", "/api/users")

    def test_sibling_prefix_does_not_match(self) -> None:
        assert not path_matches("/api", "/apix")


class TestAngleSyntax:
    def test_rewrites(self) -> None:
        assert to_angle_syntax("/users/{id}") == "/users/<id>"
