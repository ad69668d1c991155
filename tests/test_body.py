"""Tests for request body decoding."""

import pytest

from bender.errors import BadRequest, HTTPError
from bender.http.body import (
    BodyConfig,
    UploadedFile,
    check_length,
    collapse,
    collapse_form,
    decode_body,
    form_size,
    media_type,
)


class TestMediaType:
    def test_strips_parameters(self) -> None:
        assert media_type("Application/JSON; charset=utf-8") == "application/json"

    def test_missing(self) -> None:
        assert media_type(None) == ""


class TestCollapse:
    def test_repeated_keys_become_lists(self) -> None:
        assert collapse([("a", "1"), ("a", "2"), ("b", "3")]) == {"a": ["1", "2"], "b": "3"}


class TestFormLimits:
    def test_form_size_counts_names_values_and_files(self) -> None:
        fields = [("title", "héllo"), ("doc", UploadedFile("a.bin", "application/octet-stream", b"\0" * 10))]
        assert form_size(fields) == len("title") + len("héllo".encode()) + len("doc") + 10

    def test_collapse_form_under_limit(self) -> None:
        assert collapse_form([("a", "1"), ("a", "2")], BodyConfig(max_size=64)) == {"a": ["1", "2"]}

    def test_collapse_form_over_limit(self) -> None:
        with pytest.raises(HTTPError) as info:
            collapse_form([("field", "x" * 100)], BodyConfig(max_size=8))
        assert info.value.status == 413

    def test_no_limit(self) -> None:
        assert collapse_form([("field", "x" * 100)], BodyConfig(max_size=0)) == {"field": "x" * 100}

    def test_unknown_length_passes(self) -> None:
        check_length(None, BodyConfig(max_size=1))


class TestDecodeBody:
    def test_empty_is_empty_dict(self) -> None:
        assert decode_body(b"", "application/json", BodyConfig()) == {}

    def test_json(self) -> None:
        assert decode_body(b'{"name": "X"}', "application/json", BodyConfig()) == {"name": "X"}

    def test_vendor_json(self) -> None:
        assert decode_body(b"[1]", "application/vnd.api+json", BodyConfig()) == [1]

    def test_malformed_json(self) -> None:
        with pytest.raises(BadRequest) as info:
            decode_body(b"{nope", "application/json", BodyConfig())
        assert info.value.status == 400
        assert info.value.detail == "Malformed JSON body"

    def test_urlencoded(self) -> None:
        body = decode_body(b"a=1&a=2&b=", "application/x-www-form-urlencoded", BodyConfig())
        assert body == {"a": ["1", "2"], "b": ""}

    def test_text(self) -> None:
        assert decode_body(b"hello", "text/plain", BodyConfig()) == "hello"

    def test_unknown_type_is_bytes(self) -> None:
        assert decode_body(b"\x00", "application/octet-stream", BodyConfig()) == b"\x00"

    def test_disabled_json_is_bytes(self) -> None:
        assert decode_body(b"{}", "application/json", BodyConfig(json=False)) == b"{}"

    def test_too_large(self) -> None:
        with pytest.raises(HTTPError) as info:
            decode_body(b"x" * 11, "text/plain", BodyConfig(max_size=10))
        assert info.value.status == 413
