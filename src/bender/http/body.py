"""Request body decoding shared by every engine binding.

Engines hand over the raw bytes (or, for multipart, their own parsed
form) and this module turns them into the canonical body value:

- no body → ``{}``
- ``application/json`` (and ``+json``) → the decoded document
- ``application/x-www-form-urlencoded`` → ``dict[str, str | list[str]]``
- ``text/*`` → ``str``
- anything else → ``bytes``

Malformed JSON raises :class:`~bender.errors.BadRequest`. Bodies over
``BodyConfig.max_size`` raise a 413, checked against the declared
``Content-Length`` before reading and against what was actually read
(multipart included) afterwards.
"""

import json
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl

from bender.errors import BadRequest, HTTPError


@dataclass(frozen=True, slots=True)
class BodyConfig:
    """Which request body formats are decoded.

    Disabled formats fall through to raw ``bytes``.
    """

    json: bool = True
    urlencoded: bool = True
    multipart: bool = True
    text: bool = True
    max_size: int = 1024 * 1024


@dataclass(frozen=True, slots=True)
class UploadedFile:
    """A file part from a multipart body, fully buffered."""

    filename: str
    content_type: str
    data: bytes


def media_type(content_type: str | None) -> str:
    """Strip parameters from a Content-Type value and lower-case it."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def is_multipart(content_type: str | None) -> bool:
    return media_type(content_type) == "multipart/form-data"


def collapse(pairs: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    """Fold repeated keys into lists, keep single keys scalar.

    ``[("a", "1"), ("a", "2"), ("b", "3")]`` → ``{"a": ["1", "2"], "b": "3"}``
    """
    result: dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            existing = result[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[key] = [existing, value]
        else:
            result[key] = value
    return result


def check_length(size: int | None, config: BodyConfig) -> None:
    """Reject a body of *size* bytes over the limit. ``None`` means unknown."""
    if config.max_size and size is not None and size > config.max_size:
        raise HTTPError(status=413, detail="Payload Too Large")


def check_size(raw: bytes, config: BodyConfig) -> None:
    check_length(len(raw), config)


def form_size(fields: Iterable[tuple[str, Any]]) -> int:
    """Bytes carried by parsed multipart *fields*: names, values and file data."""
    total = 0
    for key, value in fields:
        total += len(key.encode("utf-8"))
        if isinstance(value, UploadedFile):
            total += len(value.data)
        elif isinstance(value, bytes):
            total += len(value)
        else:
            total += len(str(value).encode("utf-8"))
    return total


def collapse_form(fields: list[tuple[str, Any]], config: BodyConfig) -> dict[str, Any]:
    """Size-check parsed multipart *fields*, then fold them like :func:`collapse`."""
    check_length(form_size(fields), config)
    return collapse(fields)


def decode_body(raw: bytes, content_type: str | None, config: BodyConfig) -> Any:
    """Decode *raw* per *content_type* and *config*."""
    if not raw:
        return {}
    check_size(raw, config)
    kind = media_type(content_type)

    if config.json and (kind == "application/json" or kind.endswith("+json")):
        try:
            return json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise BadRequest("Malformed JSON body") from exc

    if config.urlencoded and kind == "application/x-www-form-urlencoded":
        text = raw.decode("utf-8", errors="replace")
        return collapse(parse_qsl(text, keep_blank_values=True))

    if config.text and kind.startswith("text/"):
        return raw.decode("utf-8", errors="replace")

    return raw
