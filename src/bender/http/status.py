"""Status code reason phrases for the error envelope."""

from http import HTTPStatus

UNKNOWN_ERROR = "Unknown Error"


def reason_phrase(code: int) -> str:
    """Return the standard reason phrase for *code*.

    Falls back to ``"Unknown Error"`` for codes the standard library
    does not know (e.g. 499, 599).
    """
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return UNKNOWN_ERROR


def error_body(code: int, message: object = None) -> dict[str, object]:
    """The error envelope: ``{"error": <reason phrase>, "message": ...}``.

    *message* defaults to the reason phrase itself.
    """
    phrase = reason_phrase(code)
    return {"error": phrase, "message": phrase if message is None else message}
