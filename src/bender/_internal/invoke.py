"""Invoke helpers: call sync or async handlers uniformly.

Bender handlers can be ``def`` or ``async def`` and may or may not take
the ``next`` continuation. Any code that calls a user-provided handler
goes through these helpers so both checks live in exactly one place.

Usage::

    from bender._internal.invoke import invoke, wants_next

    if wants_next(handler):
        result = await invoke(handler, request, response, next)
    else:
        result = await invoke(handler, request, response)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's a coroutine."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def wants_next(handler: Any) -> bool:
    """True if *handler* accepts a third positional ``next`` argument.

    ``(request, response)`` handlers are terminal; ``(request, response,
    next)`` handlers may defer to the rest of the chain. Callables whose
    signature can't be inspected are assumed to take ``next``.
    """
    try:
        signature = inspect.signature(handler)
    except (TypeError, ValueError):
        return True
    count = 0
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return True
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            count += 1
    return count >= 3
