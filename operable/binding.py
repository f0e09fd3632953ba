"""
Callback references and their dispatch.

A callback is one of exactly two things:

- ``MethodCallback``: the name of a method looked up on a target object
  (the bound object for success/fail callbacks, the operation itself for
  rescue handlers) at dispatch time
- ``FunctionCallback``: an inline callable invoked directly

Example:
    as_callback("render_show")       # MethodCallback("render_show")
    as_callback(lambda op: ...)      # FunctionCallback(<lambda>)
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from operable.exceptions import DeclarationError

logger = structlog.get_logger(__name__)


class Callback(ABC):
    """Base class for callback references."""

    @abstractmethod
    def invoke(self, target: object | None, *args: Any) -> bool:
        """
        Invoke the callback with ``args``.

        Args:
            target: Object that method callbacks are resolved against
            *args: Arguments passed to the resolved callable

        Returns:
            True if something was called, False if the callback was skipped
        """
        raise NotImplementedError


@dataclass(frozen=True)
class MethodCallback(Callback):
    """Named method resolved against a target object when dispatched."""

    name: str

    def invoke(self, target: object | None, *args: Any) -> bool:
        if target is None:
            logger.debug("callback_skipped", method=self.name, reason="no_target")
            return False

        method = getattr(target, self.name, None)
        if not callable(method):
            logger.debug(
                "callback_skipped",
                method=self.name,
                target=type(target).__name__,
                reason="missing_method",
            )
            return False

        method(*args)
        return True


@dataclass(frozen=True)
class FunctionCallback(Callback):
    """Inline callable; the target is ignored."""

    function: Callable[..., Any]

    def invoke(self, target: object | None, *args: Any) -> bool:
        self.function(*args)
        return True


CallbackRef = str | Callable[..., Any] | Callback


def as_callback(ref: CallbackRef) -> Callback:
    """
    Coerce a callback reference into a ``Callback``.

    Raises:
        DeclarationError: If ``ref`` is neither a method name nor a callable
    """
    if isinstance(ref, Callback):
        return ref
    if isinstance(ref, str):
        return MethodCallback(ref)
    if callable(ref):
        return FunctionCallback(ref)
    raise DeclarationError(
        "Callback must be a method name or a callable", {"callback": repr(ref)}
    )
