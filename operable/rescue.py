"""
Rescue policy: which raised exceptions an operation turns into failures.

A policy is an immutable, ordered list of rules. When ``execute`` raises, the
first rule whose exception kinds match the raised exception handles it. Rules
are matched with ``isinstance``, so a rule for ``LookupError`` also rescues
``KeyError``.

Example:
    class ShowProfile(Operation):
        rescue_policy = RescuePolicy().with_rule(AccessDeniedError, "deny_access")

        def deny_access(self, error: AccessDeniedError) -> None:
            self.fail({"user": [str(error)]})
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from operable.binding import Callback, CallbackRef, MethodCallback, as_callback
from operable.exceptions import DeclarationError

if TYPE_CHECKING:
    from operable.operation import Operation

logger = structlog.get_logger(__name__)

FaultKinds = type[Exception] | tuple[type[Exception], ...]


@dataclass(frozen=True)
class RescueRule:
    """Exception kinds paired with the handler that rescues them."""

    fault_kinds: tuple[type[Exception], ...]
    handler: Callback

    def matches(self, fault: BaseException) -> bool:
        return isinstance(fault, self.fault_kinds)

    def apply(self, operation: "Operation", fault: Exception) -> None:
        """
        Run the handler for ``fault``.

        Method handlers are looked up on the operation and receive the fault;
        inline handlers receive the operation and the fault.

        Raises:
            DeclarationError: If a method handler does not exist on the operation
        """
        if isinstance(self.handler, MethodCallback):
            if not self.handler.invoke(operation, fault):
                raise DeclarationError(
                    f"Rescue handler {self.handler.name!r} is not defined on "
                    f"{type(operation).__name__}",
                    {"handler": self.handler.name},
                ) from fault
            return
        self.handler.invoke(operation, operation, fault)


class RescuePolicy:
    """Ordered, immutable collection of ``RescueRule`` objects."""

    def __init__(self, rules: Iterable[RescueRule] = ()) -> None:
        self._rules: tuple[RescueRule, ...] = tuple(rules)

    @property
    def rules(self) -> tuple[RescueRule, ...]:
        return self._rules

    def with_rule(
        self,
        fault_kinds: FaultKinds,
        handler: CallbackRef,
    ) -> "RescuePolicy":
        """
        Return a new policy with one more rule appended.

        Args:
            fault_kinds: Exception class, or tuple of classes, to rescue
            handler: Method name on the operation, or an inline callable
                taking ``(operation, fault)``

        Raises:
            DeclarationError: If a fault kind is not an ``Exception`` subclass
        """
        kinds = fault_kinds if isinstance(fault_kinds, tuple) else (fault_kinds,)
        for kind in kinds:
            if not (isinstance(kind, type) and issubclass(kind, Exception)):
                raise DeclarationError(
                    "Rescue fault kinds must be Exception subclasses", {"kind": repr(kind)}
                )
        rule = RescueRule(fault_kinds=kinds, handler=as_callback(handler))
        return RescuePolicy((*self._rules, rule))

    def find(self, fault: BaseException) -> RescueRule | None:
        """Return the first rule matching ``fault``, if any."""
        for rule in self._rules:
            if rule.matches(fault):
                return rule
        return None

    def rescue(self, operation: "Operation", fault: BaseException) -> bool:
        """
        Hand ``fault`` to the first matching rule.

        Returns:
            True if a rule handled the fault, False if none matched
        """
        rule = self.find(fault)
        if rule is None or not isinstance(fault, Exception):
            return False

        logger.info(
            "operation_fault_rescued",
            operation=type(operation).__name__,
            fault=type(fault).__name__,
        )
        rule.apply(operation, fault)
        return True

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"RescuePolicy({list(self._rules)!r})"
