"""
Operation: a single unit of business logic with a uniform calling contract.

An operation is constructed once with its dependencies, configured with
success/fail callbacks, and run with parameters. After ``run`` the caller can
read ``subject``, ``errors`` and ``is_success``, or let the dispatched
callback react.

Example:
    class SignIn(Operation):
        def execute(self, params: dict[str, Any]) -> Any:
            session = self.dependency("login_service").sign_in(
                params["login"], params["password"]
            )
            if session is None:
                self.fail([{"field": "login", "code": "invalid"}])
            return session

    SignIn({"login_service": service}).bind_with(handler).on_success(
        "render_dashboard"
    ).on_fail("render_sign_in").run(login="pawel", password="secret")
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, ClassVar

import structlog

from operable.binding import Callback, CallbackRef, as_callback
from operable.config import get_settings
from operable.error_collection import ErrorCollection
from operable.exceptions import DeclarationError, MissingDependencyError
from operable.rescue import FaultKinds, RescuePolicy

logger = structlog.get_logger(__name__)

SUCCESS = "success"
FAIL = "fail"


class Operation:
    """
    Base class for operations.

    Subclasses override ``execute``. Everything else (state reset, exception
    rescue, success/fail settlement and callback dispatch) is handled by
    ``run`` and should not be overridden.

    Instances are reusable across runs but not across threads: keep one
    instance per request.
    """

    rescue_policy: ClassVar[RescuePolicy] = RescuePolicy()

    def __init__(self, dependencies: Mapping[str, Any] | None = None) -> None:
        self._dependencies: Mapping[str, Any] = MappingProxyType(dict(dependencies or {}))
        self._bound_object: object | None = None
        self._actions: dict[str, Callback] = {}
        self._subject: Any = None
        self._fail_errors: ErrorCollection | None = None
        self._errors: ErrorCollection | None = None

    @classmethod
    def rescue_from(cls, fault_kinds: FaultKinds, handler: CallbackRef) -> RescuePolicy:
        """
        Rescue ``fault_kinds`` raised by ``execute`` on this class and its subclasses.

        The parent class policy is left untouched.

        Example:
            class Login(Operation):
                def execute(self, params):
                    ...

            # inline handlers receive the operation and the exception
            Login.rescue_from(KeyError, lambda operation, error: operation.fail(error))

            # method handlers are looked up on the operation and receive only the exception
            Login.rescue_from(TimeoutError, "service_unavailable")

        Args:
            fault_kinds: Exception class, or tuple of classes
            handler: Method name on the operation (called with the exception),
                or a callable taking ``(operation, exception)``

        Returns:
            The policy now attached to ``cls``
        """
        cls.rescue_policy = cls.rescue_policy.with_rule(fault_kinds, handler)
        return cls.rescue_policy

    @property
    def dependencies(self) -> Mapping[str, Any]:
        return self._dependencies

    @property
    def subject(self) -> Any:
        return self._subject

    @subject.setter
    def subject(self, value: Any) -> None:
        self._subject = value
        self._errors = None

    @property
    def bound_object(self) -> object | None:
        return self._bound_object

    @property
    def actions(self) -> Mapping[str, Callback]:
        return MappingProxyType(self._actions)

    def dependency(self, name: str) -> Any:
        """
        Fetch a collaborator passed at construction.

        Raises:
            MissingDependencyError: If ``name`` was not provided
        """
        try:
            return self._dependencies[name]
        except KeyError:
            raise MissingDependencyError(name) from None

    def run(self, params: Mapping[str, Any] | None = None, **kwargs: Any) -> "Operation":
        """
        Execute the operation and dispatch exactly one callback.

        Keyword arguments are merged over ``params``. Exceptions from
        ``execute`` that no rescue rule handles propagate, and no callback
        runs in that case.

        Returns:
            self, so results can be read fluently
        """
        run_params = {**(params or {}), **kwargs}
        self.clear_subject_with_errors()

        try:
            self.subject = self.execute(run_params)
        except (MissingDependencyError, DeclarationError):
            raise
        except Exception as fault:
            if not self.rescue_policy.rescue(self, fault):
                logger.warning(
                    "operation_fault_unhandled",
                    operation=type(self).__name__,
                    fault=type(fault).__name__,
                )
                raise

        self._execute_actions()
        return self

    def execute(self, params: dict[str, Any]) -> Any:
        """
        Domain logic of the operation. Override in subclasses.

        The return value becomes ``subject``. Call ``fail`` to mark the run
        as failed.
        """
        raise NotImplementedError("Not implemented yet")

    def fail(self, payload: object = True) -> None:
        """
        Mark the current run as failed.

        The payload becomes ``errors`` and takes precedence over any errors
        exposed by the subject. Execution continues; return from ``execute``
        to stop early.

        Args:
            payload: Errors in any form accepted by ``ErrorCollection.from_payload``.
                Without a payload the run still fails with a generic entry.
        """
        if payload is None:
            payload = True
        self._fail_errors = ErrorCollection.from_payload(payload)
        self._errors = None

    @property
    def errors(self) -> ErrorCollection:
        if self._errors is None:
            self._errors = self._collect_errors()
        return self._errors

    @property
    def is_success(self) -> bool:
        return self.errors.is_empty

    @property
    def is_failure(self) -> bool:
        return not self.is_success

    def bind_with(self, bound_object: object) -> "Operation":
        """Set the object that method-name callbacks are resolved against."""
        self._bound_object = bound_object
        return self

    def unbind(self) -> "Operation":
        self._bound_object = None
        return self

    def on_success(self, callback: CallbackRef) -> "Operation":
        self._actions[SUCCESS] = as_callback(callback)
        return self

    def on_fail(self, callback: CallbackRef) -> "Operation":
        self._actions[FAIL] = as_callback(callback)
        return self

    def on(
        self,
        *,
        success: CallbackRef | None = None,
        fail: CallbackRef | None = None,
    ) -> "Operation":
        """Register both callbacks at once. Slots passed as None are left as they are."""
        if success is not None:
            self.on_success(success)
        if fail is not None:
            self.on_fail(fail)
        return self

    def clear(self) -> "Operation":
        """Drop callbacks, bound object, subject and errors."""
        self.clear_actions()
        self.unbind()
        self.clear_subject_with_errors()
        return self

    def clear_subject_with_errors(self) -> "Operation":
        self._subject = None
        self._fail_errors = None
        self._errors = None
        return self

    def clear_actions(self) -> "Operation":
        self._actions = {}
        return self

    def _collect_errors(self) -> ErrorCollection:
        if self._fail_errors is not None:
            return self._fail_errors
        return self._subject_errors()

    def _subject_errors(self) -> ErrorCollection:
        return ErrorCollection.of(self._subject)

    def _execute_actions(self) -> None:
        slot = SUCCESS if self.is_success else FAIL
        if slot == FAIL:
            logger.info(
                "operation_failed",
                operation=type(self).__name__,
                errors=self.errors.to_primitive(),
            )

        callback = self._actions.get(slot)
        if callback is None:
            return

        invoked = callback.invoke(self._bound_object, self)
        if get_settings().LOG_CALLBACK_DISPATCH:
            logger.debug(
                "callback_dispatched",
                operation=type(self).__name__,
                slot=slot,
                invoked=invoked,
            )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(dependencies={list(self._dependencies)})"
