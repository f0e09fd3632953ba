"""Tests for RescuePolicy."""

from typing import Any

import pytest

from operable.exceptions import DeclarationError
from operable.operation import Operation
from operable.rescue import RescuePolicy


class AccessDeniedError(Exception):
    pass


class RevokedTokenError(AccessDeniedError):
    pass


class TestRescuePolicy:
    """Test suite for rule matching."""

    def test_with_rule_returns_new_policy(self) -> None:
        empty = RescuePolicy()
        policy = empty.with_rule(AccessDeniedError, "deny")

        assert len(empty) == 0
        assert len(policy) == 1

    def test_matches_kind_and_subclasses_only(self) -> None:
        policy = RescuePolicy().with_rule(AccessDeniedError, "deny")

        assert policy.find(AccessDeniedError()) is not None
        assert policy.find(RevokedTokenError()) is not None
        assert policy.find(ValueError()) is None

    def test_first_registered_rule_wins(self) -> None:
        policy = (
            RescuePolicy()
            .with_rule(AccessDeniedError, "deny")
            .with_rule(RevokedTokenError, "revoke")
        )

        rule = policy.find(RevokedTokenError())

        assert rule is policy.rules[0]

    def test_tuple_of_kinds(self) -> None:
        policy = RescuePolicy().with_rule((KeyError, ValueError), "handle")

        assert policy.find(KeyError()) is not None
        assert policy.find(ValueError()) is not None
        assert policy.find(TypeError()) is None

    @pytest.mark.parametrize("kind", [KeyboardInterrupt, "ValueError", ValueError()])
    def test_rejects_non_exception_kinds(self, kind: Any) -> None:
        with pytest.raises(DeclarationError):
            RescuePolicy().with_rule(kind, "handle")

    def test_rescue_returns_false_without_match(self) -> None:
        policy = RescuePolicy().with_rule(AccessDeniedError, "deny")

        assert policy.rescue(Operation(), ValueError()) is False


class TestRescueHandlers:
    """Test suite for handler invocation."""

    def test_method_handler_receives_fault(self) -> None:
        received: list[Exception] = []

        class Guarded(Operation):
            def deny(self, error: Exception) -> None:
                received.append(error)

        fault = AccessDeniedError("nope")
        policy = RescuePolicy().with_rule(AccessDeniedError, "deny")

        assert policy.rescue(Guarded(), fault) is True
        assert received == [fault]

    def test_inline_handler_receives_operation_and_fault(self) -> None:
        received: list[tuple[Operation, Exception]] = []
        operation = Operation()
        fault = AccessDeniedError("nope")
        policy = RescuePolicy().with_rule(
            AccessDeniedError, lambda op, error: received.append((op, error))
        )

        policy.rescue(operation, fault)

        assert received == [(operation, fault)]

    def test_missing_method_handler_is_a_declaration_error(self) -> None:
        policy = RescuePolicy().with_rule(AccessDeniedError, "deny")

        with pytest.raises(DeclarationError):
            policy.rescue(Operation(), AccessDeniedError())
