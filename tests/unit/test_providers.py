"""Tests for dependency-injector integration."""

from typing import Any
from unittest.mock import MagicMock

from dependency_injector import containers, providers

from operable.operation import Operation
from operable.providers import operation_provider


class SignIn(Operation):
    def execute(self, params: dict[str, Any]) -> Any:
        return self.dependency("login_service").sign_in(params["login"], params["password"])


default_login_service = MagicMock()


class Container(containers.DeclarativeContainer):
    login_service = providers.Object(default_login_service)
    sign_in = operation_provider(SignIn, login_service=login_service, realm="main")


class TestOperationProvider:
    def test_builds_operation_with_dependencies(self) -> None:
        container = Container()

        operation = container.sign_in()

        assert isinstance(operation, SignIn)
        assert operation.dependency("login_service") is default_login_service
        assert operation.dependency("realm") == "main"

    def test_new_operation_per_call(self) -> None:
        container = Container()

        assert container.sign_in() is not container.sign_in()

    def test_dependencies_can_be_overridden(self) -> None:
        container = Container()
        replacement = MagicMock()
        replacement.sign_in.return_value = "session"

        with container.login_service.override(replacement):
            operation = container.sign_in().run(login="pawel", password="abc")

        assert operation.subject == "session"
        replacement.sign_in.assert_called_once_with("pawel", "abc")
