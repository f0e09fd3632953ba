"""
Dependency-injector integration.

Operations take their collaborators as a single mapping. ``operation_provider``
builds that mapping from container providers, so operations are declared in a
container next to the repositories and services they use:

    class Container(containers.DeclarativeContainer):
        user_repository = providers.Factory(UserRepository, db=db)
        login_service = providers.Singleton(LoginService)

        sign_in = operation_provider(
            SignIn,
            login_service=login_service,
            user_repository=user_repository,
        )

    operation = container.sign_in()
"""

from typing import Any

from dependency_injector import providers

from operable.operation import Operation


def operation_provider(operation_class: type[Operation], **dependencies: Any) -> providers.Factory:
    """
    Factory provider creating a new ``operation_class`` on every call.

    Args:
        operation_class: Operation subclass to build
        **dependencies: Dependency name to provider (or plain value)

    Returns:
        Factory whose ``dependencies`` argument is resolved from a ``providers.Dict``
    """
    return providers.Factory(operation_class, dependencies=providers.Dict(**dependencies))
