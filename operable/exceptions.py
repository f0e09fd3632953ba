"""
Exceptions raised by operations.

Business failures never raise: they are recorded through ``Operation.fail``
and surface via ``errors``. ``MissingDependencyError`` and
``DeclarationError`` are programming or wiring errors and always propagate
to the caller of ``run``. ``ModelNotFoundError`` propagates unless the
operation rescues it.
"""


class OperableError(Exception):
    """
    Base exception for all operable errors.

    All library exceptions inherit from this class
    so they can be caught and handled uniformly.
    """

    def __init__(self, message: str, details: dict[str, object] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class MissingDependencyError(OperableError):
    """
    Raised when an operation asks for a dependency it was not given.

    Example: ``dependency("login_service")`` on an operation built with ``{}``.
    """

    def __init__(self, key: object) -> None:
        super().__init__(f"Missing dependency: {key!r}", {"key": key})
        self.key = key


class DeclarationError(OperableError):
    """
    Raised when an operation type is declared incorrectly.

    Example: a model operation without a model, or an unknown action kind.
    """


class ModelNotFoundError(OperableError):
    """
    Raised when an update finds no model to apply params to.

    Unlike the errors above it describes missing data, so operations may
    turn it into a failure with ``rescue_from``.
    """

    def __init__(self, model_name: str, identifier: object = None) -> None:
        super().__init__(
            f"{model_name} with id {identifier!r} not found",
            {"model": model_name, "id": identifier},
        )
        self.model_name = model_name
        self.identifier = identifier
