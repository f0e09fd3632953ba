"""Operations: use-case objects with a uniform run/callback contract."""

from operable.binding import Callback, FunctionCallback, MethodCallback, as_callback
from operable.config import Settings, configure_logging, get_settings
from operable.error_collection import ErrorCollection, ErrorDetail
from operable.exceptions import (
    DeclarationError,
    MissingDependencyError,
    ModelNotFoundError,
    OperableError,
)
from operable.model_operation import ActionKind, ModelConfig, ModelOperation
from operable.operation import Operation
from operable.rescue import RescuePolicy, RescueRule

__all__ = [
    "ActionKind",
    "Callback",
    "DeclarationError",
    "ErrorCollection",
    "ErrorDetail",
    "FunctionCallback",
    "MethodCallback",
    "MissingDependencyError",
    "ModelNotFoundError",
    "ModelConfig",
    "ModelOperation",
    "OperableError",
    "Operation",
    "RescuePolicy",
    "RescueRule",
    "Settings",
    "as_callback",
    "configure_logging",
    "get_settings",
]
