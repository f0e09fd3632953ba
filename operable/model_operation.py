"""
Model operations: operations whose subject is a model instance.

A model operation declares, once per class, which model it builds, whether it
creates a fresh instance or updates an existing one, and optional declarative
validation rules expressed as a pydantic model.

Example:
    @dataclass
    class Player:
        name: str | None = None
        age: int | None = None

    class PlayerRules(BaseModel):
        name: str = Field(min_length=1)

    class RegisterPlayer(ModelOperation, model=Player, validation=PlayerRules):
        def execute(self, params: dict[str, Any]) -> Any:
            return self.validate(params, on_valid=self.check_age)

        def check_age(self, player: Player) -> None:
            if player.age < 10:
                player.errors.add("age", "you are too young to play with me")

The configuration can also be given as an explicit ``ModelConfig``:

    class RegisterPlayer(ModelOperation):
        config = ModelConfig(model=Player, validation=PlayerRules)
"""

import dataclasses
import types
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import Any, ClassVar

import structlog
from pydantic import BaseModel, ValidationError

from operable.error_collection import ErrorCollection, add_details
from operable.exceptions import DeclarationError, ModelNotFoundError
from operable.operation import Operation

logger = structlog.get_logger(__name__)

# (model type, run params) -> existing model instance
Finder = Callable[[type, Mapping[str, Any]], Any]


class ActionKind(str, Enum):
    """How a model operation obtains its model instance."""

    CREATE = "create"
    UPDATE = "update"


@dataclass(frozen=True)
class ModelConfig:
    """
    Declaration of a model operation.

    Attributes:
        model: Model class, constructed with params as keyword arguments
        action_kind: ``create`` builds a new instance, ``update`` looks one up
            with ``finder`` and assigns params to it
        validation: Pydantic model whose fields describe the rules the model's
            attributes must satisfy
        finder: Looks up the instance to update
    """

    model: type | None = None
    action_kind: ActionKind = ActionKind.CREATE
    validation: type[BaseModel] | None = None
    finder: Finder | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.model, type):
            raise DeclarationError("Missing model class", {"model": repr(self.model)})

        try:
            action_kind = ActionKind(self.action_kind)
        except ValueError:
            raise DeclarationError(
                "Unknown action_kind type", {"action_kind": self.action_kind}
            ) from None
        object.__setattr__(self, "action_kind", action_kind)

        if self.validation is not None and not (
            isinstance(self.validation, type) and issubclass(self.validation, BaseModel)
        ):
            raise DeclarationError(
                "Validation must be a pydantic model class", {"validation": repr(self.validation)}
            )

        if self.finder is not None and not callable(self.finder):
            raise DeclarationError("Finder must be callable", {"finder": repr(self.finder)})


class ValidatedModel:
    """
    Mixin added to the model class by ``ModelOperation``.

    Models without their own ``errors`` get an ``ErrorCollection``, and models
    without their own ``is_valid`` get one that only resets those errors. The
    mixin comes after the model in the MRO, so a model's native ``errors`` and
    ``is_valid`` always win.
    """

    validation_rules: ClassVar[type[BaseModel] | None] = None

    @cached_property
    def errors(self) -> ErrorCollection:
        return ErrorCollection()

    def is_valid(self) -> bool:
        errors = self.errors
        if hasattr(errors, "clear"):
            errors.clear()
        return True


def build_validated_type(
    model: type, validation: type[BaseModel] | None, operation_name: str
) -> type:
    """
    Derive a subclass of ``model`` carrying ``validation``.

    The derived class is named ``<Model>.<Operation>`` so errors and logs show
    which operation built the instance. It is created through the model's own
    metaclass, so pydantic models stay pydantic models.
    """
    name = f"{model.__name__}.{operation_name}"

    def fill_namespace(namespace: dict[str, Any]) -> None:
        namespace["__module__"] = model.__module__
        namespace["__qualname__"] = name
        namespace["__annotations__"] = {"validation_rules": ClassVar[type[BaseModel] | None]}
        namespace["validation_rules"] = validation

    return types.new_class(name, (model, ValidatedModel), exec_body=fill_namespace)


def check_rules(rules: type[BaseModel], model_instance: Any) -> ErrorCollection:
    """Validate the attributes of ``model_instance`` against ``rules``."""
    try:
        rules.model_validate(model_instance, from_attributes=True)
    except ValidationError as error:
        return ErrorCollection.from_validation_error(error)
    return ErrorCollection()


class ModelOperation(Operation):
    """
    Operation whose subject is an instance of a declared model.

    Without an ``execute`` override the operation validates its params.
    """

    config: ClassVar[ModelConfig | None] = None

    def __init_subclass__(cls, **declaration: Any) -> None:
        super().__init_subclass__()
        if declaration:
            if cls.config is not None:
                cls.config = dataclasses.replace(cls.config, **declaration)
            else:
                cls.config = ModelConfig(**declaration)
        elif cls.config is not None and not isinstance(cls.config, ModelConfig):
            raise DeclarationError(
                f"{cls.__name__}.config must be a ModelConfig", {"config": repr(cls.config)}
            )

    def __init__(self, dependencies: Mapping[str, Any] | None = None) -> None:
        super().__init__(dependencies)
        self._validated_type: type | None = None

    @classmethod
    def declaration(cls) -> ModelConfig:
        """
        Return the class configuration.

        Raises:
            DeclarationError: If the class declares no model
        """
        if cls.config is None:
            raise DeclarationError(f"Missing model class for {cls.__name__}")
        return cls.config

    @classmethod
    def model_type(cls) -> type:
        return cls.declaration().model  # type: ignore[return-value]

    @classmethod
    def action_kind(cls) -> ActionKind:
        return cls.declaration().action_kind

    @classmethod
    def validation(cls) -> type[BaseModel] | None:
        return cls.declaration().validation

    def execute(self, params: dict[str, Any]) -> Any:
        return self.validate(params)

    def validate(
        self,
        params: Mapping[str, Any],
        on_valid: Callable[[Any], Any] | None = None,
    ) -> Any:
        """
        Build the model from ``params`` and validate it.

        Args:
            params: Attributes of the model (and, for updates, its identifier)
            on_valid: Extra checks run only when the declared rules pass. It
                may add errors to the model or call ``fail``.

        Returns:
            The model instance, which is also the operation subject
        """
        model_instance = self.setup_model(params)
        valid = True
        if self.validation() is not None:
            valid = self.execute_validation(model_instance)
        if on_valid is not None and valid and ErrorCollection.of(model_instance).is_empty:
            on_valid(model_instance)
        self.subject = model_instance
        return model_instance

    def setup_model(self, params: Mapping[str, Any]) -> Any:
        return self.instantiate_model(self.validation_augmented_type(), params)

    def validation_augmented_type(self) -> type:
        """Model subclass carrying the validation rules, built once per instance."""
        if self._validated_type is None:
            self._validated_type = build_validated_type(
                self.model_type(), self.validation(), type(self).__name__
            )
        return self._validated_type

    def instantiate_model(self, model_type: type, params: Mapping[str, Any]) -> Any:
        if self.action_kind() is ActionKind.UPDATE:
            model_instance = self.update_model(model_type, params)
        else:
            model_instance = self.create_model(model_type, params)
        logger.debug(
            "model_instantiated",
            operation=type(self).__name__,
            model=model_type.__name__,
            action_kind=self.action_kind().value,
        )
        return model_instance

    def create_model(self, model_type: type, params: Mapping[str, Any]) -> Any:
        return model_type(**params)

    def update_model(self, model_type: type, params: Mapping[str, Any]) -> Any:
        """
        Look up the model and assign ``params`` to it.

        Raises:
            ModelNotFoundError: If the finder returns ``None``
            DeclarationError: If the finder returns something that is not
                the declared model
        """
        model_instance = self.find_model(model_type, params)
        if model_instance is None:
            raise ModelNotFoundError(self.model_type().__name__, params.get("id"))
        if not isinstance(model_instance, model_type):
            self.adopt_model(model_instance, model_type)
        self.update_model_attrs(model_instance, params)
        return model_instance

    def adopt_model(self, model_instance: Any, model_type: type) -> None:
        """
        Switch an instance of the declared model to ``model_type``.

        Accepts plain instances and instances already switched by another
        operation on the same model.
        """
        declared = self.model_type()
        current = type(model_instance)
        if current is not declared and not (
            issubclass(current, ValidatedModel) and current.__bases__[0] is declared
        ):
            raise DeclarationError(
                f"{type(self).__name__} finder must return a {declared.__name__}",
                {"returned": type(model_instance).__name__},
            )
        try:
            model_instance.__class__ = model_type
        except TypeError as error:
            # slotted models cannot gain the mixin's instance dict
            raise DeclarationError(
                f"{declared.__name__} instances cannot be switched to {model_type.__name__}; "
                "build them from the type passed to the finder",
                {"model": declared.__name__},
            ) from error

    def find_model(self, model_type: type, params: Mapping[str, Any]) -> Any:
        """
        Look up the instance an update applies to.

        Uses the declared ``finder``. Override when the lookup needs the
        operation's dependencies.

        Raises:
            DeclarationError: If no finder is declared
        """
        finder = self.declaration().finder
        if finder is None:
            raise DeclarationError(f"{type(self).__name__} updates models but declares no finder")
        return finder(model_type, params)

    def update_model_attrs(self, model_instance: Any, params: Mapping[str, Any]) -> None:
        for attribute, value in params.items():
            setattr(model_instance, attribute, value)

    def execute_validation(self, model_instance: Any) -> bool:
        """
        Run the model's ``is_valid`` and then the declared rules.

        Rule errors are appended to the model's ``errors``, whether that is the
        mixin's collection or the model's own list or mapping.
        """
        valid = bool(model_instance.is_valid())
        rule_errors = check_rules(self.validation(), model_instance)  # type: ignore[arg-type]
        if rule_errors:
            add_details(model_instance.errors, rule_errors)
        return valid and rule_errors.is_empty

    def form(self, params: Mapping[str, Any] | None = None) -> Any:
        return self.model(params)

    def model(self, params: Mapping[str, Any] | None = None) -> Any:
        """
        Return the subject of the last run, or a fresh model for presentation.

        The fresh model is not stored as the subject.
        """
        if self.subject is not None:
            return self.subject
        return self.create_model(self.model_type(), params or {})

    def _collect_errors(self) -> ErrorCollection:
        subject_errors = self._subject_errors()
        if self._fail_errors is None:
            return subject_errors
        if subject_errors.is_empty:
            return self._fail_errors
        merged = ErrorCollection(self._fail_errors)
        merged.extend(subject_errors)
        return merged
