"""
Error collection carried by operations.

Every operation exposes its failures as an ``ErrorCollection``: an ordered,
always-iterable list of ``ErrorDetail`` entries. An operation is successful
exactly when its collection is empty.

Example:
    errors = ErrorCollection.from_payload({"age": ["is too young"]})
    errors.add("name", "can't be blank", code="missing")

    errors.by_field()
    # {"age": ["is too young"], "name": ["can't be blank"]}
"""

from collections.abc import Iterable, Iterator, Mapping, MutableMapping, MutableSequence
from dataclasses import asdict, dataclass

from pydantic import ValidationError

from operable.exceptions import DeclarationError

# Field name used for entries that do not belong to a single attribute
BASE_FIELD = "base"

# Code of the entry recorded by a bare ``fail()``
FAILED_CODE = "failed"

DEFAULT_CODE = "invalid"

_DETAIL_KEYS = frozenset({"field", "code", "message"})


@dataclass(frozen=True)
class ErrorDetail:
    """A single failure: which field, what kind, and an optional human message."""

    field: str | None = None
    code: str = DEFAULT_CODE
    message: str | None = None

    def to_primitive(self) -> dict[str, str]:
        """Convert to a plain dict, omitting unset values."""
        return {key: value for key, value in asdict(self).items() if value is not None}


class ErrorCollection:
    """
    Ordered collection of ``ErrorDetail`` entries.

    The collection compares equal to a list of primitives
    (``[{"field": "email", "code": "unknown"}]``) and to a mapping of
    messages grouped by field (``{"age": ["is too young"]}``), which keeps
    assertions in callers short.
    """

    __hash__ = None  # type: ignore[assignment]

    def __init__(self, details: Iterable[ErrorDetail] = ()) -> None:
        self._details: list[ErrorDetail] = list(details)

    @classmethod
    def from_payload(cls, payload: object) -> "ErrorCollection":
        """
        Build a collection from a fail payload.

        Accepted payloads:
        - ``True``: a single generic failure entry
        - ``None`` / ``False``: an empty collection
        - ``ErrorCollection`` / ``ErrorDetail``: copied
        - mapping of field to message(s)
        - iterable of mappings with ``field``/``code``/``message`` keys,
          or of details, or of plain messages
        - string or exception: a single entry carrying its text
        """
        if payload is None or payload is False:
            return cls()
        if payload is True:
            return cls([ErrorDetail(code=FAILED_CODE)])
        if isinstance(payload, ErrorCollection):
            return cls(payload)
        if isinstance(payload, ErrorDetail):
            return cls([payload])
        if isinstance(payload, str):
            return cls([ErrorDetail(code=FAILED_CODE, message=payload)])
        if isinstance(payload, BaseException):
            return cls([ErrorDetail(code=type(payload).__name__, message=str(payload))])
        if isinstance(payload, Mapping):
            return cls(_details_from_mapping(payload))
        if isinstance(payload, Iterable):
            collection = cls()
            for item in payload:
                collection.extend(cls.from_payload(item))
            return collection
        return cls([ErrorDetail(code=FAILED_CODE, message=str(payload))])

    @classmethod
    def from_validation_error(cls, error: ValidationError) -> "ErrorCollection":
        """Translate a pydantic ``ValidationError`` into error details."""
        details = []
        for item in error.errors():
            field = ".".join(str(part) for part in item["loc"]) or None
            details.append(ErrorDetail(field=field, code=item["type"], message=item["msg"]))
        return cls(details)

    @classmethod
    def of(cls, owner: object) -> "ErrorCollection":
        """
        Read the ``errors`` attribute of ``owner`` as a collection.

        An ``ErrorCollection`` is returned as is, so entries added later stay
        visible. Other payloads (lists, dicts of messages) are converted. A
        missing attribute, or an ``errors`` method, gives an empty collection.
        """
        errors = getattr(owner, "errors", None)
        if errors is None or callable(errors):
            return cls()
        if isinstance(errors, ErrorCollection):
            return errors
        return cls.from_payload(errors)

    def add(self, field: str | None, message: str | None = None, code: str = DEFAULT_CODE) -> None:
        """Append a single error."""
        self._details.append(ErrorDetail(field=field, code=code, message=message))

    def extend(self, details: Iterable[ErrorDetail]) -> None:
        """Append every detail from another collection or iterable."""
        self._details.extend(details)

    def clear(self) -> None:
        self._details.clear()

    @property
    def is_empty(self) -> bool:
        return not self._details

    def by_field(self) -> dict[str, list[str]]:
        """Group messages by field. Entries without a message contribute their code."""
        grouped: dict[str, list[str]] = {}
        for detail in self._details:
            key = detail.field or BASE_FIELD
            grouped.setdefault(key, []).append(detail.message or detail.code)
        return grouped

    def to_primitive(self) -> list[dict[str, str]]:
        """Convert to a list of plain dicts for serialization."""
        return [detail.to_primitive() for detail in self._details]

    def __iter__(self) -> Iterator[ErrorDetail]:
        return iter(self._details)

    def __len__(self) -> int:
        return len(self._details)

    def __bool__(self) -> bool:
        return bool(self._details)

    def __getitem__(self, index: int) -> ErrorDetail:
        return self._details[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCollection):
            return self._details == other._details
        if isinstance(other, Mapping):
            return self.by_field() == {
                key: [value] if isinstance(value, str) else list(value)
                for key, value in other.items()
            }
        if isinstance(other, list | tuple):
            if not all(isinstance(item, ErrorDetail | Mapping) for item in other):
                return False
            return self.to_primitive() == [
                item.to_primitive() if isinstance(item, ErrorDetail) else dict(item)
                for item in other
            ]
        return NotImplemented

    def __repr__(self) -> str:
        return f"ErrorCollection({self.to_primitive()!r})"


def _details_from_mapping(payload: Mapping[object, object]) -> list[ErrorDetail]:
    if payload and set(payload) <= _DETAIL_KEYS:
        return [ErrorDetail(**{str(key): value for key, value in payload.items()})]  # type: ignore[arg-type]

    details = []
    for field, messages in payload.items():
        if isinstance(messages, str) or not isinstance(messages, Iterable):
            messages = [messages]
        for message in messages:
            details.append(
                ErrorDetail(field=str(field), message=None if message is None else str(message))
            )
    return details


def add_details(target: object, details: Iterable[ErrorDetail]) -> None:
    """
    Append ``details`` to a model's own error container.

    Supports an ``ErrorCollection``, a mutable list (entries are appended as
    details) and a mutable mapping of field to messages.

    Raises:
        DeclarationError: If ``target`` is none of these
    """
    if isinstance(target, ErrorCollection | MutableSequence):
        target.extend(details)
    elif isinstance(target, MutableMapping):
        for detail in details:
            target.setdefault(detail.field or BASE_FIELD, []).append(detail.message or detail.code)
    else:
        raise DeclarationError(
            "Model errors must be a list, a mapping or an ErrorCollection",
            {"errors": type(target).__name__},
        )
