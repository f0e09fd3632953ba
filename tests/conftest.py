"""Pytest configuration and fixtures."""

from collections.abc import Generator
from dataclasses import dataclass
from typing import Any

import pytest

from operable.config import get_settings


@dataclass
class Player:
    """Plain model used by model operation tests."""

    name: str | None = None
    age: int | None = None


class CallbackRecorder:
    """Bound object recording which callback it received."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []

    def success_action(self, operation: Any) -> None:
        self.calls.append(("success", operation))

    def fail_action(self, operation: Any) -> None:
        self.calls.append(("fail", operation))


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Settings are cached; make every test read the environment afresh."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def recorder() -> CallbackRecorder:
    return CallbackRecorder()
