"""Result type for explicit error handling.

Every step of the release pipeline returns ``Ok(value)`` or ``Err(error)``
instead of raising, so callers branch on the outcome explicitly:

    match publisher.publish(payload, branch, PublishMethod.CREATE):
        case Ok(published):
            console.success(f"configured {published.branch.name}")
        case Err(ConflictSignal()):
            console.info("already configured")
        case Err(error):
            console.error(error.message)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Successful outcome carrying ``value``."""

    value: T

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        """Transform the carried value."""
        return Ok(f(self.value))

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failed outcome carrying ``error``."""

    error: E

    def map(self, f: Callable[..., object]) -> Err[E]:
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
