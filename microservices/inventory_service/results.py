"""
Operation results returned by InventoryService.

Recoverable failures (validation, not found, insufficient stock, refused
lifecycle transition) come back as Err values so callers handle each kind
explicitly; fatal DataIntegrityError is raised instead.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from .protocols import InventoryServiceError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: InventoryServiceError

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def code(self) -> str:
        return self.error.code

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err]


__all__ = ["Ok", "Err", "Result"]
