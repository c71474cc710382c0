"""Discriminated results returned by backend and service operations.

Every operation returns either ``Ok(value)`` or ``Err(kind, message)``; callers
branch on ``result.ok`` instead of inspecting loosely-shaped dicts.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")

NOT_FOUND_OR_DENIED = "Not found or access denied."


class ErrorKind(str, enum.Enum):
    BACKEND = "backend"
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    CONSISTENCY = "consistency"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str

    @property
    def ok(self) -> bool:
        return False

    @classmethod
    def backend(cls, message: str = "The request could not be completed. Please try again.") -> "Err":
        return cls(ErrorKind.BACKEND, message)

    @classmethod
    def validation(cls, message: str) -> "Err":
        return cls(ErrorKind.VALIDATION, message)

    @classmethod
    def denied(cls) -> "Err":
        # same wording as not_found() so callers cannot probe for existence
        return cls(ErrorKind.AUTHORIZATION, NOT_FOUND_OR_DENIED)

    @classmethod
    def not_found(cls, message: str = NOT_FOUND_OR_DENIED) -> "Err":
        return cls(ErrorKind.NOT_FOUND, message)

    @classmethod
    def conflict(cls, message: str) -> "Err":
        return cls(ErrorKind.CONFLICT, message)

    @classmethod
    def consistency(cls, message: str) -> "Err":
        return cls(ErrorKind.CONSISTENCY, message)


Result = Union[Ok[T], Err]


HTTP_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHORIZATION: 404,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.BACKEND: 500,
    ErrorKind.CONSISTENCY: 500,
}
