"""Explicit success/failure values returned by the auth and upload core.

Callers at the HTTP boundary pattern-match on these instead of catching
exceptions::

    match await issuer.rotate(token):
        case Ok(value=pair):
            ...
        case Err(kind=ErrorKind.REUSE_DETECTED):
            ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    INVALID_CREDENTIAL = "invalid_credential"
    REUSE_DETECTED = "reuse_detected"
    IDENTITY_NOT_FOUND = "identity_not_found"
    ISSUANCE_FAILED = "issuance_failed"
    REVOCATION_FAILED = "revocation_failed"
    MISSING_INPUT = "missing_input"
    UPLOAD_FAILED = "upload_failed"
    BIND_FAILED = "bind_failed"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    cause: BaseException | None = field(default=None, compare=False, repr=False)


Result = Union[Ok[T], Err]
