"""Typed foundry error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across API surfaces."""

    INPUT = "E_INPUT"
    REMOTE = "E_REMOTE"
    NOT_FOUND = "E_NOT_FOUND"
    PATH_ESCAPE = "E_PATH_ESCAPE"
    LOCKFILE = "E_LOCKFILE"
    POLICY = "E_POLICY"


class FoundryError(Exception):
    """Failure while resolving, fetching or locking a mold.

    Carries a stable code, an optional hint and string context. When raised
    from another exception, `to_dict` reports that cause as well.
    """

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        if self.__cause__ is not None:
            payload["cause"] = f"{type(self.__cause__).__name__}: {self.__cause__}"
        return payload

    @property
    def source(self) -> str | None:
        """Cache key of the mold the error concerns, when known."""
        return self.context.get("source") or None


class InputError(FoundryError):
    """Malformed reference string or constraint syntax."""

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.INPUT, hint=hint, context=context)


class RemoteError(FoundryError):
    """A git invocation against the origin or the bare clone failed."""

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.REMOTE, hint=hint, context=context)


class NotFoundError(FoundryError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.NOT_FOUND, hint=hint, context=context)


class PathEscapeError(FoundryError):
    """A computed path would leave the directory it must stay inside."""

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.PATH_ESCAPE, hint=hint, context=context)


class LockfileError(FoundryError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.LOCKFILE, hint=hint, context=context)


class PolicyError(FoundryError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.POLICY, hint=hint, context=context)


__all__ = [
    "ErrorCode",
    "FoundryError",
    "InputError",
    "LockfileError",
    "NotFoundError",
    "PathEscapeError",
    "PolicyError",
    "RemoteError",
]
