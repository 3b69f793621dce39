"""Typed error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across API surfaces."""

    NOT_FOUND = "E_NOT_FOUND"
    MALFORMED_JSON = "E_MALFORMED_JSON"
    INVALID_DOCUMENT = "E_INVALID_DOCUMENT"
    MISSING_NODE = "E_MISSING_NODE"
    CYCLE_SUSPECTED = "E_CYCLE_SUSPECTED"
    CONDITION_COMPILE = "E_CONDITION_COMPILE"
    CONDITION_RUNTIME = "E_CONDITION_RUNTIME"
    NON_BOOLEAN_CONDITION = "E_NON_BOOLEAN_CONDITION"
    ALLOWED_REFS = "E_ALLOWED_REFS"


class FlakeAuditError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: dict[str, str]

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

    @property
    def message(self) -> str:
        return super().__str__()

    def __str__(self) -> str:
        parts = [self.message]
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
            "message": self.message,
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class NotFoundError(FlakeAuditError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.NOT_FOUND, hint=hint, context=context)


class MalformedJsonError(FlakeAuditError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.MALFORMED_JSON, hint=hint, context=context)


class InvalidDocumentError(FlakeAuditError):
    """The lock parses as JSON but does not describe a usable lock graph."""

    reason: str

    def __init__(
        self,
        reason: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            f"invalid flake.lock: {reason}",
            code=ErrorCode.INVALID_DOCUMENT,
            hint=hint,
            context=context,
        )
        self.reason = reason


class MissingNodeError(FlakeAuditError):
    name: str

    def __init__(
        self,
        name: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            f"lock node `{name}` does not exist",
            code=ErrorCode.MISSING_NODE,
            hint=hint,
            context=context,
        )
        self.name = name


class CycleSuspectedError(FlakeAuditError):
    """Input indirections nest deeper than the resolver allows."""

    chain: tuple[str, ...]
    depth: int

    def __init__(
        self,
        chain: Sequence[str],
        *,
        depth: int,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        self.chain = tuple(chain)
        self.depth = depth
        super().__init__(
            f"input chain {'/'.join(self.chain)} nests more than {depth} levels deep",
            code=ErrorCode.CYCLE_SUSPECTED,
            hint=hint or "The lock's `follows` indirections probably form a cycle.",
            context=context,
        )


class ConditionCompileError(FlakeAuditError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CONDITION_COMPILE, hint=hint, context=context)


class ConditionRuntimeError(FlakeAuditError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CONDITION_RUNTIME, hint=hint, context=context)


class NonBooleanConditionError(FlakeAuditError):
    type_name: str

    def __init__(
        self,
        type_name: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            f"CEL conditions must return a Boolean but returned {type_name} instead",
            code=ErrorCode.NON_BOOLEAN_CONDITION,
            hint=hint,
            context=context,
        )
        self.type_name = type_name


class AllowedRefsError(FlakeAuditError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.ALLOWED_REFS, hint=hint, context=context)


__all__ = [
    "AllowedRefsError",
    "ConditionCompileError",
    "ConditionRuntimeError",
    "CycleSuspectedError",
    "ErrorCode",
    "FlakeAuditError",
    "InvalidDocumentError",
    "MalformedJsonError",
    "MissingNodeError",
    "NonBooleanConditionError",
    "NotFoundError",
]
