"""Public package entrypoint for the flake.lock auditor."""

from .condition import evaluate_condition
from .errors import (
    AllowedRefsError,
    ConditionCompileError,
    ConditionRuntimeError,
    CycleSuspectedError,
    FlakeAuditError,
    InvalidDocumentError,
    MalformedJsonError,
    MissingNodeError,
    NonBooleanConditionError,
    NotFoundError,
)
from .issue import (
    ConditionViolation,
    Disallowed,
    Issue,
    IssueReport,
    NonUpstreamOwner,
    Outdated,
)
from .lockfile import LockDocument, parse_lock_document, read_lock_document, resolve
from .policy import PolicyConfig, evaluate

__all__ = [
    "AllowedRefsError",
    "ConditionCompileError",
    "ConditionRuntimeError",
    "ConditionViolation",
    "CycleSuspectedError",
    "Disallowed",
    "FlakeAuditError",
    "InvalidDocumentError",
    "Issue",
    "IssueReport",
    "LockDocument",
    "MalformedJsonError",
    "MissingNodeError",
    "NonBooleanConditionError",
    "NonUpstreamOwner",
    "NotFoundError",
    "Outdated",
    "PolicyConfig",
    "evaluate",
    "evaluate_condition",
    "parse_lock_document",
    "read_lock_document",
    "resolve",
]
