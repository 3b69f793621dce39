"""CEL condition evaluation over selected dependencies.

A condition is a single CEL expression that must hold for every target
dependency. Each dependency is exposed to the expression through these
variables:

``gitRef``
    The ``ref`` the input was declared with (``""`` when there is none).
``numDaysOld``
    Whole days since the locked revision was last modified (``0`` when unknown).
``owner``
    The repository owner (``""`` when the input has none).
``supportedRefs``
    The allowed refs list the run was started with.
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence

import celpy
from celpy import celtypes
from celpy.celparser import CELParseError
from celpy.evaluation import CELEvalError

from flakeaudit.errors import (
    ConditionCompileError,
    ConditionRuntimeError,
    NonBooleanConditionError,
)
from flakeaudit.issue import ConditionViolation, Issue
from flakeaudit.lockfile.model import Node
from flakeaudit.policy import DependencyFacts, PolicyConfig, num_days_old, select_dependencies

KEY_GIT_REF = "gitRef"
KEY_NUM_DAYS_OLD = "numDaysOld"
KEY_OWNER = "owner"
KEY_SUPPORTED_REFS = "supportedRefs"


def compile_condition(expression: str) -> celpy.Runner:
    env = celpy.Environment()
    try:
        ast = env.compile(expression)
    except CELParseError as exc:
        raise ConditionCompileError(
            "CEL parsing error.",
            hint=str(exc),
            context={"condition": expression},
        ) from exc
    return env.program(ast)


def evaluate_condition(
    resolved_roots: Mapping[str, Node],
    config: PolicyConfig,
    expression: str,
    allowed_refs: Sequence[str],
    *,
    now: int | None = None,
) -> list[Issue]:
    """Evaluate ``expression`` once per selected dependency.

    Dependencies the expression rejects are reported as condition
    violations. Evaluation errors and non-boolean results abort the run.
    """
    program = compile_condition(expression)
    if now is None:
        now = int(time.time())
    supported_refs = celtypes.ListType([celtypes.StringType(ref) for ref in allowed_refs])

    issues: list[Issue] = []
    for dep in select_dependencies(resolved_roots, config):
        activation = _activation(dep, supported_refs, now=now)
        try:
            result = program.evaluate(activation)
        except CELEvalError as exc:
            raise ConditionRuntimeError(
                "CEL execution error.",
                hint=str(exc),
                context={"condition": expression, "input": dep.name},
            ) from exc
        if isinstance(result, CELEvalError):
            raise ConditionRuntimeError(
                "CEL execution error.",
                hint=str(result),
                context={"condition": expression, "input": dep.name},
            )
        if not isinstance(result, celtypes.BoolType):
            raise NonBooleanConditionError(
                cel_type_name(result),
                context={"condition": expression, "input": dep.name},
            )
        if not result:
            issues.append(Issue(dep.name, ConditionViolation()))
    return issues


def cel_type_name(value: object) -> str:
    if value is None:
        return "null"
    name = type(value).__name__
    if name.endswith("Type") and name != "Type":
        name = name[: -len("Type")]
    return name.lower()


def _activation(
    dep: DependencyFacts,
    supported_refs: celtypes.ListType,
    *,
    now: int,
) -> dict[str, celtypes.Value]:
    days_old = 0
    if dep.last_modified is not None:
        days_old = num_days_old(dep.last_modified, now=now)
    return {
        KEY_GIT_REF: celtypes.StringType(dep.git_ref or ""),
        KEY_NUM_DAYS_OLD: celtypes.IntType(days_old),
        KEY_OWNER: celtypes.StringType(dep.owner or ""),
        KEY_SUPPORTED_REFS: supported_refs,
    }


__all__ = [
    "KEY_GIT_REF",
    "KEY_NUM_DAYS_OLD",
    "KEY_OWNER",
    "KEY_SUPPORTED_REFS",
    "cel_type_name",
    "compile_condition",
    "evaluate_condition",
]
