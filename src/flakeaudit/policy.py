"""Policy configuration and the fixed dependency checks."""

from __future__ import annotations

import time
from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass

from flakeaudit.errors import InvalidDocumentError
from flakeaudit.issue import Disallowed, Issue, NonUpstreamOwner, Outdated
from flakeaudit.lockfile.model import (
    ArchiveDependency,
    Node,
    PathDependency,
    RepositoryDependency,
)

MAX_DAYS = 30
SECONDS_PER_DAY = 86400
UPSTREAM_OWNER = "nixos"

CheckableNode = RepositoryDependency | ArchiveDependency | PathDependency


@dataclass(frozen=True, slots=True)
class PolicyConfig:
    check_supported_ref: bool = True
    check_outdated: bool = True
    check_owner: bool = True
    target_keys: tuple[str, ...] = ("nixpkgs",)
    max_days: int = MAX_DAYS
    # Path inputs are only selected as targets when this is set.
    include_path_nodes: bool = False


@dataclass(frozen=True, slots=True)
class DependencyFacts:
    """The checkable facts of one selected dependency."""

    name: str
    git_ref: str | None
    last_modified: int | None
    owner: str | None

    @classmethod
    def of(cls, name: str, node: CheckableNode) -> DependencyFacts:
        match node:
            case RepositoryDependency():
                return cls(
                    name=name,
                    git_ref=node.original.git_ref,
                    last_modified=node.locked.last_modified,
                    owner=node.original.owner,
                )
            case PathDependency():
                return cls(
                    name=name,
                    git_ref=node.original.git_ref,
                    last_modified=node.locked.last_modified,
                    owner=None,
                )
            case ArchiveDependency():
                return cls(
                    name=name,
                    git_ref=None,
                    last_modified=node.locked.last_modified,
                    owner=None,
                )


def num_days_old(last_modified: int, *, now: int) -> int:
    """Whole days between ``last_modified`` and ``now``, truncated toward zero."""
    diff = now - last_modified
    if diff < 0:
        return -(-diff // SECONDS_PER_DAY)
    return diff // SECONDS_PER_DAY


def select_dependencies(
    resolved_roots: Mapping[str, Node],
    config: PolicyConfig,
) -> list[DependencyFacts]:
    """Pick the target dependencies, in ``config.target_keys`` order."""
    keys = list(dict.fromkeys(config.target_keys))
    missing = [key for key in keys if key not in resolved_roots]
    if missing:
        noun = "keys" if len(missing) > 1 else "key"
        raise InvalidDocumentError(
            f"no dependency found for specified {noun}: {', '.join(missing)}"
        )

    checkable: tuple[type, ...] = (RepositoryDependency, ArchiveDependency)
    if config.include_path_nodes:
        checkable = (*checkable, PathDependency)

    selected: list[DependencyFacts] = []
    for key in keys:
        node = resolved_roots[key]
        if isinstance(node, checkable):
            selected.append(DependencyFacts.of(key, node))
    return selected


def evaluate(
    resolved_roots: Mapping[str, Node],
    config: PolicyConfig,
    allowed_refs: Sequence[str],
    *,
    now: int | None = None,
) -> list[Issue]:
    """Run the enabled fixed checks against every selected dependency."""
    if now is None:
        now = int(time.time())
    allowed = frozenset(allowed_refs)

    issues: list[Issue] = []
    for dep in select_dependencies(resolved_roots, config):
        issues.extend(_check_dependency(dep, config, allowed, now=now))
    return issues


def _check_dependency(
    dep: DependencyFacts,
    config: PolicyConfig,
    allowed: Collection[str],
    *,
    now: int,
) -> list[Issue]:
    issues: list[Issue] = []

    if config.check_supported_ref and dep.git_ref is not None:
        if dep.git_ref not in allowed:
            issues.append(Issue(dep.name, Disallowed(reference=dep.git_ref)))

    if config.check_outdated and dep.last_modified is not None:
        days_old = num_days_old(dep.last_modified, now=now)
        if days_old > config.max_days:
            issues.append(Issue(dep.name, Outdated(days_old=days_old)))

    if config.check_owner and dep.owner is not None:
        if dep.owner.lower() != UPSTREAM_OWNER:
            issues.append(Issue(dep.name, NonUpstreamOwner(owner=dep.owner)))

    return issues


__all__ = [
    "DependencyFacts",
    "MAX_DAYS",
    "PolicyConfig",
    "UPSTREAM_OWNER",
    "evaluate",
    "num_days_old",
    "select_dependencies",
]
