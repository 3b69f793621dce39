"""Typed flake.lock document model."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from flakeaudit.errors import InvalidDocumentError, MissingNodeError

InputRef = str | tuple[str, ...]
"""A node input reference: a single node name, or a `follows` chain of names."""

InputMap = Mapping[str, InputRef]


def as_chain(ref: InputRef) -> tuple[str, ...]:
    if isinstance(ref, str):
        return (ref,)
    return tuple(ref)


@dataclass(frozen=True, slots=True)
class RootNode:
    variant: ClassVar[str] = "Root"

    inputs: InputMap


@dataclass(frozen=True, slots=True)
class RepoLocked:
    nar_hash: str
    owner: str
    repo: str
    rev: str
    node_type: str
    last_modified: int | None = None


@dataclass(frozen=True, slots=True)
class RepoOriginal:
    owner: str
    repo: str
    node_type: str
    git_ref: str | None = None


@dataclass(frozen=True, slots=True)
class RepositoryDependency:
    """A Git forge input such as ``github:NixOS/nixpkgs/nixos-unstable``."""

    variant: ClassVar[str] = "Repository"

    locked: RepoLocked
    original: RepoOriginal
    inputs: InputMap | None = None
    flake: bool | None = None


@dataclass(frozen=True, slots=True)
class IndirectOriginal:
    id: str
    node_type: str


@dataclass(frozen=True, slots=True)
class IndirectDependency:
    """An input resolved through the flake registry, e.g. ``inputs.nixpkgs.url = "nixpkgs"``."""

    variant: ClassVar[str] = "Indirect"

    locked: RepoLocked
    original: IndirectOriginal
    inputs: InputMap | None = None
    flake: bool | None = None


@dataclass(frozen=True, slots=True)
class PathLocked:
    nar_hash: str
    path: str
    node_type: str
    last_modified: int | None = None


@dataclass(frozen=True, slots=True)
class PathOriginal:
    path: str
    node_type: str
    git_ref: str | None = None


@dataclass(frozen=True, slots=True)
class PathDependency:
    variant: ClassVar[str] = "Path"

    locked: PathLocked
    original: PathOriginal
    inputs: InputMap | None = None
    flake: bool | None = None


@dataclass(frozen=True, slots=True)
class ArchiveLocked:
    nar_hash: str
    url: str
    node_type: str
    last_modified: int | None = None


@dataclass(frozen=True, slots=True)
class ArchiveOriginal:
    url: str
    node_type: str


@dataclass(frozen=True, slots=True)
class ArchiveDependency:
    """A tarball or file input fetched from a URL."""

    variant: ClassVar[str] = "Archive"

    locked: ArchiveLocked
    original: ArchiveOriginal
    inputs: InputMap | None = None
    flake: bool | None = None


@dataclass(frozen=True, slots=True)
class OpaqueNode:
    """Any node shape without a typed model; keeps the raw JSON value."""

    variant: ClassVar[str] = "Opaque"

    raw: Any


Node = (
    RootNode
    | RepositoryDependency
    | IndirectDependency
    | PathDependency
    | ArchiveDependency
    | OpaqueNode
)


@dataclass(frozen=True, slots=True)
class LockDocument:
    nodes: Mapping[str, Node]
    root_name: str
    version: int
    resolved_roots: Mapping[str, Node] = field(default_factory=dict)

    @property
    def root(self) -> RootNode:
        node = self.nodes.get(self.root_name)
        if node is None:
            raise MissingNodeError(self.root_name)
        if not isinstance(node, RootNode):
            raise InvalidDocumentError(
                f"root node was not a Root node, but was a {node.variant} node",
                context={"root": self.root_name},
            )
        return node


__all__ = [
    "ArchiveDependency",
    "ArchiveLocked",
    "ArchiveOriginal",
    "IndirectDependency",
    "IndirectOriginal",
    "InputMap",
    "InputRef",
    "LockDocument",
    "Node",
    "OpaqueNode",
    "PathDependency",
    "PathLocked",
    "PathOriginal",
    "RepoLocked",
    "RepoOriginal",
    "RepositoryDependency",
    "RootNode",
    "as_chain",
]
