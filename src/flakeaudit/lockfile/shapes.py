"""Structural node-shape dispatch.

flake.lock nodes carry no variant tag, so a node's variant is inferred from
the fields it has. ``NODE_SHAPES`` is tried in order, most specific shape
first; a matcher returns ``None`` when the value does not fit its shape.
Values no matcher accepts are kept as ``OpaqueNode`` so that unknown node
types never fail the parse.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from flakeaudit.errors import InvalidDocumentError
from flakeaudit.lockfile.model import (
    ArchiveDependency,
    ArchiveLocked,
    ArchiveOriginal,
    IndirectDependency,
    IndirectOriginal,
    InputRef,
    Node,
    OpaqueNode,
    PathDependency,
    PathLocked,
    PathOriginal,
    RepoLocked,
    RepoOriginal,
    RepositoryDependency,
    RootNode,
)

_MISSING = object()
_INVALID = object()

_DEPENDENCY_KEYS = frozenset({"flake", "inputs", "locked", "original"})

# Canonical attribute -> accepted JSON spellings.
LAST_MODIFIED = ("lastModified", "last_modified")
NAR_HASH = ("narHash", "nar_hash")
NODE_TYPE = ("type", "node_type")
GIT_REF = ("ref", "git_ref")


@dataclass(frozen=True, slots=True)
class NodeShape:
    variant: str
    match: Callable[[Any], Node | None]


def parse_input_map(value: Any) -> dict[str, InputRef] | None:
    """Return the input mapping held in ``value``, or ``None`` if it is not one."""
    if not isinstance(value, dict):
        return None
    parsed: dict[str, InputRef] = {}
    for name, ref in value.items():
        if isinstance(ref, str):
            parsed[name] = ref
        elif isinstance(ref, list) and all(isinstance(item, str) for item in ref):
            parsed[name] = tuple(ref)
        else:
            return None
    return parsed


def extract_inputs(raw: Any) -> dict[str, InputRef] | None:
    """Read the ``inputs`` field of an opaque node into the input-mapping schema.

    Returns ``None`` when the node has no ``inputs`` field at all.
    """
    if not isinstance(raw, dict) or "inputs" not in raw:
        return None
    parsed = parse_input_map(raw["inputs"])
    if parsed is None:
        raise InvalidDocumentError(
            "lock node `inputs` must map names to a node name or a list of node names"
        )
    return parsed


def parse_node(raw: Any) -> Node:
    for shape in NODE_SHAPES:
        node = shape.match(raw)
        if node is not None:
            return node
    return OpaqueNode(raw=raw)


def _lookup(payload: dict[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        if name in payload:
            return payload[name]
    return _MISSING


def _required_str(payload: dict[str, Any], *names: str) -> Any:
    value = _lookup(payload, names)
    if not isinstance(value, str):
        return _INVALID
    return value


def _optional_str(payload: dict[str, Any], *names: str) -> Any:
    value = _lookup(payload, names)
    if value is _MISSING or value is None:
        return None
    if not isinstance(value, str):
        return _INVALID
    return value


def _optional_timestamp(payload: dict[str, Any]) -> Any:
    value = _lookup(payload, LAST_MODIFIED)
    if value is _MISSING or value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        return _INVALID
    return value


def _valid(*values: Any) -> bool:
    return all(value is not _INVALID for value in values)


def _match_repo_locked(payload: Any) -> RepoLocked | None:
    if not isinstance(payload, dict):
        return None
    nar_hash = _required_str(payload, *NAR_HASH)
    owner = _required_str(payload, "owner")
    repo = _required_str(payload, "repo")
    rev = _required_str(payload, "rev")
    node_type = _required_str(payload, *NODE_TYPE)
    last_modified = _optional_timestamp(payload)
    if not _valid(nar_hash, owner, repo, rev, node_type, last_modified):
        return None
    return RepoLocked(
        nar_hash=nar_hash,
        owner=owner,
        repo=repo,
        rev=rev,
        node_type=node_type,
        last_modified=last_modified,
    )


def _match_repo_original(payload: Any) -> RepoOriginal | None:
    if not isinstance(payload, dict):
        return None
    owner = _required_str(payload, "owner")
    repo = _required_str(payload, "repo")
    node_type = _required_str(payload, *NODE_TYPE)
    git_ref = _optional_str(payload, *GIT_REF)
    if not _valid(owner, repo, node_type, git_ref):
        return None
    return RepoOriginal(owner=owner, repo=repo, node_type=node_type, git_ref=git_ref)


def _match_indirect_original(payload: Any) -> IndirectOriginal | None:
    if not isinstance(payload, dict):
        return None
    node_id = _required_str(payload, "id")
    node_type = _required_str(payload, *NODE_TYPE)
    if not _valid(node_id, node_type):
        return None
    return IndirectOriginal(id=node_id, node_type=node_type)


def _match_path_locked(payload: Any) -> PathLocked | None:
    if not isinstance(payload, dict):
        return None
    nar_hash = _required_str(payload, *NAR_HASH)
    path = _required_str(payload, "path")
    node_type = _required_str(payload, *NODE_TYPE)
    last_modified = _optional_timestamp(payload)
    if not _valid(nar_hash, path, node_type, last_modified):
        return None
    return PathLocked(
        nar_hash=nar_hash,
        path=path,
        node_type=node_type,
        last_modified=last_modified,
    )


def _match_path_original(payload: Any) -> PathOriginal | None:
    if not isinstance(payload, dict):
        return None
    path = _required_str(payload, "path")
    node_type = _required_str(payload, *NODE_TYPE)
    git_ref = _optional_str(payload, *GIT_REF)
    if not _valid(path, node_type, git_ref):
        return None
    return PathOriginal(path=path, node_type=node_type, git_ref=git_ref)


def _match_archive_locked(payload: Any) -> ArchiveLocked | None:
    if not isinstance(payload, dict):
        return None
    nar_hash = _required_str(payload, *NAR_HASH)
    url = _required_str(payload, "url")
    node_type = _required_str(payload, *NODE_TYPE)
    last_modified = _optional_timestamp(payload)
    if not _valid(nar_hash, url, node_type, last_modified):
        return None
    return ArchiveLocked(
        nar_hash=nar_hash,
        url=url,
        node_type=node_type,
        last_modified=last_modified,
    )


def _match_archive_original(payload: Any) -> ArchiveOriginal | None:
    if not isinstance(payload, dict):
        return None
    url = _required_str(payload, "url")
    node_type = _required_str(payload, *NODE_TYPE)
    if not _valid(url, node_type):
        return None
    return ArchiveOriginal(url=url, node_type=node_type)


def _match_root(raw: Any) -> RootNode | None:
    if not isinstance(raw, dict) or set(raw) != {"inputs"}:
        return None
    inputs = parse_input_map(raw["inputs"])
    if inputs is None:
        return None
    return RootNode(inputs=inputs)


def _dependency_matcher(
    node_cls: type[Node],
    *,
    locked: Callable[[Any], Any],
    original: Callable[[Any], Any],
) -> Callable[[Any], Node | None]:
    def match(raw: Any) -> Node | None:
        if not isinstance(raw, dict) or not raw.keys() <= _DEPENDENCY_KEYS:
            return None
        if "locked" not in raw or "original" not in raw:
            return None
        locked_record = locked(raw["locked"])
        original_record = original(raw["original"])
        if locked_record is None or original_record is None:
            return None
        inputs = None
        if "inputs" in raw:
            inputs = parse_input_map(raw["inputs"])
            if inputs is None:
                return None
        flake = raw.get("flake")
        if flake is not None and not isinstance(flake, bool):
            return None
        return node_cls(
            locked=locked_record,
            original=original_record,
            inputs=inputs,
            flake=flake,
        )

    return match


NODE_SHAPES: tuple[NodeShape, ...] = (
    NodeShape("Root", _match_root),
    NodeShape(
        "Repository",
        _dependency_matcher(
            RepositoryDependency,
            locked=_match_repo_locked,
            original=_match_repo_original,
        ),
    ),
    NodeShape(
        "Indirect",
        _dependency_matcher(
            IndirectDependency,
            locked=_match_repo_locked,
            original=_match_indirect_original,
        ),
    ),
    NodeShape(
        "Path",
        _dependency_matcher(
            PathDependency,
            locked=_match_path_locked,
            original=_match_path_original,
        ),
    ),
    NodeShape(
        "Archive",
        _dependency_matcher(
            ArchiveDependency,
            locked=_match_archive_locked,
            original=_match_archive_original,
        ),
    ),
)


__all__ = [
    "NODE_SHAPES",
    "NodeShape",
    "extract_inputs",
    "parse_input_map",
    "parse_node",
]
