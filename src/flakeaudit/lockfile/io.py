"""flake.lock parser."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from flakeaudit.errors import InvalidDocumentError, MalformedJsonError, NotFoundError
from flakeaudit.lockfile.model import LockDocument, Node
from flakeaudit.lockfile.resolve import DEFAULT_MAX_DEPTH, project_roots
from flakeaudit.lockfile.shapes import parse_node


def parse_lock_document(raw: str | bytes, *, max_depth: int = DEFAULT_MAX_DEPTH) -> LockDocument:
    try:
        payload = json.loads(raw, object_pairs_hook=_reject_duplicate_keys)
    except (ValueError, RecursionError) as exc:
        raise MalformedJsonError(
            "couldn't parse flake.lock as JSON.",
            hint=str(exc),
        ) from exc

    if not isinstance(payload, dict):
        raise InvalidDocumentError("top-level value must be a JSON object")

    nodes_raw = _required(payload, "nodes", dict)
    root_name = _required(payload, "root", str)
    version = _required(payload, "version", int)

    nodes: dict[str, Node] = {name: parse_node(value) for name, value in nodes_raw.items()}
    resolved_roots = project_roots(nodes, root_name, max_depth=max_depth)
    return LockDocument(
        nodes=nodes,
        root_name=root_name,
        version=version,
        resolved_roots=resolved_roots,
    )


def read_lock_document(path: str | Path, *, max_depth: int = DEFAULT_MAX_DEPTH) -> LockDocument:
    lock_path = Path(path)
    try:
        raw = lock_path.read_bytes()
    except OSError as exc:
        raise NotFoundError(
            "couldn't find the flake.lock file.",
            hint=exc.strerror,
            context={"path": str(lock_path)},
        ) from exc
    return parse_lock_document(raw, max_depth=max_depth)


def _reject_duplicate_keys(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    parsed: dict[str, Any] = {}
    for key, value in pairs:
        if key in parsed:
            raise InvalidDocumentError(f"duplicate field `{key}`")
        parsed[key] = value
    return parsed


def _required(payload: dict[str, Any], key: str, kind: type) -> Any:
    if key not in payload:
        raise InvalidDocumentError(f"missing field `{key}`")
    value = payload[key]
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise InvalidDocumentError(f"invalid `{key}` value: expected {kind.__name__}")
    return value


__all__ = ["parse_lock_document", "read_lock_document"]
