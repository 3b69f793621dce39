"""flake.lock document model, parsing and input resolution."""

from .io import parse_lock_document, read_lock_document
from .model import (
    ArchiveDependency,
    IndirectDependency,
    InputRef,
    LockDocument,
    Node,
    OpaqueNode,
    PathDependency,
    RepositoryDependency,
    RootNode,
    as_chain,
)
from .resolve import DEFAULT_MAX_DEPTH, node_inputs, project_roots, resolve
from .shapes import NODE_SHAPES, extract_inputs, parse_node

__all__ = [
    "ArchiveDependency",
    "DEFAULT_MAX_DEPTH",
    "IndirectDependency",
    "InputRef",
    "LockDocument",
    "NODE_SHAPES",
    "Node",
    "OpaqueNode",
    "PathDependency",
    "RepositoryDependency",
    "RootNode",
    "as_chain",
    "extract_inputs",
    "node_inputs",
    "parse_lock_document",
    "parse_node",
    "project_roots",
    "read_lock_document",
    "resolve",
]
