"""Input reference resolution over a lock node table."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from flakeaudit.errors import CycleSuspectedError, InvalidDocumentError, MissingNodeError
from flakeaudit.lockfile.model import InputMap, Node, OpaqueNode, RootNode, as_chain
from flakeaudit.lockfile.shapes import extract_inputs

DEFAULT_MAX_DEPTH = 64


def node_inputs(node: Node) -> InputMap | None:
    """Return the input mapping a node exposes for the next hop, if any."""
    if isinstance(node, OpaqueNode):
        return extract_inputs(node.raw)
    return node.inputs


def resolve(
    nodes: Mapping[str, Node],
    chain: Sequence[str],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Node:
    """Follow ``chain`` through ``nodes`` down to the node it points at.

    The first name selects a node from the table; each following name is
    looked up in the current node's ``inputs``. A chained reference found
    there is resolved again from the full table, never from the current
    node's own inputs.
    """
    return _resolve(nodes, tuple(chain), depth=0, max_depth=max_depth)


def _resolve(
    nodes: Mapping[str, Node],
    chain: tuple[str, ...],
    *,
    depth: int,
    max_depth: int,
) -> Node:
    if depth > max_depth:
        raise CycleSuspectedError(chain, depth=max_depth)
    if not chain:
        raise InvalidDocumentError("input reference chain must name at least one node")

    first, *hops = chain
    node = _lookup(nodes, first)
    path = first
    for hop in hops:
        inputs = node_inputs(node)
        if inputs is None:
            raise InvalidDocumentError(
                "lock node should have had some inputs but had none",
                context={"node": path, "variant": node.variant},
            )
        if hop not in inputs:
            raise InvalidDocumentError(
                f"lock node has no input named `{hop}`",
                context={"node": path},
            )
        ref = inputs[hop]
        if isinstance(ref, str):
            node = _lookup(nodes, ref)
        else:
            node = _resolve(nodes, as_chain(ref), depth=depth + 1, max_depth=max_depth)
        path = f"{path}/{hop}"
    return node


def _lookup(nodes: Mapping[str, Node], name: str) -> Node:
    try:
        return nodes[name]
    except KeyError:
        raise MissingNodeError(name) from None


def project_roots(
    nodes: Mapping[str, Node],
    root_name: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> dict[str, Node]:
    """Map every input declared on the root node to the node it resolves to."""
    root = _lookup(nodes, root_name)
    if not isinstance(root, RootNode):
        raise InvalidDocumentError(
            f"root node was not a Root node, but was a {root.variant} node",
            context={"root": root_name},
        )

    resolved: dict[str, Node] = {}
    for name, ref in root.inputs.items():
        try:
            resolved[name] = resolve(nodes, as_chain(ref), max_depth=max_depth)
        except (InvalidDocumentError, MissingNodeError, CycleSuspectedError) as exc:
            exc.context.setdefault("input", name)
            raise
    return resolved


__all__ = ["DEFAULT_MAX_DEPTH", "node_inputs", "project_roots", "resolve"]
