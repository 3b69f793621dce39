"""Shared test fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"
NOW = 1_700_000_000
DAY = 86400


class LockBuilder:
    """Assemble flake.lock payloads node by node."""

    def __init__(self) -> None:
        self.nodes: dict[str, Any] = {}
        self.root_inputs: dict[str, Any] = {}

    def github(
        self,
        name: str,
        *,
        owner: str = "NixOS",
        repo: str = "nixpkgs",
        ref: str | None = "nixos-unstable",
        last_modified: int | None = NOW - DAY,
        inputs: dict[str, Any] | None = None,
        root: bool = True,
    ) -> LockBuilder:
        locked: dict[str, Any] = {
            "narHash": f"sha256-{name}",
            "owner": owner,
            "repo": repo,
            "rev": "0" * 40,
            "type": "github",
        }
        if last_modified is not None:
            locked["lastModified"] = last_modified
        original: dict[str, Any] = {"owner": owner, "repo": repo, "type": "github"}
        if ref is not None:
            original["ref"] = ref
        node: dict[str, Any] = {"locked": locked, "original": original}
        if inputs is not None:
            node["inputs"] = inputs
        return self.node(name, node, root=root)

    def node(self, name: str, payload: Any, *, root: bool = True) -> LockBuilder:
        self.nodes[name] = payload
        if root:
            self.root_inputs[name] = name
        return self

    def root_input(self, name: str, ref: str | list[str]) -> LockBuilder:
        self.root_inputs[name] = ref
        return self

    def payload(self) -> dict[str, Any]:
        nodes = dict(self.nodes)
        nodes["root"] = {"inputs": dict(self.root_inputs)}
        return {"nodes": nodes, "root": "root", "version": 7}

    def dumps(self) -> str:
        return json.dumps(self.payload())


@pytest.fixture
def lock_builder() -> LockBuilder:
    return LockBuilder()


@pytest.fixture
def fixture_path() -> Callable[[str], Path]:
    def _path(name: str) -> Path:
        return FIXTURES_DIR / name

    return _path
