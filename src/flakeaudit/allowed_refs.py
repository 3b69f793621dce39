"""Allowed Nixpkgs refs: bundled dataset, file loader and upstream refresh."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from urllib.error import URLError
from urllib.request import urlopen

from flakeaudit.errors import AllowedRefsError

ALLOWED_REFS_URL = "https://prometheus.nixos.org/api/v1/query?query=channel_revision"

# Verify with `flake-lock-audit --check-allowed-refs`.
ALLOWED_REFS: tuple[str, ...] = (
    "nixos-24.05",
    "nixos-24.05-small",
    "nixos-24.11",
    "nixos-24.11-small",
    "nixos-unstable",
    "nixos-unstable-small",
    "nixpkgs-24.05-darwin",
    "nixpkgs-24.11-darwin",
    "nixpkgs-unstable",
)


def parse_allowed_refs_response(payload: Any) -> list[str]:
    """Extract the currently supported channels from a ``channel_revision`` query."""
    try:
        results = payload["data"]["result"]
        channels = [
            str(item["metric"]["channel"])
            for item in results
            if item["metric"].get("current") == "1"
        ]
    except (KeyError, TypeError, AttributeError) as exc:
        raise AllowedRefsError(
            "Unexpected channel_revision response shape.",
            hint=f"Missing or invalid field: {exc}",
        ) from exc
    return sorted(channels)


def fetch_allowed_refs(url: str = ALLOWED_REFS_URL, *, timeout: float = 10.0) -> list[str]:
    try:
        with urlopen(url, timeout=timeout) as response:  # noqa: S310 - fixed https endpoint
            payload = json.loads(response.read().decode("utf-8"))
    except (URLError, TimeoutError) as exc:
        raise AllowedRefsError(
            "Couldn't fetch the supported channel list.",
            context={"url": url, "reason": str(exc)},
        ) from exc
    except json.JSONDecodeError as exc:
        raise AllowedRefsError(
            "Supported channel list response is not JSON.",
            context={"url": url},
        ) from exc
    return parse_allowed_refs_response(payload)


def allowed_refs_are_current(
    allowed_refs: list[str] | tuple[str, ...],
    url: str = ALLOWED_REFS_URL,
) -> bool:
    return fetch_allowed_refs(url) == sorted(allowed_refs)


def load_allowed_refs(path: str | Path) -> list[str]:
    """Read refs from ``{"allowed_branches": [...]}`` or a bare JSON list."""
    refs_path = Path(path)
    try:
        payload = json.loads(refs_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise AllowedRefsError(
            "Allowed refs file could not be read.",
            context={"path": str(refs_path), "reason": str(exc.strerror)},
        ) from exc
    except json.JSONDecodeError as exc:
        raise AllowedRefsError(
            "Allowed refs file is not valid JSON.",
            hint=str(exc),
            context={"path": str(refs_path)},
        ) from exc

    if isinstance(payload, dict):
        payload = payload.get("allowed_branches")
    if not isinstance(payload, list) or not all(isinstance(item, str) for item in payload):
        raise AllowedRefsError(
            "Allowed refs file must hold a list of branch names.",
            context={"path": str(refs_path)},
        )
    return list(payload)


__all__ = [
    "ALLOWED_REFS",
    "ALLOWED_REFS_URL",
    "allowed_refs_are_current",
    "fetch_allowed_refs",
    "load_allowed_refs",
    "parse_allowed_refs_response",
]
