"""Issue model and report export helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, Literal

import cbor2

IssueKindName = Literal["disallowed", "outdated", "non_upstream", "violation"]


@dataclass(frozen=True, slots=True)
class Disallowed:
    reference: str

    name: ClassVar[str] = "disallowed"


@dataclass(frozen=True, slots=True)
class Outdated:
    days_old: int

    name: ClassVar[str] = "outdated"


@dataclass(frozen=True, slots=True)
class NonUpstreamOwner:
    owner: str

    name: ClassVar[str] = "non_upstream"


@dataclass(frozen=True, slots=True)
class ConditionViolation:
    name: ClassVar[str] = "violation"


IssueKind = Disallowed | Outdated | NonUpstreamOwner | ConditionViolation


@dataclass(frozen=True, slots=True)
class Issue:
    input_name: str
    kind: IssueKind

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"input": self.input_name, "kind": self.kind.name}
        match self.kind:
            case Disallowed(reference=reference):
                payload["reference"] = reference
            case Outdated(days_old=days_old):
                payload["num_days_old"] = days_old
            case NonUpstreamOwner(owner=owner):
                payload["owner"] = owner
        return payload


@dataclass(frozen=True, slots=True)
class IssueReport:
    issues: tuple[Issue, ...] = ()
    condition: str | None = None
    schema_version: int = 1

    @property
    def clean(self) -> bool:
        return not self.issues

    def of_kind(self, kind: IssueKindName) -> tuple[Issue, ...]:
        return tuple(issue for issue in self.issues if issue.kind.name == kind)

    def counts(self) -> dict[str, int]:
        counts = {"disallowed": 0, "outdated": 0, "non_upstream": 0, "violation": 0}
        for issue in self.issues:
            counts[issue.kind.name] += 1
        return counts

    def inputs_with_violations(self) -> list[str]:
        return [issue.input_name for issue in self.of_kind("violation")]

    def to_json(self, path: str | Path | None = None) -> str:
        encoded = json.dumps(self._payload(), indent=2, sort_keys=True) + "\n"
        if path is not None:
            Path(path).write_text(encoded, encoding="utf-8")
        return encoded

    def to_cbor(self, path: str | Path | None = None) -> bytes:
        encoded = cbor2.dumps(self._payload(), canonical=True)
        if path is not None:
            Path(path).write_bytes(encoded)
        return encoded

    def _payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "schema_version": self.schema_version,
            "clean": self.clean,
            "counts": self.counts(),
            "issues": [issue.to_dict() for issue in self.issues],
        }
        if self.condition is not None:
            payload["condition"] = self.condition
            payload["inputs_with_violations"] = self.inputs_with_violations()
        return payload


__all__ = [
    "ConditionViolation",
    "Disallowed",
    "Issue",
    "IssueKind",
    "IssueKindName",
    "IssueReport",
    "NonUpstreamOwner",
    "Outdated",
]
