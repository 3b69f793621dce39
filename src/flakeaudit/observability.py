"""Structured logging helpers for audit runs."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from flakeaudit.errors import FlakeAuditError
from flakeaudit.issue import Issue


@dataclass(slots=True)
class StructuredLogger:
    """Collects one record per audit step, keyed by lock file and input."""

    lock_path: str | None = None
    records: list[dict[str, Any]] = field(default_factory=list)

    def log(
        self,
        *,
        operation: str,
        message: str,
        input_name: str | None = None,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "lock": self.lock_path,
            "input": input_name,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)

    def log_issue(self, issue: Issue, *, fail_mode: bool = False) -> None:
        self.log(
            operation="evaluate",
            input_name=issue.input_name,
            message=issue.kind.name,
            level="error" if fail_mode else "warning",
            extra=issue.to_dict(),
        )

    def log_error(self, exc: FlakeAuditError) -> None:
        # Resolution failures carry the offending root input in their context.
        self.log(
            operation="audit",
            input_name=exc.context.get("input"),
            message=exc.message,
            level="error",
            extra=exc.to_dict(),
        )

    def records_for_input(self, input_name: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("input") == input_name]

    def issue_kinds(self) -> dict[str, list[str]]:
        """Map each flagged input to the issue kinds logged for it, in log order."""
        kinds: dict[str, list[str]] = {}
        for record in self.records:
            if record["operation"] == "evaluate" and record["input"] is not None:
                kinds.setdefault(record["input"], []).append(record["message"])
        return kinds

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path
