"""Human-readable rendering of an audit report."""

from __future__ import annotations

from collections.abc import Sequence

from flakeaudit.issue import (
    ConditionViolation,
    Disallowed,
    Issue,
    IssueReport,
    NonUpstreamOwner,
    Outdated,
)
from flakeaudit.policy import MAX_DAYS, PolicyConfig


def issue_message(issue: Issue, *, max_days: int = MAX_DAYS) -> str:
    name = issue.input_name
    match issue.kind:
        case Disallowed(reference=reference):
            return f"the `{name}` input uses the non-supported Git branch `{reference}` for Nixpkgs"
        case Outdated(days_old=days_old):
            return f"the `{name}` input is {days_old} days old (the max allowed is {max_days})"
        case NonUpstreamOwner(owner=owner):
            return (
                f"the `{name}` input has the non-upstream owner `{owner}` "
                "rather than `NixOS` (upstream)"
            )
        case ConditionViolation():
            return f"the `{name}` input violates the supplied condition"


def render_text(
    report: IssueReport,
    *,
    lock_path: str,
    config: PolicyConfig | None = None,
    fail_mode: bool = False,
) -> str:
    config = config or PolicyConfig()
    if report.clean:
        return f"The flake checker scanned {lock_path} and found no issues\n"

    lines: list[str] = []
    if report.condition is not None:
        lines.append(f"You supplied this CEL condition for your flake:\n\n{report.condition}\n")
        lines.append("The following inputs violate that condition:\n")
        lines.extend(f"* {name}" for name in report.inputs_with_violations())
        return "\n".join(lines) + "\n"

    level = "ERROR" if fail_mode else "WARNING"
    for issue in report.issues:
        lines.append(f"{level}: {issue_message(issue, max_days=config.max_days)}")
    return "\n".join(lines) + "\n"


def render_markdown(
    report: IssueReport,
    *,
    lock_path: str,
    allowed_refs: Sequence[str],
    config: PolicyConfig | None = None,
) -> str:
    config = config or PolicyConfig()
    lines = ["# Flake checker results", ""]
    if report.clean:
        lines.append(f"The flake checker scanned `{lock_path}` and found no issues :white_check_mark:")
        return "\n".join(lines) + "\n"

    issue_word = "issue" if len(report.issues) == 1 else "issues"
    lines.append(f"Found {len(report.issues)} {issue_word} in `{lock_path}`:")
    lines.append("")

    if report.condition is not None:
        lines.extend(["### Condition violations", "", "```cel", report.condition, "```", ""])
        lines.extend(f"* `{name}`" for name in report.inputs_with_violations())
        return "\n".join(lines) + "\n"

    sections = (
        ("disallowed", "Non-supported Git branches"),
        ("outdated", f"Outdated inputs (older than {config.max_days} days)"),
        ("non_upstream", "Non-upstream owners"),
    )
    for kind, title in sections:
        matching = report.of_kind(kind)
        if not matching:
            continue
        lines.extend([f"### {title}", ""])
        lines.extend(f"* {issue_message(issue, max_days=config.max_days)}" for issue in matching)
        lines.append("")

    if report.of_kind("disallowed"):
        lines.append("Supported branches: " + ", ".join(f"`{ref}`" for ref in allowed_refs))
    return "\n".join(lines).rstrip("\n") + "\n"


__all__ = ["issue_message", "render_markdown", "render_text"]
