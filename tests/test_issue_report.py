import json
from pathlib import Path

import cbor2

from flakeaudit.issue import (
    ConditionViolation,
    Disallowed,
    Issue,
    IssueReport,
    NonUpstreamOwner,
    Outdated,
)
from flakeaudit.policy import PolicyConfig
from flakeaudit.summary import issue_message, render_markdown, render_text

STANDARD_ISSUES = (
    Issue("nixpkgs", Disallowed(reference="this-should-fail")),
    Issue("nixpkgs", Outdated(days_old=45)),
    Issue("nixpkgs", NonUpstreamOwner(owner="bitcoin-miner-org")),
)


def test_issue_serialises_to_plain_dict() -> None:
    assert [issue.to_dict() for issue in STANDARD_ISSUES] == [
        {"input": "nixpkgs", "kind": "disallowed", "reference": "this-should-fail"},
        {"input": "nixpkgs", "kind": "outdated", "num_days_old": 45},
        {"input": "nixpkgs", "kind": "non_upstream", "owner": "bitcoin-miner-org"},
    ]
    assert Issue("nixpkgs", ConditionViolation()).to_dict() == {
        "input": "nixpkgs",
        "kind": "violation",
    }


def test_report_counts_issues_by_kind() -> None:
    report = IssueReport(issues=STANDARD_ISSUES)
    assert report.counts() == {"disallowed": 1, "outdated": 1, "non_upstream": 1, "violation": 0}
    assert not report.clean
    assert IssueReport().clean


def test_report_export_json_and_cbor_are_stable(tmp_path: Path) -> None:
    report = IssueReport(issues=STANDARD_ISSUES)

    assert report.to_json() == report.to_json()
    assert report.to_cbor() == report.to_cbor()

    json_path = tmp_path / "report.json"
    cbor_path = tmp_path / "report.cbor"
    report.to_json(json_path)
    report.to_cbor(cbor_path)

    decoded = json.loads(json_path.read_text(encoding="utf-8"))
    assert decoded == cbor2.loads(cbor_path.read_bytes())
    assert decoded["counts"]["outdated"] == 1
    assert "condition" not in decoded


def test_condition_report_lists_violating_inputs() -> None:
    report = IssueReport(
        issues=(Issue("nixpkgs", ConditionViolation()), Issue("nixpkgs-alt", ConditionViolation())),
        condition="owner == 'NixOS'",
    )
    payload = json.loads(report.to_json())
    assert payload["condition"] == "owner == 'NixOS'"
    assert payload["inputs_with_violations"] == ["nixpkgs", "nixpkgs-alt"]


def test_render_text_clean_report() -> None:
    text = render_text(IssueReport(), lock_path="flake.lock")
    assert text == "The flake checker scanned flake.lock and found no issues\n"


def test_render_text_uses_fail_mode_level() -> None:
    report = IssueReport(issues=STANDARD_ISSUES)

    warnings = render_text(report, lock_path="flake.lock")
    errors = render_text(report, lock_path="flake.lock", fail_mode=True)

    assert warnings.splitlines()[0].startswith("WARNING: ")
    assert all(line.startswith("ERROR: ") for line in errors.splitlines())
    assert "non-supported Git branch `this-should-fail`" in warnings
    assert "45 days old (the max allowed is 30)" in warnings


def test_render_text_condition_layout() -> None:
    report = IssueReport(
        issues=(Issue("nixpkgs", ConditionViolation()),),
        condition="owner == 'NixOS'",
    )
    text = render_text(report, lock_path="flake.lock")
    assert "owner == 'NixOS'" in text
    assert text.rstrip().endswith("* nixpkgs")


def test_render_markdown_groups_issue_kinds() -> None:
    report = IssueReport(issues=STANDARD_ISSUES)
    markdown = render_markdown(
        report,
        lock_path="flake.lock",
        allowed_refs=["nixos-unstable"],
        config=PolicyConfig(max_days=20),
    )

    assert markdown.startswith("# Flake checker results")
    assert "Found 3 issues in `flake.lock`" in markdown
    assert "### Outdated inputs (older than 20 days)" in markdown
    assert "### Non-upstream owners" in markdown
    assert "Supported branches: `nixos-unstable`" in markdown


def test_issue_message_mentions_upstream_owner() -> None:
    message = issue_message(Issue("nixpkgs", NonUpstreamOwner(owner="pretty-shady")))
    assert message == (
        "the `nixpkgs` input has the non-upstream owner `pretty-shady` rather than `NixOS` (upstream)"
    )
