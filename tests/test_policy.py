import pytest

from flakeaudit.allowed_refs import ALLOWED_REFS
from flakeaudit.errors import InvalidDocumentError
from flakeaudit.issue import Disallowed, Issue, NonUpstreamOwner, Outdated
from flakeaudit.lockfile import parse_lock_document, read_lock_document
from flakeaudit.policy import PolicyConfig, evaluate, num_days_old, select_dependencies

NOW = 1_700_000_000
DAY = 86400


def _lenient(**overrides) -> PolicyConfig:
    return PolicyConfig(check_outdated=False, **overrides)


@pytest.mark.parametrize("name", ["flake.clean.0.lock", "flake.follows.0.lock"])
def test_clean_locks_have_no_issues(fixture_path, name: str) -> None:
    document = read_lock_document(fixture_path(name))
    assert evaluate(document.resolved_roots, _lenient(), ALLOWED_REFS) == []


def test_dirty_lock_reports_disallowed_ref_and_non_upstream_owner(fixture_path) -> None:
    document = read_lock_document(fixture_path("flake.dirty.0.lock"))
    last_modified = document.resolved_roots["nixpkgs"].locked.last_modified

    issues = evaluate(
        document.resolved_roots,
        PolicyConfig(),
        ["nixos-unstable"],
        now=last_modified + DAY,
    )

    assert issues == [
        Issue("nixpkgs", Disallowed(reference="this-should-fail")),
        Issue("nixpkgs", NonUpstreamOwner(owner="bitcoin-miner-org")),
    ]


def test_explicit_keys_are_checked_in_declared_order(fixture_path) -> None:
    document = read_lock_document(fixture_path("flake.explicit-keys.0.lock"))
    config = _lenient(target_keys=("nixpkgs", "nixpkgs-alt"))

    issues = evaluate(document.resolved_roots, config, ALLOWED_REFS)

    assert issues == [Issue("nixpkgs-alt", NonUpstreamOwner(owner="seems-pretty-shady"))]


@pytest.mark.parametrize(
    ("name", "keys", "expected"),
    [
        (
            "flake.clean.0.lock",
            ("nixpkgs", "foo", "bar"),
            "no dependency found for specified keys: foo, bar",
        ),
        (
            "flake.clean.0.lock",
            ("nixpkgs", "nixpkgs-other"),
            "no dependency found for specified key: nixpkgs-other",
        ),
    ],
)
def test_missing_keys_are_all_reported(fixture_path, name, keys, expected) -> None:
    document = read_lock_document(fixture_path(name))
    with pytest.raises(InvalidDocumentError) as excinfo:
        evaluate(document.resolved_roots, _lenient(target_keys=keys), ALLOWED_REFS)
    assert excinfo.value.reason == expected
    assert str(excinfo.value) == f"invalid flake.lock: {expected}"


def test_all_checks_disabled_yields_nothing(fixture_path) -> None:
    document = read_lock_document(fixture_path("flake.dirty.0.lock"))
    config = PolicyConfig(check_supported_ref=False, check_outdated=False, check_owner=False)
    assert evaluate(document.resolved_roots, config, [], now=NOW * 2) == []


def test_outdated_reports_truncated_day_count(lock_builder) -> None:
    lock_builder.github("nixpkgs", last_modified=NOW - (45 * DAY + DAY - 1))
    document = parse_lock_document(lock_builder.dumps())

    issues = evaluate(document.resolved_roots, PolicyConfig(), ALLOWED_REFS, now=NOW)

    assert issues == [Issue("nixpkgs", Outdated(days_old=45))]


def test_outdated_boundary_is_strictly_greater_than_max_days(lock_builder) -> None:
    lock_builder.github("nixpkgs", last_modified=NOW - 30 * DAY)
    document = parse_lock_document(lock_builder.dumps())

    assert evaluate(document.resolved_roots, PolicyConfig(), ALLOWED_REFS, now=NOW) == []
    assert evaluate(
        document.resolved_roots, PolicyConfig(max_days=29), ALLOWED_REFS, now=NOW
    ) == [Issue("nixpkgs", Outdated(days_old=30))]


def test_one_dependency_can_emit_all_three_issues(lock_builder) -> None:
    lock_builder.github("nixpkgs", owner="someone", ref="main", last_modified=NOW - 90 * DAY)
    document = parse_lock_document(lock_builder.dumps())

    issues = evaluate(document.resolved_roots, PolicyConfig(), ALLOWED_REFS, now=NOW)

    assert [issue.kind.name for issue in issues] == ["disallowed", "outdated", "non_upstream"]


def test_owner_check_is_case_insensitive(lock_builder) -> None:
    lock_builder.github("nixpkgs", owner="nixos")
    document = parse_lock_document(lock_builder.dumps())
    assert evaluate(document.resolved_roots, _lenient(), ALLOWED_REFS) == []


def test_missing_facts_skip_their_rules(lock_builder) -> None:
    lock_builder.github("nixpkgs", owner="someone", ref=None, last_modified=None)
    document = parse_lock_document(lock_builder.dumps())

    issues = evaluate(document.resolved_roots, PolicyConfig(), ALLOWED_REFS, now=NOW)

    assert issues == [Issue("nixpkgs", NonUpstreamOwner(owner="someone"))]


def test_evaluate_is_idempotent(fixture_path) -> None:
    document = read_lock_document(fixture_path("flake.explicit-keys.0.lock"))
    config = PolicyConfig(target_keys=("nixpkgs-alt", "nixpkgs"))
    first = evaluate(document.resolved_roots, config, ["nixos-23.05"], now=NOW)
    second = evaluate(document.resolved_roots, config, ["nixos-23.05"], now=NOW)
    assert first == second
    assert [issue.input_name for issue in first][0] == "nixpkgs-alt"


def test_non_checkable_variants_are_skipped(lock_builder) -> None:
    lock_builder.node(
        "nixpkgs",
        {
            "locked": {
                "lastModified": 1,
                "narHash": "sha256-p",
                "path": "/nix/store/nixpkgs",
                "type": "path",
            },
            "original": {"path": "/home/me/nixpkgs", "ref": "my-branch", "type": "path"},
        },
    )
    document = parse_lock_document(lock_builder.dumps())

    assert evaluate(document.resolved_roots, PolicyConfig(), ALLOWED_REFS, now=NOW) == []

    with_paths = PolicyConfig(include_path_nodes=True)
    issues = evaluate(document.resolved_roots, with_paths, ALLOWED_REFS, now=NOW)
    assert [issue.kind.name for issue in issues] == ["disallowed", "outdated"]


def test_archive_dependency_is_age_checked(lock_builder) -> None:
    lock_builder.node(
        "nixpkgs",
        {
            "locked": {
                "lastModified": NOW - 100 * DAY,
                "narHash": "sha256-t",
                "type": "tarball",
                "url": "https://example.org/nixpkgs.tar.gz",
            },
            "original": {"type": "tarball", "url": "https://example.org/nixpkgs.tar.gz"},
        },
    )
    document = parse_lock_document(lock_builder.dumps())

    issues = evaluate(document.resolved_roots, PolicyConfig(), ALLOWED_REFS, now=NOW)

    assert issues == [Issue("nixpkgs", Outdated(days_old=100))]


def test_duplicate_target_keys_are_checked_once(fixture_path) -> None:
    document = read_lock_document(fixture_path("flake.dirty.0.lock"))
    config = _lenient(target_keys=("nixpkgs", "nixpkgs"))
    selected = select_dependencies(document.resolved_roots, config)
    assert [dep.name for dep in selected] == ["nixpkgs"]


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0, 0), (DAY - 1, 0), (DAY, 1), (31 * DAY + 5, 31), (-(DAY + 1), -1)],
)
def test_num_days_old_truncates_toward_zero(seconds: int, expected: int) -> None:
    assert num_days_old(NOW - seconds, now=NOW) == expected
