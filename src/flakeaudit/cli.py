"""Command-line entrypoint.

Every option falls back to a ``NIX_FLAKE_CHECKER_*`` environment variable so
the checker can be configured from CI without changing its invocation.
"""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path

from flakeaudit.allowed_refs import ALLOWED_REFS, allowed_refs_are_current, load_allowed_refs
from flakeaudit.condition import evaluate_condition
from flakeaudit.errors import FlakeAuditError, NotFoundError
from flakeaudit.issue import IssueReport
from flakeaudit.lockfile import read_lock_document
from flakeaudit.observability import StructuredLogger
from flakeaudit.policy import PolicyConfig, evaluate
from flakeaudit.summary import render_markdown, render_text

ENV_PREFIX = "NIX_FLAKE_CHECKER_"
_TRUE = frozenset({"1", "true", "yes", "on"})


def _env(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(ENV_PREFIX + name)
    if value is None or value == "":
        return None
    return value


def _env_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    value = _env(environ, name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE


def _split_keys(value: str) -> tuple[str, ...]:
    return tuple(key.strip() for key in value.split(",") if key.strip())


def build_parser(environ: Mapping[str, str] | None = None) -> argparse.ArgumentParser:
    env = os.environ if environ is None else environ
    parser = argparse.ArgumentParser(
        prog="flake-lock-audit",
        description="Check a flake.lock for outdated, unsupported or non-upstream Nixpkgs inputs.",
    )
    parser.add_argument(
        "flake_lock_path",
        nargs="?",
        default=_env(env, "FLAKE_LOCK_PATH") or "flake.lock",
    )
    parser.add_argument(
        "--check-supported",
        action=argparse.BooleanOptionalAction,
        default=_env_bool(env, "CHECK_SUPPORTED", True),
    )
    parser.add_argument(
        "--check-outdated",
        action=argparse.BooleanOptionalAction,
        default=_env_bool(env, "CHECK_OUTDATED", True),
    )
    parser.add_argument(
        "--check-owner",
        action=argparse.BooleanOptionalAction,
        default=_env_bool(env, "CHECK_OWNER", True),
    )
    parser.add_argument(
        "--nixpkgs-keys",
        type=_split_keys,
        default=_split_keys(_env(env, "NIXPKGS_KEYS") or "nixpkgs"),
        help="Comma-separated root inputs to check.",
    )
    parser.add_argument(
        "--include-path-nodes",
        action=argparse.BooleanOptionalAction,
        default=_env_bool(env, "INCLUDE_PATH_NODES", False),
    )
    parser.add_argument("--condition", default=_env(env, "CONDITION"))
    parser.add_argument(
        "--fail-mode",
        action=argparse.BooleanOptionalAction,
        default=_env_bool(env, "FAIL_MODE", False),
    )
    parser.add_argument(
        "--ignore-missing-flake-lock",
        action=argparse.BooleanOptionalAction,
        default=_env_bool(env, "IGNORE_MISSING_FLAKE_LOCK", True),
    )
    parser.add_argument("--allowed-refs-file", default=_env(env, "ALLOWED_REFS_FILE"))
    parser.add_argument(
        "--markdown-summary",
        action=argparse.BooleanOptionalAction,
        default=_env_bool(env, "MARKDOWN_SUMMARY", False),
        help="Append a Markdown summary to $GITHUB_STEP_SUMMARY.",
    )
    parser.add_argument("--report-json", default=_env(env, "REPORT_JSON"))
    parser.add_argument(
        "--report-cbor",
        default=_env(env, "REPORT_CBOR"),
        help="Write the issue report as canonical CBOR.",
    )
    parser.add_argument("--log-file", default=_env(env, "LOG_FILE"))
    parser.add_argument(
        "--check-allowed-refs",
        action="store_true",
        help="Compare the allowed refs against the live channel list and exit.",
    )
    return parser


def main(argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    env = os.environ if environ is None else environ
    args = build_parser(env).parse_args(argv)
    logger = StructuredLogger()
    try:
        return _run(args, env, logger)
    except FlakeAuditError as exc:
        logger.log_error(exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        if args.log_file:
            logger.to_json_lines(args.log_file)


def _run(args: argparse.Namespace, env: Mapping[str, str], logger: StructuredLogger) -> int:
    allowed_refs = list(ALLOWED_REFS)
    if args.allowed_refs_file:
        allowed_refs = load_allowed_refs(args.allowed_refs_file)
        logger.log(
            operation="allowed_refs",
            message="loaded allowed refs",
            extra={"path": args.allowed_refs_file, "count": len(allowed_refs)},
        )

    if args.check_allowed_refs:
        if allowed_refs_are_current(allowed_refs):
            print("The allowed refs are up to date")
            return 0
        print("The allowed refs are out of date", file=sys.stderr)
        return 1

    lock_path = str(args.flake_lock_path)
    logger.lock_path = lock_path
    try:
        document = read_lock_document(lock_path)
    except NotFoundError:
        if not args.ignore_missing_flake_lock:
            raise
        logger.log(operation="parse", message="flake.lock not found; skipping", level="warning")
        print(f"no flake.lock found at {lock_path}; nothing to check")
        return 0
    logger.log(
        operation="parse",
        message="parsed flake.lock",
        extra={"version": document.version, "inputs": sorted(document.resolved_roots)},
    )

    config = PolicyConfig(
        check_supported_ref=args.check_supported,
        check_outdated=args.check_outdated,
        check_owner=args.check_owner,
        target_keys=tuple(args.nixpkgs_keys),
        include_path_nodes=args.include_path_nodes,
    )
    if args.condition is not None:
        issues = evaluate_condition(
            document.resolved_roots, config, args.condition, allowed_refs
        )
    else:
        issues = evaluate(document.resolved_roots, config, allowed_refs)
    report = IssueReport(issues=tuple(issues), condition=args.condition)
    for issue in report.issues:
        logger.log_issue(issue, fail_mode=args.fail_mode)

    print(render_text(report, lock_path=lock_path, config=config, fail_mode=args.fail_mode), end="")
    if args.report_json:
        report.to_json(args.report_json)
    if args.report_cbor:
        report.to_cbor(args.report_cbor)
    if args.markdown_summary:
        _append_step_summary(
            env,
            render_markdown(report, lock_path=lock_path, allowed_refs=allowed_refs, config=config),
        )

    if args.fail_mode and not report.clean:
        return 1
    return 0


def _append_step_summary(env: Mapping[str, str], markdown: str) -> None:
    summary_path = env.get("GITHUB_STEP_SUMMARY")
    if not summary_path:
        print("warning: GITHUB_STEP_SUMMARY is not set; skipping Markdown summary", file=sys.stderr)
        return
    with Path(summary_path).open("a", encoding="utf-8") as handle:
        handle.write(markdown)


if __name__ == "__main__":
    raise SystemExit(main())
