"""Decision gate report artifacts (JSON + markdown)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, TextIO

from decern_gate.types import (
    GateReport,
    JudgeAllowed,
    JudgePlanUnavailable,
    ValidateOk,
    ValidationAttempt,
)

REPORT_JSON = "DECISION_GATE_REPORT.json"
REPORT_MD = "DECISION_GATE_REPORT.md"
SCHEMA_VERSION = "1.0"


def _attempt_to_dict(attempt: ValidationAttempt) -> dict[str, Any]:
    outcome = attempt.outcome
    data: dict[str, Any] = {
        "reference": attempt.reference.value,
        "kind": attempt.reference.kind.value,
    }
    if isinstance(outcome, ValidateOk):
        data.update(
            {
                "result": "ok",
                "status": outcome.status,
                "has_linked_pr": outcome.has_linked_pr,
                "observation_only": outcome.observation_only,
            }
        )
    else:
        data.update({"result": "fail", "http_status": outcome.http_status, "reason": outcome.reason})
    return data


def _judge_to_dict(report: GateReport) -> dict[str, Any] | None:
    outcome = report.judge
    if outcome is None:
        return None
    if isinstance(outcome, JudgeAllowed):
        result = "allowed"
    elif isinstance(outcome, JudgePlanUnavailable):
        result = "plan_unavailable"
    else:
        result = "blocked"
    payload = report.diff_payload
    return {
        "result": result,
        "reason": outcome.reason,
        "truncated": payload.truncated if payload else None,
        "excluded_paths": list(payload.excluded_paths) if payload else [],
    }


def report_to_dict(report: GateReport) -> dict[str, Any]:
    """Serialize a gate report. Credentials are never part of a report."""
    verdict = report.verdict
    policy = report.policy
    return {
        "schema_version": SCHEMA_VERSION,
        "status": "passed" if report.exit_code == 0 else "blocked",
        "exit_code": report.exit_code,
        "cause": verdict.cause.value if verdict and verdict.cause else None,
        "detail": verdict.detail if verdict else "",
        "changed_files": list(report.changed_files),
        "policy": {
            "required": policy.required,
            "reason": policy.reason,
            "matched_paths": list(policy.matched_paths),
        }
        if policy
        else None,
        "references": [{"value": ref.value, "kind": ref.kind.value} for ref in report.references],
        "validation": [_attempt_to_dict(attempt) for attempt in report.attempts],
        "winning_reference": report.winning_reference.value if report.winning_reference else None,
        "judge": _judge_to_dict(report),
    }


def write_gate_report(report: GateReport, out_dir: Path) -> tuple[Path, Path]:
    """Write DECISION_GATE_REPORT.json and .md into ``out_dir``."""
    out_dir.mkdir(parents=True, exist_ok=True)

    json_path = out_dir / REPORT_JSON
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(report_to_dict(report), f, indent=2, sort_keys=True)
        f.write("\n")

    md_path = out_dir / REPORT_MD
    with open(md_path, "w", encoding="utf-8") as f:
        _write_markdown_report(f, report)

    return json_path, md_path


def _write_markdown_report(f: TextIO, report: GateReport) -> None:
    """Write human-readable markdown report."""
    data = report_to_dict(report)
    f.write("# Decern Decision Gate Report\n\n")

    status_emoji = "✅" if data["status"] == "passed" else "❌"
    f.write(f"**Status**: {status_emoji} {data['status'].upper()}\n\n")
    if data["cause"]:
        f.write(f"**Cause**: {data['cause']}\n\n")
    if data["detail"]:
        f.write(f"**Detail**: {data['detail']}\n\n")

    f.write("## Policy\n\n")
    f.write(f"- Changed files: {len(report.changed_files)}\n")
    policy = data["policy"]
    if policy is None:
        f.write("- Decision required: unknown (diff unavailable)\n\n")
    else:
        f.write(f"- Decision required: {'YES' if policy['required'] else 'NO'}\n")
        f.write(f"- Reason: {policy['reason']}\n\n")
        if policy["matched_paths"]:
            f.write("**Matched paths:**\n\n")
            for path in policy["matched_paths"]:
                f.write(f"- `{path}`\n")
            f.write("\n")

    if report.references:
        f.write("## Decision References\n\n")
        for ref in data["references"]:
            f.write(f"- `{ref['value']}` ({ref['kind']})\n")
        f.write("\n")

    if report.attempts:
        f.write("## Validation\n\n")
        for attempt in data["validation"]:
            if attempt["result"] == "ok":
                f.write(f"- ✅ `{attempt['reference']}`: ok")
                if attempt["status"]:
                    f.write(f" (status: {attempt['status']})")
                f.write("\n")
            else:
                f.write(
                    f"- ❌ `{attempt['reference']}`: HTTP {attempt['http_status']}, {attempt['reason']}\n"
                )
        f.write("\n")

    judge = data["judge"]
    if judge is not None:
        judge_symbol = {"allowed": "✅", "plan_unavailable": "⚠️", "blocked": "❌"}[judge["result"]]
        f.write("## Judge\n\n")
        f.write(f"**Result**: {judge_symbol} {judge['result']}\n\n")
        if judge["reason"]:
            f.write(f"**Reason**: {judge['reason']}\n\n")
        if judge["truncated"]:
            f.write("**Payload truncated**: yes\n\n")
        if judge["excluded_paths"]:
            f.write("**Excluded from payload:**\n\n")
            for path in judge["excluded_paths"]:
                f.write(f"- `{path}`\n")
            f.write("\n")

    f.write("## Exit Code\n\n")
    if data["exit_code"] == 0:
        f.write("0 (success - gate passed)\n")
    else:
        f.write("1 (blocked - approved decision required)\n")

