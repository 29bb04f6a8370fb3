"""Decision gate orchestration.

One run walks a fixed sequence of checkpoints and stops at the first one
that decides the outcome:

    policy check -> reference extraction -> config check -> validate loop
    -> linked-PR check (optional) -> judge (optional)

Every checkpoint fails closed. Remote calls are awaited one at a time.
"""

from __future__ import annotations

import logging

import httpx
from rich.console import Console

from decern_gate.api import humanize_label
from decern_gate.config import GateConfig
from decern_gate.diff_payload import build_diff_payload
from decern_gate.errors import DiffComputationError
from decern_gate.git import ChangeSource, reference_text
from decern_gate.judge import judge_diff
from decern_gate.patterns import evaluate_policy
from decern_gate.references import extract_references
from decern_gate.types import (
    BlockCause,
    DecisionReference,
    ExclusionRule,
    GateReport,
    GateVerdict,
    JudgeAllowed,
    JudgePlanUnavailable,
    ValidateOk,
    ValidationAttempt,
)
from decern_gate.validator import validate_decision

logger = logging.getLogger(__name__)

REMEDIATION = (
    "High-impact change detected. Add 'decern:<id>' to PR description or commit "
    "message referencing an APPROVED decision."
)


class GateOrchestrator:
    """Runs the gate once against a change source."""

    def __init__(
        self,
        config: GateConfig,
        source: ChangeSource,
        *,
        console: Console | None = None,
        client: httpx.AsyncClient | None = None,
        exclusion_rule: ExclusionRule | None = None,
    ) -> None:
        self.config = config
        self.source = source
        self.console = console or Console()
        self.client = client
        self.exclusion_rule = exclusion_rule or ExclusionRule()
        self.report = GateReport()

    def _log(self, line: str = "", style: str | None = None) -> None:
        self.console.print(line, style=style, markup=False, highlight=False, soft_wrap=True)

    def _warn(self, line: str) -> None:
        self._log(f"Warning: {line}", style="yellow")

    def _block(self, cause: BlockCause, detail: str) -> GateVerdict:
        self._log()
        self._log(detail, style="bold red")
        return GateVerdict.block(cause, detail)

    async def run(self) -> GateReport:
        if self.client is not None:
            verdict = await self._evaluate(self.client)
        else:
            async with httpx.AsyncClient() as client:
                verdict = await self._evaluate(client)
        self.report.verdict = verdict
        return self.report

    async def _evaluate(self, client: httpx.AsyncClient) -> GateVerdict:
        try:
            changed_files = self.source.changed_files()
        except (DiffComputationError, OSError) as exc:
            logger.debug("changed-file computation failed: %s", exc)
            self._log("Changed files: error")
            self._log("Decision required: YES")
            self._log("Reason: cannot compute diff")
            return GateVerdict.block(BlockCause.DIFF_UNAVAILABLE, f"Cannot compute diff: {exc}")

        self.report.changed_files = changed_files
        self._log(f"Changed files: {len(changed_files)}")

        policy = evaluate_policy(changed_files, self.config.extra_patterns)
        self.report.policy = policy
        self._log(f"Decision required: {'YES' if policy.required else 'NO'}")
        self._log(f"Reason: {policy.reason}")
        if not policy.required:
            return GateVerdict.pass_(policy.reason)

        references = list(extract_references(reference_text(self.config, self.source)))
        self.report.references = references
        listed = ", ".join(ref.value for ref in references) if references else "none"
        self._log(f"Found decision refs: {listed}")
        if not references:
            return self._block(BlockCause.REFERENCE_ABSENT, REMEDIATION)

        missing = self.config.missing_settings()
        if missing:
            return self._block(
                BlockCause.CONFIG_MISSING,
                f"Missing required env: {', '.join(missing)}. Set them to validate the decision.",
            )

        ok: ValidateOk | None = None
        for ref in references:
            outcome = await validate_decision(ref, self.config, client)
            self.report.attempts.append(ValidationAttempt(ref, outcome))
            if isinstance(outcome, ValidateOk):
                ok = outcome
                break
            self._log(f"Validation result: FAIL for {ref.value}: {outcome.reason}")

        if ok is None:
            return self._block(BlockCause.VALIDATION_FAILED, REMEDIATION)

        self.report.winning_reference = ref

        if ok.observation_only:
            self._log(f"Validation result: observation only (decision {ref.value})")
            self._log()
            self._log("Observation only: decision is proposed, not approved. Upgrade to Team for enforcement.")
            return GateVerdict.pass_(f"Observation only for decision {ref.value}")

        status = f" ({humanize_label(ok.status)})" if ok.status else ""
        self._log(f"Validation result: OK (decision {ref.value} is approved){status}")

        if self.config.require_linked_pr:
            if ok.has_linked_pr is None:
                return self._block(
                    BlockCause.LINKED_PR_MISSING,
                    "Linked PR enforcement is on but the validate API did not report hasLinkedPR. "
                    "Check that the Decern API version supports linked-PR checks.",
                )
            if ok.has_linked_pr is False:
                return self._block(
                    BlockCause.LINKED_PR_UNMET,
                    f"Decision {ref.value} is not linked to this pull request. "
                    "Link the PR to the decision in Decern, then re-run the gate.",
                )
            self._log(f"Linked PR: OK (decision {ref.value})")

        if not self.config.judge_enabled:
            return GateVerdict.pass_(f"Decision {ref.value} is approved")

        return await self._judge(ref, client)

    async def _judge(self, ref: DecisionReference, client: httpx.AsyncClient) -> GateVerdict:
        try:
            raw_diff = self.source.diff_text()
        except (DiffComputationError, OSError) as exc:
            return self._block(BlockCause.JUDGE_BLOCKED, f"Judge: cannot compute diff: {exc}")

        payload = build_diff_payload(raw_diff, self.exclusion_rule)
        self.report.diff_payload = payload
        if payload.excluded_paths:
            self._warn(f"excluded from judge payload: {', '.join(payload.excluded_paths)}")
        if payload.truncated:
            self._warn(f"judge payload truncated to {self.exclusion_rule.max_total_bytes} bytes")

        outcome = await judge_diff(
            payload,
            ref,
            self.config,
            client,
            base_sha=self.source.base,
            head_sha=self.source.head,
        )
        self.report.judge = outcome

        if isinstance(outcome, JudgeAllowed):
            self._log(f"Judge: allowed{f' ({outcome.reason})' if outcome.reason else ''}")
            return GateVerdict.pass_(f"Judge allowed change for decision {ref.value}")
        if isinstance(outcome, JudgePlanUnavailable):
            self._warn(f"judge skipped: {outcome.reason}")
            return GateVerdict.pass_(f"Decision {ref.value} is approved; judge unavailable on plan")
        return self._block(
            BlockCause.JUDGE_BLOCKED,
            f"Judge blocked change for decision {ref.value}: {outcome.reason or 'no reason given'}",
        )


async def run_gate(
    config: GateConfig,
    source: ChangeSource,
    *,
    console: Console | None = None,
    client: httpx.AsyncClient | None = None,
    exclusion_rule: ExclusionRule | None = None,
) -> GateReport:
    """Run the decision gate once and return what it observed."""
    orchestrator = GateOrchestrator(
        config,
        source,
        console=console,
        client=client,
        exclusion_rule=exclusion_rule,
    )
    return await orchestrator.run()
