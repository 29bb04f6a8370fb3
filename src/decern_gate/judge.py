"""Ask the remote judge whether a diff is justified by a decision."""

from __future__ import annotations

import logging
import re

import anyio
import httpx

from decern_gate.api import auth_headers, endpoint_url, read_json_object
from decern_gate.config import GateConfig
from decern_gate.types import (
    DecisionReference,
    DiffPayload,
    JudgeAllowed,
    JudgeBlocked,
    JudgeOutcome,
    JudgePlanUnavailable,
)

logger = logging.getLogger(__name__)

# e.g. "Judge is available on Team plan and above."
PLAN_UNAVAILABLE_PATTERN = re.compile(r"\bavailable on (?:the )?\w+ plan\b", re.IGNORECASE)


def is_plan_unavailable(reason: str | None) -> bool:
    return bool(reason) and PLAN_UNAVAILABLE_PATTERN.search(reason) is not None


def build_judge_body(
    payload: DiffPayload,
    ref: DecisionReference,
    base_sha: str | None,
    head_sha: str | None,
) -> dict[str, object]:
    """Request body carrying exactly one reference field."""
    return {
        "diff": payload.text,
        "truncated": payload.truncated,
        "baseSha": base_sha,
        "headSha": head_sha,
        ref.query_param: ref.value,
    }


async def judge_diff(
    payload: DiffPayload,
    ref: DecisionReference,
    config: GateConfig,
    client: httpx.AsyncClient,
    *,
    base_sha: str | None = None,
    head_sha: str | None = None,
) -> JudgeOutcome:
    """Single judge attempt. Anything but an explicit verdict is Blocked."""
    url = endpoint_url(config, config.judge_path)
    timeout_s = config.judge_timeout_ms / 1000
    logger.debug("judge %s=%s via %s (%d chars)", ref.query_param, ref.value, url, len(payload.text))

    try:
        with anyio.fail_after(timeout_s):
            response = await client.post(
                url,
                json=build_judge_body(payload, ref, base_sha, head_sha),
                headers={"Content-Type": "application/json", **auth_headers(config)},
                timeout=timeout_s,
            )
    except (TimeoutError, httpx.TimeoutException):
        return JudgeBlocked(f"Judge unavailable: request timeout after {config.judge_timeout_ms}ms.")
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return JudgeBlocked(f"Judge unavailable: network error: {exc}.")

    logger.debug("judge %s -> HTTP %s", ref.value, response.status_code)
    if not response.is_success:
        return JudgeBlocked(f"Judge unavailable (HTTP {response.status_code}).")

    body = read_json_object(response)
    allowed = body.get("allowed")
    raw_reason = body.get("reason")
    reason = raw_reason if isinstance(raw_reason, str) and raw_reason else None

    if allowed is True:
        return JudgeAllowed(reason)
    if allowed is False:
        if reason is not None and is_plan_unavailable(reason):
            return JudgePlanUnavailable(reason)
        return JudgeBlocked(reason)
    return JudgeBlocked("Judge unavailable: response did not include an 'allowed' verdict.")
