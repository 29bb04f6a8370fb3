"""Validate a single decision reference against the decision-gate API."""

from __future__ import annotations

import logging

import anyio
import httpx

from decern_gate.api import auth_headers, endpoint_url, humanize_label, read_json_object
from decern_gate.config import GateConfig
from decern_gate.types import DecisionReference, ValidateFail, ValidateOk, ValidateOutcome

logger = logging.getLogger(__name__)


async def validate_decision(
    ref: DecisionReference,
    config: GateConfig,
    client: httpx.AsyncClient,
) -> ValidateOutcome:
    """Look up one reference. Exactly one request, no retry.

    Every failure mode, including timeouts and transport errors, comes back
    as a ValidateFail; nothing is raised.
    """
    if not config.base_url or not config.ci_token:
        return ValidateFail(0, "DECERN_BASE_URL and DECERN_CI_TOKEN are required.")

    url = endpoint_url(config, config.validate_path)
    timeout_s = config.timeout_ms / 1000
    logger.debug("validate %s=%s via %s", ref.query_param, ref.value, url)

    try:
        with anyio.fail_after(timeout_s):
            response = await client.get(
                url,
                params={ref.query_param: ref.value},
                headers=auth_headers(config),
                timeout=timeout_s,
            )
    except (TimeoutError, httpx.TimeoutException):
        return ValidateFail(0, f"Request timeout after {config.timeout_ms}ms.")
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return ValidateFail(0, f"Network error: {exc}.")

    body = read_json_object(response)
    logger.debug("validate %s -> HTTP %s", ref.value, response.status_code)

    if response.status_code == 200 and body.get("valid") is True:
        status = body.get("status")
        linked = body.get("hasLinkedPR")
        return ValidateOk(
            status=status if isinstance(status, str) else None,
            has_linked_pr=linked if isinstance(linked, bool) else None,
            observation_only=body.get("observationOnly") is True,
        )

    raw_reason = body.get("reason")
    if isinstance(raw_reason, str) and raw_reason.strip():
        reason = humanize_label(raw_reason.strip())
    else:
        reason = f"HTTP {response.status_code}"
    status = body.get("status")
    if isinstance(status, str) and status:
        reason = f"{reason} (decision status: {humanize_label(status)})"
    return ValidateFail(response.status_code, reason)
