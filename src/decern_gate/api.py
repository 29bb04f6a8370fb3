"""Shared helpers for calls to the decision-gate API."""

from __future__ import annotations

import re
from typing import Any

import httpx

from decern_gate.config import GateConfig

_ENUM_TOKEN = re.compile(r"[A-Za-z0-9]+(?:_[A-Za-z0-9]+)*")


def endpoint_url(config: GateConfig, path: str) -> str:
    base = (config.base_url or "").rstrip("/")
    return f"{base}{path}"


def auth_headers(config: GateConfig) -> dict[str, str]:
    return {"Authorization": f"Bearer {config.ci_token}"}


def read_json_object(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body; anything else decodes to an empty dict."""
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def humanize_label(value: str) -> str:
    """Render a backend enum token: ``not_approved`` -> ``Not Approved``.

    Free-form text that is not a single underscore-separated token is
    returned unchanged.
    """
    if not _ENUM_TOKEN.fullmatch(value):
        return value
    return " ".join(word.capitalize() for word in value.split("_"))
