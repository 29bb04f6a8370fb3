"""Decision reference extraction from PR text and commit messages."""

from __future__ import annotations

import re

from decern_gate.types import DecisionReference, ReferenceKind

_TOKEN = r"[A-Za-z0-9_-]+"

REFERENCE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"decern:\s*({_TOKEN})", re.IGNORECASE),
    re.compile(rf"DECERN-({_TOKEN})"),
    re.compile(rf"/decisions/({_TOKEN})"),
    re.compile(rf"(?<![A-Za-z0-9_-])(ADR-{_TOKEN})"),
)

ADR_SHAPE = re.compile(rf"ADR-{_TOKEN}")


def classify_reference(value: str) -> ReferenceKind:
    """ADR when the value has the structured-code shape, opaque id otherwise."""
    if ADR_SHAPE.fullmatch(value):
        return ReferenceKind.ADR
    return ReferenceKind.OPAQUE_ID


def extract_references(text: object) -> tuple[DecisionReference, ...]:
    """Return distinct references in order of first appearance in ``text``."""
    if not isinstance(text, str) or not text:
        return ()

    hits: list[tuple[int, int, str]] = []
    for order, pattern in enumerate(REFERENCE_PATTERNS):
        for match in pattern.finditer(text):
            value = match.group(1).strip()
            if value:
                hits.append((match.start(1), order, value))
    hits.sort()

    seen: set[str] = set()
    references: list[DecisionReference] = []
    for _, _, value in hits:
        if value in seen:
            continue
        seen.add(value)
        references.append(DecisionReference(value=value, kind=classify_reference(value)))
    return tuple(references)
