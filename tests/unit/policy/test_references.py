"""Unit tests for decision reference extraction."""

from __future__ import annotations

from decern_gate.references import classify_reference, extract_references
from decern_gate.types import DecisionReference, ReferenceKind


def _values(text: str) -> list[str]:
    return [ref.value for ref in extract_references(text)]


def test_empty_and_non_string_input() -> None:
    assert extract_references("") == ()
    assert extract_references(None) == ()
    assert extract_references(1234) == ()


def test_labeled_prefix_is_case_insensitive() -> None:
    assert _values("Implements Decern: abc123") == ["abc123"]
    assert _values("decern:1234") == ["1234"]


def test_ticket_and_url_forms() -> None:
    text = "Fixes DECERN-77, see https://app.decern.dev/decisions/9f8e7d6c for context"

    assert _values(text) == ["77", "9f8e7d6c"]


def test_standalone_adr_code() -> None:
    refs = extract_references("Follows ADR-012 for the queue rollout.")

    assert refs == (DecisionReference("ADR-012", ReferenceKind.ADR),)


def test_order_is_first_appearance_across_patterns() -> None:
    text = "See /decisions/zzz first.\nThen decern: aaa and DECERN-mmm."

    assert _values(text) == ["zzz", "aaa", "mmm"]


def test_duplicates_keep_first_position() -> None:
    text = "decern: B\ndecern: A\nDECERN-B again"

    assert _values(text) == ["B", "A"]


def test_same_value_from_two_patterns_appears_once() -> None:
    text = "decern: ADR-007 (ADR-007)"

    refs = extract_references(text)

    assert refs == (DecisionReference("ADR-007", ReferenceKind.ADR),)


def test_kind_depends_on_value_shape_only() -> None:
    by_label = extract_references("decern: ADR-42")
    by_url = extract_references("/decisions/ADR-42")
    opaque = extract_references("decern: 6f1c2d")

    assert by_label[0].kind is ReferenceKind.ADR
    assert by_url[0].kind is ReferenceKind.ADR
    assert opaque[0].kind is ReferenceKind.OPAQUE_ID


def test_adr_prefix_is_literal() -> None:
    assert classify_reference("ADR-001") is ReferenceKind.ADR
    assert classify_reference("adr-001") is ReferenceKind.OPAQUE_ID
    assert classify_reference("ADR-") is ReferenceKind.OPAQUE_ID


def test_adr_embedded_in_word_is_not_standalone() -> None:
    assert _values("the MYADR-5 flag") == []


def test_extraction_is_repeatable() -> None:
    text = "decern: one, decern: two"

    assert extract_references(text) == extract_references(text)
