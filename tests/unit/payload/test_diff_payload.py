"""Unit tests for judge diff payload construction."""

from __future__ import annotations

from decern_gate.diff_payload import build_diff_payload, split_hunks
from decern_gate.types import ExclusionRule


def _hunk(path: str, body: str = "+change\n") -> str:
    return (
        f"diff --git a/{path} b/{path}\n"
        "index 1111111..2222222 100644\n"
        f"--- a/{path}\n"
        f"+++ b/{path}\n"
        "@@ -1 +1 @@\n"
        f"{body}"
    )


def test_split_hunks_keeps_order_and_paths() -> None:
    raw = _hunk("src/a.py") + _hunk("infra/k8s/b.yaml") + _hunk("c.md")

    hunks = split_hunks(raw)

    assert [h.path for h in hunks] == ["src/a.py", "infra/k8s/b.yaml", "c.md"]
    assert "".join(h.text for h in hunks) == raw


def test_split_hunks_handles_renames() -> None:
    raw = "diff --git a/old/name.py b/new/name.py\nsimilarity index 100%\n"

    assert [h.path for h in split_hunks(raw)] == ["new/name.py"]


def test_empty_diff() -> None:
    payload = build_diff_payload("")

    assert payload.text == ""
    assert payload.truncated is False
    assert payload.excluded_paths == ()


def test_excluded_extensions_are_dropped_and_reported() -> None:
    raw = _hunk("assets/logo.png", "Binary files differ\n") + _hunk("src/app.py") + _hunk("fonts/Inter.WOFF2")

    payload = build_diff_payload(raw)

    assert payload.excluded_paths == ("assets/logo.png", "fonts/Inter.WOFF2")
    assert "logo.png" not in payload.text
    assert "Inter.WOFF2" not in payload.text
    assert payload.text == _hunk("src/app.py")
    assert payload.truncated is False


def test_oversized_file_is_dropped_not_truncated() -> None:
    rule = ExclusionRule(max_file_bytes=200, max_total_bytes=10_000)
    big = _hunk("data/seed.sql", "+" + "x" * 500 + "\n")
    raw = _hunk("src/a.py") + big + _hunk("src/b.py")

    payload = build_diff_payload(raw, rule)

    assert payload.excluded_paths == ("data/seed.sql",)
    assert payload.text == _hunk("src/a.py") + _hunk("src/b.py")
    assert payload.truncated is False


def test_extension_exclusions_are_listed_before_size_exclusions() -> None:
    rule = ExclusionRule(max_file_bytes=150, max_total_bytes=10_000)
    raw = _hunk("big.sql", "+" + "y" * 300 + "\n") + _hunk("image.gif")

    payload = build_diff_payload(raw, rule)

    assert payload.excluded_paths == ("image.gif", "big.sql")


def test_global_ceiling_truncates() -> None:
    rule = ExclusionRule(max_file_bytes=10_000, max_total_bytes=300)
    raw = "".join(_hunk(f"src/m{i}.py", "+" + "z" * 80 + "\n") for i in range(5))

    payload = build_diff_payload(raw, rule)

    assert payload.truncated is True
    assert len(payload.text.encode("utf-8")) <= 300
    assert raw.startswith(payload.text)
    assert payload.excluded_paths == ()


def test_payload_exactly_at_ceiling_is_not_truncated() -> None:
    raw = _hunk("src/a.py")
    size = len(raw.encode("utf-8"))

    payload = build_diff_payload(raw, ExclusionRule(max_total_bytes=size))

    assert payload.truncated is False
    assert payload.text == raw


def test_truncation_respects_multibyte_characters() -> None:
    raw = _hunk("notes.txt", "+" + "é" * 100 + "\n")
    limit = len(raw.encode("utf-8")) - 50

    payload = build_diff_payload(raw, ExclusionRule(max_total_bytes=limit))

    assert payload.truncated is True
    assert len(payload.text.encode("utf-8")) <= limit
    assert raw.startswith(payload.text)


def test_exclusions_apply_even_under_global_ceiling() -> None:
    rule = ExclusionRule(max_total_bytes=100)
    raw = _hunk("video/intro.mp4") + "".join(_hunk(f"f{i}.py") for i in range(5))

    payload = build_diff_payload(raw, rule)

    assert "intro.mp4" not in payload.text
    assert payload.excluded_paths == ("video/intro.mp4",)
    assert payload.truncated is True


def test_split_hunks_unquotes_special_paths() -> None:
    raw = (
        'diff --git "a/caf\\303\\251.png" "b/caf\\303\\251.png"\n'
        "Binary files differ\n"
        'diff --git a/plain.txt "b/tab\\there.txt"\n'
        "similarity index 100%\n"
    )

    assert [h.path for h in split_hunks(raw)] == ["café.png", "tab\there.txt"]


def test_quoted_excluded_path_is_reported_unescaped() -> None:
    raw = 'diff --git "a/caf\\303\\251.png" "b/caf\\303\\251.png"\nBinary files differ\n' + _hunk("src/a.py")

    payload = build_diff_payload(raw)

    assert payload.excluded_paths == ("café.png",)
    assert "src/a.py" in payload.text
