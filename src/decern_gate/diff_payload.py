"""Build the capped diff payload sent to the judge."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath

from decern_gate.types import DiffPayload, ExclusionRule

DIFF_HEADER = "diff --git "
QUOTED_ESCAPE = re.compile(r"\\([0-7]{3}|.)")
SIMPLE_ESCAPES = {"a": 7, "b": 8, "t": 9, "n": 10, "v": 11, "f": 12, "r": 13}


def _unquote_path(quoted: str) -> str:
    """Undo git's C-style path quoting, e.g. ``caf\\303\\251.png`` -> ``café.png``."""
    raw = bytearray()
    pos = 0
    for match in QUOTED_ESCAPE.finditer(quoted):
        raw += quoted[pos:match.start()].encode("utf-8")
        code = match.group(1)
        if len(code) == 3:
            raw.append(int(code, 8))
        elif code in SIMPLE_ESCAPES:
            raw.append(SIMPLE_ESCAPES[code])
        else:
            raw += code.encode("utf-8")
        pos = match.end()
    raw += quoted[pos:].encode("utf-8")
    return raw.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class FileHunk:
    """All diff text for one file, header included."""

    path: str
    text: str

    @property
    def size(self) -> int:
        return len(self.text.encode("utf-8"))


def _path_from_header(header: str) -> str:
    """Extract the post-image path from ``diff --git a/<p> b/<p>``.

    Paths with special characters arrive quoted: ``"a/<p>" "b/<p>"``.
    """
    rest = header[len(DIFF_HEADER):].rstrip("\r\n")
    quoted = rest.rfind(' "b/')
    if quoted != -1 and rest.endswith('"'):
        return _unquote_path(rest[quoted + 4:-1])
    marker = rest.rfind(" b/")
    if marker != -1:
        return rest[marker + 3:].strip('"')
    return rest.split(" ", 1)[-1].strip('"')


def split_hunks(raw_diff: str) -> list[FileHunk]:
    """Split a unified diff into per-file chunks, keeping their order.

    Text before the first ``diff --git`` header is kept as a chunk with an
    empty path when it is not blank.
    """
    hunks: list[FileHunk] = []
    current_path: str | None = None
    current_lines: list[str] = []

    def flush() -> None:
        text = "".join(current_lines)
        if current_path is not None:
            hunks.append(FileHunk(current_path, text))
        elif text.strip():
            hunks.append(FileHunk("", text))

    for line in raw_diff.splitlines(keepends=True):
        if line.startswith(DIFF_HEADER):
            flush()
            current_path = _path_from_header(line)
            current_lines = [line]
        else:
            current_lines.append(line)
    flush()
    return hunks


def has_excluded_extension(path: str, excluded_extensions: frozenset[str]) -> bool:
    suffix = PurePosixPath(path).suffix.lower()
    return bool(suffix) and suffix in excluded_extensions


def _cap_utf8(text: str, max_bytes: int) -> str:
    """Cut ``text`` to at most ``max_bytes`` UTF-8 bytes on a character boundary."""
    encoded = text.encode("utf-8")
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def build_diff_payload(raw_diff: str, rule: ExclusionRule | None = None) -> DiffPayload:
    """Apply extension and per-file exclusions, then the global ceiling."""
    rule = rule or ExclusionRule()
    excluded: list[str] = []
    kept: list[str] = []

    hunks = split_hunks(raw_diff)
    eligible: list[FileHunk] = []
    for hunk in hunks:
        if hunk.path and has_excluded_extension(hunk.path, rule.excluded_extensions):
            excluded.append(hunk.path)
        else:
            eligible.append(hunk)

    for hunk in eligible:
        if hunk.size > rule.max_file_bytes:
            excluded.append(hunk.path)
        else:
            kept.append(hunk.text)

    text = "".join(kept)
    truncated = False
    if len(text.encode("utf-8")) > rule.max_total_bytes:
        text = _cap_utf8(text, rule.max_total_bytes)
        truncated = True

    return DiffPayload(text=text, truncated=truncated, excluded_paths=tuple(excluded))
