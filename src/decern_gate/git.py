"""Git-backed change source for the gate."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from decern_gate.config import GateConfig
from decern_gate.errors import DiffComputationError

MAX_DIFF_OUTPUT_BYTES = 64 * 1024 * 1024
DEFAULT_BASE_CANDIDATES = ("origin/main", "origin/master")


class ChangeSource(Protocol):
    """What the gate needs to know about the change under review."""

    base: str
    head: str

    def changed_files(self) -> list[str]: ...

    def diff_text(self) -> str: ...

    def commit_message(self) -> str: ...


def run_git_command(args: list[str], cwd: Path) -> str:
    """Run a git command and return stdout text.

    Output is decoded as UTF-8 with replacement so diffs of files in other
    encodings still produce text.
    """
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            check=True,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as exc:
        raise DiffComputationError(f"Cannot run git in {cwd}: {exc}") from exc
    except subprocess.CalledProcessError as exc:
        raise DiffComputationError(
            f"Git command failed in {cwd}: git {' '.join(args)}\n{exc.stderr.strip()}"
        ) from exc
    if len(result.stdout) > MAX_DIFF_OUTPUT_BYTES:
        raise DiffComputationError(f"git {' '.join(args)} output exceeds {MAX_DIFF_OUTPUT_BYTES} bytes")
    return result.stdout


def _ref_exists(ref: str, cwd: Path) -> bool:
    try:
        run_git_command(["rev-parse", "--verify", "--quiet", ref], cwd=cwd)
    except DiffComputationError:
        return False
    return True


def resolve_revisions(config: GateConfig, cwd: Path) -> tuple[str, str]:
    """Pick the base/head pair to diff.

    CI-supplied SHAs win when both are present; otherwise the first of
    origin/main, origin/master that exists, falling back to HEAD~1.
    """
    if config.base_sha and config.head_sha:
        return config.base_sha, config.head_sha
    for candidate in DEFAULT_BASE_CANDIDATES:
        if _ref_exists(candidate, cwd):
            return candidate, "HEAD"
    return "HEAD~1", "HEAD"


@dataclass
class GitChangeSource:
    """Reads changed paths, diff text and commit message from a git checkout."""

    repo_root: Path
    base: str
    head: str

    @classmethod
    def from_config(cls, config: GateConfig, repo_root: Path) -> GitChangeSource:
        base, head = resolve_revisions(config, repo_root)
        return cls(repo_root=repo_root, base=base, head=head)

    @property
    def range_spec(self) -> str:
        return f"{self.base}...{self.head}"

    def changed_files(self) -> list[str]:
        output = run_git_command(["diff", "--name-only", self.range_spec], cwd=self.repo_root)
        return [line.strip() for line in output.splitlines() if line.strip()]

    def diff_text(self) -> str:
        return run_git_command(["diff", self.range_spec], cwd=self.repo_root)

    def commit_message(self) -> str:
        try:
            return run_git_command(["log", "-1", "--pretty=%B"], cwd=self.repo_root)
        except DiffComputationError:
            return ""


def reference_text(config: GateConfig, source: ChangeSource) -> str:
    """PR title and body when present, else the commit message."""
    parts = [part for part in (config.pr_title, config.pr_body) if part]
    if parts:
        return "\n\n".join(parts)
    if config.commit_message:
        return config.commit_message
    return source.commit_message()
