"""Value types shared by the gate stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

MAX_FILE_BYTES = 1_048_576
MAX_TOTAL_BYTES = 2_097_152

DEFAULT_EXCLUDED_EXTENSIONS: frozenset[str] = frozenset(
    {
        # images
        ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp", ".tif", ".tiff",
        ".psd", ".heic", ".avif",
        # video / audio
        ".mp4", ".mov", ".avi", ".mkv", ".webm", ".wmv", ".flv",
        ".mp3", ".wav", ".ogg", ".flac", ".aac", ".m4a",
        # archives / binaries
        ".zip", ".gz", ".tgz", ".bz2", ".xz", ".7z", ".rar", ".tar",
        ".jar", ".war", ".exe", ".dll", ".so", ".dylib", ".bin", ".o", ".a",
        ".class", ".pyc", ".wasm", ".pdf",
        # fonts
        ".woff", ".woff2", ".ttf", ".otf", ".eot",
    }
)


class ReferenceKind(str, Enum):
    """Shape of a decision reference."""

    ADR = "adr"
    OPAQUE_ID = "opaque_id"


class BlockCause(str, Enum):
    """Why a run was blocked."""

    DIFF_UNAVAILABLE = "diff_unavailable"
    REFERENCE_ABSENT = "reference_absent"
    CONFIG_MISSING = "config_missing"
    VALIDATION_FAILED = "validation_failed"
    LINKED_PR_MISSING = "linked_pr_missing"
    LINKED_PR_UNMET = "linked_pr_unmet"
    JUDGE_BLOCKED = "judge_blocked"


@dataclass(frozen=True)
class PolicyOutcome:
    """Result of classifying the changed-path set."""

    required: bool
    reason: str
    matched_paths: tuple[str, ...] = ()


@dataclass(frozen=True)
class DecisionReference:
    """A reference to a record in the decision store."""

    value: str
    kind: ReferenceKind

    @property
    def query_param(self) -> str:
        return "adrRef" if self.kind is ReferenceKind.ADR else "decisionId"


@dataclass(frozen=True)
class ExclusionRule:
    """What the judge payload leaves out, and how large it may get."""

    excluded_extensions: frozenset[str] = DEFAULT_EXCLUDED_EXTENSIONS
    max_file_bytes: int = MAX_FILE_BYTES
    max_total_bytes: int = MAX_TOTAL_BYTES


@dataclass(frozen=True)
class DiffPayload:
    text: str
    truncated: bool
    excluded_paths: tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidateOk:
    """Decision is valid. ``has_linked_pr`` is None when the API omitted the field."""

    status: str | None = None
    has_linked_pr: bool | None = None
    observation_only: bool = False


@dataclass(frozen=True)
class ValidateFail:
    http_status: int
    reason: str


ValidateOutcome = ValidateOk | ValidateFail


@dataclass(frozen=True)
class JudgeAllowed:
    reason: str | None = None


@dataclass(frozen=True)
class JudgeBlocked:
    reason: str | None = None


@dataclass(frozen=True)
class JudgePlanUnavailable:
    """Judge refused because the account plan lacks the feature; non-blocking."""

    reason: str


JudgeOutcome = JudgeAllowed | JudgeBlocked | JudgePlanUnavailable


@dataclass(frozen=True)
class GateVerdict:
    """Terminal value of a gate run."""

    passed: bool
    cause: BlockCause | None = None
    detail: str = ""

    @classmethod
    def pass_(cls, detail: str = "") -> GateVerdict:
        return cls(passed=True, detail=detail)

    @classmethod
    def block(cls, cause: BlockCause, detail: str) -> GateVerdict:
        return cls(passed=False, cause=cause, detail=detail)

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1


@dataclass(frozen=True)
class ValidationAttempt:
    """One reference and what the validate endpoint said about it."""

    reference: DecisionReference
    outcome: ValidateOutcome


@dataclass
class GateReport:
    """Everything a run observed, for console and artifact rendering."""

    verdict: GateVerdict | None = None
    changed_files: list[str] = field(default_factory=list)
    policy: PolicyOutcome | None = None
    references: list[DecisionReference] = field(default_factory=list)
    attempts: list[ValidationAttempt] = field(default_factory=list)
    winning_reference: DecisionReference | None = None
    diff_payload: DiffPayload | None = None
    judge: JudgeOutcome | None = None

    @property
    def exit_code(self) -> int:
        # undecided runs never pass
        return 1 if self.verdict is None else self.verdict.exit_code
