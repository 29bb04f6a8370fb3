"""High-impact path policy.

A changed path requires an approved decision when it matches one of:

1. caller-supplied extra patterns (path substring if the pattern has a ``/``,
   otherwise an exact basename),
2. the path-substring catalogue (``REQUIRED_PATH_PATTERNS``),
3. the exact-basename catalogue (``REQUIRED_BASENAMES``),
4. the structural rules for file families with naming variants.

Matching is case-sensitive and looks only at the path, never at contents.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from decern_gate.types import PolicyOutcome

REASON_SAMPLE_SIZE = 5

# Database / schema
DB_PATH_PATTERNS = (
    "supabase/migrations/",
    "prisma/migrations/",
    "typeorm/migrations/",
    "liquibase/",
    "flyway/",
    "db/migrations/",
    "database/migrations/",
)
DB_BASENAMES = ("schema.prisma", "liquibase.properties", "flyway.conf")

# Infra / IaC / deploy
INFRA_PATH_PATTERNS = (
    "terraform/",
    "pulumi/",
    "cdk/",
    "helm/",
    "charts/",
    "k8s/",
    "kubernetes/",
    "manifests/",
    "ansible/",
    "packer/",
)
INFRA_BASENAMES = (
    "docker-compose.yml",
    "kustomization.yaml",
    "skaffold.yaml",
    "Tiltfile",
    "tiltfile",
    "values.yaml",
    ".dockerignore",
    "compose.yaml",
    "compose.yml",
)

# CI / CD
CI_PATH_PATTERNS = (".github/workflows/", ".github/actions/", ".circleci/", ".buildkite/")
CI_BASENAMES = (".gitlab-ci.yml", "azure-pipelines.yml", "bitbucket-pipelines.yml")

# Dependencies / build system
DEPS_BASENAMES = (
    "package.json",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    ".npmrc",
    ".yarnrc",
    ".yarnrc.yml",
    "requirements.txt",
    "pyproject.toml",
    "poetry.lock",
    "Pipfile",
    "Pipfile.lock",
    "pom.xml",
    "build.gradle",
    "build.gradle.kts",
    "settings.gradle",
    "settings.gradle.kts",
    "gradle.properties",
    "go.mod",
    "go.sum",
    "Cargo.toml",
    "Cargo.lock",
    "Gemfile",
    "Gemfile.lock",
    "composer.json",
    "composer.lock",
    "packages.config",
    "CMakeLists.txt",
    "Makefile",
    "vcpkg.json",
    "renovate.json",
    "renovate.json5",
    "turbo.json",
    "nx.json",
    "pnpm-workspace.yaml",
)

# Auth / security / access
SECURITY_PATH_PATTERNS = (
    "auth/",
    "authentication/",
    "authorization/",
    "iam/",
    "rbac/",
    "acl/",
    "oauth/",
    "oidc/",
    "saml/",
    "security/",
    "crypto/",
    "opa/",
    "rego/",
)
SECURITY_BASENAMES = ("CODEOWNERS", ".snyk")

# API contracts (graphql/ as a directory is too broad; schema basenames cover it)
API_PATH_PATTERNS = ("proto/",)
API_BASENAMES = (
    "openapi.yaml",
    "openapi.yml",
    "openapi.json",
    "swagger.yaml",
    "swagger.yml",
    "swagger.json",
    "asyncapi.yaml",
    "asyncapi.yml",
    "asyncapi.json",
    "schema.graphql",
    "schema.gql",
)

# Runtime config
CONFIG_BASENAMES = (
    "Procfile",
    "nginx.conf",
    "haproxy.cfg",
    "application.yml",
    "application.yaml",
    "application.properties",
)

# Observability / alerting
OBSERVABILITY_PATH_PATTERNS = (
    "prometheus/",
    "grafana/",
    "alertmanager/",
    "otel/",
    "opentelemetry/",
)

GRADLE_PATH_PATTERNS = ("gradle/wrapper/",)

REQUIRED_PATH_PATTERNS: tuple[str, ...] = (
    *DB_PATH_PATTERNS,
    *INFRA_PATH_PATTERNS,
    *CI_PATH_PATTERNS,
    *SECURITY_PATH_PATTERNS,
    *API_PATH_PATTERNS,
    *OBSERVABILITY_PATH_PATTERNS,
    *GRADLE_PATH_PATTERNS,
)

REQUIRED_BASENAMES: frozenset[str] = frozenset(
    (
        *DB_BASENAMES,
        *INFRA_BASENAMES,
        *CI_BASENAMES,
        *DEPS_BASENAMES,
        *API_BASENAMES,
        *CONFIG_BASENAMES,
        *SECURITY_BASENAMES,
    )
)

# Files named exactly ``Name`` or ``Name.<variant>``.
VARIANT_BASENAMES = ("Dockerfile", "Containerfile", "Jenkinsfile")

TERRAFORM_SUFFIXES = (".tf", ".tfvars", ".tf.json")
TERRAFORM_BASENAMES = (".terraform.lock.hcl", ".tflint.hcl")
DOTNET_SUFFIXES = (".csproj", ".fsproj", ".sln")
YAML_SUFFIXES = (".yml", ".yaml")

# Build-tool config prefix -> accepted extensions.
TOOL_CONFIG_EXTENSIONS: dict[str, tuple[str, ...]] = {
    "next.config.": (".js", ".mjs", ".ts", ".cjs"),
    "vite.config.": (".js", ".mjs", ".ts", ".cjs"),
    "webpack.config.": (".js", ".mjs", ".ts", ".cjs"),
    "babel.config.": (".js", ".cjs", ".mjs", ".json"),
}

DEPENDABOT_PATHS = (".github/dependabot.yml", ".github/dependabot.yaml")


def normalize_path(path: str) -> str:
    """Convert backslashes to forward slashes."""
    return path.replace("\\", "/")


def basename_of(normalized: str) -> str:
    return normalized.rsplit("/", 1)[-1]


def _matches_extra(normalized: str, basename: str, extra_patterns: Iterable[str]) -> bool:
    for pattern in extra_patterns:
        if "/" in pattern:
            if pattern in normalized:
                return True
        elif basename == pattern:
            return True
    return False


def _is_dependabot(normalized: str) -> bool:
    return any(
        normalized == candidate or normalized.endswith("/" + candidate)
        for candidate in DEPENDABOT_PATHS
    )


def _matches_structural(normalized: str, basename: str) -> bool:
    if _is_dependabot(normalized):
        return True

    if basename.endswith(TERRAFORM_SUFFIXES) or basename in TERRAFORM_BASENAMES:
        return True

    for name in VARIANT_BASENAMES:
        if basename == name or basename.startswith(name + "."):
            return True

    if basename.startswith("docker-compose.") and basename.endswith(YAML_SUFFIXES):
        return True
    if basename.startswith("values-") and basename.endswith(YAML_SUFFIXES):
        return True
    if basename.startswith("requirements-") and basename.endswith(".txt"):
        return True

    if basename == ".env" or basename.startswith(".env."):
        return True

    if basename.endswith(DOTNET_SUFFIXES):
        return True
    if basename.startswith("conanfile."):
        return True
    if basename.startswith("appsettings") and basename.endswith(".json"):
        return True
    if basename == "tsconfig.json" or (basename.startswith("tsconfig.") and basename.endswith(".json")):
        return True

    for prefix, extensions in TOOL_CONFIG_EXTENSIONS.items():
        if basename.startswith(prefix) and basename.endswith(extensions):
            return True

    return False


def path_matches_required(path: str, extra_patterns: Sequence[str] = ()) -> bool:
    """Return True when ``path`` falls under the high-impact policy."""
    normalized = normalize_path(path)
    basename = basename_of(normalized)

    if extra_patterns and _matches_extra(normalized, basename, extra_patterns):
        return True

    if any(pattern in normalized for pattern in REQUIRED_PATH_PATTERNS):
        return True

    if basename in REQUIRED_BASENAMES:
        return True

    return _matches_structural(normalized, basename)


def evaluate_policy(changed_files: Iterable[str], extra_patterns: Sequence[str] = ()) -> PolicyOutcome:
    """Classify a changed-path set into a PolicyOutcome."""
    matched = tuple(path for path in changed_files if path_matches_required(path, extra_patterns))
    if not matched:
        return PolicyOutcome(required=False, reason="No high-impact file patterns matched.")

    sample = ", ".join(matched[:REASON_SAMPLE_SIZE])
    suffix = "..." if len(matched) > REASON_SAMPLE_SIZE else ""
    return PolicyOutcome(
        required=True,
        reason=f"High-impact patterns matched: {sample}{suffix}",
        matched_paths=matched,
    )
