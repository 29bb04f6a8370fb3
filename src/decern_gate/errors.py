"""Exception types for the decision gate."""


class DecernGateError(RuntimeError):
    """Base class for gate errors."""


class ConfigError(DecernGateError):
    """Raised when gate configuration is missing or unparseable."""


class DiffComputationError(DecernGateError):
    """Raised when the changed-file set or diff cannot be computed."""
