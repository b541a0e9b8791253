"""Error taxonomy for zero-init.

Every fatal condition is raised as a ``ZeroError`` subclass and propagates to
the CLI entry point, which prints it and exits non-zero.  Only
``ValidationRejected`` is recovered locally (the prompt is simply asked
again), and ``CredentialVerificationError`` is reported as a warning.
"""

from __future__ import annotations


class ZeroError(Exception):
    """Base class for every error raised by zero-init."""


class DirectoryExistsError(ZeroError):
    """Raised when the target project directory is already present."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Directory {path} already exists!")


class ModuleFetchError(ZeroError):
    """Raised when one or more module sources could not be downloaded."""

    def __init__(self, message: str, sources: list[str] | None = None) -> None:
        self.sources = list(sources or [])
        super().__init__(message)


class ModuleParseError(ZeroError):
    """Raised when a fetched module's descriptor is missing or malformed."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(f"Unable to load module {source}: {message}")


class DuplicateModuleError(ModuleParseError):
    """Raised when two sources declare the same module name."""

    def __init__(self, source: str, name: str, previous_source: str) -> None:
        self.name = name
        self.previous_source = previous_source
        super().__init__(
            source,
            f"module name '{name}' is already declared by {previous_source}",
        )


class PromptError(ZeroError):
    """Raised when interactive input fails (closed stream, interrupt)."""


class PromptOrderError(ZeroError):
    """Raised when a prompt's condition reads an answer that cannot exist yet."""


class ValidationRejected(ZeroError):
    """Raised by a validator when user input is not acceptable."""

    def __init__(self, value: str, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value '{value}': {reason}")


class UnsupportedProviderError(ZeroError):
    """Raised when a cloud provider other than AWS is selected."""

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(
            f"Only the AWS provider is available at this time (selected: {provider})"
        )


class CredentialVerificationError(ZeroError):
    """Raised when the cloud identity check fails."""

    def __init__(self, message: str, code: str = "") -> None:
        self.code = code
        super().__init__(message)


class CredentialStoreError(ZeroError):
    """Raised when the persisted credential file cannot be read or written."""
