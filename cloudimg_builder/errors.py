from __future__ import annotations

from typing import Sequence


class BuildError(RuntimeError):
    """Base class for image build failures.

    exit_code is what the CLI returns when this error aborts a build.
    """

    exit_code = 1

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class AlreadyExists(BuildError):
    """Target artifact is present when it must not be."""


class NotFound(BuildError):
    """Expected artifact, device or pool is absent."""


class ToolError(BuildError):
    """External command returned non-zero."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "", message: str | None = None) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message or f"Command failed ({returncode}): {' '.join(self.argv)}\n{stderr}")


class ResourceExhausted(BuildError):
    """No loop device could be bound."""


class FetchError(BuildError):
    """Network retrieval (or payload verification) failed."""


class FileOperationError(BuildError):
    """Local file or filesystem operation failed."""


class PrivilegeError(BuildError):
    """Not running as root."""


class ConfigError(BuildError):
    exit_code = 2


class SettleTimeout(BuildError):
    """A polled post-condition did not hold before the deadline."""


class Interrupted(BuildError):
    exit_code = 143
