"""Installer exception hierarchy.

Every failure that should end the run with exit code 1 derives from
InstallerError. Best-effort operations never raise these; they log warnings.
"""

from __future__ import annotations

from typing import Sequence


class InstallerError(RuntimeError):
    """Base class for fatal installer failures."""


class PreflightError(InstallerError):
    """A required tool, device or environment property is missing."""


class ValidationError(InstallerError):
    """Operator input was rejected."""


class AbortedByUser(InstallerError):
    """The operator declined the final confirmation."""


class PlanningError(InstallerError):
    """The requested partition layout does not fit the disk."""


class EncryptionError(InstallerError):
    """LUKS setup failed or would clobber an existing mapping."""


class CommandError(InstallerError):
    """An external command exited non-zero."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str, message: str):
        super().__init__(message)
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
