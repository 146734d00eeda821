# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/system/exceptions.py

"""
Exception classes for the share migration.

Startup-class errors (ConfigError, DatabaseConnectionError) abort the run.
Per-record errors (ParseError, BackendError, ConsistencyError, PlanError)
are caught at the reconciliation boundary and only fail that record.
"""


class ShareMigrateError(Exception):
    """Base exception for all share migration errors."""
    pass


class ConfigError(ShareMigrateError):
    """Raised when there are configuration validation or loading errors."""
    pass


class DatabaseConnectionError(ShareMigrateError):
    """Raised when the share database cannot be reached at startup."""
    pass


class ParseError(ShareMigrateError):
    """Raised when backend file-info output cannot be parsed."""

    def __init__(self, message: str, raw: str = None):
        self.raw = raw
        super().__init__(message)


# === BACKEND ERRORS ===

class BackendError(ShareMigrateError):
    """Raised when an external backend invocation fails.

    retry_possible marks transient failures such as timeouts. It is
    informational: the reconciliation engine never retries a BackendError,
    only NotYetVisibleError.
    """

    def __init__(self, message: str, command: list[str] = None, exit_status: int = None,
                 stderr: str = "", retry_possible: bool = False):
        self.command = command
        self.exit_status = exit_status
        self.stderr = stderr
        self.retry_possible = retry_possible
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.exit_status is not None:
            message = f"{message} (exit status {self.exit_status})"
        if self.stderr:
            message = f"{message}: {self.stderr.strip()}"
        return message


class NotYetVisibleError(ShareMigrateError):
    """An object the backend just created cannot be looked up yet."""

    def __init__(self, message: str):
        self.retry_possible = True
        super().__init__(message)


class StoreError(BackendError):
    """Database failures while reading or updating shares."""
    pass


class ConsistencyError(ShareMigrateError):
    """Raised when an update does not affect exactly one row."""

    def __init__(self, message: str, share_id: int = None, rows_affected: int = None):
        self.share_id = share_id
        self.rows_affected = rows_affected
        super().__init__(message)


class PlanError(ShareMigrateError):
    """Raised when an update plan is requested from something that is not a version folder."""
    pass
