"""
Exception taxonomy for gofunc_tables.

Scope of each error
- TraversalError: the source walk failed. Terminal for the repository.
- ParseError: one source file could not be parsed. Only that file is skipped.
- UnsupportedSignatureError: the function takes parameters. No subprocess is spawned.
- ExecutionError: the generated program failed to launch, exited non-zero or panicked.
- PersistenceError: DROP/CREATE/INSERT for one function's table failed.
- DatabaseConnectionError: the connection could not be opened. Terminal for the repository.
- AcquisitionError: a remote repository could not be cloned.

Undecodable program output is not an error; it is downgraded to a string scalar.
"""

from __future__ import annotations


class GoFuncTablesError(Exception):
    """Base class for all gofunc_tables errors."""


class TraversalError(GoFuncTablesError):
    """Raised when the repository tree cannot be walked."""


class ParseError(GoFuncTablesError):
    """Raised when a source file cannot be read or contains syntax errors."""

    def __init__(self, path: str, message: str, line: int | None = None):
        self.path = path
        self.line = line
        location = f"{path}:{line}" if line is not None else path
        super().__init__(f"{location}: {message}")


class UnsupportedSignatureError(GoFuncTablesError):
    """Raised when a function with parameters is submitted for execution."""


class ExecutionError(GoFuncTablesError):
    """Raised (or carried in an outcome) when running a function fails."""

    def __init__(self, message: str, exit_code: int | None = None, stderr: str = ""):
        self.exit_code = exit_code
        self.stderr = stderr
        detail = message
        if stderr.strip():
            detail = f"{message}: {stderr.strip()}"
        super().__init__(detail)


class PersistenceError(GoFuncTablesError):
    """Raised when a table cannot be created or populated."""


class DatabaseConnectionError(GoFuncTablesError):
    """Raised when the database connection cannot be established."""


class AcquisitionError(GoFuncTablesError):
    """Raised when a repository cannot be cloned."""
