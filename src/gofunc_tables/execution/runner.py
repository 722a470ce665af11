"""Execute one Go function in its own `go run` subprocess.

Each call writes a generated main package into the workspace, runs it from
the repository root so the repository's own module resolution applies, and
decodes whatever the program prints.
"""
from __future__ import annotations
from pathlib import Path
import logging
import subprocess

from gofunc_tables.errors import ExecutionError, UnsupportedSignatureError
from gofunc_tables.models import ExecutionOutcome, FunctionDescriptor
from .codegen import render_program, resolve_import_path
from .decoder import decode_output

logger = logging.getLogger(__name__)

PROGRAM_FILENAME = "gofunc_main.go"


class FunctionRunner:
    """Runs parameterless functions of one repository.

    Args:
        repo_root: Repository root, used as the subprocess working directory
        workspace: Temporary directory the generated program is written to
        go_binary: Go toolchain executable
        timeout: Optional per-function timeout in seconds; None waits forever
    """

    def __init__(
        self,
        repo_root: Path | str,
        workspace: Path | str,
        go_binary: str = "go",
        timeout: float | None = None
    ):
        self.repo_root = Path(repo_root)
        self.workspace = Path(workspace)
        self.go_binary = go_binary
        self.timeout = timeout

    def execute(self, descriptor: FunctionDescriptor) -> ExecutionOutcome:
        """Run a function and capture its decoded output.

        Raises:
            UnsupportedSignatureError: If the function declares parameters
        """
        if not descriptor.is_eligible:
            raise UnsupportedSignatureError(
                f"function {descriptor.name} requires parameters, skipping"
            )

        import_path = resolve_import_path(self.repo_root, descriptor.package_path)
        program_path = self.workspace / PROGRAM_FILENAME

        try:
            program_path.write_text(render_program(descriptor, import_path), encoding="utf-8")
        except OSError as e:
            return _failed(b"", ExecutionError(f"failed to write program for {descriptor.name}: {e}"))

        try:
            return self._run(descriptor, program_path)
        finally:
            program_path.unlink(missing_ok=True)

    def _run(self, descriptor: FunctionDescriptor, program_path: Path) -> ExecutionOutcome:
        cmd = [self.go_binary, "run", str(program_path)]
        logger.debug(f"Running {descriptor.name}: {' '.join(cmd)} (cwd={self.repo_root})")

        try:
            proc = subprocess.run(
                cmd,
                cwd=str(self.repo_root),
                capture_output=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            return _failed(e.stdout or b"", ExecutionError(
                f"function {descriptor.name} timed out after {self.timeout}s",
                stderr=_text(e.stderr),
            ))
        except OSError as e:
            return _failed(b"", ExecutionError(f"failed to launch {self.go_binary}: {e}"))

        if proc.returncode != 0:
            return _failed(proc.stdout, ExecutionError(
                f"failed to execute function {descriptor.name} (exit status {proc.returncode})",
                exit_code=proc.returncode,
                stderr=_text(proc.stderr),
            ))

        return ExecutionOutcome(raw_bytes=proc.stdout, decoded=decode_output(proc.stdout))


def _failed(raw: bytes, error: ExecutionError) -> ExecutionOutcome:
    return ExecutionOutcome(raw_bytes=raw, failure=error)


def _text(data: bytes | str | None) -> str:
    if not data:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
