"""Obtain a local checkout for a repository identifier.

Local directories are used in place. Anything else is cloned with git into a
temporary directory that is removed when the block exits.
"""
from __future__ import annotations
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
import logging
import shutil
import subprocess
import tempfile

from gofunc_tables.errors import AcquisitionError

logger = logging.getLogger(__name__)


def is_local_repository(identifier: str) -> bool:
    return Path(identifier).expanduser().is_dir()


@contextmanager
def acquire_repository(identifier: str, git_binary: str = "git") -> Iterator[Path]:
    """Yield a local path for a repository path or clone URL.

    Raises:
        AcquisitionError: If cloning fails
    """
    if is_local_repository(identifier):
        yield Path(identifier).expanduser().resolve()
        return

    temp_dir = Path(tempfile.mkdtemp(prefix="repo_"))
    repo_path = temp_dir / "repo"
    try:
        logger.info(f"Cloning repository {identifier} to {repo_path}")
        try:
            subprocess.run(
                [git_binary, "clone", "--depth", "1", identifier, str(repo_path)],
                capture_output=True,
                text=True,
                check=True
            )
        except subprocess.CalledProcessError as e:
            raise AcquisitionError(f"Failed to clone {identifier}: {e.stderr.strip()}") from e
        except OSError as e:
            raise AcquisitionError(f"Failed to run {git_binary}: {e}") from e

        logger.info(f"Repository cloned successfully to {repo_path}")
        yield repo_path
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)
