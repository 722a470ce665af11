"""Per-repository pipeline.

Scan -> discover -> (execute -> decode -> infer -> materialize) per function.
Failures are recorded on the result and processing moves on; only a failed
scan or a failed database connection abandons the repository.
"""
from __future__ import annotations
from pathlib import Path
from typing import Awaitable, Callable
import logging
import shutil
import tempfile
import asyncpg

from gofunc_tables.config import AppConfig, DatabaseConfig
from gofunc_tables.db.connection import connect as db_connect
from gofunc_tables.discovery.repo_scanner import scan_go_files
from gofunc_tables.discovery.treesitter.extract_functions import extract_functions
from gofunc_tables.errors import (
    DatabaseConnectionError,
    ParseError,
    PersistenceError,
    TraversalError,
    UnsupportedSignatureError,
)
from gofunc_tables.execution.runner import FunctionRunner
from gofunc_tables.models import FunctionDescriptor, ProcessingResult, ResultSnapshot
from gofunc_tables.schema.inference import infer_table_spec
from gofunc_tables.schema.materializer import TableMaterializer

logger = logging.getLogger(__name__)

Connector = Callable[[DatabaseConfig], Awaitable[asyncpg.Connection]]


async def process_repository(
    repo_root: Path | str,
    config: AppConfig,
    repository: str | None = None,
    connect: Connector = db_connect,
    runner_factory: Callable[..., FunctionRunner] = FunctionRunner
) -> ResultSnapshot:
    """Run the whole pipeline for one checked-out repository.

    Args:
        repo_root: Local checkout of the repository
        config: Application configuration
        repository: Identifier to record on the result (defaults to repo_root)
        connect: Coroutine opening a database connection
        runner_factory: Builds the FunctionRunner for this repository

    Returns:
        Immutable snapshot of the repository's results
    """
    repo_root = Path(repo_root).resolve()
    result = ProcessingResult(repository=repository or str(repo_root))

    workspace = Path(tempfile.mkdtemp(prefix="gofunc_"))
    try:
        try:
            files = scan_go_files(repo_root, respect_gitignore=config.scanning.respect_gitignore)
        except TraversalError as e:
            logger.error(f"Failed to scan {repo_root}: {e}")
            result.abort(f"Failed to scan repository: {e}")
            return result.snapshot()

        try:
            conn = await connect(config.database)
        except DatabaseConnectionError as e:
            logger.error(f"Failed to connect to database: {e}")
            result.abort(f"Failed to connect to database: {e}")
            return result.snapshot()

        try:
            runner = runner_factory(
                repo_root,
                workspace,
                go_binary=config.execution.go_binary,
                timeout=config.execution.timeout_seconds,
            )
            materializer = TableMaterializer(conn)

            for file_path in files:
                try:
                    functions = extract_functions(file_path, repo_root)
                except ParseError as e:
                    logger.warning(f"Skipping {file_path}: {e}")
                    result.record_error(f"Failed to extract functions from {file_path}: {e}")
                    continue

                for function in functions:
                    result.record_function(function)
                    await process_function(function, runner, materializer, result)
        finally:
            await conn.close()
    finally:
        shutil.rmtree(workspace, ignore_errors=True)

    logger.info(
        f"Processed {result.repository}: {len(result.processed_functions)} functions, "
        f"{len(result.created_tables)} tables, {len(result.errors)} errors"
    )
    return result.snapshot()


async def process_function(
    function: FunctionDescriptor,
    runner: FunctionRunner,
    materializer: TableMaterializer,
    result: ProcessingResult
) -> bool:
    """Execute, infer and materialize one function.

    Returns:
        True if a table was created and populated
    """
    try:
        outcome = runner.execute(function)
    except UnsupportedSignatureError as e:
        logger.debug(f"Skipping {function.name}: {e}")
        result.record_error(f"Failed to execute function {function.name}: {e}")
        return False

    if not outcome.ok:
        logger.warning(f"Execution failed for {function.name}: {outcome.failure}")
        result.record_error(f"Failed to execute function {function.name}: {outcome.failure}")
        return False

    spec = infer_table_spec(function.name, outcome.decoded)
    try:
        await materializer.materialize(spec, outcome.decoded)
    except PersistenceError as e:
        logger.warning(f"Materialization failed for {function.name}: {e}")
        result.record_error(f"Failed to materialize table for {function.name}: {e}")
        return False

    result.record_table(function.name, spec.table_name)
    return True
