"""Process several repositories one after another and aggregate the results."""
from __future__ import annotations
from dataclasses import replace
from datetime import datetime, timezone
import logging
import time

from gofunc_tables.config import AppConfig
from gofunc_tables.errors import AcquisitionError
from gofunc_tables.models import BatchSnapshot, ProcessingResult, ProcessingStats, ResultSnapshot
from .acquire import acquire_repository
from .orchestrator import process_repository

logger = logging.getLogger(__name__)


class RepositoryProcessor:
    """Runs the per-repository pipeline over a list of repositories.

    Keyword arguments other than ``config`` are forwarded to
    ``process_repository`` (used by tests to swap the database and toolchain).
    """

    def __init__(self, config: AppConfig, acquire=acquire_repository, **pipeline_options):
        self.config = config
        self.acquire = acquire
        self.pipeline_options = pipeline_options
        self.results: dict[str, ResultSnapshot] = {}
        self.stats = ProcessingStats()

    async def process_repositories(self, repositories: list[str]) -> BatchSnapshot:
        start = time.monotonic()
        logger.info(f"Starting processing of {len(repositories)} repositories")

        for i, identifier in enumerate(repositories, start=1):
            logger.info(f"Processing repository {i}/{len(repositories)}: {identifier}")
            result = await self.process_one(identifier)
            self.results[identifier] = result
            self.stats.add(result)

            if result.failed:
                logger.error(f"Failed to process repository {identifier}: {result.errors[-1]}")
            else:
                logger.info(f"Successfully processed repository: {identifier}")

        self.stats.total_repositories += len(repositories)
        self.stats.processing_time_ms += int((time.monotonic() - start) * 1000)
        logger.info(
            f"Completed processing {len(repositories)} repositories "
            f"in {self.stats.processing_time_ms}ms"
        )
        return self.snapshot()

    async def process_one(self, identifier: str) -> ResultSnapshot:
        try:
            with self.acquire(identifier) as repo_root:
                return await process_repository(
                    repo_root,
                    self.config,
                    repository=identifier,
                    **self.pipeline_options
                )
        except AcquisitionError as e:
            result = ProcessingResult(repository=identifier)
            result.abort(f"Failed to acquire repository: {e}")
            return result.snapshot()

    def snapshot(self) -> BatchSnapshot:
        return BatchSnapshot(
            results=self.results,
            summary=replace(self.stats),
            generated_at=datetime.now(timezone.utc),
        )
