"""Repository and batch orchestration."""
from .batch import RepositoryProcessor
from .orchestrator import process_repository

__all__ = ["RepositoryProcessor", "process_repository"]
