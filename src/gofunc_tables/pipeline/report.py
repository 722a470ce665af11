"""Render and persist batch results."""
from __future__ import annotations
from pathlib import Path
import json
import logging

from gofunc_tables.models import BatchSnapshot

logger = logging.getLogger(__name__)


def render_summary(snapshot: BatchSnapshot) -> str:
    """Human-readable summary of a batch run."""
    stats = snapshot.summary
    lines = [
        "=" * 60,
        "PROCESSING SUMMARY",
        "=" * 60,
        f"Total Repositories: {stats.total_repositories}",
        f"Total Functions Processed: {stats.total_functions}",
        f"Total Functions Executed: {stats.total_executed}",
        f"Total Tables Created: {stats.total_tables}",
        f"Total Errors: {stats.total_errors}",
        f"Processing Time: {stats.processing_time_ms}ms",
    ]
    if stats.success_rate is not None:
        lines.append(f"Success Rate: {stats.success_rate:.1f}%")

    lines += ["", "REPOSITORY DETAILS:", "-" * 60]
    for repo, result in snapshot.results.items():
        status = " (FAILED)" if result.failed else ""
        lines += [
            "",
            f"Repository: {repo}{status}",
            f"   Functions: {len(result.processed_functions)}",
            f"   Executed: {len(result.executed_functions)}",
            f"   Tables: {len(result.created_tables)}",
            f"   Errors: {len(result.errors)}",
        ]
        if result.created_tables:
            lines.append(f"   Created Tables: {', '.join(result.created_tables)}")
        if result.errors:
            lines.append("   Error Details:")
            lines += [f"      - {err}" for err in result.errors]

    return "\n".join(lines)


def save_results(snapshot: BatchSnapshot, path: str | Path) -> Path:
    """Write the batch snapshot as indented JSON."""
    path = Path(path)
    path.write_text(json.dumps(snapshot.to_dict(), indent=2) + "\n", encoding="utf-8")
    logger.info(f"Results saved to {path}")
    return path
