"""Data model shared by the discovery, execution and materialization stages."""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from .errors import ExecutionError


@dataclass(frozen=True)
class Parameter:
    """One declared parameter of a Go function."""
    name: str  # Empty for unnamed parameters
    type: str

    def __str__(self) -> str:
        return f"{self.name} {self.type}" if self.name else self.type


@dataclass(frozen=True)
class FunctionDescriptor:
    """Static metadata about an exported top-level Go function."""
    name: str
    source_file: str
    package_path: str  # Repository-relative directory, "." for the root
    package_name: str
    line_number: int
    parameters: tuple[Parameter, ...] = ()
    return_types: tuple[str, ...] = ()
    doc_comment: str | None = None

    @property
    def is_eligible(self) -> bool:
        """Only parameterless functions can be executed."""
        return not self.parameters

    @property
    def signature(self) -> str:
        params = ", ".join(str(p) for p in self.parameters)
        if not self.return_types:
            return f"{self.name}({params})"
        if len(self.return_types) == 1:
            return f"{self.name}({params}) {self.return_types[0]}"
        return f"{self.name}({params}) ({', '.join(self.return_types)})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "file_path": self.source_file,
            "package_path": self.package_path,
            "package_name": self.package_name,
            "line_number": self.line_number,
            "parameters": [str(p) for p in self.parameters],
            "return_types": list(self.return_types),
            "comment": self.doc_comment,
        }


class ValueKind(str, Enum):
    """Shape of a decoded function result."""
    OBJECT = "object"
    OBJECT_ARRAY = "object_array"
    PRIMITIVE_ARRAY = "primitive_array"
    SCALAR = "scalar"
    NULL = "null"


@dataclass(frozen=True)
class DecodedValue:
    """A decoded result tagged with its shape."""
    kind: ValueKind
    value: Any


@dataclass(frozen=True)
class ExecutionOutcome:
    """Result of running one function once.

    Exactly one of ``decoded`` and ``failure`` is set.
    """
    raw_bytes: bytes
    decoded: DecodedValue | None = None
    failure: ExecutionError | None = None

    def __post_init__(self) -> None:
        if (self.decoded is None) == (self.failure is None):
            raise ValueError("ExecutionOutcome needs exactly one of decoded or failure")

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass(frozen=True)
class Column:
    name: str
    sql_type: str


@dataclass(frozen=True)
class TableSpec:
    """Relational shape inferred from a decoded value.

    ``columns`` holds the data columns only; the serial primary key is implicit.
    """
    table_name: str
    columns: tuple[Column, ...]

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]


@dataclass
class ProcessingResult:
    """Per-repository accumulator threaded through the pipeline."""
    repository: str
    processed_functions: list[FunctionDescriptor] = field(default_factory=list)
    executed_functions: list[str] = field(default_factory=list)
    created_tables: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    failed: bool = False

    def record_function(self, descriptor: FunctionDescriptor) -> None:
        self.processed_functions.append(descriptor)

    def record_table(self, function_name: str, table_name: str) -> None:
        self.executed_functions.append(function_name)
        self.created_tables.append(table_name)

    def record_error(self, message: str) -> None:
        self.errors.append(message)

    def abort(self, message: str) -> None:
        self.errors.append(message)
        self.failed = True

    def snapshot(self) -> ResultSnapshot:
        return ResultSnapshot(
            repository=self.repository,
            processed_functions=tuple(self.processed_functions),
            executed_functions=tuple(self.executed_functions),
            created_tables=tuple(self.created_tables),
            errors=tuple(self.errors),
            failed=self.failed,
        )


@dataclass(frozen=True)
class ResultSnapshot:
    """Immutable view of a finished ProcessingResult."""
    repository: str
    processed_functions: tuple[FunctionDescriptor, ...] = ()
    executed_functions: tuple[str, ...] = ()
    created_tables: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    failed: bool = False

    @property
    def eligible_count(self) -> int:
        return sum(1 for f in self.processed_functions if f.is_eligible)

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed_functions": [f.to_dict() for f in self.processed_functions],
            "created_tables": list(self.created_tables),
            "errors": list(self.errors),
            "executed_functions": list(self.executed_functions),
            "failed": self.failed,
        }


@dataclass
class ProcessingStats:
    """Aggregate counters across all processed repositories."""
    total_repositories: int = 0
    total_functions: int = 0
    total_executed: int = 0
    total_tables: int = 0
    total_errors: int = 0
    processing_time_ms: int = 0

    def add(self, result: ResultSnapshot) -> None:
        self.total_functions += len(result.processed_functions)
        self.total_executed += len(result.executed_functions)
        self.total_tables += len(result.created_tables)
        self.total_errors += len(result.errors)

    @property
    def success_rate(self) -> float | None:
        if not self.total_functions:
            return None
        return self.total_executed / self.total_functions * 100

    def to_dict(self) -> dict[str, int]:
        return {
            "total_repositories": self.total_repositories,
            "total_functions": self.total_functions,
            "total_executed": self.total_executed,
            "total_tables": self.total_tables,
            "total_errors": self.total_errors,
            "processing_time_ms": self.processing_time_ms,
        }


@dataclass(frozen=True)
class BatchSnapshot:
    """Read-only aggregate handed to reporting."""
    results: Mapping[str, ResultSnapshot]
    summary: ProcessingStats
    generated_at: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "results", MappingProxyType(dict(self.results)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "results": {repo: r.to_dict() for repo, r in self.results.items()},
            "generated_at": self.generated_at.isoformat(timespec="seconds"),
        }
