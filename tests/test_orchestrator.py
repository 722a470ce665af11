"""Tests for the per-repository pipeline."""
import os
import re
import subprocess
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from conftest import FakeConnection
from gofunc_tables.errors import DatabaseConnectionError, ExecutionError
from gofunc_tables.execution.decoder import decode_output
from gofunc_tables.execution.runner import FunctionRunner
from gofunc_tables.models import ExecutionOutcome
from gofunc_tables.pipeline.orchestrator import process_repository

OUTPUTS = {
    "GetConfig": b'{"a":1,"b":"x"}',
    "ListNames": b'[{"n":"A"},{"n":"B"}]',
    "Numbers": b"[1,2,3]",
    "Lookup": b'{"n":"found"}',
    "Index": b'{"all":[{"n":"A"},{"n":"B"}]}',
    "Printer": b"null",
    "Version": b'"1.0"',
}


class ScriptedRunner(FunctionRunner):
    """FunctionRunner whose subprocess is replaced by canned output."""

    instances = []

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []
        ScriptedRunner.instances.append(self)

    def _run(self, descriptor, program_path):
        self.calls.append(descriptor.name)
        if descriptor.name in OUTPUTS:
            raw = OUTPUTS[descriptor.name]
            return ExecutionOutcome(raw_bytes=raw, decoded=decode_output(raw))
        return ExecutionOutcome(
            raw_bytes=b"",
            failure=ExecutionError("exit status 2", exit_code=2, stderr="panic in Boom: boom"),
        )


@pytest.fixture(autouse=True)
def _reset_runners():
    ScriptedRunner.instances.clear()


@pytest.mark.asyncio
async def test_fixture_repository(go_repo, app_config, fake_conn):
    connect = AsyncMock(return_value=fake_conn)

    result = await process_repository(
        go_repo, app_config, connect=connect, runner_factory=ScriptedRunner
    )

    names = [f.name for f in result.processed_functions]
    assert names == [
        "GetConfig", "ListNames", "Numbers", "Lookup", "Index",
        "Printer", "Add", "Join", "Boom", "Version",
    ]
    assert result.executed_functions == (
        "GetConfig", "ListNames", "Numbers", "Lookup", "Index", "Printer", "Version",
    )
    assert result.created_tables == result.executed_functions
    assert not result.failed

    assert len(result.errors) == 4
    assert result.errors[0].startswith("Failed to extract functions from ")
    assert "broken.go" in result.errors[0]
    assert result.errors[1] == "Failed to execute function Add: function Add requires parameters, skipping"
    assert result.errors[2].startswith("Failed to execute function Join:")
    assert result.errors[3].startswith("Failed to execute function Boom:")
    assert "panic in Boom" in result.errors[3]

    connect.assert_awaited_once_with(app_config.database)
    fake_conn.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_functions_with_parameters_never_run(go_repo, app_config, fake_conn):
    result = await process_repository(
        go_repo, app_config, connect=AsyncMock(return_value=fake_conn), runner_factory=ScriptedRunner
    )

    (runner,) = ScriptedRunner.instances
    assert "Add" not in runner.calls
    assert "Join" not in runner.calls
    assert "Add" in [f.name for f in result.processed_functions]
    assert "Add" not in result.executed_functions


@pytest.mark.asyncio
async def test_executed_functions_match_created_tables(go_repo, app_config, fake_conn):
    result = await process_repository(
        go_repo, app_config, connect=AsyncMock(return_value=fake_conn), runner_factory=ScriptedRunner
    )

    failed_before_materialize = 1  # Boom
    assert len(result.executed_functions) == result.eligible_count - failed_before_materialize


@pytest.mark.asyncio
async def test_workspace_removed(go_repo, app_config, fake_conn):
    await process_repository(
        go_repo, app_config, connect=AsyncMock(return_value=fake_conn), runner_factory=ScriptedRunner
    )

    (runner,) = ScriptedRunner.instances
    assert not Path(runner.workspace).exists()


@pytest.mark.asyncio
async def test_materialize_failure_does_not_stop_batch(go_repo, app_config):
    conn = FakeConnection(fail_on=lambda q, a: q.startswith("CREATE TABLE Numbers"))

    result = await process_repository(
        go_repo, app_config, connect=AsyncMock(return_value=conn), runner_factory=ScriptedRunner
    )

    assert "Numbers" not in result.created_tables
    assert "Version" in result.created_tables
    assert any(e.startswith("Failed to materialize table for Numbers:") for e in result.errors)
    conn.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_connection_failure_aborts_repository(go_repo, app_config):
    connect = AsyncMock(side_effect=DatabaseConnectionError("refused"))

    result = await process_repository(
        go_repo, app_config, connect=connect, runner_factory=ScriptedRunner
    )

    assert result.failed
    assert result.errors == ("Failed to connect to database: refused",)
    assert result.processed_functions == ()


@pytest.mark.asyncio
async def test_scan_failure_aborts_repository(tmp_path, app_config):
    connect = AsyncMock()

    result = await process_repository(tmp_path / "missing", app_config, connect=connect)

    assert result.failed
    assert result.errors[0].startswith("Failed to scan repository:")
    connect.assert_not_called()


@pytest.mark.asyncio
async def test_repository_without_eligible_functions(tmp_path, app_config, fake_conn):
    (tmp_path / "go.mod").write_text("module example.com/empty\n")
    (tmp_path / "lib.go").write_text(
        "package lib\n\nfunc Double(x int) int {\n\treturn x * 2\n}\n\nfunc internal() {}\n"
    )

    result = await process_repository(
        tmp_path, app_config, connect=AsyncMock(return_value=fake_conn), runner_factory=ScriptedRunner
    )

    assert [f.name for f in result.processed_functions] == ["Double"]
    assert result.eligible_count == 0
    assert result.executed_functions == ()


@pytest.mark.asyncio
async def test_real_runner_spawns_one_process_per_eligible_function(go_repo, app_config, fake_conn):
    """Drive the real FunctionRunner with subprocess.run patched out."""
    calls = []

    def fake_run(cmd, cwd, **kwargs):
        program = Path(cmd[2]).read_text()
        name = re.search(r"target\.(\w+)\(\)", program).group(1)
        calls.append(name)
        if name == "Boom":
            return subprocess.CompletedProcess(cmd, 2, b"", b"panic in Boom: boom\n")
        return subprocess.CompletedProcess(cmd, 0, OUTPUTS[name], b"")

    with patch("subprocess.run", side_effect=fake_run):
        result = await process_repository(
            go_repo, app_config, connect=AsyncMock(return_value=fake_conn)
        )

    assert len(calls) == result.eligible_count == 8
    assert len(result.created_tables) == 7
    assert ("INSERT INTO GetConfig (a, b) VALUES ($1, $2)", (1, "x")) in fake_conn.statements


@pytest.mark.asyncio
@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
async def test_symlink_outside_repository_does_not_abort(tmp_path, app_config, fake_conn):
    repo = tmp_path / "repo"
    repo.mkdir()
    (repo / "go.mod").write_text("module example.com/repo\n")
    (repo / "a.go").write_text("package a\n\nfunc Version() string {\n\treturn \"1\"\n}\n")
    shared = tmp_path / "shared"
    shared.mkdir()
    (shared / "shared.go").write_text("package shared\n\nfunc Name() string {\n\treturn \"x\"\n}\n")
    os.symlink(shared, repo / "shared", target_is_directory=True)

    result = await process_repository(
        repo, app_config, connect=AsyncMock(return_value=fake_conn), runner_factory=ScriptedRunner
    )

    assert not result.failed
    assert [f.name for f in result.processed_functions] == ["Version"]
    assert result.created_tables == ("Version",)
