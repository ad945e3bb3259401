"""Unit tests for Terraform execution."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

import pytest

from infra_orchestrator.domain.errors import TerraformExecutionError
from infra_orchestrator.infrastructure.terraform.executor import (
    PROVIDERS_TF,
    run_terraform,
    SimulatedTerraformExecutor,
    TerraformCliExecutor,
    write_workspace,
)


DEFINITION = """resource "azurerm_storage_account" "st" {
  name = "sttest"
}
"""


@pytest.fixture
def executor() -> SimulatedTerraformExecutor:
    return SimulatedTerraformExecutor()


class TestWriteWorkspace:
    def test_adds_default_provider(self, tmp_path: Path) -> None:
        write_workspace(str(tmp_path), DEFINITION)
        assert (tmp_path / "main.tf").read_text() == DEFINITION
        assert (tmp_path / "providers.tf").read_text() == PROVIDERS_TF

    def test_keeps_declared_provider(self, tmp_path: Path) -> None:
        definition = 'provider "azurerm" {\n  features {}\n}\n' + DEFINITION
        write_workspace(str(tmp_path), definition)
        assert not (tmp_path / "providers.tf").exists()


class TestRunTerraform:
    @pytest.mark.asyncio
    async def test_init_then_apply(self, executor: SimulatedTerraformExecutor) -> None:
        output = await run_terraform(executor, DEFINITION, "deployment-1")

        assert "Apply complete" in output
        assert [command for command, _ in executor.commands] == ["init", "apply"]
        assert executor.applied_definitions == [DEFINITION]

    @pytest.mark.asyncio
    async def test_scratch_directory_removed(self, executor: SimulatedTerraformExecutor) -> None:
        await run_terraform(executor, DEFINITION, "deployment-1")
        working_dir = executor.commands[0][1]
        assert "deployment-1" in os.path.basename(working_dir)
        assert not os.path.exists(working_dir)

    @pytest.mark.asyncio
    async def test_init_failure(self) -> None:
        executor = SimulatedTerraformExecutor(fail_on="init", failure_output="no provider")
        with pytest.raises(TerraformExecutionError, match="Terraform initialization failed: no provider"):
            await run_terraform(executor, DEFINITION, "deployment-1")
        assert [command for command, _ in executor.commands] == ["init"]
        assert not os.path.exists(executor.commands[0][1])

    @pytest.mark.asyncio
    async def test_apply_failure(self) -> None:
        executor = SimulatedTerraformExecutor(fail_on="apply", failure_output="quota exceeded")
        with pytest.raises(TerraformExecutionError, match="Terraform apply failed: quota exceeded"):
            await run_terraform(executor, DEFINITION, "deployment-1")
        assert not os.path.exists(executor.commands[-1][1])


class TestTerraformCliExecutor:
    @pytest.mark.asyncio
    @pytest.mark.skipif(shutil.which("echo") is None, reason="echo binary not available")
    async def test_passes_arguments(self, tmp_path: Path) -> None:
        executor = TerraformCliExecutor(binary="echo")
        ok, output = await executor.apply(str(tmp_path))
        assert ok
        assert output.split() == ["apply", "-input=false", "-no-color", "-auto-approve"]

    @pytest.mark.asyncio
    @pytest.mark.skipif(shutil.which("false") is None, reason="false binary not available")
    async def test_non_zero_exit_is_failure(self, tmp_path: Path) -> None:
        executor = TerraformCliExecutor(binary="false")
        ok, _ = await executor.init(str(tmp_path))
        assert not ok
