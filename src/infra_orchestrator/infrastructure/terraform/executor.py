"""Terraform executor implementations."""

from __future__ import annotations

import asyncio
import os
import shutil
import tempfile

import structlog

from infra_orchestrator.domain.errors import TerraformExecutionError
from infra_orchestrator.domain.ports.services import TerraformExecutor


logger = structlog.get_logger(__name__)

PROVIDERS_TF = """provider "azurerm" {
  features {}
}
"""


def write_workspace(working_dir: str, definition: str) -> None:
    """Lay out ``main.tf`` and a default ``providers.tf`` in ``working_dir``."""
    os.makedirs(working_dir, exist_ok=True)
    with open(os.path.join(working_dir, "main.tf"), "w") as f:
        f.write(definition)

    providers_path = os.path.join(working_dir, "providers.tf")
    if "provider \"azurerm\"" not in definition:
        with open(providers_path, "w") as f:
            f.write(PROVIDERS_TF)


async def run_terraform(
    executor: TerraformExecutor, definition: str, deployment_name: str
) -> str:
    """Init and apply ``definition`` in a scratch directory; returns apply output.

    The scratch directory is removed afterwards whatever the outcome.
    """
    working_dir = tempfile.mkdtemp(prefix=f"tf-{deployment_name}-")
    try:
        write_workspace(working_dir, definition)

        ok, output = await executor.init(working_dir)
        if not ok:
            raise TerraformExecutionError(f"Terraform initialization failed: {output}")

        ok, output = await executor.apply(working_dir, auto_approve=True)
        if not ok:
            raise TerraformExecutionError(f"Terraform apply failed: {output}")

        logger.info("terraform_deployment_applied", deployment_name=deployment_name)
        return output
    finally:
        shutil.rmtree(working_dir, ignore_errors=True)


class TerraformCliExecutor(TerraformExecutor):
    """Runs the ``terraform`` binary as a subprocess."""

    def __init__(self, binary: str = "terraform") -> None:
        self._binary = binary

    async def _run(self, working_dir: str, *args: str) -> tuple[bool, str]:
        process = await asyncio.create_subprocess_exec(
            self._binary,
            *args,
            cwd=working_dir,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
        ok = process.returncode == 0
        output = (stdout if ok else stderr or stdout).decode(errors="replace")

        logger.info(
            "terraform_command_finished",
            command=args[0],
            working_dir=working_dir,
            returncode=process.returncode,
        )
        return ok, output

    async def init(self, working_dir: str) -> tuple[bool, str]:
        return await self._run(working_dir, "init", "-input=false", "-no-color")

    async def apply(self, working_dir: str, auto_approve: bool = True) -> tuple[bool, str]:
        args = ["apply", "-input=false", "-no-color"]
        if auto_approve:
            args.append("-auto-approve")
        return await self._run(working_dir, *args)


class SimulatedTerraformExecutor(TerraformExecutor):
    """Simulated Terraform executor for development/testing.

    Records the directories it was asked to work in and succeeds unless told
    to fail a given command.
    """

    def __init__(self, fail_on: str | None = None, failure_output: str = "simulated failure") -> None:
        self._fail_on = fail_on
        self._failure_output = failure_output
        self.commands: list[tuple[str, str]] = []
        self.applied_definitions: list[str] = []

    async def init(self, working_dir: str) -> tuple[bool, str]:
        self.commands.append(("init", working_dir))
        logger.info("terraform_init", working_dir=working_dir)
        if self._fail_on == "init":
            return False, self._failure_output
        return True, "Terraform has been successfully initialized!"

    async def apply(self, working_dir: str, auto_approve: bool = True) -> tuple[bool, str]:  # noqa: ARG002
        self.commands.append(("apply", working_dir))
        logger.info("terraform_apply", working_dir=working_dir)
        if self._fail_on == "apply":
            return False, self._failure_output

        with open(os.path.join(working_dir, "main.tf")) as f:
            self.applied_definitions.append(f.read())
        return True, "Apply complete! Resources: 1 added, 0 changed, 0 destroyed."
