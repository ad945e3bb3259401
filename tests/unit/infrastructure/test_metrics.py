"""Unit tests for Prometheus instrumentation of the services."""

from __future__ import annotations

import pytest
from prometheus_client import REGISTRY

from infra_orchestrator.domain.services.deployment_service import DeploymentOrchestrator
from infra_orchestrator.infrastructure.cloud.simulated import SimulatedControlPlane


def _sample(name: str, **labels: str) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestServiceMetrics:
    @pytest.mark.asyncio
    async def test_submission_results_counted(
        self, orchestrator: DeploymentOrchestrator, control_plane: SimulatedControlPlane
    ) -> None:
        name = "infra_orchestrator_deployments_submitted_total"
        accepted = _sample(name, kind="bicep", result="accepted")
        failed = _sample(name, kind="bicep", result="failed")

        await orchestrator.submit("{}", "bicep")
        control_plane.fail("submit_deployment", RuntimeError("boom"))
        await orchestrator.submit("{}", "bicep")

        assert _sample(name, kind="bicep", result="accepted") == accepted + 1
        assert _sample(name, kind="bicep", result="failed") == failed + 1

    @pytest.mark.asyncio
    async def test_cancellation_results_counted(self, orchestrator: DeploymentOrchestrator) -> None:
        name = "infra_orchestrator_deployment_cancellations_total"
        before = _sample(name, result="not_cancelable")
        record = await orchestrator.submit("{}", "bicep")
        await orchestrator.wait_for_completion(record.id)

        assert not await orchestrator.cancel(record.id)
        assert _sample(name, result="not_cancelable") == before + 1
