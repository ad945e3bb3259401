"""Domain service driving deployments through their lifecycle."""

from __future__ import annotations

import asyncio
import traceback
import uuid

import structlog

from infra_orchestrator.domain.errors import (
    DeploymentNotFoundError,
    InvalidInputError,
    MissingConfigurationError,
    UnsupportedDefinitionError,
)
from infra_orchestrator.domain.models.base import AggregateRoot
from infra_orchestrator.domain.models.cloud_resource import RemoteDeployment
from infra_orchestrator.domain.models.deployment import (
    DeployedResource,
    DeploymentRecord,
    DeploymentStatus,
    is_terminal_status,
    map_remote_state,
    ScriptKind,
)
from infra_orchestrator.domain.models.resource_identity import PORTAL_BASE_URL, portal_url
from infra_orchestrator.domain.ports.repositories import DeploymentRegistry
from infra_orchestrator.domain.ports.services import ControlPlaneClient, EventPublisher
from infra_orchestrator.infrastructure.observability.metrics import (
    DEPLOYMENT_CANCELLATIONS,
    DEPLOYMENT_DURATION,
    DEPLOYMENT_TRANSITIONS,
    DEPLOYMENTS_SUBMITTED,
    STATUS_QUERY_FAILURES,
)


logger = structlog.get_logger(__name__)

DEPLOYABLE_KINDS = frozenset({ScriptKind.BICEP, ScriptKind.TERRAFORM})


class DeploymentOrchestrator:
    """Submits definitions and tracks them until they reach a terminal status.

    State only changes through ``get_status`` polling and ``cancel``; there is
    no push path. Remote failures are reported through the record's status and
    never raised, except for caller mistakes (``InvalidInputError``) and
    unresolvable defaults (``MissingConfigurationError``).
    """

    def __init__(
        self,
        control_plane: ControlPlaneClient,
        registry: DeploymentRegistry,
        default_resource_group: str | None = None,
        default_region: str | None = "eastus",
        event_publisher: EventPublisher | None = None,
        portal_base_url: str = PORTAL_BASE_URL,
        poll_interval_seconds: float = 5.0,
        poll_timeout_seconds: float = 3600.0,
    ) -> None:
        self._control_plane = control_plane
        self._registry = registry
        self._default_resource_group = default_resource_group
        self._default_region = default_region
        self._event_publisher = event_publisher
        self._portal_base_url = portal_base_url
        self._poll_interval = poll_interval_seconds
        self._poll_timeout = poll_timeout_seconds

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _publish_events(self, aggregate: AggregateRoot) -> None:
        """Collect and publish all pending domain events from an aggregate.

        Runs after the transition is committed, so a failing subscriber is
        logged and never changes the outcome reported to the caller.
        """
        events = aggregate.collect_events()
        if self._event_publisher is None:
            return
        for event in events:
            try:
                await self._event_publisher.publish(event.event_type, event.to_payload())
            except Exception:
                logger.exception(
                    "event_publish_failed",
                    event_type=event.event_type,
                    deployment_id=aggregate.id,
                )

    def _deployment_portal_url(self, record: DeploymentRecord) -> str:
        deployment_path = (
            f"/subscriptions/{self._control_plane.subscription_id}"
            f"/resourceGroups/{record.resource_group}"
            f"/providers/Microsoft.Resources/deployments/{record.name}"
        )
        return portal_url(deployment_path, self._portal_base_url)

    def _resolve_target(
        self, resource_group: str | None, region: str | None
    ) -> tuple[str, str]:
        resource_group = resource_group or self._default_resource_group
        if not resource_group:
            raise MissingConfigurationError(
                "Resource group name is required but not provided and no default is configured"
            )
        region = region or self._default_region
        if not region:
            raise MissingConfigurationError(
                "Region is required but not provided and no default is configured"
            )
        return resource_group, region

    @staticmethod
    def _observe_terminal(record: DeploymentRecord) -> None:
        if record.is_terminal:
            DEPLOYMENT_DURATION.labels(status=record.status.value).observe(
                record.duration.total_seconds()
            )

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    async def submit(
        self,
        definition: str,
        kind: ScriptKind | str,
        name: str | None = None,
        resource_group: str | None = None,
        region: str | None = None,
    ) -> DeploymentRecord:
        """Register a deployment and submit its definition to the control plane.

        Submission failures are recorded on the returned record (status
        ``failed``); they are not raised.
        """
        if not definition or not definition.strip():
            raise InvalidInputError("Definition cannot be empty")
        try:
            kind = ScriptKind(kind)
        except ValueError as e:
            raise InvalidInputError(f"Unknown definition kind: {kind!r}") from e

        resource_group, region = self._resolve_target(resource_group, region)
        record = DeploymentRecord(
            name=name or f"deployment-{uuid.uuid4().hex[:8]}",
            resource_group=resource_group,
            region=region,
            script_kind=kind,
        )
        await self._registry.add(record)

        logger.info(
            "deployment_registered",
            deployment_id=record.id,
            deployment_name=record.name,
            resource_group=resource_group,
            region=region,
            kind=kind.value,
        )

        async with self._registry.lock(record.id):
            try:
                if kind not in DEPLOYABLE_KINDS:
                    raise UnsupportedDefinitionError(
                        f"{kind.value} deployment is not currently supported"
                    )

                await self._control_plane.ensure_resource_group(resource_group, region)
                existing = await self._control_plane.list_resources(resource_group)
                record.baseline_resource_ids = [r.id for r in existing]

                await self._control_plane.submit_deployment(
                    resource_group, record.name, definition, kind
                )
                record.mark_submitted()
                record.portal_url = self._deployment_portal_url(record)
                DEPLOYMENTS_SUBMITTED.labels(kind=kind.value, result="accepted").inc()

                logger.info(
                    "deployment_submitted",
                    deployment_id=record.id,
                    deployment_name=record.name,
                    baseline_resources=len(record.baseline_resource_ids),
                )
            except Exception as e:
                logger.exception(
                    "deployment_submission_failed",
                    deployment_id=record.id,
                    error=str(e),
                )
                record.fail(str(e) or type(e).__name__, traceback.format_exc())
                DEPLOYMENTS_SUBMITTED.labels(kind=kind.value, result="failed").inc()
                self._observe_terminal(record)

        await self._publish_events(record)
        return record

    async def get_status(self, deployment_id: str) -> DeploymentStatus:
        """Poll the control plane and advance the record's state machine.

        Unknown ids report ``unknown``. Terminal records are returned as-is
        without a remote call. A failing remote query leaves the record
        untouched and returns its previous status.
        """
        record = await self._registry.get(deployment_id)
        if record is None:
            logger.warning("deployment_not_found", deployment_id=deployment_id)
            return DeploymentStatus.UNKNOWN

        async with self._registry.lock(deployment_id):
            if record.is_terminal:
                return record.status

            previous = record.status
            try:
                remote = await self._control_plane.get_deployment(
                    record.resource_group, record.name
                )
                if remote is None:
                    record.fail(
                        f"Deployment '{record.name}' not found in resource group "
                        f"'{record.resource_group}'"
                    )
                else:
                    await self._apply_remote_state(record, remote)
            except Exception as e:
                STATUS_QUERY_FAILURES.inc()
                logger.warning(
                    "deployment_status_query_failed",
                    deployment_id=deployment_id,
                    status=record.status.value,
                    error=str(e),
                )
                return record.status

            record.portal_url = self._deployment_portal_url(record)
            if record.status != previous:
                DEPLOYMENT_TRANSITIONS.labels(status=record.status.value).inc()
                logger.info(
                    "deployment_status_changed",
                    deployment_id=deployment_id,
                    previous=previous.value,
                    status=record.status.value,
                )
                self._observe_terminal(record)

        await self._publish_events(record)
        return record.status

    async def _apply_remote_state(
        self, record: DeploymentRecord, remote: RemoteDeployment
    ) -> None:
        status = map_remote_state(remote.provisioning_state)

        if status == DeploymentStatus.SUCCEEDED:
            try:
                resources = await self._enumerate_resources(record)
            except Exception as e:
                # The deployment itself succeeded; only the resource listing is lost
                logger.warning(
                    "deployment_resource_enumeration_failed",
                    deployment_id=record.id,
                    resource_group=record.resource_group,
                    error=str(e),
                )
                resources = []
            record.succeed(resources)
        elif status == DeploymentStatus.FAILED:
            record.fail(
                remote.error_message or f"Deployment '{record.name}' failed",
                remote.error_detail,
            )
        elif status == DeploymentStatus.CANCELED:
            record.cancel()
        elif status == DeploymentStatus.RUNNING:
            record.mark_running()
        else:
            logger.warning(
                "deployment_state_unrecognized",
                deployment_id=record.id,
                provisioning_state=remote.provisioning_state,
            )
            record.mark_unknown()

    async def _enumerate_resources(self, record: DeploymentRecord) -> list[DeployedResource]:
        """Resources now in the target group, flagged new against the pre-submission baseline."""
        baseline = set(record.baseline_resource_ids)
        remote_resources = await self._control_plane.list_resources(record.resource_group)
        resources = [
            DeployedResource(
                resource_id=r.id,
                name=r.name,
                resource_type=r.type,
                provisioning_state=r.provisioning_state,
                is_new=r.id not in baseline,
                portal_url=portal_url(r.id, self._portal_base_url),
            )
            for r in remote_resources
        ]
        logger.info(
            "deployment_resources_enumerated",
            deployment_id=record.id,
            resource_count=len(resources),
            new_count=sum(1 for r in resources if r.is_new),
        )
        return resources

    async def cancel(self, deployment_id: str) -> bool:
        """Request cancellation. False when unknown, terminal, or rejected remotely."""
        record = await self._registry.get(deployment_id)
        if record is None:
            logger.warning("deployment_not_found", deployment_id=deployment_id)
            return False

        async with self._registry.lock(deployment_id):
            if record.is_terminal:
                DEPLOYMENT_CANCELLATIONS.labels(result="not_cancelable").inc()
                logger.warning(
                    "deployment_not_cancelable",
                    deployment_id=deployment_id,
                    status=record.status.value,
                )
                return False

            try:
                await self._control_plane.cancel_deployment(record.resource_group, record.name)
            except Exception as e:
                DEPLOYMENT_CANCELLATIONS.labels(result="rejected").inc()
                logger.warning(
                    "deployment_cancel_failed",
                    deployment_id=deployment_id,
                    error=str(e),
                )
                return False

            record.cancel()
            DEPLOYMENT_CANCELLATIONS.labels(result="canceled").inc()
            self._observe_terminal(record)
            logger.info("deployment_canceled", deployment_id=deployment_id)

        await self._publish_events(record)
        return True

    async def wait_for_completion(
        self,
        deployment_id: str,
        poll_interval: float | None = None,
        timeout: float | None = None,
    ) -> DeploymentStatus:
        """Poll ``get_status`` until the deployment is terminal or ``timeout`` elapses."""
        if await self._registry.get(deployment_id) is None:
            logger.warning("deployment_not_found", deployment_id=deployment_id)
            return DeploymentStatus.UNKNOWN

        interval = self._poll_interval if poll_interval is None else poll_interval
        loop = asyncio.get_running_loop()
        deadline = loop.time() + (self._poll_timeout if timeout is None else timeout)

        while True:
            status = await self.get_status(deployment_id)
            if is_terminal_status(status):
                return status
            if loop.time() >= deadline:
                logger.warning(
                    "deployment_wait_timed_out",
                    deployment_id=deployment_id,
                    status=status.value,
                )
                return status
            await asyncio.sleep(interval)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get(self, deployment_id: str) -> DeploymentRecord | None:
        return await self._registry.get(deployment_id)

    async def require(self, deployment_id: str) -> DeploymentRecord:
        record = await self._registry.get(deployment_id)
        if record is None:
            raise DeploymentNotFoundError(f"Deployment {deployment_id} not found")
        return record

    async def list_deployments(
        self, status: DeploymentStatus | None = None, limit: int = 50, offset: int = 0
    ) -> list[DeploymentRecord]:
        return await self._registry.list_records(status=status, limit=limit, offset=offset)
