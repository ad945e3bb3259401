"""Time-bounded availability monitoring of deployed resources."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

import structlog

from infra_orchestrator.domain.errors import InvalidInputError
from infra_orchestrator.domain.models.base import utc_now
from infra_orchestrator.domain.models.deployment import DeploymentRecord
from infra_orchestrator.domain.models.monitoring import (
    classify_availability,
    MonitoringDataPoint,
    MonitoringResult,
    MonitoringStatus,
)
from infra_orchestrator.domain.models.verification import (
    IssueCategory,
    IssueSeverity,
    VerificationIssue,
)
from infra_orchestrator.domain.ports.services import ControlPlaneClient
from infra_orchestrator.infrastructure.observability.metrics import (
    ACTIVE_MONITORS,
    MONITORING_DATA_POINTS,
    MONITORING_RUNS,
)


logger = structlog.get_logger(__name__)

DEFAULT_INTERVAL_SECONDS = 30.0
DEFAULT_PERIOD_MINUTES = 5.0


class ResourceMonitor:
    """Samples every resource of a deployment at a fixed interval.

    After each snapshot the run is classified by the share of resources whose
    latest observation is unavailable. Callers stop a run early by setting the
    ``cancel_event`` passed to ``monitor``; the partial result is still
    returned.
    """

    def __init__(
        self,
        control_plane: ControlPlaneClient,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        default_period_minutes: float = DEFAULT_PERIOD_MINUTES,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._control_plane = control_plane
        self._interval = interval_seconds
        self._default_period = default_period_minutes
        self._clock = clock
        self._sleep = sleep

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def default_period_minutes(self) -> float:
        return self._default_period

    async def monitor(
        self,
        record: DeploymentRecord | None,
        period_minutes: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> MonitoringResult:
        """Sample ``record`` for ``period_minutes``, or the configured default period."""
        if record is None:
            raise InvalidInputError("Deployment record is required")
        if period_minutes is None:
            period_minutes = self._default_period
        if period_minutes <= 0:
            raise InvalidInputError("Monitoring period must be greater than zero")

        result = MonitoringResult(deployment_id=record.id)
        resource_ids = list(record.resource_ids)
        deadline = self._clock() + period_minutes * 60
        log = logger.bind(deployment_id=record.id)

        log.info(
            "monitoring_started",
            period_minutes=period_minutes,
            resources=len(resource_ids),
        )
        ACTIVE_MONITORS.inc()
        try:
            await self._take_snapshot(result, resource_ids, cancel_event)
            result.status = self._classify(result)

            while not _is_set(cancel_event):
                remaining = deadline - self._clock()
                if remaining <= 0:
                    break
                if await self._wait(min(self._interval, remaining), cancel_event):
                    break
                await self._take_snapshot(result, resource_ids, cancel_event)
                result.status = self._classify(result)
        except Exception as e:
            log.exception("monitoring_failed", error=str(e))
            result.status = MonitoringStatus.FAILED
            result.issues.append(VerificationIssue(
                category=IssueCategory.OTHER,
                severity=IssueSeverity.CRITICAL,
                description=f"Resource monitoring failed: {e}",
                recommended_action="Check deployment status in Azure Portal",
            ))
        finally:
            result.ended_at = utc_now()
            ACTIVE_MONITORS.dec()

        MONITORING_RUNS.labels(status=result.status.value).inc()
        log.info(
            "monitoring_completed",
            status=result.status.value,
            data_points=len(result.data_points),
            canceled=_is_set(cancel_event),
        )
        return result

    @staticmethod
    def _classify(result: MonitoringResult) -> MonitoringStatus:
        latest = result.latest_data_points()
        unavailable = sum(1 for point in latest if not point.is_available)
        return classify_availability(unavailable, len(latest))

    async def _wait(self, seconds: float, cancel_event: asyncio.Event | None) -> bool:
        """Sleep for ``seconds``; True if cancellation was signalled first."""
        if cancel_event is None:
            await self._sleep(seconds)
            return False

        sleeper = asyncio.ensure_future(self._sleep(seconds))
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, waiter):
                if not task.done():
                    task.cancel()
            await asyncio.gather(sleeper, waiter, return_exceptions=True)

        if cancel_event.is_set():
            return True
        # Surface errors raised by the sleep itself
        sleeper.result()
        return False

    async def _take_snapshot(
        self,
        result: MonitoringResult,
        resource_ids: list[str],
        cancel_event: asyncio.Event | None,
    ) -> None:
        for resource_id in resource_ids:
            if _is_set(cancel_event):
                return
            try:
                resource = await self._control_plane.get_resource(resource_id)
            except Exception as e:
                logger.warning(
                    "monitoring_snapshot_failed",
                    deployment_id=result.deployment_id,
                    resource_id=resource_id,
                    error=str(e),
                )
                point = MonitoringDataPoint(
                    resource_id=resource_id,
                    status="Error",
                    is_available=False,
                )
                result.issues.append(VerificationIssue(
                    resource_id=resource_id,
                    category=IssueCategory.AVAILABILITY,
                    severity=IssueSeverity.MEDIUM,
                    description=f"Error monitoring resource: {e}",
                    recommended_action="Check resource in Azure Portal",
                ))
            else:
                if resource is None:
                    point = MonitoringDataPoint(
                        resource_id=resource_id,
                        status="NotFound",
                        is_available=False,
                    )
                else:
                    state = resource.provisioning_state
                    point = MonitoringDataPoint(
                        resource_id=resource_id,
                        status=state,
                        metrics={"ProvisioningState": 1.0 if state == "Succeeded" else 0.0},
                        is_available=True,
                    )

            result.data_points.append(point)
            MONITORING_DATA_POINTS.labels(available=str(point.is_available).lower()).inc()


def _is_set(event: asyncio.Event | None) -> bool:
    return event is not None and event.is_set()
