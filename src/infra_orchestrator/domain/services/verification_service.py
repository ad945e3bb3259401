"""Post-deployment verification of individual resources and whole deployments."""

from __future__ import annotations

import asyncio

import structlog

from infra_orchestrator.domain.errors import InvalidInputError, MalformedIdentifierError
from infra_orchestrator.domain.models.deployment import DeploymentRecord
from infra_orchestrator.domain.models.resource_identity import (
    parse_resource_id,
    PORTAL_BASE_URL,
    portal_url,
)
from infra_orchestrator.domain.models.verification import (
    aggregate_status,
    IssueCategory,
    IssueSeverity,
    VerificationIssue,
    VerificationItem,
    VerificationResult,
    VerificationStatus,
)
from infra_orchestrator.domain.ports.services import ControlPlaneClient
from infra_orchestrator.domain.services.verifiers import resolve_verifier
from infra_orchestrator.infrastructure.observability.metrics import (
    VERIFICATION_ISSUES,
    VERIFICATIONS_TOTAL,
)


logger = structlog.get_logger(__name__)


class ResourceVerificationService:
    """Checks deployed resources for reachability and configuration problems.

    ``verify_resource`` never raises: malformed identifiers, missing resources
    and remote failures all come back as items with a Failed or Error status
    and an explanatory issue.
    """

    def __init__(
        self,
        control_plane: ControlPlaneClient,
        portal_base_url: str = PORTAL_BASE_URL,
        max_concurrency: int = 8,
    ) -> None:
        self._control_plane = control_plane
        self._portal_base_url = portal_base_url
        self._max_concurrency = max(1, max_concurrency)

    @staticmethod
    def _record_metrics(item: VerificationItem) -> None:
        VERIFICATIONS_TOTAL.labels(
            resource_type=item.resource_type or "unknown",
            status=item.status.value,
        ).inc()
        for issue in item.issues:
            VERIFICATION_ISSUES.labels(
                category=issue.category.value,
                severity=issue.severity.value,
            ).inc()

    async def verify_resource(self, resource_id: str) -> VerificationItem:
        """Fetch one resource and run the verifier for its type."""
        item = VerificationItem(resource_id=resource_id or "")

        try:
            identity = parse_resource_id(resource_id)
        except MalformedIdentifierError as e:
            logger.warning("verification_invalid_resource_id", resource_id=resource_id, error=str(e))
            item.status = VerificationStatus.FAILED
            item.add_issue(VerificationIssue(
                resource_id=resource_id,
                category=IssueCategory.OTHER,
                severity=IssueSeverity.CRITICAL,
                description=f"Invalid resource ID format: {e}",
                recommended_action="Check the resource ID",
            ))
            self._record_metrics(item)
            return item

        item.name = identity.resource_name
        item.resource_type = identity.full_type
        item.portal_url = portal_url(resource_id, self._portal_base_url)

        try:
            resource = await self._control_plane.get_resource(resource_id)
            if resource is None:
                item.status = VerificationStatus.FAILED
                item.is_accessible = False
                item.add_issue(VerificationIssue(
                    resource_id=resource_id,
                    category=IssueCategory.AVAILABILITY,
                    severity=IssueSeverity.CRITICAL,
                    description="Resource not found",
                    recommended_action="Check if the resource was deleted or if you have access to it",
                ))
            else:
                verifier = resolve_verifier(identity.provider_namespace, identity.resource_type_name)
                specific = verifier(resource)

                item.name = resource.name or item.name
                item.resource_type = resource.type or item.resource_type
                item.provisioning_state = resource.provisioning_state
                item.is_accessible = specific.is_accessible
                item.is_properly_configured = specific.is_properly_configured
                item.has_security_issues = specific.has_security_issues
                item.metrics.update(specific.metrics)

                if resource.provisioning_state != "Succeeded":
                    item.escalate(VerificationStatus.WARNING)
                    item.add_issue(VerificationIssue(
                        resource_id=resource_id,
                        category=IssueCategory.AVAILABILITY,
                        severity=IssueSeverity.MEDIUM,
                        description=(
                            f"Resource provisioning state is {resource.provisioning_state}"
                        ),
                        recommended_action="Check the resource provisioning status",
                    ))

                item.escalate(specific.status)
                item.issues.extend(specific.issues)
        except Exception as e:
            logger.exception("verification_error", resource_id=resource_id, error=str(e))
            item.status = VerificationStatus.ERROR
            item.add_issue(VerificationIssue(
                resource_id=resource_id,
                category=IssueCategory.OTHER,
                severity=IssueSeverity.CRITICAL,
                description=f"Error verifying resource: {e}",
                recommended_action="Check the resource status in the portal",
            ))

        logger.info(
            "resource_verified",
            resource_id=resource_id,
            status=item.status.value,
            issue_count=len(item.issues),
        )
        self._record_metrics(item)
        return item

    async def verify_deployment(self, record: DeploymentRecord | None) -> VerificationResult:
        """Verify every resource a deployment produced and aggregate the outcome."""
        if record is None:
            raise InvalidInputError("Deployment record is required")

        result = VerificationResult(deployment_id=record.id)
        log = logger.bind(deployment_id=record.id, resource_group=record.resource_group)

        try:
            exists = await self._control_plane.resource_group_exists(record.resource_group)
        except Exception as e:
            log.exception("verification_resource_group_lookup_failed", error=str(e))
            result.status = VerificationStatus.ERROR
            result.issues.append(VerificationIssue(
                category=IssueCategory.OTHER,
                severity=IssueSeverity.CRITICAL,
                description=f"Error verifying deployment: {e}",
                recommended_action="Check the deployment status in the portal",
            ))
            return result

        if not exists:
            log.warning("verification_resource_group_missing")
            result.status = VerificationStatus.FAILED
            result.issues.append(VerificationIssue(
                category=IssueCategory.AVAILABILITY,
                severity=IssueSeverity.CRITICAL,
                description=f"Resource group {record.resource_group} not found",
                recommended_action="Check if the resource group was deleted",
            ))
            return result

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def verify_bounded(resource_id: str) -> VerificationItem:
            async with semaphore:
                return await self.verify_resource(resource_id)

        # Snapshot the ids so a concurrent append on the record does not affect this run
        resource_ids = list(record.resource_ids)
        items = await asyncio.gather(*(verify_bounded(rid) for rid in resource_ids))

        result.items = list(items)
        for item in result.items:
            result.issues.extend(item.issues)
        result.status = aggregate_status([item.status for item in result.items])

        log.info(
            "deployment_verified",
            status=result.status.value,
            resources=len(result.items),
            issues=len(result.issues),
        )
        return result
