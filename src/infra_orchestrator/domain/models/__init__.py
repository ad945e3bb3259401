"""Domain models package."""

from infra_orchestrator.domain.models.base import (
    AggregateRoot,
    DomainEntity,
    DomainEvent,
    generate_id,
    utc_now,
    ValueObject,
)
from infra_orchestrator.domain.models.cloud_resource import (
    RemoteDeployment,
    RemoteResource,
    RemoteResourceGroup,
)
from infra_orchestrator.domain.models.deployment import (
    DeployedResource,
    DeploymentRecord,
    DeploymentStatus,
    InvalidStateTransitionError,
    is_terminal_status,
    map_remote_state,
    ScriptKind,
    TERMINAL_STATUSES,
    VALID_TRANSITIONS,
)
from infra_orchestrator.domain.models.monitoring import (
    classify_availability,
    MonitoringDataPoint,
    MonitoringResult,
    MonitoringStatus,
)
from infra_orchestrator.domain.models.resource_identity import (
    build_resource_id,
    parse_resource_id,
    ResourceIdentity,
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


__all__ = [
    "AggregateRoot",
    "DeployedResource",
    "DeploymentRecord",
    "DeploymentStatus",
    "DomainEntity",
    "DomainEvent",
    "InvalidStateTransitionError",
    "IssueCategory",
    "IssueSeverity",
    "MonitoringDataPoint",
    "MonitoringResult",
    "MonitoringStatus",
    "RemoteDeployment",
    "RemoteResource",
    "RemoteResourceGroup",
    "ResourceIdentity",
    "ScriptKind",
    "TERMINAL_STATUSES",
    "VALID_TRANSITIONS",
    "ValueObject",
    "VerificationIssue",
    "VerificationItem",
    "VerificationResult",
    "VerificationStatus",
    "aggregate_status",
    "build_resource_id",
    "classify_availability",
    "generate_id",
    "is_terminal_status",
    "map_remote_state",
    "parse_resource_id",
    "utc_now",
]
