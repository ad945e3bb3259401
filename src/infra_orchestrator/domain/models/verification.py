"""Resource verification domain models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from infra_orchestrator.domain.models.base import generate_id, utc_now, ValueObject


class VerificationStatus(str, Enum):
    """Outcome of a verification."""

    SUCCESSFUL = "successful"
    WARNING = "warning"
    FAILED = "failed"
    ERROR = "error"


class IssueCategory(str, Enum):
    """Category of a verification issue."""

    CONFIGURATION = "configuration"
    CONNECTIVITY = "connectivity"
    PERFORMANCE = "performance"
    SECURITY = "security"
    COMPLIANCE = "compliance"
    COST_OPTIMIZATION = "cost_optimization"
    AVAILABILITY = "availability"
    OTHER = "other"


class IssueSeverity(str, Enum):
    """Severity level of a verification issue."""

    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Error ranks with Failed when folding item statuses into a deployment-level status.
_AGGREGATION_RANK: dict[VerificationStatus, int] = {
    VerificationStatus.SUCCESSFUL: 0,
    VerificationStatus.WARNING: 1,
    VerificationStatus.FAILED: 2,
    VerificationStatus.ERROR: 2,
}

# Ranking used inside a single item, where Error outranks everything.
_ITEM_RANK: dict[VerificationStatus, int] = {
    VerificationStatus.SUCCESSFUL: 0,
    VerificationStatus.WARNING: 1,
    VerificationStatus.FAILED: 2,
    VerificationStatus.ERROR: 3,
}


def most_severe(*statuses: VerificationStatus) -> VerificationStatus:
    """Most severe of several statuses describing the same resource."""
    return max(statuses, key=_ITEM_RANK.__getitem__, default=VerificationStatus.SUCCESSFUL)


def aggregate_status(statuses: list[VerificationStatus]) -> VerificationStatus:
    """Fold item statuses with Failed > Warning > Successful precedence.

    A per-item Error is treated as Failed; only a deployment-level failure
    yields an Error result.
    """
    worst = VerificationStatus.SUCCESSFUL
    for status in statuses:
        if _AGGREGATION_RANK[status] > _AGGREGATION_RANK[worst]:
            worst = VerificationStatus.FAILED if status == VerificationStatus.ERROR else status
    return worst


class VerificationIssue(ValueObject):
    """A finding raised while verifying or monitoring a resource."""

    issue_id: str = Field(default_factory=generate_id)
    resource_id: str | None = None
    category: IssueCategory
    severity: IssueSeverity
    description: str
    recommended_action: str = ""
    detected_at: datetime = Field(default_factory=utc_now)
    auto_fixable: bool = False
    documentation_url: str | None = None


class VerificationItem(BaseModel):
    """Verification outcome for one resource. Built fresh on every call."""

    resource_id: str
    name: str = ""
    resource_type: str = ""
    status: VerificationStatus = VerificationStatus.SUCCESSFUL
    provisioning_state: str = "Unknown"
    verified_at: datetime = Field(default_factory=utc_now)
    is_accessible: bool = False
    is_properly_configured: bool = False
    has_security_issues: bool = False
    issues: list[VerificationIssue] = Field(default_factory=list)
    metrics: dict[str, str] = Field(default_factory=dict)
    portal_url: str = ""

    def add_issue(self, issue: VerificationIssue) -> None:
        self.issues.append(issue)

    def escalate(self, status: VerificationStatus) -> None:
        """Raise the item status to ``status`` unless it is already worse."""
        self.status = most_severe(self.status, status)


class VerificationResult(BaseModel):
    """Verification report for a whole deployment."""

    deployment_id: str
    verified_at: datetime = Field(default_factory=utc_now)
    status: VerificationStatus = VerificationStatus.SUCCESSFUL
    items: list[VerificationItem] = Field(default_factory=list)
    issues: list[VerificationIssue] = Field(default_factory=list)

    @property
    def is_successful(self) -> bool:
        return self.status == VerificationStatus.SUCCESSFUL

    @property
    def passed_count(self) -> int:
        return sum(1 for item in self.items if item.status == VerificationStatus.SUCCESSFUL)

    @property
    def warning_count(self) -> int:
        return sum(1 for item in self.items if item.status == VerificationStatus.WARNING)

    @property
    def failed_count(self) -> int:
        """Items whose checks failed.

        Items that could not be checked at all are counted by ``error_count``
        instead, even though ``aggregate_status`` ranks them as Failed.
        """
        return sum(1 for item in self.items if item.status == VerificationStatus.FAILED)

    @property
    def error_count(self) -> int:
        """Items whose state could not be fetched."""
        return sum(1 for item in self.items if item.status == VerificationStatus.ERROR)

    @property
    def max_issue_severity(self) -> IssueSeverity | None:
        if not self.issues:
            return None
        severity_order = [
            IssueSeverity.CRITICAL, IssueSeverity.HIGH, IssueSeverity.MEDIUM,
            IssueSeverity.LOW, IssueSeverity.INFO,
        ]
        for severity in severity_order:
            if any(issue.severity == severity for issue in self.issues):
                return severity
        return None
