"""Prometheus metrics configuration."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
)


# Application info
APP_INFO = Info("infra_orchestrator", "Infrastructure orchestrator application info")
APP_INFO.info({
    "version": "0.1.0",
    "service": "infra-orchestrator",
})

# Deployment metrics
DEPLOYMENTS_SUBMITTED = Counter(
    "infra_orchestrator_deployments_submitted_total",
    "Total number of deployment submissions",
    ["kind", "result"],  # result: "accepted", "failed"
)

DEPLOYMENT_TRANSITIONS = Counter(
    "infra_orchestrator_deployment_transitions_total",
    "Deployment status changes observed while polling",
    ["status"],
)

DEPLOYMENT_DURATION = Histogram(
    "infra_orchestrator_deployment_duration_seconds",
    "Time from submission to terminal status",
    ["status"],
    buckets=[10, 30, 60, 120, 300, 600, 1800, 3600],
)

DEPLOYMENT_CANCELLATIONS = Counter(
    "infra_orchestrator_deployment_cancellations_total",
    "Cancellation requests",
    ["result"],  # "canceled", "rejected", "not_cancelable"
)

STATUS_QUERY_FAILURES = Counter(
    "infra_orchestrator_status_query_failures_total",
    "Remote status queries that raised and left the record unchanged",
)

# Verification metrics
VERIFICATIONS_TOTAL = Counter(
    "infra_orchestrator_verifications_total",
    "Resource verifications performed",
    ["resource_type", "status"],
)

VERIFICATION_ISSUES = Counter(
    "infra_orchestrator_verification_issues_total",
    "Verification issues raised",
    ["category", "severity"],
)

# Monitoring metrics
MONITORING_RUNS = Counter(
    "infra_orchestrator_monitoring_runs_total",
    "Completed monitoring runs",
    ["status"],
)

ACTIVE_MONITORS = Gauge(
    "infra_orchestrator_active_monitors",
    "Monitoring loops currently running",
)

MONITORING_DATA_POINTS = Counter(
    "infra_orchestrator_monitoring_data_points_total",
    "Monitoring data points collected",
    ["available"],
)
