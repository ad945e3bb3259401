"""Domain error taxonomy."""

from __future__ import annotations


class OrchestratorError(Exception):
    """Base class for errors raised by the orchestration core."""


class InvalidInputError(OrchestratorError, ValueError):
    """Raised when a caller-supplied argument violates a precondition."""


class MissingConfigurationError(OrchestratorError):
    """Raised when a required default (resource group, region) cannot be resolved."""


class MalformedIdentifierError(OrchestratorError, ValueError):
    """Raised when a resource identifier does not follow the expected layout."""

    def __init__(self, resource_id: str, reason: str = "") -> None:
        self.resource_id = resource_id
        message = f"Malformed resource identifier: {resource_id!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class DeploymentNotFoundError(OrchestratorError):
    """Raised when a deployment id is not registered."""


class RemoteFailureError(OrchestratorError):
    """Raised by control-plane adapters when the remote API rejects a call."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class UnsupportedDefinitionError(OrchestratorError):
    """Raised when a definition kind cannot be deployed by the control plane."""


class TerraformExecutionError(OrchestratorError):
    """Raised when a Terraform command exits with a non-zero status."""
