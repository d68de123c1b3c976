"""
odoodeploy Domain Models

Clean dataclass-based models for type-safe data handling.
"""

from .config import DeploymentConfig
from .results import (
    ExecutionResult,
    ProvisionReport,
    StepOutcome,
    StepStatus,
)
from .step import (
    FailurePolicy,
    HostResource,
    Idempotency,
    ResourceKind,
    SequenceStep,
)

__all__ = [
    # Config
    "DeploymentConfig",
    # Results
    "ExecutionResult",
    "ProvisionReport",
    "StepOutcome",
    "StepStatus",
    # Steps
    "FailurePolicy",
    "HostResource",
    "Idempotency",
    "ResourceKind",
    "SequenceStep",
]
