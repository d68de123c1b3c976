"""
Sequence Step Models

Dataclass models for provisioning steps and the host resources they manage.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Tuple


class Idempotency(Enum):
    """How a step stays safe to re-run."""

    EXISTENCE_GATED = "existence-gated"
    OVERWRITE_SAFE = "overwrite-safe"
    NATIVE = "native"


class FailurePolicy(Enum):
    """What the sequencer does when a step fails."""

    FATAL = "fatal"
    TOLERANT = "tolerant"


class ResourceKind(Enum):
    """Kinds of host resources a step creates or reuses."""

    PACKAGES = "packages"
    REPOSITORY = "repository"
    DIRECTORY = "directory"
    NETWORK = "network"
    FILE = "file"
    STACK = "stack"
    PROXY_SITE = "proxy-site"
    FIREWALL_RULE = "firewall-rule"
    CERTIFICATE = "certificate"


@dataclass(frozen=True)
class HostResource:
    """A named side-effectful artifact on the host."""

    kind: ResourceKind
    identity: str

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.identity}"


@dataclass
class SequenceStep:
    """
    One ordered unit of the provisioning sequence.

    precondition returns True when the resource is already in the desired
    state; action performs the idempotent creation.
    """

    name: str
    description: str
    resource: HostResource
    idempotency: Idempotency
    policy: FailurePolicy
    precondition: Callable[[], bool]
    action: Callable[[], None]
    requires: Tuple[str, ...] = field(default_factory=tuple)
    invalidated_by: Tuple[str, ...] = field(default_factory=tuple)
    remediation: Optional[str] = None

    @property
    def is_fatal(self) -> bool:
        return self.policy == FailurePolicy.FATAL

    def __repr__(self) -> str:
        return (
            f"SequenceStep(name={self.name}, {self.idempotency.value}, "
            f"{self.policy.value})"
        )
