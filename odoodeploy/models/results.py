"""
Result Models

Dataclass models for external command results and the provisioning report.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class StepStatus(Enum):
    """Terminal status of a step within one run."""

    EXECUTED = "executed"
    SKIPPED = "skipped"
    FAILED = "failed"
    BLOCKED = "blocked"


@dataclass
class ExecutionResult:
    """Result of a command execution."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    command: str = ""

    @property
    def is_success(self) -> bool:
        """Check if execution succeeded."""
        return self.returncode == 0

    @property
    def is_failure(self) -> bool:
        """Check if execution failed."""
        return self.returncode != 0

    @property
    def output(self) -> str:
        """Get combined output (stdout + stderr)."""
        return f"{self.stdout}\n{self.stderr}".strip()

    def __repr__(self) -> str:
        return f"ExecutionResult(returncode={self.returncode}, command='{self.command[:50]}...')"


@dataclass
class StepOutcome:
    """What happened to one step."""

    name: str
    status: StepStatus
    idempotency: str
    policy: str
    message: str = ""
    remediation: Optional[str] = None
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "status": self.status.value,
            "idempotency": self.idempotency,
            "policy": self.policy,
            "message": self.message,
            "duration_seconds": round(self.duration_seconds, 3),
        }
        if self.remediation:
            data["remediation"] = self.remediation
        return data


@dataclass
class ProvisionReport:
    """Terminal report of a provisioning run."""

    outcomes: List[StepOutcome] = field(default_factory=list)
    aborted_at: Optional[str] = None

    def add(self, outcome: StepOutcome) -> None:
        self.outcomes.append(outcome)

    def _names(self, *statuses: StepStatus) -> List[str]:
        return [o.name for o in self.outcomes if o.status in statuses]

    @property
    def executed(self) -> List[str]:
        return self._names(StepStatus.EXECUTED)

    @property
    def skipped(self) -> List[str]:
        return self._names(StepStatus.SKIPPED)

    @property
    def failed(self) -> List[str]:
        """Steps that failed or were blocked by a failed dependency."""
        return self._names(StepStatus.FAILED, StepStatus.BLOCKED)

    @property
    def remediations(self) -> List[str]:
        return [o.remediation for o in self.outcomes if o.remediation]

    @property
    def aborted(self) -> bool:
        return self.aborted_at is not None

    @property
    def success(self) -> bool:
        """True when the run finished, possibly with tolerant failures."""
        return not self.aborted

    @property
    def exit_code(self) -> int:
        return 1 if self.aborted else 0

    def get(self, name: str) -> Optional[StepOutcome]:
        for outcome in self.outcomes:
            if outcome.name == name:
                return outcome
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "aborted_at": self.aborted_at,
            "executed": self.executed,
            "skipped": self.skipped,
            "failed": self.failed,
            "steps": [o.to_dict() for o in self.outcomes],
        }

    def __len__(self) -> int:
        return len(self.outcomes)

    def __repr__(self) -> str:
        return (
            f"ProvisionReport(executed={len(self.executed)}, "
            f"skipped={len(self.skipped)}, failed={len(self.failed)}, "
            f"aborted_at={self.aborted_at})"
        )
