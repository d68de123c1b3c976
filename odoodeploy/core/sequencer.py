"""
Provisioning sequencer

Runs an ordered list of SequenceSteps against the host: fail fast on fatal
steps, report and continue on tolerant ones, skip what is already in place.

A single run owns the host for its duration. Two concurrent runs against
the same host are unsupported and may race on file writes.
"""

import os
import time
from typing import Callable, Dict, List, Optional, Sequence

from odoodeploy.exceptions import (
    OdooDeployError,
    PrivilegeError,
    ProvisioningError,
    SequenceOrderError,
)
from odoodeploy.logger import DeployLogger
from odoodeploy.models.config import DeploymentConfig
from odoodeploy.models.results import ProvisionReport, StepOutcome, StepStatus
from odoodeploy.models.step import SequenceStep

STEP_ERRORS = (OdooDeployError, OSError)

COMPLETED = (StepStatus.EXECUTED, StepStatus.SKIPPED)


def running_as_root() -> bool:
    return os.geteuid() == 0


class ProvisioningSequencer:
    """Executes provisioning steps in order with per-step failure policy."""

    def __init__(
        self,
        config: DeploymentConfig,
        steps: Sequence[SequenceStep],
        logger: DeployLogger,
        is_privileged: Callable[[], bool] = running_as_root,
    ):
        self.config = config
        self.steps: List[SequenceStep] = list(steps)
        self.logger = logger
        self.is_privileged = is_privileged
        self.validate_order(self.steps)

    @staticmethod
    def validate_order(steps: Sequence[SequenceStep]) -> None:
        """
        Check that step names are unique and that every dependency names an
        earlier step.

        Raises:
            SequenceOrderError: On duplicates or forward/unknown references
        """
        seen = set()
        for step in steps:
            if step.name in seen:
                raise SequenceOrderError(f"Duplicate step name: '{step.name}'")
            for dep in (*step.requires, *step.invalidated_by):
                if dep not in seen:
                    raise SequenceOrderError(
                        f"Step '{step.name}' depends on '{dep}', "
                        f"which does not run before it"
                    )
            seen.add(step.name)

    def plan(self) -> Dict[str, Optional[bool]]:
        """
        Evaluate each precondition without running any action.

        Returns:
            Step name -> True (satisfied), False (pending) or None (probe failed)
        """
        state: Dict[str, Optional[bool]] = {}
        for step in self.steps:
            try:
                state[step.name] = bool(step.precondition())
            except STEP_ERRORS as e:
                self.logger.log(f"Probe for {step.name} failed: {e}", "DEBUG")
                state[step.name] = None
        return state

    def run(self) -> ProvisionReport:
        """
        Run every step in order.

        Returns:
            ProvisionReport (tolerant failures included)

        Raises:
            PrivilegeError: Before any step, when not running as root
            ProvisioningError: When a fatal step fails; carries the report
        """
        if not self.is_privileged():
            self.logger.log("Root privileges are required, aborting before any change", "ERROR")
            raise PrivilegeError()

        report = ProvisionReport()
        status: Dict[str, StepStatus] = {}
        self.logger.log(f"Provisioning {self.config!r} ({len(self.steps)} steps)")

        for step in self.steps:
            self.logger.step(step.description)
            outcome = self._run_step(step, status, report)
            status[step.name] = outcome.status

        self._log_summary(report)
        return report

    def _run_step(
        self,
        step: SequenceStep,
        status: Dict[str, StepStatus],
        report: ProvisionReport,
    ) -> StepOutcome:
        started = time.monotonic()

        def outcome(state: StepStatus, message: str, remediation=None) -> StepOutcome:
            result = StepOutcome(
                name=step.name,
                status=state,
                idempotency=step.idempotency.value,
                policy=step.policy.value,
                message=message,
                remediation=remediation,
                duration_seconds=time.monotonic() - started,
            )
            report.add(result)
            return result

        unmet = [dep for dep in step.requires if status.get(dep) not in COMPLETED]
        if unmet:
            message = f"Blocked by failed step(s): {', '.join(unmet)}"
            if step.is_fatal:
                outcome(StepStatus.BLOCKED, message)
                self._abort(step, OdooDeployError(message), report)
            self.logger.warning(f"{step.name}: {message}")
            return outcome(
                StepStatus.BLOCKED,
                message,
                step.remediation or f"Fix {', '.join(unmet)} and re-run odoodeploy provision",
            )

        forced = [dep for dep in step.invalidated_by if status.get(dep) == StepStatus.EXECUTED]

        try:
            if not forced and step.precondition():
                self.logger.skipped(f"{step.resource} already in place")
                return outcome(StepStatus.SKIPPED, "already satisfied")

            if forced:
                self.logger.log(f"{step.name} re-applied after: {', '.join(forced)}")
            step.action()
        except STEP_ERRORS as e:
            if step.is_fatal:
                outcome(StepStatus.FAILED, str(e))
                self._abort(step, e, report)

            remediation = getattr(e, "remediation", None) or step.remediation
            self.logger.warning(f"{step.name} failed: {e}")
            if remediation:
                self.logger.warning(f"To fix: {remediation}")
            return outcome(
                StepStatus.FAILED,
                str(e),
                remediation or f"Re-run odoodeploy provision after fixing {step.name}",
            )

        self.logger.success(f"{step.resource} done")
        return outcome(StepStatus.EXECUTED, "applied")

    def _abort(self, step: SequenceStep, cause: BaseException, report: ProvisionReport):
        report.aborted_at = step.name
        self.logger.log_error(
            f"Fatal step '{step.name}' failed: {cause}",
            context="No rollback performed; host left as-is for inspection",
        )
        raise ProvisioningError(step.name, cause, report) from cause

    def _log_summary(self, report: ProvisionReport) -> None:
        self.logger.log(
            f"Summary: {len(report.executed)} executed, {len(report.skipped)} skipped, "
            f"{len(report.failed)} failed"
        )
