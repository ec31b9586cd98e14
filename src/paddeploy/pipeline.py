"""Deployment pipeline — the single entry point for one run.

    plan → order descriptors → check contracts → provision each → run configuration steps

The pipeline is pure coordination: the provisioning engine owns the
handle table, the step runner owns step execution, and the ledger owns
all durable state. The pipeline sequences them and turns the first
failure into a PipelineResult naming the last completed step and the
failing one, so an operator can resume by hand.

No rollback is attempted. A failed run may leave components deployed
and partially configured.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from paddeploy.chain.client import LedgerClient
from paddeploy.chain.confirmations import ConfirmationWaiter
from paddeploy.engine.handles import HandleTable
from paddeploy.engine.planner import resolve_plan
from paddeploy.engine.provisioning import ProvisioningEngine
from paddeploy.engine.steps import ConfigurationStepRunner
from paddeploy.errors import DeploymentError, LedgerConnectionError
from paddeploy.models.deployment import DeploymentPlan, ProvisionedHandle, StepReceipt
from paddeploy.models.profile import NetworkProfile
from paddeploy.persistence.journal import DeploymentJournal, JournalKind

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Outcome of a run."""
    run_id: str
    profile: str
    success: bool
    handles: list[ProvisionedHandle] = field(default_factory=list)
    step_receipts: list[StepReceipt] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[DeploymentError] = None

    @property
    def last_completed_step(self) -> Optional[str]:
        return self.completed[-1] if self.completed else None

    def summary(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "run_id": self.run_id,
            "profile": self.profile,
            "success": self.success,
            "components": {h.component: h.address for h in self.handles},
            "steps": [
                {
                    "step": r.step,
                    "skipped": r.skipped,
                    "tx_hash": r.receipt.tx_hash if r.receipt else None,
                }
                for r in self.step_receipts
            ],
            "last_completed_step": self.last_completed_step,
        }
        if not self.success:
            data["failed_step"] = self.failed_step
            data["error"] = type(self.error).__name__ if self.error else None
            data["message"] = self.error.message if self.error else None
        return data


class DeploymentPipeline:
    """Runs a DeploymentPlan against one network profile.

    Usage:
        pipeline = DeploymentPipeline(profile, ledger)
        result = pipeline.run(plan)
        if not result.success:
            print(result.failed_step, result.error)
    """

    def __init__(
        self,
        profile: NetworkProfile,
        ledger: LedgerClient,
        waiter: Optional[ConfirmationWaiter] = None,
        journal: Optional[DeploymentJournal] = None,
        run_id: Optional[str] = None,
    ) -> None:
        self.profile = profile
        self.ledger = ledger
        self.run_id = run_id or (journal.run_id if journal else f"run-{uuid.uuid4().hex[:12]}")
        self._waiter = waiter or ConfirmationWaiter(profile)
        self._journal = journal

    def run(self, plan: DeploymentPlan) -> PipelineResult:
        result = PipelineResult(run_id=self.run_id, profile=self.profile.name, success=False)
        self._record(JournalKind.RUN_STARTED, "run", {
            "profile": self.profile.name,
            "endpoint": self.profile.endpoint,
            "components": [d.name for d in plan.descriptors],
            "steps": [s.name for s in plan.steps],
        })

        handles = HandleTable()
        engine = ProvisioningEngine(
            self.ledger, self.profile, handles=handles,
            waiter=self._waiter, journal=self._journal,
        )
        runner = ConfigurationStepRunner(
            self.ledger, self.profile, waiter=self._waiter, journal=self._journal,
        )

        current = "run"
        try:
            ordered = resolve_plan(plan)
            # Every contract must be usable before the first transaction.
            for descriptor in ordered.descriptors:
                current = descriptor.name
                self.ledger.prepare(descriptor.contract)
            for descriptor in ordered.descriptors:
                current = descriptor.name
                result.handles.append(engine.provision(descriptor))
                result.completed.append(descriptor.name)
            for step in ordered.steps:
                current = step.name
                result.step_receipts.append(runner.run_step(step, handles))
                result.completed.append(step.name)
        except DeploymentError as exc:
            exc.step = exc.step or current
            return self._fail(result, exc)
        except OSError as exc:
            error = LedgerConnectionError(f"Ledger unreachable: {exc}", step=current)
            error.__cause__ = exc
            return self._fail(result, error)

        result.success = True
        logger.info("Run %s completed: %d components, %d steps",
                    self.run_id, len(result.handles), len(result.step_receipts))
        self._record(JournalKind.RUN_COMPLETED, "run", {
            "components": {h.component: h.address for h in result.handles},
        })
        return result

    def _fail(self, result: PipelineResult, exc: DeploymentError) -> PipelineResult:
        result.failed_step = exc.step
        result.error = exc
        logger.error(
            "Run %s failed at %s: %s (last completed: %s)",
            self.run_id, exc.step, exc, result.last_completed_step,
        )
        self._record(JournalKind.RUN_FAILED, exc.step or "run", {
            "error": type(exc).__name__,
            "message": exc.message,
            "last_completed_step": result.last_completed_step,
        })
        return result

    def _record(self, kind: JournalKind, step: str, payload: dict[str, Any]) -> None:
        if self._journal is not None:
            self._journal.record(kind, step, payload)


def run_pipeline(
    plan: DeploymentPlan,
    profile: NetworkProfile,
    ledger: LedgerClient,
    waiter: Optional[ConfirmationWaiter] = None,
    journal: Optional[DeploymentJournal] = None,
) -> PipelineResult:
    """Run a plan end to end and report the outcome."""
    return DeploymentPipeline(profile, ledger, waiter=waiter, journal=journal).run(plan)
