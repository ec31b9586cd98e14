"""Configuration step runner — post-provisioning transactions in order.

Each step is a state-changing call on a provisioned component: a
capability grant, a tier registration. Steps run strictly in order and
each must be confirmed before the next is issued, because later steps
may rely on the effect of earlier ones (a registration is only accepted
once the grant it depends on is final).

Re-entry:
    A step may carry an AppliedCheck, a read-only call on its target
    that reports whether the effect is already on-chain. Such steps are
    skipped on a re-run. Steps without a check are applied again; the
    runner cannot tell whether the component rejects duplicates and
    logs a warning saying so.

The first failure aborts the run. Applied steps are not rolled back.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from paddeploy.chain.client import LedgerClient
from paddeploy.chain.confirmations import ConfirmationWaiter
from paddeploy.engine.handles import HandleTable
from paddeploy.engine.references import check_resolvable, resolve
from paddeploy.engine.transactions import TransactionExecutor
from paddeploy.errors import ConfigurationError
from paddeploy.models.deployment import ConfigurationStep, StepReceipt, TxRequest
from paddeploy.models.profile import NetworkProfile
from paddeploy.persistence.journal import DeploymentJournal, JournalKind

logger = logging.getLogger(__name__)


class ConfigurationStepRunner:
    """Executes configuration steps against already-provisioned handles.

    Usage:
        runner = ConfigurationStepRunner(ledger, profile)
        receipts = runner.run_steps(steps, engine.handles)
    """

    def __init__(
        self,
        ledger: LedgerClient,
        profile: NetworkProfile,
        waiter: Optional[ConfirmationWaiter] = None,
        journal: Optional[DeploymentJournal] = None,
    ) -> None:
        self._executor = TransactionExecutor(ledger, profile, waiter=waiter, journal=journal)
        self._journal = journal

    @property
    def ledger(self) -> LedgerClient:
        return self._executor.ledger

    def run_steps(
        self,
        steps: Iterable[ConfigurationStep],
        handles: HandleTable,
    ) -> list[StepReceipt]:
        steps = list(steps)
        seen: set[str] = set()
        for step in steps:
            if step.name in seen:
                raise ConfigurationError("Duplicate step name", step=step.name)
            seen.add(step.name)

        receipts: list[StepReceipt] = []
        for step in steps:
            receipts.append(self.run_step(step, handles))
        return receipts

    def run_step(self, step: ConfigurationStep, handles: HandleTable) -> StepReceipt:
        # Resolve everything up front: a missing handle must fail before
        # anything is sent.
        target = handles.require(step.target, step=step.name)
        check_resolvable(step.args, handles, step=step.name)
        if step.applied_check is not None:
            check_resolvable(step.applied_check.args, handles, step=step.name)
        args = tuple(resolve(step.args, handles, self.ledger, step=step.name))

        if step.applied_check is not None:
            check_args = tuple(resolve(step.applied_check.args, handles, self.ledger, step=step.name))
            already = self.ledger.call(TxRequest(
                contract=target.contract,
                args=check_args,
                address=target.address,
                function=step.applied_check.function,
            ))
            if already:
                logger.info(
                    "[%s] %s.%s already applied, skipping",
                    step.name, step.target, step.operation,
                )
                if self._journal is not None:
                    self._journal.record(JournalKind.STEP_SKIPPED, step.name, {
                        "target": step.target,
                        "operation": step.operation,
                    })
                return StepReceipt(
                    step=step.name,
                    target=step.target,
                    operation=step.operation,
                    skipped=True,
                )
        else:
            logger.warning(
                "[%s] %s.%s has no applied check; duplicate protection is up to the component",
                step.name, step.target, step.operation,
            )

        receipt = self._executor.execute(
            TxRequest(
                contract=target.contract,
                args=args,
                address=target.address,
                function=step.operation,
            ),
            step=step.name,
            submitted_kind=JournalKind.STEP_SUBMITTED,
        )
        if self._journal is not None:
            self._journal.record(JournalKind.STEP_CONFIRMED, step.name, {
                "target": step.target,
                "operation": step.operation,
                "tx_hash": receipt.tx_hash,
                "block_number": receipt.block_number,
            })
        return StepReceipt(
            step=step.name,
            target=step.target,
            operation=step.operation,
            receipt=receipt,
        )


def run_steps(
    steps: Iterable[ConfigurationStep],
    handles: HandleTable,
    profile: NetworkProfile,
    ledger: LedgerClient,
    waiter: Optional[ConfirmationWaiter] = None,
) -> list[StepReceipt]:
    """Run configuration steps in order against the given handles."""
    return ConfigurationStepRunner(ledger, profile, waiter=waiter).run_steps(steps, handles)
