"""Transaction execution — preflight, submit, then wait for confirmation.

Shared by the provisioning engine and the step runner so both follow
the same sequence for every remote call:

    simulate (unless the profile skips preflight)
    → submit (never retried)
    → wait until confirmations_required or timeout
"""

from __future__ import annotations

import logging
from typing import Optional

from paddeploy.chain.client import LedgerClient
from paddeploy.chain.confirmations import ConfirmationWaiter
from paddeploy.errors import DeploymentError
from paddeploy.models.deployment import TxReceipt, TxRequest
from paddeploy.models.profile import NetworkProfile
from paddeploy.persistence.journal import DeploymentJournal, JournalKind

logger = logging.getLogger(__name__)


class TransactionExecutor:
    """Runs one transaction at a time against a ledger."""

    def __init__(
        self,
        ledger: LedgerClient,
        profile: NetworkProfile,
        waiter: Optional[ConfirmationWaiter] = None,
        journal: Optional[DeploymentJournal] = None,
    ) -> None:
        self.ledger = ledger
        self.profile = profile
        self.waiter = waiter or ConfirmationWaiter(profile)
        self.journal = journal

    def execute(
        self,
        request: TxRequest,
        step: str,
        submitted_kind: JournalKind,
    ) -> TxReceipt:
        """Execute request for the named step and return its confirmed receipt."""
        try:
            if not self.profile.skip_preflight:
                self.ledger.simulate(request)
            tx_hash = self.ledger.submit(request)
        except DeploymentError as exc:
            exc.step = exc.step or step
            raise

        logger.info("[%s] %s submitted: %s", step, request.describe(), tx_hash)
        if self.journal is not None:
            self.journal.record(submitted_kind, step, {
                "contract": request.contract,
                "function": request.function or "constructor",
                "tx_hash": tx_hash,
            })

        confirmation = self.waiter.wait(self.ledger, tx_hash, step=step)
        return confirmation.receipt
