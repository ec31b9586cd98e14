"""Confirmation waiting — block until a transaction is deep enough.

A transaction counts as confirmed once the head block is at least
confirmations_required - 1 blocks past the block that included it.
Waiting stops at the profile's timeout. A timeout only stops the
orchestrator from waiting further; the broadcast transaction may still
be mined later.

Read-only polls are retried with tenacity under the profile's
RetryPolicy. A mined receipt with status 0 is a rejection and ends the
wait at once.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from paddeploy.chain.client import LedgerClient
from paddeploy.errors import (
    ConfirmationTimeoutError,
    LedgerConnectionError,
    TransactionRejectedError,
)
from paddeploy.models.deployment import TxReceipt
from paddeploy.models.profile import NetworkProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Confirmation:
    receipt: TxReceipt
    depth: int


class ConfirmationWaiter:
    """Polls a ledger until a transaction reaches the required depth.

    clock and sleep are injectable so tests can run against a fake
    clock instead of wall time.
    """

    def __init__(
        self,
        profile: NetworkProfile,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._profile = profile
        self._clock = clock
        self._sleep = sleep

    def wait(
        self,
        ledger: LedgerClient,
        tx_hash: str,
        step: Optional[str] = None,
    ) -> Confirmation:
        required = self._profile.confirmations_required
        deadline = self._clock() + self._profile.timeout_ms / 1000
        poll_interval = self._profile.poll_interval_ms / 1000

        while True:
            try:
                receipt, head = self._retrying()(self._poll, ledger, tx_hash)
            except LedgerConnectionError as exc:
                exc.step = exc.step or step
                raise

            if receipt is not None and head is not None:
                if not receipt.succeeded:
                    raise TransactionRejectedError(
                        f"Transaction {tx_hash} reverted in block {receipt.block_number}",
                        step=step,
                        tx_hash=tx_hash,
                    )
                depth = head - receipt.block_number + 1
                if depth >= required:
                    logger.info(
                        "Confirmed %s in block %d (depth %d)",
                        tx_hash, receipt.block_number, depth,
                    )
                    return Confirmation(receipt=receipt, depth=depth)

            if self._clock() >= deadline:
                raise ConfirmationTimeoutError(
                    f"Transaction {tx_hash} not confirmed to depth {required} "
                    f"within {self._profile.timeout_ms} ms",
                    tx_hash=tx_hash,
                    step=step,
                )
            self._sleep(poll_interval)

    def _retrying(self) -> Retrying:
        policy = self._profile.retry_policy
        return Retrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=wait_fixed(policy.backoff_ms / 1000),
            retry=retry_if_exception_type(LedgerConnectionError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )

    @staticmethod
    def _poll(
        ledger: LedgerClient,
        tx_hash: str,
    ) -> tuple[Optional[TxReceipt], Optional[int]]:
        receipt = ledger.get_receipt(tx_hash)
        if receipt is None:
            return None, None
        return receipt, ledger.block_number()
