"""Provisioning engine — deploys components in dependency order.

Descriptors are processed strictly in the given order. Each one has its
constructor references resolved against the handle table, is deployed,
and must reach the profile's confirmation depth before the next one is
touched. There is no parallelism: later descriptors may depend on
earlier ones.

Failure leaves already-deployed components on-chain. Nothing is retried
or rolled back.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from paddeploy.chain.client import LedgerClient
from paddeploy.chain.confirmations import ConfirmationWaiter
from paddeploy.engine.handles import HandleTable
from paddeploy.engine.references import check_resolvable, resolve
from paddeploy.engine.transactions import TransactionExecutor
from paddeploy.errors import ProvisioningError
from paddeploy.models.deployment import ComponentDescriptor, ProvisionedHandle, TxRequest
from paddeploy.models.profile import NetworkProfile
from paddeploy.persistence.journal import DeploymentJournal, JournalKind

logger = logging.getLogger(__name__)


class ProvisioningEngine:
    """Deploys descriptors one by one and records their handles.

    Usage:
        engine = ProvisioningEngine(ledger, profile)
        handles = engine.provision_all(descriptors)
        engine.handles["swap"].address
    """

    def __init__(
        self,
        ledger: LedgerClient,
        profile: NetworkProfile,
        handles: Optional[HandleTable] = None,
        waiter: Optional[ConfirmationWaiter] = None,
        journal: Optional[DeploymentJournal] = None,
    ) -> None:
        self.handles = handles if handles is not None else HandleTable()
        self._executor = TransactionExecutor(ledger, profile, waiter=waiter, journal=journal)
        self._journal = journal

    @property
    def ledger(self) -> LedgerClient:
        return self._executor.ledger

    def provision_all(
        self,
        descriptors: Iterable[ComponentDescriptor],
    ) -> list[ProvisionedHandle]:
        """Provision every descriptor in order.

        Returns the handles produced by this call, in order.
        """
        produced: list[ProvisionedHandle] = []
        for descriptor in descriptors:
            produced.append(self.provision(descriptor))
        return produced

    def provision(self, descriptor: ComponentDescriptor) -> ProvisionedHandle:
        """Provision a single descriptor whose references are all satisfied."""
        name = descriptor.name
        if name in self.handles:
            raise ProvisioningError(
                f"Component already provisioned at {self.handles[name].address}",
                step=name,
            )

        # Nothing touches the ledger until every reference is known.
        check_resolvable(descriptor.constructor_args, self.handles, step=name)
        args = resolve(descriptor.constructor_args, self.handles, self.ledger, step=name)

        logger.info("Provisioning %s (%s)", name, descriptor.contract)
        receipt = self._executor.execute(
            TxRequest(contract=descriptor.contract, args=tuple(args)),
            step=name,
            submitted_kind=JournalKind.COMPONENT_SUBMITTED,
        )
        if not receipt.contract_address:
            raise ProvisioningError(
                f"Deployment {receipt.tx_hash} confirmed without a contract address",
                step=name,
            )

        handle = ProvisionedHandle(
            component=name,
            contract=descriptor.contract,
            address=receipt.contract_address,
            receipt=receipt,
        )
        self.handles.add(handle)
        logger.info("Provisioned %s at %s", name, handle.address)
        if self._journal is not None:
            self._journal.record(JournalKind.COMPONENT_PROVISIONED, name, {
                "contract": descriptor.contract,
                "address": handle.address,
                "tx_hash": receipt.tx_hash,
                "block_number": receipt.block_number,
            })
        return handle


def provision_all(
    descriptors: Iterable[ComponentDescriptor],
    profile: NetworkProfile,
    ledger: LedgerClient,
    waiter: Optional[ConfirmationWaiter] = None,
) -> list[ProvisionedHandle]:
    """Provision descriptors in order against a fresh handle table."""
    return ProvisioningEngine(ledger, profile, waiter=waiter).provision_all(descriptors)
