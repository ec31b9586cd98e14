"""Ledger access — client protocol, web3 and simulated backends, confirmations."""

from paddeploy.chain.client import LedgerClient, connect
from paddeploy.chain.confirmations import Confirmation, ConfirmationWaiter
from paddeploy.chain.memory import InMemoryLedger

__all__ = ["Confirmation", "ConfirmationWaiter", "InMemoryLedger", "LedgerClient", "connect"]
