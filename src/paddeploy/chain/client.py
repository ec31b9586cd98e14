"""Ledger client abstraction — the orchestrator's only view of the network.

The provisioning engine and the step runner never talk to web3 or to a
simulator directly. They talk to this interface. Adding a new backend
means implementing the Protocol; no engine code changes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

from paddeploy.models.deployment import TxReceipt, TxRequest
from paddeploy.models.profile import NetworkProfile


@runtime_checkable
class LedgerClient(Protocol):
    """Contract every ledger backend must satisfy.

    Error contract:
    - simulate() and submit() raise TransactionRejectedError when the
      network or the target component refuses the call.
    - prepare() raises ProvisioningError when a contract cannot be used.
    - Every method raises LedgerConnectionError on transport failures.
      Only get_receipt() and block_number() are retried by the caller.
    """

    def accounts(self) -> list[str]:
        """Accounts exposed by the endpoint, in endpoint order."""
        ...

    def prepare(self, contract: str) -> None:
        """Load what is needed to transact with contract, before anything is sent."""
        ...

    def simulate(self, request: TxRequest) -> None:
        """Dry-run a transaction without broadcasting it."""
        ...

    def submit(self, request: TxRequest) -> str:
        """Sign and broadcast a transaction. Returns the tx hash."""
        ...

    def call(self, request: TxRequest) -> Any:
        """Execute a read-only call and return its result."""
        ...

    def get_receipt(self, tx_hash: str) -> Optional[TxReceipt]:
        """Return the receipt once mined, or None while pending."""
        ...

    def block_number(self) -> int:
        """Current head block number."""
        ...


def connect(
    profile: NetworkProfile,
    artifacts_dir: Optional[Path] = None,
) -> LedgerClient:
    """Open a ledger client for the profile's endpoint.

    memory:// endpoints get a fresh simulated network; anything else is
    treated as a JSON-RPC URL.
    """
    if profile.is_simulated:
        from paddeploy.chain.memory import InMemoryLedger

        return InMemoryLedger()

    from paddeploy.chain.artifacts import ArtifactStore
    from paddeploy.chain.signer import load_account
    from paddeploy.chain.web3_client import Web3LedgerClient

    if artifacts_dir is None:
        raise ValueError("artifacts_dir is required for a live network")
    return Web3LedgerClient(
        profile,
        ArtifactStore(artifacts_dir),
        account=load_account(profile.signer),
    )
