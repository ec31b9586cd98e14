"""In-memory ledger — a deterministic simulated network.

Used for dry runs (the "simulated" profile) and for tests. It mimics
the parts of an EVM node the orchestrator observes:

- every submitted transaction is mined into its own block;
- the head advances by one block each time block_number() is polled,
  so confirmation depth grows while the caller waits;
- deployed contracts get deterministic checksummed addresses;
- components keep just enough state to answer the read-only calls the
  deployment uses (role lookups for the role-gated registry).

Failure injection:
    ledger.revert("Swap", "addSwap")   # preflight fails, or status 0 if mined
    ledger.stall("Swap")               # accepted but never mined
    ledger.refuse("PackNFT")           # rejected at submission
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any, Optional

from web3 import Web3

from paddeploy.errors import ProvisioningError, TransactionRejectedError
from paddeploy.models.deployment import TxReceipt, TxRequest

DEFAULT_ADMIN_ROLE = bytes(32)
MINTER_ROLE = bytes(Web3.keccak(text="MINTER_ROLE"))


def _address(seed: str) -> str:
    digest = hashlib.sha256(seed.encode("utf-8")).hexdigest()
    return Web3.to_checksum_address("0x" + digest[:40])


@dataclass
class AppliedCall:
    """A state-changing call recorded by a simulated component."""
    function: str
    args: tuple[Any, ...]
    sender: str
    block_number: int


class SimulatedComponent:
    """A deployed contract that records every call applied to it."""

    def __init__(self, contract: str, address: str, args: tuple[Any, ...], owner: str) -> None:
        self.contract = contract
        self.address = address
        self.constructor_args = args
        self.owner = owner
        self.calls: list[AppliedCall] = []

    def view(self, function: str, args: tuple[Any, ...]) -> Any:
        raise TransactionRejectedError(
            f"{self.contract} has no view function '{function}'"
        )

    def check(self, function: str, args: tuple[Any, ...], sender: str) -> None:
        """Raise TransactionRejectedError if the call would revert."""

    def apply(self, function: str, args: tuple[Any, ...], sender: str, block: int) -> None:
        self.check(function, args, sender)
        self.calls.append(AppliedCall(function, tuple(args), sender, block))

    def calls_to(self, function: str) -> list[AppliedCall]:
        return [c for c in self.calls if c.function == function]


class RoleGatedComponent(SimulatedComponent):
    """An access-controlled registry. The deployer holds the admin role."""

    ROLES = {"DEFAULT_ADMIN_ROLE": DEFAULT_ADMIN_ROLE, "MINTER_ROLE": MINTER_ROLE}

    def __init__(self, contract: str, address: str, args: tuple[Any, ...], owner: str) -> None:
        super().__init__(contract, address, args, owner)
        self.members: dict[bytes, set[str]] = {
            DEFAULT_ADMIN_ROLE: {owner},
            MINTER_ROLE: {owner},
        }

    def has_role(self, role: bytes, account: str) -> bool:
        return account in self.members.get(bytes(role), set())

    def view(self, function: str, args: tuple[Any, ...]) -> Any:
        if function in self.ROLES:
            return self.ROLES[function]
        if function == "hasRole":
            role, account = args
            return self.has_role(role, account)
        return super().view(function, args)

    def check(self, function: str, args: tuple[Any, ...], sender: str) -> None:
        if function in ("grantRole", "revokeRole"):
            if not self.has_role(DEFAULT_ADMIN_ROLE, sender):
                raise TransactionRejectedError(
                    f"AccessControl: account {sender} is missing role DEFAULT_ADMIN_ROLE"
                )

    def apply(self, function: str, args: tuple[Any, ...], sender: str, block: int) -> None:
        super().apply(function, args, sender, block)
        if function == "grantRole":
            role, account = args
            self.members.setdefault(bytes(role), set()).add(account)
        elif function == "revokeRole":
            role, account = args
            self.members.get(bytes(role), set()).discard(account)


DEFAULT_BEHAVIOURS: dict[str, type[SimulatedComponent]] = {
    "PackNFT": RoleGatedComponent,
}


@dataclass
class _PendingTx:
    request: TxRequest
    sender: str
    block_number: Optional[int] = None
    status: int = 1
    contract_address: Optional[str] = None


@dataclass
class _Fault:
    contract: str
    function: Optional[str]
    kind: str  # "revert" | "stall" | "refuse"
    reason: str = ""

    def matches(self, request: TxRequest) -> bool:
        if self.contract != request.contract:
            return False
        if self.function is None:
            return True
        if request.is_deployment:
            return self.function == "constructor"
        return self.function == request.function


@dataclass
class InMemoryLedger:
    """Simulated EVM network satisfying the LedgerClient protocol."""

    behaviours: dict[str, type[SimulatedComponent]] = field(
        default_factory=lambda: dict(DEFAULT_BEHAVIOURS),
    )
    account_count: int = 10
    sender_index: int = 0

    def __post_init__(self) -> None:
        self._accounts = [_address(f"account:{i}") for i in range(self.account_count)]
        self._head = 0
        self._nonce = 0
        self._transactions: dict[str, _PendingTx] = {}
        self._components: dict[str, SimulatedComponent] = {}
        self._faults: list[_Fault] = []
        self._withheld: set[str] = set()
        self.submitted: list[TxRequest] = []

    # -- failure injection -------------------------------------------

    def revert(self, contract: str, function: Optional[str] = None, reason: str = "reverted") -> None:
        """Make matching calls revert (fails preflight; status 0 if mined)."""
        self._faults.append(_Fault(contract, function, "revert", reason))

    def stall(self, contract: str, function: Optional[str] = None) -> None:
        """Accept matching transactions but never mine them."""
        self._faults.append(_Fault(contract, function, "stall"))

    def refuse(self, contract: str, function: Optional[str] = None, reason: str = "refused") -> None:
        """Reject matching transactions at submission."""
        self._faults.append(_Fault(contract, function, "refuse", reason))

    def withhold(self, contract: str) -> None:
        """Make a contract unavailable, as if its build output were missing."""
        self._withheld.add(contract)

    def clear_faults(self) -> None:
        self._faults.clear()
        self._withheld.clear()

    def _fault(self, request: TxRequest, kind: str) -> Optional[_Fault]:
        for fault in self._faults:
            if fault.kind == kind and fault.matches(request):
                return fault
        return None

    # -- inspection --------------------------------------------------

    @property
    def sender(self) -> str:
        return self._accounts[self.sender_index]

    def component_at(self, address: str) -> SimulatedComponent:
        if address not in self._components:
            raise KeyError(f"No contract at {address}")
        return self._components[address]

    def deployed(self) -> list[SimulatedComponent]:
        """Deployed components in deployment order."""
        return list(self._components.values())

    def mine(self, blocks: int = 1) -> int:
        self._head += blocks
        return self._head

    # -- LedgerClient ------------------------------------------------

    def accounts(self) -> list[str]:
        return list(self._accounts)

    def prepare(self, contract: str) -> None:
        if contract in self._withheld:
            raise ProvisioningError(f"Artifact for {contract} unavailable")

    def simulate(self, request: TxRequest) -> None:
        fault = self._fault(request, "revert")
        if fault is not None:
            raise TransactionRejectedError(
                f"Preflight of {request.describe()} reverted: {fault.reason}"
            )
        if not request.is_deployment:
            component = self._target(request)
            component.check(request.function, tuple(request.args), self.sender)

    def submit(self, request: TxRequest) -> str:
        fault = self._fault(request, "refuse")
        if fault is not None:
            raise TransactionRejectedError(
                f"{request.describe()} rejected by network: {fault.reason}"
            )
        target = None if request.is_deployment else self._target(request)

        self._nonce += 1
        tx_hash = "0x" + hashlib.sha256(
            f"{self.sender}:{self._nonce}:{request.describe()}".encode("utf-8")
        ).hexdigest()
        self.submitted.append(request)
        pending = _PendingTx(request=request, sender=self.sender)
        self._transactions[tx_hash] = pending

        if self._fault(request, "stall") is not None:
            return tx_hash

        pending.block_number = self.mine()
        if self._fault(request, "revert") is not None:
            pending.status = 0
            return tx_hash

        if request.is_deployment:
            address = _address(f"contract:{self.sender}:{self._nonce}")
            behaviour = self.behaviours.get(request.contract, SimulatedComponent)
            self._components[address] = behaviour(
                request.contract, address, tuple(request.args), self.sender,
            )
            pending.contract_address = address
        else:
            try:
                target.apply(request.function, tuple(request.args), self.sender, pending.block_number)
            except TransactionRejectedError:
                pending.status = 0
        return tx_hash

    def call(self, request: TxRequest) -> Any:
        return self._target(request).view(request.function, tuple(request.args))

    def get_receipt(self, tx_hash: str) -> Optional[TxReceipt]:
        pending = self._transactions.get(tx_hash)
        if pending is None or pending.block_number is None:
            return None
        return TxReceipt(
            tx_hash=tx_hash,
            block_number=pending.block_number,
            status=pending.status,
            contract_address=pending.contract_address,
            gas_used=21_000,
        )

    def block_number(self) -> int:
        return self.mine()

    def _target(self, request: TxRequest) -> SimulatedComponent:
        component = self._components.get(request.address)
        if component is None:
            raise TransactionRejectedError(f"No contract deployed at {request.address}")
        if component.contract != request.contract:
            raise TransactionRejectedError(
                f"Contract at {request.address} is {component.contract}, not {request.contract}"
            )
        return component
