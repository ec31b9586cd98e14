"""Deployment models — descriptors, references, handles, steps, receipts, tiers.

Everything here is immutable. Handles accumulate during a run, steps
and descriptors are fixed when the run starts, and tier specs are
computed once before they are passed into configuration steps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from paddeploy.errors import UnitConversionError


# ------------------------------------------------------------------ #
# References                                                          #
# ------------------------------------------------------------------ #

@dataclass(frozen=True)
class HandleRef:
    """The address of a component provisioned earlier in the run."""
    component: str


@dataclass(frozen=True)
class CallRef:
    """The result of a read-only call on a provisioned component.

    Used for values the component itself defines, e.g. a role
    identifier returned by MINTER_ROLE().
    """
    component: str
    function: str
    args: tuple[Any, ...] = ()


@dataclass(frozen=True)
class AccountRef:
    """The n-th account exposed by the ledger endpoint."""
    index: int

    def __post_init__(self) -> None:
        if isinstance(self.index, bool) or not isinstance(self.index, int) or self.index < 0:
            raise ValueError(f"Account index must be a non-negative integer, got {self.index!r}")


REFERENCE_TYPES = (HandleRef, CallRef, AccountRef)


def iter_component_refs(value: Any) -> Iterator[str]:
    """Yield every component name referenced anywhere inside value.

    Walks lists, tuples and dict values. AccountRef does not name a
    component and is not yielded.
    """
    if isinstance(value, HandleRef):
        yield value.component
    elif isinstance(value, CallRef):
        yield value.component
        yield from iter_component_refs(value.args)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_component_refs(item)
    elif isinstance(value, dict):
        for item in value.values():
            yield from iter_component_refs(item)


# ------------------------------------------------------------------ #
# Ledger transactions                                                 #
# ------------------------------------------------------------------ #

@dataclass(frozen=True)
class TxRequest:
    """A transaction or read-only call against the ledger.

    A request without an address is a contract deployment; its args are
    the constructor arguments.
    """
    contract: str
    args: tuple[Any, ...] = ()
    address: Optional[str] = None
    function: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.address is None) != (self.function is None):
            raise ValueError("address and function must be given together")

    @property
    def is_deployment(self) -> bool:
        return self.address is None

    def describe(self) -> str:
        if self.is_deployment:
            return f"deploy {self.contract}"
        return f"{self.contract}({self.address}).{self.function}"


@dataclass(frozen=True)
class TxReceipt:
    """The mined outcome of a submitted transaction."""
    tx_hash: str
    block_number: int
    status: int
    contract_address: Optional[str] = None
    gas_used: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == 1


# ------------------------------------------------------------------ #
# Provisioning                                                        #
# ------------------------------------------------------------------ #

@dataclass(frozen=True)
class ComponentDescriptor:
    """A component to provision.

    constructor_args may hold plain values or references to components
    ordered strictly before this one.
    """
    name: str
    contract: str
    constructor_args: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Descriptor name must be non-empty")
        if not self.contract:
            raise ValueError(f"Descriptor '{self.name}' has no contract")

    @property
    def dependencies(self) -> frozenset[str]:
        return frozenset(iter_component_refs(self.constructor_args))


@dataclass(frozen=True)
class ProvisionedHandle:
    """A component's on-chain address, produced exactly once per descriptor."""
    component: str
    contract: str
    address: str
    receipt: TxReceipt


# ------------------------------------------------------------------ #
# Configuration                                                       #
# ------------------------------------------------------------------ #

@dataclass(frozen=True)
class AppliedCheck:
    """A read-only call on the step's target that returns truthy when
    the step's effect is already present on-chain."""
    function: str
    args: tuple[Any, ...] = ()


@dataclass(frozen=True)
class ConfigurationStep:
    """A post-provisioning transaction against a provisioned component."""
    name: str
    target: str
    operation: str
    args: tuple[Any, ...] = ()
    applied_check: Optional[AppliedCheck] = None

    @property
    def dependencies(self) -> frozenset[str]:
        refs = set(iter_component_refs(self.args))
        refs.add(self.target)
        if self.applied_check is not None:
            refs.update(iter_component_refs(self.applied_check.args))
        return frozenset(refs)


@dataclass(frozen=True)
class StepReceipt:
    """Outcome of one configuration step."""
    step: str
    target: str
    operation: str
    receipt: Optional[TxReceipt] = None
    skipped: bool = False


# ------------------------------------------------------------------ #
# Tiers                                                               #
# ------------------------------------------------------------------ #

@dataclass(frozen=True)
class TierSpec:
    """Registration payload for one operating tier.

    fee_amount is in the smallest unit of the ledger's native currency.
    """
    name: str
    fee_amount: int
    unit_amount: int

    def __post_init__(self) -> None:
        if self.fee_amount <= 0:
            raise UnitConversionError(f"Tier '{self.name}': fee_amount must be positive")
        if self.unit_amount <= 0:
            raise UnitConversionError(f"Tier '{self.name}': unit_amount must be positive")


@dataclass(frozen=True)
class DeploymentPlan:
    """The fixed pipeline for one run: descriptors, then steps."""
    descriptors: tuple[ComponentDescriptor, ...]
    steps: tuple[ConfigurationStep, ...] = field(default_factory=tuple)
