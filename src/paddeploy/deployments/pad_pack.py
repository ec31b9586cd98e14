"""PAD Pack deployment — the fixed component set and configuration steps.

Components, in dependency order:
    payment_splitter  PaymentSplitter(payees, shares)
    swap              Swap(payment_splitter)
    pack_nft          PackNFT(name, symbol, base_uri)

Configuration, in order:
    grant_minter_role     pack_nft.grantRole(MINTER_ROLE, swap)
    register_tier_<name>  swap.addSwap(pack_nft, fee, unit_amount)  per tier

The role grant is checked with hasRole before it is sent, so a re-run
skips it. addSwap has no such query; re-running registers the tier
again unless the Swap contract refuses duplicates.

Settings are read from config/pad_pack.json. Payees may be literal
addresses or "@account:<n>" for the endpoint's n-th account.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Union

from paddeploy.engine.tiers import NATIVE_PRECISION, build_tier_specs
from paddeploy.errors import DeploymentError, SettingsError
from paddeploy.models.deployment import (
    AccountRef,
    AppliedCheck,
    CallRef,
    ComponentDescriptor,
    ConfigurationStep,
    DeploymentPlan,
    HandleRef,
    TierSpec,
)

PAYMENT_SPLITTER = "payment_splitter"
SWAP = "swap"
PACK_NFT = "pack_nft"

_ACCOUNT_PATTERN = re.compile(r"^@account:(\d+)$")


@dataclass(frozen=True)
class PackSettings:
    """Human-readable inputs for one PAD Pack deployment."""
    payees: tuple[Union[str, AccountRef], ...]
    shares: tuple[int, ...]
    token_name: str
    token_symbol: str
    token_base_uri: str
    tiers: dict[str, dict[str, Any]]
    tier_order: tuple[str, ...]
    unit_precision: int = NATIVE_PRECISION

    def __post_init__(self) -> None:
        if not self.payees:
            raise SettingsError("At least one payee is required")
        if len(self.payees) != len(self.shares):
            raise SettingsError(
                f"payees and shares differ in length: {len(self.payees)} != {len(self.shares)}"
            )
        if any(share <= 0 for share in self.shares):
            raise SettingsError("Every share must be positive")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PackSettings:
        try:
            splitter = data["payment_splitter"]
            token = data["pack_nft"]
            tiers = data["tiers"]
            return cls(
                payees=tuple(_parse_payee(p) for p in splitter["payees"]),
                shares=tuple(int(s) for s in splitter["shares"]),
                token_name=token["name"],
                token_symbol=token["symbol"],
                token_base_uri=token["base_uri"],
                tiers=dict(tiers["entries"]),
                tier_order=tuple(tiers["order"]),
                unit_precision=int(tiers.get("unit_precision", NATIVE_PRECISION)),
            )
        except KeyError as exc:
            raise SettingsError(f"Deployment settings are missing {exc}") from exc
        except (AttributeError, TypeError, ValueError) as exc:
            if isinstance(exc, DeploymentError):
                raise
            raise SettingsError(f"Deployment settings are malformed: {exc}") from exc

    @classmethod
    def from_file(cls, path: Path) -> PackSettings:
        """Load settings; fractional numbers are read as Decimal, never float."""
        if not path.exists():
            raise FileNotFoundError(f"Deployment settings not found: {path}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"), parse_float=Decimal)
        except json.JSONDecodeError as exc:
            raise SettingsError(f"{path} is not valid JSON: {exc}") from exc
        return cls.from_dict(data)

    def tier_specs(self) -> list[TierSpec]:
        try:
            return build_tier_specs(self.tiers, self.unit_precision, self.tier_order)
        except (AttributeError, TypeError, ValueError) as exc:
            if isinstance(exc, DeploymentError):
                raise
            raise SettingsError(f"Tier settings are invalid: {exc}") from exc


def _parse_payee(value: str) -> Union[str, AccountRef]:
    match = _ACCOUNT_PATTERN.match(value)
    if match:
        return AccountRef(int(match.group(1)))
    return value


def build_descriptors(settings: PackSettings) -> tuple[ComponentDescriptor, ...]:
    return (
        ComponentDescriptor(
            name=PAYMENT_SPLITTER,
            contract="PaymentSplitter",
            constructor_args=(list(settings.payees), list(settings.shares)),
        ),
        ComponentDescriptor(
            name=SWAP,
            contract="Swap",
            constructor_args=(HandleRef(PAYMENT_SPLITTER),),
        ),
        ComponentDescriptor(
            name=PACK_NFT,
            contract="PackNFT",
            constructor_args=(
                settings.token_name,
                settings.token_symbol,
                settings.token_base_uri,
            ),
        ),
    )


def build_steps(tiers: list[TierSpec]) -> tuple[ConfigurationStep, ...]:
    minter_role = CallRef(PACK_NFT, "MINTER_ROLE")
    steps = [
        ConfigurationStep(
            name="grant_minter_role",
            target=PACK_NFT,
            operation="grantRole",
            args=(minter_role, HandleRef(SWAP)),
            applied_check=AppliedCheck("hasRole", (minter_role, HandleRef(SWAP))),
        ),
    ]
    for tier in tiers:
        steps.append(ConfigurationStep(
            name=f"register_tier_{tier.name}",
            target=SWAP,
            operation="addSwap",
            args=(HandleRef(PACK_NFT), tier.fee_amount, tier.unit_amount),
        ))
    return tuple(steps)


def build_plan(settings: PackSettings) -> DeploymentPlan:
    """The full PAD Pack pipeline: provision three components, then configure."""
    return DeploymentPlan(
        descriptors=build_descriptors(settings),
        steps=build_steps(settings.tier_specs()),
    )
