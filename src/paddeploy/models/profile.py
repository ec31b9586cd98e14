"""Network profiles — named configuration bundles selected per run.

A profile carries everything the orchestrator needs to talk to one
ledger network: the endpoint, where the signer's secret lives, the
confirmation policy, and the fee parameters. Profiles are pure data
and immutable once selected. Exactly one profile is active per run and
it is passed in explicitly rather than read from process-wide state.

Profiles are loaded from config/networks.json:

    {
      "testnet": {
        "endpoint": "http://127.0.0.1:7545",
        "network_id": 97,
        "signer": {"kind": "mnemonic", "env_var": "DEPLOYER_MNEMONIC"},
        "confirmations": 10,
        "timeout_ms": 4000000,
        ...
      }
    }
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from paddeploy.errors import ProfileError


class SignerKind(str, enum.Enum):
    """Where the deploying account's key comes from."""
    UNLOCKED = "unlocked"        # node-managed account (local dev chains)
    PRIVATE_KEY = "private_key"
    MNEMONIC = "mnemonic"


@dataclass(frozen=True)
class SignerSource:
    """Credential source for the deploying account.

    The secret itself is never stored on the profile, only the name of
    the environment variable that holds it.
    """
    kind: SignerKind = SignerKind.UNLOCKED
    env_var: Optional[str] = None
    account_index: int = 0

    def __post_init__(self) -> None:
        if self.kind != SignerKind.UNLOCKED and not self.env_var:
            raise ProfileError(f"Signer kind '{self.kind.value}' requires env_var")
        if self.account_index < 0:
            raise ProfileError("Signer account_index must be >= 0")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry policy for read-only polling while waiting for confirmations.

    Submissions are never retried: a broadcast transaction cannot be
    withdrawn, and resubmitting it could apply it twice.
    """
    max_attempts: int = 3
    backoff_ms: int = 1000

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ProfileError("retry.max_attempts must be >= 1")
        if self.backoff_ms < 0:
            raise ProfileError("retry.backoff_ms must be >= 0")


@dataclass(frozen=True)
class NetworkProfile:
    """An immutable, named network configuration."""
    name: str
    endpoint: str
    signer: SignerSource = field(default_factory=SignerSource)
    network_id: Optional[int] = None  # None accepts any network
    confirmations_required: int = 1
    timeout_ms: int = 750_000
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    gas_limit: int = 6_721_975
    gas_price: int = 20_000_000_000
    skip_preflight: bool = False
    poll_interval_ms: int = 1000

    def __post_init__(self) -> None:
        if not self.name:
            raise ProfileError("Profile name must be non-empty")
        if not self.endpoint:
            raise ProfileError(f"Profile '{self.name}' has no endpoint")
        if self.confirmations_required < 1:
            raise ProfileError(
                f"Profile '{self.name}': confirmations must be >= 1, "
                f"got {self.confirmations_required}"
            )
        if self.timeout_ms <= 0:
            raise ProfileError(f"Profile '{self.name}': timeout_ms must be positive")
        if self.gas_limit <= 0 or self.gas_price <= 0:
            raise ProfileError(f"Profile '{self.name}': gas and gas_price must be positive")
        if self.poll_interval_ms <= 0:
            raise ProfileError(f"Profile '{self.name}': poll_interval_ms must be positive")

    @property
    def is_simulated(self) -> bool:
        return self.endpoint.startswith("memory://")

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> NetworkProfile:
        """Build a profile from one entry of networks.json."""
        try:
            signer_data = data.get("signer", {})
            signer = SignerSource(
                kind=SignerKind(signer_data.get("kind", SignerKind.UNLOCKED.value)),
                env_var=signer_data.get("env_var"),
                account_index=int(signer_data.get("account_index", 0)),
            )
            retry_data = data.get("retry", {})
            retry = RetryPolicy(
                max_attempts=int(retry_data.get("max_attempts", 3)),
                backoff_ms=int(retry_data.get("backoff_ms", 1000)),
            )
            network_id = data.get("network_id", "*")
            return cls(
                name=name,
                endpoint=data["endpoint"],
                signer=signer,
                network_id=None if network_id == "*" else int(network_id),
                confirmations_required=int(data.get("confirmations", 1)),
                timeout_ms=int(data.get("timeout_ms", 750_000)),
                retry_policy=retry,
                gas_limit=int(data.get("gas", 6_721_975)),
                gas_price=int(data.get("gas_price", 20_000_000_000)),
                skip_preflight=bool(data.get("skip_preflight", False)),
                poll_interval_ms=int(data.get("poll_interval_ms", 1000)),
            )
        except KeyError as exc:
            raise ProfileError(f"Profile '{name}' is missing {exc}") from exc
        except (AttributeError, TypeError, ValueError) as exc:
            if isinstance(exc, ProfileError):
                raise
            raise ProfileError(f"Profile '{name}' is malformed: {exc}") from exc


def load_profiles(path: Path) -> dict[str, NetworkProfile]:
    """Load every profile from a networks.json file."""
    data = _read_networks(path)
    return {name: NetworkProfile.from_dict(name, entry) for name, entry in data.items()}


def select_profile(path: Path, name: str) -> NetworkProfile:
    """Select exactly one profile by name.

    Only the selected entry is parsed; a broken sibling profile does not
    block it.
    """
    data = _read_networks(path)
    if name not in data:
        known = ", ".join(sorted(data)) or "none"
        raise ProfileError(f"Unknown network profile '{name}' (known: {known})")
    return NetworkProfile.from_dict(name, data[name])


def _read_networks(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ProfileError(f"Network config not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ProfileError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ProfileError(f"{path} must map profile names to settings")
    return data
