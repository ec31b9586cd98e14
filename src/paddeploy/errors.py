"""Deployment errors — every failure that can abort a run.

All errors abort the pipeline immediately. Nothing is retried and
nothing is rolled back: ledger transactions are not reversible, so a
failed run may leave the system partially configured. Each error names
the descriptor or configuration step that failed so an operator can
resume manually from that point.
"""

from __future__ import annotations

from typing import Optional


class DeploymentError(Exception):
    """Base class for all orchestrator failures."""

    def __init__(self, message: str, step: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.step = step

    def __str__(self) -> str:
        if self.step:
            return f"[{self.step}] {self.message}"
        return self.message


class ProvisioningError(DeploymentError):
    """A descriptor could not be provisioned (plan-level failure)."""


class ConfigurationError(DeploymentError):
    """A configuration step could not be executed (plan-level failure)."""


class UnresolvedReferenceError(DeploymentError):
    """A descriptor or step references a component not yet provisioned.

    Always a build-time/plan error. No transaction is submitted for the
    step that raised it.
    """

    def __init__(self, component: str, step: Optional[str] = None) -> None:
        super().__init__(f"Component not provisioned: {component}", step=step)
        self.component = component


class ConfirmationTimeoutError(DeploymentError):
    """A submitted transaction did not reach the required depth in time.

    The outcome is ambiguous: the transaction may still confirm later.
    """

    def __init__(
        self,
        message: str,
        tx_hash: str,
        step: Optional[str] = None,
    ) -> None:
        super().__init__(message, step=step)
        self.tx_hash = tx_hash


class TransactionRejectedError(DeploymentError):
    """The network or the target component explicitly rejected a call."""

    def __init__(
        self,
        message: str,
        step: Optional[str] = None,
        tx_hash: Optional[str] = None,
    ) -> None:
        super().__init__(message, step=step)
        self.tx_hash = tx_hash


class UnitConversionError(DeploymentError, ValueError):
    """A monetary amount cannot be represented exactly at the target precision."""


class ProfileError(DeploymentError, ValueError):
    """A network profile is unknown, malformed, or missing its signer secret."""


class LedgerConnectionError(DeploymentError):
    """The ledger endpoint could not be reached or answered with a transport error."""


class SettingsError(DeploymentError, ValueError):
    """Deployment settings are missing a field or hold an invalid value."""
