"""Data models — network profiles and deployment records."""

from paddeploy.models.deployment import (
    AccountRef,
    AppliedCheck,
    CallRef,
    ComponentDescriptor,
    ConfigurationStep,
    DeploymentPlan,
    HandleRef,
    ProvisionedHandle,
    StepReceipt,
    TierSpec,
    TxReceipt,
    TxRequest,
)
from paddeploy.models.profile import NetworkProfile, RetryPolicy, SignerKind, SignerSource

__all__ = [
    "AccountRef",
    "AppliedCheck",
    "CallRef",
    "ComponentDescriptor",
    "ConfigurationStep",
    "DeploymentPlan",
    "HandleRef",
    "NetworkProfile",
    "ProvisionedHandle",
    "RetryPolicy",
    "SignerKind",
    "SignerSource",
    "StepReceipt",
    "TierSpec",
    "TxReceipt",
    "TxRequest",
]
