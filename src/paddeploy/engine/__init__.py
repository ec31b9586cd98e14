"""Orchestration engine — planning, provisioning, configuration, tier payloads."""

from paddeploy.engine.handles import HandleTable
from paddeploy.engine.planner import order_descriptors, resolve_plan
from paddeploy.engine.provisioning import ProvisioningEngine, provision_all
from paddeploy.engine.steps import ConfigurationStepRunner, run_steps
from paddeploy.engine.tiers import build_tier_specs, from_smallest_unit, to_smallest_unit

__all__ = [
    "ConfigurationStepRunner",
    "HandleTable",
    "ProvisioningEngine",
    "build_tier_specs",
    "from_smallest_unit",
    "order_descriptors",
    "provision_all",
    "resolve_plan",
    "run_steps",
    "to_smallest_unit",
]
