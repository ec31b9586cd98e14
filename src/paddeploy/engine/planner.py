"""Deployment planner — turns a descriptor set into a valid provisioning order.

The order is a stable topological sort: descriptors keep their declared
position unless a reference forces a dependency earlier. A plan that
names an unknown component, repeats a name, or contains a cycle is
rejected before anything touches the ledger.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from paddeploy.errors import ConfigurationError, ProvisioningError, UnresolvedReferenceError
from paddeploy.models.deployment import ComponentDescriptor, ConfigurationStep, DeploymentPlan


def order_descriptors(
    descriptors: Iterable[ComponentDescriptor],
) -> list[ComponentDescriptor]:
    """Return descriptors in an order where each follows all it references."""
    declared = list(descriptors)
    by_name: dict[str, ComponentDescriptor] = {}
    for descriptor in declared:
        if descriptor.name in by_name:
            raise ProvisioningError("Duplicate descriptor name", step=descriptor.name)
        by_name[descriptor.name] = descriptor

    for descriptor in declared:
        for dep in descriptor.dependencies:
            if dep not in by_name:
                raise UnresolvedReferenceError(dep, step=descriptor.name)
            if dep == descriptor.name:
                raise ProvisioningError("Descriptor references itself", step=descriptor.name)

    ordered: list[ComponentDescriptor] = []
    placed: set[str] = set()
    remaining = list(declared)
    while remaining:
        # First declared descriptor whose dependencies are all placed.
        for index, descriptor in enumerate(remaining):
            if descriptor.dependencies <= placed:
                ordered.append(descriptor)
                placed.add(descriptor.name)
                del remaining[index]
                break
        else:
            cycle = ", ".join(d.name for d in remaining)
            raise ProvisioningError(f"Dependency cycle among: {cycle}")
    return ordered


def validate_steps(
    steps: Sequence[ConfigurationStep],
    descriptors: Sequence[ComponentDescriptor],
) -> None:
    """Check that every component a step names will be provisioned."""
    names = {d.name for d in descriptors}
    seen: set[str] = set()
    for step in steps:
        if step.name in seen:
            raise ConfigurationError("Duplicate step name", step=step.name)
        seen.add(step.name)
        for dep in sorted(step.dependencies):
            if dep not in names:
                raise UnresolvedReferenceError(dep, step=step.name)


def resolve_plan(plan: DeploymentPlan) -> DeploymentPlan:
    """Validate a plan and return it with descriptors in provisioning order."""
    ordered = order_descriptors(plan.descriptors)
    validate_steps(plan.steps, ordered)
    return DeploymentPlan(descriptors=tuple(ordered), steps=tuple(plan.steps))
