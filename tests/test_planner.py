"""Tests for the deployment planner — proves dependency order is enforced."""

import pytest

from paddeploy.engine.planner import order_descriptors, resolve_plan, validate_steps
from paddeploy.errors import ConfigurationError, ProvisioningError, UnresolvedReferenceError
from paddeploy.models.deployment import (
    CallRef,
    ComponentDescriptor,
    ConfigurationStep,
    DeploymentPlan,
    HandleRef,
)


def _d(name: str, *args) -> ComponentDescriptor:
    return ComponentDescriptor(name=name, contract=name.upper(), constructor_args=tuple(args))


class TestOrderDescriptors:
    def test_valid_order_is_kept(self) -> None:
        ordered = order_descriptors([_d("a"), _d("b", HandleRef("a")), _d("c")])
        assert [d.name for d in ordered] == ["a", "b", "c"]

    def test_dependency_pulled_forward(self) -> None:
        ordered = order_descriptors([_d("b", HandleRef("a")), _d("c"), _d("a")])
        names = [d.name for d in ordered]
        assert names.index("a") < names.index("b")
        assert names == ["c", "a", "b"]

    def test_nested_references_count(self) -> None:
        ordered = order_descriptors([
            _d("splitter", [HandleRef("wallet"), "0x" + "1" * 40], [1, 1]),
            _d("wallet"),
        ])
        assert [d.name for d in ordered] == ["wallet", "splitter"]

    def test_call_ref_is_a_dependency(self) -> None:
        ordered = order_descriptors([_d("b", CallRef("a", "MINTER_ROLE")), _d("a")])
        assert [d.name for d in ordered] == ["a", "b"]

    def test_every_descriptor_after_its_references(self) -> None:
        declared = [
            _d("e", HandleRef("d"), HandleRef("b")),
            _d("d", HandleRef("c")),
            _d("c", HandleRef("a")),
            _d("b", HandleRef("a")),
            _d("a"),
        ]
        ordered = order_descriptors(declared)
        position = {d.name: i for i, d in enumerate(ordered)}
        for descriptor in ordered:
            for dep in descriptor.dependencies:
                assert position[dep] < position[descriptor.name]

    def test_unknown_reference(self) -> None:
        with pytest.raises(UnresolvedReferenceError) as excinfo:
            order_descriptors([_d("b", HandleRef("ghost"))])
        assert excinfo.value.component == "ghost"
        assert excinfo.value.step == "b"

    def test_duplicate_name(self) -> None:
        with pytest.raises(ProvisioningError, match="Duplicate"):
            order_descriptors([_d("a"), _d("a")])

    def test_cycle(self) -> None:
        with pytest.raises(ProvisioningError, match="cycle"):
            order_descriptors([_d("a", HandleRef("b")), _d("b", HandleRef("a"))])

    def test_self_reference(self) -> None:
        with pytest.raises(ProvisioningError, match="itself"):
            order_descriptors([_d("a", HandleRef("a"))])


class TestValidateSteps:
    def test_step_on_unknown_component(self) -> None:
        step = ConfigurationStep("grant", target="ghost", operation="grantRole")
        with pytest.raises(UnresolvedReferenceError):
            validate_steps([step], [_d("a")])

    def test_step_argument_on_unknown_component(self) -> None:
        step = ConfigurationStep("grant", target="a", operation="grantRole", args=(HandleRef("ghost"),))
        with pytest.raises(UnresolvedReferenceError) as excinfo:
            validate_steps([step], [_d("a")])
        assert excinfo.value.step == "grant"

    def test_duplicate_step(self) -> None:
        step = ConfigurationStep("grant", target="a", operation="grantRole")
        with pytest.raises(ConfigurationError):
            validate_steps([step, step], [_d("a")])

    def test_resolve_plan_orders_descriptors(self) -> None:
        plan = DeploymentPlan(
            descriptors=(_d("b", HandleRef("a")), _d("a")),
            steps=(ConfigurationStep("s", target="b", operation="go"),),
        )
        resolved = resolve_plan(plan)
        assert [d.name for d in resolved.descriptors] == ["a", "b"]
        assert resolved.steps == plan.steps
