"""Concrete deployment plans."""

from paddeploy.deployments.pad_pack import PackSettings, build_plan

__all__ = ["PackSettings", "build_plan"]
