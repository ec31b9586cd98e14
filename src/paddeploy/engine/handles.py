"""Handle table — the run's name → ProvisionedHandle mapping.

Appended to by the provisioning engine, read by the step runner. Handles
are never replaced or removed during a run.
"""

from __future__ import annotations

from typing import Iterator, Optional

from paddeploy.errors import ProvisioningError, UnresolvedReferenceError
from paddeploy.models.deployment import ProvisionedHandle


class HandleTable:
    """Append-only, insertion-ordered handle lookup."""

    def __init__(self, handles: Optional[list[ProvisionedHandle]] = None) -> None:
        self._handles: dict[str, ProvisionedHandle] = {}
        for handle in handles or []:
            self.add(handle)

    def add(self, handle: ProvisionedHandle) -> None:
        """Record a handle. Raises ProvisioningError on a duplicate name."""
        if handle.component in self._handles:
            raise ProvisioningError(
                f"Component already provisioned at "
                f"{self._handles[handle.component].address}",
                step=handle.component,
            )
        self._handles[handle.component] = handle

    def require(self, component: str, step: Optional[str] = None) -> ProvisionedHandle:
        """Look up a handle, failing with UnresolvedReferenceError if absent."""
        handle = self._handles.get(component)
        if handle is None:
            raise UnresolvedReferenceError(component, step=step)
        return handle

    def address_of(self, component: str, step: Optional[str] = None) -> str:
        return self.require(component, step).address

    def get(self, component: str) -> Optional[ProvisionedHandle]:
        return self._handles.get(component)

    def names(self) -> list[str]:
        return list(self._handles)

    def __getitem__(self, component: str) -> ProvisionedHandle:
        return self.require(component)

    def __contains__(self, component: object) -> bool:
        return component in self._handles

    def __iter__(self) -> Iterator[ProvisionedHandle]:
        return iter(list(self._handles.values()))

    def __len__(self) -> int:
        return len(self._handles)
