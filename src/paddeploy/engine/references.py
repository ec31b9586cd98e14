"""Reference resolution — substitutes handles into argument templates."""

from __future__ import annotations

from typing import Any, Optional

from paddeploy.chain.client import LedgerClient
from paddeploy.engine.handles import HandleTable
from paddeploy.errors import UnresolvedReferenceError
from paddeploy.models.deployment import AccountRef, CallRef, HandleRef, TxRequest


def check_resolvable(value: Any, handles: HandleTable, step: Optional[str] = None) -> None:
    """Fail before any ledger access if value names a missing component."""
    if isinstance(value, HandleRef):
        handles.require(value.component, step)
    elif isinstance(value, CallRef):
        handles.require(value.component, step)
        check_resolvable(value.args, handles, step)
    elif isinstance(value, (list, tuple)):
        for item in value:
            check_resolvable(item, handles, step)
    elif isinstance(value, dict):
        for item in value.values():
            check_resolvable(item, handles, step)


def resolve(
    value: Any,
    handles: HandleTable,
    ledger: LedgerClient,
    step: Optional[str] = None,
) -> Any:
    """Return value with every reference replaced by its concrete value.

    Lists stay lists and tuples stay tuples, so nested constructor
    arguments such as payee arrays keep their shape.
    """
    if isinstance(value, HandleRef):
        return handles.address_of(value.component, step)
    if isinstance(value, CallRef):
        handle = handles.require(value.component, step)
        args = tuple(resolve(a, handles, ledger, step) for a in value.args)
        return ledger.call(TxRequest(
            contract=handle.contract,
            args=args,
            address=handle.address,
            function=value.function,
        ))
    if isinstance(value, AccountRef):
        accounts = ledger.accounts()
        if value.index >= len(accounts):
            raise UnresolvedReferenceError(f"account[{value.index}]", step=step)
        return accounts[value.index]
    if isinstance(value, list):
        return [resolve(item, handles, ledger, step) for item in value]
    if isinstance(value, tuple):
        return tuple(resolve(item, handles, ledger, step) for item in value)
    if isinstance(value, dict):
        return {k: resolve(v, handles, ledger, step) for k, v in value.items()}
    return value
