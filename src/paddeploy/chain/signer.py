"""Signer loading — turns a profile's SignerSource into a local account."""

from __future__ import annotations

import os
from typing import Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount

from paddeploy.errors import ProfileError
from paddeploy.models.profile import SignerKind, SignerSource


def load_account(signer: SignerSource) -> Optional[LocalAccount]:
    """Load the deploying account from the environment.

    Returns None for unlocked signers: the node signs on their behalf.
    The secret is read at call time so a .env file loaded by the CLI
    is picked up.
    """
    if signer.kind == SignerKind.UNLOCKED:
        return None

    secret = os.getenv(signer.env_var or "")
    if not secret:
        raise ProfileError(f"Signer secret not set: ${signer.env_var}")

    if signer.kind == SignerKind.PRIVATE_KEY:
        return Account.from_key(secret.strip())

    Account.enable_unaudited_hdwallet_features()
    return Account.from_mnemonic(
        secret.strip(),
        account_path=f"m/44'/60'/0'/0/{signer.account_index}",
    )
