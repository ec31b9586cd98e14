"""web3.py ledger client — deploys and configures contracts over JSON-RPC.

Transactions are signed locally with eth-account when the profile names
a private key or mnemonic, or sent from a node-managed account when the
signer is unlocked (local development chains).

This client only submits and observes. Confirmation waiting, retry of
read-only polls, and step sequencing belong to the engine.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from eth_account.signers.local import LocalAccount
from web3 import HTTPProvider, Web3
from web3.exceptions import ContractLogicError, TransactionNotFound, Web3Exception

from paddeploy.chain.artifacts import ArtifactStore, ContractArtifact
from paddeploy.errors import (
    LedgerConnectionError,
    ProfileError,
    ProvisioningError,
    TransactionRejectedError,
)
from paddeploy.models.deployment import TxReceipt, TxRequest
from paddeploy.models.profile import NetworkProfile

logger = logging.getLogger(__name__)


class Web3LedgerClient:
    """LedgerClient over a web3.py connection.

    Usage:
        client = Web3LedgerClient(profile, ArtifactStore(Path("build/contracts")),
                                  account=load_account(profile.signer))
        tx_hash = client.submit(TxRequest("Swap", (splitter_address,)))
    """

    def __init__(
        self,
        profile: NetworkProfile,
        artifacts: ArtifactStore,
        account: Optional[LocalAccount] = None,
        w3: Optional[Web3] = None,
    ) -> None:
        self._profile = profile
        self._artifacts = artifacts
        self._account = account
        self._w3 = w3 or Web3(
            HTTPProvider(profile.endpoint, request_kwargs={"timeout": 60}),
        )
        self._network_verified = False

    @property
    def sender(self) -> str:
        if self._account is not None:
            return self._account.address
        accounts = self.accounts()
        index = self._profile.signer.account_index
        if index >= len(accounts):
            raise ProfileError(
                f"Endpoint exposes {len(accounts)} accounts, "
                f"signer wants index {index}"
            )
        return accounts[index]

    def accounts(self) -> list[str]:
        with self._reading("Account lookup"):
            return list(self._w3.eth.accounts)

    def prepare(self, contract: str) -> None:
        self._load(contract)

    def simulate(self, request: TxRequest) -> None:
        self._verify_network()
        fn = self._bind(request)
        sender = self.sender
        try:
            fn.estimate_gas({"from": sender})
        except OSError as exc:
            raise LedgerConnectionError(
                f"Preflight of {request.describe()} failed: {exc}"
            ) from exc
        except (Web3Exception, ValueError) as exc:
            raise TransactionRejectedError(
                f"Preflight of {request.describe()} reverted: {exc}"
            ) from exc

    def submit(self, request: TxRequest) -> str:
        self._verify_network()
        fn = self._bind(request)
        sender = self.sender
        params: dict[str, Any] = {
            "from": sender,
            "gas": self._profile.gas_limit,
            "gasPrice": self._profile.gas_price,
        }
        try:
            if self._account is None:
                tx_hash = fn.transact(params)
            else:
                params["nonce"] = self._w3.eth.get_transaction_count(sender, "pending")
                if self._profile.network_id is not None:
                    params["chainId"] = self._profile.network_id
                tx = fn.build_transaction(params)
                signed = self._account.sign_transaction(tx)
                tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
        except OSError as exc:
            raise LedgerConnectionError(
                f"{request.describe()} could not be sent: {exc}"
            ) from exc
        except (Web3Exception, TypeError, ValueError) as exc:
            raise TransactionRejectedError(
                f"{request.describe()} rejected by network: {exc}"
            ) from exc

        tx_hex = Web3.to_hex(tx_hash)
        logger.info("Sent %s: %s", request.describe(), tx_hex)
        return tx_hex

    def call(self, request: TxRequest) -> Any:
        fn = self._bind(request)
        sender = self.sender
        try:
            return fn.call({"from": sender})
        except ContractLogicError as exc:
            raise TransactionRejectedError(f"Call {request.describe()} reverted: {exc}") from exc
        except (OSError, Web3Exception) as exc:
            raise LedgerConnectionError(f"Call {request.describe()} failed: {exc}") from exc

    def get_receipt(self, tx_hash: str) -> Optional[TxReceipt]:
        try:
            raw = self._w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        except (OSError, Web3Exception) as exc:
            raise LedgerConnectionError(f"Receipt lookup for {tx_hash} failed: {exc}") from exc
        if raw is None:
            return None
        return TxReceipt(
            tx_hash=tx_hash,
            block_number=raw["blockNumber"],
            status=raw["status"],
            contract_address=raw.get("contractAddress"),
            gas_used=raw.get("gasUsed", 0),
        )

    def block_number(self) -> int:
        with self._reading("Head block lookup"):
            return self._w3.eth.block_number

    @contextmanager
    def _reading(self, what: str) -> Iterator[None]:
        try:
            yield
        except (OSError, Web3Exception) as exc:
            raise LedgerConnectionError(f"{what} failed: {exc}") from exc

    def _load(self, contract: str) -> ContractArtifact:
        try:
            return self._artifacts.load(contract)
        except (OSError, ValueError) as exc:
            raise ProvisioningError(f"Artifact for {contract} unavailable: {exc}") from exc

    def _bind(self, request: TxRequest) -> Any:
        artifact = self._load(request.contract)
        if request.is_deployment:
            factory = self._w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
            return factory.constructor(*request.args)
        if request.function not in artifact.function_names():
            raise TransactionRejectedError(
                f"{request.contract} has no function '{request.function}'"
            )
        contract = self._w3.eth.contract(
            address=Web3.to_checksum_address(request.address),
            abi=artifact.abi,
        )
        return getattr(contract.functions, request.function)(*request.args)

    def _verify_network(self) -> None:
        if self._network_verified or self._profile.network_id is None:
            return
        with self._reading("Chain id lookup"):
            chain_id = self._w3.eth.chain_id
        if chain_id != self._profile.network_id:
            raise ProfileError(
                f"Profile '{self._profile.name}' expects network {self._profile.network_id}, "
                f"endpoint reports {chain_id}"
            )
        self._network_verified = True
