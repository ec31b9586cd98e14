"""Tests for the end-to-end pipeline against the simulated network."""

import pytest
from pathlib import Path

from conftest import FakeClock, make_profile
from paddeploy.chain.confirmations import ConfirmationWaiter
from paddeploy.chain.memory import MINTER_ROLE, InMemoryLedger
from paddeploy.deployments.pad_pack import PackSettings, build_plan
from paddeploy.errors import (
    ConfirmationTimeoutError,
    LedgerConnectionError,
    ProvisioningError,
    TransactionRejectedError,
    UnresolvedReferenceError,
)
from paddeploy.models.deployment import (
    ComponentDescriptor,
    ConfigurationStep,
    DeploymentPlan,
    HandleRef,
    TxRequest,
)
from paddeploy.persistence.journal import DeploymentJournal, JournalKind
from paddeploy.pipeline import DeploymentPipeline, run_pipeline


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


class UnreachableCallLedger(InMemoryLedger):
    """Ledger whose read-only calls fail at the transport layer."""

    def __init__(self, error: Exception) -> None:
        super().__init__()
        self.error = error

    def call(self, request: TxRequest):
        raise self.error


@pytest.fixture
def plan() -> DeploymentPlan:
    return build_plan(PackSettings.from_file(CONFIG_DIR / "pad_pack.json"))


def _run(plan, ledger, clock, journal=None, **profile_overrides):
    profile = make_profile(**profile_overrides)
    waiter = ConfirmationWaiter(profile, clock=clock, sleep=clock.sleep)
    return run_pipeline(plan, profile, ledger, waiter=waiter, journal=journal)


class TestSuccessfulRun:
    def test_full_pad_pack_run(self, plan, ledger: InMemoryLedger, clock: FakeClock) -> None:
        result = _run(plan, ledger, clock)
        assert result.success, result.error
        assert [h.component for h in result.handles] == ["payment_splitter", "swap", "pack_nft"]
        assert result.completed == [
            "payment_splitter", "swap", "pack_nft",
            "grant_minter_role", "register_tier_silver", "register_tier_gold",
        ]
        assert result.last_completed_step == "register_tier_gold"
        assert result.failed_step is None

    def test_components_wired_together(self, plan, ledger: InMemoryLedger, clock: FakeClock) -> None:
        result = _run(plan, ledger, clock)
        addresses = {h.component: h.address for h in result.handles}

        splitter = ledger.component_at(addresses["payment_splitter"])
        assert splitter.constructor_args == (
            [ledger.accounts()[8], ledger.accounts()[9]],
            [1, 1],
        )
        swap = ledger.component_at(addresses["swap"])
        assert swap.constructor_args == (addresses["payment_splitter"],)
        nft = ledger.component_at(addresses["pack_nft"])
        assert nft.constructor_args == ("PAD Pack", "PADP", "https://padtcg.com/")
        assert nft.has_role(MINTER_ROLE, addresses["swap"])
        assert [c.args for c in swap.calls_to("addSwap")] == [
            (addresses["pack_nft"], 35_000_000_000_000_000, 50000),
            (addresses["pack_nft"], 200_000_000_000_000_000, 32000),
        ]

    def test_ten_confirmations(self, plan, ledger: InMemoryLedger, clock: FakeClock) -> None:
        result = _run(plan, ledger, clock, confirmations_required=10)
        assert result.success

    def test_summary(self, plan, ledger: InMemoryLedger, clock: FakeClock) -> None:
        summary = _run(plan, ledger, clock).summary()
        assert summary["success"] is True
        assert set(summary["components"]) == {"payment_splitter", "swap", "pack_nft"}
        assert "failed_step" not in summary

    def test_journal_records_run(self, plan, ledger: InMemoryLedger, clock: FakeClock, tmp_path: Path) -> None:
        journal = DeploymentJournal("run-1", storage_path=tmp_path / "journal.jsonl")
        _run(plan, ledger, clock, journal=journal)
        kinds = [e.kind for e in journal.entries()]
        assert kinds[0] == JournalKind.RUN_STARTED
        assert kinds[-1] == JournalKind.RUN_COMPLETED
        assert kinds.count(JournalKind.COMPONENT_PROVISIONED) == 3
        assert kinds.count(JournalKind.STEP_CONFIRMED) == 3
        assert DeploymentJournal("run-1", storage_path=tmp_path / "journal.jsonl").count == journal.count


class TestFailedRun:
    def test_timeout_reports_failing_descriptor(self, plan, ledger: InMemoryLedger, clock: FakeClock) -> None:
        ledger.stall("Swap")
        result = _run(plan, ledger, clock)
        assert not result.success
        assert result.failed_step == "swap"
        assert isinstance(result.error, ConfirmationTimeoutError)
        assert result.last_completed_step == "payment_splitter"
        assert [c.contract for c in ledger.deployed()] == ["PaymentSplitter"]
        assert all(r.contract != "PackNFT" for r in ledger.submitted)

    def test_rejected_step_leaves_prior_state(self, plan, ledger: InMemoryLedger, clock: FakeClock) -> None:
        ledger.revert("Swap", "addSwap")
        result = _run(plan, ledger, clock)
        assert not result.success
        assert result.failed_step == "register_tier_silver"
        assert isinstance(result.error, TransactionRejectedError)
        assert result.last_completed_step == "grant_minter_role"
        assert len(ledger.deployed()) == 3

    def test_rerun_after_partial_failure(self, plan, ledger: InMemoryLedger, clock: FakeClock) -> None:
        """A re-run provisions fresh components; nothing is rolled back."""
        ledger.revert("Swap", "addSwap")
        first = _run(plan, ledger, clock)
        assert not first.success
        ledger.clear_faults()
        second = _run(plan, ledger, clock)
        assert second.success
        assert len(ledger.deployed()) == 6

    def test_plan_error_submits_nothing(self, ledger: InMemoryLedger, clock: FakeClock) -> None:
        plan = DeploymentPlan(
            descriptors=(ComponentDescriptor("a", "A"),),
            steps=(ConfigurationStep("s", target="a", operation="go", args=(HandleRef("ghost"),)),),
        )
        result = _run(plan, ledger, clock)
        assert not result.success
        assert isinstance(result.error, UnresolvedReferenceError)
        assert result.failed_step == "s"
        assert ledger.submitted == []

    def test_failure_journaled(self, plan, ledger: InMemoryLedger, clock: FakeClock) -> None:
        ledger.stall("PackNFT")
        journal = DeploymentJournal("run-2")
        profile = make_profile()
        pipeline = DeploymentPipeline(
            profile, ledger,
            waiter=ConfirmationWaiter(profile, clock=clock, sleep=clock.sleep),
            journal=journal,
        )
        result = pipeline.run(plan)
        assert result.run_id == "run-2"
        failed = journal.entries(JournalKind.RUN_FAILED)
        assert len(failed) == 1
        assert failed[0].step == "pack_nft"
        assert failed[0].payload["error"] == "ConfirmationTimeoutError"
        assert failed[0].payload["last_completed_step"] == "swap"

    def test_failed_summary(self, plan, ledger: InMemoryLedger, clock: FakeClock) -> None:
        ledger.refuse("PaymentSplitter", reason="out of gas")
        summary = _run(plan, ledger, clock).summary()
        assert summary["success"] is False
        assert summary["failed_step"] == "payment_splitter"
        assert summary["error"] == "TransactionRejectedError"
        assert summary["last_completed_step"] is None


class TestLedgerFailures:
    def test_missing_artifact_fails_before_any_transaction(
        self, plan, ledger: InMemoryLedger, clock: FakeClock,
    ) -> None:
        ledger.withhold("PackNFT")
        result = _run(plan, ledger, clock)
        assert not result.success
        assert isinstance(result.error, ProvisioningError)
        assert result.failed_step == "pack_nft"
        assert result.last_completed_step is None
        assert ledger.submitted == []

    @pytest.mark.parametrize("error", [
        ConnectionError("connection reset"),
        LedgerConnectionError("connection reset"),
    ])
    def test_read_only_call_transport_failure(self, plan, clock: FakeClock, error) -> None:
        ledger = UnreachableCallLedger(error)
        journal = DeploymentJournal("run-3")
        profile = make_profile()
        result = DeploymentPipeline(
            profile, ledger,
            waiter=ConfirmationWaiter(profile, clock=clock, sleep=clock.sleep),
            journal=journal,
        ).run(plan)
        assert not result.success
        assert isinstance(result.error, LedgerConnectionError)
        assert result.failed_step == "grant_minter_role"
        assert result.last_completed_step == "pack_nft"
        failed = journal.entries(JournalKind.RUN_FAILED)
        assert [e.step for e in failed] == ["grant_minter_role"]
