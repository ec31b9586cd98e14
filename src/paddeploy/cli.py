"""pad-deploy CLI — provision and configure the PAD Pack contracts.

Usage:
    python -m paddeploy.cli profiles
    python -m paddeploy.cli plan --network testnet
    python -m paddeploy.cli tiers
    python -m paddeploy.cli deploy --network simulated
    python -m paddeploy.cli deploy --network testnet --artifacts build/contracts --journal deploy.jsonl

Secrets (DEPLOYER_PRIVATE_KEY, DEPLOYER_MNEMONIC, ...) are read from
the environment, with a .env file at the project root loaded first.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import uuid
from pathlib import Path

from dotenv import load_dotenv

from paddeploy.chain.client import connect
from paddeploy.deployments.pad_pack import PackSettings, build_plan
from paddeploy.engine.planner import resolve_plan
from paddeploy.engine.tiers import from_smallest_unit
from paddeploy.errors import DeploymentError
from paddeploy.models.profile import load_profiles, select_profile
from paddeploy.persistence.journal import DeploymentJournal
from paddeploy.pipeline import run_pipeline


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG = ROOT / "config"
DEFAULT_ARTIFACTS = ROOT / "build" / "contracts"
DEFAULT_ENV_FILE = ROOT / ".env"


def _settings(config_dir: Path) -> PackSettings:
    return PackSettings.from_file(config_dir / "pad_pack.json")


def cmd_profiles(args: argparse.Namespace) -> int:
    profiles = load_profiles(args.config / "networks.json")
    for name, profile in profiles.items():
        network = profile.network_id if profile.network_id is not None else "*"
        print(
            f"{name:<12} {profile.endpoint:<36} network={network} "
            f"confirmations={profile.confirmations_required} "
            f"signer={profile.signer.kind.value}"
        )
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    plan = resolve_plan(build_plan(_settings(args.config)))
    if args.network is not None:
        profile = select_profile(args.config / "networks.json", args.network)
        preflight = "skipped" if profile.skip_preflight else "estimate_gas"
        print(f"Network: {profile.name} ({profile.endpoint})")
        print(
            f"  confirmations={profile.confirmations_required} "
            f"timeout={profile.timeout_ms}ms preflight={preflight}"
        )
        print()
    print("Components")
    print("----------")
    for index, descriptor in enumerate(plan.descriptors, 1):
        deps = ", ".join(sorted(descriptor.dependencies)) or "-"
        print(f"  {index}. {descriptor.name} ({descriptor.contract})  depends on: {deps}")
    print()
    print("Configuration")
    print("-------------")
    for index, step in enumerate(plan.steps, 1):
        check = "re-entry checked" if step.applied_check else "not re-entry safe"
        print(f"  {index}. {step.name}: {step.target}.{step.operation}  [{check}]")
    return 0


def cmd_tiers(args: argparse.Namespace) -> int:
    settings = _settings(args.config)
    for tier in settings.tier_specs():
        fee = from_smallest_unit(tier.fee_amount, settings.unit_precision)
        print(f"{tier.name:<10} fee={tier.fee_amount} ({fee})  unit_amount={tier.unit_amount}")
    return 0


def cmd_deploy(args: argparse.Namespace) -> int:
    profile = select_profile(args.config / "networks.json", args.network)
    plan = build_plan(_settings(args.config))
    ledger = connect(profile, args.artifacts)

    journal = None
    if args.journal is not None:
        journal = DeploymentJournal(f"run-{uuid.uuid4().hex[:12]}", storage_path=args.journal)

    print(f"Deploying to '{profile.name}' ({profile.endpoint})")
    result = run_pipeline(plan, profile, ledger, journal=journal)
    print(json.dumps(result.summary(), indent=2, default=str))

    if result.success:
        return 0
    print(
        f"Failed at {result.failed_step}: {result.error}. "
        f"Last completed step: {result.last_completed_step or 'none'}",
        file=sys.stderr,
    )
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="paddeploy",
        description="Provision and configure the PAD Pack contracts",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help="Path to config directory (default: config/)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=DEFAULT_ENV_FILE,
        help="Environment file with signer secrets (default: .env)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every transaction")
    sub = parser.add_subparsers(dest="command")

    # profiles
    sub.add_parser("profiles", help="List network profiles")

    # plan
    p_plan = sub.add_parser("plan", help="Show provisioning order and configuration steps")
    p_plan.add_argument("--network", help="Also show how this network profile would run it")

    # tiers
    sub.add_parser("tiers", help="Show computed tier payloads")

    # deploy
    p_deploy = sub.add_parser("deploy", help="Provision and configure all components")
    p_deploy.add_argument("--network", required=True, help="Network profile name")
    p_deploy.add_argument(
        "--artifacts", type=Path, default=DEFAULT_ARTIFACTS,
        help="Compiled contract artifacts directory (default: build/contracts/)",
    )
    p_deploy.add_argument("--journal", type=Path, help="Append run journal to this JSONL file")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv(args.env_file)

    commands = {
        "profiles": cmd_profiles,
        "plan": cmd_plan,
        "tiers": cmd_tiers,
        "deploy": cmd_deploy,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except (DeploymentError, FileNotFoundError) as exc:
        print(f"Failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
