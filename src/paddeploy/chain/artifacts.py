"""Compiled contract artifacts — ABI and bytecode by contract name.

Reads truffle-style build output: one JSON file per contract at
<artifacts_dir>/<ContractName>.json with at least "abi" and "bytecode".
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class ContractArtifact:
    name: str
    abi: list[dict[str, Any]]
    bytecode: str

    def function_names(self) -> set[str]:
        return {
            entry["name"] for entry in self.abi
            if entry.get("type") == "function" and "name" in entry
        }


class ArtifactStore:
    """Loads and caches artifacts from a build directory."""

    def __init__(self, directory: Path) -> None:
        self._directory = directory
        self._cache: dict[str, ContractArtifact] = {}

    def load(self, name: str) -> ContractArtifact:
        if name in self._cache:
            return self._cache[name]
        path = self._directory / f"{name}.json"
        if not path.exists():
            raise FileNotFoundError(f"Contract artifact not found: {path}")
        data = json.loads(path.read_text(encoding="utf-8"))
        if "abi" not in data or "bytecode" not in data:
            raise ValueError(f"Artifact {path} must contain 'abi' and 'bytecode'")
        artifact = ContractArtifact(name=name, abi=data["abi"], bytecode=data["bytecode"])
        self._cache[name] = artifact
        return artifact
