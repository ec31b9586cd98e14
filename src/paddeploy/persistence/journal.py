"""Append-only deployment journal — the audit trail of a run.

Every submission, confirmation, skip and failure produces a record that
is appended to the journal. Records are immutable once written and each
carries the SHA-256 of its canonical JSON. The journal can be persisted
to a JSONL file (one JSON object per line) for the operator who resumes
a failed run by hand.

The orchestrator writes the journal and never reads decisions back from
it: the ledger is the only authoritative state.
"""

from __future__ import annotations

import enum
import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


class JournalKind(str, enum.Enum):
    """Classification of run events."""
    RUN_STARTED = "run_started"
    COMPONENT_SUBMITTED = "component_submitted"
    COMPONENT_PROVISIONED = "component_provisioned"
    STEP_SUBMITTED = "step_submitted"
    STEP_CONFIRMED = "step_confirmed"
    STEP_SKIPPED = "step_skipped"
    RUN_FAILED = "run_failed"
    RUN_COMPLETED = "run_completed"


def _canonical_hash(
    entry_id: str,
    kind: str,
    timestamp_utc: str,
    step: str,
    payload: dict[str, Any],
) -> str:
    canonical = json.dumps(
        {
            "entry_id": entry_id,
            "kind": kind,
            "timestamp_utc": timestamp_utc,
            "step": step,
            "payload": payload,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class JournalEntry:
    """A single immutable journal record."""
    entry_id: str
    kind: JournalKind
    timestamp_utc: str
    step: str
    payload: dict[str, Any]
    entry_hash: str

    @staticmethod
    def create(
        entry_id: str,
        kind: JournalKind,
        step: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> JournalEntry:
        ts = timestamp_utc or datetime.now(timezone.utc)
        ts_str = ts.strftime("%Y-%m-%dT%H:%M:%SZ")
        return JournalEntry(
            entry_id=entry_id,
            kind=kind,
            timestamp_utc=ts_str,
            step=step,
            payload=payload,
            entry_hash=_canonical_hash(entry_id, kind.value, ts_str, step, payload),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "kind": self.kind.value,
            "timestamp_utc": self.timestamp_utc,
            "step": self.step,
            "payload": self.payload,
            "entry_hash": self.entry_hash,
        }


class DeploymentJournal:
    """Append-only journal with optional JSONL persistence.

    Entry ids are "<run_id>:<sequence>", so several runs can share one
    file without colliding.
    """

    def __init__(self, run_id: str, storage_path: Optional[Path] = None) -> None:
        self.run_id = run_id
        self._entries: list[JournalEntry] = []
        self._entry_ids: set[str] = set()
        self._storage_path = storage_path
        self._sequence = 0

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    def record(
        self,
        kind: JournalKind,
        step: str,
        payload: Optional[dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> JournalEntry:
        self._sequence += 1
        entry = JournalEntry.create(
            entry_id=f"{self.run_id}:{self._sequence}",
            kind=kind,
            step=step,
            payload=payload or {},
            timestamp_utc=now,
        )
        self.append(entry)
        return entry

    def append(self, entry: JournalEntry) -> None:
        """Append an entry. Raises ValueError on a duplicate entry_id."""
        if entry.entry_id in self._entry_ids:
            raise ValueError(f"Duplicate journal entry: {entry.entry_id}")
        self._entries.append(entry)
        self._entry_ids.add(entry.entry_id)
        if self._storage_path:
            with self._storage_path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(entry.to_dict(), sort_keys=True, ensure_ascii=False) + "\n")

    def entries(
        self,
        kind: Optional[JournalKind] = None,
        run_id: Optional[str] = None,
    ) -> list[JournalEntry]:
        result = list(self._entries)
        if kind is not None:
            result = [e for e in result if e.kind == kind]
        if run_id is not None:
            result = [e for e in result if e.entry_id.startswith(f"{run_id}:")]
        return result

    @property
    def count(self) -> int:
        return len(self._entries)

    @property
    def last_entry(self) -> Optional[JournalEntry]:
        return self._entries[-1] if self._entries else None

    def _load_from_file(self, path: Path) -> None:
        """Load entries with integrity verification.

        Fail-closed: rejects tampered records (hash mismatch) and
        duplicate entry ids.
        """
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                data = json.loads(line)
                entry_id = data["entry_id"]
                if entry_id in self._entry_ids:
                    raise ValueError(
                        f"Duplicate journal entry on load (line {line_num}): {entry_id}"
                    )
                expected = _canonical_hash(
                    entry_id,
                    data["kind"],
                    data["timestamp_utc"],
                    data["step"],
                    data["payload"],
                )
                if data["entry_hash"] != expected:
                    raise ValueError(
                        f"Integrity check failed (line {line_num}): entry {entry_id} "
                        f"stored hash {data['entry_hash']} != computed {expected}"
                    )
                entry = JournalEntry(
                    entry_id=entry_id,
                    kind=JournalKind(data["kind"]),
                    timestamp_utc=data["timestamp_utc"],
                    step=data["step"],
                    payload=data["payload"],
                    entry_hash=data["entry_hash"],
                )
                self._entries.append(entry)
                self._entry_ids.add(entry_id)
                if entry_id.startswith(f"{self.run_id}:"):
                    self._sequence = max(self._sequence, int(entry_id.rsplit(":", 1)[1]))
