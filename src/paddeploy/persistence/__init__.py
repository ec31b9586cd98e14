"""Run journal persistence."""

from paddeploy.persistence.journal import DeploymentJournal, JournalEntry, JournalKind

__all__ = ["DeploymentJournal", "JournalEntry", "JournalKind"]
