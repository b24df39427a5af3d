# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3Recon Snapshots - In-process repository of captured object copies.

The repository keeps at most one entry per object name. A later backup
of the same name replaces the earlier entry (last-write-wins, no history).
Entries live for the lifetime of the process and are never deleted.
"""

import hashlib
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List

from s3recon.config import BackupType, SourceSystem


def compute_checksum(content: bytes) -> str:
    """
    Calculate the SHA-256 digest of snapshot content.

    Args:
        content: Raw object bytes

    Returns:
        Hex-encoded digest
    """
    return hashlib.sha256(content).hexdigest()


@dataclass(frozen=True)
class SnapshotEntry:
    """Captured copy of one object at backup time."""

    name: str
    content: bytes
    size: int
    source_last_modified: datetime | None
    backup_timestamp: datetime
    backup_type: BackupType
    source_system: SourceSystem
    content_type: str
    checksum: str

    def describe(self) -> dict:
        """Metadata view without the content, for status listings."""
        return {
            "name": self.name,
            "size": self.size,
            "sourceLastModified": (
                self.source_last_modified.isoformat() if self.source_last_modified else None
            ),
            "backupTimestamp": self.backup_timestamp.isoformat(),
            "backupType": self.backup_type.value,
            "sourceSystem": self.source_system.value,
            "contentType": self.content_type,
            "checksum": self.checksum,
        }


class SnapshotRepository:
    """
    Mapping from object name to its most recent SnapshotEntry.

    One instance is owned by each ReconciliationEngine; nothing here is
    module-global, so tests and parallel engines stay isolated.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, SnapshotEntry] = {}

    def put(self, entry: SnapshotEntry) -> None:
        """Insert or replace the entry for ``entry.name``."""
        self._entries[entry.name] = entry

    def get(self, name: str) -> SnapshotEntry | None:
        return self._entries.get(name)

    def list(self) -> List[SnapshotEntry]:
        # Copy so callers can iterate across suspension points
        return list(self._entries.values())

    def size(self) -> int:
        return len(self._entries)

    def total_bytes(self) -> int:
        return sum(entry.size for entry in self._entries.values())
