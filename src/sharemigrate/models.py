# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/models.py

"""Records passed between the backend client, the engine and the share store."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from sharemigrate.system.exceptions import PlanError

VERSIONS_PREFIX = ".sys.v#."


@dataclass(frozen=True)
class FileMetadata:
    """Backend state for one inode or path. Never cached."""
    inode: int
    path: str
    owner_uid: str
    owner_gid: str
    size: Optional[int] = None

    @property
    def basename(self) -> str:
        return posixpath.basename(posixpath.normpath(self.path))


class LookupStatus(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class LookupResult:
    """Tagged result of a backend lookup; absence is not an error."""
    status: LookupStatus
    metadata: Optional[FileMetadata] = None

    @classmethod
    def found(cls, metadata: FileMetadata) -> LookupResult:
        return cls(LookupStatus.FOUND, metadata)

    @classmethod
    def not_found(cls) -> LookupResult:
        return cls(LookupStatus.NOT_FOUND)

    @property
    def is_found(self) -> bool:
        return self.status is LookupStatus.FOUND


@dataclass(frozen=True)
class ShareRecord:
    """One public link share row."""
    id: int
    share_type: int
    item_source: Optional[str] = None
    item_target: Optional[str] = None
    file_source: Optional[int] = None
    file_target: Optional[str] = None


@dataclass(frozen=True)
class UpdatePlan:
    """New share columns pointing at a version folder."""
    item_source: str
    item_target: str
    file_source: int
    file_target: str

    @classmethod
    def from_version_folder(cls, meta: FileMetadata) -> UpdatePlan:
        name = meta.basename
        if not name.startswith(VERSIONS_PREFIX):
            raise PlanError(f"{meta.path} is not a version folder")
        try:
            name.encode("utf-8")
        except UnicodeEncodeError as e:
            raise PlanError(f"version folder name {name!r} is not valid UTF-8") from e
        return cls(
            item_source=str(meta.inode),
            item_target=f"/{meta.inode}",
            file_source=meta.inode,
            file_target=f"/{name}",
        )

    def as_params(self, share_id: int) -> dict:
        return {
            "item_source": self.item_source,
            "item_target": self.item_target,
            "file_source": self.file_source,
            "file_target": self.file_target,
            "id": share_id,
        }

    def __str__(self) -> str:
        return (f"item_source={self.item_source} item_target={self.item_target} "
                f"file_source={self.file_source} file_target={self.file_target}")


class RecordStatus(Enum):
    SKIPPED = "skipped"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass
class RecordOutcome:
    """Final state of one share record after reconciliation."""
    share_id: int
    status: RecordStatus
    reason: str = ""
    plan: Optional[UpdatePlan] = None
    classification: Optional[str] = None


@dataclass
class MigrationSummary:
    """Totals for a whole batch."""
    dry_run: bool = False
    skipped: int = 0
    updated: int = 0
    failed: int = 0
    failed_ids: list[int] = field(default_factory=list)

    def record(self, outcome: RecordOutcome) -> None:
        if outcome.status is RecordStatus.SKIPPED:
            self.skipped += 1
        elif outcome.status is RecordStatus.UPDATED:
            self.updated += 1
        else:
            self.failed += 1
            self.failed_ids.append(outcome.share_id)

    @property
    def total(self) -> int:
        return self.skipped + self.updated + self.failed

    @property
    def succeeded(self) -> bool:
        return self.failed == 0
