# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/core/reconcile.py

"""
Reconciliation of public link shares with their version folders.

Per share record:

    Start -> Resolved -> Classified -> Skipped
                                    -> VersionFolderResolved -> Updated | Failed

An inode the backend does not know is Skipped. Any error moves only that
record to Failed; sibling records keep going.
Records are processed by a fixed-size thread pool, which bounds the
number of `eos` processes running at once.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, Optional

from loguru import logger

from sharemigrate.config.manager import ReconcileConfig
from sharemigrate.core.classifier import (
    PathClassification, classify, parent_folder_path, version_folder_path
)
from sharemigrate.core.retry import RetryableOperation, RetryConfig
from sharemigrate.models import (
    FileMetadata, MigrationSummary, RecordOutcome, RecordStatus, ShareRecord, UpdatePlan
)
from sharemigrate.storage.protocols import StorageBackend
from sharemigrate.store.shares import ShareStore
from sharemigrate.system.exceptions import BackendError, NotYetVisibleError, ShareMigrateError

SKIP_CLASSIFICATIONS = (
    PathClassification.ALREADY_VERSION_POINTER,
    PathClassification.OUTSIDE_MANAGED_TREE,
)


class ReconciliationEngine:
    """Resolve, classify and update share records."""

    def __init__(self, backend: StorageBackend, store: ShareStore, config: ReconcileConfig) -> None:
        self.backend = backend
        self.store = store
        self.config = config
        self.retry_config = RetryConfig(
            max_attempts=config.version_retries,
            base_delay=config.retry_delay,
            max_delay=config.retry_max_delay,
        )

    # ---- batch ----

    def run(self, shares: Iterable[ShareRecord],
            progress_callback: Optional[Callable[[RecordOutcome], None]] = None) -> MigrationSummary:
        """Reconcile every share and wait for all of them to finish."""
        summary = MigrationSummary(dry_run=self.config.dry_run)
        with ThreadPoolExecutor(max_workers=self.config.concurrency,
                                thread_name_prefix="reconcile") as executor:
            futures = [executor.submit(self.reconcile, share) for share in shares]
            for future in as_completed(futures):
                outcome = future.result()
                summary.record(outcome)
                if progress_callback:
                    progress_callback(outcome)
        return summary

    # ---- single record ----

    def reconcile(self, share: ShareRecord) -> RecordOutcome:
        """Run one record to a final state. Never raises for per-record errors."""
        try:
            outcome = self._reconcile(share)
        except ShareMigrateError as e:
            outcome = RecordOutcome(share.id, RecordStatus.FAILED, reason=str(e))
        except Exception as e:
            logger.opt(exception=e).debug(f"RECORD: {share.id} unexpected error")
            outcome = RecordOutcome(share.id, RecordStatus.FAILED,
                                    reason=f"unexpected {type(e).__name__}: {e}")
        self._report(outcome)
        return outcome

    def _reconcile(self, share: ShareRecord) -> RecordOutcome:
        if share.file_source is None:
            return RecordOutcome(share.id, RecordStatus.SKIPPED, reason="no file_source")

        lookup = self.backend.lookup_by_inode(share.file_source)
        if not lookup.is_found:
            return RecordOutcome(share.id, RecordStatus.SKIPPED,
                                 reason=f"inode {share.file_source} not found on backend")
        meta = lookup.metadata
        logger.debug(
            f"RECORD: {share.id} info:file share_type:{share.share_type} item_source:{share.item_source} "
            f"item_target:{share.item_target} file_source:{share.file_source} file_target:{share.file_target} "
            f"eospath:{meta.path!r} uid:{meta.owner_uid} gid:{meta.owner_gid}"
        )

        classification = classify(meta.path, self.config.home_prefix)
        if classification in SKIP_CLASSIFICATIONS:
            return RecordOutcome(share.id, RecordStatus.SKIPPED,
                                 reason=classification.value, classification=classification.name)

        if classification is PathClassification.POINTS_INTO_EXISTING_VERSION_FOLDER:
            folder = self._existing_folder(parent_folder_path(meta.path))
        else:
            folder = self._version_folder(meta)
        logger.debug(f"RECORD: {share.id} info:versionfolder id:{folder.inode} path:{folder.path!r}")

        plan = UpdatePlan.from_version_folder(folder)
        self.store.apply_update(share.id, plan)
        return RecordOutcome(share.id, RecordStatus.UPDATED, plan=plan,
                             classification=classification.name)

    def _existing_folder(self, path: str) -> FileMetadata:
        lookup = self.backend.lookup_by_path(path)
        if not lookup.is_found:
            raise BackendError(f"version folder {path} not found")
        return lookup.metadata

    def _version_folder(self, meta: FileMetadata) -> FileMetadata:
        """Find the sibling version folder of a file, creating it if needed."""
        candidate = version_folder_path(meta.path)
        lookup = self.backend.lookup_by_path(candidate)
        if lookup.is_found:
            return lookup.metadata

        self.backend.create_version_folder(meta.owner_uid, meta.owner_gid, meta.path)
        return self._wait_for_folder(candidate)

    def _wait_for_folder(self, path: str) -> FileMetadata:
        """Look up a freshly created folder until the lookup endpoint sees it."""
        def attempt() -> FileMetadata:
            lookup = self.backend.lookup_by_path(path)
            if not lookup.is_found:
                raise NotYetVisibleError(f"{path} not visible yet")
            return lookup.metadata

        try:
            with RetryableOperation(f"lookup of {path}", self.retry_config) as operation:
                return operation.execute(attempt)
        except NotYetVisibleError as e:
            raise BackendError(
                f"version folder {path} still missing after {self.retry_config.max_attempts} lookups"
            ) from e

    def _report(self, outcome: RecordOutcome) -> None:
        if outcome.status is RecordStatus.SKIPPED:
            logger.info(f"RECORD: {outcome.share_id} SKIPPED: {outcome.reason}")
        elif outcome.status is RecordStatus.UPDATED:
            verb = "DRY-RUN" if self.config.dry_run else "UPDATED"
            logger.info(f"RECORD: {outcome.share_id} {verb}: {outcome.plan}")
        else:
            logger.error(f"RECORD: {outcome.share_id} FAILED: {outcome.reason}")
