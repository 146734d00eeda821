# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/test_reconcile.py

import threading
import time

import pytest
from loguru import logger
from unittest.mock import MagicMock

from sharemigrate.config.manager import ReconcileConfig
from sharemigrate.core.reconcile import ReconciliationEngine
from sharemigrate.models import FileMetadata, LookupResult, RecordStatus, ShareRecord, UpdatePlan
from sharemigrate.store.shares import ShareStore
from sharemigrate.system.exceptions import BackendError
from tests.fixtures.share_factory import fetch_row, insert_share

ALICE_DIR = "/eos/scratch/user/alice"
DOC = FileMetadata(inode=42, path=f"{ALICE_DIR}/doc.txt", owner_uid="alice", owner_gid="alice", size=10)
DOC_VERSIONS = FileMetadata(inode=99, path=f"{ALICE_DIR}/.sys.v#.doc.txt", owner_uid="alice", owner_gid="alice")


def _share(share_id=1, file_source=42):
    return ShareRecord(id=share_id, share_type=3, item_source=str(file_source),
                       item_target=f"/{file_source}", file_source=file_source, file_target="/doc.txt")


@pytest.fixture
def engine(fake_backend, share_store, reconcile_config):
    return ReconciliationEngine(fake_backend, share_store, reconcile_config)


class TestEndToEnd:

    def test_creates_version_folder_and_updates_share(self, fake_backend, share_engine, engine):
        """File 42 needs a version folder that shows up on the second re-lookup."""
        insert_share(share_engine, 1, 42)
        fake_backend.add_file(DOC)
        fake_backend.creatable[DOC.path] = DOC_VERSIONS
        fake_backend.replication_lag = 1

        outcome = engine.reconcile(_share(1, 42))

        assert outcome.status is RecordStatus.UPDATED
        assert outcome.classification == "NEEDS_VERSION_FOLDER"
        assert outcome.plan == UpdatePlan(item_source="99", item_target="/99",
                                          file_source=99, file_target="/.sys.v#.doc.txt")
        assert fake_backend.created == [("alice", "alice", DOC.path)]
        # initial lookup + two re-lookups
        assert fake_backend.path_lookups == [DOC_VERSIONS.path] * 3

        row = fetch_row(share_engine, 1)
        assert (row["item_source"], row["item_target"], row["file_source"], row["file_target"]) == \
            ("99", "/99", 99, "/.sys.v#.doc.txt")

    def test_existing_version_folder_is_reused(self, fake_backend, share_engine, engine):
        insert_share(share_engine, 1, 42)
        fake_backend.add_file(DOC)
        fake_backend.add_file(DOC_VERSIONS)

        outcome = engine.reconcile(_share(1, 42))

        assert outcome.status is RecordStatus.UPDATED
        assert fake_backend.created == []
        assert fetch_row(share_engine, 1)["file_source"] == 99

    def test_share_pointing_into_version_folder_moves_to_the_folder(self, fake_backend, share_engine, engine):
        old_version = FileMetadata(inode=77, path=f"{DOC_VERSIONS.path}/1497357453.0000a7f1",
                                   owner_uid="alice", owner_gid="alice")
        insert_share(share_engine, 1, 77)
        fake_backend.add_file(old_version)
        fake_backend.add_file(DOC_VERSIONS)

        outcome = engine.reconcile(_share(1, 77))

        assert outcome.status is RecordStatus.UPDATED
        assert outcome.classification == "POINTS_INTO_EXISTING_VERSION_FOLDER"
        assert fake_backend.path_lookups == [DOC_VERSIONS.path]
        assert fetch_row(share_engine, 1)["file_target"] == "/.sys.v#.doc.txt"


class TestSkips:

    def test_already_version_pointer_is_idempotent(self, fake_backend, share_engine, engine):
        insert_share(share_engine, 1, 99)
        fake_backend.add_file(DOC_VERSIONS)
        before = fetch_row(share_engine, 1)

        first = engine.reconcile(_share(1, 99))
        second = engine.reconcile(_share(1, 99))

        assert first.status is RecordStatus.SKIPPED
        assert second.status is RecordStatus.SKIPPED
        assert first.classification == "ALREADY_VERSION_POINTER"
        assert fetch_row(share_engine, 1) == before
        assert fake_backend.path_lookups == []

    def test_outside_home_tree(self, fake_backend, engine):
        fake_backend.add_file(FileMetadata(inode=5, path="/eos/project/x/doc.txt", owner_uid="1", owner_gid="1"))

        outcome = engine.reconcile(_share(1, 5))

        assert outcome.status is RecordStatus.SKIPPED
        assert outcome.reason == "file not under home directory"
        assert fake_backend.created == []

    def test_unknown_inode_is_skipped(self, fake_backend, engine):
        outcome = engine.reconcile(_share(1, 4242))

        assert outcome.status is RecordStatus.SKIPPED
        assert outcome.reason == "inode 4242 not found on backend"
        assert fake_backend.created == []

    def test_null_file_source(self, engine):
        outcome = engine.reconcile(ShareRecord(id=1, share_type=3))

        assert outcome.status is RecordStatus.SKIPPED
        assert outcome.reason == "no file_source"


class TestFailures:

    def test_retry_bound(self, fake_backend, share_engine, engine):
        """Creation succeeds but the folder never becomes visible: 5 re-lookups, then Failed."""
        insert_share(share_engine, 1, 42)
        fake_backend.add_file(DOC)

        outcome = engine.reconcile(_share(1, 42))

        assert outcome.status is RecordStatus.FAILED
        assert "still missing after 5 lookups" in outcome.reason
        assert len(fake_backend.path_lookups) == 1 + 5
        assert fetch_row(share_engine, 1)["file_source"] == 42

    def test_retry_count_is_configurable(self, fake_backend, share_store):
        fake_backend.add_file(DOC)
        config = ReconcileConfig(version_retries=2, retry_delay=0.0)

        outcome = ReconciliationEngine(fake_backend, share_store, config).reconcile(_share(1, 42))

        assert outcome.status is RecordStatus.FAILED
        assert len(fake_backend.path_lookups) == 1 + 2

    def test_timeout_while_waiting_is_not_retried(self, reconcile_config, share_store):
        """Only a not-yet-visible folder is looked up again; a backend failure ends the wait."""
        backend = MagicMock()
        backend.lookup_by_inode.return_value = LookupResult.found(DOC)
        backend.lookup_by_path.side_effect = [
            LookupResult.not_found(),
            BackendError("file info timed out", retry_possible=True),
        ]

        outcome = ReconciliationEngine(backend, share_store, reconcile_config).reconcile(_share(1, 42))

        assert outcome.status is RecordStatus.FAILED
        assert "timed out" in outcome.reason
        assert backend.lookup_by_path.call_count == 2
        backend.create_version_folder.assert_called_once_with("alice", "alice", DOC.path)

    def test_backend_error_on_lookup(self, fake_backend, engine):
        fake_backend.fail_inodes.add(42)

        outcome = engine.reconcile(_share(1, 42))

        assert outcome.status is RecordStatus.FAILED
        assert "error: io" in outcome.reason

    def test_backend_error_on_creation(self, fake_backend, engine):
        fake_backend.add_file(DOC)
        fake_backend.fail_create.add(DOC.path)

        outcome = engine.reconcile(_share(1, 42))

        assert outcome.status is RecordStatus.FAILED
        assert "permission denied" in outcome.reason
        assert fake_backend.path_lookups == [DOC_VERSIONS.path]

    def test_missing_parent_version_folder(self, fake_backend, engine):
        fake_backend.add_file(FileMetadata(inode=77, path=f"{DOC_VERSIONS.path}/1497357453.0000a7f1",
                                           owner_uid="alice", owner_gid="alice"))

        outcome = engine.reconcile(_share(1, 77))

        assert outcome.status is RecordStatus.FAILED
        assert "not found" in outcome.reason

    def test_vanished_share_fails_record(self, fake_backend, engine):
        fake_backend.add_file(DOC)
        fake_backend.add_file(DOC_VERSIONS)

        outcome = engine.reconcile(_share(404, 42))

        assert outcome.status is RecordStatus.FAILED
        assert "matched 0 rows" in outcome.reason

    def test_lookup_returning_a_plain_file_is_refused(self, fake_backend, engine):
        fake_backend.add_file(DOC)
        fake_backend.by_path[DOC_VERSIONS.path] = DOC  # backend answers with the file itself

        outcome = engine.reconcile(_share(1, 42))

        assert outcome.status is RecordStatus.FAILED
        assert "is not a version folder" in outcome.reason

    def test_unexpected_error_does_not_escape(self, fake_backend, reconcile_config):
        store = MagicMock(spec=ShareStore)
        store.apply_update.side_effect = RuntimeError("driver bug")
        fake_backend.add_file(DOC)
        fake_backend.add_file(DOC_VERSIONS)

        outcome = ReconciliationEngine(fake_backend, store, reconcile_config).reconcile(_share(1, 42))

        assert outcome.status is RecordStatus.FAILED
        assert "RuntimeError" in outcome.reason


class TestBatch:

    def test_failures_do_not_abort_siblings(self, fake_backend, share_engine, engine):
        fake_backend.add_file(DOC)
        fake_backend.add_file(DOC_VERSIONS)
        fake_backend.fail_inodes.add(4242)
        for share_id, inode in [(1, 42), (2, 4242), (3, 99), (4, 42)]:
            insert_share(share_engine, share_id, inode)

        summary = engine.run(engine.store.fetch_shares())

        assert summary.updated == 2
        assert summary.failed == 1
        assert summary.skipped == 1
        assert summary.failed_ids == [2]
        assert summary.total == 4
        assert not summary.succeeded

    def test_dry_run_summary(self, fake_backend, share_engine, reconcile_config):
        insert_share(share_engine, 1, 42)
        fake_backend.add_file(DOC)
        fake_backend.add_file(DOC_VERSIONS)
        config = reconcile_config.model_copy(update={"dry_run": True})
        store = ShareStore(share_engine, dry_run=True)

        summary = ReconciliationEngine(fake_backend, store, config).run(store.fetch_shares())

        assert summary.dry_run is True
        assert summary.updated == 1
        assert summary.succeeded
        assert fetch_row(share_engine, 1)["file_source"] == 42

    def test_concurrency_is_bounded(self, share_store):
        config = ReconcileConfig(concurrency=3, retry_delay=0.0)
        lock = threading.Lock()
        state = {"active": 0, "peak": 0}

        backend = MagicMock()

        def slow_lookup(inode):
            with lock:
                state["active"] += 1
                state["peak"] = max(state["peak"], state["active"])
            time.sleep(0.02)
            with lock:
                state["active"] -= 1
            return LookupResult.not_found()

        backend.lookup_by_inode.side_effect = slow_lookup
        shares = [_share(i, 1000 + i) for i in range(12)]

        summary = ReconciliationEngine(backend, share_store, config).run(shares)

        assert summary.failed == 12
        assert 1 < state["peak"] <= 3

    def test_progress_callback_sees_every_record(self, fake_backend, engine):
        seen = []

        engine.run([_share(i, 5000 + i) for i in range(5)], progress_callback=seen.append)

        assert sorted(o.share_id for o in seen) == [0, 1, 2, 3, 4]


class TestRecordLog:
    """Every record ends in exactly one RECORD summary line."""

    @pytest.fixture
    def record_lines(self):
        lines = []
        sink_id = logger.add(lambda message: lines.append(message.record), level="INFO")
        yield lines
        logger.remove(sink_id)

    @staticmethod
    def _by_id(lines):
        summary = {}
        for record in lines:
            if record["message"].startswith("RECORD: "):
                share_id = int(record["message"].split()[1])
                summary.setdefault(share_id, []).append((record["level"].name, record["message"]))
        return summary

    def test_mixed_batch(self, fake_backend, share_engine, engine, record_lines):
        fake_backend.add_file(DOC)
        fake_backend.add_file(DOC_VERSIONS)
        fake_backend.fail_inodes.add(4242)
        for share_id, inode in [(1, 42), (2, 4242), (3, 99), (4, 555)]:
            insert_share(share_engine, share_id, inode)

        engine.run(engine.store.fetch_shares())

        lines = self._by_id(record_lines)
        assert sorted(lines) == [1, 2, 3, 4]
        assert all(len(entries) == 1 for entries in lines.values())
        assert lines[1] == [("INFO", "RECORD: 1 UPDATED: item_source=99 item_target=/99 "
                                     "file_source=99 file_target=/.sys.v#.doc.txt")]
        assert lines[2][0][0] == "ERROR"
        assert lines[2][0][1].startswith("RECORD: 2 FAILED: file info inode:4242 failed")
        assert lines[3] == [("INFO", "RECORD: 3 SKIPPED: already points to the version folder")]
        assert lines[4] == [("INFO", "RECORD: 4 SKIPPED: inode 555 not found on backend")]

    def test_dry_run_line(self, fake_backend, share_engine, reconcile_config, record_lines):
        insert_share(share_engine, 1, 42)
        fake_backend.add_file(DOC)
        fake_backend.add_file(DOC_VERSIONS)
        config = reconcile_config.model_copy(update={"dry_run": True})
        store = ShareStore(share_engine, dry_run=True)

        ReconciliationEngine(fake_backend, store, config).run(store.fetch_shares())

        assert self._by_id(record_lines) == {
            1: [("INFO", "RECORD: 1 DRY-RUN: item_source=99 item_target=/99 "
                         "file_source=99 file_target=/.sys.v#.doc.txt")]
        }
