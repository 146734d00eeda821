# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/store/shares.py

"""
Read public link shares and point them at version folders.

Each update runs in its own transaction and must match exactly one row;
there is no transaction spanning several records.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from sharemigrate.config.manager import DatabaseConfig
from sharemigrate.models import ShareRecord, UpdatePlan
from sharemigrate.system.exceptions import ConsistencyError, DatabaseConnectionError, StoreError

PUBLIC_LINK_SHARE_TYPE = 3


class ShareStore:
    """Access to the share table."""

    def __init__(self, engine: Engine, table: str = "oc_share", dry_run: bool = False) -> None:
        self.engine = engine
        self.table = table
        self.dry_run = dry_run

    @classmethod
    def connect(cls, config: DatabaseConfig, dry_run: bool = False,
                pool_size: Optional[int] = None) -> ShareStore:
        """Create the engine and check the database answers.

        Raises:
            DatabaseConnectionError: If the database cannot be reached
        """
        url = config.url_for_engine()
        kwargs = {"pool_pre_ping": True}
        if pool_size and url.get_backend_name() != "sqlite":
            kwargs["pool_size"] = pool_size
        try:
            engine = create_engine(url, **kwargs)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(f"Cannot connect to {config.describe()}: {e}") from e
        logger.debug(f"Connected to {config.describe()}")
        return cls(engine, table=config.table, dry_run=dry_run)

    def fetch_shares(self, owner: Optional[str] = None) -> list[ShareRecord]:
        """Public link shares of files, optionally of one owner, by ascending id."""
        query = (
            f"SELECT id, share_type, item_source, item_target, file_source, file_target "
            f"FROM {self.table} WHERE share_type = :share_type AND item_type = 'file'"
        )
        params = {"share_type": PUBLIC_LINK_SHARE_TYPE}
        if owner:
            query += " AND uid_owner = :owner"
            params["owner"] = owner
        query += " ORDER BY id"

        try:
            with self.engine.connect() as conn:
                rows = conn.execute(text(query), params).mappings().all()
        except SQLAlchemyError as e:
            raise StoreError(f"Cannot read shares from {self.table}: {e}") from e

        return [
            ShareRecord(
                id=row["id"],
                share_type=row["share_type"],
                item_source=row["item_source"],
                item_target=row["item_target"],
                file_source=int(row["file_source"]) if row["file_source"] is not None else None,
                file_target=row["file_target"],
            )
            for row in rows
        ]

    def apply_update(self, share_id: int, plan: UpdatePlan) -> None:
        """Point one share at a version folder.

        Raises:
            ConsistencyError: If the update does not match exactly one row
            StoreError: If the database rejects the update
        """
        if self.dry_run:
            logger.debug(f"RECORD: {share_id} dry run, not writing {plan}")
            return

        statement = text(
            f"UPDATE {self.table} SET item_source = :item_source, item_target = :item_target, "
            f"file_source = :file_source, file_target = :file_target WHERE id = :id"
        )
        try:
            with self.engine.begin() as conn:
                result = conn.execute(statement, plan.as_params(share_id))
                if result.rowcount != 1:
                    # raising inside begin() rolls the update back
                    raise ConsistencyError(
                        f"Update of share {share_id} matched {result.rowcount} rows, expected exactly 1",
                        share_id=share_id, rows_affected=result.rowcount
                    )
        except SQLAlchemyError as e:
            raise StoreError(f"Cannot update share {share_id}: {e}") from e

    def close(self) -> None:
        self.engine.dispose()
