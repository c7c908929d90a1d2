"""
Unit of work for multi-row writes.

The database only guarantees single-row atomicity. A UnitOfWork records an
undo action for every write it performs; if the block fails, the undo
actions run in reverse order and a BatchWriteError reports what was
committed, what failed and whether the rollback went through.

    with UnitOfWork(client, "apply draft") as uow:
        uow.insert(TABLES["shopping_items"], row, label=item.id)
"""

import logging
from typing import Callable, Optional

from supabase import Client

from kondate.errors import BatchWriteError
from kondate.services.supabase import first_row

logger = logging.getLogger(__name__)


class UnitOfWork:
    """Compensating batch of writes."""

    def __init__(self, client: Client, label: str):
        self.client = client
        self.label = label
        self.committed: list[str] = []
        self.current: Optional[str] = None
        self._undo: list[tuple[str, Callable[[], object]]] = []

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is None:
            logger.info(f"{self.label}: committed {len(self.committed)} writes")
            return False

        failed = [self.current] if self.current else []
        logger.error(f"{self.label}: failed at {failed or 'unknown'} after {len(self.committed)} writes: {exc}")
        rolled_back = self.rollback()
        raise BatchWriteError(
            f"{self.label} failed: {exc}",
            committed=list(self.committed),
            failed=failed,
            rolled_back=rolled_back,
        ) from exc

    def insert(self, table: str, row: dict, label: Optional[str] = None) -> dict:
        """Insert one row; undo deletes it."""
        self.current = label or table
        result = self.client.table(table).insert(row).execute()
        created = first_row(result)
        if not created or not created.get("id"):
            raise RuntimeError(f"insert into {table} returned no row")

        row_id = created["id"]
        self._record(row_id, lambda: self.client.table(table).delete().eq("id", row_id).execute())
        self.current = None
        return created

    def insert_many(self, table: str, rows: list[dict], label: Optional[str] = None) -> list[dict]:
        """Insert rows in one request; undo deletes all of them."""
        if not rows:
            return []
        self.current = label or table
        result = self.client.table(table).insert(rows).execute()
        created = result.data or []
        if len(created) != len(rows):
            raise RuntimeError(f"insert into {table} returned {len(created)} of {len(rows)} rows")

        ids = [r["id"] for r in created]
        for row_id in ids:
            self._record(row_id, lambda row_id=row_id: self.client.table(table).delete().eq("id", row_id).execute())
        self.current = None
        return created

    def update(
        self,
        table: str,
        row_id: str,
        patch: dict,
        previous: dict,
        label: Optional[str] = None,
    ) -> dict:
        """Update one row; undo writes `previous` back."""
        self.current = label or row_id
        result = self.client.table(table).update(patch).eq("id", row_id).execute()
        updated = first_row(result)
        if not updated:
            raise RuntimeError(f"update of {table}/{row_id} matched no row")

        self._record(row_id, lambda: self.client.table(table).update(previous).eq("id", row_id).execute())
        self.current = None
        return updated

    def add_compensation(self, label: str, undo: Callable[[], object]) -> None:
        """
        Register an undo for a write performed outside this unit.

        It runs on rollback but is not reported in `committed`.
        """
        self._undo.append((label, undo))

    def _record(self, row_id: str, undo: Callable[[], object]) -> None:
        self.committed.append(row_id)
        self._undo.append((row_id, undo))

    def rollback(self) -> bool:
        """Run undo actions newest first. True when all of them succeeded."""
        ok = True
        for row_id, undo in reversed(self._undo):
            try:
                undo()
            except Exception as e:
                ok = False
                logger.error(f"{self.label}: rollback of {row_id} failed: {e}")
        self._undo.clear()
        return ok
