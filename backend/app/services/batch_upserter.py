from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Sequence

from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import DBAPIError, InterfaceError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import SessionLocal
from app.models.bets import Bet
from app.services.record_transformer import AGGREGATE_FIELDS, BetRecord
from app.services.sync_errors import BatchCommitError, ConnectivityError

logger = logging.getLogger(__name__)


def dedupe_by_natural_key(records: Sequence[BetRecord]) -> list[dict]:
    """Collapse records sharing (account, channel, trandate); the last one wins."""
    by_key: dict[tuple, dict] = {}
    for record in records:
        by_key[record.natural_key] = record.as_row()
    return list(by_key.values())


def build_upsert_statement(dialect_name: str, values: list[dict]):
    table = Bet.__table__
    if dialect_name == 'mysql':
        insert_stmt = mysql_insert(table).values(values)
        inserted = insert_stmt.inserted
        update_map = {name: inserted[name] for name in AGGREGATE_FIELDS}
        update_map['updated_at'] = inserted.updated_at
        return insert_stmt.on_duplicate_key_update(update_map)

    if dialect_name == 'postgresql':
        insert_stmt = pg_insert(table).values(values)
    else:
        insert_stmt = sqlite_insert(table).values(values)
    excluded = insert_stmt.excluded
    set_map = {name: excluded[name] for name in AGGREGATE_FIELDS}
    set_map['updated_at'] = excluded.updated_at
    return insert_stmt.on_conflict_do_update(
        index_elements=[table.c.account, table.c.channel, table.c.trandate],
        set_=set_map,
    )


class BatchUpserter:
    """Writes rollup records in all-or-nothing batches keyed on the natural key."""

    def __init__(self, session_factory=SessionLocal, batch_size: int | None = None):
        self._session_factory = session_factory
        self.batch_size = max(1, int(batch_size or settings.bet_sync_batch_size or 500))
        self.batches_committed = 0
        self.rows_written = 0
        self.duplicates_collapsed = 0

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except BaseException:
            db.rollback()
            raise
        finally:
            db.close()

    def upsert(self, records: Sequence[BetRecord]) -> int:
        if not records:
            return 0
        values = dedupe_by_natural_key(records)
        duplicates = len(records) - len(values)
        try:
            with self.transaction() as db:
                db.execute(build_upsert_statement(db.get_bind().dialect.name, values))
        except DBAPIError as exc:
            if isinstance(exc, InterfaceError) or exc.connection_invalidated:
                raise ConnectivityError(f'destination database unreachable: {exc.orig or exc}') from exc
            raise BatchCommitError(f'batch of {len(values)} rows rolled back: {exc.orig or exc}', len(values)) from exc
        except SQLAlchemyError as exc:
            raise BatchCommitError(f'batch of {len(values)} rows rolled back: {exc}', len(values)) from exc
        self.batches_committed += 1
        self.rows_written += len(values)
        if duplicates:
            self.duplicates_collapsed += duplicates
            logger.warning('[bet-sync] collapsed %s duplicate natural keys in one batch', duplicates)
        return len(values)
