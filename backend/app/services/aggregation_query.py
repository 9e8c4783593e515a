"""
Grouped aggregation over the upstream bet events.

One output row per (bettor, channel, calendar day) with count/min/max/turnover
and the signed win/lose amount from the house's point of view.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Iterator

from sqlalchemy import case, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.sql import Select

from app.models.source import source_bets, source_channels, source_users
from app.services.sync_errors import ConnectivityError

logger = logging.getLogger(__name__)

HOUSE_WINS = 0
HOUSE_LOSES = 1


@dataclass(frozen=True)
class SyncRange:
    """Half-open window ``[start, end)`` on the event ``created_at``."""

    start: datetime
    end: datetime
    channel: str | None = None

    @classmethod
    def for_dates(cls, start_date: date, end_date: date | None = None, channel: str | None = None) -> 'SyncRange':
        last_day = end_date or start_date
        if last_day < start_date:
            raise ValueError('end_date must be on or after start_date')
        return cls(
            start=datetime.combine(start_date, time.min),
            end=datetime.combine(last_day + timedelta(days=1), time.min),
            channel=(channel or None),
        )

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def end_date(self) -> date:
        return (self.end - timedelta(microseconds=1)).date()

    def describe(self) -> str:
        return f'{self.start.isoformat()} -> {self.end.isoformat()} channel={self.channel or "*"}'


@dataclass(frozen=True)
class AggregatedBetRow:
    created_by: Any
    fullusername: Any
    channel_id: Any
    channel_name: Any
    bet_date: Any
    total_bets: Any
    min_bet: Any
    max_bet: Any
    turnover: Any
    total_win_lose_amount: Any

    @classmethod
    def from_mapping(cls, row) -> 'AggregatedBetRow':
        return cls(
            created_by=row['created_by'],
            fullusername=row['fullusername'],
            channel_id=row['channel_id'],
            channel_name=row['channel_name'],
            bet_date=row['bet_date'],
            total_bets=row['total_bets'],
            min_bet=row['min_bet'],
            max_bet=row['max_bet'],
            turnover=row['turnover'],
            total_win_lose_amount=row['total_win_lose_amount'],
        )


def win_lose_contribution():
    b = source_bets.c
    return case(
        (b.win_lose == HOUSE_WINS, b.bet_amount),
        (b.win_lose == HOUSE_LOSES, -(b.bet_amount * b.payout)),
        else_=0,
    )


def _bet_day():
    return func.date(source_bets.c.created_at)


def _joined_events():
    b, u, c = source_bets, source_users, source_channels
    return b.join(u, u.c.id == b.c.created_by).join(c, c.c.id == b.c.channel_id)


def _apply_range(stmt: Select, sync_range: SyncRange) -> Select:
    stmt = stmt.where(
        source_bets.c.created_at >= sync_range.start,
        source_bets.c.created_at < sync_range.end,
    )
    if sync_range.channel:
        stmt = stmt.where(source_channels.c.channel_name == sync_range.channel)
    return stmt


def build_aggregation_query(sync_range: SyncRange, *, ordered: bool = True) -> Select:
    b, u, c = source_bets.c, source_users.c, source_channels.c
    stmt = select(
        func.count(b.id).label('total_bets'),
        func.min(b.bet_amount).label('min_bet'),
        func.max(b.bet_amount).label('max_bet'),
        func.sum(b.bet_amount).label('turnover'),
        func.sum(win_lose_contribution()).label('total_win_lose_amount'),
        c.id.label('channel_id'),
        c.channel_name.label('channel_name'),
        b.created_by.label('created_by'),
        u.fullusername.label('fullusername'),
        _bet_day().label('bet_date'),
    ).select_from(_joined_events())
    stmt = _apply_range(stmt, sync_range)
    stmt = stmt.group_by(b.created_by, u.fullusername, c.id, c.channel_name, _bet_day())
    if ordered:
        # Stable order is what keeps LIMIT/OFFSET pages from skipping or repeating groups.
        stmt = stmt.order_by(b.created_by, c.id, _bet_day())
    return stmt


def build_group_count_query(sync_range: SyncRange, cap: int = 0) -> Select:
    grouped = build_aggregation_query(sync_range, ordered=False)
    if cap > 0:
        grouped = grouped.limit(cap)
    return select(func.count()).select_from(grouped.subquery('grouped'))


def build_event_count_query(sync_range: SyncRange) -> Select:
    stmt = select(func.count(source_bets.c.id)).select_from(_joined_events())
    return _apply_range(stmt, sync_range)


class AggregationQueryBuilder:
    def __init__(self, source_engine: Engine):
        self._engine = source_engine

    def iter_chunks(self, sync_range: SyncRange, chunk_size: int) -> Iterator[list[AggregatedBetRow]]:
        """Yield pages of grouped rows, one source round-trip per page."""
        size = max(1, int(chunk_size))
        base = build_aggregation_query(sync_range)
        offset = 0
        try:
            with self._engine.connect() as conn:
                while True:
                    rows = conn.execute(base.limit(size).offset(offset)).mappings().all()
                    if not rows:
                        break
                    yield [AggregatedBetRow.from_mapping(r) for r in rows]
                    if len(rows) < size:
                        break
                    offset += size
        except (OperationalError, InterfaceError) as exc:
            raise ConnectivityError(f'source database unreachable: {exc.orig or exc}') from exc

    def count_groups(self, sync_range: SyncRange, cap: int = 0) -> int:
        return self._scalar(build_group_count_query(sync_range, cap=cap))

    def count_events(self, sync_range: SyncRange) -> int:
        return self._scalar(build_event_count_query(sync_range))

    def _scalar(self, stmt: Select) -> int:
        try:
            with self._engine.connect() as conn:
                return int(conn.execute(stmt).scalar() or 0)
        except (OperationalError, InterfaceError) as exc:
            raise ConnectivityError(f'source database unreachable: {exc.orig or exc}') from exc
