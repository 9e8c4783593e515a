from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from app.services.aggregation_query import AggregatedBetRow
from app.services.sync_errors import TransformationError

MASTER_CODE_LENGTH = 4

AGGREGATE_FIELDS = ('master', 'min', 'max', 'count', 'turnover', 'winlose', 'lp')
NATURAL_KEY_FIELDS = ('account', 'channel', 'trandate')


@dataclass(frozen=True)
class BetRecord:
    account: str
    master: str
    channel: str
    trandate: date
    min: float
    max: float
    count: int
    turnover: float
    winlose: float
    lp: float
    created_at: datetime
    updated_at: datetime

    @property
    def natural_key(self) -> tuple[str, str, date]:
        return (self.account, self.channel, self.trandate)

    def as_row(self) -> dict:
        return asdict(self)


def master_code(account: str) -> str:
    return account[:MASTER_CODE_LENGTH]


def loss_percentage(winlose: float, turnover: float) -> float:
    # Fraction, not percent; presentation layers scale and clamp.
    if turnover > 0:
        return winlose / turnover
    return 0.0


def _to_float(value: object, field: str) -> float:
    if value is None:
        return 0.0
    try:
        return float(Decimal(str(value)))
    except (InvalidOperation, ValueError) as exc:
        raise TransformationError(f'invalid numeric value for {field}: {value!r}') from exc


def _to_date(value: object) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or '').strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise TransformationError(f'invalid bet_date: {value!r}') from exc


def transform(row: AggregatedBetRow, now: datetime) -> BetRecord:
    """Map one grouped source row to its rollup record, stamped with ``now``."""
    account = '' if row.fullusername is None else str(row.fullusername)
    if not account.strip():
        raise TransformationError(f'missing account name for bettor {row.created_by!r}')
    channel = '' if row.channel_name is None else str(row.channel_name)
    if not channel.strip():
        raise TransformationError(f'missing channel name for channel id {row.channel_id!r}')
    try:
        count = int(row.total_bets or 0)
    except (TypeError, ValueError) as exc:
        raise TransformationError(f'invalid total_bets: {row.total_bets!r}') from exc
    turnover = _to_float(row.turnover, 'turnover')
    winlose = _to_float(row.total_win_lose_amount, 'winlose')
    return BetRecord(
        account=account,
        master=master_code(account),
        channel=channel,
        trandate=_to_date(row.bet_date),
        min=_to_float(row.min_bet, 'min'),
        max=_to_float(row.max_bet, 'max'),
        count=count,
        turnover=turnover,
        winlose=winlose,
        lp=loss_percentage(winlose, turnover),
        created_at=now,
        updated_at=now,
    )
