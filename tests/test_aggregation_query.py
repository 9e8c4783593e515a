import unittest
from datetime import date, datetime, timedelta

from sqlalchemy.exc import OperationalError

from sync_fixtures import DAY, event, make_source_engine, seed_alice, seed_many_groups, seed_source

from app.services.aggregation_query import (
    HOUSE_LOSES,
    HOUSE_WINS,
    AggregationQueryBuilder,
    SyncRange,
)
from app.services.sync_errors import ConnectivityError


def _all_rows(builder, sync_range, chunk_size=100):
    return [row for chunk in builder.iter_chunks(sync_range, chunk_size) for row in chunk]


class SyncRangeTests(unittest.TestCase):
    def test_dates_become_half_open_datetimes(self):
        r = SyncRange.for_dates(date(2024, 3, 10), date(2024, 3, 12), 'VN')
        self.assertEqual(r.start, datetime(2024, 3, 10))
        self.assertEqual(r.end, datetime(2024, 3, 13))
        self.assertEqual(r.start_date, date(2024, 3, 10))
        self.assertEqual(r.end_date, date(2024, 3, 12))
        self.assertEqual(r.channel, 'VN')

    def test_single_day_and_empty_channel(self):
        r = SyncRange.for_dates(date(2024, 3, 10), channel='')
        self.assertEqual(r.end - r.start, timedelta(days=1))
        self.assertIsNone(r.channel)

    def test_inverted_range_rejected(self):
        with self.assertRaises(ValueError):
            SyncRange.for_dates(date(2024, 3, 10), date(2024, 3, 9))


class AggregationQueryTests(unittest.TestCase):
    def setUp(self):
        self.engine = make_source_engine()
        self.builder = AggregationQueryBuilder(self.engine)

    def test_win_lose_sign_convention(self):
        seed_source(
            self.engine,
            users={1: 'HOUSEWIN', 2: 'HOUSELOSE', 3: 'VOIDED'},
            channels={1: 'VN'},
            events=[
                event(1, 1, 100, DAY, win_lose=HOUSE_WINS),
                event(2, 1, 100, DAY, win_lose=HOUSE_LOSES, payout=2),
                event(3, 1, 100, DAY, win_lose=2, payout=5),
            ],
        )
        rows = {r.fullusername: r for r in _all_rows(self.builder, SyncRange.for_dates(DAY.date()))}
        self.assertEqual(float(rows['HOUSEWIN'].total_win_lose_amount), 100.0)
        self.assertEqual(float(rows['HOUSELOSE'].total_win_lose_amount), -200.0)
        self.assertEqual(float(rows['VOIDED'].total_win_lose_amount), 0.0)

    def test_alice_group_aggregates(self):
        seed_alice(self.engine)
        rows = _all_rows(self.builder, SyncRange.for_dates(DAY.date()))
        self.assertEqual(len(rows), 1)
        row = rows[0]
        self.assertEqual(row.fullusername, 'ALICE2024')
        self.assertEqual(row.channel_name, 'VN')
        self.assertEqual(int(row.total_bets), 2)
        self.assertEqual(float(row.min_bet), 30.0)
        self.assertEqual(float(row.max_bet), 50.0)
        self.assertEqual(float(row.turnover), 80.0)
        self.assertEqual(float(row.total_win_lose_amount), -45.0)
        self.assertEqual(str(row.bet_date)[:10], '2024-03-10')

    def test_range_end_is_exclusive(self):
        next_midnight = datetime(2024, 3, 11)
        seed_source(
            self.engine,
            users={1: 'EDGE'},
            channels={1: 'VN'},
            events=[
                event(1, 1, 10, datetime(2024, 3, 10, 0, 0, 0)),
                event(1, 1, 20, next_midnight - timedelta(seconds=1)),
                event(1, 1, 40, next_midnight),
            ],
        )
        rows = _all_rows(self.builder, SyncRange.for_dates(DAY.date()))
        self.assertEqual(len(rows), 1)
        self.assertEqual(int(rows[0].total_bets), 2)
        self.assertEqual(float(rows[0].turnover), 30.0)

    def test_one_row_per_day_for_multi_day_range(self):
        seed_source(
            self.engine,
            users={1: 'MULTI'},
            channels={1: 'VN'},
            events=[event(1, 1, 10, DAY), event(1, 1, 10, DAY + timedelta(days=1, hours=3))],
        )
        rows = _all_rows(self.builder, SyncRange.for_dates(DAY.date(), DAY.date() + timedelta(days=1)))
        self.assertEqual([str(r.bet_date)[:10] for r in rows], ['2024-03-10', '2024-03-11'])

    def test_channel_filter(self):
        seed_source(
            self.engine,
            users={1: 'BOTH'},
            channels={1: 'VN', 2: 'TH'},
            events=[event(1, 1, 10, DAY), event(1, 2, 20, DAY)],
        )
        rows = _all_rows(self.builder, SyncRange.for_dates(DAY.date(), channel='TH'))
        self.assertEqual([(r.channel_name, float(r.turnover)) for r in rows], [('TH', 20.0)])

    def test_chunks_cover_every_group_once_in_stable_order(self):
        seed_many_groups(self.engine, bettors=7)
        chunks = list(self.builder.iter_chunks(SyncRange.for_dates(DAY.date()), 3))
        self.assertEqual([len(c) for c in chunks], [3, 3, 1])
        ids = [r.created_by for c in chunks for r in c]
        self.assertEqual(ids, list(range(1, 8)))

    def test_counts(self):
        seed_many_groups(self.engine, bettors=5)
        seed_source(self.engine, users={}, channels={}, events=[event(1, 1, 99, DAY)])
        r = SyncRange.for_dates(DAY.date())
        self.assertEqual(self.builder.count_groups(r), 5)
        self.assertEqual(self.builder.count_groups(r, cap=3), 3)
        self.assertEqual(self.builder.count_events(r), 6)

    def test_empty_range_yields_nothing(self):
        self.assertEqual(list(self.builder.iter_chunks(SyncRange.for_dates(DAY.date()), 10)), [])
        self.assertEqual(self.builder.count_groups(SyncRange.for_dates(DAY.date())), 0)

    def test_operational_error_becomes_connectivity_error(self):
        class _Broken:
            def connect(self):
                raise OperationalError('SELECT 1', {}, Exception('Lost connection to MySQL server'))

        builder = AggregationQueryBuilder(_Broken())
        with self.assertRaises(ConnectivityError):
            builder.count_events(SyncRange.for_dates(DAY.date()))
        with self.assertRaises(ConnectivityError):
            list(builder.iter_chunks(SyncRange.for_dates(DAY.date()), 10))


if __name__ == '__main__':
    unittest.main()
