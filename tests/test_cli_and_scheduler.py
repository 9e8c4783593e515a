import io
import unittest
from contextlib import redirect_stderr, redirect_stdout
from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

import sync_fixtures  # noqa: F401  (sys.path + env)

from app import cli
from app.scheduler import JOB_ID, build_scheduler, scheduled_sync_job
from app.schemas.sync import CompletedStatus, ProcessingStatus
from app.services.aggregation_query import SyncRange
from app.services.sync_errors import ConnectivityError

NOW = datetime(2024, 3, 11, 1, 0, tzinfo=timezone.utc)
RANGE = SyncRange.for_dates(date(2024, 3, 10))
SUMMARY = {
    'mode': 'inline',
    'job_id': None,
    'start_date': date(2024, 3, 10),
    'end_date': date(2024, 3, 10),
    'channel': None,
    'processed_records': 3,
    'skipped_records': 0,
    'batches_committed': 1,
    'execution_time_seconds': 0.2,
    'performance': {'records_per_second': 15.0, 'chunk_size': 1000, 'batch_size': 500},
}


def _run(fn, argv, **kwargs):
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = fn(argv, **kwargs)
    return code, out.getvalue(), err.getvalue()


class SyncBetsCommandTests(unittest.TestCase):
    def test_inline_run_prints_summary(self):
        with patch('app.cli.SyncService.resolve_range', return_value=RANGE), \
                patch('app.cli.SyncService.estimate', return_value={'estimated_records': 3}), \
                patch('app.cli.SyncService.run_sync', return_value=SUMMARY) as run_sync:
            code, out, _ = _run(cli.sync_bets_main, ['--start-date', '2024-03-10', '--chunk-size', '200'])
        self.assertEqual(code, 0)
        self.assertIn('Synced 3 records', out)
        self.assertEqual(run_sync.call_args.kwargs['chunk_size'], 200)

    def test_large_inline_run_warns_but_proceeds(self):
        with patch('app.cli.SyncService.resolve_range', return_value=RANGE), \
                patch('app.cli.SyncService.estimate', return_value={'estimated_records': 60000}), \
                patch('app.cli.SyncService.run_sync', return_value=SUMMARY) as run_sync:
            code, _, err = _run(cli.sync_bets_main, [])
        self.assertEqual(code, 0)
        self.assertIn('--background', err)
        run_sync.assert_called_once()

    def test_background_flag_queues_job(self):
        queued = {'mode': 'background', 'job_id': 'sync_bets_abc', 'estimated_records': 5}
        with patch('app.cli.SyncService.resolve_range', return_value=RANGE), \
                patch('app.cli.SyncService.start_background_sync', return_value=queued):
            code, out, _ = _run(cli.sync_bets_main, ['--background'])
        self.assertEqual(code, 0)
        self.assertIn('sync-bets-status sync_bets_abc', out)

    def test_failure_exits_with_one(self):
        with patch('app.cli.SyncService.resolve_range', return_value=RANGE), \
                patch('app.cli.SyncService.estimate', side_effect=ConnectivityError('source database unreachable')):
            code, _, err = _run(cli.sync_bets_main, [])
        self.assertEqual(code, 1)
        self.assertIn('SOURCE_UNAVAILABLE', err)

    def test_inverted_dates_rejected(self):
        code, _, err = _run(cli.sync_bets_main, ['--start-date', '2024-03-10', '--end-date', '2024-03-01'])
        self.assertEqual(code, 1)
        self.assertIn('--end-date', err)

    def test_end_date_alone_syncs_that_day(self):
        with patch('app.cli.SyncService.estimate', return_value={'estimated_records': 3}), \
                patch('app.cli.SyncService.run_sync', return_value=SUMMARY) as run_sync:
            code, _, _ = _run(cli.sync_bets_main, ['--end-date', '2024-03-01', '--days-back', '0'])
        self.assertEqual(code, 0)
        self.assertEqual(run_sync.call_args.args[:2], (date(2024, 3, 1), date(2024, 3, 1)))

    def test_range_error_exits_with_one(self):
        with patch('app.cli.SyncService.resolve_range',
                   side_effect=ValueError('end_date must be on or after start_date')):
            code, _, err = _run(cli.sync_bets_main, ['--end-date', '2024-03-01'])
        self.assertEqual(code, 1)
        self.assertIn('end_date must be on or after start_date', err)


class SyncBetsStatusCommandTests(unittest.TestCase):
    def _processing(self):
        return ProcessingStatus(
            job_id='sync_bets_1', start_date=date(2024, 3, 10), end_date=date(2024, 3, 10),
            estimated_records=10, processed_records=5, progress_percentage=50.0, started_at=NOW, updated_at=NOW,
        )

    def _completed(self):
        return CompletedStatus(
            job_id='sync_bets_1', start_date=date(2024, 3, 10), end_date=date(2024, 3, 10),
            estimated_records=10, processed_records=10, started_at=NOW,
            completed_at=NOW + timedelta(seconds=2), execution_time_seconds=2.0, records_per_second=5.0,
            updated_at=NOW,
        )

    def test_unknown_job(self):
        with patch('app.cli.SyncService.get_sync_status', return_value=None):
            code, _, err = _run(cli.sync_bets_status_main, ['missing'])
        self.assertEqual(code, 1)
        self.assertIn('not found', err)

    def test_watch_polls_until_terminal_state(self):
        sleeps = []
        with patch('app.cli.SyncService.get_sync_status', side_effect=[self._processing(), self._completed()]):
            code, out, _ = _run(cli.sync_bets_status_main, ['sync_bets_1', '--watch'], sleep=sleeps.append)
        self.assertEqual(code, 0)
        self.assertEqual(sleeps, [cli.WATCH_INTERVAL_SECONDS])
        self.assertIn('progress_percentage', out)
        self.assertIn('completed', out)

    def test_dispatcher_usage(self):
        err = io.StringIO()
        with redirect_stderr(err):
            self.assertEqual(cli.main(['unknown']), 2)


class SchedulerTests(unittest.TestCase):
    def test_disabled_when_interval_is_zero(self):
        self.assertIsNone(build_scheduler(interval_minutes=0))

    def test_interval_job_registered(self):
        scheduler = build_scheduler(interval_minutes=5)
        jobs = scheduler.get_jobs()
        self.assertEqual([j.id for j in jobs], [JOB_ID])
        self.assertEqual(jobs[0].trigger.interval, timedelta(minutes=5))

    def test_scheduled_job_never_raises(self):
        with patch('app.scheduler.SyncService.run_scheduled', side_effect=ConnectivityError('down')) as run:
            scheduled_sync_job()
        run.assert_called_once()

    def test_scheduled_job_logs_skip(self):
        with patch('app.scheduler.SyncService.run_scheduled', return_value={'skipped': True, 'reason': 'previous_run_in_flight'}):
            with self.assertLogs('app.scheduler', level='INFO') as logs:
                scheduled_sync_job()
        self.assertIn('skipped', logs.output[0])


if __name__ == '__main__':
    unittest.main()
