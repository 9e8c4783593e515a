"""
Operator commands for the bet rollup sync.

Usage:
  sync-bets                                  # today minus BET_SYNC_DEFAULT_DAYS
  sync-bets --start-date 2024-01-01 --end-date 2024-01-07 --channel VN
  sync-bets --days-back 0 --background
  sync-bets-status sync_bets_0123456789abcdef --watch
"""
from __future__ import annotations

import argparse
import sys
import time
from datetime import date
from typing import Callable, Sequence

from app.core.config import settings
from app.core.logging_config import configure_logging
from app.schemas.sync import JobStatus
from app.services.sync_errors import BetSyncError
from app.services.sync_service import SOURCE_MANUAL, SyncService

WATCH_INTERVAL_SECONDS = 2.0
_ACTIVE_STATES = ('queued', 'processing')


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f'invalid date (expected YYYY-MM-DD): {value}') from exc


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f'must be a positive integer: {value}')
    return number


def build_sync_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='sync-bets', description='Aggregate raw bets into the daily rollup table')
    parser.add_argument('--start-date', type=_parse_date, default=None, help='first day (YYYY-MM-DD)')
    parser.add_argument('--end-date', type=_parse_date, default=None, help='last day, inclusive (defaults to start)')
    parser.add_argument('--channel', default=None, help='restrict to one channel name')
    parser.add_argument('--background', action='store_true', help='queue for the worker instead of running inline')
    parser.add_argument('--chunk-size', type=_positive_int, default=None, help='source rows per read')
    parser.add_argument('--batch-size', type=_positive_int, default=None, help='records per write transaction')
    parser.add_argument('--days-back', type=int, default=None, help='days before today when no start date is given')
    return parser


def build_status_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='sync-bets-status', description='Show the status of a background sync job')
    parser.add_argument('job_id')
    parser.add_argument('--watch', action='store_true', help='poll until the job completes or fails')
    return parser


def format_status(status: JobStatus) -> str:
    rows = [(key, value) for key, value in status.model_dump().items() if value is not None]
    width = max(len(key) for key, _ in rows)
    return '\n'.join(f'{key.ljust(width)}  {value}' for key, value in rows)


def _print_summary(summary: dict) -> None:
    if summary.get('mode') == 'background':
        print(f'Queued background job {summary["job_id"]} ({summary["estimated_records"]} estimated records)')
        print(f'Check progress with: sync-bets-status {summary["job_id"]} --watch')
        return
    perf = summary.get('performance') or {}
    print(f'Synced {summary["processed_records"]} records '
          f'({summary["start_date"]} .. {summary["end_date"]}, channel={summary.get("channel") or "all"})')
    if summary.get('skipped_records'):
        print(f'Skipped {summary["skipped_records"]} invalid records')
    print(f'Elapsed {summary["execution_time_seconds"]}s, {perf.get("records_per_second", 0)} records/s '
          f'(chunk_size={perf.get("chunk_size")}, batch_size={perf.get("batch_size")})')


def sync_bets_main(argv: Sequence[str] | None = None) -> int:
    args = build_sync_parser().parse_args(argv)
    if args.start_date and args.end_date and args.end_date < args.start_date:
        print('error: --end-date must be on or after --start-date', file=sys.stderr)
        return 1
    configure_logging()
    try:
        sync_range = SyncService.resolve_range(args.start_date, args.end_date, args.channel, days_back=args.days_back)
        print(f'Sync range: {sync_range.describe()}')
        if args.background:
            summary = SyncService.start_background_sync(
                sync_range.start_date, sync_range.end_date, sync_range.channel, actor='cli', source=SOURCE_MANUAL,
            )
        else:
            estimated = SyncService.estimate(sync_range)['estimated_records']
            print(f'Estimated records: {estimated}')
            if estimated > int(settings.bet_sync_cli_confirm_threshold):
                print(f'warning: {estimated} records is a large inline sync; consider --background', file=sys.stderr)
            summary = SyncService.run_sync(
                sync_range.start_date, sync_range.end_date, sync_range.channel,
                chunk_size=args.chunk_size, batch_size=args.batch_size,
            )
    except BetSyncError as exc:
        print(f'error: sync failed [{exc.error_code}]: {exc}', file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f'error: {exc}', file=sys.stderr)
        return 1
    _print_summary(summary)
    return 0


def sync_bets_status_main(
    argv: Sequence[str] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    args = build_status_parser().parse_args(argv)
    while True:
        status = SyncService.get_sync_status(args.job_id)
        if status is None:
            print(f'Job {args.job_id} not found (unknown or expired)', file=sys.stderr)
            return 1
        print(format_status(status))
        if not args.watch or status.status not in _ACTIVE_STATES:
            return 1 if status.status == 'failed' else 0
        print('')
        sleep(WATCH_INTERVAL_SECONDS)


def main(argv: Sequence[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    commands = {'sync-bets': sync_bets_main, 'sync-bets-status': sync_bets_status_main}
    if not argv or argv[0] not in commands:
        print(f'usage: python -m app.cli {{{",".join(commands)}}} [options]', file=sys.stderr)
        return 2
    return commands[argv[0]](argv[1:])


if __name__ == '__main__':
    sys.exit(main())
