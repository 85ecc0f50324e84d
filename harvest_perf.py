#!/usr/bin/env python3
"""
Performance Harvester - command line entry point
"""

import asyncio
import signal
import sys
from typing import List

from perf_harvester import HarvestConfig, HarvestPipeline
from perf_harvester.core.errors import ConfigurationError
from perf_harvester.core.session import TokenSessionProvider
from perf_harvester.core.types import PROJECTS
from perf_harvester.logging_config import setup_logger
from perf_harvester.processors import DumpReader, TraceAggregator
from perf_harvester.storage import ReportWriter


def build_parser():
    import argparse
    parser = argparse.ArgumentParser(
        description='Harvest slow transactions, events and spans from the Sentry API into CSV reports.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python harvest_perf.py run
  python harvest_perf.py run --project javascript-react-qa --stats-period 14d
  python harvest_perf.py run --report-mode spans --concurrency 4
  python harvest_perf.py merge reports/sentry_dump_*.json
        """
    )
    parser.add_argument('--log-level', default=None, help='Logging level (default: $LOG_LEVEL or INFO)')
    parser.add_argument('--log-file', default='perf_harvester.log', help='Log file path')
    sub = parser.add_subparsers(dest='command', required=True)

    run = sub.add_parser('run', help='Run a harvest against the API')
    run.add_argument('--organization', default='sprouts-x2')
    run.add_argument('--project', default='javascript-react',
                     help=f"Project preset ({', '.join(PROJECTS)}) or numeric id")
    run.add_argument('--api-base-url', default='https://us.sentry.io/api/0')
    run.add_argument('--dataset', default='transactions')
    run.add_argument('--stats-period', default='7d', help='Query window, e.g. 1h, 24h, 7d, 14d, 30d')
    run.add_argument('--percentile', default='p95', choices=['p50', 'p75', 'p95'])
    run.add_argument('--transaction-threshold', type=float, default=10000,
                     help='Keep transactions whose percentile is above this many ms')
    run.add_argument('--span-threshold', type=float, default=5000,
                     help='Aggregate spans whose exclusive time is above this many ms')
    run.add_argument('--concurrency', type=int, default=2, help='Maximum sub-fetches in flight')
    run.add_argument('--max-pages', type=int, default=50, help='Page cap per paginated call')
    run.add_argument('--per-page', type=int, default=100)
    run.add_argument('--page-delay', type=float, default=0.5, help='Seconds between pages')
    run.add_argument('--report-mode', default='aggregate', choices=['aggregate', 'spans'])
    run.add_argument('--precision', type=int, default=3, help='Decimal places in aggregate reports')
    run.add_argument('--fallback-cursor', default=None,
                     help='Cursor to try when a full page has none (e.g. 0:50:0)')
    run.add_argument('--batch', action='store_true',
                     help='Aggregate after all traces are fetched instead of as they arrive')
    run.add_argument('-o', '--output-dir', default='reports')
    run.add_argument('--env-file', default=None, help='.env file holding SENTRY_AUTH_TOKEN')

    merge = sub.add_parser('merge', help='Merge JSON dumps of earlier runs into one report')
    merge.add_argument('dumps', nargs='+', help='Dump files written by earlier runs')
    merge.add_argument('-o', '--output-dir', default='reports')
    merge.add_argument('--precision', type=int, default=3)
    return parser


def config_from_args(args) -> HarvestConfig:
    return HarvestConfig(
        organization=args.organization,
        project=args.project,
        api_base_url=args.api_base_url,
        dataset=args.dataset,
        stats_period=args.stats_period,
        percentile=args.percentile,
        transaction_threshold_ms=args.transaction_threshold,
        span_threshold_ms=args.span_threshold,
        concurrency=args.concurrency,
        max_pages=args.max_pages,
        per_page=args.per_page,
        page_delay=args.page_delay,
        report_mode=args.report_mode,
        precision=args.precision,
        fallback_cursor=args.fallback_cursor,
        streaming=not args.batch
    )


def make_signal_handler(pipeline: HarvestPipeline, task: asyncio.Task):
    """First signal stops the run gracefully; a second one cancels it."""
    def handler():
        if pipeline.interrupted:
            print("\nSecond interrupt: cancelling in-flight requests")
            task.cancel()
        else:
            pipeline.interrupt()
    return handler


async def run_harvest(config: HarvestConfig, provider: TokenSessionProvider, writer: ReportWriter):
    async with provider.client() as client:
        pipeline = HarvestPipeline(config, client, exporter=writer)
        loop = asyncio.get_running_loop()
        handler = make_signal_handler(pipeline, asyncio.current_task())
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, handler)
            except (NotImplementedError, RuntimeError):
                pass
        try:
            return await pipeline.run()
        except asyncio.CancelledError:
            pipeline.interrupt()
            return pipeline.flush('partial')


def merge_dumps(paths: List[str], output_dir: str, precision: int):
    aggregator = TraceAggregator()
    for path in paths:
        DumpReader.merge_into(aggregator, path)
    rows = aggregator.export(precision)
    backend, frontend = TraceAggregator.split_by_team(rows)
    writer = ReportWriter(output_dir, prefix='merged', write_dump=False)
    writer.write_aggregate_rows(backend, writer.path_for('backend'))
    writer.write_aggregate_rows(frontend, writer.path_for('frontend'))
    return backend, frontend


def main():
    parser = build_parser()
    args = parser.parse_args()
    setup_logger(level=args.log_level, log_file=args.log_file)

    try:
        if args.command == 'merge':
            backend, frontend = merge_dumps(args.dumps, args.output_dir, args.precision)
            print(f"\n✓ Merged {len(args.dumps)} dumps: {len(backend)} backend rows, {len(frontend)} frontend rows")
            return

        config = config_from_args(args).validate()
        provider = TokenSessionProvider.from_env(args.env_file)
        print(f"\nConfiguration:")
        print(f"  Project: {config.project} ({config.project_id})")
        print(f"  Stats period: {config.stats_period}")
        print(f"  Transaction threshold: {config.percentile}() > {config.transaction_threshold_ms} ms")
        print(f"  Span threshold: {config.span_threshold_ms} ms")
        print(f"  Concurrency: {config.concurrency}")
        print(f"  Report mode: {config.report_mode}\n")

        writer = ReportWriter(args.output_dir)
        report = asyncio.run(run_harvest(config, provider, writer))
        status = 'interrupted, partial data saved' if report.partial else 'complete'
        print(f"\n✓ Harvest {status}: {len(report.backend)} backend rows, "
              f"{len(report.frontend)} frontend rows, {len(report.span_rows)} span rows")
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        sys.exit(2)
    except FileNotFoundError as e:
        print(f"Error: File '{e.filename}' not found.")
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
