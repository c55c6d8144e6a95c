#!/usr/bin/env python3
"""
GCP Resource Audit
Finds long term terminated VM instances, idle external IP addresses and permissive
firewall rules across projects and saves them to CSV reports.

Usage:
    audit <command> <project-id1,project-id2,...> [--split]
    echo 'project-id1,project-id2' | audit <command> -
    audit <command> --billing-account <billing-account-id>

Commands: ips, instances, firewall, all
"""

import argparse
import logging
import sys
from typing import List, Optional, TextIO

from audit_errors import AuditAbortedError, FetchError
from audit_runner import COMMANDS, AuditOptions, resolve_report_kinds, run_audit, summarize_results
from config import FAIL_FAST, LOG_FORMAT, MAX_WORKERS, OUTPUT_DIR, TERMINATED_DAYS_THRESHOLD
from resource_fetcher import get_projects_under_billing_account

logger = logging.getLogger(__name__)

STDIN_MARKER = '-'


class AuditArgumentParser(argparse.ArgumentParser):
    """Argument parser exiting with status 1 on usage errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = AuditArgumentParser(
        prog='audit',
        description='Audit GCP projects for terminated instances, idle external IPs and permissive firewall rules.',
        epilog="Examples:\n"
               "  audit firewall project-id1,project-id2\n"
               "  echo 'project-id1,project-id2' | audit instances -",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('command', help=f"One of: {', '.join(COMMANDS)}")
    parser.add_argument('projects', nargs='?',
                        help="Comma separated project IDs, or '-' to read them from stdin")
    parser.add_argument('--split', action='store_true',
                        help='Write one report directory per project (output/<project-id>/)')
    parser.add_argument('--days', type=int, default=TERMINATED_DAYS_THRESHOLD,
                        help=f'Terminated instance age threshold in days (default: {TERMINATED_DAYS_THRESHOLD})')
    parser.add_argument('--port', help='Only report permissive firewall rules allowing this port')
    parser.add_argument('--output-dir', default=OUTPUT_DIR, help=f'Report directory (default: {OUTPUT_DIR})')
    parser.add_argument('--max-workers', type=int, default=MAX_WORKERS,
                        help=f'Number of parallel tasks (default: {MAX_WORKERS})')
    parser.add_argument('--fail-fast', action='store_true', default=FAIL_FAST,
                        help='Stop the whole audit on the first failed project')
    parser.add_argument('--billing-account', help='Audit every billing enabled project of this billing account')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    return parser


def parse_project_ids(value: str) -> List[str]:
    """Split a comma separated list, trimming whitespace and dropping empty entries."""
    return [project_id.strip() for project_id in value.split(',') if project_id.strip()]


def read_project_ids_from_stdin(stream: Optional[TextIO] = None) -> List[str]:
    stream = stream or sys.stdin
    return parse_project_ids(stream.read())


def resolve_project_ids(args, parser: argparse.ArgumentParser) -> List[str]:
    if args.billing_account:
        if args.projects:
            parser.error("use either a project ID list or --billing-account, not both")
        return get_projects_under_billing_account(args.billing_account)
    if not args.projects:
        parser.error("a project ID list, '-' or --billing-account is required")
    if args.projects == STDIN_MARKER:
        return read_project_ids_from_stdin()
    return parse_project_ids(args.projects)


def print_summary(summary) -> None:
    print(f"\n🎯 AUDIT SUMMARY")
    print("=" * 60)
    print(f"  • Tasks run: {summary['total_tasks']}")
    print(f"  • Reports written: {summary['exported']}")
    print(f"  • Skipped (nothing found): {summary['skipped']}")
    print(f"  • Failed: {summary['failed']}")
    print(f"  • Records saved: {summary['rows_written']}")
    for destination in summary['destinations']:
        print(f"    - {destination}")

    if summary['failures']:
        print(f"\n❌ FAILURES:")
        for result in summary['failures']:
            print(f"  - {result.project_id} [{result.kind}]: {result.error}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    try:
        resolve_report_kinds(args.command)
    except ValueError as e:
        print(str(e))
        parser.print_help()
        return 1

    try:
        project_ids = resolve_project_ids(args, parser)
    except FetchError as e:
        logger.error(f"Could not resolve project IDs: {e}")
        return 1

    if not project_ids:
        logger.error("No project IDs to audit")
        return 1

    options = AuditOptions(
        split=args.split,
        days_threshold=args.days,
        port=args.port,
        output_dir=args.output_dir,
        max_workers=args.max_workers,
        fail_fast=args.fail_fast,
    )

    try:
        results = run_audit(project_ids, args.command, options)
    except KeyboardInterrupt:
        print("\n⚠️ Audit interrupted")
        return 130
    except AuditAbortedError as e:
        logger.error(str(e))
        print_summary(summarize_results(e.results))
        return 1

    summary = summarize_results(results)
    print_summary(summary)
    return 1 if summary['failed'] else 0


if __name__ == "__main__":
    sys.exit(main())
