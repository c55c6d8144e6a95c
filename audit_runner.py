#!/usr/bin/env python3
"""
Audit orchestration.
Runs fetch -> filter -> summarize for every (project, report) pair in a thread pool
and writes the CSV reports from the coordinating thread, so that reports shared
by several projects are only ever written by one writer.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from audit_errors import AuditAbortedError, AuditError, EmptyInputError, ExportError, NoDataError
from config import (
    FAIL_FAST,
    FIREWALL_RULES_FILE,
    IDLE_EXTERNAL_IPS_FILE,
    MAX_WORKERS,
    OUTPUT_DIR,
    TERMINATED_COMPUTE_INSTANCES_FILE,
    TERMINATED_DAYS_THRESHOLD,
)
from csv_export import export_to_csv, get_destination_path
from resource_fetcher import list_all_instances, list_firewall_rules, list_ip_addresses
from resource_filters import address_type_is, apply_filters, filter_long_term_terminated, filter_permissive_rules, status_is
from resource_summary import (
    FIREWALL_RULE_FIELDS,
    INSTANCE_FIELDS,
    IP_ADDRESS_FIELDS,
    build_header,
    format_instance_details,
    summarize_firewall_rule,
    summarize_instance,
    summarize_ip_address,
    summary_to_row,
)

logger = logging.getLogger(__name__)

# Task statuses
COLLECTED = 'collected'
EXPORTED = 'exported'
SKIPPED = 'skipped'
FAILED = 'failed'


@dataclass(frozen=True)
class ReportKind:
    name: str
    description: str
    file_name: str
    fields: Tuple[str, ...]

    @property
    def header(self) -> List[str]:
        return build_header(self.fields)


REPORT_KINDS = {
    'ips': ReportKind('ips', 'idle external IPs', IDLE_EXTERNAL_IPS_FILE, IP_ADDRESS_FIELDS),
    'instances': ReportKind('instances', 'long term terminated instances', TERMINATED_COMPUTE_INSTANCES_FILE, INSTANCE_FIELDS),
    'firewall': ReportKind('firewall', 'permissive firewall rules', FIREWALL_RULES_FILE, FIREWALL_RULE_FIELDS),
}
ALL_COMMAND = 'all'
COMMANDS = tuple(REPORT_KINDS) + (ALL_COMMAND,)


@dataclass
class AuditOptions:
    split: bool = False
    days_threshold: int = TERMINATED_DAYS_THRESHOLD
    port: Optional[str] = None
    output_dir: str = OUTPUT_DIR
    max_workers: int = MAX_WORKERS
    fail_fast: bool = FAIL_FAST


@dataclass
class AuditTaskResult:
    project_id: str
    kind: str
    status: str = COLLECTED
    rows: List[List[str]] = field(default_factory=list)
    destination: Optional[str] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == FAILED


def resolve_report_kinds(command: str) -> List[str]:
    """Report kinds audited by a command. Raises ValueError for unknown commands."""
    if command == ALL_COMMAND:
        return list(REPORT_KINDS)
    if command not in REPORT_KINDS:
        raise ValueError(f"Command '{command}' not found")
    return [command]


# --- Collection (runs in worker threads) ---

def collect_terminated_instances(project_id: str, days_threshold: int = TERMINATED_DAYS_THRESHOLD) -> List[List[str]]:
    """
    Rows for instances terminated for more than `days_threshold` days.

    A project without any instance raises EmptyInputError, which fails the task.
    """
    instances = list_all_instances(project_id)
    long_term_terminated = filter_long_term_terminated(instances, days_threshold)

    if not long_term_terminated:
        logger.info(f"{project_id}: No instances found that have been terminated for more than {days_threshold} days")
        return []

    logger.info(f"{project_id}: Found {len(long_term_terminated)} long term terminated instances")
    rows = []
    for instance in long_term_terminated:
        logger.debug(f"{project_id}: terminated instance\n{format_instance_details(instance)}")
        rows.append(summary_to_row(summarize_instance(instance), INSTANCE_FIELDS, project_id))
    return rows


def collect_idle_external_ips(project_id: str) -> List[List[str]]:
    """Rows for external addresses that are reserved but not in use."""
    addresses = list_ip_addresses(project_id)

    try:
        idle_ips = apply_filters(addresses, [address_type_is("EXTERNAL"), status_is("RESERVED")])
    except EmptyInputError:
        logger.info(f"{project_id}: No addresses to filter")
        idle_ips = []

    logger.info(f"{project_id}: Found {len(idle_ips)} reserved IPs that are not in use")
    return [summary_to_row(summarize_ip_address(ip), IP_ADDRESS_FIELDS, project_id) for ip in idle_ips]


def collect_permissive_firewall_rules(project_id: str, port: Optional[str] = None) -> List[List[str]]:
    """Rows for enabled rules allowing ingress from 0.0.0.0/0."""
    rules = list_firewall_rules(project_id)

    try:
        permissive_rules = filter_permissive_rules(rules, port)
    except EmptyInputError:
        logger.info(f"{project_id}: No firewall rules to filter")
        permissive_rules = []

    logger.info(f"{project_id}: Found {len(permissive_rules)} permissive firewall rules")
    return [summary_to_row(summarize_firewall_rule(rule), FIREWALL_RULE_FIELDS, project_id) for rule in permissive_rules]


def run_audit_task(project_id: str, kind: str, options: AuditOptions) -> AuditTaskResult:
    """Collect the rows of one report for one project. Audit errors become a failed result."""
    result = AuditTaskResult(project_id=project_id, kind=kind)

    try:
        if kind == 'instances':
            result.rows = collect_terminated_instances(project_id, options.days_threshold)
        elif kind == 'ips':
            result.rows = collect_idle_external_ips(project_id)
        elif kind == 'firewall':
            result.rows = collect_permissive_firewall_rules(project_id, options.port)
        else:
            raise ValueError(f"Unknown report kind: {kind}")
    except AuditError as e:
        logger.error(f"{project_id}: Failed to collect {REPORT_KINDS[kind].description}: {e}")
        result.status = FAILED
        result.error = str(e)

    return result


# --- Export (coordinating thread only) ---

def export_task_result(result: AuditTaskResult, options: AuditOptions) -> AuditTaskResult:
    report = REPORT_KINDS[result.kind]
    project_dir = result.project_id if options.split else None
    result.destination = get_destination_path(report.file_name, project_dir, options.output_dir)

    try:
        written = export_to_csv(report.header, result.rows, result.destination)
    except NoDataError:
        logger.info(f"{result.project_id}: No {report.description} found, skipping")
        result.status = SKIPPED
    except ExportError as e:
        logger.error(f"{result.project_id}: Failure when exporting to CSV file: {e}")
        result.status = FAILED
        result.error = str(e)
    else:
        logger.info(f"{result.project_id}: {written} records saved to {result.destination}")
        result.status = EXPORTED

    return result


def run_audit(project_ids: List[str], command: str, options: Optional[AuditOptions] = None) -> List[AuditTaskResult]:
    """
    Audit every project for the reports selected by `command`.

    Tasks run concurrently; their reports are written as they complete. In
    fail-fast mode the first failed task cancels the pending ones and raises
    AuditAbortedError, otherwise failures are returned with the other results.
    """
    options = options or AuditOptions()
    kinds = resolve_report_kinds(command)
    tasks = [(project_id, kind) for project_id in project_ids for kind in kinds]

    if not tasks:
        logger.warning("No projects to audit")
        return []

    logger.info(f"Auditing {len(project_ids)} projects for {', '.join(kinds)} ({len(tasks)} tasks)")
    results = []

    with ThreadPoolExecutor(max_workers=max(1, min(options.max_workers, len(tasks)))) as executor:
        future_to_task = {
            executor.submit(run_audit_task, project_id, kind, options): (project_id, kind)
            for project_id, kind in tasks
        }

        for future in as_completed(future_to_task):
            project_id, kind = future_to_task[future]
            try:
                result = future.result()
            except Exception as e:
                logger.error(f"Critical error processing {project_id}/{kind}: {type(e).__name__}: {e}")
                result = AuditTaskResult(project_id=project_id, kind=kind, status=FAILED,
                                         error=f"{type(e).__name__}: {e}")

            if result.status == COLLECTED:
                export_task_result(result, options)
            results.append(result)

            if result.failed and options.fail_fast:
                for pending in future_to_task:
                    pending.cancel()
                raise AuditAbortedError(f"Aborting audit: {project_id}/{kind} failed: {result.error}", results)

    return results


def summarize_results(results: List[AuditTaskResult]) -> Dict[str, Any]:
    """Counts per status, rows written and failures of a run."""
    exported = [r for r in results if r.status == EXPORTED]
    return {
        'total_tasks': len(results),
        'exported': len(exported),
        'skipped': sum(1 for r in results if r.status == SKIPPED),
        'failed': sum(1 for r in results if r.failed),
        'rows_written': sum(len(r.rows) for r in exported),
        'destinations': sorted({r.destination for r in exported}),
        'failures': [r for r in results if r.failed],
    }
