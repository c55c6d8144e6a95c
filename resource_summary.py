"""Flatten Compute Engine resources into report rows."""

import logging
import re
from typing import Dict, List, Sequence

from resource_filters import get_rule_action, parse_timestamp

logger = logging.getLogger(__name__)

PROJECT_ID_FIELD = "ProjectID"

# Report columns, in CSV order. ProjectID is appended by build_header.
INSTANCE_FIELDS = ("Name", "OS", "Status", "MachineType", "LastStartTimestamp", "LastStopTimestamp")
IP_ADDRESS_FIELDS = ("Name", "Status", "Address", "AddressType")
FIREWALL_RULE_FIELDS = ("Name", "Action", "AllowedPorts", "DeniedPorts", "Disabled", "Direction", "SourceRanges")

MACHINE_TYPE_PATTERN = re.compile(r'.*/machineTypes/(.*)$')
RFC822_FORMAT = "%d %b %y %H:%M %z"


def build_header(fields: Sequence[str]) -> List[str]:
    return list(fields) + [PROJECT_ID_FIELD]


def summary_to_row(summary: Dict[str, str], fields: Sequence[str], project_id: str) -> List[str]:
    """Order the summary values by the report fields and append the project ID."""
    return [summary[field] for field in fields] + [project_id]


def get_machine_type(machine_type_url: str) -> str:
    match = MACHINE_TYPE_PATTERN.match(machine_type_url or '')
    if match:
        return match.group(1)
    return machine_type_url.split('/')[-1] if machine_type_url else 'unknown'


def get_os(instance) -> str:
    """OS name from the first license of the boot disk, e.g. '.../licenses/debian-12-bookworm'."""
    if not instance.disks or not instance.disks[0].licenses:
        logger.debug(f"Instance {instance.name} has no disk license, OS unknown")
        return 'unknown'
    license_url = instance.disks[0].licenses[0]
    if 'licenses/' in license_url:
        return license_url.split('licenses/', 1)[1]
    return license_url.split('/')[-1]


def summarize_instance(instance) -> Dict[str, str]:
    return {
        'Name': instance.name,
        'OS': get_os(instance),
        'Status': instance.status,
        'MachineType': get_machine_type(instance.machine_type),
        'LastStartTimestamp': instance.last_start_timestamp,
        'LastStopTimestamp': instance.last_stop_timestamp,
    }


def summarize_ip_address(address) -> Dict[str, str]:
    return {
        'Name': address.name,
        'Status': address.status,
        'Address': address.address,
        'AddressType': address.address_type,
    }


def summarize_firewall_rule(rule) -> Dict[str, str]:
    allowed_ports = [port for allowed in rule.allowed for port in allowed.ports]
    denied_ports = [port for denied in rule.denied for port in denied.ports]

    return {
        'Name': rule.name,
        'Action': get_rule_action(rule),
        'AllowedPorts': ';'.join(allowed_ports),
        'DeniedPorts': ';'.join(denied_ports),
        'Disabled': 'true' if rule.disabled else 'false',
        'Direction': rule.direction,
        'SourceRanges': ';'.join(rule.source_ranges),
    }


def format_date(timestamp: str) -> str:
    if not timestamp:
        return "N/A"
    parsed = parse_timestamp(timestamp)
    if parsed is None:
        return ""
    return parsed.strftime(RFC822_FORMAT)


def format_instance_details(instance) -> str:
    """Human readable description of an instance, including its disks."""
    lines = [
        f"Name: {instance.name}",
        f"OS: {get_os(instance)}",
        f"Status: {instance.status}",
        f"Machine Type: {get_machine_type(instance.machine_type)}",
        "Disks:",
    ]
    for disk in instance.disks:
        lines.append(f"  {disk.device_name}: {disk.disk_size_gb}GB")
    lines.append(f"Stop date: {format_date(instance.last_stop_timestamp)}")
    lines.append(f"Last start date: {format_date(instance.last_start_timestamp)}")
    return "\n".join(lines) + "\n"
