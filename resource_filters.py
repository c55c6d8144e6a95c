"""
Filter pipeline for Compute Engine resources.

Filters are built from predicates: plain callables taking one resource and
returning a bool. A filter pass never mutates its input and keeps the
relative order of the records that survive.
"""

import datetime
import logging
from typing import Any, Callable, Iterable, List, Optional

from audit_errors import EmptyInputError
from config import PERMISSIVE_SOURCE_RANGE

logger = logging.getLogger(__name__)

Predicate = Callable[[Any], bool]


def filter_resources(resources: Optional[List[Any]], predicate: Predicate) -> List[Any]:
    """Return the records satisfying the predicate. Raises EmptyInputError on an empty list."""
    if not resources:
        raise EmptyInputError()
    return [resource for resource in resources if predicate(resource)]


def apply_filters(resources: Optional[List[Any]], predicates: Iterable[Predicate]) -> List[Any]:
    """
    Apply predicates as sequential passes, the output of one pass feeding the next.

    The initial list must not be empty. Once a pass leaves nothing the chain
    stops and returns an empty list.
    """
    if not resources:
        raise EmptyInputError()

    filtered = resources
    for predicate in predicates:
        filtered = filter_resources(filtered, predicate)
        if not filtered:
            return []
    return filtered


# --- Generic predicates ---

def status_is(status: str) -> Predicate:
    return lambda resource: resource.status == status


def address_type_is(address_type: str) -> Predicate:
    return lambda address: address.address_type == address_type


# --- Firewall rule predicates ---

def get_rule_action(rule) -> str:
    """A rule with any allowed entries is an allow rule, otherwise a deny rule."""
    return "allow" if len(rule.allowed) > 0 else "deny"


def rule_status_is(status: str) -> Predicate:
    """'enabled' matches rules that are not disabled, 'disabled' the opposite. Anything else matches nothing."""
    status = status.lower()
    if status == "enabled":
        return lambda rule: not rule.disabled
    if status == "disabled":
        return lambda rule: bool(rule.disabled)
    return lambda rule: False


def rule_action_is(action: str) -> Predicate:
    return lambda rule: get_rule_action(rule) == action


def rule_direction_is(direction: str) -> Predicate:
    direction = direction.upper()
    return lambda rule: direction in rule.direction


def source_range_contains(ip_range: str) -> Predicate:
    return lambda rule: any(ip_range in source_range for source_range in rule.source_ranges)


def allows_port(port: str) -> Predicate:
    """Match rules whose allowed port specs contain the port, e.g. '22' matches '22' and '20-22'."""
    def predicate(rule):
        for allowed in rule.allowed:
            if any(port in port_range for port_range in allowed.ports):
                return True
        return False
    return predicate


# --- Instance predicates ---

def parse_timestamp(timestamp: str) -> Optional[datetime.datetime]:
    """Parse an RFC 3339 timestamp. Returns None when missing or malformed."""
    if not timestamp:
        return None
    try:
        parsed = datetime.datetime.fromisoformat(timestamp.replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def stopped_before(days: int, now: Optional[datetime.datetime] = None) -> Predicate:
    """
    Match instances whose last stop is more than `days` days before `now`.

    Instances without a usable last stop timestamp never match; they are
    logged instead of being treated as stopped long ago.
    """
    threshold = datetime.timedelta(days=days)

    def predicate(instance):
        last_stop = parse_timestamp(instance.last_stop_timestamp)
        if last_stop is None:
            logger.warning(f"Instance {instance.name} has no valid last stop timestamp "
                           f"({instance.last_stop_timestamp!r}), skipping")
            return False
        current_time = now or datetime.datetime.now(datetime.timezone.utc)
        return current_time - last_stop > threshold

    return predicate


# --- Composed filters ---

def filter_long_term_terminated(instances: List[Any], days: int, now: Optional[datetime.datetime] = None) -> List[Any]:
    """TERMINATED instances stopped for more than `days` days."""
    return apply_filters(instances, [status_is("TERMINATED"), stopped_before(days, now)])


def filter_permissive_rules(rules: List[Any], port: Optional[str] = None) -> List[Any]:
    """Enabled rules allowing ingress from anywhere, optionally narrowed to one port."""
    predicates = [
        rule_status_is("enabled"),
        rule_action_is("allow"),
        rule_direction_is("ingress"),
        source_range_contains(PERMISSIVE_SOURCE_RANGE),
    ]
    if port:
        predicates.append(allows_port(port))
    return apply_filters(rules, predicates)
