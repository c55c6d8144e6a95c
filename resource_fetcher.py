#!/usr/bin/env python3
"""
Compute Engine resource listing.
Retrieves instances, external addresses and firewall rules for a single project,
and resolves the projects linked to a billing account.
"""

import logging
from typing import List, Optional

# Google Cloud imports
from google.cloud import billing_v1, compute_v1
from google.api_core import exceptions
from google.auth import exceptions as auth_exceptions

from audit_errors import FetchError

logger = logging.getLogger(__name__)

API_ERRORS = (exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)


def list_all_instances(project_id: str, client: Optional[compute_v1.InstancesClient] = None) -> List[compute_v1.Instance]:
    """List every instance in a project, aggregated across zones."""
    instances = []

    try:
        instances_client = client or compute_v1.InstancesClient()
        logger.debug(f"Fetching instances for project: {project_id}")
        aggregated_instances = instances_client.aggregated_list(project=project_id)

        for zone, instances_scoped_list in aggregated_instances:
            if instances_scoped_list.instances:
                instances.extend(instances_scoped_list.instances)
    except API_ERRORS as e:
        logger.error(f"Error listing instances in {project_id}: {type(e).__name__}: {e}")
        raise FetchError(project_id, "instances", e) from e

    logger.debug(f"Found {len(instances)} instances in {project_id}")
    return instances


def list_ip_addresses(project_id: str, client: Optional[compute_v1.AddressesClient] = None) -> List[compute_v1.Address]:
    """List every reserved address in a project, aggregated across regions."""
    addresses = []

    try:
        addresses_client = client or compute_v1.AddressesClient()
        logger.debug(f"Fetching addresses for project: {project_id}")
        aggregated_addresses = addresses_client.aggregated_list(project=project_id)

        for region, addresses_scoped_list in aggregated_addresses:
            if addresses_scoped_list.addresses:
                addresses.extend(addresses_scoped_list.addresses)
    except API_ERRORS as e:
        logger.error(f"Error listing addresses in {project_id}: {type(e).__name__}: {e}")
        raise FetchError(project_id, "addresses", e) from e

    logger.debug(f"Found {len(addresses)} addresses in {project_id}")
    return addresses


def list_firewall_rules(project_id: str, client: Optional[compute_v1.FirewallsClient] = None) -> List[compute_v1.Firewall]:
    """List the global firewall rules of a project."""
    try:
        firewalls_client = client or compute_v1.FirewallsClient()
        logger.debug(f"Fetching firewall rules for project: {project_id}")
        rules = list(firewalls_client.list(project=project_id))
    except API_ERRORS as e:
        logger.error(f"Error listing firewall rules in {project_id}: {type(e).__name__}: {e}")
        raise FetchError(project_id, "firewall rules", e) from e

    logger.debug(f"Found {len(rules)} firewall rules in {project_id}")
    return rules


def get_projects_under_billing_account(billing_account_id: str, client: Optional[billing_v1.CloudBillingClient] = None) -> List[str]:
    """Get all project IDs with billing enabled under the specified billing account."""
    billing_account_name = f'billingAccounts/{billing_account_id}'

    try:
        billing_client = client or billing_v1.CloudBillingClient()
        logger.info(f"Fetching projects under billing account: {billing_account_id}")
        projects = list(billing_client.list_project_billing_info(name=billing_account_name))
    except exceptions.PermissionDenied as e:
        logger.error(f"Permission denied accessing billing account {billing_account_id}: {e}")
        logger.error("Make sure you have 'Billing Account Viewer' role or higher")
        raise FetchError(billing_account_name, "projects", e) from e
    except API_ERRORS as e:
        logger.error(f"Error fetching projects: {type(e).__name__}: {e}")
        raise FetchError(billing_account_name, "projects", e) from e

    project_ids = [project.project_id for project in projects if project.billing_enabled]
    logger.info(f"Found {len(project_ids)} active projects")
    return project_ids
