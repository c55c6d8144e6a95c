"""
tests/conftest.py - shared fixtures

Factories for Compute Engine resource messages used across the test modules.
"""

import datetime

import pytest
from google.cloud import compute_v1

DEBIAN_LICENSE = "https://www.googleapis.com/compute/v1/projects/debian-cloud/global/licenses/debian-12-bookworm"
MACHINE_TYPE_URL = "https://www.googleapis.com/compute/v1/projects/demo/zones/us-central1-a/machineTypes/e2-medium"


@pytest.fixture
def days_ago():
    """RFC 3339 timestamp `days` days before now, or before `now` when given."""
    def factory(days, now=None):
        now = now or datetime.datetime.now(datetime.timezone.utc)
        return (now - datetime.timedelta(days=days)).isoformat()
    return factory


@pytest.fixture
def fixed_now():
    return datetime.datetime(2025, 6, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)


@pytest.fixture
def make_instance():
    def factory(name="vm-1", status="TERMINATED", last_stop_timestamp="", last_start_timestamp="",
                licenses=(DEBIAN_LICENSE,), with_disk=True, machine_type=MACHINE_TYPE_URL):
        disks = []
        if with_disk:
            disks.append(compute_v1.AttachedDisk(device_name=f"{name}-boot", disk_size_gb=10, licenses=list(licenses)))
        return compute_v1.Instance(
            name=name,
            status=status,
            machine_type=machine_type,
            last_stop_timestamp=last_stop_timestamp,
            last_start_timestamp=last_start_timestamp,
            disks=disks,
        )
    return factory


@pytest.fixture
def make_address():
    def factory(name="ip-1", status="RESERVED", address_type="EXTERNAL", address="34.1.2.3"):
        return compute_v1.Address(name=name, status=status, address_type=address_type, address=address)
    return factory


@pytest.fixture
def make_firewall():
    def factory(name="fw-1", disabled=False, direction="INGRESS", source_ranges=("0.0.0.0/0",),
                allowed_ports=("22",), denied_ports=None):
        kwargs = {
            "name": name,
            "disabled": disabled,
            "direction": direction,
            "source_ranges": list(source_ranges),
        }
        if allowed_ports is not None:
            kwargs["allowed"] = [compute_v1.Allowed(I_p_protocol="tcp", ports=list(allowed_ports))]
        if denied_ports is not None:
            kwargs["denied"] = [compute_v1.Denied(I_p_protocol="tcp", ports=list(denied_ports))]
        return compute_v1.Firewall(**kwargs)
    return factory
