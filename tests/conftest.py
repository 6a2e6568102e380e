import pytest

from kaspa_planner.catalog import default_catalog
from kaspa_planner.resources import SystemResources


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def machine():
    """Factory for SystemResources snapshots from headline numbers."""

    def _make(ram_gb, disk_gb=500, cpus=8, disk_type="SSD", docker_limit=None):
        return SystemResources.simple(
            ram_gb, disk_gb, cpus, disk_type=disk_type, docker_memory_limit_gb=docker_limit
        )

    return _make
