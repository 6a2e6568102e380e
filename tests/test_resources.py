"""
Tests for the system resource snapshot.
"""

import pytest

from kaspa_planner.errors import SettingsError
from kaspa_planner.resources import GB, SystemResources

DETECTOR_OUTPUT = {
    "platform": "linux",
    "timestamp": "2025-11-01T10:00:00Z",
    "memory": {"total": 17179869184, "free": 8589934592, "totalGB": "16.00", "freeGB": "8.00", "availableGB": "12.50"},
    "cpu": {"count": 8, "model": "AMD Ryzen 7", "speed": 3600},
    "disk": {"totalGB": "512.00", "freeGB": "300.25", "type": "SSD"},
    "docker": {"memoryLimitGB": "10.0"},
}


class TestFromDict:
    def test_camel_case_and_strings(self):
        resources = SystemResources.from_dict(DETECTOR_OUTPUT)

        assert resources.memory.total_gb == 16.0
        assert resources.memory.available_gb == 12.5
        assert resources.cpu.count == 8
        assert resources.disk.free_gb == 300.25
        assert resources.disk.type == "SSD"
        assert resources.docker_memory_limit_gb == 10.0
        assert resources.timestamp == "2025-11-01T10:00:00Z"

    def test_available_defaults_to_free(self):
        resources = SystemResources.from_dict({"memory": {"free_gb": 6}})
        assert resources.memory.available_gb == 6.0

    def test_missing_sections(self):
        resources = SystemResources.from_dict({})

        assert resources.memory.total_gb == 0.0
        assert resources.disk.type == "unknown"
        assert resources.docker_memory_limit_gb is None

    def test_non_numeric(self):
        with pytest.raises(SettingsError, match="memory.total_gb"):
            SystemResources.from_dict({"memory": {"total_gb": "sixteen"}})


class TestEffectiveRam:
    def test_without_docker(self):
        assert SystemResources.simple(12, 100, 4).effective_ram_gb == 12

    def test_docker_caps(self):
        assert SystemResources.simple(12, 100, 4, docker_memory_limit_gb=6).effective_ram_gb == 6

    def test_docker_above_ram(self):
        assert SystemResources.simple(12, 100, 4, docker_memory_limit_gb=32).effective_ram_gb == 12


def test_simple_and_to_dict():
    resources = SystemResources.simple(16, 200, 4, disk_type="HDD")
    data = resources.to_dict()

    assert resources.memory.total == 16 * GB
    assert data["disk"]["type"] == "HDD"
    assert data["effective_ram_gb"] == 16
    assert SystemResources.from_dict(data).memory.available_gb == 16
