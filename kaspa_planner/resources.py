"""
System resource snapshot consumed by the rater and recommender.

The values arrive already measured (see ``kaspa_planner.probe`` for the
built-in psutil detector). ``from_dict`` accepts the detector's JSON
shape, including camelCase keys and numeric strings such as "15.50".
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from kaspa_planner.errors import SettingsError

GB = 1024**3


def _number(value: Any, name: str, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        raise SettingsError(f"Resource field '{name}' is not numeric: {value!r}") from None


def _pick(data: dict[str, Any], *names: str) -> Any:
    for name in names:
        if name in data:
            return data[name]
    return None


@dataclass(frozen=True)
class MemoryInfo:
    total: int = 0
    free: int = 0
    total_gb: float = 0.0
    free_gb: float = 0.0
    available_gb: float = 0.0


@dataclass(frozen=True)
class CpuInfo:
    count: int = 0
    model: str = "unknown"
    speed: float = 0.0


@dataclass(frozen=True)
class DiskInfo:
    total: int = 0
    free: int = 0
    total_gb: float = 0.0
    free_gb: float = 0.0
    type: str = "unknown"


@dataclass(frozen=True)
class SystemResources:
    """Capacity of one machine for the duration of a planning call."""

    memory: MemoryInfo = field(default_factory=MemoryInfo)
    cpu: CpuInfo = field(default_factory=CpuInfo)
    disk: DiskInfo = field(default_factory=DiskInfo)
    platform: str = "linux"
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    docker_memory_limit_gb: float | None = None

    @property
    def effective_ram_gb(self) -> float:
        """Available RAM, capped by the Docker memory ceiling if one is set."""
        if self.docker_memory_limit_gb is None:
            return self.memory.available_gb
        return min(self.memory.available_gb, self.docker_memory_limit_gb)

    @classmethod
    def simple(
        cls,
        ram_gb: float,
        disk_gb: float,
        cpus: int,
        disk_type: str = "SSD",
        docker_memory_limit_gb: float | None = None,
    ) -> "SystemResources":
        """Build a snapshot from headline numbers (total == free == available)."""
        return cls(
            memory=MemoryInfo(
                total=int(ram_gb * GB),
                free=int(ram_gb * GB),
                total_gb=ram_gb,
                free_gb=ram_gb,
                available_gb=ram_gb,
            ),
            cpu=CpuInfo(count=cpus),
            disk=DiskInfo(
                total=int(disk_gb * GB),
                free=int(disk_gb * GB),
                total_gb=disk_gb,
                free_gb=disk_gb,
                type=disk_type,
            ),
            docker_memory_limit_gb=docker_memory_limit_gb,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SystemResources":
        memory = data.get("memory") or {}
        cpu = data.get("cpu") or {}
        disk = data.get("disk") or {}

        total_gb = _number(_pick(memory, "total_gb", "totalGB"), "memory.total_gb")
        free_gb = _number(_pick(memory, "free_gb", "freeGB"), "memory.free_gb")
        available_gb = _number(
            _pick(memory, "available_gb", "availableGB"), "memory.available_gb", free_gb
        )

        docker = _pick(data, "docker_memory_limit_gb", "dockerMemoryLimitGB")
        if docker is None and isinstance(data.get("docker"), dict):
            docker = _pick(data["docker"], "memory_limit_gb", "memoryLimitGB")

        return cls(
            memory=MemoryInfo(
                total=int(_number(memory.get("total"), "memory.total")),
                free=int(_number(memory.get("free"), "memory.free")),
                total_gb=total_gb,
                free_gb=free_gb,
                available_gb=available_gb,
            ),
            cpu=CpuInfo(
                count=int(_number(cpu.get("count"), "cpu.count")),
                model=str(cpu.get("model") or "unknown"),
                speed=_number(cpu.get("speed"), "cpu.speed"),
            ),
            disk=DiskInfo(
                total=int(_number(disk.get("total"), "disk.total")),
                free=int(_number(disk.get("free"), "disk.free")),
                total_gb=_number(_pick(disk, "total_gb", "totalGB"), "disk.total_gb"),
                free_gb=_number(_pick(disk, "free_gb", "freeGB"), "disk.free_gb"),
                type=str(disk.get("type") or "unknown"),
            ),
            platform=str(data.get("platform") or "linux"),
            timestamp=str(
                data.get("timestamp") or datetime.now(timezone.utc).isoformat()
            ),
            docker_memory_limit_gb=(
                None if docker is None else _number(docker, "docker_memory_limit_gb")
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": self.platform,
            "timestamp": self.timestamp,
            "memory": {
                "total": self.memory.total,
                "free": self.memory.free,
                "total_gb": self.memory.total_gb,
                "free_gb": self.memory.free_gb,
                "available_gb": self.memory.available_gb,
            },
            "cpu": {
                "count": self.cpu.count,
                "model": self.cpu.model,
                "speed": self.cpu.speed,
            },
            "disk": {
                "total": self.disk.total,
                "free": self.disk.free,
                "total_gb": self.disk.total_gb,
                "free_gb": self.disk.free_gb,
                "type": self.disk.type,
            },
            "docker_memory_limit_gb": self.docker_memory_limit_gb,
            "effective_ram_gb": self.effective_ram_gb,
        }
