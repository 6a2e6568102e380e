"""
Resource probe.

Measures the local machine with psutil and produces a SystemResources
snapshot. The planning core never calls this itself; callers pass the
snapshot in (or load one from JSON).
"""

import logging
import platform
import subprocess
from datetime import datetime, timezone
from pathlib import Path

import psutil

from kaspa_planner.resources import GB, CpuInfo, DiskInfo, MemoryInfo, SystemResources

logger = logging.getLogger(__name__)

SYS_BLOCK = Path("/sys/class/block")
DOCKER_TIMEOUT = 5


def _device_for_path(path: str) -> str | None:
    best = None
    target = str(Path(path).resolve())
    for part in psutil.disk_partitions(all=False):
        mount = part.mountpoint
        if target == mount or target.startswith(mount.rstrip("/") + "/"):
            if best is None or len(mount) > len(best.mountpoint):
                best = part
    if best is None or not best.device.startswith("/dev/"):
        return None
    return Path(best.device).name


def detect_disk_type(path: str = "/", sys_block: Path = SYS_BLOCK) -> str:
    """'SSD', 'HDD' or 'unknown', from the kernel's rotational flag."""
    device = _device_for_path(path)
    if not device:
        return "unknown"

    node = sys_block / device
    candidates = [node / "queue" / "rotational"]
    try:
        # Partitions live under their parent disk.
        candidates.append(node.resolve().parent / "queue" / "rotational")
    except OSError:
        pass

    for candidate in candidates:
        try:
            flag = candidate.read_text().strip()
        except OSError:
            continue
        if flag == "1":
            return "HDD"
        if flag == "0":
            return "SSD"
    return "unknown"


def detect_docker_memory_limit(host_total: int) -> float | None:
    """Docker's memory ceiling in GB, or None when Docker is absent or unlimited."""
    try:
        result = subprocess.run(
            ["docker", "info", "--format", "{{.MemTotal}}"],
            capture_output=True,
            text=True,
            timeout=DOCKER_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("docker info unavailable: %s", e)
        return None

    if result.returncode != 0:
        logger.debug("docker info failed: %s", result.stderr.strip())
        return None
    try:
        mem_total = int(result.stdout.strip())
    except ValueError:
        return None
    if mem_total <= 0 or mem_total >= host_total:
        return None
    return mem_total / GB


def detect_resources(path: str = "/", check_docker: bool = True) -> SystemResources:
    """
    Measure memory, CPU and disk of this machine.

    Args:
        path: Filesystem path whose disk is measured.
        check_docker: Query ``docker info`` for a memory ceiling.

    Returns:
        SystemResources snapshot.
    """
    mem = psutil.virtual_memory()
    disk = psutil.disk_usage(path)
    freq = psutil.cpu_freq()

    resources = SystemResources(
        memory=MemoryInfo(
            total=mem.total,
            free=mem.free,
            total_gb=round(mem.total / GB, 2),
            free_gb=round(mem.free / GB, 2),
            available_gb=round(mem.available / GB, 2),
        ),
        cpu=CpuInfo(
            count=psutil.cpu_count(logical=True) or 1,
            model=platform.processor() or platform.machine(),
            speed=freq.current if freq else 0.0,
        ),
        disk=DiskInfo(
            total=disk.total,
            free=disk.free,
            total_gb=round(disk.total / GB, 2),
            free_gb=round(disk.free / GB, 2),
            type=detect_disk_type(path),
        ),
        platform=platform.system().lower(),
        timestamp=datetime.now(timezone.utc).isoformat(),
        docker_memory_limit_gb=detect_docker_memory_limit(mem.total) if check_docker else None,
    )
    logger.debug("Detected resources: %s", resources)
    return resources
