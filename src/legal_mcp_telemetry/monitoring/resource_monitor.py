"""
Resource Utilization Monitoring

Samples memory usage of the current process. CPU utilization is reported
as a fixed 0.0 placeholder; a real figure needs a rate computed between
two samples and is not produced here.
"""

import asyncio
from datetime import datetime
from functools import partial
from typing import Callable, Optional, Tuple

import psutil
import structlog

from ..config.settings import ResourceOptions
from ..core.exceptions import ResourceSamplingError
from .types import CpuUsage, MemoryUsage, ResourceUsage, utc_now

logger = structlog.get_logger(__name__)

# Returns (used_bytes, total_bytes)
MemoryProbe = Callable[[], Tuple[int, int]]


def process_memory_probe(limit_bytes: Optional[int] = None) -> Tuple[int, int]:
    """
    Resident set size of this process against its memory budget.

    The budget is ``limit_bytes`` when given (a container or cgroup limit,
    say), otherwise total physical memory.
    """
    rss = psutil.Process().memory_info().rss
    total = limit_bytes or psutil.virtual_memory().total
    return rss, total


class ResourceMonitor:
    """
    Periodic sampler of process resource usage.

    The most recent sample is kept as ``last usage``; every successful
    sample overwrites it.
    """

    def __init__(self,
                 options: Optional[ResourceOptions] = None,
                 memory_probe: Optional[MemoryProbe] = None):
        self.options = options or ResourceOptions()
        self.memory_probe = memory_probe or partial(
            process_memory_probe, self.options.memory_limit_bytes
        )
        self.logger = logger.bind(component="ResourceMonitor")

        self._start_time = utc_now()
        self._last_usage: Optional[ResourceUsage] = None

    def _uptime(self) -> int:
        return int((utc_now() - self._start_time).total_seconds())

    async def get_resource_usage(self) -> ResourceUsage:
        """Sample resource usage; a zeroed snapshot when disabled."""

        if self.options.disabled:
            return ResourceUsage(timestamp=utc_now(), uptime=self._uptime())

        try:
            # psutil reads /proc synchronously
            used, total = await asyncio.to_thread(self.memory_probe)
        except Exception as e:
            self.logger.error("Failed to get resource usage", error=str(e))
            raise ResourceSamplingError(f"Failed to sample resource usage: {e}") from e

        self._last_usage = ResourceUsage(
            timestamp=utc_now(),
            memory=MemoryUsage(
                used=used,
                total=total,
                usage_percent=used / total if total else 0.0,
            ),
            cpu=CpuUsage(usage_percent=0.0),
            uptime=self._uptime(),
        )

        self.logger.debug("Resource usage sampled",
                          memory_used=used,
                          memory_percent=self._last_usage.memory.usage_percent)

        return self._last_usage

    def get_last_usage(self) -> Optional[ResourceUsage]:
        return self._last_usage

    def get_start_time(self) -> datetime:
        return self._start_time
