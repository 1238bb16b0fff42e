"""
Unit tests for the resource monitor.
"""

import pytest

from legal_mcp_telemetry.config.settings import ResourceOptions
from legal_mcp_telemetry.core.exceptions import ResourceSamplingError
from legal_mcp_telemetry.monitoring.resource_monitor import ResourceMonitor, process_memory_probe


class TestResourceMonitor:
    """Test resource sampling."""

    @pytest.mark.asyncio
    async def test_sample_updates_last_usage(self, memory_probe) -> None:
        monitor = ResourceMonitor(memory_probe=memory_probe)
        assert monitor.get_last_usage() is None

        usage = await monitor.get_resource_usage()

        assert usage.memory.used == 500_000
        assert usage.memory.total == 1_000_000
        assert usage.memory.usage_percent == pytest.approx(0.5)
        assert usage.cpu.usage_percent == 0.0
        assert monitor.get_last_usage() is usage

    @pytest.mark.asyncio
    async def test_each_sample_overwrites_last_usage(self, memory_probe) -> None:
        monitor = ResourceMonitor(memory_probe=memory_probe)

        await monitor.get_resource_usage()
        memory_probe.fraction = 0.75
        await monitor.get_resource_usage()

        assert monitor.get_last_usage().memory.usage_percent == pytest.approx(0.75)

    @pytest.mark.asyncio
    async def test_disabled_returns_zeroed_snapshot_without_state_change(self, memory_probe) -> None:
        monitor = ResourceMonitor(ResourceOptions(disabled=True), memory_probe=memory_probe)

        usage = await monitor.get_resource_usage()

        assert usage.memory.used == 0
        assert usage.memory.total == 0
        assert usage.memory.usage_percent == 0
        assert usage.cpu.usage_percent == 0
        assert usage.uptime >= 0
        assert monitor.get_last_usage() is None
        assert memory_probe.calls == 0

    @pytest.mark.asyncio
    async def test_probe_failure_raises_sampling_error(self) -> None:
        def broken_probe():
            raise OSError("/proc unavailable")

        monitor = ResourceMonitor(memory_probe=broken_probe)

        with pytest.raises(ResourceSamplingError, match="/proc unavailable"):
            await monitor.get_resource_usage()
        assert monitor.get_last_usage() is None

    def test_default_probe_reads_process_memory(self) -> None:
        used, total = process_memory_probe()

        assert 0 < used < total

    @pytest.mark.asyncio
    async def test_memory_limit_is_usage_denominator(self) -> None:
        used, _ = process_memory_probe()
        monitor = ResourceMonitor(ResourceOptions(memory_limit_bytes=used * 2))

        usage = await monitor.get_resource_usage()

        assert usage.memory.total == used * 2
        assert 0.25 < usage.memory.usage_percent < 1.0

    @pytest.mark.asyncio
    async def test_usage_to_dict(self, memory_probe) -> None:
        usage = await ResourceMonitor(memory_probe=memory_probe).get_resource_usage()

        data = usage.to_dict()

        assert data["memory"]["usage_percent"] == pytest.approx(0.5)
        assert data["cpu"] == {"usage_percent": 0.0}
        assert isinstance(data["timestamp"], str)
