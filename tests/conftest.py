"""
Shared fixtures for statexec tests.

Runs use a fixed-value collector and a short sampling interval so that a
whole command lifecycle fits in well under a second.
"""
import asyncio
import socket
from pathlib import Path

import aiohttp
import pytest

from statexec.collectors.base import (
    BaseCollector,
    CpuSample,
    DiskSample,
    MemorySample,
    NetworkSample,
)
from statexec.models.run import Role, RunConfig
from statexec.runner import CommandRunner
from statexec.sink import FileSink

FAST_INTERVAL = 0.05


class StaticCollector(BaseCollector):
    """Same counters on every call."""

    def __init__(self):
        self.calls = 0

    def collect_cpu(self):
        self.calls += 1
        return [CpuSample(cpu="cpu0", seconds_per_mode={"user": 1.5, "idle": 10.0})]

    def collect_memory(self):
        return MemorySample(
            total=1000, available=600, used=400, free=500,
            buffers=10, cached=90, used_percent=42.5,
        )

    def collect_network(self):
        return [NetworkSample(interface="eth0", sent_bytes=11, recv_bytes=22)]

    def collect_disk(self):
        return [DiskSample(device="sda", read_bytes=33, write_bytes=44)]


def make_config(metrics_file: Path, command, **overrides) -> RunConfig:
    fields = dict(
        command=list(command),
        instance="test-host",
        metrics_file=str(metrics_file),
        role=Role.STANDALONE,
    )
    fields.update(overrides)
    return RunConfig(**fields)


def make_runner(metrics_file: Path, command, **overrides) -> CommandRunner:
    config = make_config(metrics_file, command, **overrides)
    return CommandRunner(
        config, StaticCollector(), FileSink(metrics_file), sampling_interval=FAST_INTERVAL
    )


def read_lines(path: Path) -> list[str]:
    if not path.exists():
        return []
    return path.read_text(encoding="utf-8").splitlines()


def annotation_lines(path: Path) -> list[str]:
    return [line for line in read_lines(path) if line.startswith("#grafana-annotation ")]


def status_values(path: Path) -> list[int]:
    """command_status values in file order."""
    values = []
    for line in read_lines(path):
        if line.startswith("statexec_command_status{"):
            values.append(int(line.split(" ")[1]))
    return values


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def metrics_file(tmp_path) -> Path:
    return tmp_path / "metrics.prom"


@pytest.fixture
def collector() -> StaticCollector:
    return StaticCollector()


async def wait_until_listening(url: str, timeout: float = 5.0) -> int:
    """Poll ``url`` until the sync server answers."""
    async def _poll():
        async with aiohttp.ClientSession() as session:
            while True:
                try:
                    async with session.get(url) as resp:
                        return resp.status
                except aiohttp.ClientConnectionError:
                    await asyncio.sleep(0.05)

    return await asyncio.wait_for(_poll(), timeout)
