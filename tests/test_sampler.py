"""
Tests for statexec/sampler.py.

Tests cover:
  - build_batch: every metric family, label order, virtual timestamps
  - run: immediate first sample, exactly one extra sample after quit
  - sink failures propagate out of the loop
"""
import asyncio

import pytest

from conftest import FAST_INTERVAL, StaticCollector, read_lines
from statexec.errors import SinkError
from statexec.labels import LabelRenderer
from statexec.models.run import CommandState, RunState
from statexec.sampler import MetricsSampler
from statexec.sink import FileSink

START = 1_700_000_000_000
BASE = 'instance="h",job="statexec",role="standalone"'


def make_sampler(path, state=None, extra_labels=None):
    return MetricsSampler(
        StaticCollector(),
        FileSink(path),
        LabelRenderer("h", "statexec", "standalone", extra_labels),
        state or RunState.begin(START),
        interval=FAST_INTERVAL,
    )


def test_batch_contains_every_family(metrics_file):
    batch = make_sampler(metrics_file).build_batch(0).splitlines()
    names = {line.split("{", 1)[0] for line in batch}
    assert names == {
        "statexec_command_status",
        "statexec_cpu_seconds_total",
        "statexec_memory_total_bytes",
        "statexec_memory_available_bytes",
        "statexec_memory_used_bytes",
        "statexec_memory_free_bytes",
        "statexec_memory_buffers_bytes",
        "statexec_memory_cached_bytes",
        "statexec_memory_used_percent",
        "statexec_network_sent_bytes_total",
        "statexec_network_received_bytes_total",
        "statexec_disk_read_bytes_total",
        "statexec_disk_write_bytes_total",
        "statexec_seconds_since_start",
        "statexec_metric_generation_duration_ms",
    }


def test_batch_lines_are_rendered_with_virtual_timestamp(metrics_file):
    batch = make_sampler(metrics_file, extra_labels={"env": "dev"}).build_batch(2)
    ts = START + 2000
    assert f'statexec_command_status{{{BASE},env="dev"}} 0 {ts}' in batch
    assert (
        f'statexec_cpu_seconds_total{{{BASE},cpu="cpu0",mode="user",env="dev"}} 1.500000 {ts}'
        in batch
    )
    assert f'statexec_memory_used_percent{{{BASE},env="dev"}} 42.500000 {ts}' in batch
    assert (
        f'statexec_network_received_bytes_total{{{BASE},interface="eth0",env="dev"}} 22 {ts}'
        in batch
    )
    assert f'statexec_disk_write_bytes_total{{{BASE},disk="sda",env="dev"}} 44 {ts}' in batch
    assert f'statexec_seconds_since_start{{{BASE},env="dev"}} 2 {ts}' in batch


def test_batch_reflects_current_command_state(metrics_file):
    state = RunState.begin(START)
    sampler = make_sampler(metrics_file, state=state)
    state.advance(CommandState.RUNNING)
    assert f"statexec_command_status{{{BASE}}} 1 {START}" in sampler.build_batch(0)


def test_sample_writes_one_batch(metrics_file):
    sampler = make_sampler(metrics_file)
    appended = []
    sampler.sink.append = appended.append
    sampler.sample(0)

    assert len(appended) == 1
    assert len(appended[0].splitlines()) == len(sampler.build_batch(0).splitlines())
    assert appended[0].endswith("\n")
    assert sampler.samples_written == 1


async def test_first_sample_is_at_start_time(metrics_file):
    sampler = make_sampler(metrics_file)
    quit_event = asyncio.Event()
    quit_event.set()
    await sampler.run(quit_event)

    seconds = [
        line for line in read_lines(metrics_file)
        if line.startswith("statexec_seconds_since_start")
    ]
    assert seconds[0].endswith(f"}} 0 {START}")
    assert seconds[1].endswith(f"}} 1 {START + 1000}")


async def test_first_sample_event_is_set_after_first_write(metrics_file):
    sampler = make_sampler(metrics_file)
    quit_event = asyncio.Event()
    first_sample = asyncio.Event()
    task = asyncio.create_task(sampler.run(quit_event, first_sample))

    await asyncio.wait_for(first_sample.wait(), 2)
    assert sampler.samples_written >= 1
    assert any(
        line.startswith("statexec_seconds_since_start") for line in read_lines(metrics_file)
    )

    quit_event.set()
    await asyncio.wait_for(task, 2)


async def test_quit_before_first_tick_still_takes_one_more_sample(metrics_file):
    sampler = make_sampler(metrics_file)
    quit_event = asyncio.Event()
    task = asyncio.create_task(sampler.run(quit_event))
    quit_event.set()
    await asyncio.wait_for(task, 2)
    assert sampler.samples_written == 2


async def test_exactly_one_sample_after_quit(metrics_file):
    sampler = make_sampler(metrics_file)
    quit_event = asyncio.Event()
    task = asyncio.create_task(sampler.run(quit_event))

    await asyncio.sleep(FAST_INTERVAL * 4.5)
    quit_event.set()
    before_quit = sampler.samples_written
    await asyncio.wait_for(task, 2)

    assert before_quit >= 2
    assert sampler.samples_written == before_quit + 1


async def test_sampler_waits_for_next_tick_before_stopping(metrics_file):
    sampler = make_sampler(metrics_file)
    sampler.interval = 0.3
    quit_event = asyncio.Event()
    task = asyncio.create_task(sampler.run(quit_event))
    await asyncio.sleep(0.05)
    quit_event.set()
    await asyncio.sleep(0.1)
    assert not task.done()
    await asyncio.wait_for(task, 2)


async def test_sink_error_propagates(tmp_path):
    sampler = make_sampler(tmp_path / "nope" / "metrics.prom")
    with pytest.raises(SinkError):
        await sampler.run(asyncio.Event())
