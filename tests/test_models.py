"""
Unit tests for the models: metric lines, annotations and run state.
"""
import json

import pytest

from statexec.errors import CommandError
from statexec.labels import LabelRenderer
from statexec.models.annotation import Annotation
from statexec.models.metric import Metric
from statexec.models.run import CommandState, Role, RunConfig, RunState


RENDERER = LabelRenderer("h", "statexec", "standalone")


def test_metric_line_for_float_and_int_values():
    gauge = Metric("statexec_memory_used_percent", 42.5, 1000)
    counter = Metric("statexec_disk_read_bytes_total", 33, 1000, {"disk": "sda"})
    assert gauge.to_prometheus_line(RENDERER) == (
        'statexec_memory_used_percent{instance="h",job="statexec",role="standalone"} 42.500000 1000'
    )
    assert counter.to_prometheus_line(RENDERER) == (
        'statexec_disk_read_bytes_total{instance="h",job="statexec",role="standalone",disk="sda"} 33 1000'
    )


def test_command_state_renders_as_integer():
    line = Metric("statexec_command_status", CommandState.RUNNING, 5).to_prometheus_line(RENDERER)
    assert line.endswith("} 1 5")


def test_annotation_line_is_compact_json():
    annotation = Annotation(time=10, time_end=10, text="Command started", tags=["statexec", "start"])
    line = annotation.to_line()
    assert line.startswith("#grafana-annotation {")
    payload = json.loads(line.split(" ", 1)[1])
    assert payload == {
        "time": 10,
        "timeEnd": 10,
        "text": "Command started",
        "tags": ["statexec", "start"],
    }


def test_run_state_uses_override_as_virtual_epoch():
    state = RunState.begin(1_700_000_000_000)
    assert state.metrics_start_time == 1_700_000_000_000
    assert state.virtual_tick_ms(0) == 1_700_000_000_000
    assert state.virtual_tick_ms(3) == 1_700_000_003_000
    assert state.virtual_now_ms() >= 1_700_000_000_000


def test_run_state_without_override_uses_wall_clock(monkeypatch):
    monkeypatch.setattr("statexec.models.run.time.time", lambda: 1234.5)
    assert RunState.begin().metrics_start_time == 1_234_500


def test_run_state_transitions_are_monotonic():
    state = RunState.begin(0)
    state.advance(CommandState.RUNNING)
    state.advance(CommandState.DONE)
    with pytest.raises(CommandError):
        state.advance(CommandState.RUNNING)


def test_sync_url_uses_configured_port():
    config = RunConfig(command=["true"], instance="i", role=Role.CLIENT, server_ip="10.0.0.5", sync_port=9001)
    assert config.sync_url == "http://10.0.0.5:9001"
