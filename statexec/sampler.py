"""주기적 호스트 메트릭 샘플링 루프

경과 0초에 한 번, 이후 주기마다 한 번씩 배치를 기록한다. quit 이벤트가
설정되어도 바로 멈추지 않고 다음 예정 틱을 한 번 더 샘플링하므로
마지막 정규 틱과 실행 종료 사이 구간이 항상 기록된다.
종료는 최대 한 주기만큼 늦어질 수 있다.
"""

import asyncio
import logging
import time

from statexec.collectors.base import BaseCollector
from statexec.config import METRIC_PREFIX, SAMPLING_INTERVAL
from statexec.labels import LabelRenderer
from statexec.models.metric import Metric
from statexec.models.run import RunState
from statexec.sink import FileSink

logger = logging.getLogger(__name__)

MEMORY_FIELDS = ("total", "available", "used", "free", "buffers", "cached")


class MetricsSampler:
    def __init__(
        self,
        collector: BaseCollector,
        sink: FileSink,
        renderer: LabelRenderer,
        run_state: RunState,
        interval: float = SAMPLING_INTERVAL,
        prefix: str = METRIC_PREFIX,
    ) -> None:
        self.collector = collector
        self.sink = sink
        self.renderer = renderer
        self.run_state = run_state
        self.interval = interval
        self.prefix = prefix
        self.samples_written = 0

    async def run(
        self, quit_event: asyncio.Event, first_sample: asyncio.Event | None = None
    ) -> None:
        loop = asyncio.get_running_loop()
        elapsed = 0
        self.sample(elapsed)
        if first_sample is not None:
            first_sample.set()

        next_tick = loop.time() + self.interval
        stopping = False
        while True:
            delay = max(0.0, next_tick - loop.time())
            if stopping:
                await asyncio.sleep(delay)
            else:
                try:
                    await asyncio.wait_for(quit_event.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
                else:
                    logger.debug("Sampler asked to stop, finishing next tick")
                    stopping = True
                    continue

            elapsed += 1
            next_tick += self.interval
            self.sample(elapsed)
            if stopping:
                logger.debug("Sampler stopped after %d samples", self.samples_written)
                return

    def sample(self, seconds_since_start: int) -> None:
        self.sink.append(self.build_batch(seconds_since_start))
        self.samples_written += 1

    def _metric(self, name: str, value, ts: int, labels: dict | None = None) -> Metric:
        return Metric(self.prefix + name, value, ts, labels or {})

    def build_batch(self, seconds_since_start: int) -> str:
        started = time.monotonic()
        ts = self.run_state.virtual_tick_ms(seconds_since_start)
        metrics: list[Metric] = [
            self._metric("command_status", int(self.run_state.state), ts)
        ]

        for cpu in self.collector.collect_cpu():
            for mode, seconds in cpu.seconds_per_mode.items():
                metrics.append(
                    self._metric(
                        "cpu_seconds_total",
                        float(seconds),
                        ts,
                        {"cpu": cpu.cpu, "mode": mode},
                    )
                )

        memory = self.collector.collect_memory()
        for field_name in MEMORY_FIELDS:
            metrics.append(
                self._metric(
                    f"memory_{field_name}_bytes", int(getattr(memory, field_name)), ts
                )
            )
        metrics.append(
            self._metric("memory_used_percent", float(memory.used_percent), ts)
        )

        for nic in self.collector.collect_network():
            labels = {"interface": nic.interface}
            metrics.append(
                self._metric("network_sent_bytes_total", nic.sent_bytes, ts, labels)
            )
            metrics.append(
                self._metric("network_received_bytes_total", nic.recv_bytes, ts, labels)
            )

        for disk in self.collector.collect_disk():
            labels = {"disk": disk.device}
            metrics.append(
                self._metric("disk_read_bytes_total", disk.read_bytes, ts, labels)
            )
            metrics.append(
                self._metric("disk_write_bytes_total", disk.write_bytes, ts, labels)
            )

        metrics.append(self._metric("seconds_since_start", seconds_since_start, ts))
        duration_ms = int((time.monotonic() - started) * 1000)
        metrics.append(self._metric("metric_generation_duration_ms", duration_ms, ts))

        lines = [metric.to_prometheus_line(self.renderer) for metric in metrics]
        return "\n".join(lines) + "\n"
