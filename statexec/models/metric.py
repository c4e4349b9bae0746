"""통일된 메트릭 모델"""

from dataclasses import dataclass, field

from statexec.labels import LabelRenderer


@dataclass
class Metric:
    """One observation of a metric family at a virtual timestamp"""

    name: str
    value: float | int
    timestamp_ms: int
    labels: dict[str, str] = field(default_factory=dict)

    def render_value(self) -> str:
        if isinstance(self.value, float):
            return f"{self.value:f}"
        return str(int(self.value))

    def to_prometheus_line(self, renderer: LabelRenderer) -> str:
        label_str = renderer.render(self.labels)
        return f"{self.name}{{{label_str}}} {self.render_value()} {self.timestamp_ms}"
