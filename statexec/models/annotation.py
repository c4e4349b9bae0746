"""Grafana 어노테이션 모델"""

import json
from dataclasses import dataclass, field

ANNOTATION_MARKER = "#grafana-annotation"


@dataclass
class Annotation:
    """Point-in-time marker correlated with the sample timeline"""

    time: int
    time_end: int
    text: str
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "timeEnd": self.time_end,
            "text": self.text,
            "tags": self.tags,
        }

    def to_line(self) -> str:
        payload = json.dumps(self.to_dict(), separators=(",", ":"))
        return f"{ANNOTATION_MARKER} {payload}"
