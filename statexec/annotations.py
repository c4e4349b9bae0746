"""샘플 옆에 기록되는 시작/종료 어노테이션"""

from statexec.models.annotation import Annotation
from statexec.sink import FileSink


class AnnotationWriter:
    def __init__(self, sink: FileSink, instance: str, job: str, role: str) -> None:
        self.sink = sink
        self.instance = instance
        self.job = job
        self.role = role

    def write(self, text: str, phase: str, time_ms: int) -> Annotation:
        annotation = Annotation(
            time=time_ms,
            time_end=time_ms,
            text=text,
            tags=[
                "statexec",
                phase,
                f"instance={self.instance}",
                f"job={self.job}",
                f"role={self.role}",
            ],
        )
        self.sink.append(annotation.to_line() + "\n")
        return annotation

    def started(self, time_ms: int) -> Annotation:
        return self.write("Command started", "start", time_ms)

    def done(self, time_ms: int) -> Annotation:
        return self.write("Command done", "done", time_ms)
