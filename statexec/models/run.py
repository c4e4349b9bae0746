"""실행 설정 및 상태 모델"""

import enum
import time
from dataclasses import dataclass, field

from statexec.config import DEFAULT_METRICS_FILE, DEFAULT_SYNC_PORT, JOB_NAME
from statexec.errors import CommandError


class Role(str, enum.Enum):
    STANDALONE = "standalone"
    CLIENT = "client"
    SERVER = "server"


class CommandState(enum.IntEnum):
    """Value of the command_status metric."""

    PENDING = 0
    RUNNING = 1
    DONE = 2


@dataclass(frozen=True)
class RunConfig:
    """Everything a run needs, resolved once at startup"""

    command: list[str]
    instance: str
    metrics_file: str = DEFAULT_METRICS_FILE
    job: str = JOB_NAME
    role: Role = Role.STANDALONE
    extra_labels: dict[str, str] = field(default_factory=dict)
    metrics_start_time_override: int | None = None  # ms since epoch
    delay_before: float = 0
    delay_after: float = 0
    server_ip: str = ""
    sync_port: int = DEFAULT_SYNC_PORT
    sync_wait_for_stop: bool = True

    @property
    def sync_url(self) -> str:
        return f"http://{self.server_ip}:{self.sync_port}"


@dataclass
class RunState:
    """Per-run state shared by the runner and the sampler.

    ``metrics_start_time`` is the virtual epoch in milliseconds; every
    timestamp written during the run is derived from it plus the real time
    elapsed since ``real_start``.
    """

    metrics_start_time: int
    real_start: float = field(default_factory=time.monotonic)
    state: CommandState = CommandState.PENDING

    @classmethod
    def begin(cls, override: int | None = None) -> "RunState":
        if override is not None:
            return cls(metrics_start_time=override)
        return cls(metrics_start_time=int(time.time() * 1000))

    def advance(self, state: CommandState) -> None:
        if state < self.state:
            raise CommandError(
                f"command state cannot go back from {self.state.name} to {state.name}"
            )
        self.state = state

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.real_start) * 1000)

    def virtual_now_ms(self) -> int:
        return self.metrics_start_time + self.elapsed_ms()

    def virtual_tick_ms(self, seconds_since_start: int) -> int:
        return self.metrics_start_time + seconds_since_start * 1000
