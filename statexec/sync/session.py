"""동기화 대상 단일 커맨드의 서버 측 세션 상태"""

import asyncio
from dataclasses import dataclass, field


@dataclass
class SyncSession:
    """Idle -> started -> finished, flipped only while holding ``lock``"""

    started: bool = False
    finished: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def phase(self) -> str:
        if self.finished:
            return "finished"
        if self.started:
            return "started"
        return "idle"
