"""추가 전용(append-only) 메트릭 파일"""

import logging
import os
from pathlib import Path

from statexec.errors import SinkError

logger = logging.getLogger(__name__)


class FileSink:
    """Appends whole text blocks to the metrics file.

    The file is reopened for every append so whatever was written before a
    fatal error stays on disk.
    """

    def __init__(self, path: str | os.PathLike) -> None:
        self.path = Path(path)

    def reset(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise SinkError(f"error removing metrics file {self.path}: {exc}") from exc
        else:
            logger.debug("Removed stale metrics file %s", self.path)

    def append(self, text: str) -> None:
        try:
            with open(self.path, "a", encoding="utf-8") as fh:
                fh.write(text)
        except OSError as exc:
            raise SinkError(f"error writing to metrics file {self.path}: {exc}") from exc
