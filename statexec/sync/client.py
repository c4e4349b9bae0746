"""시작/종료 동기화 프로토콜 - 리더(클라이언트) 측"""

import asyncio
import logging

import aiohttp

from statexec.errors import SyncError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=10)


class SyncClient:
    """Sends ``POST /start`` and ``POST /stop`` to a statexec server"""

    def __init__(self, base_url: str, timeout: aiohttp.ClientTimeout = DEFAULT_TIMEOUT) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def start(self) -> int:
        return await self._post("/start")

    async def stop(self) -> int:
        return await self._post("/stop")

    async def _post(self, path: str) -> int:
        url = self.base_url + path
        logger.info("Sending sync request to %s", url)
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(url, headers={"Content-Type": "text/plain"}) as resp:
                    body = await resp.text()
                    if resp.status >= 300:
                        raise SyncError(
                            f"sync request {url} rejected: {resp.status} {body.strip()}"
                        )
                    logger.info("Sync %s done (%d)", path, resp.status)
                    return resp.status
        except aiohttp.ClientError as exc:
            raise SyncError(f"error sending sync request {url}: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise SyncError(f"sync request {url} timed out") from exc
