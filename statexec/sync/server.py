"""시작/종료 동기화 프로토콜 - 팔로워(서버) 측

엔드포인트:
    GET  /        안내 페이지
    POST /start   201 후 커맨드 시작, 이미 시작됐으면 409
    POST /stop    시작 전 412, 실행 중이면 202 + 인터럽트,
                  종료 후 204
"""

import asyncio
import logging

from aiohttp import web

from statexec.config import DEFAULT_SYNC_PORT, SHUTDOWN_GRACE
from statexec.runner import CommandRunner
from statexec.sync.session import SyncSession

logger = logging.getLogger(__name__)

INDEX_HTML = (
    "<html><body>"
    '<a href="/start">/start</a> : Start the command<br>'
    '<a href="/stop">/stop</a> : Stop the command'
    "</body></html>"
)


class SyncServer:
    """Runs the command once, when a leader asks for it over HTTP"""

    def __init__(
        self,
        runner: CommandRunner,
        host: str = "0.0.0.0",
        port: int = DEFAULT_SYNC_PORT,
        wait_for_stop: bool = True,
        shutdown_grace: float = SHUTDOWN_GRACE,
    ) -> None:
        self.runner = runner
        self.host = host
        self.port = port
        self.wait_for_stop = wait_for_stop
        self.shutdown_grace = shutdown_grace
        self.session = SyncSession()
        self.closing = asyncio.Event()
        self.run_task: asyncio.Task | None = None
        self.app = self.build_app()

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/", self.handle_index)
        app.router.add_post("/start", self.handle_start)
        app.router.add_post("/stop", self.handle_stop)
        return app

    async def handle_index(self, request: web.Request) -> web.Response:
        return web.Response(text=INDEX_HTML, content_type="text/html")

    async def handle_start(self, request: web.Request) -> web.Response:
        async with self.session.lock:
            if self.session.started:
                logger.warning(
                    "Rejected /start from %s: session %s", request.remote, self.session.phase
                )
                return web.Response(status=409, text="KO")
            self.session.started = True

        logger.info("Start requested by %s", request.remote)
        self.run_task = asyncio.create_task(self._run_command())
        return web.Response(status=201, text="OK")

    async def handle_stop(self, request: web.Request) -> web.Response:
        async with self.session.lock:
            started = self.session.started
            finished = self.session.finished
            phase = self.session.phase

        logger.info("Stop requested by %s, session %s", request.remote, phase)

        if not started:
            return web.Response(status=412, text="Command not started yet")

        if finished:
            response = web.Response(status=204)
        else:
            logger.info("Interrupting command")
            self.runner.request_stop()
            response = web.Response(status=202, text="Command stopped")

        self._schedule_close()
        return response

    def _schedule_close(self) -> None:
        # let the in-flight response go out before the listener closes
        asyncio.get_running_loop().call_soon(self.closing.set)

    async def _run_command(self) -> int:
        try:
            returncode = await self.runner.run()
        except BaseException:
            self.closing.set()
            raise
        finally:
            async with self.session.lock:
                self.session.finished = True

        if not self.wait_for_stop:
            logger.info("Start-only mode, shutting down after command completion")
            self.closing.set()
        return returncode

    async def serve(self) -> int | None:
        """Serve until stopped; return the command's exit code if it ran."""
        runner = web.AppRunner(self.app, shutdown_timeout=self.shutdown_grace)
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.port)
        await site.start()
        logger.info(
            "Sync server listening on %s:%d (wait for stop: %s)",
            self.host,
            self.port,
            self.wait_for_stop,
        )

        try:
            await self.closing.wait()
        finally:
            await runner.cleanup()
            logger.info("Sync server stopped")

        if self.run_task is None:
            return None
        return await self.run_task
