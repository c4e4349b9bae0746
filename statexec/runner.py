"""자식 커맨드 실행 수명주기

실행 순서::

    샘플러 시작(첫 샘플) -> 사전 대기 -> 커맨드 시작 (RUNNING, "started")
    -> 커맨드 종료 (DONE, "done") -> 사후 대기 -> 샘플러 마지막 틱

메인 흐름 밖에서 발생한 오류(샘플러 쓰기 실패, 시그널 전달 실패)는
실행별 future로 보고된다. 모든 대기 단계가 이 future와 경쟁하므로
분리된 태스크 안에서 죽지 않고 실행이 중단된다.
"""

import asyncio
import contextlib
import logging
import signal

from statexec.annotations import AnnotationWriter
from statexec.collectors.base import BaseCollector
from statexec.config import SAMPLING_INTERVAL
from statexec.errors import CommandError
from statexec.labels import LabelRenderer
from statexec.models.run import CommandState, RunConfig, RunState
from statexec.sampler import MetricsSampler
from statexec.sink import FileSink

logger = logging.getLogger(__name__)


class CommandRunner:
    """Runs the configured command once while sampling the host"""

    def __init__(
        self,
        config: RunConfig,
        collector: BaseCollector,
        sink: FileSink,
        sampling_interval: float = SAMPLING_INTERVAL,
    ) -> None:
        self.config = config
        self.collector = collector
        self.sink = sink
        self.sampling_interval = sampling_interval
        self.renderer = LabelRenderer(
            config.instance, config.job, config.role.value, config.extra_labels
        )
        self.annotations = AnnotationWriter(
            sink, config.instance, config.job, config.role.value
        )
        self.run_state: RunState | None = None
        self.sampler: MetricsSampler | None = None
        self.process: asyncio.subprocess.Process | None = None
        self._failure: asyncio.Future | None = None
        self._stop_requested = False

    @property
    def state(self) -> CommandState:
        if self.run_state is None:
            return CommandState.PENDING
        return self.run_state.state

    async def run(self) -> int:
        """Run the command to completion and return its exit code.

        A non-zero exit code is not an error here; the run only records it.
        """
        if self.run_state is not None:
            raise CommandError("a command runner can only run once")

        loop = asyncio.get_running_loop()
        self.run_state = RunState.begin(self.config.metrics_start_time_override)
        self._failure = loop.create_future()
        self.sampler = MetricsSampler(
            self.collector,
            self.sink,
            self.renderer,
            self.run_state,
            interval=self.sampling_interval,
        )

        quit_event = asyncio.Event()
        first_sample = asyncio.Event()
        sampler_task = asyncio.create_task(self.sampler.run(quit_event, first_sample))
        sampler_task.add_done_callback(self._on_sampler_done)

        try:
            # the child must not exist before the elapsed=0 sample is written
            await self._guarded(first_sample.wait())

            if self.config.delay_before > 0:
                await self._guarded(asyncio.sleep(self.config.delay_before))

            self._install_signal_forwarder(loop)
            try:
                returncode = await self._run_child()
            finally:
                self._remove_signal_forwarder(loop)

            if self.config.delay_after > 0:
                await self._guarded(asyncio.sleep(self.config.delay_after))

            quit_event.set()
            await self._guarded(asyncio.shield(sampler_task))
        except BaseException:
            sampler_task.cancel()
            await asyncio.wait({sampler_task})
            await self._kill_child()
            if self._failure.done():
                self._failure.exception()
            raise

        logger.info(
            "Run finished: exit code %s, %d samples written",
            returncode,
            self.sampler.samples_written,
        )
        return returncode

    async def _run_child(self) -> int:
        argv = self.config.command
        try:
            # stdin/stdout/stderr are inherited from this process
            self.process = await asyncio.create_subprocess_exec(*argv)
        except OSError as exc:
            raise CommandError(f"error starting command {argv[0]!r}: {exc}") from exc

        self.run_state.advance(CommandState.RUNNING)
        self.annotations.started(self.run_state.virtual_now_ms())
        logger.info("Command started (pid %d): %s", self.process.pid, " ".join(argv))
        if self._stop_requested:
            self.interrupt()

        returncode = await self._guarded(self.process.wait())

        self.run_state.advance(CommandState.DONE)
        self.annotations.done(self.run_state.virtual_now_ms())
        logger.info("Command done with exit code %d", returncode)
        return returncode

    def request_stop(self) -> None:
        """Ask for early termination from outside the run.

        Before the child exists the interrupt is deferred until it starts.
        """
        if self.process is None and self.state is CommandState.PENDING:
            logger.info("Stop requested before command start, deferring interrupt")
            self._stop_requested = True
            return
        self.interrupt()

    def interrupt(self, sig: int = signal.SIGINT) -> None:
        """Forward an interrupt to the running child.

        A failure is fatal for the run and is raised from ``run()``.
        """
        if self.state is CommandState.DONE:
            logger.info("Command already exited, nothing to interrupt")
            return
        if self.process is None:
            self._fail(CommandError(f"cannot forward signal {sig}: command not started"))
            return
        try:
            self.process.send_signal(sig)
        except (ProcessLookupError, OSError) as exc:
            self._fail(CommandError(f"error forwarding signal {sig} to command: {exc}"))
        else:
            logger.info("Forwarded signal %d to pid %d", sig, self.process.pid)

    def _install_signal_forwarder(self, loop: asyncio.AbstractEventLoop) -> None:
        loop.add_signal_handler(signal.SIGINT, self.interrupt, signal.SIGINT)

    def _remove_signal_forwarder(self, loop: asyncio.AbstractEventLoop) -> None:
        loop.remove_signal_handler(signal.SIGINT)

    def _fail(self, exc: BaseException) -> None:
        if self._failure is not None and not self._failure.done():
            self._failure.set_exception(exc)

    def _on_sampler_done(self, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            self._fail(task.exception())

    async def _guarded(self, aw):
        """Await ``aw`` unless a fatal error is reported first."""
        task = asyncio.ensure_future(aw)
        try:
            await asyncio.wait(
                {task, self._failure}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        if self._failure.done():
            task.cancel()
            await asyncio.wait({task})
            raise self._failure.exception()
        return task.result()

    async def _kill_child(self) -> None:
        if self.process is None or self.process.returncode is not None:
            return
        with contextlib.suppress(ProcessLookupError):
            self.process.kill()
        await self.process.wait()
