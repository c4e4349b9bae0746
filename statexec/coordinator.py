"""역할 분기: standalone, client(리더), server(팔로워)"""

import logging

from statexec.errors import SyncError
from statexec.models.run import Role, RunConfig
from statexec.runner import CommandRunner
from statexec.sync.client import SyncClient
from statexec.sync.server import SyncServer

logger = logging.getLogger(__name__)


async def run_standalone(config: RunConfig, runner: CommandRunner) -> int:
    logger.info("Starting statexec in standalone mode")
    await runner.run()
    return 0


async def run_client(
    config: RunConfig, runner: CommandRunner, client: SyncClient | None = None
) -> int:
    client = client or SyncClient(config.sync_url)
    logger.info(
        "Starting statexec as client of %s (with stop: %s)",
        client.base_url,
        config.sync_wait_for_stop,
    )
    # a failed start is fatal before anything runs
    await client.start()

    await runner.run()

    if config.sync_wait_for_stop:
        try:
            await client.stop()
        except SyncError as exc:
            logger.error("Command finished but stop sync failed: %s", exc)
            return 1
    return 0


async def run_server(
    config: RunConfig, runner: CommandRunner, host: str = "0.0.0.0"
) -> int:
    logger.info(
        "Starting statexec as server on port %d (with stop: %s)",
        config.sync_port,
        config.sync_wait_for_stop,
    )
    server = SyncServer(
        runner,
        host=host,
        port=config.sync_port,
        wait_for_stop=config.sync_wait_for_stop,
    )
    await server.serve()
    return 0


async def run_role(config: RunConfig, runner: CommandRunner) -> int:
    if config.role is Role.CLIENT:
        return await run_client(config, runner)
    if config.role is Role.SERVER:
        return await run_server(config, runner)
    return await run_standalone(config, runner)
