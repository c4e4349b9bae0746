"""statexec - Entrypoint

커맨드를 실행하는 동안 호스트 메트릭을 Prometheus 형식 파일로 기록한다.
필요하면 HTTP로 다른 statexec 인스턴스와 시작/종료를 동기화한다.
"""

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Mapping, Sequence

from statexec.collectors.host import HostCollector
from statexec.config import (
    DEFAULT_METRICS_FILE,
    DEFAULT_SYNC_PORT,
    ENV_PREFIX,
    JOB_NAME,
    LOG_LEVEL,
    VERSION,
    env_defaults,
)
from statexec.coordinator import run_role
from statexec.errors import ConfigError, StatexecError
from statexec.labels import add_label, parse_label_arg
from statexec.models.run import Role, RunConfig
from statexec.runner import CommandRunner
from statexec.sink import FileSink

logger = logging.getLogger(__name__)

EPILOG = f"""\
standalone examples:
  statexec ping 8.8.8.8 -c 4
  {ENV_PREFIX}FILE=data.prom {ENV_PREFIX}LABEL_type=sample statexec -d 3 -l env=dev -- ./mycommand.sh arg1

sync mode examples:
  # wait for a client sync to start the command
  statexec -s -- date
  # connect to the server on localhost to start and stop the command
  statexec -c localhost -- echo start date now
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="statexec",
        description="Run a command and record host metrics while it runs.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--version", action="version", version=VERSION)

    common = parser.add_argument_group("common options")
    common.add_argument("-f", "--file", help=f"metrics file (default: {DEFAULT_METRICS_FILE})")
    common.add_argument("-i", "--instance", help="instance name (default: <command>)")
    common.add_argument(
        "-mst", "--metrics-start-time", type=int,
        help="metrics start time in milliseconds since epoch (default: now)",
    )
    common.add_argument(
        "-d", "--delay", type=int,
        help="delay in seconds before and after the command (default: 0)",
    )
    common.add_argument(
        "-dbc", "--delay-before-command", dest="delay_before", type=int,
        help="delay in seconds before the command (default: 0)",
    )
    common.add_argument(
        "-dac", "--delay-after-command", dest="delay_after", type=int,
        help="delay in seconds after the command (default: 0)",
    )
    common.add_argument(
        "-l", "--label", dest="labels", action="append", default=[], metavar="KEY=VALUE",
        help="extra label added to all metrics, repeatable",
    )

    sync = parser.add_argument_group("synchronization options")
    role = sync.add_mutually_exclusive_group()
    role.add_argument("-c", "--connect", metavar="IP", help="connect to a statexec server")
    role.add_argument("-s", "--server", action="store_true", default=None, help="start server mode")
    sync.add_argument(
        "-sp", "--sync-port", type=int,
        help=f"sync port (default: {DEFAULT_SYNC_PORT})",
    )
    sync.add_argument(
        "-sso", "--sync-start-only", action="store_true", default=None,
        help="only synchronize the start of the command",
    )

    parser.add_argument("command", nargs=argparse.REMAINDER, help="command to run")
    return parser


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


def parse_args(
    argv: Sequence[str] | None = None,
    environ: Mapping[str, str] = os.environ,
) -> RunConfig:
    """Build the run configuration; command-line flags win over SE_* variables."""
    env = env_defaults(environ)
    args = build_parser().parse_args(argv)

    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        raise ConfigError("no command given, see --help")

    connect = _first(args.connect, env.get("connect"))
    server = bool(_first(args.server, env.get("server")))
    if connect and server:
        raise ConfigError("server and client modes are mutually exclusive")
    if connect:
        role = Role.CLIENT
    elif server:
        role = Role.SERVER
    else:
        role = Role.STANDALONE

    extra_labels: dict[str, str] = {}
    for key, value in env.get("env_labels", []):
        add_label(extra_labels, key, value)
    for arg in args.labels:
        add_label(extra_labels, *parse_label_arg(arg))

    return RunConfig(
        command=command,
        instance=_first(args.instance, env.get("instance"), command[0]),
        metrics_file=_first(args.file, env.get("file"), DEFAULT_METRICS_FILE),
        job=JOB_NAME,
        role=role,
        extra_labels=extra_labels,
        metrics_start_time_override=_first(
            args.metrics_start_time, env.get("metrics_start_time")
        ),
        delay_before=_first(args.delay_before, args.delay, env.get("delay_before"), 0),
        delay_after=_first(args.delay_after, args.delay, env.get("delay_after"), 0),
        server_ip=connect or "",
        sync_port=_first(args.sync_port, env.get("sync_port"), DEFAULT_SYNC_PORT),
        sync_wait_for_stop=not _first(args.sync_start_only, env.get("sync_start_only"), False),
    )


def log_config(config: RunConfig) -> None:
    logger.info("Command: %s", " ".join(config.command))
    logger.info("Metrics file: %s", config.metrics_file)
    logger.info("Instance: %s", config.instance)
    logger.info("Metrics start time override: %s", config.metrics_start_time_override)
    logger.info("Delay before command: %s", config.delay_before)
    logger.info("Delay after command: %s", config.delay_after)
    logger.info("Role: %s", config.role.value)
    if config.role is not Role.STANDALONE:
        logger.info("Server IP: %s", config.server_ip)
        logger.info("Sync port: %d", config.sync_port)
        logger.info("Sync wait for stop: %s", config.sync_wait_for_stop)
    logger.info("Extra labels: %s", config.extra_labels)


def main(argv: Sequence[str] | None = None) -> int:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        config = parse_args(argv)
        sink = FileSink(config.metrics_file)
        sink.reset()
        log_config(config)
        runner = CommandRunner(config, HostCollector(), sink)
        return asyncio.run(run_role(config, runner))
    except StatexecError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        # SIGINT outside the child's lifetime is not forwarded anywhere
        logger.warning("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
