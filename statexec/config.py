"""statexec 설정"""

import os
from collections.abc import Mapping

from statexec.errors import ConfigError

VERSION: str = "0.1.0"

LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")
JOB_NAME: str = "statexec"
METRIC_PREFIX: str = "statexec_"
ENV_PREFIX: str = "SE_"
DEFAULT_METRICS_FILE: str = f"{JOB_NAME}_metrics.prom"
DEFAULT_SYNC_PORT: int = 8080
SAMPLING_INTERVAL: float = 1.0
SHUTDOWN_GRACE: float = 5.0


def _int_env(environ: Mapping[str, str], name: str) -> int | None:
    value = environ.get(ENV_PREFIX + name, "")
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise ConfigError(
            f"{ENV_PREFIX}{name} must be an integer, found: {value!r}"
        ) from None


def env_defaults(environ: Mapping[str, str] = os.environ) -> dict:
    """Read the SE_* variables into CLI default values.

    Only variables that are set show up in the result, so the argument
    parser keeps its own defaults for the rest.
    """
    defaults: dict = {}

    if value := environ.get(ENV_PREFIX + "FILE"):
        defaults["file"] = value
    if value := environ.get(ENV_PREFIX + "INSTANCE"):
        defaults["instance"] = value

    start_time = _int_env(environ, "METRICS_START_TIME")
    if start_time is not None:
        defaults["metrics_start_time"] = start_time

    connect = environ.get(ENV_PREFIX + "CONNECT")
    server = environ.get(ENV_PREFIX + "SERVER")
    if connect and server:
        raise ConfigError("server and client modes are mutually exclusive")
    if connect:
        defaults["connect"] = connect
    if server:
        defaults["server"] = True

    sync_port = _int_env(environ, "SYNC_PORT")
    if sync_port is not None:
        defaults["sync_port"] = sync_port
    if environ.get(ENV_PREFIX + "SYNC_START_ONLY"):
        defaults["sync_start_only"] = True

    delay = _int_env(environ, "DELAY")
    if delay is not None:
        defaults["delay_before"] = delay
        defaults["delay_after"] = delay
    before = _int_env(environ, "DELAY_BEFORE_COMMAND")
    if before is not None:
        defaults["delay_before"] = before
    after = _int_env(environ, "DELAY_AFTER_COMMAND")
    if after is not None:
        defaults["delay_after"] = after

    label_prefix = ENV_PREFIX + "LABEL_"
    labels = [
        (name[len(label_prefix):], value)
        for name, value in environ.items()
        if name.startswith(label_prefix)
    ]
    if labels:
        defaults["env_labels"] = labels

    return defaults
