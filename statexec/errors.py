"""statexec 예외 계층"""


class StatexecError(Exception):
    """Base class for every error that ends a statexec run."""


class ConfigError(StatexecError):
    """Invalid flags, environment variables or labels."""


class SinkError(StatexecError):
    """The metrics file could not be written."""


class CommandError(StatexecError):
    """The child process could not be started or signalled."""


class SyncError(StatexecError):
    """A start/stop synchronization call failed."""
