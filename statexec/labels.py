"""라벨 키 정규화 및 Prometheus 라벨 렌더링"""

import re

from statexec.errors import ConfigError

RESERVED_LABELS: tuple[str, ...] = ("instance", "job", "role")
METRIC_LABELS: tuple[str, ...] = ("cpu", "mode", "interface", "disk")

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")


def sanitize_label_key(key: str) -> str:
    return _UNSAFE_CHARS.sub("_", key).lower()


def add_label(labels: dict[str, str], key: str, value: str) -> str:
    """Add an extra label, rejecting keys statexec writes itself."""
    safe_key = sanitize_label_key(key)
    if not safe_key:
        raise ConfigError("label key must not be empty")
    if safe_key in RESERVED_LABELS or safe_key in METRIC_LABELS:
        raise ConfigError(f"override label {key!r} is forbidden")
    labels[safe_key] = value
    return safe_key


def parse_label_arg(arg: str) -> tuple[str, str]:
    key, sep, value = arg.partition("=")
    if not sep:
        raise ConfigError(f"error parsing label {arg!r}, expected <key>=<value>")
    return key, value


def escape_label_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class LabelRenderer:
    """Render label sets as ``key="value"`` pairs in a fixed order:
    reserved labels, then metric labels, then extra labels."""

    def __init__(
        self,
        instance: str,
        job: str,
        role: str,
        extra_labels: dict[str, str] | None = None,
    ) -> None:
        self.static = {"instance": instance, "job": job, "role": role}
        self.extra_labels = dict(extra_labels or {})
        self._default = self._join(self.static.items(), self.extra_labels.items())

    @staticmethod
    def _join(*groups) -> str:
        return ",".join(
            f'{k}="{escape_label_value(str(v))}"' for group in groups for k, v in group
        )

    def render(self, metric_labels: dict[str, str] | None = None) -> str:
        if not metric_labels:
            return self._default
        return self._join(
            self.static.items(), metric_labels.items(), self.extra_labels.items()
        )
