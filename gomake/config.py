"""Loading of the start-config.yml file that lists services and tools."""

from dataclasses import dataclass, field

import yaml

from .system import go_os

DEFAULT_CONFIG_FILE = "start-config.yml"


class ConfigError(Exception):
    """The start configuration could not be read or is malformed."""


@dataclass
class StartConfig:
    """Services with their instance counts, tools, and the open-file limit."""

    service_binaries: dict = field(default_factory=dict)
    tool_binaries: list = field(default_factory=list)
    max_file_descriptors: int = 0


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_start_config(text, os_name=None) -> StartConfig:
    """Parse YAML text; on Windows service names gain an ``.exe`` suffix."""
    os_name = go_os() if os_name is None else os_name
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"error unmarshalling YAML: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("error unmarshalling YAML: top level is not a mapping")

    services = data.get("serviceBinaries") or {}
    if not isinstance(services, dict):
        raise ConfigError("error unmarshalling YAML: serviceBinaries is not a mapping")
    suffix = ".exe" if os_name == "windows" else ""
    service_binaries = {}
    for name, count in services.items():
        if not _is_int(count):
            raise ConfigError(
                f"error unmarshalling YAML: count for {name} is not an integer"
            )
        service_binaries[f"{name}{suffix}"] = count

    tools = data.get("toolBinaries") or []
    if not isinstance(tools, list):
        raise ConfigError("error unmarshalling YAML: toolBinaries is not a list")

    max_fds = data.get("maxFileDescriptors") or 0
    if not _is_int(max_fds):
        raise ConfigError("error unmarshalling YAML: maxFileDescriptors is not an integer")

    return StartConfig(
        service_binaries=service_binaries,
        tool_binaries=[str(tool) for tool in tools],
        max_file_descriptors=max_fds,
    )


def load_start_config(path=DEFAULT_CONFIG_FILE, os_name=None) -> StartConfig:
    """Read and parse the start configuration file."""
    try:
        with open(path, encoding="utf-8") as handle:
            text = handle.read()
    except OSError as exc:
        raise ConfigError(f"error reading YAML file: {exc}") from exc
    return parse_start_config(text, os_name)