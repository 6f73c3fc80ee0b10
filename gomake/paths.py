"""Directory layout of a project's build and run output."""

import os
from dataclasses import dataclass

from .system import os_arch

MOUNT_CONFIG_FILE_PATH = "CONFIG_PATH"
DEPLOYMENT_TYPE = "DEPLOYMENT_TYPE"
KUBERNETES = "kubernetes"

_K8S_CONFIG_DIR = os.path.join(os.sep, "config") + os.sep


def _dir(*parts: str) -> str:
    return os.path.normpath(os.path.join(*parts)) + os.sep


def _is_kubernetes(environ) -> bool:
    return environ.get(DEPLOYMENT_TYPE) == KUBERNETES


@dataclass(frozen=True)
class ProjectPaths:
    """Every directory and file location used when building and running."""

    root: str
    output_config: str
    k8s_config: str
    output: str
    output_tools: str
    output_tmp: str
    output_logs: str
    output_bin: str
    output_bin_path: str
    output_bin_tool_path: str
    init_err_log_file: str
    init_log_file: str
    output_host_bin: str
    output_host_bin_tools: str

    def _directories(self):
        return (
            self.output_config,
            self.output,
            self.output_tools,
            self.output_tmp,
            self.output_logs,
            self.output_bin,
            self.output_bin_path,
            self.output_bin_tool_path,
            self.output_host_bin,
            self.output_host_bin_tools,
        )

    def ensure_dirs(self) -> None:
        """Create every output directory that does not yet exist."""
        for directory in self._directories():
            os.makedirs(directory, mode=0o755, exist_ok=True)

    def bin_full_path(self, bin_name: str) -> str:
        return os.path.join(self.output_host_bin, bin_name)

    def tool_full_path(self, tool_name: str) -> str:
        return os.path.join(self.output_host_bin_tools, tool_name)

    def config_dir(self, environ=None) -> str:
        """Configuration directory handed to started programs."""
        environ = os.environ if environ is None else environ
        if _is_kubernetes(environ):
            return self.k8s_config or _K8S_CONFIG_DIR
        return self.output_config


def resolve_paths(root=None, environ=None) -> ProjectPaths:
    """Compute the layout under ``root`` (the working directory by default)."""
    root = os.getcwd() if root is None else os.fspath(root)
    environ = os.environ if environ is None else environ

    output = _dir(root, "_output")
    output_logs = _dir(output, "logs")
    output_bin = _dir(output, "bin")
    output_bin_path = _dir(output_bin, "platforms")
    output_bin_tool_path = _dir(output_bin, "tools")
    host = os_arch()

    return ProjectPaths(
        root=root,
        output_config=_dir(root, "config"),
        k8s_config=_K8S_CONFIG_DIR if _is_kubernetes(environ) else "",
        output=output,
        output_tools=_dir(output, "tools"),
        output_tmp=_dir(output, "tmp"),
        output_logs=output_logs,
        output_bin=output_bin,
        output_bin_path=output_bin_path,
        output_bin_tool_path=output_bin_tool_path,
        init_err_log_file=os.path.join(output_logs, "openim-init-err.log"),
        init_log_file=os.path.join(output_logs, "openim-init.log"),
        output_host_bin=_dir(output_bin_path, host),
        output_host_bin_tools=_dir(output_bin_tool_path, host),
    )