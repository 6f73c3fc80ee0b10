"""Starting, stopping and checking the configured service and tool binaries."""

import os
import subprocess

from .system import (
    ProcessCountError,
    batch_kill_exist_binaries,
    check_process_in_map,
    check_process_names,
    fetch_processes,
    find_pids_by_binary_path,
    kill_exist_binary,
    print_binary_ports,
)


class ServiceError(RuntimeError):
    """A service or tool could not be started, stopped or verified."""


def _command_string(path: str, args) -> str:
    return " ".join([path, *args])


def _go_list(items) -> str:
    return "[" + " ".join(items) + "]"


def _process_counts() -> dict:
    try:
        return fetch_processes()
    except RuntimeError as exc:
        raise ServiceError(str(exc)) from exc


def stop_binaries(config, paths) -> None:
    """Stop every process whose executable path contains a service's path."""
    for binary in config.service_binaries:
        kill_exist_binary(paths.bin_full_path(binary))


def start_binaries(config, paths, environ=None) -> list:
    """Start each service as many times as configured; return the started processes."""
    environ = os.environ if environ is None else environ
    started = []
    for binary, count in config.service_binaries.items():
        bin_full_path = os.path.join(paths.output_host_bin, binary)
        for index in range(count):
            args = ["-i", str(index), "-c", paths.config_dir(environ)]
            print(f"Starting {_command_string(bin_full_path, args)}", flush=True)
            try:
                process = subprocess.Popen(
                    [bin_full_path, *args], cwd=paths.output_host_bin
                )
            except OSError as exc:
                raise ServiceError(
                    f"failed to start {bin_full_path} with args {_go_list(args)}: {exc}"
                ) from exc
            started.append(process)
    return started


def start_tools(config, paths, environ=None) -> None:
    """Run each tool in turn and wait for it; a failing tool stops the sequence."""
    environ = os.environ if environ is None else environ
    for tool in config.tool_binaries:
        tool_full_path = paths.tool_full_path(tool)
        args = ["-c", paths.config_dir(environ)]
        command = _command_string(tool_full_path, args)
        print(f"Starting {command}", flush=True)
        try:
            result = subprocess.run(
                [tool_full_path, *args], cwd=paths.output_host_bin_tools
            )
        except OSError as exc:
            raise ServiceError(
                f"failed to start {tool_full_path} with error: {exc}"
            ) from exc
        if result.returncode != 0:
            raise ServiceError(
                f"failed to execute {tool_full_path} with exit code: "
                f"exit status {result.returncode}"
            )
        print(f"Starting {command} successfully ", flush=True)


def kill_exist_binaries(config, paths) -> None:
    """Stop every process whose executable is exactly a service's path."""
    batch_kill_exist_binaries(
        [paths.bin_full_path(binary) for binary in config.service_binaries]
    )


def check_binaries_stop(config, paths) -> None:
    """Raise ServiceError naming every service that still has a running process."""
    process_map = _process_counts()
    running = [
        binary
        for binary in config.service_binaries
        if check_process_in_map(process_map, paths.bin_full_path(binary))
    ]
    if running:
        raise ServiceError(
            f"the following binaries are still running: {', '.join(running)}"
        )


def check_binaries_running(config, paths) -> dict:
    """Verify every service runs its configured number of processes.

    Returns the running count of each service; raises ServiceError listing
    every service whose count differs.
    """
    process_map = _process_counts()
    counts = {}
    errors = []
    for binary, expected in config.service_binaries.items():
        full_path = paths.bin_full_path(binary)
        counts[binary] = process_map.get(full_path, 0)
        try:
            check_process_names(full_path, expected, process_map)
        except ProcessCountError as exc:
            errors.append(f"binary {binary} is not running as expected: {exc}")
    if errors:
        raise ServiceError("\n".join(errors))
    return counts


def print_listened_ports_by_binaries(config, paths) -> None:
    """Print the listening ports of every service's processes."""
    try:
        pid_map = find_pids_by_binary_path()
    except RuntimeError as exc:
        raise ServiceError(str(exc)) from exc
    for binary in config.service_binaries:
        print_binary_ports(paths.bin_full_path(binary), pid_map)