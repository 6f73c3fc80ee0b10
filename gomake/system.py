"""Platform detection and process inspection and control."""

import os
import platform
import sys
from collections import Counter

import psutil

from .logging import print_green

SUPPORTED_ARCHES = ("amd64", "arm64")

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv6l": "arm",
    "armv7l": "arm",
}


class UnsupportedPlatformError(RuntimeError):
    """The host architecture cannot be built for."""


class ProcessCountError(RuntimeError):
    """A binary does not run the expected number of processes."""

    def __init__(self, process_path: str, expected: int, running: int):
        super().__init__(
            f"{process_path} expected {expected} processes, but {running} running"
        )
        self.process_path = process_path
        self.expected = expected
        self.running = running


def go_os() -> str:
    """Operating system name in Go's GOOS spelling."""
    return platform.system().lower() or sys.platform


def go_arch() -> str:
    """Machine architecture in Go's GOARCH spelling."""
    machine = platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine)


def os_arch() -> str:
    name, arch = go_os(), go_arch()
    if name == "windows":
        return f"{name}\\{arch}"
    return f"{name}/{arch}"


def detect_platform() -> str:
    """Return the host platform as ``os_arch``; only amd64 and arm64 are supported."""
    arch = go_arch()
    if arch not in SUPPORTED_ARCHES:
        raise UnsupportedPlatformError(f"Unsupported architecture: {arch}")
    return f"{go_os()}_{arch}"


def check_process_names(process_path: str, expected_count: int, process_map) -> None:
    """Raise ProcessCountError unless ``process_path`` runs ``expected_count`` times."""
    running = process_map.get(process_path, 0)
    if running != expected_count:
        raise ProcessCountError(process_path, expected_count, running)


def _iter_exes():
    try:
        for proc in psutil.process_iter(["exe"]):
            exe = proc.info.get("exe")
            if exe:
                yield proc, exe
    except psutil.Error as exc:
        raise RuntimeError(f"failed to get processes: {exc}") from exc


def fetch_processes() -> dict:
    """Map each running executable path to its number of processes."""
    return dict(Counter(exe for _, exe in _iter_exes()))


def check_process_in_map(process_map, process_path: str) -> bool:
    return process_path in process_map


def find_pids_by_binary_path() -> dict:
    """Map each running executable path to the PIDs running it."""
    pid_map: dict = {}
    for proc, exe in _iter_exes():
        pid_map.setdefault(exe, []).append(proc.pid)
    return pid_map


def listening_ports(pid: int) -> list:
    """Sorted ports on which the process is listening."""
    proc = psutil.Process(pid)
    getter = getattr(proc, "net_connections", None) or proc.connections
    return sorted(
        {
            conn.laddr.port
            for conn in getter(kind="all")
            if conn.status == psutil.CONN_LISTEN and conn.laddr
        }
    )


def print_binary_ports(binary_path: str, pid_map) -> None:
    pids = pid_map.get(binary_path)
    if not pids:
        print(f"No running processes found for binary: {binary_path}")
        return

    for pid in pids:
        try:
            proc = psutil.Process(pid)
        except psutil.Error as exc:
            print(f"Failed to create process object for PID {pid}: {exc}")
            continue
        try:
            cmdline = " ".join(proc.cmdline())
        except psutil.Error as exc:
            print(f"Failed to get command line for PID {pid}: {exc}")
            continue
        try:
            ports = listening_ports(pid)
        except psutil.Error as exc:
            print(f"Error getting connections for PID {pid}: {exc}")
            continue

        if ports:
            joined = ", ".join(str(port) for port in ports)
            print_green(
                f"Cmdline: {cmdline}, PID: {pid} is listening on ports: {joined}"
            )
        else:
            print_green(f"Cmdline: {cmdline}, PID: {pid} is not listening on any ports.")


def batch_kill_exist_binaries(binary_paths) -> None:
    """Stop every process whose executable is exactly one of ``binary_paths``."""
    try:
        by_exe: dict = {}
        for proc, exe in _iter_exes():
            by_exe.setdefault(exe, []).append(proc)
    except RuntimeError as exc:
        print(f"Failed to get processes: {exc}")
        return

    for binary_path in binary_paths:
        procs = by_exe.get(binary_path)
        if procs:
            print("binaryPath  found ", binary_path)
            for proc in procs:
                terminate_and_kill_process(proc)


def terminate_and_kill_process(proc) -> None:
    """Terminate the process, falling back to kill if termination fails."""
    try:
        cmdline = " ".join(proc.cmdline())
    except psutil.Error as exc:
        print(f"Failed to get command line for process {proc.pid}: {exc}")
        return

    try:
        proc.terminate()
    except psutil.Error:
        try:
            proc.kill()
        except psutil.Error as exc:
            print(f"Failed to kill process cmdline: {cmdline}, pid: {proc.pid}, err: {exc}")
        else:
            print(f"Killed process cmdline: {cmdline}, pid: {proc.pid}")
    else:
        print(f"Terminated process cmdline: {cmdline}, pid: {proc.pid}")


def kill_exist_binary(binary_path: str) -> None:
    """Stop every process whose executable path contains ``binary_path``."""
    try:
        matches = [proc for proc, exe in _iter_exes() if binary_path in exe]
    except RuntimeError as exc:
        print(f"Failed to get processes: {exc}")
        return
    for proc in matches:
        terminate_and_kill_process(proc)


__all__ = [
    "SUPPORTED_ARCHES",
    "UnsupportedPlatformError",
    "ProcessCountError",
    "go_os",
    "go_arch",
    "os_arch",
    "detect_platform",
    "check_process_names",
    "fetch_processes",
    "check_process_in_map",
    "find_pids_by_binary_path",
    "listening_ports",
    "print_binary_ports",
    "batch_kill_exist_binaries",
    "terminate_and_kill_process",
    "kill_exist_binary",
]

_ = os  # os is used by callers patching environment-dependent behaviour