"""Start, stop and status workflows over the configured services and tools."""

import os
import time

from .config import DEFAULT_CONFIG_FILE, load_start_config
from .logging import print_blue, print_green, print_red, print_red_no_timestamp, print_yellow
from .paths import resolve_paths
from .services import (
    ServiceError,
    check_binaries_running,
    check_binaries_stop,
    kill_exist_binaries,
    print_listened_ports_by_binaries,
    start_binaries,
    start_tools,
)

MAX_STOP_ATTEMPTS = 15
STOP_CHECK_INTERVAL = 1.0
REPORT_DELAY = 1.0


def _load(root):
    root = os.getcwd() if root is None else os.fspath(root)
    paths = resolve_paths(root)
    paths.ensure_dirs()
    config = load_start_config(os.path.join(root, DEFAULT_CONFIG_FILE))
    return config, paths


def _report(config, paths) -> dict:
    try:
        counts = check_binaries_running(config, paths)
    except ServiceError as exc:
        print_red("Some programs are not running properly:")
        print_red_no_timestamp(str(exc))
        raise
    print_green("All services are running normally.")
    print_blue("Display details of the ports listened to by the service:")
    time.sleep(REPORT_DELAY)
    try:
        print_listened_ports_by_binaries(config, paths)
    except ServiceError as exc:
        print_red("PrintListenedPortsByBinaries error")
        print_red_no_timestamp(str(exc))
        raise
    return counts


def check_and_report_binaries_status(root=None) -> dict:
    """Verify every service runs as configured and print its listening ports.

    Returns the running count of each service; raises ServiceError otherwise.
    """
    config, paths = _load(root)
    return _report(config, paths)


def attempt_check_binaries(
    config, paths, max_attempts=MAX_STOP_ATTEMPTS, interval=STOP_CHECK_INTERVAL
) -> None:
    """Wait until no service is running, checking up to ``max_attempts`` times."""
    for attempt in range(max_attempts):
        try:
            check_binaries_stop(config, paths)
        except ServiceError as exc:
            print_yellow(
                "Some services have not been stopped, details are as follows: " + str(exc)
            )
            print_yellow("Continue to wait for 1 second before checking again")
            if attempt < max_attempts - 1:
                time.sleep(interval)
        else:
            return
    raise ServiceError(
        f"already waited for {max_attempts} seconds, some services have still not stopped"
    )


def stop_and_check_binaries(root=None) -> bool:
    """Stop every service and wait for them to exit; return whether all stopped."""
    config, paths = _load(root)
    kill_exist_binaries(config, paths)
    try:
        attempt_check_binaries(config, paths)
    except ServiceError as exc:
        print_red(str(exc))
        return False
    print_green("All services have been stopped")
    return True


def start_tools_and_services(root=None) -> bool:
    """Run the tools, restart every service and report their status.

    Returns False when a step aborts the start; a failed final status check
    raises ServiceError.
    """
    config, paths = _load(root)
    print_blue(
        "Starting tools primarily involves component verification and other "
        "preparatory tasks."
    )
    try:
        start_tools(config, paths)
    except ServiceError as exc:
        print_red("Some tools failed to start, details are as follows, abort start")
        print_red_no_timestamp(str(exc))
        return False
    print_green("All tools executed successfully")

    kill_exist_binaries(config, paths)
    try:
        attempt_check_binaries(config, paths)
    except ServiceError as exc:
        print_red("Some services running, details are as follows, abort start " + str(exc))
        return False

    print_blue(
        "Starting services involves multiple RPCs and APIs and may take some time. "
        "Please be patient"
    )
    try:
        start_binaries(config, paths)
    except ServiceError as exc:
        print_red("Failed to start all binaries")
        print_red_no_timestamp(str(exc))
        return False

    config, paths = _load(paths.root)
    _report(config, paths)
    return True