"""Command line entry point: build, start, stop, check and protocol targets."""

import argparse
import os
import sys

try:
    import resource
except ImportError:  # Windows has no resource limits to raise
    resource = None

from .build import BuildError, build
from .config import ConfigError, DEFAULT_CONFIG_FILE, load_start_config
from .control import (
    check_and_report_binaries_status,
    start_tools_and_services,
    stop_and_check_binaries,
)
from .logging import print_red
from .protocol import ProtocolError, protocol
from .services import ServiceError
from .system import UnsupportedPlatformError

TARGETS = ("build", "start", "stop", "check", "protocol")


def set_max_open_files(limit) -> None:
    """Set both the soft and hard open-file limits; a no-op where unsupported."""
    if resource is None:
        return
    resource.setrlimit(resource.RLIMIT_NOFILE, (limit, limit))


def _start() -> bool:
    config = load_start_config(os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE))
    try:
        set_max_open_files(config.max_file_descriptors)
    except (OSError, ValueError) as exc:
        print_red(f"setMaxOpenFiles failed {exc}")
        return False
    return start_tools_and_services()


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gomake", description="Build, run and inspect the project's binaries."
    )
    parser.add_argument(
        "target", nargs="?", default="build", type=str.lower, choices=TARGETS,
        help="what to do (default: build)",
    )
    parser.add_argument(
        "binaries", nargs="*", help="binaries to build (default: all of them)"
    )
    return parser


def main(argv=None) -> int:
    args = _parser().parse_args(argv)
    try:
        if args.target == "build":
            build(args.binaries)
            ok = True
        elif args.target == "start":
            ok = _start()
        elif args.target == "stop":
            ok = stop_and_check_binaries()
        elif args.target == "check":
            check_and_report_binaries_status()
            ok = True
        else:
            protocol()
            ok = True
    except ConfigError as exc:
        print(exc)
        return 1
    except ProtocolError as exc:
        print("error ", exc)
        return 1
    except (BuildError, ServiceError, UnsupportedPlatformError) as exc:
        print_red(str(exc))
        return 1
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())