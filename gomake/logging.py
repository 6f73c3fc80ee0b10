"""Coloured, timestamped console output."""

import sys
from datetime import datetime

COLOR_BLUE = "\033[0;34m"
COLOR_GREEN = "\033[0;32m"
COLOR_RED = "\033[0;31m"
COLOR_YELLOW = "\033[33m"
COLOR_RESET = "\033[0m"

_PLAIN_RED = "\033[31m"
_PLAIN_GREEN = "\033[32m"


def _timestamp() -> str:
    return datetime.now().astimezone().strftime("[%Y-%m-%d %H:%M:%S %Z]")


def _stamped(color: str, message: str) -> None:
    print(f"{_timestamp()} {color}{message}{COLOR_RESET}")


def _two_line(color: str, message: str) -> None:
    print(_timestamp())
    print(f"{color}{message}{COLOR_RESET}")


def _sprint(args) -> str:
    """Join values, spacing only between two adjacent non-string values."""
    parts = []
    previous_was_str = True
    for position, value in enumerate(args):
        is_str = isinstance(value, str)
        if position and not is_str and not previous_was_str:
            parts.append(" ")
        parts.append(str(value))
        previous_was_str = is_str
    return "".join(parts)


def print_blue_two_line(message: str) -> None:
    _two_line(COLOR_BLUE, message)


def print_blue(message: str) -> None:
    _stamped(COLOR_BLUE, message)


def print_green_two_line(message: str) -> None:
    _two_line(COLOR_GREEN, message)


def print_green(message: str) -> None:
    _stamped(COLOR_GREEN, message)


def print_red(message: str) -> None:
    _stamped(COLOR_RED, message)


def print_yellow(message: str) -> None:
    _stamped(COLOR_YELLOW, message)


def print_red_no_timestamp(message: str) -> None:
    print(f"{COLOR_RED}{message}{COLOR_RESET}")


def print_green_no_timestamp(message: str) -> None:
    print(f"{COLOR_GREEN}{message}{COLOR_RESET}")


def print_red_to_stderr(*args) -> int:
    """Write the values in red to stderr; return the number of characters written."""
    text = f"{_PLAIN_RED}{_sprint(args)}{COLOR_RESET}"
    sys.stderr.write(text)
    sys.stderr.flush()
    return len(text)


def print_green_to_stdout(*args) -> int:
    """Write the values in green to stdout; return the number of characters written."""
    text = f"{_PLAIN_GREEN}{_sprint(args)}{COLOR_RESET}"
    sys.stdout.write(text)
    sys.stdout.flush()
    return len(text)