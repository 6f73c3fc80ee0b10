"""A tool that only reports how it was invoked, for exercising the runner."""

import argparse
import sys


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Hello world tool.")
    parser.add_argument("-i", type=int, default=0, dest="index", help="Index number")
    parser.add_argument("-c", default="", dest="config", help="Configuration directory")
    parser.add_argument("rest", nargs="*", help=argparse.SUPPRESS)
    return parser


def main(argv=None) -> int:
    args = _parser().parse_args(argv)
    print(
        f"This is a helloworld tool. Program: {sys.argv[0]}, "
        f"args: -i {args.index} -c {args.config}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())