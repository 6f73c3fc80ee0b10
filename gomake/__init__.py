"""Build, start, stop and check the Go service and tool binaries of a project."""

__version__ = "0.1.0"