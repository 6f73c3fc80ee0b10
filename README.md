# gomake

`gomake` drives a Go project laid out as service binaries under `cmd/` and
one-shot tool binaries under `tools/`. It compiles them with the `go`
toolchain, writes a `start-config.yml` describing what to run, runs the tools,
starts the services, stops them again, and reports which processes are
running and which ports they listen on. It can also generate Go code from the
`.proto` files under `pkg/protocol`.

Run every command from the project root.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Commands

```
gomake                      # same as "gomake build"
gomake build                # compile every binary found under cmd/ and tools/
gomake build api-server seq # compile only the named binaries
gomake start                # run the tools, then start the services
gomake stop                 # stop all services and wait until they are gone
gomake check                # verify services are running and show their ports
gomake protocol             # install protoc if needed and compile pkg/protocol
```

Every command exits with status 0 on success and 1 on failure.

### build

A directory counts as a binary when it holds a `main.go`; discovery is
breadth-first and does not descend into a directory once it has found one.
Directories whose names start with `.` or are called `internal` are skipped.
Named binaries are looked up by directory name, first under `cmd/`, then under
`tools/`; names not found are skipped with a warning.

Each binary is named after the directory holding its `main.go` (with `.exe`
for Windows targets) and written to `_output/bin/platforms/<os>/<arch>/`
(services) or `_output/bin/tools/<os>/<arch>/` (tools). Several binaries are
compiled at once; the first failing compilation aborts the build.

If `start-config.yml` already exists, running services are stopped before
building. Otherwise the build creates it, listing every compiled service with
one instance and every compiled tool.

Environment variables:

- `PLATFORMS` – whitespace-separated list such as `linux_amd64 darwin_arm64`;
  defaults to the host, which must be `amd64` or `arm64`.
- `CGO_ENABLED` – passed to `go build` when set and non-empty.

### start-config.yml

```yaml
serviceBinaries:
  api-server: 2
  rpc-user: 1
toolBinaries:
  - check-components
maxFileDescriptors: 10000
```

`serviceBinaries` maps each service to the number of instances to start;
instance `i` is run as `<binary> -i <i> -c <config dir>` from the service
output directory. On Windows service names gain an `.exe` suffix. Each tool
is run once, to completion, as `<tool> -c <config dir>` before any service
starts; a tool that exits non-zero aborts the start.

`gomake start` sets both the soft and hard open-file limits to
`maxFileDescriptors` where the platform supports it, then runs the tools,
stops any running services, starts the services and finishes with the same
report as `gomake check`.

The configuration directory is `./config/`, or `/config/` when
`DEPLOYMENT_TYPE=kubernetes`.

### stop and check

`gomake stop` terminates (or, failing that, kills) every process whose
executable is exactly one of the configured service binaries, then checks up
to 15 times, a second apart, that none is left.

`gomake check` fails if any service is not running with exactly the
configured number of instances; otherwise it prints each process's command
line and listening ports.

### protocol

For every directory `pkg/protocol/<name>/`, runs `protoc` on
`<name>/<name>.proto` with the module path taken from `go.mod`, then removes
every `,omitempty` from the generated `*.pb.go` files. Missing
`protoc-gen-go` is installed with `go install`, and a missing `protoc` is
downloaded (version 26.1) and unpacked. Both go to `/usr/local/bin`, or
`%USERPROFILE%\go\bin` on Windows, so the command needs write access there.

## Using it from Python

The pieces behind the commands can be called directly:

- `gomake.build` – `build`, `get_binaries`, `compile_for_platform`,
  `compile_dir`, `create_start_config_yml`; raises `BuildError`.
- `gomake.config` – `load_start_config` and `parse_start_config` return a
  `StartConfig`; raise `ConfigError`.
- `gomake.paths` – `resolve_paths` returns a `ProjectPaths` with the output
  layout and `bin_full_path`, `tool_full_path`, `config_dir`, `ensure_dirs`.
- `gomake.services` – `start_binaries`, `start_tools`, `kill_exist_binaries`,
  `check_binaries_running`, `check_binaries_stop`; raise `ServiceError`.
- `gomake.control` – `start_tools_and_services`, `stop_and_check_binaries`,
  `check_and_report_binaries_status`.
- `gomake.system` – process lookup and platform detection (`detect_platform`,
  `fetch_processes`, `listening_ports`).
- `gomake.protocol` – `protocol`, `remove_omitempty_from_file`,
  `get_module_name_from_go_mod`; raise `ProtocolError`.

## Sample binaries

Two small programs are included for trying the workflow out:

```
gomake-helloworld -i 0 -c ./config/
gomake-microservice-test -i 0 -c ./config/
```

The first prints its arguments and exits. The second prints its arguments and
serves HTTP on a random port between 1024 and 65534, answering every request
with the path that was hit.

## What it does not do

`gomake` does not compile Go code itself; `go` must be on the `PATH`.
Started services are launched in the background and left alone: they are not
supervised, restarted or logged to files.