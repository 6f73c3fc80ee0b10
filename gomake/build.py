"""Discovery and cross-compilation of the project's cmd and tools binaries."""

import os
import stat
import subprocess
from collections import deque
from concurrent.futures import ThreadPoolExecutor

from .config import DEFAULT_CONFIG_FILE, load_start_config
from .logging import print_blue, print_green, print_red, print_yellow
from .paths import resolve_paths
from .services import kill_exist_binaries
from .system import detect_platform

COMPILATION_USAGE = 16
DEFAULT_MAX_FILE_DESCRIPTORS = 10000
MAIN_FILE = "main.go"
CMD_DIR = "cmd"
TOOLS_DIR = "tools"
EXCLUDED_DIR = "internal"


class BuildError(RuntimeError):
    """A binary could not be located or compiled."""


def _strip_prefix(binary: str, prefix: str):
    if not binary.startswith(prefix):
        return None
    return binary[len(prefix):].lstrip(os.sep + (os.altsep or ""))


def _split_platform(platform: str):
    parts = platform.split("_")
    if len(parts) < 2:
        raise BuildError(f"invalid platform {platform!r}: expected os_arch")
    return parts[0], parts[1]


def _sorted_dir_entries(directory):
    with os.scandir(directory) as entries:
        return sorted(
            (entry for entry in entries if entry.is_dir(follow_symlinks=False)),
            key=lambda entry: entry.name,
        )


def _is_excluded(name: str) -> bool:
    return name.startswith(".") or name.lower() == EXCLUDED_DIR


def compile_for_platform(cgo_enabled, platform, compile_binaries, root=None, paths=None):
    """Compile the cmd and tools binaries for one platform.

    Returns the directory names compiled from cmd and from tools.
    """
    root = os.getcwd() if root is None else os.fspath(root)
    paths = resolve_paths(root) if paths is None else paths

    cmd_binaries, tools_binaries = [], []
    for binary in compile_binaries:
        tool = _strip_prefix(binary, TOOLS_DIR)
        if tool is not None:
            tools_binaries.append(tool)
            continue
        cmd = _strip_prefix(binary, CMD_DIR)
        if cmd is not None:
            cmd_binaries.append(cmd)
        else:
            print_yellow(f"Binary {binary} does not have a valid prefix. Skipping...")

    cmd_dirs, tools_dirs = [], []
    if cmd_binaries:
        print_blue(f"Compiling cmd binaries for {platform}...")
        cmd_dirs = compile_dir(
            cgo_enabled, os.path.join(root, CMD_DIR), paths.output_bin_path,
            platform, cmd_binaries,
        )
    if tools_binaries:
        print_blue(f"Compiling tools binaries for {platform}...")
        tools_dirs = compile_dir(
            cgo_enabled, os.path.join(root, TOOLS_DIR), paths.output_bin_tool_path,
            platform, tools_binaries,
        )

    create_start_config_yml(root, cmd_dirs, tools_dirs)
    return cmd_dirs, tools_dirs


def create_start_config_yml(root, cmd_dirs, tools_dirs) -> bool:
    """Write start-config.yml unless it exists; return whether it was written."""
    config_path = os.path.join(os.fspath(root), DEFAULT_CONFIG_FILE)
    if os.path.exists(config_path):
        print_blue("start-config.yml already exists, skipping creation.")
        return False

    lines = ["serviceBinaries:"]
    lines.extend(f"  {name}: 1" for name in cmd_dirs)
    lines.append("toolBinaries:")
    lines.extend(f"  - {name}" for name in tools_dirs)
    lines.append(f"maxFileDescriptors: {DEFAULT_MAX_FILE_DESCRIPTORS}")

    try:
        with open(config_path, "w", encoding="utf-8") as handle:
            handle.write("\n".join(lines) + "\n")
        os.chmod(config_path, 0o644)
    except OSError as exc:
        print_red(f"Failed to create start-config.yml: {exc}")
        return False
    print_green("start-config.yml created successfully.")
    return True


def _walk_lexical(path):
    """Yield (path, is_dir) for ``path`` and everything below it, in lexical order."""
    is_dir = stat.S_ISDIR(os.lstat(path).st_mode)
    yield path, is_dir
    if is_dir:
        for name in sorted(os.listdir(path)):
            yield from _walk_lexical(os.path.join(path, name))


def get_main_file(binary_path):
    """Return the lexically last main.go below ``binary_path``, or None."""
    found = None
    for path, is_dir in _walk_lexical(os.fspath(binary_path)):
        if not is_dir and os.path.basename(path) == MAIN_FILE:
            found = path
    return found


def concurrency_for(compile_count: int, cpu_count: int) -> int:
    """Number of compilations to run at once."""
    workers = cpu_count // COMPILATION_USAGE
    if workers % COMPILATION_USAGE != 0:
        workers += 1
    workers = max(workers, 1)
    return min(workers, compile_count)


def compile_dir(cgo_enabled, source_dir, output_base, platform, compile_binaries) -> list:
    """Compile each binary under ``source_dir``; return the compiled directory names."""
    source_dir = os.fspath(source_dir)
    try:
        info = os.stat(source_dir)
    except FileNotFoundError:
        return []
    except OSError as exc:
        raise BuildError(f"Failed read directory {source_dir}: {exc}") from exc
    if not stat.S_ISDIR(info.st_mode):
        raise BuildError(f"Failed {source_dir} is not dir")

    target_os, target_arch = _split_platform(platform)
    output_dir = os.path.join(output_base, target_os, target_arch)
    try:
        os.makedirs(output_dir, mode=0o755, exist_ok=True)
    except OSError as exc:
        raise BuildError(f"Failed to create directory {output_dir}: {exc}") from exc

    workers = concurrency_for(len(compile_binaries), os.cpu_count() or 1)
    print_green(f"The number of concurrent compilations is {workers}")
    if workers == 0:
        return []

    def compile_one(binary):
        binary_path = os.path.join(source_dir, binary)
        try:
            main_file = get_main_file(binary_path)
        except OSError as exc:
            print_yellow(f"Failed to walk through binary path {binary_path}: {exc}")
            raise BuildError(
                f"Failed to walk through binary path {binary_path}: {exc}"
            ) from exc
        if main_file is None:
            return None

        dir_name = os.path.basename(os.path.dirname(main_file))
        output_name = dir_name + ".exe" if target_os == "windows" else dir_name
        print_blue(
            f"Compiling dir: {dir_name} for platform: {platform} binary: {output_name} ..."
        )
        env = dict(os.environ, GOOS=target_os, GOARCH=target_arch)
        if cgo_enabled:
            env["CGO_ENABLED"] = cgo_enabled
        command = ["go", "build", "-o", os.path.join(output_dir, output_name), main_file]
        try:
            result = subprocess.run(command, env=env)
        except OSError as exc:
            failure = str(exc)
        else:
            failure = f"exit status {result.returncode}" if result.returncode else None
        if failure:
            message = f"failed to compile {dir_name} for {platform}: {failure}"
            print_red("Compilation aborted. " + message)
            raise BuildError(message)
        print_green(
            f"Successfully compiled. dir: {dir_name} for platform: {platform} "
            f"binary: {output_name}"
        )
        return dir_name

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(compile_one, compile_binaries))
    return [name for name in results if name is not None]


def build(binaries=(), root=None) -> None:
    """Compile the named binaries (all of them when none are named) for each platform."""
    root = os.getcwd() if root is None else os.fspath(root)
    paths = resolve_paths(root)
    paths.ensure_dirs()

    config_path = os.path.join(root, DEFAULT_CONFIG_FILE)
    if os.path.exists(config_path):
        kill_exist_binaries(load_start_config(config_path), paths)

    platforms = os.environ.get("PLATFORMS") or detect_platform()
    compile_binaries = get_binaries(list(binaries), root)
    cgo_enabled = os.environ.get("CGO_ENABLED", "")
    if cgo_enabled:
        print_blue(f"CGO_ENABLED {cgo_enabled}")
    for platform in platforms.split():
        compile_for_platform(cgo_enabled, platform, compile_binaries, root, paths)
    print_green("All specified binaries under cmd and tools were successfully compiled.")


def get_binaries(binaries, root=None) -> list:
    """Resolve named binaries, or discover every binary under cmd and tools."""
    root = os.getcwd() if root is None else os.fspath(root)
    if binaries:
        resolved = []
        for binary in binaries:
            for prefix in (CMD_DIR, TOOLS_DIR):
                found = find_binary_path(os.path.join(root, prefix), binary)
                if found is not None:
                    resolved.append(os.path.join(prefix, found))
                    break
            else:
                print_yellow(
                    f"Binary {binary} not found in cmd or tools directories. Skipping..."
                )
        print(f"Resolved binaries: [{' '.join(resolved)}]")
        return resolved

    discovered = []
    for prefix in (CMD_DIR, TOOLS_DIR):
        base_dir = os.path.join(root, prefix)
        try:
            subdirs = get_subdirectories_bfs(base_dir)
        except OSError as exc:
            print_yellow(f"Failed to glob pattern {base_dir}: {exc}")
            continue
        discovered.extend(os.path.join(prefix, subdir) for subdir in subdirs)
    return discovered


def get_subdirectories_bfs(base_dir) -> list:
    """Breadth-first list of directories below ``base_dir`` that hold a main.go.

    Hidden and ``internal`` directories are skipped, and a directory with a
    main.go is not searched further. Paths are relative to ``base_dir``.
    """
    base_dir = os.fspath(base_dir)
    queue = deque(
        entry.path for entry in _sorted_dir_entries(base_dir) if not _is_excluded(entry.name)
    )
    found = []
    while queue:
        current = queue.popleft()
        if contains_main_go(current):
            found.append(os.path.relpath(current, base_dir))
            continue
        try:
            entries = _sorted_dir_entries(current)
        except OSError as exc:
            print_yellow(f"Failed to read directory {current}: {exc}")
            continue
        for entry in entries:
            if _is_excluded(entry.name):
                print_yellow(f"Skipping excluded directory: {entry.name}")
                continue
            queue.append(entry.path)
    return found


def find_binary_path(base_dir, binary_name):
    """Depth-first search for a directory named ``binary_name``; relative path or None."""
    base_dir = os.fspath(base_dir)
    try:
        entries = _sorted_dir_entries(base_dir)
    except OSError as exc:
        print_yellow(f"Failed to read directory {base_dir}: {exc}")
        return None
    for entry in entries:
        if entry.name == binary_name:
            return entry.name
        found = find_binary_path(entry.path, binary_name)
        if found is not None:
            return os.path.join(entry.name, found)
    return None


def contains_main_go(directory) -> bool:
    """Whether ``directory`` holds a main.go that is not itself a directory."""
    try:
        info = os.stat(os.path.join(directory, MAIN_FILE))
    except OSError:
        return False
    return not stat.S_ISDIR(info.st_mode)