"""Installation of protoc tooling and generation of Go code from .proto files."""

import glob
import os
import shutil
import subprocess
import tempfile
import urllib.error
import urllib.request
import zipfile

from .system import go_arch, go_os

PROTOC_VERSION = "26.1"
PROTOC_BASE_URL = (
    "https://github.com/protocolbuffers/protobuf/releases/download/v" + PROTOC_VERSION
)
PROTOC_ARCHES = {"amd64": "x86_64", "386": "x86", "arm64": "aarch64"}
_GO_ORG = "go" + "lang"
GO_TOOLS = {"protoc-gen-go": f"github.com/{_GO_ORG}/protobuf/protoc-gen-go@latest"}
PROTO_DIR = os.path.join("pkg", "protocol")
OMITEMPTY = ",omitempty"


class ProtocolError(RuntimeError):
    """Protocol tooling could not be installed or code could not be generated."""


def _tool_dir() -> str:
    if go_os() == "windows":
        return os.path.join(os.environ.get("USERPROFILE", ""), "go", "bin")
    return "/usr/local/bin"


def ensure_tools_installed() -> str:
    """Install protoc-gen-go and protoc when missing; return the install directory."""
    target_dir = _tool_dir()
    os.environ["GOBIN"] = target_dir

    for tool, module_path in GO_TOOLS.items():
        if shutil.which(os.path.join(target_dir, tool)) is None:
            print(f"Installing {tool} to {target_dir}...")
            try:
                result = subprocess.run(["go", "install", module_path])
            except OSError as exc:
                raise ProtocolError(f"failed to install {tool}: {exc}") from exc
            if result.returncode != 0:
                raise ProtocolError(
                    f"failed to install {tool}: exit status {result.returncode}"
                )
        else:
            print(f"{tool} is already installed in {target_dir}.")

    if shutil.which(os.path.join(target_dir, "protoc")) is not None:
        print("protoc is already installed.")
        return target_dir

    print("Installing protoc...")
    install_protoc(target_dir)
    return target_dir


def _protoc_url(os_name: str, arch: str) -> str:
    if os_name == "windows":
        os_arch = "win64"
    else:
        os_arch = f"{os_name}-{get_protoc_arch(PROTOC_ARCHES, arch)}"
    return f"{PROTOC_BASE_URL}/protoc-{PROTOC_VERSION}-{os_arch}.zip"


def install_protoc(install_dir) -> None:
    """Download the protoc release archive and unpack it into ``install_dir``."""
    url = _protoc_url(go_os(), go_arch())
    print("URL:", url)
    with tempfile.NamedTemporaryFile(
        prefix="protoc-", suffix=".zip", delete=False
    ) as handle:
        archive = handle.name
        try:
            with urllib.request.urlopen(url) as response:
                shutil.copyfileobj(response, handle)
        except (urllib.error.URLError, OSError) as exc:
            raise ProtocolError(f"failed to download {url}: {exc}") from exc
    print("tmp ", archive, "install  ", install_dir)
    try:
        unzip(archive, install_dir)
    finally:
        os.remove(archive)


def unzip(src, dest) -> None:
    """Extract every entry of the zip archive ``src`` below ``dest``."""
    try:
        with zipfile.ZipFile(src) as archive:
            for info in archive.infolist():
                target = os.path.join(dest, info.filename)
                if info.is_dir():
                    os.makedirs(target, exist_ok=True)
                    continue
                with archive.open(info) as source, open(target, "wb") as out:
                    shutil.copyfileobj(source, out)
                mode = (info.external_attr >> 16) & 0o777
                if mode:
                    os.chmod(target, mode)
    except (zipfile.BadZipFile, OSError) as exc:
        raise ProtocolError(f"failed to unzip {src}: {exc}") from exc


def get_protoc_arch(arch_map, go_arch):
    """The protoc release name for a Go architecture, or the name unchanged."""
    return arch_map.get(go_arch, go_arch)


def protocol(root=None) -> None:
    """Generate Go code for every package directory under pkg/protocol."""
    root = os.getcwd() if root is None else os.fspath(root)
    ensure_tools_installed()
    module_name = get_module_name_from_go_mod(os.path.join(root, "go.mod"))

    proto_path = os.path.join(root, PROTO_DIR)
    try:
        with os.scandir(proto_path) as entries:
            dirs = sorted(entry.name for entry in entries if entry.is_dir())
    except OSError as exc:
        raise ProtocolError(str(exc)) from exc

    for dir_name in dirs:
        compile_proto_files(proto_path, dir_name, module_name)


def compile_proto_files(base_path, dir_name, module_name) -> None:
    """Run protoc on ``<dir_name>/<dir_name>.proto`` and strip omitempty tags."""
    base_path = os.fspath(base_path)
    proto_file = os.path.join(base_path, dir_name, dir_name + ".proto")
    output_dir = os.path.join(base_path, dir_name)
    module = f"{module_name}/pkg/protocol/{dir_name}"
    include_paths = [base_path]

    args = [
        "--proto_path=" + ":".join(include_paths),
        "--go_out=plugins=grpc:" + output_dir,
        "--go_opt=module=" + module,
        proto_file,
    ]
    print(f"Compiling {proto_file}...")
    try:
        result = subprocess.run(["protoc", *args])
    except OSError as exc:
        raise ProtocolError(f"failed to compile {proto_file}: {exc}") from exc
    if result.returncode != 0:
        raise ProtocolError(
            f"failed to compile {proto_file}: exit status {result.returncode}"
        )
    fix_omitempty_in_directory(output_dir)


def fix_omitempty_in_directory(directory) -> list:
    """Strip omitempty from every generated .pb.go file; return the files fixed."""
    directory = os.fspath(directory)
    files = sorted(glob.glob(os.path.join(glob.escape(directory), "*.pb.go")))
    print(f"Fixing omitempty in dir  {directory}...")
    for path in files:
        print(f"Fixing omitempty in {path}...")
        try:
            remove_omitempty_from_file(path)
        except ProtocolError as exc:
            raise ProtocolError(f"failed to replace omitempty in {path}: {exc}") from exc
    return files


def remove_omitempty_from_file(file_path) -> None:
    """Remove every ``,omitempty`` from the file, normalising line endings."""
    try:
        with open(file_path, encoding="utf-8", newline="") as handle:
            content = handle.read()
    except OSError as exc:
        raise ProtocolError(f"error opening file: {exc}") from exc

    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    fixed = [line.removesuffix("\r").replace(OMITEMPTY, "") for line in lines]

    try:
        with open(file_path, "w", encoding="utf-8", newline="") as handle:
            handle.writelines(line + "\n" for line in fixed)
    except OSError as exc:
        raise ProtocolError(f"error writing to file: {exc}") from exc


def get_module_name_from_go_mod(path="go.mod") -> str:
    """The module path declared in a go.mod file."""
    try:
        with open(path, encoding="utf-8") as handle:
            for line in handle:
                line = line.rstrip("\r\n")
                if line.startswith("module "):
                    return line[len("module"):].strip()
    except OSError as exc:
        raise ProtocolError(f"failed to open go.mod: {exc}") from exc
    raise ProtocolError("module directive not found in go.mod")