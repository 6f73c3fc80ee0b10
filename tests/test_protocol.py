import os
import subprocess
import zipfile
from unittest import mock

import pytest

from gomake.protocol import (
    ProtocolError,
    compile_proto_files,
    ensure_tools_installed,
    fix_omitempty_in_directory,
    get_module_name_from_go_mod,
    get_protoc_arch,
    protocol,
    remove_omitempty_from_file,
    unzip,
)

TAGGED = 'Name string `protobuf:"bytes,1,opt,name=name,proto3" json:"name,omitempty"`\n'
UNTAGGED = 'Name string `protobuf:"bytes,1,opt,name=name,proto3" json:"name"`\n'


def _ok(*args, **kwargs):
    return subprocess.CompletedProcess(args, 0)


def test_get_protoc_arch_maps_and_falls_back():
    arch_map = {"amd64": "x86_64", "arm64": "aarch64"}
    assert get_protoc_arch(arch_map, "amd64") == "x86_64"
    assert get_protoc_arch(arch_map, "riscv64") == "riscv64"


def test_module_name_read_from_go_mod(tmp_path):
    go_mod = tmp_path / "go.mod"
    go_mod.write_text("module example.com/demo\n\ngo 1.21\n", encoding="utf-8")
    assert get_module_name_from_go_mod(go_mod) == "example.com/demo"


def test_module_directive_missing(tmp_path):
    go_mod = tmp_path / "go.mod"
    go_mod.write_text("go 1.21\n", encoding="utf-8")
    with pytest.raises(ProtocolError, match="module directive not found"):
        get_module_name_from_go_mod(go_mod)


def test_go_mod_missing(tmp_path):
    with pytest.raises(ProtocolError, match="failed to open go.mod"):
        get_module_name_from_go_mod(tmp_path / "go.mod")


def test_remove_omitempty_from_file(tmp_path):
    target = tmp_path / "user.pb.go"
    target.write_text("package user\r\n" + TAGGED, encoding="utf-8", newline="")
    remove_omitempty_from_file(target)
    assert target.read_text(encoding="utf-8") == "package user\n" + UNTAGGED


def test_remove_omitempty_missing_file(tmp_path):
    with pytest.raises(ProtocolError, match="error opening file"):
        remove_omitempty_from_file(tmp_path / "absent.pb.go")


def test_fix_directory_only_touches_pb_go(tmp_path):
    (tmp_path / "a.pb.go").write_text(TAGGED, encoding="utf-8")
    (tmp_path / "b.go").write_text(TAGGED, encoding="utf-8")
    fixed = fix_omitempty_in_directory(tmp_path)
    assert fixed == [str(tmp_path / "a.pb.go")]
    assert (tmp_path / "a.pb.go").read_text(encoding="utf-8") == UNTAGGED
    assert (tmp_path / "b.go").read_text(encoding="utf-8") == TAGGED


def test_unzip_round_trip(tmp_path):
    archive = tmp_path / "protoc.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("bin/", "")
        zf.writestr("bin/protoc", b"\x7fELF-data")
        zf.writestr("readme.txt", "hello")
    dest = tmp_path / "out"
    dest.mkdir()
    unzip(archive, dest)
    assert (dest / "bin" / "protoc").read_bytes() == b"\x7fELF-data"
    assert (dest / "readme.txt").read_text() == "hello"


def test_unzip_rejects_non_zip(tmp_path):
    bogus = tmp_path / "bogus.zip"
    bogus.write_bytes(b"not a zip")
    with pytest.raises(ProtocolError):
        unzip(bogus, tmp_path)


def test_compile_proto_files_runs_protoc_and_fixes(tmp_path):
    user_dir = tmp_path / "user"
    user_dir.mkdir()
    (user_dir / "user.pb.go").write_text(TAGGED, encoding="utf-8")
    with mock.patch("gomake.protocol.subprocess.run", side_effect=_ok) as run:
        compile_proto_files(str(tmp_path), "user", "example.com/demo")
    command = run.call_args.args[0]
    assert command == [
        "protoc",
        "--proto_path=" + str(tmp_path),
        "--go_out=plugins=grpc:" + str(user_dir),
        "--go_opt=module=example.com/demo/pkg/protocol/user",
        str(user_dir / "user.proto"),
    ]
    assert (user_dir / "user.pb.go").read_text(encoding="utf-8") == UNTAGGED


def test_compile_proto_files_failure(tmp_path):
    failed = subprocess.CompletedProcess(["protoc"], 1)
    with mock.patch("gomake.protocol.subprocess.run", return_value=failed):
        with pytest.raises(ProtocolError, match="failed to compile"):
            compile_proto_files(str(tmp_path), "user", "example.com/demo")


def test_ensure_tools_installed_sets_gobin():
    with mock.patch.dict(os.environ), mock.patch(
        "gomake.protocol.shutil.which", return_value="/found"
    ), mock.patch("gomake.protocol.subprocess.run") as run:
        target = ensure_tools_installed()
        assert os.environ["GOBIN"] == target
    assert run.call_count == 0


def test_protocol_compiles_each_directory(tmp_path):
    (tmp_path / "go.mod").write_text("module example.com/demo\n", encoding="utf-8")
    proto_root = tmp_path / "pkg" / "protocol"
    for name in ("group", "user"):
        (proto_root / name).mkdir(parents=True)
        (proto_root / name / f"{name}.pb.go").write_text(TAGGED, encoding="utf-8")
    with mock.patch.dict(os.environ), mock.patch(
        "gomake.protocol.shutil.which", return_value="/found"
    ), mock.patch("gomake.protocol.subprocess.run", side_effect=_ok) as run:
        protocol(tmp_path)
    modules = [call.args[0][3] for call in run.call_args_list]
    assert modules == [
        "--go_opt=module=example.com/demo/pkg/protocol/group",
        "--go_opt=module=example.com/demo/pkg/protocol/user",
    ]
    assert (proto_root / "user" / "user.pb.go").read_text(encoding="utf-8") == UNTAGGED