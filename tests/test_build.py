import os

import pytest

from gomake.build import (
    BuildError,
    build,
    compile_dir,
    compile_for_platform,
    concurrency_for,
    contains_main_go,
    create_start_config_yml,
    find_binary_path,
    get_binaries,
    get_main_file,
    get_subdirectories_bfs,
)
from gomake.config import load_start_config
from gomake.paths import resolve_paths


def _touch(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("package main\n")


@pytest.fixture
def project(tmp_path):
    _touch(tmp_path / "cmd" / "api" / "main.go")
    _touch(tmp_path / "cmd" / "rpc" / "user" / "main.go")
    _touch(tmp_path / "cmd" / "rpc" / "user" / "sub" / "main.go")
    _touch(tmp_path / "cmd" / "internal" / "hidden" / "main.go")
    _touch(tmp_path / "cmd" / ".git" / "x" / "main.go")
    _touch(tmp_path / "tools" / "seq" / "main.go")
    return tmp_path


def test_get_subdirectories_bfs_skips_excluded(project):
    found = get_subdirectories_bfs(project / "cmd")
    assert found == ["api", os.path.join("rpc", "user")]


def test_get_subdirectories_bfs_missing_dir(tmp_path):
    with pytest.raises(FileNotFoundError):
        get_subdirectories_bfs(tmp_path / "absent")


def test_get_binaries_discovers_all(project):
    assert get_binaries([], project) == [
        os.path.join("cmd", "api"),
        os.path.join("cmd", "rpc", "user"),
        os.path.join("tools", "seq"),
    ]


def test_get_binaries_resolves_names(project, capsys):
    resolved = get_binaries(["user", "seq", "nope"], project)
    assert resolved == [os.path.join("cmd", "rpc", "user"), os.path.join("tools", "seq")]
    assert "nope" in capsys.readouterr().out


def test_find_binary_path(project):
    assert find_binary_path(project / "cmd", "user") == os.path.join("rpc", "user")
    assert find_binary_path(project / "cmd", "missing") is None
    assert find_binary_path(project / "absent", "user") is None


def test_contains_main_go(project, tmp_path):
    assert contains_main_go(project / "cmd" / "api")
    assert not contains_main_go(project / "cmd" / "rpc")
    (tmp_path / "odd" / "main.go").mkdir(parents=True)
    assert not contains_main_go(tmp_path / "odd")


def test_get_main_file_returns_lexically_last(project):
    found = get_main_file(project / "cmd" / "rpc")
    assert found == str(project / "cmd" / "rpc" / "user" / "sub" / "main.go")


def test_get_main_file_without_main(tmp_path):
    (tmp_path / "empty").mkdir()
    assert get_main_file(tmp_path / "empty") is None


def test_get_main_file_missing_path(tmp_path):
    with pytest.raises(FileNotFoundError):
        get_main_file(tmp_path / "absent")


def test_create_start_config_round_trip(tmp_path):
    assert create_start_config_yml(tmp_path, ["api", "user"], ["seq"])
    config = load_start_config(tmp_path / "start-config.yml", os_name="linux")
    assert config.service_binaries == {"api": 1, "user": 1}
    assert config.tool_binaries == ["seq"]
    assert config.max_file_descriptors == 10000


def test_create_start_config_keeps_existing(tmp_path):
    target = tmp_path / "start-config.yml"
    target.write_text("serviceBinaries:\n")
    assert not create_start_config_yml(tmp_path, ["api"], [])
    assert target.read_text() == "serviceBinaries:\n"


def test_compile_dir_missing_source(tmp_path):
    assert compile_dir("", tmp_path / "absent", tmp_path / "out", "linux_amd64", ["x"]) == []


def test_compile_dir_source_not_dir(tmp_path):
    source = tmp_path / "file"
    source.write_text("")
    with pytest.raises(BuildError):
        compile_dir("", source, tmp_path / "out", "linux_amd64", ["x"])


def test_compile_dir_bad_platform(tmp_path):
    (tmp_path / "cmd").mkdir()
    with pytest.raises(BuildError):
        compile_dir("", tmp_path / "cmd", tmp_path / "out", "linux", ["x"])


def test_compile_dir_skips_binaries_without_main(tmp_path):
    (tmp_path / "cmd" / "empty").mkdir(parents=True)
    out = tmp_path / "out"
    assert compile_dir("", tmp_path / "cmd", out, "linux_amd64", ["empty"]) == []
    assert (out / "linux" / "amd64").is_dir()


def test_compile_for_platform_without_mains(tmp_path):
    (tmp_path / "cmd" / "empty").mkdir(parents=True)
    paths = resolve_paths(tmp_path, {})
    result = compile_for_platform(
        "", "linux_amd64", [os.path.join("cmd", "empty"), "other"], tmp_path, paths
    )
    assert result == ([], [])
    config = load_start_config(tmp_path / "start-config.yml", os_name="linux")
    assert config.service_binaries == {}
    assert config.tool_binaries == []


@pytest.mark.parametrize("count", [1, 3, 40])
@pytest.mark.parametrize("cpus", [1, 8, 16, 64, 256])
def test_concurrency_bounds(count, cpus):
    workers = concurrency_for(count, cpus)
    assert 1 <= workers <= count


def test_concurrency_without_binaries():
    assert concurrency_for(0, 8) == 0


def test_concurrency_grows_with_cpus():
    assert concurrency_for(100, 256) >= concurrency_for(100, 16)


def test_build_with_no_matching_binaries(tmp_path, monkeypatch):
    monkeypatch.setenv("PLATFORMS", "linux_amd64")
    monkeypatch.delenv("CGO_ENABLED", raising=False)
    build(["missing"], tmp_path)
    config = load_start_config(tmp_path / "start-config.yml", os_name="linux")
    assert config.service_binaries == {}
    assert (tmp_path / "_output" / "bin" / "platforms").is_dir()