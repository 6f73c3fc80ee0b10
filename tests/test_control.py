import dataclasses
import os
from unittest import mock

import psutil
import pytest

from gomake.config import ConfigError, StartConfig
from gomake.control import (
    attempt_check_binaries,
    check_and_report_binaries_status,
    start_tools_and_services,
    stop_and_check_binaries,
)
from gomake.paths import resolve_paths
from gomake.services import ServiceError


def _write_config(root, text):
    (root / "start-config.yml").write_text(text, encoding="utf-8")


def _own_process_paths(tmp_path):
    exe = psutil.Process().exe()
    paths = dataclasses.replace(
        resolve_paths(tmp_path), output_host_bin=os.path.dirname(exe)
    )
    return os.path.basename(exe), paths


@mock.patch("gomake.control.time.sleep")
def test_report_with_absent_service_expected_zero(sleep, tmp_path):
    _write_config(tmp_path, "serviceBinaries:\n  ghost-service: 0\ntoolBinaries:\n")
    counts = check_and_report_binaries_status(tmp_path)
    assert counts == {"ghost-service": 0}
    assert sleep.call_count == 1


@mock.patch("gomake.control.time.sleep")
def test_report_raises_when_service_missing(sleep, tmp_path):
    _write_config(tmp_path, "serviceBinaries:\n  ghost-service: 1\n")
    with pytest.raises(ServiceError, match="ghost-service"):
        check_and_report_binaries_status(tmp_path)
    assert sleep.call_count == 0


def test_report_without_config_raises(tmp_path):
    with pytest.raises(ConfigError):
        check_and_report_binaries_status(tmp_path)


def test_attempt_check_fails_for_running_process(tmp_path):
    name, paths = _own_process_paths(tmp_path)
    config = StartConfig(service_binaries={name: 1})
    with pytest.raises(ServiceError, match="already waited for 2 seconds"):
        attempt_check_binaries(config, paths, max_attempts=2, interval=0)


def test_attempt_check_sleeps_between_attempts_only(tmp_path):
    name, paths = _own_process_paths(tmp_path)
    config = StartConfig(service_binaries={name: 1})
    with mock.patch("gomake.control.time.sleep") as sleep:
        with pytest.raises(ServiceError):
            attempt_check_binaries(config, paths, max_attempts=3, interval=0.5)
    assert sleep.call_count == 2
    sleep.assert_called_with(0.5)


def test_stop_and_check_with_nothing_running(tmp_path):
    _write_config(tmp_path, "serviceBinaries:\n  ghost-service: 1\n")
    assert stop_and_check_binaries(tmp_path) is True
    assert (tmp_path / "_output" / "logs").is_dir()


def test_start_aborts_when_tool_missing(tmp_path):
    _write_config(tmp_path, "serviceBinaries:\ntoolBinaries:\n  - missing-tool\n")
    assert start_tools_and_services(tmp_path) is False


@mock.patch("gomake.control.time.sleep")
def test_start_with_empty_config_succeeds(sleep, tmp_path):
    _write_config(tmp_path, "serviceBinaries:\ntoolBinaries:\n")
    assert start_tools_and_services(tmp_path) is True
    assert sleep.call_count == 1