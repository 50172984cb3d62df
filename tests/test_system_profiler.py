from __future__ import annotations

import pytest

from syspro.clients import system_profiler
from syspro.clients.system_profiler import SystemProfiler
from syspro.version import VERSION


@pytest.fixture
def no_proc_version(monkeypatch, tmp_path):
    monkeypatch.setattr(system_profiler, "PROC_VERSION", str(tmp_path / "missing"))


def test_uname_reads_proc_version(monkeypatch, tmp_path):
    proc = tmp_path / "version"
    proc.write_text("Linux version 6.1.0 (gcc)\n")
    monkeypatch.setattr(system_profiler, "PROC_VERSION", str(proc))

    assert SystemProfiler.uname() == "Linux version 6.1.0 (gcc)"


def test_uname_runs_uname_on_posix(monkeypatch, no_proc_version):
    monkeypatch.setattr(system_profiler.sys, "platform", "darwin")
    monkeypatch.setattr(system_profiler, "_run", lambda command, shell=False: f"ran {command}")

    assert SystemProfiler.uname() == "ran uname -a"


def test_uname_runs_ver_on_windows(monkeypatch, no_proc_version):
    monkeypatch.setattr(system_profiler.sys, "platform", "win32")
    monkeypatch.setattr(system_profiler, "_run", lambda command, shell=False: f"ran {command} {shell}")

    assert SystemProfiler.uname() == "ran ver True"


def test_unknown_platform(monkeypatch, no_proc_version):
    monkeypatch.setattr(system_profiler.sys, "platform", "zos")
    assert SystemProfiler.uname() == "unknown platform"


@pytest.mark.parametrize(
    "error, expected",
    [(FileNotFoundError(), "uname executable not found"), (OSError(12, "ENOMEM"), "uname lookup failed")],
)
def test_uname_failures_degrade(monkeypatch, error, expected):
    def boom(command, shell=False):
        raise error

    monkeypatch.setattr(system_profiler, "_run", boom)

    assert SystemProfiler.uname_from_system() == expected


def test_ver_missing(monkeypatch):
    def boom(command, shell=False):
        raise FileNotFoundError()

    monkeypatch.setattr(system_profiler, "_run", boom)

    assert SystemProfiler.uname_from_system_ver() == "ver executable not found"


def test_user_agent_fields(monkeypatch):
    monkeypatch.setattr(SystemProfiler, "uname", classmethod(lambda cls: "Linux test"))
    ua = SystemProfiler(app_info={"name": "OrderSync", "version": "2.1"}).user_agent()

    assert ua["application"] == {"name": "OrderSync", "version": "2.1"}
    assert ua["bindings_version"] == VERSION
    assert ua["lang"] == "python"
    assert ua["uname"] == "Linux test"
    assert ua["engine"]
    assert ua["platform"]
    assert "hostname" in ua


def test_user_agent_omits_empty_fields(monkeypatch):
    monkeypatch.setattr(SystemProfiler, "uname", classmethod(lambda cls: ""))
    monkeypatch.setattr(system_profiler.socket, "gethostname", lambda: "")

    ua = SystemProfiler().user_agent()

    assert "application" not in ua
    assert "uname" not in ua
    assert "hostname" not in ua
    assert ua["lang"] == "python"


def test_uname_is_computed_once(monkeypatch):
    calls = []

    def fake_uname(cls):
        calls.append(1)
        return "Linux once"

    monkeypatch.setattr(SystemProfiler, "uname", classmethod(fake_uname))
    profiler = SystemProfiler()
    profiler.user_agent()
    profiler.user_agent()

    assert len(calls) == 1
