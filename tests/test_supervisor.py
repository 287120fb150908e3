import os
import subprocess
import sys

import pytest

from webdisk import cli
from webdisk.supervisor import (
    ProcessHandle,
    StopResult,
    get_pid_path,
    read_pid,
    start_daemon,
    stop_daemon,
    write_pid,
)

posix_only = pytest.mark.skipif(os.name != "posix", reason="needs POSIX signals")


def exited_pid():
    """A PID that belonged to a process which has already been reaped."""
    process = subprocess.Popen([sys.executable, "-c", "pass"])
    process.wait()
    return process.pid


def test_write_and_read_pid(tmp_path):
    pid_path = str(tmp_path / "run" / "webdisk.pid")
    write_pid(pid_path, 4321)
    assert read_pid(pid_path) == 4321


def test_write_pid_defaults_to_current_process(tmp_path):
    pid_path = str(tmp_path / "webdisk.pid")
    write_pid(pid_path)
    assert read_pid(pid_path) == os.getpid()


@pytest.mark.parametrize("content", ["", "not-a-pid", "12.5"])
def test_read_pid_rejects_garbage(tmp_path, content):
    pid_path = tmp_path / "webdisk.pid"
    pid_path.write_text(content)
    assert read_pid(str(pid_path)) is None


def test_read_pid_missing_file(tmp_path):
    assert read_pid(str(tmp_path / "nope.pid")) is None


def test_stop_without_pid_file(tmp_path, monkeypatch):
    signalled = []
    monkeypatch.setattr(ProcessHandle, "terminate", lambda self, forced=False: signalled.append(self.pid))

    assert stop_daemon(str(tmp_path)) is StopResult.NOT_RUNNING
    assert signalled == []


def test_cli_stop_without_pid_file(data_dir, capsys):
    assert cli.main(["stop"]) == 0
    assert "Service is not running" in capsys.readouterr().out


@posix_only
def test_stop_stale_pid_removes_file(tmp_path):
    pid_path = get_pid_path(str(tmp_path))
    write_pid(pid_path, exited_pid())

    assert stop_daemon(str(tmp_path)) is StopResult.STALE
    assert not os.path.exists(pid_path)


@posix_only
def test_stop_terminates_running_process(tmp_path):
    process = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
    pid_path = get_pid_path(str(tmp_path))
    write_pid(pid_path, process.pid)
    try:
        assert stop_daemon(str(tmp_path), timeout=5.0) is StopResult.STOPPED
        assert not os.path.exists(pid_path)
    finally:
        process.kill()
        process.wait()


@posix_only
def test_stop_kills_process_ignoring_sigterm(tmp_path):
    script = (
        "import signal, sys, time\n"
        "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
        "sys.stdout.write('ready\\n'); sys.stdout.flush()\n"
        "time.sleep(60)\n"
    )
    process = subprocess.Popen([sys.executable, "-c", script], stdout=subprocess.PIPE)
    process.stdout.readline()
    write_pid(get_pid_path(str(tmp_path)), process.pid)
    try:
        assert stop_daemon(str(tmp_path), timeout=0.5, interval=0.05) is StopResult.STOPPED
    finally:
        process.kill()
        process.wait()
        process.stdout.close()


def test_handle_is_alive_for_current_process():
    assert ProcessHandle(os.getpid()).is_alive()


@posix_only
def test_handle_is_not_alive_after_exit():
    assert not ProcessHandle(exited_pid()).is_alive()


def test_start_refuses_when_pid_file_exists(tmp_path, monkeypatch):
    spawned = []
    monkeypatch.setattr(ProcessHandle, "spawn", classmethod(lambda cls, args, log: spawned.append(args)))
    write_pid(get_pid_path(str(tmp_path)), 999999)

    assert start_daemon(str(tmp_path)) is None
    assert spawned == []


def test_start_spawns_detached_command(tmp_path):
    command = [sys.executable, "-c", "print('hello from the service')"]
    handle = start_daemon(str(tmp_path / "data"), command=command)

    assert handle is not None
    assert handle.wait(timeout=10.0, interval=0.05)
    log = (tmp_path / "data" / "webdisk.log").read_text()
    assert "hello from the service" in log
