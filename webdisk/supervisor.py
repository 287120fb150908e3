"""Background service control through a PID file."""

import enum
import logging
import os
import signal
import subprocess
import sys
import time
from typing import List, Optional

from webdisk.errors import ProcessControlError

logger = logging.getLogger(__name__)

PID_FILE_NAME = "webdisk.pid"
LOG_FILE_NAME = "webdisk.log"

STOP_TIMEOUT = 3.0
STOP_POLL_INTERVAL = 0.1

WINDOWS = os.name == "nt"


class StopResult(enum.Enum):
    NOT_RUNNING = "not_running"
    STOPPED = "stopped"
    STALE = "stale"


def get_process_status(pid: int) -> Optional[str]:
    """Get the state letter of a process from /proc, or None if unavailable.

    Status values:
        'R': Running
        'S': Sleeping (interruptible)
        'D': Disk sleep (uninterruptible)
        'Z': Zombie
        'T': Stopped
    """
    try:
        with open(f"/proc/{pid}/stat", "r") as f:
            stats = f.read().rsplit(")", 1)[-1].split()
            if stats:
                return stats[0]
        return None
    except (FileNotFoundError, PermissionError, ProcessLookupError):
        return None


class ProcessHandle:
    """A process addressed by its id.

    Platform differences in signalling are kept inside this class.
    """

    def __init__(self, pid: int):
        self.pid = pid

    @classmethod
    def spawn(cls, args: List[str], log_path: str) -> "ProcessHandle":
        """Start ``args`` detached, appending its output to ``log_path``."""
        kwargs = {}
        if WINDOWS:
            kwargs["creationflags"] = (
                subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
            )
        else:
            kwargs["start_new_session"] = True

        with open(log_path, "ab") as log:
            process = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=log,
                stderr=log,
                close_fds=True,
                **kwargs,
            )
        logger.debug(f"Spawned {args} as process {process.pid}")
        return cls(process.pid)

    def terminate(self, forced: bool = False) -> None:
        """Ask the process to exit, or kill it when ``forced``.

        Raises ProcessLookupError if the process does not exist.
        """
        if WINDOWS:
            cmd = ["taskkill", "/PID", str(self.pid)]
            if forced:
                cmd.append("/F")
            result = subprocess.run(cmd, capture_output=True, text=True)
            if result.returncode != 0:
                if not self.is_alive():
                    raise ProcessLookupError(f"No such process: {self.pid}")
                raise OSError(result.stderr.strip() or f"taskkill exited with {result.returncode}")
            return

        os.kill(self.pid, signal.SIGKILL if forced else signal.SIGTERM)

    def is_alive(self) -> bool:
        if WINDOWS:
            result = subprocess.run(
                ["tasklist", "/FI", f"PID eq {self.pid}", "/NH"],
                capture_output=True,
                text=True,
            )
            return str(self.pid) in result.stdout

        try:
            os.kill(self.pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # Exists but belongs to someone else
            return True
        return get_process_status(self.pid) != "Z"

    def wait(self, timeout: float = STOP_TIMEOUT, interval: float = STOP_POLL_INTERVAL) -> bool:
        """Poll until the process is gone; True if it died within ``timeout``."""
        deadline = time.monotonic() + timeout
        while True:
            if not self.is_alive():
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(interval)


def get_pid_path(data_dir: str) -> str:
    return os.path.join(data_dir, PID_FILE_NAME)


def get_log_path(data_dir: str) -> str:
    return os.path.join(data_dir, LOG_FILE_NAME)


def read_pid(pid_path: str) -> Optional[int]:
    """Read the PID file; None if it is missing or does not hold a number."""
    try:
        with open(pid_path, "r") as f:
            return int(f.read().strip())
    except (OSError, ValueError):
        return None


def write_pid(pid_path: str, pid: int = None) -> None:
    if pid is None:
        pid = os.getpid()
    parent = os.path.dirname(pid_path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(pid_path, "w") as f:
        f.write(str(pid))


def remove_pid(pid_path: str) -> None:
    try:
        os.remove(pid_path)
    except FileNotFoundError:
        pass


def daemon_command() -> List[str]:
    """Command line that runs the service in the foreground."""
    return [sys.executable, "-m", "webdisk", "run"]


def start_daemon(data_dir: str, command: List[str] = None) -> Optional[ProcessHandle]:
    """Launch the service in the background.

    Returns None without launching anything if a PID file is present.
    """
    pid_path = get_pid_path(data_dir)
    if read_pid(pid_path) is not None:
        return None

    os.makedirs(data_dir, exist_ok=True)
    handle = ProcessHandle.spawn(command or daemon_command(), get_log_path(data_dir))
    logger.info(f"Started background service as process {handle.pid}")
    return handle


def stop_daemon(
    data_dir: str,
    timeout: float = STOP_TIMEOUT,
    interval: float = STOP_POLL_INTERVAL,
) -> StopResult:
    """Stop the background service: terminate, wait, then kill.

    The PID file is removed once the process is confirmed gone, including when
    it had already exited. Other failures leave the PID file in place and
    raise ProcessControlError.
    """
    pid_path = get_pid_path(data_dir)
    pid = read_pid(pid_path)
    if pid is None:
        return StopResult.NOT_RUNNING

    handle = ProcessHandle(pid)
    try:
        handle.terminate()
        if not handle.wait(timeout, interval):
            logger.warning(f"Process {pid} did not exit after {timeout}s, killing it")
            handle.terminate(forced=True)
            if not handle.wait(timeout, interval):
                raise ProcessControlError(f"Process {pid} is still running after being killed")
    except ProcessLookupError:
        remove_pid(pid_path)
        return StopResult.STALE
    except OSError as e:
        raise ProcessControlError(f"Failed to stop process {pid}: {e}") from e

    remove_pid(pid_path)
    return StopResult.STOPPED
