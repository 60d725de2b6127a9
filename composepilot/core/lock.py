"""Single-writer locking for project configuration updates.

Serializes overlapping read-merge-write cycles against the same
configuration file so a concurrent re-scan cannot drop detected services.
"""
import fcntl
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from composepilot.core.logger import get_logger

logger = get_logger(__name__)

POLL_INTERVAL = 0.1


class LockError(Exception):
    """Raised when unable to acquire lock."""
    pass


def _parse_holder(text: str) -> dict:
    """PID and timestamp written by the current holder, if any."""
    lines = [line.strip() for line in text.splitlines()]
    if len(lines) >= 2:
        return {'pid': lines[0], 'time': lines[1]}
    return {'pid': 'unknown', 'time': 'unknown'}


class ConfigLock:
    """Advisory ``flock`` on ``<config>.lock`` next to the configuration file.

    Usage:
        with ConfigLock(Path("composepilot.yml"), timeout=10):
            ...
    """

    def __init__(self, config_path: Path, timeout: int = 0):
        """Initialize lock.

        Args:
            config_path: Configuration file the lock protects
            timeout: Seconds to wait for lock (0 = fail immediately)
        """
        self.lock_file = self.lock_path_for(config_path)
        self.timeout = timeout
        self.lock_fd = None

    @staticmethod
    def lock_path_for(config_path: Path) -> Path:
        config_path = Path(config_path)
        return config_path.with_name(config_path.name + ".lock")

    def acquire(self) -> bool:
        """Acquire the lock.

        Returns:
            True if lock acquired successfully

        Raises:
            LockError: If unable to acquire lock
        """
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)

        # 'a+' does not truncate, so a waiter can still read the holder's PID
        self.lock_fd = open(self.lock_file, 'a+')
        deadline = time.monotonic() + self.timeout

        while not self._try_lock():
            if time.monotonic() >= deadline:
                holder = self._read_holder()
                self._close()
                if self.timeout == 0:
                    raise LockError(
                        f"Another configuration update is in progress.\n"
                        f"Lock held by PID {holder['pid']} since {holder['time']}\n"
                        f"Wait for it to complete, or remove {self.lock_file} if stale."
                    )
                raise LockError(
                    f"Timeout waiting for lock after {self.timeout}s.\n"
                    f"Lock held by PID {holder['pid']} since {holder['time']}"
                )
            time.sleep(POLL_INTERVAL)

        self.lock_fd.seek(0)
        self.lock_fd.truncate()
        self.lock_fd.write(f"{os.getpid()}\n{time.strftime('%Y-%m-%d %H:%M:%S')}\n")
        self.lock_fd.flush()
        logger.debug(f"Acquired lock: {self.lock_file}")
        return True

    def release(self):
        """Release the lock.

        The lock file stays on disk so every waiter locks the same inode.
        """
        if self.lock_fd is None:
            return

        try:
            fcntl.flock(self.lock_fd.fileno(), fcntl.LOCK_UN)
            logger.debug(f"Released lock: {self.lock_file}")
        except OSError as e:
            logger.warning(f"Error releasing lock: {e}")
        finally:
            self._close()

    def _try_lock(self) -> bool:
        try:
            fcntl.flock(self.lock_fd.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            return False
        return True

    def _close(self):
        if self.lock_fd is not None:
            self.lock_fd.close()
            self.lock_fd = None

    def _read_holder(self) -> dict:
        try:
            return _parse_holder(self.lock_file.read_text())
        except OSError:
            return _parse_holder("")

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


@contextmanager
def synthesis_lock(config_path: Path, timeout: int = 0):
    """Hold the configuration lock for one load-merge-save cycle.

    Usage:
        with synthesis_lock(Path("composepilot.yml"), timeout=10):
            config = store.load()
            ...
            store.save(config)

    Raises:
        LockError: If unable to acquire lock
    """
    lock = ConfigLock(config_path, timeout=timeout)
    lock.acquire()
    try:
        yield lock
    finally:
        lock.release()


def check_lock_status(config_path: Path) -> Optional[dict]:
    """Report who holds the lock for ``config_path``.

    Returns:
        Dict with ``pid``, ``time`` and ``lock_file`` if held, None if free
    """
    lock_path = ConfigLock.lock_path_for(config_path)
    if not lock_path.exists():
        return None

    holder_check = ConfigLock(config_path)
    try:
        holder_check.lock_fd = open(lock_path)
    except OSError as e:
        logger.warning(f"Error checking lock status: {e}")
        return None

    try:
        if holder_check._try_lock():
            # Leftover file from an earlier run; nobody holds it
            fcntl.flock(holder_check.lock_fd.fileno(), fcntl.LOCK_UN)
            return None
        info = _parse_holder(holder_check.lock_fd.read())
        info['lock_file'] = str(lock_path)
        return info
    finally:
        holder_check._close()
