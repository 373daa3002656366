"""Inotify watch registration for the device directory and device nodes."""

import logging
import time
from collections.abc import Callable
from enum import Enum

from inotify_simple import INotify, flags

logger = logging.getLogger(__name__)

DEVICE_DETECTION_MASK = flags.CREATE
DEVICE_CLOSE_MASK = flags.CLOSE_WRITE | flags.CLOSE_NOWRITE
DEVICE_USAGE_MASK = flags.OPEN | DEVICE_CLOSE_MASK


class RearmState(str, Enum):
    """States of a watch re-arm attempt."""

    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


class WatchRegistrar:
    """Own the inotify handle and the watches registered on it.

    At most one watch exists per path; the device directory watch is added
    once, before any device watch.
    """

    def __init__(
        self,
        inotify: INotify | None = None,
        max_attempts: int = 5,
        retry_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize watch registrar.

        Args:
            inotify: Inotify handle (a new one is opened when omitted)
            max_attempts: Re-arm attempts before giving up on a path
            retry_delay: Seconds between re-arm attempts
            sleep: Delay function used between attempts
        """
        self.inotify = inotify if inotify is not None else INotify()
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep
        self.directory: str | None = None
        self._wd_by_path: dict[str, int] = {}
        self._path_by_wd: dict[int, str] = {}
        self._closed = False

    def _add(self, path: str, mask: int) -> int:
        wd = self.inotify.add_watch(path, mask)
        self._wd_by_path[path] = wd
        self._path_by_wd[wd] = path
        return wd

    def watch_directory(self, path: str, mask: int = DEVICE_DETECTION_MASK) -> int:
        """Watch the device directory for new entries.

        Raises:
            RuntimeError: If a directory watch already exists
            OSError: If the watch cannot be added
        """
        if self.directory is not None:
            raise RuntimeError(f"Directory already watched: {self.directory}")
        wd = self._add(path, mask)
        self.directory = path
        return wd

    def watch_device(self, path: str, mask: int = DEVICE_USAGE_MASK) -> int:
        """Watch a device node for open/close events.

        Raises:
            RuntimeError: If the directory watch has not been added yet
            OSError: If the watch cannot be added
        """
        if self.directory is None:
            raise RuntimeError("Device directory must be watched before devices")
        if path in self._wd_by_path:
            self.remove(path)
        return self._add(path, mask)

    def remove(self, path: str):
        """Remove the watch on ``path``; unknown paths are ignored."""
        wd = self._wd_by_path.pop(path, None)
        if wd is None:
            return
        self._path_by_wd.pop(wd, None)
        try:
            self.inotify.rm_watch(wd)
        except OSError as e:
            # The kernel drops the watch itself when the node is deleted
            logger.debug("Watch already gone. device=%s wd=%d: %s", path, wd, e)

    def forget(self, wd: int):
        """Drop bookkeeping for a descriptor the kernel has released."""
        path = self._path_by_wd.pop(wd, None)
        if path is not None and self._wd_by_path.get(path) == wd:
            del self._wd_by_path[path]
            logger.debug("Watch released by kernel. device=%s wd=%d", path, wd)

    def path_for(self, wd: int) -> str | None:
        """Return the path a watch descriptor was registered for."""
        return self._path_by_wd.get(wd)

    def is_watched(self, path: str) -> bool:
        """Whether ``path`` currently has a watch."""
        return path in self._wd_by_path

    def rearm(self, path: str, mask: int = DEVICE_USAGE_MASK) -> RearmState:
        """Replace the watch on a (re)created device node, retrying on failure.

        Args:
            path: Absolute device path
            mask: Event mask for the new watch

        Returns:
            SUCCEEDED once a watch is added, EXHAUSTED after the last failure
        """
        state = RearmState.ATTEMPTING
        attempts = 0
        while state is RearmState.ATTEMPTING:
            attempts += 1
            self.remove(path)
            try:
                self.watch_device(path, mask)
            except OSError as e:
                if attempts >= self.max_attempts:
                    logger.error(
                        "Giving up on device watch after %d attempts. device=%s: %s",
                        attempts,
                        path,
                        e,
                        extra={"device": path},
                    )
                    state = RearmState.EXHAUSTED
                else:
                    logger.warning(
                        "Could not watch device. device=%s attempt=%d: %s",
                        path,
                        attempts,
                        e,
                        extra={"device": path},
                    )
                    self._sleep(self.retry_delay)
                    logger.info("Retrying... device=%s", path, extra={"device": path})
            else:
                logger.info("Added watch for device. device=%s", path, extra={"device": path})
                state = RearmState.SUCCEEDED
        return state

    def read(self, timeout: float | None = None):
        """Read pending inotify events.

        Args:
            timeout: Timeout in seconds (None = wait indefinitely)
        """
        return self.inotify.read(timeout=None if timeout is None else int(timeout * 1000))

    def close(self):
        """Close the inotify handle; later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        self._wd_by_path.clear()
        self._path_by_wd.clear()
        self.inotify.close()
