"""Process table scanning for open video device descriptors."""

import logging
import os
from collections.abc import Iterator
from typing import NamedTuple

from camwatch.devices import DEFAULT_DEVICE_DIR, DEFAULT_PREFIX, is_video_device

logger = logging.getLogger(__name__)


class ScanError(RuntimeError):
    """The process table itself could not be enumerated."""


class DeviceReference(NamedTuple):
    """An open descriptor that resolves to a video device."""

    pid: int
    fd: int
    device: str


class ProcessScanner:
    """Find processes holding a video device open via ``/proc/<pid>/fd``.

    Processes and descriptors routinely disappear while the table is being
    walked; those entries are skipped rather than reported.
    """

    def __init__(
        self,
        proc_root: str = "/proc",
        device_dir: str = DEFAULT_DEVICE_DIR,
        prefix: str = DEFAULT_PREFIX,
    ):
        """Initialize process scanner.

        Args:
            proc_root: Process table mount point
            device_dir: Directory holding device nodes
            prefix: Base name prefix of video nodes
        """
        self.proc_root = proc_root
        self.device_dir = device_dir
        self.prefix = prefix

    def _process_ids(self) -> list[str]:
        try:
            entries = os.listdir(self.proc_root)
        except OSError as e:
            raise ScanError(f"Error reading {self.proc_root}: {e}") from e
        return [entry for entry in entries if entry.isascii() and entry.isdigit()]

    def _descriptors(self, pid: str) -> Iterator[tuple[int, str]]:
        fd_dir = os.path.join(self.proc_root, pid, "fd")
        try:
            fds = os.listdir(fd_dir)
        except OSError as e:
            logger.debug("Skipping process=%s: %s", pid, e)
            return
        for fd in fds:
            if not (fd.isascii() and fd.isdigit()):
                continue
            try:
                target = os.readlink(os.path.join(fd_dir, fd))
            except OSError as e:
                logger.debug("Skipping process=%s fd=%s: %s", pid, fd, e)
                continue
            yield int(fd), target

    def iter_references(self) -> Iterator[DeviceReference]:
        """Lazily yield every descriptor that resolves to a video device.

        Raises:
            ScanError: If the process table cannot be listed
        """
        for pid in self._process_ids():
            for fd, target in self._descriptors(pid):
                if is_video_device(target, self.device_dir, self.prefix):
                    yield DeviceReference(int(pid), fd, target)

    def scan(self) -> bool:
        """Check whether any process currently holds a video device open.

        Returns:
            True on the first matching descriptor, False if none exist

        Raises:
            ScanError: If the process table cannot be listed
        """
        logger.info("Checking for references to video devices.")
        for reference in self.iter_references():
            logger.info(
                "Found reference to device. device=%s process=%d",
                reference.device,
                reference.pid,
                extra={"device": reference.device, "pid": reference.pid},
            )
            return True
        logger.info("No references to video devices found.")
        return False
