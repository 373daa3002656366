"""Shared pytest fixtures for the camwatch test suite."""

import errno
import logging
import os
from pathlib import Path

import pytest
from inotify_simple import Event

from camwatch.config import Action, WatcherConfig
from camwatch.output.hooks import HookRunner


class FakeINotify:
    """In-memory stand-in for ``inotify_simple.INotify``."""

    def __init__(self):
        self.next_wd = 1
        self.watches: dict[int, tuple[str, int]] = {}
        self.add_calls: list[str] = []
        self.rm_calls: list[int] = []
        self.failures: dict[str, int] = {}
        self.batches: list = []
        self.closed = 0

    def fail_next(self, path: str, times: int):
        """Make the next ``times`` add_watch calls for ``path`` fail."""
        self.failures[path] = times

    def add_watch(self, path, mask):
        self.add_calls.append(path)
        if self.failures.get(path, 0) > 0:
            self.failures[path] -= 1
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        wd = self.next_wd
        self.next_wd += 1
        self.watches[wd] = (path, mask)
        return wd

    def rm_watch(self, wd):
        self.rm_calls.append(wd)
        if wd not in self.watches:
            raise OSError(errno.EINVAL, "Invalid argument")
        del self.watches[wd]

    def wd_for(self, path: str) -> int:
        for wd, (watched, _) in self.watches.items():
            if watched == path:
                return wd
        raise KeyError(path)

    def read(self, timeout=None, read_delay=None):
        if not self.batches:
            return []
        batch = self.batches.pop(0)
        if isinstance(batch, Exception):
            raise batch
        return batch

    def close(self):
        self.closed += 1


class FakeTimer:
    """Timer that only fires when the test says so."""

    def __init__(self, delay, action):
        self.delay = delay
        self.action = action
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled:
            self.action()


class TimerFactory:
    """Records every timer a debouncer creates."""

    def __init__(self):
        self.timers: list[FakeTimer] = []

    def __call__(self, delay, action):
        timer = FakeTimer(delay, action)
        self.timers.append(timer)
        return timer

    @property
    def live(self) -> list[FakeTimer]:
        return [t for t in self.timers if t.started and not t.cancelled]

    def fire_pending(self):
        for timer in self.live:
            timer.fire()


class RecordingHooks(HookRunner):
    """Hook runner that records actions instead of executing scripts."""

    def __init__(self):
        super().__init__([])
        self.actions: list[Action] = []

    def run(self, action):
        self.actions.append(action)
        return 0


def make_event(wd: int, mask: int, name: str = "") -> Event:
    return Event(wd=wd, mask=int(mask), cookie=0, name=name)


@pytest.fixture(autouse=True)
def info_logging():
    """Log at INFO, as the CLI does, so every record is built."""
    logger = logging.getLogger("camwatch")
    level = logger.level
    logger.setLevel(logging.INFO)
    yield
    logger.setLevel(level)


@pytest.fixture
def fake_inotify() -> FakeINotify:
    return FakeINotify()


@pytest.fixture
def timer_factory() -> TimerFactory:
    return TimerFactory()


@pytest.fixture
def hooks() -> RecordingHooks:
    return RecordingHooks()


@pytest.fixture
def dev_dir(tmp_path) -> Path:
    """Device directory with a single ``video0`` node."""
    path = tmp_path / "dev"
    path.mkdir()
    (path / "video0").touch()
    (path / "null").touch()
    return path


@pytest.fixture
def proc_root(tmp_path) -> Path:
    path = tmp_path / "proc"
    path.mkdir()
    return path


@pytest.fixture
def make_process(proc_root):
    """Create ``<proc>/<pid>/fd/<n>`` symlinks pointing at ``targets``."""

    def _make(pid: int, targets: list[str]) -> Path:
        fd_dir = proc_root / str(pid) / "fd"
        fd_dir.mkdir(parents=True)
        for fd, target in enumerate(targets):
            os.symlink(target, fd_dir / str(fd))
        return fd_dir

    return _make


@pytest.fixture
def config(dev_dir, proc_root) -> WatcherConfig:
    return WatcherConfig(device_dir=str(dev_dir), proc_root=str(proc_root), rearm_delay=0)
