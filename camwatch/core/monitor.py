"""Main event loop coordinator."""

import logging
import os
from enum import Enum

from inotify_simple import flags

from camwatch.config import WatcherConfig
from camwatch.core.debounce import Debouncer
from camwatch.devices import is_video_device, list_video_devices
from camwatch.input.processes import ProcessScanner, ScanError
from camwatch.input.watches import (
    DEVICE_CLOSE_MASK,
    DEVICE_DETECTION_MASK,
    DEVICE_USAGE_MASK,
    WatchRegistrar,
)
from camwatch.output.hooks import HookRunner

logger = logging.getLogger(__name__)


class WatchSetupError(RuntimeError):
    """Watches could not be established at startup."""


class MonitorState(str, Enum):
    """Event loop states."""

    INITIALIZING = "initializing"
    WATCHING = "watching"


class DeviceMonitor:
    """Dispatch inotify events to rescans and watch re-arming."""

    def __init__(
        self,
        config: WatcherConfig,
        registrar: WatchRegistrar | None = None,
        scanner: ProcessScanner | None = None,
        debouncer: Debouncer | None = None,
        hooks: HookRunner | None = None,
    ):
        """Initialize device monitor.

        Components not supplied are built from ``config``.

        Args:
            config: Application configuration
        """
        self.config = config
        self.state = MonitorState.INITIALIZING
        self.running = False

        self.registrar = registrar
        self.scanner = scanner or ProcessScanner(
            proc_root=config.proc_root,
            device_dir=config.device_dir,
            prefix=config.device_prefix,
        )
        self.debouncer = debouncer or Debouncer(config.debounce_seconds)
        self.hooks = hooks or HookRunner(config.scripts, config.action_variable)

    def _is_video_device(self, name: str) -> bool:
        return is_video_device(name, self.config.device_dir, self.config.device_prefix)

    def setup(self):
        """Watch the device directory and every existing device node.

        Raises:
            WatchSetupError: If any watch cannot be added or the directory
                cannot be listed
        """
        device_dir = self.config.device_dir
        try:
            if self.registrar is None:
                self.registrar = WatchRegistrar(
                    max_attempts=self.config.rearm_attempts,
                    retry_delay=self.config.rearm_delay,
                )
            self.registrar.watch_directory(device_dir, DEVICE_DETECTION_MASK)
            devices = list_video_devices(device_dir, self.config.device_prefix)
            for device in devices:
                self.registrar.watch_device(device, DEVICE_USAGE_MASK)
                logger.info("Watching device. device=%s", device, extra={"device": device})
        except OSError as e:
            raise WatchSetupError(f"Cannot watch {device_dir}: {e}") from e

        self.state = MonitorState.WATCHING
        logger.info("Watching %d video device(s) in %s", len(devices), device_dir)
        # Settle the initial state
        self.debouncer.trigger(self.rescan)

    def rescan(self) -> bool:
        """Scan the process table and fire the matching hook.

        Returns:
            True if a device is in use
        """
        try:
            in_use = self.scanner.scan()
        except ScanError as e:
            logger.error("%s", e)
            in_use = False

        if in_use:
            self.hooks.opened()
        else:
            self.hooks.closed()
        return in_use

    def _event_path(self, event) -> str:
        if event.name:
            return event.name
        return self.registrar.path_for(event.wd) or ""

    def handle_event(self, event):
        """Dispatch one inotify event; each flag is checked independently."""
        device = self._event_path(event)
        fields = {"device": device, "mask": event.mask}

        if event.mask & flags.Q_OVERFLOW:
            logger.error("Inotify event queue overflowed, rescanning. mask=%s", event.mask)
            self.debouncer.trigger(self.rescan)
        if event.mask & flags.OPEN:
            logger.info("Device opened. device=%s mask=%s", device, event.mask, extra=fields)
            self.debouncer.trigger(self.rescan)
        if event.mask & DEVICE_CLOSE_MASK:
            logger.info("Device closed. device=%s mask=%s", device, event.mask, extra=fields)
            self.debouncer.trigger(self.rescan)
        if event.mask & flags.CREATE and self._is_video_device(device):
            path = os.path.join(self.config.device_dir, os.path.basename(device))
            logger.info("Device detected. device=%s", path, extra={"device": path})
            self.registrar.rearm(path, DEVICE_USAGE_MASK)
        if event.mask & flags.IGNORED:
            self.registrar.forget(event.wd)

    def poll(self, timeout: float | None = None) -> int:
        """Read one batch of events and dispatch it.

        Read errors are logged and reported as an empty batch.

        Returns:
            Number of events handled
        """
        try:
            events = self.registrar.read(timeout)
        except OSError as e:
            logger.error("Error reading watch events: %s", e)
            return 0
        for event in events:
            self.handle_event(event)
        return len(events)

    def run(self):
        """Run the main event loop until stopped."""
        self.running = True
        logger.info("Starting event loop... (Ctrl-C to stop)")
        while self.running:
            self.poll(self.config.poll_timeout)

    def stop(self):
        """Stop the event loop."""
        self.running = False

    def cleanup(self):
        """Cleanup resources."""
        self.debouncer.cancel()
        if self.registrar:
            self.registrar.close()

    def __enter__(self):
        """Context manager entry."""
        try:
            self.setup()
        except BaseException:
            self.cleanup()
            raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.cleanup()
