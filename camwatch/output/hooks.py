"""Hook script execution on device state changes."""

import logging
import os
import subprocess
from collections.abc import Sequence

from camwatch.config import Action

logger = logging.getLogger(__name__)


class HookRunner:
    """Run each configured script with the action exported in its environment.

    A failing script is logged and never stops the remaining scripts.
    """

    def __init__(self, scripts: Sequence[str] = (), action_variable: str = "ACTION"):
        """Initialize hook runner.

        Args:
            scripts: Executable paths, run in order
            action_variable: Environment variable carrying the action
        """
        self.scripts = list(scripts)
        self.action_variable = action_variable

    def _execute(self, script: str, action: Action) -> bool:
        env = dict(os.environ)
        env[self.action_variable] = action.value
        try:
            result = subprocess.run([script], env=env, check=False)
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            logger.error("Error running script %s: %s", script, e, extra={"script": script})
            return False
        if result.returncode != 0:
            logger.error(
                "Error running script %s: exit status %d",
                script,
                result.returncode,
                extra={"script": script},
            )
            return False
        return True

    def run(self, action: Action) -> int:
        """Run every script for ``action``.

        Returns:
            Number of scripts that exited successfully
        """
        succeeded = 0
        for script in self.scripts:
            logger.info("Running script %s...", script)
            if self._execute(script, action):
                succeeded += 1
        return succeeded

    def opened(self) -> int:
        """Trigger the device opened hook."""
        logger.info("Triggering device opened hook.")
        return self.run(Action.OPEN)

    def closed(self) -> int:
        """Trigger the device closed hook."""
        logger.info("Triggering device closed hook.")
        return self.run(Action.CLOSE)
