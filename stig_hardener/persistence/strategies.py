"""
Persistence strategies for settings that revert on reboot.

A strategy is requested separately from the immediate write so that the
write path stays testable without touching the OS task scheduler.
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional

from ..core.config import ToolConfig
from ..core.models import PersistenceKind, PersistenceOutcome
from ..providers.command import CommandRunner

logger = logging.getLogger(__name__)

# schtasks rejects /tr values longer than this
MAX_TASK_RUN_LENGTH = 261


class PersistenceStrategy(ABC):
    """Re-applies a write command after the current run."""

    kind: PersistenceKind

    @abstractmethod
    def register(self, control_id: str, command: List[str]) -> PersistenceOutcome:
        """
        Arrange for ``command`` to be re-run in the future.

        Args:
            control_id: Control the command belongs to
            command: Provider write command to re-run

        Returns:
            PersistenceOutcome: Registration result
        """
        pass


class NullPersistence(PersistenceStrategy):
    """Does nothing; the immediate write is all that happens."""

    kind = PersistenceKind.NONE

    def register(self, control_id: str, command: List[str]) -> PersistenceOutcome:
        return PersistenceOutcome(strategy=self.kind, registered=False, command=command,
                                  message="No persistence requested")


class ScheduledTaskPersistence(PersistenceStrategy):
    """Registers a startup-triggered SYSTEM task that re-runs the write."""

    kind = PersistenceKind.SCHEDULED_TASK

    def __init__(self, runner: Optional[CommandRunner] = None, config: Optional[ToolConfig] = None):
        self.config = config or ToolConfig()
        self.runner = runner or CommandRunner(timeout=self.config.command_timeout)

    def task_name(self, control_id: str) -> str:
        return f"{self.config.task_name_prefix} {control_id}"

    def register_command(self, control_id: str, command: List[str]) -> List[str]:
        """Build the ``schtasks /create`` command for a write command."""
        return [
            self.config.schtasks_path,
            '/create',
            '/tn', self.task_name(control_id),
            '/tr', subprocess.list2cmdline(command),
            '/sc', 'onstart',
            '/ru', 'SYSTEM',
            '/rl', 'HIGHEST',
            '/f',
        ]

    def register(self, control_id: str, command: List[str]) -> PersistenceOutcome:
        task_name = self.task_name(control_id)
        task_run = subprocess.list2cmdline(command)

        if len(task_run) > MAX_TASK_RUN_LENGTH:
            logger.warning("Write command for %s is too long for a scheduled task", control_id)
            return PersistenceOutcome(
                strategy=self.kind,
                registered=False,
                task_name=task_name,
                command=command,
                message=f"Task command exceeds {MAX_TASK_RUN_LENGTH} characters"
            )

        result = self.runner.run(self.register_command(control_id, command))
        if not result.success:
            logger.error("Failed to register task '%s': %s", task_name, result.stderr.strip())
            return PersistenceOutcome(
                strategy=self.kind,
                registered=False,
                task_name=task_name,
                command=command,
                message=f"schtasks failed: {(result.stderr or result.stdout).strip()}"
            )

        logger.info("Registered startup task '%s'", task_name)
        return PersistenceOutcome(
            strategy=self.kind,
            registered=True,
            task_name=task_name,
            command=command,
            message="Reapplied at every startup"
        )


def get_strategy(kind: PersistenceKind, runner: Optional[CommandRunner] = None,
                 config: Optional[ToolConfig] = None) -> PersistenceStrategy:
    """Create the strategy for a persistence kind."""
    if PersistenceKind(kind) == PersistenceKind.SCHEDULED_TASK:
        return ScheduledTaskPersistence(runner=runner, config=config)
    return NullPersistence()
