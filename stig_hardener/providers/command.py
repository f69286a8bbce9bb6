"""
External command execution for providers.

Every provider talks to the host through a CommandRunner so that tests
can substitute a fake one and no real OS tools are invoked.
"""

import logging
import subprocess
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..core.models import CommandResult

logger = logging.getLogger(__name__)


POWERSHELL_CANDIDATES = [
    r"C:\Program Files\PowerShell\7\pwsh.exe",
    r"C:\Program Files (x86)\PowerShell\7\pwsh.exe",
    r"C:\Windows\System32\WindowsPowerShell\v1.0\powershell.exe",
    r"C:\Windows\SysWOW64\WindowsPowerShell\v1.0\powershell.exe",
]


def find_powershell() -> str:
    """Find PowerShell executable path, preferring PowerShell 7+."""
    for path in POWERSHELL_CANDIDATES:
        if Path(path).exists():
            return path

    # Fallback to PATH lookup
    return "powershell.exe"


def quote_ps(value: str) -> str:
    """Quote a string as a PowerShell single-quoted literal."""
    return "'" + str(value).replace("'", "''") + "'"


class CommandRunner:
    """
    Runs external commands with a timeout.

    Failures to launch and timeouts are reported as a failed
    CommandResult rather than raised, so callers can classify them.
    """

    def __init__(self, timeout: int = 60, powershell_path: Optional[str] = None):
        """
        Initialize command runner.

        Args:
            timeout: Timeout in seconds for each command
            powershell_path: PowerShell executable (auto-detected if None)
        """
        self.timeout = timeout
        self._powershell_path = powershell_path

    @property
    def powershell_path(self) -> str:
        if self._powershell_path is None:
            self._powershell_path = find_powershell()
        return self._powershell_path

    def run(self, command: List[str]) -> CommandResult:
        """
        Execute a command given as an argument list.

        Args:
            command: Executable followed by its arguments

        Returns:
            CommandResult: stdout, stderr, exit code and timing
        """
        start_time = datetime.utcnow()
        logger.debug("Running: %s", subprocess.list2cmdline(command))

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False
            )
        except subprocess.TimeoutExpired:
            logger.warning("Command timed out after %s seconds: %s", self.timeout, command[0])
            return CommandResult(
                command=command,
                stderr=f"Command timed out after {self.timeout} seconds",
                exit_code=-1,
                execution_time_ms=self.timeout * 1000
            )
        except OSError as e:
            logger.warning("Failed to launch %s: %s", command[0], e)
            return CommandResult(command=command, stderr=str(e), exit_code=-1)

        execution_time_ms = int((datetime.utcnow() - start_time).total_seconds() * 1000)

        return CommandResult(
            command=command,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            exit_code=result.returncode,
            execution_time_ms=execution_time_ms
        )

    def powershell_command(self, script: str) -> List[str]:
        """Build the argument list that runs a PowerShell script."""
        return [
            self.powershell_path,
            '-NoProfile',
            '-NonInteractive',
            '-ExecutionPolicy', 'Bypass',
            '-Command', script
        ]

    def run_powershell(self, script: str) -> CommandResult:
        """Execute a PowerShell script and return results."""
        return self.run(self.powershell_command(script))
