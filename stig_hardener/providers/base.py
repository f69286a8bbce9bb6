"""
Base provider interface for reading and writing host settings.

Defines the common interface that registry, audit policy and resultant
policy providers implement: one read produces one ObservedState, one
write issues exactly one external command.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..core.config import ToolConfig
from ..core.errors import NotFound, ParseFailure, ProviderUnavailable, UnsupportedOperation
from ..core.models import (
    CommandResult, ObservedState, ProviderKind, RemediationTarget,
    SettingIdentity, StateStatus,
)
from .command import CommandRunner

logger = logging.getLogger(__name__)


class BaseProvider(ABC):
    """
    Abstract base class for external state providers.

    Subclasses describe how to query a setting, how to parse the raw
    output, and how to build the write command; the base class turns
    that into immutable observations with classified failures.
    """

    kind: ProviderKind
    supports_write: bool = True

    def __init__(self, runner: Optional[CommandRunner] = None, config: Optional[ToolConfig] = None):
        """
        Initialize provider.

        Args:
            runner: Command runner used for every external call
            config: Tool configuration (defaults if None)
        """
        self.config = config or ToolConfig()
        self.runner = runner or CommandRunner(
            timeout=self.config.command_timeout,
            powershell_path=self.config.powershell_path
        )

    @abstractmethod
    def query(self, identity: SettingIdentity) -> CommandResult:
        """
        Invoke the provider's read command.

        Args:
            identity: Setting to read

        Returns:
            CommandResult: Raw command result
        """
        pass

    @abstractmethod
    def parse(self, identity: SettingIdentity, raw: str) -> Dict[str, Any]:
        """
        Normalize raw provider output into field -> value pairs.

        Args:
            identity: Setting that was read
            raw: Raw stdout of the read command

        Returns:
            Dict[str, Any]: Normalized fields

        Raises:
            ProviderUnavailable: If the output is empty
            ParseFailure: If the output does not have the expected shape
            NotFound: If the setting is absent
        """
        pass

    @abstractmethod
    def write_command(self, identity: SettingIdentity, target: RemediationTarget) -> List[str]:
        """
        Build the single command that writes the target state.

        Args:
            identity: Setting to write
            target: Desired value or audit flags

        Returns:
            List[str]: Command argument list
        """
        pass

    def read(self, identity: SettingIdentity) -> ObservedState:
        """
        Read a setting and return a fresh snapshot.

        Args:
            identity: Setting to read

        Returns:
            ObservedState: Present, or classified as not found,
            provider unavailable or parse failure
        """
        self._check_identity(identity)
        result = self.query(identity)

        if not result.success:
            message = (result.stderr or result.stdout).strip() or f"exit code {result.exit_code}"
            logger.warning("Provider %s failed for %s: %s", self.kind.value, identity.display_name, message)
            return ObservedState(
                identity=identity,
                status=StateStatus.PROVIDER_UNAVAILABLE,
                raw=result.stdout,
                message=f"Provider command failed: {message}"
            )

        try:
            parsed = self.parse(identity, result.stdout)
        except (ProviderUnavailable, ParseFailure, NotFound) as e:
            logger.warning("Cannot determine state of %s: %s", identity.display_name, e)
            return ObservedState(
                identity=identity,
                status=e.status,
                raw=result.stdout,
                message=str(e)
            )

        return ObservedState(
            identity=identity,
            status=StateStatus.PRESENT,
            raw=result.stdout,
            parsed=parsed
        )

    def write(self, identity: SettingIdentity, target: RemediationTarget) -> CommandResult:
        """
        Issue exactly one external write for the setting.

        Success of the command does not imply the setting took effect;
        callers must read the setting again to confirm.

        Raises:
            UnsupportedOperation: If the provider is read-only
        """
        self._check_identity(identity)
        if not self.supports_write:
            raise UnsupportedOperation(f"{self.kind.value} provider is read-only")

        command = self.write_command(identity, target)
        logger.info("Writing %s", identity.display_name)
        result = self.runner.run(command)

        if not result.success:
            logger.error(
                "Write to %s failed (exit %s): %s",
                identity.display_name, result.exit_code, result.stderr.strip()
            )
        return result

    def _check_identity(self, identity: SettingIdentity) -> None:
        if identity.kind != self.kind:
            raise ValueError(f"{self.kind.value} provider cannot handle {identity.kind.value} settings")
