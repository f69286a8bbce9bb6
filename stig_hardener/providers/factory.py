"""
Provider factory for creating setting providers.

Provides a unified way to get the provider responsible for a
SettingIdentity, sharing one command runner and configuration.
"""

from typing import Dict, Optional, Type

from ..core.config import ToolConfig
from ..core.models import ProviderKind
from .auditpol import AuditPolicyProvider
from .base import BaseProvider
from .command import CommandRunner
from .gpresult import ResultantPolicyProvider
from .registry import RegistryProvider


class ProviderFactory:
    """
    Factory class for creating provider handlers.

    Instances are cached per kind so a run reuses one provider object
    for every read and write.
    """

    _providers: Dict[ProviderKind, Type[BaseProvider]] = {
        ProviderKind.REGISTRY: RegistryProvider,
        ProviderKind.AUDIT_SUBCATEGORY: AuditPolicyProvider,
        ProviderKind.GPO_RESULTANT: ResultantPolicyProvider,
    }

    def __init__(self, config: Optional[ToolConfig] = None, runner: Optional[CommandRunner] = None):
        """
        Initialize provider factory.

        Args:
            config: Tool configuration shared by all providers
            runner: Command runner shared by all providers
        """
        self.config = config or ToolConfig()
        self.runner = runner or CommandRunner(
            timeout=self.config.command_timeout,
            powershell_path=self.config.powershell_path
        )
        self._instances: Dict[ProviderKind, BaseProvider] = {}

    def get_provider(self, kind: ProviderKind) -> BaseProvider:
        """
        Get provider for the specified kind.

        Raises:
            ValueError: If no provider is registered for the kind
        """
        kind = ProviderKind(kind)
        if kind not in self._providers:
            raise ValueError(f"Unsupported provider: {kind}")

        if kind not in self._instances:
            self._instances[kind] = self._providers[kind](runner=self.runner, config=self.config)
        return self._instances[kind]

    @classmethod
    def get_supported_providers(cls) -> list[ProviderKind]:
        return list(cls._providers.keys())

    @classmethod
    def register_provider(cls, kind: ProviderKind, provider_class: Type[BaseProvider]) -> None:
        """
        Register a provider class.

        Args:
            kind: Provider kind to register for
            provider_class: Provider implementation
        """
        cls._providers[kind] = provider_class
