"""
Read-only resultant policy provider backed by gpresult.exe.

The effective state of a policy after local and domain Group Policy
are merged. This provider is read-only.
"""

from typing import Any, Dict, List

from ..core.errors import UnsupportedOperation
from ..core.models import CommandResult, ProviderKind, RemediationTarget, SettingIdentity
from ..core.normalizer import normalize_resultant
from .base import BaseProvider


class ResultantPolicyProvider(BaseProvider):
    """Searches the verbose computer-scope resultant policy dump."""

    kind = ProviderKind.GPO_RESULTANT
    supports_write = False

    def query(self, identity: SettingIdentity) -> CommandResult:
        return self.runner.run([self.config.gpresult_path, '/scope', 'computer', '/z'])

    def parse(self, identity: SettingIdentity, raw: str) -> Dict[str, Any]:
        return normalize_resultant(raw, identity.path)

    def write_command(self, identity: SettingIdentity, target: RemediationTarget) -> List[str]:
        raise UnsupportedOperation("Resultant policy cannot be written directly")
