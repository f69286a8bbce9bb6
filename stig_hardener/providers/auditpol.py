"""
Advanced audit policy provider backed by auditpol.exe.

Supports three report schemas: the default table, the ``/r`` report with
inclusion/exclusion columns, and a per-flag projection of that report
with literal Enabled/Disabled Success and Failure columns.
"""

from typing import Any, Dict, List

from ..core.models import (
    CommandResult, ProviderKind, RemediationTarget, ReportMode, SettingIdentity,
)
from ..core.normalizer import normalize_audit
from .base import BaseProvider
from .command import quote_ps


def subcategory_arg(name: str) -> str:
    return f"/subcategory:{name}"


def flag_arg(flag: str, enabled: bool) -> str:
    return f"/{flag}:{'enable' if enabled else 'disable'}"


class AuditPolicyProvider(BaseProvider):
    """Audit subcategory reader/writer."""

    kind = ProviderKind.AUDIT_SUBCATEGORY

    def query(self, identity: SettingIdentity) -> CommandResult:
        """Run the query matching the identity's report mode."""
        if identity.report_mode == ReportMode.CSV_FLAGS:
            return self.runner.run_powershell(self._flags_report_script(identity.path))

        command = [self.config.auditpol_path, '/get', subcategory_arg(identity.path)]
        if identity.report_mode == ReportMode.CSV_INCLUSION:
            command.append('/r')
        return self.runner.run(command)

    def parse(self, identity: SettingIdentity, raw: str) -> Dict[str, Any]:
        return normalize_audit(raw, identity)

    def write_command(self, identity: SettingIdentity, target: RemediationTarget) -> List[str]:
        """Build ``auditpol /set`` with independent success/failure toggles."""
        flags = target.audit_flags
        if flags is None:
            raise ValueError("Audit policy writes require audit flags")

        command = [self.config.auditpol_path, '/set', subcategory_arg(identity.path)]
        if flags.success is not None:
            command.append(flag_arg('success', flags.success))
        if flags.failure is not None:
            command.append(flag_arg('failure', flags.failure))
        return command

    def _flags_report_script(self, name: str) -> str:
        """PowerShell projection of ``auditpol /r`` onto per-flag columns."""
        return f"""
        $raw = & {quote_ps(self.config.auditpol_path)} /get {quote_ps(subcategory_arg(name))} /r
        if ($LASTEXITCODE -ne 0) {{
            Write-Error ($raw -join "`n")
            exit $LASTEXITCODE
        }}
        $raw | Where-Object {{ $_ }} | ConvertFrom-Csv | ForEach-Object {{
            $success = if ($_.'Inclusion Setting' -match 'Success') {{ 'Enabled' }} else {{ 'Disabled' }}
            $failure = if ($_.'Inclusion Setting' -match 'Failure') {{ 'Enabled' }} else {{ 'Disabled' }}
            '"{{0}}","{{1}}","{{2}}","{{3}}","{{4}}","{{5}}"' -f $_.'Machine Name', $_.'Policy Target', $_.Subcategory, $_.'Subcategory GUID', $success, $failure
        }}
        """
