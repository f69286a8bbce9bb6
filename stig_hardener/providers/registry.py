"""
Registry provider for DWORD and string value assertions.

Reads and writes go through PowerShell's registry provider so the key
path, value name and value type are passed to the host exactly as
declared.
"""

import json
from typing import Any, Dict, List

from ..core.errors import NotFound, ParseFailure, ProviderUnavailable
from ..core.models import (
    CommandResult, ProviderKind, RegistryValueType, RemediationTarget, SettingIdentity,
)
from .base import BaseProvider
from .command import quote_ps


# PowerShell GetValueKind() names -> registry type names
VALUE_KINDS = {
    "DWord": RegistryValueType.DWORD,
    "String": RegistryValueType.STRING,
}

PROPERTY_TYPES = {
    RegistryValueType.DWORD: "DWord",
    RegistryValueType.STRING: "String",
}

DWORD_MASK = 0xFFFFFFFF


def signed_dword(value: int) -> int:
    """Express an unsigned DWORD as the Int32 literal New-ItemProperty accepts."""
    if not 0 <= value <= DWORD_MASK:
        raise ValueError(f"DWORD value out of range: {value}")
    return value - 0x100000000 if value > 0x7FFFFFFF else value


def ps_registry_path(identity: SettingIdentity) -> str:
    """Registry path in PowerShell provider notation."""
    return f"Registry::{identity.path}"


class RegistryProvider(BaseProvider):
    """
    Registry key/value provider.

    Absent keys and absent values are reported as not found; they are
    never treated as carrying a default.
    """

    kind = ProviderKind.REGISTRY

    def query(self, identity: SettingIdentity) -> CommandResult:
        """Read one value with its kind as compact JSON."""
        script = f"""
        $path = {quote_ps(ps_registry_path(identity))}
        $name = {quote_ps(identity.value_name)}
        $key = Get-Item -LiteralPath $path -ErrorAction SilentlyContinue
        if (-not $key) {{
            @{{ 'key_exists' = $false; 'value_exists' = $false }} | ConvertTo-Json -Compress
        }} elseif ($key.GetValueNames() -notcontains $name) {{
            @{{ 'key_exists' = $true; 'value_exists' = $false }} | ConvertTo-Json -Compress
        }} else {{
            @{{
                'key_exists' = $true
                'value_exists' = $true
                'value' = $key.GetValue($name)
                'kind' = $key.GetValueKind($name).ToString()
            }} | ConvertTo-Json -Compress
        }}
        """
        return self.runner.run_powershell(script)

    def parse(self, identity: SettingIdentity, raw: str) -> Dict[str, Any]:
        """Convert the JSON read result into a typed value record."""
        if not raw or not raw.strip():
            raise ProviderUnavailable(f"No output reading {identity.display_name}")

        try:
            data = json.loads(raw.strip())
        except json.JSONDecodeError as e:
            raise ParseFailure(f"Unreadable registry query output: {e}") from e

        if not isinstance(data, dict) or 'key_exists' not in data:
            raise ParseFailure("Registry query output is missing key_exists")
        if not data['key_exists']:
            raise NotFound(f"Registry key not found: {identity.path}")
        if not data.get('value_exists'):
            raise NotFound(f"Registry value not found: {identity.display_name}")

        kind = data.get('kind')
        value = data.get('value')
        value_type = VALUE_KINDS.get(kind)

        if value_type == RegistryValueType.DWORD:
            try:
                # GetValue returns DWORDs as signed Int32
                value = int(value) & DWORD_MASK
            except (TypeError, ValueError) as e:
                raise ParseFailure(f"DWORD value is not an integer: {value!r}") from e
            type_name = value_type.value
        elif value_type == RegistryValueType.STRING:
            value = "" if value is None else str(value)
            type_name = value_type.value
        else:
            type_name = kind or "Unknown"

        return {"value": value, "type": type_name}

    def write_command(self, identity: SettingIdentity, target: RemediationTarget) -> List[str]:
        """Create the key path if absent, then set the value, in one invocation."""
        if target.value is None or target.value_type is None:
            raise ValueError("Registry writes require a value and value type")

        if target.value_type == RegistryValueType.DWORD:
            dword = signed_dword(int(target.value))
            value_literal = str(dword) if dword >= 0 else f"({dword})"
        else:
            value_literal = quote_ps(str(target.value))

        script = f"""
        try {{
            $path = {quote_ps(ps_registry_path(identity))}
            if (-not (Test-Path -LiteralPath $path)) {{
                New-Item -Path $path -Force -ErrorAction Stop | Out-Null
            }}
            New-ItemProperty -LiteralPath $path -Name {quote_ps(identity.value_name)} -Value {value_literal} -PropertyType {PROPERTY_TYPES[target.value_type]} -Force -ErrorAction Stop | Out-Null
        }} catch {{
            Write-Error $_.Exception.Message
            exit 1
        }}
        """
        return self.runner.powershell_command(script)
