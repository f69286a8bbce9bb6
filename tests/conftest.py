"""
Test fixtures and utilities for the STIG hardener test suite.

Provides a fake command runner that returns canned output, so no test
ever invokes a real OS tool, plus common identities and controls.
"""

import pytest
from typing import Callable, List, Optional, Union

from stig_hardener.controls.loader import ControlLoader
from stig_hardener.core.config import ToolConfig
from stig_hardener.core.models import (
    AuditFlags, CommandResult, ComparisonKind, Control, DesiredStateRule,
    PersistenceKind, ProviderKind, RegistryValueType, RemediationTarget,
    ReportMode, SettingIdentity, SystemInfo,
)
from stig_hardener.core.runner import ControlRunner
from stig_hardener.providers.factory import ProviderFactory


Response = Union[CommandResult, Callable[[List[str]], CommandResult]]


class FakeRunner:
    """
    Stand-in for CommandRunner.

    Responses are queued per call; each is a CommandResult or a callable
    taking the command. Every command received is recorded.
    """

    def __init__(self, responses: Optional[List[Response]] = None):
        self.responses = list(responses or [])
        self.commands: List[List[str]] = []
        self.timeout = 60
        self.powershell_path = "powershell.exe"

    def queue(self, *responses: Response) -> None:
        self.responses.extend(responses)

    def run(self, command: List[str]) -> CommandResult:
        self.commands.append(command)
        if not self.responses:
            raise AssertionError(f"Unexpected command: {command}")
        response = self.responses.pop(0)
        if callable(response):
            return response(command)
        return response.model_copy(update={'command': command})

    def powershell_command(self, script: str) -> List[str]:
        return [self.powershell_path, '-NoProfile', '-NonInteractive',
                '-ExecutionPolicy', 'Bypass', '-Command', script]

    def run_powershell(self, script: str) -> CommandResult:
        return self.run(self.powershell_command(script))


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(stdout=stdout, exit_code=0)


def failed(stderr: str = "Access is denied.", exit_code: int = 1) -> CommandResult:
    return CommandResult(stderr=stderr, exit_code=exit_code)


def registry_json(value=None, kind: str = "DWord", key_exists: bool = True,
                  value_exists: bool = True) -> CommandResult:
    """Canned output of the registry read script."""
    if not key_exists:
        return ok('{"key_exists":false,"value_exists":false}')
    if not value_exists:
        return ok('{"key_exists":true,"value_exists":false}')
    literal = f'"{value}"' if isinstance(value, str) else str(value)
    return ok(f'{{"key_exists":true,"value_exists":true,"value":{literal},"kind":"{kind}"}}')


def auditpol_table(name: str, setting: str) -> CommandResult:
    """Canned ``auditpol /get`` table output."""
    return ok(
        "System audit policy\n"
        "Category/Subcategory                      Setting\n"
        "Logon/Logoff\n"
        f"  {name:<40}{setting}\n"
    )


REPORT_HEADER = "Machine Name,Policy Target,Subcategory,Subcategory GUID,Inclusion Setting,Exclusion Setting"
CREDENTIAL_VALIDATION_GUID = "{0CCE923F-69AE-11D9-BED3-505054503030}"


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def config():
    return ToolConfig(powershell_path="powershell.exe")


@pytest.fixture
def providers(config, fake_runner):
    return ProviderFactory(config=config, runner=fake_runner)


@pytest.fixture
def registry_identity():
    return SettingIdentity(
        kind=ProviderKind.REGISTRY,
        path=r"HKLM\SYSTEM\CurrentControlSet\Control\Lsa",
        value_name="SCENoApplyLegacyAuditPolicy",
    )


@pytest.fixture
def audit_identity():
    return SettingIdentity(
        kind=ProviderKind.AUDIT_SUBCATEGORY,
        path="Other Logon/Logoff Events",
        report_mode=ReportMode.TABULAR,
    )


@pytest.fixture
def registry_control(registry_identity):
    return Control(
        id="WN11-SO-000030",
        title="Audit policy using subcategories must be enabled.",
        rule=DesiredStateRule(
            identity=registry_identity,
            comparison=ComparisonKind.EQUALITY,
            expected=1,
            value_type=RegistryValueType.DWORD,
        ),
        remediation=RemediationTarget(value=1, value_type=RegistryValueType.DWORD),
    )


@pytest.fixture
def audit_control(audit_identity):
    return Control(
        id="WN11-AU-000560",
        title="Audit Other Logon/Logoff Events successes.",
        rule=DesiredStateRule(
            identity=audit_identity,
            comparison=ComparisonKind.CONTAINMENT,
            expected="Success",
        ),
        remediation=RemediationTarget(audit_flags=AuditFlags(success=True, failure=True)),
        prerequisites=["WN11-SO-000030"],
        persistence=PersistenceKind.SCHEDULED_TASK,
    )


@pytest.fixture
def loader():
    """Loader over the bundled control definitions."""
    return ControlLoader()


@pytest.fixture
def make_runner(config, providers, loader):
    """Build a ControlRunner with injectable persistence and domain lookup."""
    def _make(persistence=None, domain_joined: Optional[bool] = False) -> ControlRunner:
        return ControlRunner(
            config=config,
            providers=providers,
            loader=loader,
            persistence=persistence,
            domain_lookup=lambda: domain_joined,
        )
    return _make


@pytest.fixture
def system_info():
    return SystemInfo(
        hostname="test-host",
        os_version="Windows 11 10.0.22631",
        architecture="AMD64",
        is_windows=True,
        domain_joined=False,
    )
