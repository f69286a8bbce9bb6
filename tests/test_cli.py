"""
Tests for the command line interface.

The ControlRunner built by the CLI is swapped for one wired to a
FakeRunner, so commands run end to end without touching the host.
"""

import json
import pytest
from click.testing import CliRunner
from rich.console import Console
from unittest.mock import patch

from stig_hardener.cli import cli
from stig_hardener.core.runner import ControlRunner
from stig_hardener.providers.factory import ProviderFactory

from conftest import ok, registry_json


@pytest.fixture
def host(fake_runner, loader):
    """Patch the CLI onto the fake runner and a wide console."""
    def build(config):
        return ControlRunner(
            config=config,
            providers=ProviderFactory(config=config, runner=fake_runner),
            loader=loader,
            domain_lookup=lambda: False,
        )

    with patch('stig_hardener.cli.ControlRunner', side_effect=build), \
            patch('stig_hardener.cli.console', Console(width=200)), \
            patch('stig_hardener.cli.is_windows', return_value=True):
        yield fake_runner


@pytest.fixture
def cli_runner():
    return CliRunner()


class TestCheckCommand:
    """Test the check command."""

    def test_compliant_exits_zero(self, cli_runner, host):
        host.queue(registry_json(1))

        result = cli_runner.invoke(cli, ['check', 'WN11-SO-000030'])

        assert result.exit_code == 0
        assert "1/1 controls compliant" in result.output

    def test_non_compliant_exits_one(self, cli_runner, host):
        host.queue(registry_json(1), registry_json(0))

        result = cli_runner.invoke(cli, ['check', 'WN11-SO-000030', 'WN11-CC-000005'])

        assert result.exit_code == 1
        assert "1/2 controls compliant" in result.output

    def test_absent_value_exits_one(self, cli_runner, host):
        host.queue(registry_json(key_exists=False))

        result = cli_runner.invoke(cli, ['check', 'WN11-CC-000005'])

        assert result.exit_code == 1
        assert "NOT_FOUND" in result.output

    def test_requires_ids_or_all(self, cli_runner, host):
        result = cli_runner.invoke(cli, ['check'])
        assert result.exit_code == 2

    def test_unknown_control(self, cli_runner, host):
        result = cli_runner.invoke(cli, ['check', 'WN11-XX-000000'])

        assert result.exit_code == 1
        assert "Control not found" in result.output

    def test_json_report(self, cli_runner, host, tmp_path):
        host.queue(registry_json(1))
        output = tmp_path / "report.json"

        result = cli_runner.invoke(cli, ['check', 'WN11-SO-000030', '--output', str(output)])

        assert result.exit_code == 0
        data = json.loads(output.read_text())
        assert data["operation"] == "check"
        assert data["summary"]["exit_code"] == 0


class TestRemediateCommand:
    """Test the remediate command."""

    def test_remediate_registry_control(self, cli_runner, host):
        host.queue(registry_json(0), ok(), registry_json(1))

        result = cli_runner.invoke(cli, ['remediate', 'WN11-SO-000030', '--force'])

        assert result.exit_code == 0
        assert "COMPLIANT" in result.output
        assert len(host.commands) == 3

    def test_write_rejected_exits_one(self, cli_runner, host):
        host.queue(registry_json(0), ok(), registry_json(0))

        result = cli_runner.invoke(cli, ['remediate', 'WN11-SO-000030', '--force'])

        assert result.exit_code == 1
        assert "WRITE_REJECTED" in result.output

    def test_dry_run_writes_nothing(self, cli_runner, host):
        host.queue(registry_json(0))

        result = cli_runner.invoke(cli, ['remediate', 'WN11-SO-000030', '--dry-run'])

        assert "Would run:" in result.output
        assert len(host.commands) == 1

    def test_requires_admin(self, cli_runner, host):
        with patch('stig_hardener.cli.is_admin', return_value=False):
            result = cli_runner.invoke(cli, ['remediate', 'WN11-SO-000030'])

        assert result.exit_code == 1
        assert "Administrative privileges required" in result.output
        assert host.commands == []

    def test_confirmation_declined(self, cli_runner, host):
        with patch('stig_hardener.cli.is_admin', return_value=True):
            result = cli_runner.invoke(cli, ['remediate', 'WN11-SO-000030'], input="n\n")

        assert result.exit_code == 1
        assert "Operation cancelled" in result.output
        assert host.commands == []

    def test_read_only_control(self, cli_runner, host):
        result = cli_runner.invoke(cli, ['remediate', 'WN11-CC-000185', '--force'])

        assert result.exit_code == 1
        assert "read-only" in result.output


class TestControlsCommands:
    """Test the controls command group."""

    def test_list(self, cli_runner, host):
        result = cli_runner.invoke(cli, ['controls', 'list'])

        assert result.exit_code == 0
        assert "WN11-AU-000560" in result.output
        assert "WN11-CC-000185" in result.output

    def test_list_by_provider(self, cli_runner, host):
        result = cli_runner.invoke(cli, ['controls', 'list', '--provider', 'gpo-resultant'])

        assert "WN11-CC-000185" in result.output
        assert "WN11-SO-000030" not in result.output

    def test_show_reports_divergence(self, cli_runner, host):
        result = cli_runner.invoke(cli, ['controls', 'show', 'wn11-au-000560'])

        assert result.exit_code == 0
        assert "Divergence" in result.output
        assert "WN11-SO-000030" in result.output


class TestGlobalOptions:
    """Test group-level options."""

    def test_missing_config_file(self, cli_runner, host, tmp_path):
        result = cli_runner.invoke(cli, ['--config', str(tmp_path / "missing.yaml"), 'controls', 'list'])

        assert result.exit_code == 1
        assert "Failed to initialize" in result.output
