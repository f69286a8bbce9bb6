"""
Tests for host detection helpers.
"""

from unittest.mock import patch

from stig_hardener.utils.host import detect_system, is_domain_joined

from conftest import failed, ok


class TestDomainJoin:
    """Test is_domain_joined."""

    def test_joined(self, fake_runner):
        fake_runner.queue(ok("True\r\n"))
        assert is_domain_joined(fake_runner) is True

    def test_workgroup(self, fake_runner):
        fake_runner.queue(ok("False"))
        assert is_domain_joined(fake_runner) is False

    def test_lookup_failure_is_unknown(self, fake_runner):
        fake_runner.queue(failed("Get-CimInstance : Access denied"))
        assert is_domain_joined(fake_runner) is None


class TestDetectSystem:
    """Test detect_system."""

    @patch('stig_hardener.utils.host.is_windows', return_value=False)
    def test_non_windows_skips_domain_lookup(self, _, fake_runner):
        info = detect_system(fake_runner)

        assert info.is_windows is False
        assert info.domain_joined is None
        assert fake_runner.commands == []

    @patch('stig_hardener.utils.host.platform.win32_ver', return_value=("11", "10.0.22631", "", ""))
    @patch('stig_hardener.utils.host.is_windows', return_value=True)
    def test_windows_reports_domain_state(self, _, __, fake_runner):
        fake_runner.queue(ok("True"))

        info = detect_system(fake_runner)

        assert info.os_version == "Windows 11 10.0.22631"
        assert info.domain_joined is True
