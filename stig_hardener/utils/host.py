"""
Host detection utilities.

Windows detection, privilege checks and the domain-join lookup used to
explain writes masked by domain Group Policy.
"""

import logging
import os
import platform
import sys
from typing import Optional

from ..core.models import SystemInfo
from ..providers.command import CommandRunner

logger = logging.getLogger(__name__)


def is_windows() -> bool:
    return sys.platform == "win32"


def is_admin() -> bool:
    """
    Check if the current process has administrative privileges.

    Returns:
        bool: True if running elevated (Administrator or root)
    """
    if is_windows():
        import ctypes
        try:
            return ctypes.windll.shell32.IsUserAnAdmin() != 0
        except OSError:
            return False
    return os.geteuid() == 0


def is_domain_joined(runner: CommandRunner) -> Optional[bool]:
    """
    Check whether the computer is joined to an Active Directory domain.

    Returns:
        Optional[bool]: None when the lookup itself fails
    """
    result = runner.run_powershell("(Get-CimInstance -ClassName Win32_ComputerSystem).PartOfDomain")
    if not result.success:
        logger.debug("Domain-join lookup failed: %s", result.stderr.strip())
        return None

    answer = result.stdout.strip().lower()
    if answer == "true":
        return True
    if answer == "false":
        return False
    logger.debug("Unexpected domain-join answer: %r", answer)
    return None


def detect_system(runner: Optional[CommandRunner] = None) -> SystemInfo:
    """
    Gather host information for reports.

    Args:
        runner: Command runner for the domain-join lookup (skipped if None
            or not on Windows)
    """
    windows = is_windows()
    if windows:
        release, version, _, _ = platform.win32_ver()
        os_version = f"Windows {release} {version}".strip()
    else:
        os_version = f"{platform.system()} {platform.release()}"

    return SystemInfo(
        hostname=platform.node(),
        os_version=os_version,
        architecture=platform.machine(),
        is_windows=windows,
        domain_joined=is_domain_joined(runner) if (windows and runner) else None
    )
