"""
Exception hierarchy for the STIG hardener.

Provider and normalizer failures are raised as these exceptions and
converted into non-passing compliance statuses by the runner. None of
them may ever be turned into a pass.
"""

from .models import ComplianceStatus, StateStatus


class StigHardenerError(Exception):
    """Base class for all tool errors."""


class ProviderUnavailable(StigHardenerError):
    """The external command or API call errored or returned nothing."""
    status = StateStatus.PROVIDER_UNAVAILABLE


class ParseFailure(StigHardenerError):
    """Output was received but did not have the expected shape."""
    status = StateStatus.PARSE_FAILURE


class NotFound(StigHardenerError):
    """The target key, value, subcategory or policy is absent."""
    status = StateStatus.NOT_FOUND


class WriteRejected(StigHardenerError):
    """A write reported success but the re-read is still non-compliant."""
    status = ComplianceStatus.WRITE_REJECTED


class UnsupportedOperation(StigHardenerError):
    """The provider cannot perform the requested operation."""


class ControlNotFound(StigHardenerError):
    """No control definition exists for the requested id."""


class ConfigurationError(StigHardenerError):
    """The configuration file is unreadable or invalid."""
