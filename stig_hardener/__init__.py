"""
STIG Hardener

Checks and remediates individual Windows STIG controls: registry values,
advanced audit policy subcategories and resultant Group Policy state.
"""

__version__ = "1.0.0"

from .core.runner import ControlRunner
from .core.models import ComplianceResult, RemediationOutcome

__all__ = ["ControlRunner", "ComplianceResult", "RemediationOutcome"]
