"""
Comparator applying desired-state rules to normalized observations.

Absence and indeterminate state are never compliant: only a present,
parsed value that satisfies the rule produces a pass.
"""

from typing import Any, List, Optional

from .models import (
    ComparisonKind, ComplianceResult, ComplianceStatus, DesiredStateRule,
    ObservedState, RegistryValueType, RemediationTarget, StateStatus,
)
from .normalizer import ENABLED


_STATE_TO_COMPLIANCE = {
    StateStatus.NOT_FOUND: ComplianceStatus.NOT_FOUND,
    StateStatus.PROVIDER_UNAVAILABLE: ComplianceStatus.PROVIDER_UNAVAILABLE,
    StateStatus.PARSE_FAILURE: ComplianceStatus.PARSE_FAILURE,
}


def check_equality(actual: Any, expected: Any) -> bool:
    """Exact, typed comparison: 1 and "1" are different values."""
    if actual is None:
        return False
    # bool is an int subclass; a boolean never matches a DWORD literal
    if isinstance(actual, bool) or isinstance(expected, bool):
        return actual is expected
    return type(actual) is type(expected) and actual == expected


def check_containment(text: Any, keyword: str) -> bool:
    """Keyword appears anywhere in the setting text (accepts supersets)."""
    if not isinstance(text, str):
        return False
    return keyword.lower() in text.lower()


def check_flags(parsed: dict, required: List[str]) -> bool:
    """Every required flag column must literally read Enabled."""
    return all(parsed.get(flag) == ENABLED for flag in required)


def check_value_type(parsed: dict, value_type: RegistryValueType) -> bool:
    """The observed registry type must be the declared one (REG_QWORD is not REG_DWORD)."""
    return parsed.get("type") == value_type.value


def _observed_value(observed: ObservedState, rule: DesiredStateRule) -> Any:
    if rule.comparison == ComparisonKind.EQUALITY:
        return observed.parsed.get("value", observed.parsed.get("setting"))
    if rule.comparison == ComparisonKind.CONTAINMENT:
        return observed.parsed.get("setting")
    return {flag: observed.parsed.get(flag) for flag in rule.expected}


def evaluate(observed: ObservedState, rule: DesiredStateRule) -> ComplianceResult:
    """
    Evaluate a rule against an observation of the same setting.

    Args:
        observed: Snapshot produced by a provider read
        rule: Desired-state rule for the same identity

    Returns:
        ComplianceResult: Derived compliance result

    Raises:
        ValueError: If the observation belongs to a different setting
    """
    if observed.identity != rule.identity:
        raise ValueError(
            f"Cannot compare {observed.identity.display_name} "
            f"against rule for {rule.identity.display_name}"
        )

    if observed.status != StateStatus.PRESENT:
        return ComplianceResult(
            observed=observed,
            rule=rule,
            status=_STATE_TO_COMPLIANCE[observed.status],
            message=observed.message or f"State of {rule.identity.display_name} is {observed.status.value}",
        )

    if rule.value_type is not None and not check_value_type(observed.parsed, rule.value_type):
        return ComplianceResult(
            observed=observed,
            rule=rule,
            status=ComplianceStatus.MISMATCH,
            message=(
                f"{rule.identity.display_name} has type {observed.parsed.get('type')}, "
                f"expected {rule.value_type.value}"
            ),
        )

    if rule.comparison == ComparisonKind.EQUALITY:
        passed = check_equality(_observed_value(observed, rule), rule.expected)
    elif rule.comparison == ComparisonKind.CONTAINMENT:
        passed = check_containment(_observed_value(observed, rule), rule.expected)
    else:
        passed = check_flags(observed.parsed, rule.expected)

    actual = _observed_value(observed, rule)
    if passed:
        status = ComplianceStatus.PASS
        message = f"{rule.identity.display_name} is {actual!r} ({rule.describe()})"
    else:
        status = ComplianceStatus.MISMATCH
        message = f"{rule.identity.display_name} is {actual!r}, expected {rule.describe()}"

    return ComplianceResult(observed=observed, rule=rule, status=status, message=message)


def divergence(rule: DesiredStateRule, target: Optional[RemediationTarget]) -> Optional[str]:
    """
    Describe how a remediation goes beyond what its check requires.

    Returns:
        Optional[str]: Explanation when the check is weaker than the
        remediation, None when they agree
    """
    if target is None or target.audit_flags is None:
        return None

    enabled = set(target.audit_flags.enabled_flags())
    if rule.comparison == ComparisonKind.FLAGS:
        required = set(rule.expected)
    elif rule.comparison == ComparisonKind.CONTAINMENT:
        required = {rule.expected}
    else:
        return None

    extra = sorted(enabled - required)
    if not extra:
        return None

    return (
        f"Check only requires {rule.describe()} but remediation also enables "
        f"{', '.join(extra)}"
    )
