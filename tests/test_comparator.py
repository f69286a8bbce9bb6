"""
Unit tests for the comparator.
"""

import pytest

from stig_hardener.core.comparator import (
    check_containment, check_equality, check_flags, divergence, evaluate,
)
from stig_hardener.core.models import (
    AuditFlags, ComparisonKind, ComplianceStatus, DesiredStateRule, ObservedState,
    ProviderKind, RegistryValueType, RemediationTarget, SettingIdentity, StateStatus,
)


def observe(identity, status=StateStatus.PRESENT, **parsed):
    return ObservedState(identity=identity, status=status, parsed=parsed)


class TestCheckFunctions:
    """Test the three comparison kinds in isolation."""

    @pytest.mark.parametrize("text, keyword, expected", [
        ("Success and Failure", "Success", True),
        ("Success", "Success", True),
        ("Failure", "Success", False),
        ("No Auditing", "Success", False),
        ("success and failure", "Failure", True),
    ])
    def test_containment(self, text, keyword, expected):
        assert check_containment(text, keyword) is expected

    def test_containment_requires_text(self):
        assert not check_containment(None, "Success")

    def test_equality_is_typed(self):
        assert check_equality(1, 1)
        assert not check_equality("1", 1)
        assert not check_equality(1, "1")
        assert not check_equality(None, 1)

    def test_equality_rejects_bool_for_dword(self):
        assert not check_equality(True, 1)
        assert not check_equality(False, 0)

    def test_flags_require_every_flag(self):
        parsed = {"Success": "Enabled", "Failure": "Disabled"}
        assert check_flags(parsed, ["Success"])
        assert not check_flags(parsed, ["Success", "Failure"])

    def test_flags_are_literal(self):
        assert not check_flags({"Success": "enabled"}, ["Success"])
        assert not check_flags({}, ["Success"])


class TestEvaluate:
    """Test rule evaluation against observations."""

    @pytest.fixture
    def dword_rule(self, registry_identity):
        return DesiredStateRule(
            identity=registry_identity,
            comparison=ComparisonKind.EQUALITY,
            expected=1,
            value_type=RegistryValueType.DWORD,
        )

    def test_matching_value_passes(self, dword_rule, registry_identity):
        result = evaluate(observe(registry_identity, value=1, type="REG_DWORD"), dword_rule)

        assert result.status == ComplianceStatus.PASS
        assert result.passed
        assert "equals 1" in result.message

    def test_wrong_value_is_mismatch(self, dword_rule, registry_identity):
        result = evaluate(observe(registry_identity, value=0, type="REG_DWORD"), dword_rule)

        assert result.status == ComplianceStatus.MISMATCH
        assert "expected equals 1" in result.message

    def test_string_value_never_matches_dword(self, dword_rule, registry_identity):
        result = evaluate(observe(registry_identity, value="1", type="REG_SZ"), dword_rule)
        assert result.status == ComplianceStatus.MISMATCH

    def test_qword_never_matches_dword(self, dword_rule, registry_identity):
        result = evaluate(observe(registry_identity, value=1, type="QWord"), dword_rule)

        assert result.status == ComplianceStatus.MISMATCH
        assert "expected REG_DWORD" in result.message

    def test_expand_string_never_matches_string(self, registry_identity):
        rule = DesiredStateRule(identity=registry_identity, comparison=ComparisonKind.EQUALITY,
                                expected="DoD Notice and Consent Banner",
                                value_type=RegistryValueType.STRING)

        matching = evaluate(observe(registry_identity, value="DoD Notice and Consent Banner",
                                    type="REG_SZ"), rule)
        expanded = evaluate(observe(registry_identity, value="DoD Notice and Consent Banner",
                                    type="ExpandString"), rule)

        assert matching.passed
        assert expanded.status == ComplianceStatus.MISMATCH

    @pytest.mark.parametrize("state, expected", [
        (StateStatus.NOT_FOUND, ComplianceStatus.NOT_FOUND),
        (StateStatus.PROVIDER_UNAVAILABLE, ComplianceStatus.PROVIDER_UNAVAILABLE),
        (StateStatus.PARSE_FAILURE, ComplianceStatus.PARSE_FAILURE),
    ])
    def test_absent_or_indeterminate_never_passes(self, dword_rule, registry_identity, state, expected):
        result = evaluate(observe(registry_identity, status=state), dword_rule)

        assert result.status == expected
        assert not result.passed

    def test_containment_rule(self, audit_identity):
        rule = DesiredStateRule(identity=audit_identity, comparison=ComparisonKind.CONTAINMENT,
                                expected="Success")

        assert evaluate(observe(audit_identity, setting="Success and Failure"), rule).passed
        assert not evaluate(observe(audit_identity, setting="Failure"), rule).passed

    def test_flags_rule_partial(self, audit_identity):
        rule = DesiredStateRule(identity=audit_identity, comparison=ComparisonKind.FLAGS,
                                expected=["Success", "Failure"])
        result = evaluate(observe(audit_identity, Success="Enabled", Failure="Disabled"), rule)

        assert result.status == ComplianceStatus.MISMATCH

    def test_mismatched_identity_rejected(self, dword_rule, audit_identity):
        with pytest.raises(ValueError):
            evaluate(observe(audit_identity, setting="Success"), dword_rule)

    def test_resultant_state_equality(self):
        identity = SettingIdentity(kind=ProviderKind.GPO_RESULTANT, path="NoAutorun")
        rule = DesiredStateRule(identity=identity, comparison=ComparisonKind.EQUALITY, expected="Enabled")

        assert evaluate(observe(identity, name="NoAutorun", setting="Enabled"), rule).passed
        assert not evaluate(observe(identity, name="NoAutorun", setting="Not Configured"), rule).passed


class TestDivergence:
    """Test detection of checks weaker than their remediation."""

    def test_containment_weaker_than_remediation(self, audit_identity):
        rule = DesiredStateRule(identity=audit_identity, comparison=ComparisonKind.CONTAINMENT,
                                expected="Success")
        target = RemediationTarget(audit_flags=AuditFlags(success=True, failure=True))

        note = divergence(rule, target)

        assert note is not None
        assert "Failure" in note

    def test_matching_flags_have_no_divergence(self, audit_identity):
        rule = DesiredStateRule(identity=audit_identity, comparison=ComparisonKind.FLAGS,
                                expected=["Failure"])
        target = RemediationTarget(audit_flags=AuditFlags(failure=True))

        assert divergence(rule, target) is None

    def test_registry_target_has_no_divergence(self, registry_control):
        assert divergence(registry_control.rule, registry_control.remediation) is None
