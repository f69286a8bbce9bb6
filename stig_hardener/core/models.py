"""
Data models for the STIG hardener using Pydantic for validation.

Identities, rules and observations are immutable snapshots: every read
produces a fresh ObservedState and nothing is persisted across invocations.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator


HIVE_ALIASES = {
    "HKLM": "HKEY_LOCAL_MACHINE",
    "HKEY_LOCAL_MACHINE": "HKEY_LOCAL_MACHINE",
    "HKCU": "HKEY_CURRENT_USER",
    "HKEY_CURRENT_USER": "HKEY_CURRENT_USER",
    "HKU": "HKEY_USERS",
    "HKEY_USERS": "HKEY_USERS",
    "HKCR": "HKEY_CLASSES_ROOT",
    "HKEY_CLASSES_ROOT": "HKEY_CLASSES_ROOT",
}


class ProviderKind(str, Enum):
    """External state providers a setting can live in."""
    REGISTRY = "registry"
    AUDIT_SUBCATEGORY = "audit-subcategory"
    GPO_RESULTANT = "gpo-resultant"


class ReportMode(str, Enum):
    """Output schema requested from the audit policy provider."""
    TABULAR = "tabular"
    CSV_INCLUSION = "csv-inclusion"
    CSV_FLAGS = "csv-flags"


class ComparisonKind(str, Enum):
    """How an observed value is compared against the expected one."""
    EQUALITY = "equality"
    CONTAINMENT = "containment"
    FLAGS = "flags"


class RegistryValueType(str, Enum):
    """Registry value types supported for assertions and writes."""
    DWORD = "REG_DWORD"
    STRING = "REG_SZ"


class RuleSeverity(str, Enum):
    """STIG severity levels (CAT I/II/III)."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class StateStatus(str, Enum):
    """Outcome of a single read from a provider."""
    PRESENT = "present"
    NOT_FOUND = "not_found"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PARSE_FAILURE = "parse_failure"


class ComplianceStatus(str, Enum):
    """Outcome of evaluating a rule against an observation."""
    PASS = "pass"
    MISMATCH = "mismatch"
    NOT_FOUND = "not_found"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PARSE_FAILURE = "parse_failure"
    WRITE_REJECTED = "write_rejected"


class PersistenceKind(str, Enum):
    """Strategies for re-applying a setting after the current run."""
    NONE = "none"
    SCHEDULED_TASK = "scheduled-task"


class SettingIdentity(BaseModel):
    """Identifies one setting inside one provider."""
    model_config = ConfigDict(frozen=True)

    kind: ProviderKind
    path: str = Field(..., description="Registry key path, audit subcategory or policy name")
    value_name: Optional[str] = Field(None, description="Registry value name")
    report_mode: ReportMode = Field(ReportMode.TABULAR, description="Audit provider report schema")

    @field_validator('path')
    @classmethod
    def validate_path(cls, v, info: ValidationInfo):
        """Reject blank paths and canonicalize registry hive roots."""
        if not v or not v.strip():
            raise ValueError("Setting path must not be empty")
        v = v.strip()

        if info.data.get('kind') != ProviderKind.REGISTRY:
            return v

        hive, sep, subkey = v.partition("\\")
        hive = hive.rstrip(":").upper()
        if hive not in HIVE_ALIASES or not sep or not subkey:
            raise ValueError(f"Unsupported registry path: {v}")
        return f"{HIVE_ALIASES[hive]}\\{subkey}"

    @model_validator(mode='after')
    def validate_registry_identity(self):
        """Registry settings are addressed by key path plus value name."""
        if self.kind == ProviderKind.REGISTRY and not self.value_name:
            raise ValueError("Registry settings require a value name")
        return self

    @property
    def display_name(self) -> str:
        """Human-readable label for reports."""
        if self.kind == ProviderKind.REGISTRY:
            return f"{self.path}\\{self.value_name}"
        return self.path


class ObservedState(BaseModel):
    """Immutable snapshot of a setting as read from its provider."""
    model_config = ConfigDict(frozen=True)

    identity: SettingIdentity
    status: StateStatus
    raw: str = ""
    parsed: Dict[str, Any] = Field(default_factory=dict, description="Normalized field -> value pairs")
    message: Optional[str] = None
    observed_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def exists(self) -> bool:
        """Whether the provider reported a concrete value."""
        return self.status == StateStatus.PRESENT


class DesiredStateRule(BaseModel):
    """Static declaration of the required state of one setting."""
    model_config = ConfigDict(frozen=True)

    identity: SettingIdentity
    comparison: ComparisonKind
    expected: Union[int, str, List[str]]
    value_type: Optional[RegistryValueType] = None

    @model_validator(mode='after')
    def validate_expected(self):
        """Check that the expected value fits the comparison kind."""
        if self.comparison == ComparisonKind.FLAGS:
            if not isinstance(self.expected, list) or not self.expected:
                raise ValueError("Flag rules require a non-empty list of flags")
            unknown = [f for f in self.expected if f not in ("Success", "Failure")]
            if unknown:
                raise ValueError(f"Unknown audit flags: {', '.join(unknown)}")
        elif isinstance(self.expected, list):
            raise ValueError(f"{self.comparison.value} rules require a single expected value")

        if self.comparison == ComparisonKind.CONTAINMENT and not isinstance(self.expected, str):
            raise ValueError("Containment rules require a keyword")

        if self.value_type == RegistryValueType.DWORD and not isinstance(self.expected, int):
            raise ValueError("REG_DWORD rules require an integer expected value")
        if self.value_type == RegistryValueType.STRING and not isinstance(self.expected, str):
            raise ValueError("REG_SZ rules require a string expected value")
        return self

    def describe(self) -> str:
        """Short description of the requirement."""
        if self.comparison == ComparisonKind.EQUALITY:
            return f"equals {self.expected!r}"
        if self.comparison == ComparisonKind.CONTAINMENT:
            return f"contains '{self.expected}'"
        return " and ".join(f"{flag}=Enabled" for flag in self.expected)


class ComplianceResult(BaseModel):
    """Derived result of evaluating one rule against one observation."""
    observed: ObservedState
    rule: DesiredStateRule
    status: ComplianceStatus
    message: Optional[str] = None

    @property
    def passed(self) -> bool:
        """Only an explicit pass counts as compliant."""
        return self.status == ComplianceStatus.PASS

    @property
    def indeterminate(self) -> bool:
        """Whether the state could not be determined at all."""
        return self.status in (
            ComplianceStatus.PROVIDER_UNAVAILABLE,
            ComplianceStatus.PARSE_FAILURE,
        )


class AuditFlags(BaseModel):
    """Independent success/failure toggles; None leaves a flag unchanged."""
    model_config = ConfigDict(frozen=True)

    success: Optional[bool] = None
    failure: Optional[bool] = None

    @model_validator(mode='after')
    def validate_any_flag(self):
        """At least one flag must be toggled."""
        if self.success is None and self.failure is None:
            raise ValueError("At least one of success/failure must be set")
        return self

    def enabled_flags(self) -> List[str]:
        """Flags this target turns on."""
        flags = []
        if self.success:
            flags.append("Success")
        if self.failure:
            flags.append("Failure")
        return flags


class RemediationTarget(BaseModel):
    """Value written by the applier to converge a setting."""
    model_config = ConfigDict(frozen=True)

    value: Optional[Union[int, str]] = None
    value_type: Optional[RegistryValueType] = None
    audit_flags: Optional[AuditFlags] = None

    @model_validator(mode='after')
    def validate_target(self):
        """Either a registry value or audit flags, never both."""
        if (self.value is None) == (self.audit_flags is None):
            raise ValueError("Remediation needs exactly one of value or audit_flags")
        if self.value is not None and self.value_type is None:
            raise ValueError("Registry remediation requires a value_type")
        return self


class CommandResult(BaseModel):
    """Result of one external command invocation."""
    command: List[str] = Field(default_factory=list)
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    execution_time_ms: int = 0

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class WriteOutcome(BaseModel):
    """One applier invocation with its pre/post snapshots."""
    identity: SettingIdentity
    result: CommandResult
    before: ComplianceResult
    after: ComplianceResult


class PersistenceOutcome(BaseModel):
    """Result of asking a persistence strategy to re-apply a setting."""
    strategy: PersistenceKind
    registered: bool = False
    task_name: Optional[str] = None
    command: List[str] = Field(default_factory=list)
    message: Optional[str] = None


class Control(BaseModel):
    """A STIG control: one rule plus an optional remediation."""
    id: str = Field(..., description="STIG identifier, e.g. WN11-AU-000560")
    title: str
    description: str = ""
    severity: RuleSeverity = RuleSeverity.MEDIUM
    rule: DesiredStateRule
    remediation: Optional[RemediationTarget] = None
    prerequisites: List[str] = Field(default_factory=list, description="Control ids remediated first, in order")
    persistence: PersistenceKind = PersistenceKind.NONE
    notes: List[str] = Field(default_factory=list)

    @field_validator('id')
    @classmethod
    def validate_id(cls, v):
        if not v or not v.strip():
            raise ValueError("Control id must not be empty")
        return v.strip()

    @model_validator(mode='after')
    def validate_remediation(self):
        """Remediation targets must match the provider they write to."""
        if self.remediation is None:
            return self
        kind = self.rule.identity.kind
        if kind == ProviderKind.REGISTRY and self.remediation.value is None:
            raise ValueError(f"{self.id}: registry controls remediate with a value")
        if kind == ProviderKind.AUDIT_SUBCATEGORY and self.remediation.audit_flags is None:
            raise ValueError(f"{self.id}: audit controls remediate with audit flags")
        if kind == ProviderKind.GPO_RESULTANT:
            raise ValueError(f"{self.id}: resultant policy is read-only")
        if self.id in self.prerequisites:
            raise ValueError(f"{self.id}: a control cannot be its own prerequisite")
        return self

    @property
    def provider(self) -> ProviderKind:
        return self.rule.identity.kind


class RemediationOutcome(BaseModel):
    """Complete before/after record of one remediation invocation."""
    control_id: str
    control_title: str
    severity: RuleSeverity
    before: ComplianceResult
    prerequisites: List["RemediationOutcome"] = Field(default_factory=list)
    write: Optional[WriteOutcome] = None
    persistence: Optional[PersistenceOutcome] = None
    dry_run: bool = False
    message: Optional[str] = None

    @property
    def final(self) -> ComplianceResult:
        """The last evaluation performed during the run."""
        if self.write is not None:
            return self.write.after
        return self.before

    @property
    def passed(self) -> bool:
        return self.final.passed

    @property
    def exit_code(self) -> int:
        """0 when compliant, 1 when non-compliant or indeterminate."""
        return 0 if self.passed else 1


RemediationOutcome.model_rebuild()


class SystemInfo(BaseModel):
    """Host information gathered at the start of a run."""
    hostname: str
    os_version: str
    architecture: str
    is_windows: bool
    domain_joined: Optional[bool] = None
    detected_at: datetime = Field(default_factory=datetime.utcnow)
