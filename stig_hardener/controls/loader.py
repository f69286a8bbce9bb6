"""
Control loader for STIG control definitions.

Loads controls from YAML files and provides filtering and lookup by
STIG identifier.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from ..core.errors import ControlNotFound
from ..core.models import (
    AuditFlags, Control, DesiredStateRule, PersistenceKind, ProviderKind,
    RemediationTarget, ReportMode, RuleSeverity, SettingIdentity,
)

logger = logging.getLogger(__name__)


# STIG categories map onto severities
CATEGORY_SEVERITY = {
    "cat i": RuleSeverity.HIGH,
    "cat ii": RuleSeverity.MEDIUM,
    "cat iii": RuleSeverity.LOW,
}


def parse_severity(value: Optional[str]) -> RuleSeverity:
    """Accept high/medium/low or CAT I/II/III; default to medium."""
    text = str(value or "medium").strip().lower()
    if text in CATEGORY_SEVERITY:
        return CATEGORY_SEVERITY[text]
    try:
        return RuleSeverity(text)
    except ValueError:
        logger.warning("Unknown severity %r, using medium", value)
        return RuleSeverity.MEDIUM


def parse_control(data: Dict[str, Any]) -> Control:
    """
    Build a Control from one definition mapping.

    Raises:
        KeyError: If a required field is missing
        ValidationError: If a field has an invalid value
    """
    check = data['check']
    kind = ProviderKind(check['provider'])

    identity = SettingIdentity(
        kind=kind,
        path=check.get('path') or check.get('subcategory') or check.get('policy'),
        value_name=check.get('value_name'),
        report_mode=ReportMode(check.get('report_mode', ReportMode.TABULAR.value)),
    )

    rule = DesiredStateRule(
        identity=identity,
        comparison=check.get('comparison', 'equality'),
        expected=check['expected'],
        value_type=check.get('value_type'),
    )

    remediation = None
    remediate = data.get('remediation')
    if remediate:
        if kind == ProviderKind.AUDIT_SUBCATEGORY:
            remediation = RemediationTarget(audit_flags=AuditFlags(
                success=remediate.get('success'),
                failure=remediate.get('failure'),
            ))
        else:
            remediation = RemediationTarget(
                value=remediate.get('value', rule.expected),
                value_type=remediate.get('value_type', rule.value_type),
            )

    return Control(
        id=data['id'],
        title=data['title'],
        description=data.get('description', ''),
        severity=parse_severity(data.get('severity')),
        rule=rule,
        remediation=remediation,
        prerequisites=data.get('prerequisites', []),
        persistence=PersistenceKind(data.get('persistence', PersistenceKind.NONE.value)),
        notes=data.get('notes', []),
    )


class ControlLoader:
    """
    Manages loading and filtering of STIG controls.

    Invalid definitions are logged and skipped so one bad entry does not
    hide the rest of the catalogue.
    """

    def __init__(self, controls_dir: Optional[str] = None):
        """
        Initialize control loader.

        Args:
            controls_dir: Directory containing control YAML files (uses the
                bundled definitions if None)
        """
        if controls_dir:
            self.controls_dir = Path(controls_dir)
        else:
            self.controls_dir = Path(__file__).parent / "definitions"

        self._controls_cache: Optional[List[Control]] = None

    def get_controls(self, provider: Optional[ProviderKind] = None,
                     severity: Optional[RuleSeverity] = None) -> List[Control]:
        """
        Get controls with optional filtering.

        Args:
            provider: Filter by provider kind
            severity: Filter by severity level

        Returns:
            List[Control]: Filtered list of controls, sorted by id
        """
        controls = self._load_all_controls()

        if provider:
            controls = [c for c in controls if c.provider == provider]

        if severity:
            controls = [c for c in controls if c.severity == severity]

        return controls

    def get_control(self, control_id: str) -> Control:
        """
        Get a specific control by its STIG id (case-insensitive).

        Raises:
            ControlNotFound: If no control has the id
        """
        wanted = control_id.strip().upper()
        for control in self._load_all_controls():
            if control.id.upper() == wanted:
                return control
        raise ControlNotFound(f"Control not found: {control_id}")

    def reload_controls(self) -> None:
        """Force reload of controls from files."""
        self._controls_cache = None

    def _load_all_controls(self) -> List[Control]:
        """Load all controls from YAML files with caching."""
        if self._controls_cache is not None:
            return self._controls_cache

        controls: Dict[str, Control] = {}

        if not self.controls_dir.exists():
            logger.warning("Controls directory does not exist: %s", self.controls_dir)

        for yaml_file in sorted(self.controls_dir.glob("*.yaml")):
            try:
                with open(yaml_file, 'r') as f:
                    data = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Failed to load controls from %s: %s", yaml_file, e)
                continue

            if isinstance(data, dict) and 'controls' in data:
                entries = data['controls'] or []
            elif isinstance(data, dict):
                entries = [data]
            elif isinstance(data, list):
                entries = data
            else:
                logger.warning("Ignoring %s: no control definitions", yaml_file)
                continue

            for entry in entries:
                control = self._parse_entry(entry, yaml_file)
                if control is None:
                    continue
                if control.id in controls:
                    logger.warning("Duplicate control %s in %s, keeping the first", control.id, yaml_file)
                    continue
                controls[control.id] = control

        self._controls_cache = sorted(controls.values(), key=lambda c: c.id)
        return self._controls_cache

    def _parse_entry(self, entry: Any, source: Path) -> Optional[Control]:
        if not isinstance(entry, dict):
            logger.warning("Ignoring non-mapping control entry in %s", source)
            return None
        try:
            return parse_control(entry)
        except KeyError as e:
            logger.warning("Control %s in %s is missing field %s", entry.get('id', 'unknown'), source, e)
        except (ValidationError, ValueError) as e:
            logger.warning("Control %s in %s is invalid: %s", entry.get('id', 'unknown'), source, e)
        return None
