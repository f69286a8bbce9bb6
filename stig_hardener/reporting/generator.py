"""
Report generator for control check and remediation results.

Writes a single-invocation report as JSON or HTML. Nothing is kept
between runs; a report file is only produced when one is requested.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Template
from pydantic import BaseModel, Field

from ..core.models import (
    ComplianceResult, ComplianceStatus, Control, RemediationOutcome, RuleSeverity, SystemInfo,
)


class ReportEntry(BaseModel):
    """One control's line in a report."""
    control_id: str
    title: str
    severity: RuleSeverity
    setting: str
    requirement: str
    before_status: ComplianceStatus
    before_value: Dict[str, Any] = Field(default_factory=dict)
    after_status: Optional[ComplianceStatus] = None
    after_value: Dict[str, Any] = Field(default_factory=dict)
    message: Optional[str] = None
    passed: bool = False

    @classmethod
    def from_check(cls, control: Control, result: ComplianceResult) -> "ReportEntry":
        return cls(
            control_id=control.id,
            title=control.title,
            severity=control.severity,
            setting=result.rule.identity.display_name,
            requirement=result.rule.describe(),
            before_status=result.status,
            before_value=result.observed.parsed,
            message=result.message,
            passed=result.passed,
        )

    @classmethod
    def from_remediation(cls, control: Control, outcome: RemediationOutcome) -> "ReportEntry":
        after = outcome.write.after if outcome.write else None
        return cls(
            control_id=control.id,
            title=control.title,
            severity=control.severity,
            setting=control.rule.identity.display_name,
            requirement=control.rule.describe(),
            before_status=outcome.before.status,
            before_value=outcome.before.observed.parsed,
            after_status=after.status if after else None,
            after_value=after.observed.parsed if after else {},
            message=outcome.final.message if after else outcome.message,
            passed=outcome.passed,
        )


class RunReport(BaseModel):
    """Everything shown in a report for one invocation."""
    operation: str
    system_info: SystemInfo
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    entries: List[ReportEntry] = Field(default_factory=list)

    @property
    def passed_count(self) -> int:
        return sum(1 for e in self.entries if e.passed)

    @property
    def failed_count(self) -> int:
        return len(self.entries) - self.passed_count

    @property
    def exit_code(self) -> int:
        return 0 if self.entries and self.failed_count == 0 else 1


HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>STIG Compliance Report - {{ report.system_info.hostname }}</title>
    <style>
        body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; margin: 20px; background: #f5f5f5; }
        .container { max-width: 1200px; margin: 0 auto; background: white; padding: 30px; border-radius: 8px; }
        .header { border-bottom: 3px solid #007bff; padding-bottom: 15px; margin-bottom: 20px; }
        table { width: 100%; border-collapse: collapse; }
        th, td { border: 1px solid #dee2e6; padding: 8px; text-align: left; vertical-align: top; }
        th { background: #f8f9fa; }
        .status-pass { color: #28a745; font-weight: bold; }
        .status-fail { color: #dc3545; font-weight: bold; }
        .severity-high { color: #dc3545; font-weight: bold; }
        .severity-medium { color: #fd7e14; }
        .severity-low { color: #6c757d; }
        code { font-size: 0.85em; }
    </style>
</head>
<body>
<div class="container">
    <div class="header">
        <h1>STIG Compliance Report</h1>
        <p><strong>Host:</strong> {{ report.system_info.hostname }} ({{ report.system_info.os_version }})</p>
        <p><strong>Operation:</strong> {{ report.operation }}</p>
        <p><strong>Generated:</strong> {{ generated_at }}</p>
        <p><strong>Compliant:</strong> {{ report.passed_count }} / {{ report.entries|length }}</p>
    </div>
    <table>
        <tr>
            <th>Control</th><th>Severity</th><th>Setting</th><th>Requirement</th>
            <th>Before</th><th>After</th><th>Result</th><th>Details</th>
        </tr>
        {% for entry in report.entries %}
        <tr>
            <td>{{ entry.control_id }}<br><small>{{ entry.title }}</small></td>
            <td class="severity-{{ entry.severity.value }}">{{ entry.severity.value.upper() }}</td>
            <td><code>{{ entry.setting }}</code></td>
            <td>{{ entry.requirement }}</td>
            <td>{{ entry.before_status.value }}</td>
            <td>{{ entry.after_status.value if entry.after_status else "-" }}</td>
            <td class="{{ 'status-pass' if entry.passed else 'status-fail' }}">{{ "PASS" if entry.passed else "FAIL" }}</td>
            <td>{{ entry.message or "" }}</td>
        </tr>
        {% endfor %}
    </table>
</div>
</body>
</html>
"""


class ReportGenerator:
    """
    Generates compliance reports in JSON or HTML.

    The format is taken from the explicit argument or, failing that,
    from the output file's suffix.
    """

    FORMATS = ("json", "html")

    def generate_report(self, report: RunReport, output_path: str,
                        format: Optional[str] = None,
                        template_path: Optional[str] = None) -> str:
        """
        Generate a report file.

        Args:
            report: Report data for this invocation
            output_path: Output file path
            format: Report format (json, html); inferred from suffix if None
            template_path: Custom Jinja2 template for HTML reports

        Returns:
            str: Path to generated report file

        Raises:
            ValueError: If the format is not supported
        """
        output_file = Path(output_path)
        format = (format or output_file.suffix.lstrip('.') or 'json').lower()
        if format == 'htm':
            format = 'html'
        if format not in self.FORMATS:
            raise ValueError(f"Unsupported report format: {format}")

        output_file.parent.mkdir(parents=True, exist_ok=True)

        if format == 'json':
            return self._generate_json_report(report, output_file)
        return self._generate_html_report(report, output_file, template_path)

    def _generate_json_report(self, report: RunReport, output_file: Path) -> str:
        """Generate JSON format report."""
        report_data = {
            "report_metadata": {
                "generated_at": report.generated_at.isoformat(),
                "report_type": "stig_compliance",
                "version": "1.0"
            },
            "operation": report.operation,
            "system_info": report.system_info.model_dump(mode='json'),
            "summary": {
                "total_controls": len(report.entries),
                "passed_controls": report.passed_count,
                "failed_controls": report.failed_count,
                "exit_code": report.exit_code
            },
            "controls": [entry.model_dump(mode='json') for entry in report.entries]
        }

        with open(output_file, 'w') as f:
            json.dump(report_data, f, indent=2, default=str)

        return str(output_file)

    def _generate_html_report(self, report: RunReport, output_file: Path,
                              template_path: Optional[str] = None) -> str:
        """Generate HTML format report."""
        if template_path:
            with open(template_path, 'r') as f:
                template_content = f.read()
        else:
            template_content = HTML_TEMPLATE

        html_content = Template(template_content, autoescape=True).render(
            report=report,
            generated_at=report.generated_at.strftime("%B %d, %Y at %I:%M %p UTC"),
        )

        with open(output_file, 'w') as f:
            f.write(html_content)

        return str(output_file)
