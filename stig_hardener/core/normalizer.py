"""
Normalizers for raw provider output.

Converts whitespace-irregular tabular text and delimited report rows
into field -> value records. The report schema is always chosen by the
caller through ReportMode; content is never sniffed to guess it.
"""

import re
from typing import Dict, List, Optional

from .errors import NotFound, ParseFailure, ProviderUnavailable
from .models import ReportMode, SettingIdentity

ENABLED = "Enabled"
DISABLED = "Disabled"
NOT_CONFIGURED = "Not Configured"

CSV_MIN_COLUMNS = 6

# auditpol /r column layout (both CSV schemas share the first four)
COL_MACHINE = 0
COL_TARGET = 1
COL_SUBCATEGORY = 2
COL_GUID = 3
COL_INCLUSION = 4
COL_EXCLUSION = 5
COL_SUCCESS = 4
COL_FAILURE = 5

RESULTANT_STATES = (NOT_CONFIGURED, ENABLED, DISABLED)
RESULTANT_LOOKAHEAD = 6
RESULTANT_BLOCK_MARKERS = ("gpo:", "folder id:", "keyname:")

_WHITESPACE_RUN = re.compile(r"\s{2,}")


def split_tabular_line(line: str) -> List[str]:
    """Collapse runs of two or more whitespace characters and split."""
    return [field.strip() for field in _WHITESPACE_RUN.split(line.strip()) if field.strip()]


def split_csv_line(line: str) -> List[str]:
    """Split a report row on commas, stripping quotes and whitespace."""
    return [field.strip().strip('"').strip() for field in line.split(',')]


def _require_output(raw: str) -> List[str]:
    lines = [line for line in (raw or "").splitlines() if line.strip()]
    if not lines:
        raise ProviderUnavailable("Provider returned no output")
    return lines


def normalize_tabular(raw: str, name: str) -> Dict[str, str]:
    """
    Parse ``auditpol /get`` table output for one subcategory.

    Args:
        raw: Raw provider output
        name: Subcategory name to locate

    Returns:
        Dict[str, str]: ``{"name": ..., "setting": ...}``

    Raises:
        ProviderUnavailable: If the output is empty
        NotFound: If no line names the subcategory
        ParseFailure: If the matching line carries no setting text
    """
    target = name.strip().lower()
    match = None

    for line in _require_output(raw):
        fields = split_tabular_line(line)
        if fields and fields[0].lower() == target:
            match = fields

    if match is None:
        raise NotFound(f"Subcategory '{name}' not present in provider output")
    if len(match) < 2:
        raise ParseFailure(f"No setting text for subcategory '{name}'")

    return {
        "name": match[0],
        "setting": " ".join(match[1:]),
    }


def _matching_csv_row(raw: str, name: str) -> List[str]:
    """Return the last report row for the subcategory."""
    target = name.strip().lower()
    match = None
    short_rows = 0

    for line in _require_output(raw):
        columns = split_csv_line(line)
        if len(columns) < CSV_MIN_COLUMNS:
            short_rows += 1
            continue
        if columns[COL_SUBCATEGORY].lower() == target:
            match = columns

    if match is None:
        if short_rows:
            raise ParseFailure(
                f"Expected at least {CSV_MIN_COLUMNS} columns for '{name}', "
                f"{short_rows} row(s) were shorter"
            )
        raise NotFound(f"Subcategory '{name}' not present in report")

    return match


def normalize_csv_inclusion(raw: str, name: str) -> Dict[str, str]:
    """
    Parse ``auditpol /get /r`` rows (inclusion/exclusion schema).

    Success/Failure are derived from the inclusion phrase so that the
    record can be checked with either containment or flag rules.
    """
    columns = _matching_csv_row(raw, name)
    inclusion = columns[COL_INCLUSION]

    return {
        "machine": columns[COL_MACHINE],
        "target": columns[COL_TARGET],
        "name": columns[COL_SUBCATEGORY],
        "guid": columns[COL_GUID],
        "setting": inclusion,
        "exclusion": columns[COL_EXCLUSION],
        "Success": ENABLED if "success" in inclusion.lower() else DISABLED,
        "Failure": ENABLED if "failure" in inclusion.lower() else DISABLED,
    }


def normalize_csv_flags(raw: str, name: str) -> Dict[str, str]:
    """Parse per-flag report rows whose Success/Failure columns read Enabled/Disabled."""
    columns = _matching_csv_row(raw, name)

    return {
        "machine": columns[COL_MACHINE],
        "target": columns[COL_TARGET],
        "name": columns[COL_SUBCATEGORY],
        "guid": columns[COL_GUID],
        "Success": columns[COL_SUCCESS],
        "Failure": columns[COL_FAILURE],
    }


_AUDIT_NORMALIZERS = {
    ReportMode.TABULAR: normalize_tabular,
    ReportMode.CSV_INCLUSION: normalize_csv_inclusion,
    ReportMode.CSV_FLAGS: normalize_csv_flags,
}


def normalize_audit(raw: str, identity: SettingIdentity) -> Dict[str, str]:
    """Dispatch to the normalizer declared by the identity's report mode."""
    return _AUDIT_NORMALIZERS[identity.report_mode](raw, identity.path)


def _resultant_state(lines: List[str], index: int, target: str) -> Optional[str]:
    """State for the entry starting at lines[index], bounded to that entry's block."""
    window = [lines[index].lower().split(target, 1)[1]]
    for line in lines[index + 1:index + 1 + RESULTANT_LOOKAHEAD]:
        text = line.strip().lower()
        if text.startswith(RESULTANT_BLOCK_MARKERS) or target in text:
            break
        window.append(text)

    for text in window:
        for state in RESULTANT_STATES:
            if state.lower() in text:
                return state
    return None


def normalize_resultant(raw: str, policy_name: str) -> Dict[str, str]:
    """
    Find a policy's effective state in a verbose resultant-policy dump.

    The state is taken from the line naming the policy or, failing that,
    from the following lines of the same block. A block ends at the next
    GPO, Folder Id or KeyName line. When an occurrence carries no state the
    search moves on to the next one.

    Raises:
        ProviderUnavailable: If the dump is empty
        NotFound: If the policy name does not appear
        ParseFailure: If the policy appears without a recognizable state
    """
    lines = _require_output(raw)
    target = policy_name.strip().lower()
    seen = False

    for index, line in enumerate(lines):
        if target not in line.lower():
            continue

        seen = True
        state = _resultant_state(lines, index, target)
        if state is not None:
            return {"name": policy_name, "setting": state}

    if seen:
        raise ParseFailure(f"No effective state found for policy '{policy_name}'")
    raise NotFound(f"Policy '{policy_name}' not present in resultant policy output")
