"""Report formatting utilities."""
import json
import shutil
from typing import List, Union

from core.config import Config
from models.package import FetchError, Report, ScanIssue


def format_columns(items: List[str], width: int = 0) -> List[str]:
    """
    Lay items out in as many columns as fit the terminal.

    Args:
        items: Strings to lay out, in display order
        width: Available width, defaults to the terminal width

    Returns:
        Lines of output
    """
    if not items:
        return []

    width = width or shutil.get_terminal_size((80, 24)).columns
    cell = max(len(item) for item in items) + 2
    per_row = max(1, (width - 2) // cell)
    rows = (len(items) + per_row - 1) // per_row

    lines = []
    for row in range(rows):
        # Fill column-wise, like ls
        cells = [items[col * rows + row] for col in range(per_row) if col * rows + row < len(items)]
        lines.append("  " + "".join(c.ljust(cell) for c in cells).rstrip())
    return lines


def format_set(items: List[str], header: str = "", columns: bool = False) -> str:
    """
    Format a sorted set of items under an optional header.

    Args:
        items: Items to print
        header: Section header
        columns: Lay items out in columns

    Returns:
        Formatted section
    """
    items = sorted(items)
    lines = []
    if header:
        lines.append(header)
    if columns:
        lines.extend(format_columns(items))
    else:
        lines.extend(f"  {item}" for item in items)
    return "\n".join(lines)


def format_report(report: Report, columns: bool = False) -> str:
    """
    Format a reconciliation report for the terminal.

    Empty sections are left out.

    Args:
        report: Reconciliation report
        columns: Lay package lists out in columns

    Returns:
        Formatted report
    """
    sections = []

    if report.pending:
        sections.append(format_set(
            [f"{p.name} {p.version}" for p in report.pending],
            "Pending additions:", columns
        ))

    if report.outdated:
        sections.append(format_set(
            [p.basename for p in report.outdated],
            "Outdated packages:", columns
        ))

    if report.missing:
        sections.append(format_set(report.missing, "Missing files:", columns))

    if report.updates_available:
        updates = []
        for pkg in report.updates_available:
            remote = report.remote_versions.get(pkg.name)
            if remote is not None:
                updates.append(f"{pkg.name} {pkg.version} -> {remote}")
            else:
                updates.append(f"{pkg.name} {pkg.version}")
        # Arrows do not columnate well
        sections.append(format_set(updates, "Updates available:"))

    if report.not_found:
        sections.append(format_set(report.not_found, "Not found upstream:", columns))

    if not sections:
        return f"Everything up-to-date ({len(report.current)} packages)."

    return "\n\n".join(sections)


def format_warning(issue: Union[FetchError, ScanIssue]) -> str:
    """
    Format a recoverable error as a single warning line.

    Args:
        issue: FetchError or ScanIssue

    Returns:
        Warning line
    """
    return f"warning: {issue}"


def format_config(config: Config, loaded: bool = False) -> str:
    """
    Format the effective configuration as ``section.key = value`` lines.

    Args:
        config: Resolved configuration
        loaded: Whether a configuration file was read

    Returns:
        Formatted configuration
    """
    lines = ["Current configuration:" if loaded else "Default configuration:"]
    for section, values in config.model_dump(mode="json").items():
        for key, value in values.items():
            lines.append(f"  {section}.{key} = {json.dumps(value)}")
    return "\n".join(lines)
