"""Branch and tag analysis reports."""

import csv
import io
import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from git_gone.candidate import Category, DeleteMethod, DeletionCandidate, RawRef, RefKind, RepositoryContext

logger = logging.getLogger(__name__)

RULE = "=" * 60
SEPARATOR = "-" * 60
CSV_HEADER = ["Name", "Kind", "Status", "Delete Method", "Reason", "Remote Status", "Last Commit"]


class ReportFormat(str, Enum):
    """Report output format."""

    TEXT = "text"
    JSON = "json"
    CSV = "csv"


class ReportWriteFailed(Exception):
    """The report file could not be written."""


@dataclass
class RefAnalysis:
    """One classified ref as it appears in a report."""

    name: str
    kind: str
    status: str
    delete_method: str
    reason: str
    remote_status: str
    last_commit: str

    @classmethod
    def from_candidate(cls, candidate: DeletionCandidate) -> "RefAnalysis":
        return cls(
            name=candidate.name,
            kind=candidate.kind.value,
            status=candidate.category.value,
            delete_method=candidate.method.value,
            reason=candidate.reason,
            remote_status=candidate.remote_state,
            last_commit=candidate.last_commit,
        )

    def row(self) -> list[str]:
        return [
            self.name,
            self.kind,
            self.status,
            self.delete_method,
            self.reason,
            self.remote_status,
            self.last_commit,
        ]


@dataclass
class ReportSummary:
    """Counts per category and per delete method."""

    safe_to_delete_count: int = 0
    local_only_count: int = 0
    unmerged_count: int = 0
    protected_count: int = 0
    stale_tag_count: int = 0
    merged_count: int = 0
    gone_remote_count: int = 0
    force_count: int = 0


@dataclass
class AnalysisReport:
    """Complete analysis of a repository's local refs."""

    repository: str
    analysis_date: str
    default_branch: str
    current_branch: str
    total_branches: int = 0
    total_tags: int = 0
    safe_to_delete: list[RefAnalysis] = field(default_factory=list)
    local_only: list[RefAnalysis] = field(default_factory=list)
    unmerged: list[RefAnalysis] = field(default_factory=list)
    protected: list[RefAnalysis] = field(default_factory=list)
    stale_tags: list[RefAnalysis] = field(default_factory=list)
    summary: ReportSummary = field(default_factory=ReportSummary)

    def entries(self) -> list[RefAnalysis]:
        """All entries, category by category."""
        return self.safe_to_delete + self.local_only + self.unmerged + self.protected + self.stale_tags


_SECTIONS = {
    Category.SAFE: "safe_to_delete",
    Category.LOCAL_ONLY: "local_only",
    Category.UNMERGED: "unmerged",
    Category.PROTECTED: "protected",
    Category.STALE_TAG: "stale_tags",
}

_CATEGORY_COUNTS = {
    Category.SAFE: "safe_to_delete_count",
    Category.LOCAL_ONLY: "local_only_count",
    Category.UNMERGED: "unmerged_count",
    Category.PROTECTED: "protected_count",
    Category.STALE_TAG: "stale_tag_count",
}

_METHOD_COUNTS = {
    DeleteMethod.MERGED: "merged_count",
    DeleteMethod.GONE_REMOTE: "gone_remote_count",
    DeleteMethod.FORCE: "force_count",
}


def build_report(
    context: RepositoryContext,
    refs: Iterable[RawRef],
    candidates: Iterable[DeletionCandidate],
    analysis_date: Optional[datetime] = None,
) -> AnalysisReport:
    """Group candidates by category and count them."""
    refs = list(refs)
    report = AnalysisReport(
        repository=context.path or "unknown",
        analysis_date=(analysis_date or datetime.now()).strftime("%Y-%m-%d %H:%M:%S"),
        default_branch=context.default_branch,
        current_branch=context.current_branch,
        total_branches=sum(1 for ref in refs if ref.kind is RefKind.BRANCH),
        total_tags=sum(1 for ref in refs if ref.kind is RefKind.TAG),
    )
    for candidate in candidates:
        getattr(report, _SECTIONS[candidate.category]).append(RefAnalysis.from_candidate(candidate))
        counter = _CATEGORY_COUNTS[candidate.category]
        setattr(report.summary, counter, getattr(report.summary, counter) + 1)
        if candidate.method in _METHOD_COUNTS:
            counter = _METHOD_COUNTS[candidate.method]
            setattr(report.summary, counter, getattr(report.summary, counter) + 1)
    return report


def _text_section(lines: list[str], title: str, entries: list[RefAnalysis], details: bool = True) -> None:
    if not entries:
        return
    lines.append(SEPARATOR)
    lines.append(title)
    lines.append(SEPARATOR)
    for entry in entries:
        lines.append(f"  * {entry.name}")
        if details:
            lines.append(f"    Method: {entry.delete_method} | Reason: {entry.reason}")
            lines.append(f"    Remote: {entry.remote_status} | Last commit: {entry.last_commit}")
        else:
            lines.append(f"    Reason: {entry.reason}")
        lines.append("")


def render_text(report: AnalysisReport) -> str:
    """Human-readable report."""
    lines = [
        RULE,
        "              GIT-GONE BRANCH ANALYSIS REPORT",
        RULE,
        f"Repository: {report.repository}",
        f"Date: {report.analysis_date}",
        f"Default Branch: {report.default_branch}",
        f"Current Branch: {report.current_branch}",
        "",
    ]
    _text_section(lines, f"SAFE TO DELETE ({len(report.safe_to_delete)} branches)", report.safe_to_delete)
    _text_section(
        lines,
        f"LOCAL-ONLY ({len(report.local_only)} branches) - Merged but never pushed",
        report.local_only,
    )
    _text_section(lines, f"UNMERGED ({len(report.unmerged)} branches)", report.unmerged)
    _text_section(lines, f"PROTECTED ({len(report.protected)} branches)", report.protected, details=False)
    _text_section(lines, f"STALE TAGS ({len(report.stale_tags)} tags)", report.stale_tags)

    summary = report.summary
    lines.append(RULE)
    lines.append(
        f"SUMMARY: {summary.safe_to_delete_count} safe | {summary.local_only_count} local-only | "
        f"{summary.unmerged_count} unmerged | {summary.protected_count} protected | "
        f"{summary.stale_tag_count} stale tags"
    )
    lines.append(RULE)
    return "\n".join(lines) + "\n"


def render_json(report: AnalysisReport) -> str:
    """Machine-readable report."""
    return json.dumps(asdict(report), indent=2)


def render_csv(report: AnalysisReport) -> str:
    """One row per classified ref."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for entry in report.entries():
        writer.writerow(entry.row())
    return buffer.getvalue()


def render(report: AnalysisReport, output_format: ReportFormat) -> str:
    """Render a report in the requested format."""
    if output_format is ReportFormat.JSON:
        return render_json(report)
    if output_format is ReportFormat.CSV:
        return render_csv(report)
    return render_text(report)


def write_report(content: str, path: Path) -> None:
    """Write a rendered report to a file.

    Raises:
        ReportWriteFailed: If the file cannot be written
    """
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as err:
        raise ReportWriteFailed(f"Failed to write report to {path}: {err}") from err
    logger.debug("Report written to %s", path)
