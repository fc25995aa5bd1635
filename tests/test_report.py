"""Tests for analysis reports."""

import csv
import io
import json
from datetime import datetime
from pathlib import Path

import pytest

from git_gone.candidate import RawRef, RefKind, RepositoryContext, RunConfiguration, TrackingState, classify_all
from git_gone.report import (
    CSV_HEADER,
    ReportFormat,
    ReportWriteFailed,
    build_report,
    render,
    render_csv,
    render_json,
    render_text,
    write_report,
)

CONTEXT = RepositoryContext(default_branch="main", current_branch="main", has_remote=True, path="/work/project")

REFS = [
    RawRef("main", RefKind.BRANCH, is_merged=True, tracking=TrackingState.ACTIVE, last_commit="2024-03-01"),
    RawRef("feature-done", RefKind.BRANCH, is_merged=True, tracking=TrackingState.ACTIVE, last_commit="2024-02-01"),
    RawRef("feature-ghost", RefKind.BRANCH, is_merged=True, tracking=TrackingState.GONE, last_commit="2024-01-15"),
    RawRef("feature-local", RefKind.BRANCH, is_merged=True, tracking=TrackingState.NONE, last_commit="2024-01-10"),
    RawRef("feature-wip", RefKind.BRANCH, tracking=TrackingState.NONE, last_commit="2024-01-05"),
    RawRef("v2", RefKind.TAG, exists_on_remote=False, last_commit="2023-12-01"),
]


@pytest.fixture
def report():
    candidates = classify_all(REFS, CONTEXT, RunConfiguration(include_unmerged=True))
    return build_report(CONTEXT, REFS, candidates, analysis_date=datetime(2024, 3, 2, 10, 30, 0))


def test_build_report_groups_and_counts(report) -> None:
    """Test grouping by category and the summary counts."""
    assert report.repository == "/work/project"
    assert report.analysis_date == "2024-03-02 10:30:00"
    assert report.total_branches == 5
    assert report.total_tags == 1
    assert [e.name for e in report.safe_to_delete] == ["feature-done", "feature-ghost"]
    assert [e.name for e in report.local_only] == ["feature-local"]
    assert [e.name for e in report.unmerged] == ["feature-wip"]
    assert [e.name for e in report.protected] == ["main"]
    assert [e.name for e in report.stale_tags] == ["v2"]

    summary = report.summary
    assert summary.safe_to_delete_count == 2
    assert summary.local_only_count == 1
    assert summary.unmerged_count == 1
    assert summary.protected_count == 1
    assert summary.stale_tag_count == 1
    assert summary.merged_count == 2
    assert summary.gone_remote_count == 1
    assert summary.force_count == 1


def test_build_report_without_unmerged() -> None:
    """Test that omitted unmerged branches are not counted."""
    candidates = classify_all(REFS, CONTEXT, RunConfiguration())
    report = build_report(CONTEXT, REFS, candidates)
    assert report.unmerged == []
    assert report.summary.unmerged_count == 0
    assert report.summary.force_count == 0


def test_render_text(report) -> None:
    """Test the human-readable layout."""
    text = render_text(report)
    assert "GIT-GONE BRANCH ANALYSIS REPORT" in text
    assert "Default Branch: main" in text
    assert "SAFE TO DELETE (2 branches)" in text
    assert "LOCAL-ONLY (1 branches)" in text
    assert "PROTECTED (1 branches)" in text
    assert "STALE TAGS (1 tags)" in text
    assert "Method: gone_remote | Reason: Remote tracking branch deleted" in text
    assert "SUMMARY: 2 safe | 1 local-only | 1 unmerged | 1 protected | 1 stale tags" in text


def test_render_text_skips_empty_sections() -> None:
    """Test that empty categories are left out."""
    report = build_report(CONTEXT, REFS[:1], classify_all(REFS[:1], CONTEXT, RunConfiguration()))
    text = render_text(report)
    assert "SAFE TO DELETE" not in text
    assert "PROTECTED (1 branches)" in text


def test_render_json(report) -> None:
    """Test that the JSON report holds every section."""
    data = json.loads(render_json(report))
    assert data["default_branch"] == "main"
    assert data["summary"]["safe_to_delete_count"] == 2
    assert data["safe_to_delete"][1] == {
        "name": "feature-ghost",
        "kind": "branch",
        "status": "safe_to_delete",
        "delete_method": "gone_remote",
        "reason": "Remote tracking branch deleted",
        "remote_status": "gone",
        "last_commit": "2024-01-15",
    }
    assert data["stale_tags"][0]["kind"] == "tag"


def test_render_csv(report) -> None:
    """Test one CSV row per classified ref."""
    rows = list(csv.reader(io.StringIO(render_csv(report))))
    assert rows[0] == CSV_HEADER
    assert len(rows) == 7
    assert ["feature-local", "branch", "local_only", "merged"] == rows[3][:4]
    assert rows[-1][:3] == ["v2", "tag", "stale_tag"]


def test_render_dispatch(report) -> None:
    """Test format selection."""
    assert render(report, ReportFormat.JSON) == render_json(report)
    assert render(report, ReportFormat.CSV) == render_csv(report)
    assert render(report, ReportFormat.TEXT) == render_text(report)


def test_write_report(tmp_path: Path) -> None:
    """Test writing a report file."""
    path = tmp_path / "report.txt"
    write_report("content\n", path)
    assert path.read_text() == "content\n"


def test_write_report_failure(tmp_path: Path) -> None:
    """Test that an unwritable path raises ReportWriteFailed."""
    with pytest.raises(ReportWriteFailed):
        write_report("content", tmp_path / "missing" / "report.txt")
