"""Tests for candidate selection."""

import pytest

from git_gone import selection
from git_gone.candidate import (
    Category,
    DeleteMethod,
    DeletionCandidate,
    IncompatibleFlags,
    IncompatibleSelectionMode,
    RefKind,
    RiskTier,
    RunConfiguration,
)
from git_gone.selection import FuzzySelector, SelectAll, SelectionAborted, select_candidates, select_strategy


def candidate(name: str, dangerous: bool = False) -> DeletionCandidate:
    return DeletionCandidate(
        kind=RefKind.BRANCH,
        name=name,
        category=Category.UNMERGED if dangerous else Category.SAFE,
        method=DeleteMethod.FORCE if dangerous else DeleteMethod.MERGED,
        risk_tier=RiskTier.DANGEROUS if dangerous else RiskTier.SAFE,
        reason="test",
        remote_state="exists",
    )


def test_select_all_returns_everything() -> None:
    """Test that select-all chooses every candidate in order."""
    candidates = [candidate("a"), candidate("b"), candidate("wip", dangerous=True)]
    assert select_candidates(candidates, SelectAll(), "") == candidates


def test_select_strategy() -> None:
    """Test the strategy picked for each configuration."""
    assert isinstance(select_strategy(RunConfiguration(select_all=True)), SelectAll)
    assert isinstance(select_strategy(RunConfiguration()), FuzzySelector)
    assert isinstance(select_strategy(RunConfiguration(interactive=True)), FuzzySelector)


def test_select_strategy_incompatible() -> None:
    """Test that both selection modes at once are rejected."""
    with pytest.raises(IncompatibleSelectionMode):
        select_strategy(RunConfiguration(select_all=True, interactive=True))


def test_fuzzy_selection_maps_labels(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that chosen labels map back to candidates, prefix included."""
    offered: list[list[str]] = []

    def fake_iterfzf(labels, multi=False, prompt=""):
        offered.append(list(labels))
        return ["(!) wip", "b"]

    monkeypatch.setattr(selection, "iterfzf", fake_iterfzf)
    candidates = [candidate("a"), candidate("b"), candidate("wip", dangerous=True)]

    chosen = select_candidates(candidates, FuzzySelector(), "Select > ")

    assert offered == [["a", "b", "(!) wip"]]
    assert [c.name for c in chosen] == ["wip", "b"]


def test_fuzzy_selection_cancelled(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that Esc in the selector aborts."""
    monkeypatch.setattr(selection, "iterfzf", lambda labels, multi=False, prompt="": None)
    with pytest.raises(SelectionAborted):
        select_candidates([candidate("a")], FuzzySelector(), "")


def test_fuzzy_selection_interrupted(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that Ctrl+C in the selector aborts."""

    def interrupted(labels, multi=False, prompt=""):
        raise KeyboardInterrupt

    monkeypatch.setattr(selection, "iterfzf", interrupted)
    with pytest.raises(SelectionAborted):
        FuzzySelector().select(["a"])


def test_fuzzy_selection_nothing_chosen(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that confirming an empty selection is not a cancellation."""
    monkeypatch.setattr(selection, "iterfzf", lambda labels, multi=False, prompt="": [])
    assert select_candidates([candidate("a")], FuzzySelector(), "") == []


def test_fuzzy_selection_without_labels() -> None:
    """Test that fzf is not started for an empty list."""
    assert FuzzySelector().select([]) == []


def test_select_strategy_validates_whole_configuration() -> None:
    """Test that the strategy is only picked for a valid configuration."""
    with pytest.raises(IncompatibleFlags):
        select_strategy(RunConfiguration(select_all=True, force=True))
