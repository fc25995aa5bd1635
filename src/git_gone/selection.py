"""Candidate selection strategies."""

import logging
from typing import Sequence, Union

from iterfzf import iterfzf

from git_gone.candidate import DeletionCandidate, RunConfiguration

logger = logging.getLogger(__name__)


class SelectionAborted(Exception):
    """The user cancelled the selection."""


class SelectAll:
    """Select every candidate without asking."""

    def select(self, labels: Sequence[str], prompt: str = "") -> list[str]:
        return list(labels)


class FuzzySelector:
    """Interactive multi-select backed by fzf.

    Type to filter, Tab to toggle, Enter to confirm, Esc to cancel.
    """

    def select(self, labels: Sequence[str], prompt: str = "Select to delete > ") -> list[str]:
        if not labels:
            return []
        try:
            chosen = iterfzf(labels, multi=True, prompt=prompt)
        except KeyboardInterrupt as err:
            raise SelectionAborted() from err
        if chosen is None:
            raise SelectionAborted()
        return list(chosen)


Selector = Union[SelectAll, FuzzySelector]


def select_strategy(config: RunConfiguration) -> Selector:
    """Pick the selection strategy for a run.

    Raises:
        ConfigurationError: If the options are incompatible, see RunConfiguration.validate
    """
    config.validate()
    if config.select_all:
        return SelectAll()
    return FuzzySelector()


def select_candidates(
    candidates: Sequence[DeletionCandidate],
    selector: Selector,
    prompt: str,
) -> list[DeletionCandidate]:
    """Let the selector choose among candidates by display label.

    Raises:
        SelectionAborted: If the user cancels
    """
    by_label = {candidate.display_label: candidate for candidate in candidates}
    chosen = selector.select(list(by_label), prompt)
    logger.debug("Selected %d of %d candidates", len(chosen), len(by_label))
    return [by_label[label] for label in chosen if label in by_label]
