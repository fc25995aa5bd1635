"""Guarded deletion of selected candidates."""

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

from rich.console import Console
from rich.markup import escape

from git_gone.candidate import (
    DeleteMethod,
    DeletionCandidate,
    RefKind,
    RepositoryContext,
    RiskTier,
    RunConfiguration,
)
from git_gone.git import DeletionFailed, GitRepo, RemoteRefAlreadyAbsent

logger = logging.getLogger(__name__)

DANGEROUS_CONFIRMATION = "DELETE"


class Prompter(Protocol):
    """Asks the user to confirm deletions."""

    def confirm(self, message: str) -> bool: ...

    def typed_confirmation(self, message: str, expected: str) -> bool: ...


class ConsolePrompter:
    """Line-oriented confirmation on the terminal."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def _ask(self, message: str) -> Optional[str]:
        try:
            return self.console.input(message)
        except EOFError:
            return None

    def confirm(self, message: str) -> bool:
        response = self._ask(escape(f"{message} [y/N] "))
        return response is not None and response.strip().lower() in ("y", "yes")

    def typed_confirmation(self, message: str, expected: str) -> bool:
        response = self._ask(escape(message))
        return response is not None and response.strip() == expected


@dataclass
class DeletionFailure:
    """A candidate that could not be deleted."""

    candidate: DeletionCandidate
    message: str


@dataclass
class DeletionSummary:
    """Outcome of a deletion batch."""

    deleted: list[DeletionCandidate] = field(default_factory=list)
    failures: list[DeletionFailure] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    cancelled: bool = False
    dangerous_dropped: bool = False

    @property
    def success_count(self) -> int:
        return len(self.deleted)


class DeletionOrchestrator:
    """Confirm and execute deletions, one candidate at a time."""

    def __init__(
        self,
        repo: GitRepo,
        context: RepositoryContext,
        config: RunConfiguration,
        prompter: Prompter,
        console: Optional[Console] = None,
    ) -> None:
        self.repo = repo
        self.context = context
        self.config = config
        self.prompter = prompter
        self.console = console or Console()

    def confirm(
        self,
        safe: Sequence[DeletionCandidate],
        dangerous: Sequence[DeletionCandidate],
    ) -> Optional[list[DeletionCandidate]]:
        """Run the tiered confirmation.

        Returns:
            The candidates cleared for deletion, or None if the run is cancelled.
        """
        if safe and not self.config.force:
            if not self.prompter.confirm(f"Are you sure you want to delete {len(safe)} item(s)?"):
                return None

        if not dangerous:
            return list(safe)

        self.console.print(
            f"\n[bold red]WARNING:[/bold red] You are about to delete {len(dangerous)} UNMERGED branch(es):"
        )
        for candidate in dangerous:
            where = f"locally AND from {candidate.upstream}" if candidate.upstream else "locally only"
            self.console.print(f"   • {escape(candidate.name)} [dim](will be deleted {escape(where)})[/dim]")
        confirmed = self.prompter.typed_confirmation(
            f"\nThis action cannot be undone! Type '{DANGEROUS_CONFIRMATION}' to confirm: ",
            DANGEROUS_CONFIRMATION,
        )
        if confirmed:
            return list(safe) + list(dangerous)
        if self.config.force and safe:
            logger.debug("Typed confirmation failed, dropping %d dangerous candidates", len(dangerous))
            return list(safe)
        return None

    def run(self, selected: Sequence[DeletionCandidate]) -> DeletionSummary:
        """Confirm then delete the selected candidates.

        A failure on one candidate never stops the others.
        """
        summary = DeletionSummary()
        safe = [c for c in selected if c.risk_tier is RiskTier.SAFE]
        dangerous = [c for c in selected if c.risk_tier is RiskTier.DANGEROUS]

        cleared = self.confirm(safe, dangerous)
        if cleared is None:
            summary.cancelled = True
            return summary
        summary.dangerous_dropped = bool(dangerous) and not any(c.risk_tier is RiskTier.DANGEROUS for c in cleared)

        for candidate in cleared:
            try:
                self.delete(candidate, summary)
            except DeletionFailed as err:
                summary.failures.append(DeletionFailure(candidate, err.diagnostic))
                continue
            summary.deleted.append(candidate)
        return summary

    def delete(self, candidate: DeletionCandidate, summary: DeletionSummary) -> None:
        """Delete a single candidate.

        Raises:
            DeletionFailed: If the local ref could not be deleted
        """
        logger.debug("Deleting %s %s (%s)", candidate.kind.value, candidate.name, candidate.method.value)
        if candidate.kind is RefKind.TAG:
            self.repo.delete_tag(candidate.name)
        elif candidate.method in (DeleteMethod.GONE_REMOTE, DeleteMethod.FORCE):
            self._delete_remote(candidate, summary)
            self.repo.force_delete_branch(candidate.name)
        else:
            self.repo.delete_branch(candidate.name)

    def _delete_remote(self, candidate: DeletionCandidate, summary: DeletionSummary) -> None:
        upstream = candidate.upstream
        if upstream is None:
            logger.debug("Branch %s tracks no remote branch, skipping remote delete", candidate.name)
            return
        try:
            self.repo.delete_remote_branch(upstream.branch, upstream.remote)
        except RemoteRefAlreadyAbsent:
            logger.debug("Remote branch %s already absent", upstream)
        except DeletionFailed as err:
            message = f"Failed to delete remote branch {upstream}: {err.diagnostic}"
            summary.warnings.append(message)
            self.console.print(f"[yellow]Warning:[/yellow] {escape(message)}")
