"""Command line interface for git-gone."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Callable, Optional, Sequence

import typer
from rich import print
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from git_gone import __version__
from git_gone.candidate import (
    Category,
    ConfigurationError,
    DeletionCandidate,
    RawRef,
    RepositoryContext,
    RiskTier,
    RunConfiguration,
    classify_all,
)
from git_gone.cleanup import ConsolePrompter, DeletionOrchestrator, DeletionSummary
from git_gone.git import GitError, GitRepo, RemoteRefreshFailed
from git_gone.refs import enumerate_branches, enumerate_tags
from git_gone.report import ReportFormat, ReportWriteFailed, build_report, render, write_report
from git_gone.selection import SelectionAborted, select_candidates, select_strategy

app = typer.Typer(help="Clean up merged git branches and stale tags")
tags_app = typer.Typer(help="Manage and clean up tags", no_args_is_help=True)
app.add_typer(tags_app, name="tags")

console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)

PathOption = Annotated[Optional[Path], typer.Option(help="Path to git repository")]
ForceOption = Annotated[
    bool,
    typer.Option("--force", "-f", help="Skip the confirmation prompt for safe deletions"),
]
SelectAllOption = Annotated[
    bool,
    typer.Option("--all", "-a", help="Select all candidates without interactive selection (incompatible with -f)"),
]
InteractiveOption = Annotated[
    bool,
    typer.Option("--interactive", "-i", help="Always use the interactive selector (incompatible with -a)"),
]
UnmergedOption = Annotated[
    bool,
    typer.Option("--unmerged", "-u", help="Include unmerged branches, marked with (!), always requires typing DELETE"),
]
NoStaleOption = Annotated[
    bool,
    typer.Option("--no-stale", "-n", help="Include ALL local tags, not just stale ones"),
]

STATUS_STYLES = {
    Category.SAFE: "green",
    Category.LOCAL_ONLY: "cyan",
    Category.UNMERGED: "red",
    Category.PROTECTED: "dim",
    Category.STALE_TAG: "bright_yellow",
}


@dataclass(frozen=True)
class GlobalOptions:
    """Options given before the command name."""

    path: Path
    config: RunConfiguration


def _configure_logging(verbose: bool) -> None:
    package_logger = logging.getLogger("git_gone")
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(isinstance(handler, RichHandler) for handler in package_logger.handlers):
        package_logger.addHandler(RichHandler(console=err_console, show_path=False))


def _options(
    ctx: typer.Context,
    path: Optional[Path],
    force: bool = False,
    select_all: bool = False,
    interactive: bool = False,
    include_unmerged: bool = False,
    include_all_tags: bool = False,
) -> tuple[Path, RunConfiguration]:
    """Merge command options with the ones given before the command name."""
    root: Optional[GlobalOptions] = ctx.obj if isinstance(ctx.obj, GlobalOptions) else None
    base = root.config if root else RunConfiguration()
    config = RunConfiguration(
        force=force or base.force,
        select_all=select_all or base.select_all,
        interactive=interactive or base.interactive,
        include_unmerged=include_unmerged or base.include_unmerged,
        include_all_tags=include_all_tags or base.include_all_tags,
    )
    return path or (root.path if root else Path(".")), config


def _validate(config: RunConfiguration) -> None:
    try:
        config.validate()
    except ConfigurationError as err:
        print(f"[red]Error:[/red] {err}")
        raise typer.Exit(code=1) from err


def _warner(target: Console) -> Callable[[str], None]:
    def warn(message: str) -> None:
        target.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    return warn


def get_repo(path: Path) -> GitRepo:
    """Get git repository instance."""
    try:
        return GitRepo(path)
    except GitError as err:
        print(f"[red]Error:[/red] {err}")
        raise typer.Exit(code=1) from err


def refresh_and_resolve(repo: GitRepo, target: Console) -> RepositoryContext:
    """Update remote-tracking refs, then resolve the repository context."""
    if repo.has_remote():
        target.print("Updating remote references...")
        try:
            repo.refresh_remotes()
        except RemoteRefreshFailed as err:
            _warner(target)(f"Failed to update remote refs: {err}")
    return repo.resolve_context()


def create_candidate_table(title: str, candidates: Sequence[DeletionCandidate]) -> Table:
    """Create a table listing candidates with their classification."""
    table = Table(
        title=title,
        min_width=len(title) + 4,
        show_header=True,
        header_style="bold",
        title_style="bold blue",
        show_edge=True,
    )
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Status", style="magenta", justify="center", no_wrap=True)
    table.add_column("Reason")
    table.add_column("Last Commit", style="yellow", no_wrap=True)

    for candidate in candidates:
        style = STATUS_STYLES[candidate.category]
        status = candidate.method.value or candidate.category.value
        table.add_row(
            escape(candidate.display_label),
            f"[{style}]{status}[/{style}]",
            escape(candidate.reason),
            candidate.last_commit,
        )
    return table


def print_clean_panel(message: str) -> None:
    console.print(
        Panel(
            f"[green]{message}[/green]",
            style="green",
            padding=(0, 2),
            expand=False,
        )
    )


def delete_selected(
    repo: GitRepo,
    context: RepositoryContext,
    config: RunConfiguration,
    selected: Sequence[DeletionCandidate],
    noun: str,
) -> DeletionSummary:
    """Confirm and delete the selected candidates, then print the outcome."""
    console.print(f"\n[yellow]The following {noun} will be deleted:[/yellow]")
    for candidate in selected:
        dangerous = candidate.risk_tier is RiskTier.DANGEROUS
        suffix = " [dim](local + remote)[/dim]" if dangerous and candidate.upstream else ""
        console.print(f"  • {escape(candidate.display_label)}{suffix}")
    console.print()

    orchestrator = DeletionOrchestrator(repo, context, config, ConsolePrompter(console), console)
    summary = orchestrator.run(selected)

    if summary.cancelled:
        console.print("\n[yellow]Operation cancelled[/yellow] 🛑")
        return summary
    if summary.dangerous_dropped:
        console.print("[yellow]Deletion of unmerged branches cancelled[/yellow]")

    if summary.deleted:
        title = f"Successfully deleted {summary.success_count} {noun} 🧹"
        result_table = Table(
            title=title,
            min_width=len(title) + 4,
            show_header=True,
            header_style="bold",
            title_style="bold green",
            show_edge=True,
        )
        result_table.add_column("Name", style="cyan")
        result_table.add_column("Method", style="magenta")
        for candidate in summary.deleted:
            result_table.add_row(escape(candidate.name), candidate.method.value)
        console.print()
        console.print(result_table)
    else:
        console.print(f"\n[yellow]No {noun} were deleted[/yellow] 🤔")

    for failure in summary.failures:
        console.print(f"[red]Failed to delete {escape(failure.candidate.name)}:[/red] {escape(failure.message)}")
    return summary


def run_branches(path: Path, config: RunConfiguration) -> None:
    """Classify branches and delete the ones the user selects."""
    _validate(config)
    repo = get_repo(path)
    context = refresh_and_resolve(repo, console)
    console.print(f"Default branch: [bold]{escape(context.default_branch)}[/bold]")
    console.print(f"Current branch: [bold]{escape(context.current_branch or '(detached)')}[/bold]")

    refs = enumerate_branches(repo, context, on_warning=_warner(console))
    candidates = [c for c in classify_all(refs, context, config) if c.is_deletable]
    if not candidates:
        print_clean_panel("Your branches are clean ✨")
        return

    console.print()
    console.print(create_candidate_table(f"Found {len(candidates)} deletable branch(es)", candidates))
    if any(c.category is Category.UNMERGED for c in candidates):
        console.print("   [red](!)[/red] Unmerged, requires typing DELETE")

    try:
        selected = select_candidates(candidates, select_strategy(config), "Select branches to delete > ")
    except SelectionAborted:
        console.print("\n[yellow]Selection cancelled[/yellow]")
        return
    if not selected:
        console.print("\n[green]No branches selected for deletion[/green]")
        return

    delete_selected(repo, context, config, selected, "branch(es)")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    path: Annotated[Path, typer.Option(help="Path to git repository")] = Path("."),
    force: ForceOption = False,
    select_all: SelectAllOption = False,
    interactive: InteractiveOption = False,
    include_unmerged: UnmergedOption = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
) -> None:
    """Clean up local branches that are merged or whose remote is gone.

    Without a command, runs `branches`.
    """
    _configure_logging(verbose)
    ctx.obj = GlobalOptions(
        path=path,
        config=RunConfiguration(
            force=force,
            select_all=select_all,
            interactive=interactive,
            include_unmerged=include_unmerged,
        ),
    )
    logger.debug("Global options: %s", ctx.obj)
    if ctx.invoked_subcommand is None:
        run_branches(path, ctx.obj.config)


@app.command()
def branches(
    ctx: typer.Context,
    path: PathOption = None,
    force: ForceOption = False,
    select_all: SelectAllOption = False,
    interactive: InteractiveOption = False,
    include_unmerged: UnmergedOption = False,
) -> None:
    """Clean up merged and gone branches interactively.

    Interactive controls: type to filter, Tab to toggle, Enter to confirm, Esc to cancel.
    """
    repo_path, config = _options(ctx, path, force, select_all, interactive, include_unmerged)
    run_branches(repo_path, config)


@app.command()
def report(
    ctx: typer.Context,
    path: PathOption = None,
    output: Annotated[ReportFormat, typer.Option("--output", "-o", help="Report output format")] = ReportFormat.TEXT,
    file: Annotated[Optional[Path], typer.Option("--file", help="Write report to file instead of stdout")] = None,
    include_unmerged: UnmergedOption = False,
    tags: Annotated[bool, typer.Option("--tags/--no-tags", help="Include stale tags in the report")] = True,
) -> None:
    """Generate a branch analysis report without deleting anything."""
    repo_path, config = _options(ctx, path, include_unmerged=include_unmerged)
    repo = get_repo(repo_path)
    context = refresh_and_resolve(repo, err_console)
    warn = _warner(err_console)

    err_console.print("Analyzing branches...")
    refs: list[RawRef] = enumerate_branches(repo, context, on_warning=warn)
    if tags and context.has_remote:
        refs += enumerate_tags(repo, on_warning=warn)
    analysis = build_report(context, refs, classify_all(refs, context, config))
    content = render(analysis, output)

    if file is not None:
        try:
            write_report(content, file)
        except ReportWriteFailed as err:
            err_console.print(f"[red]Error:[/red] {escape(str(err))}")
        else:
            console.print(f"[green]Report saved to:[/green] {escape(str(file))}")
            return
    console.print(content.rstrip("\n"), markup=False, highlight=False, emoji=False, soft_wrap=True)


def collect_tag_candidates(
    repo: GitRepo,
    context: RepositoryContext,
    config: RunConfiguration,
) -> Optional[list[DeletionCandidate]]:
    """Classify local tags, or return None when stale tags cannot be determined."""
    if not config.include_all_tags:
        if not context.has_remote:
            console.print(
                f"[yellow]Warning:[/yellow] No remote '{escape(context.remote_name)}' configured. "
                "Cannot determine stale tags."
            )
            console.print("   Use --no-stale (-n) to include all local tags instead.")
            return None
        console.print("Fetching remote tags...")
    refs = enumerate_tags(repo, include_all=config.include_all_tags, on_warning=_warner(console))
    return classify_all(refs, context, config)


def _print_no_tags(config: RunConfiguration) -> None:
    if config.include_all_tags:
        print_clean_panel("No local tags found.")
    else:
        print_clean_panel("No stale tags found. All local tags exist on remote.")


@tags_app.command("list")
def tags_list(
    ctx: typer.Context,
    path: PathOption = None,
    no_stale: NoStaleOption = False,
) -> None:
    """List stale tags (local tags not on remote)."""
    repo_path, config = _options(ctx, path, include_all_tags=no_stale)
    repo = get_repo(repo_path)
    context = repo.resolve_context()
    candidates = collect_tag_candidates(repo, context, config)
    if candidates is None:
        return
    if not candidates:
        _print_no_tags(config)
        return

    kind = "local" if config.include_all_tags else "stale"
    console.print()
    console.print(create_candidate_table(f"Found {len(candidates)} {kind} tag(s)", candidates))


@tags_app.command("clean")
def tags_clean(
    ctx: typer.Context,
    path: PathOption = None,
    no_stale: NoStaleOption = False,
    force: ForceOption = False,
    select_all: SelectAllOption = False,
    interactive: InteractiveOption = False,
) -> None:
    """Clean up stale tags interactively."""
    repo_path, config = _options(ctx, path, force, select_all, interactive, include_all_tags=no_stale)
    _validate(config)
    repo = get_repo(repo_path)
    context = repo.resolve_context()
    candidates = collect_tag_candidates(repo, context, config)
    if candidates is None:
        return
    if not candidates:
        _print_no_tags(config)
        return

    console.print()
    console.print(create_candidate_table(f"Found {len(candidates)} tag(s)", candidates))
    try:
        selected = select_candidates(candidates, select_strategy(config), "Select tags to delete > ")
    except SelectionAborted:
        console.print("\n[yellow]Selection cancelled[/yellow]")
        return
    if not selected:
        console.print("\n[green]No tags selected for deletion[/green]")
        return

    delete_selected(repo, context, config, selected, "tag(s)")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"git-gone {__version__}")


if __name__ == "__main__":
    app()
