"""Git repository operations."""

import logging
from pathlib import Path
from typing import Optional

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from git_gone.candidate import RepositoryContext, Upstream

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"
DEFAULT_BRANCH_CANDIDATES = ("main", "master", "develop")
FALLBACK_DEFAULT_BRANCH = "main"

REMOTE_REF_MISSING_MARKER = "remote ref does not exist"


class GitError(Exception):
    """Git operation error."""


class NotARepository(GitError):
    """The working directory is not inside a usable git repository."""


class RemoteRefreshFailed(GitError):
    """Fetching or pruning remotes failed."""


class RefEnumerationFailed(GitError):
    """A single ref listing failed."""

    def __init__(self, source: str, cause: str) -> None:
        """Initialize error.

        Args:
            source: Human-readable name of the listing that failed
            cause: Diagnostic text reported by git
        """
        super().__init__(f"Failed to get {source}: {cause}")
        self.source = source
        self.cause = cause


class DeletionFailed(GitError):
    """Deleting a single ref failed."""

    def __init__(self, name: str, diagnostic: str) -> None:
        super().__init__(f"Failed to delete {name}: {diagnostic}")
        self.name = name
        self.diagnostic = diagnostic


class RemoteRefAlreadyAbsent(GitError):
    """The remote ref to delete does not exist anymore."""


def _diagnostic(err: GitCommandError) -> str:
    """Extract git's own message from a GitCommandError."""
    stderr = str(err.stderr or "").strip()
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:") :].strip().strip("'").strip()
    return stderr or str(err)


def _upstream(remote: str, remote_ref: str) -> Optional[Upstream]:
    """Build the tracked remote branch, ignoring branches that track a local one."""
    if not remote or remote == "." or not remote_ref.startswith("refs/heads/"):
        return None
    return Upstream(remote, remote_ref[len("refs/heads/") :])


class GitRepo:
    """Git repository operations."""

    def __init__(self, path: Path, remote_name: str = DEFAULT_REMOTE) -> None:
        """Open the repository containing path.

        Raises:
            NotARepository: If path is not inside a non-bare git repository
        """
        try:
            self.repo: Repo = Repo(path, search_parent_directories=True)
        except (GitCommandError, ValueError, InvalidGitRepositoryError, NoSuchPathError) as err:
            raise NotARepository(f"Not in a git repository: {path}") from err
        if self.repo.bare:
            raise NotARepository("Cannot operate on bare repository")

        # Status markers like "[gone]" are only matched in the C locale
        self.repo.git.update_environment(LC_ALL="C", LANG="C")
        self.remote_name = remote_name

    @property
    def path(self) -> str:
        """Root of the working tree."""
        return str(self.repo.working_tree_dir)

    def has_remote(self) -> bool:
        """Check whether the configured remote exists."""
        return any(remote.name == self.remote_name for remote in self.repo.remotes)

    def get_current_branch_name(self) -> str:
        """Get current branch name, or an empty string on a detached HEAD."""
        try:
            return self.repo.active_branch.name
        except TypeError:
            return ""

    def get_default_branch_name(self) -> str:
        """Resolve the default branch.

        Tries the remote's HEAD pointer first, then the first existing branch
        out of DEFAULT_BRANCH_CANDIDATES, then falls back to "main".
        """
        prefix = f"refs/remotes/{self.remote_name}/"
        try:
            head_ref = self.repo.git.symbolic_ref("--quiet", f"{prefix}HEAD").strip()
            if head_ref.startswith(prefix):
                return head_ref[len(prefix) :]
        except GitCommandError:
            logger.debug("Remote HEAD for %s is not set", self.remote_name)

        for name in DEFAULT_BRANCH_CANDIDATES:
            if self.branch_exists(name):
                return name
        return FALLBACK_DEFAULT_BRANCH

    def branch_exists(self, name: str) -> bool:
        """Check if a local branch exists."""
        try:
            self.repo.git.rev_parse("--verify", "--quiet", f"refs/heads/{name}")
            return True
        except GitCommandError:
            return False

    def resolve_context(self) -> RepositoryContext:
        """Resolve default branch, current branch and remote presence once."""
        context = RepositoryContext(
            default_branch=self.get_default_branch_name(),
            current_branch=self.get_current_branch_name(),
            has_remote=self.has_remote(),
            remote_name=self.remote_name,
            path=self.path,
        )
        logger.debug("Resolved repository context: %s", context)
        return context

    def refresh_remotes(self) -> None:
        """Fetch all remotes and prune deleted references.

        Raises:
            RemoteRefreshFailed: If fetching or updating remotes fails
        """
        try:
            self.repo.git.fetch("--all", "--prune")
        except GitCommandError as err:
            raise RemoteRefreshFailed(f"fetch failed: {_diagnostic(err)}") from err
        try:
            self.repo.git.remote("update", "--prune")
        except GitCommandError as err:
            raise RemoteRefreshFailed(f"remote update failed: {_diagnostic(err)}") from err

    def _run_listing(self, source: str, command: str, *args: str) -> list[str]:
        """Run a git listing command and return its non-empty lines."""
        logger.debug("Listing %s: git %s %s", source, command, " ".join(args))
        try:
            output = getattr(self.repo.git, command)(*args)
        except GitCommandError as err:
            raise RefEnumerationFailed(source, _diagnostic(err)) from err
        return [line for line in str(output).splitlines() if line.strip()]

    def list_branches(self) -> dict[str, tuple[Optional[Upstream], str]]:
        """List local branches.

        Only refs under refs/heads are listed, so a detached HEAD never shows
        up as a branch.

        Returns:
            Mapping of branch name to (upstream, last commit date). The
            upstream is None when the branch tracks no remote branch.
        """
        lines = self._run_listing(
            "local branches",
            "for_each_ref",
            "--format=%(refname:lstrip=2)%09%(upstream:remotename)%09%(upstream:remoteref)%09%(committerdate:short)",
            "refs/heads",
        )
        branches: dict[str, tuple[Optional[Upstream], str]] = {}
        for line in lines:
            name, remote, remote_ref, date = (line.split("\t") + ["", "", ""])[:4]
            branches[name.strip()] = (_upstream(remote.strip(), remote_ref.strip()), date.strip() or "unknown")
        return branches

    def gone_branches(self) -> set[str]:
        """List branches whose upstream was deleted on the remote."""
        lines = self._run_listing(
            "gone branches",
            "for_each_ref",
            "--format=%(refname:lstrip=2)%09%(upstream:track)",
            "refs/heads",
        )
        gone = set()
        for line in lines:
            name, _, track = line.partition("\t")
            if "[gone]" in track:
                gone.add(name.strip())
        return gone

    def merged_branches(self, target: str) -> set[str]:
        """List branches merged into target."""
        lines = self._run_listing(
            "merged branches",
            "for_each_ref",
            "--merged",
            target,
            "--format=%(refname:lstrip=2)",
            "refs/heads",
        )
        return {line.strip() for line in lines}

    def list_tags(self) -> dict[str, str]:
        """List local tags with the date of the tagged object."""
        lines = self._run_listing(
            "local tags",
            "for_each_ref",
            "--format=%(refname:lstrip=2)%09%(creatordate:short)",
            "refs/tags",
        )
        tags: dict[str, str] = {}
        for line in lines:
            name, _, date = line.partition("\t")
            tags[name.strip()] = date.strip() or "unknown"
        return tags

    def remote_tags(self) -> set[str]:
        """List tag names on the remote, with annotated-tag peel suffixes stripped."""
        lines = self._run_listing("remote tags", "ls_remote", "--tags", self.remote_name)
        return parse_remote_tags(lines)

    def delete_branch(self, name: str) -> None:
        """Delete a local branch, falling back to a forced delete.

        git's own merge check (against the upstream or HEAD) can be stricter
        than ours, so a refused safe delete is retried with -D.

        Raises:
            DeletionFailed: If the forced delete fails as well
        """
        try:
            self.repo.git.branch("-d", name)
            return
        except GitCommandError as err:
            logger.debug("Safe delete of %s refused: %s", name, _diagnostic(err))
        self.force_delete_branch(name)

    def force_delete_branch(self, name: str) -> None:
        """Force delete a local branch.

        Raises:
            DeletionFailed: If git refuses the delete
        """
        try:
            self.repo.git.branch("-D", name)
        except GitCommandError as err:
            raise DeletionFailed(name, _diagnostic(err)) from err

    def delete_remote_branch(self, name: str, remote: Optional[str] = None) -> None:
        """Delete a branch on the remote.

        Raises:
            RemoteRefAlreadyAbsent: If the remote has no such branch
            DeletionFailed: For any other push failure
        """
        remote = remote or self.remote_name
        try:
            self.repo.git.push(remote, "--delete", name)
        except GitCommandError as err:
            diagnostic = _diagnostic(err)
            if REMOTE_REF_MISSING_MARKER in diagnostic:
                raise RemoteRefAlreadyAbsent(f"{remote}/{name} does not exist") from err
            raise DeletionFailed(f"{remote}/{name}", diagnostic) from err

    def delete_tag(self, name: str) -> None:
        """Delete a local tag.

        Raises:
            DeletionFailed: If git refuses the delete
        """
        try:
            self.repo.git.tag("-d", name)
        except GitCommandError as err:
            raise DeletionFailed(name, _diagnostic(err)) from err


def parse_remote_tags(lines: list[str]) -> set[str]:
    """Parse `git ls-remote --tags` output into tag names.

    Annotated tags are listed twice, once with a "^{}" suffix for the peeled
    commit; both map to the same name.
    """
    tags = set()
    for line in lines:
        parts = line.split()
        if len(parts) < 2 or not parts[1].startswith("refs/tags/"):
            continue
        name = parts[1][len("refs/tags/") :]
        if name.endswith("^{}"):
            name = name[: -len("^{}")]
        tags.add(name)
    return tags
