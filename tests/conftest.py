"""Test configuration and fixtures."""

from pathlib import Path
from typing import Generator

import pytest
from git import Actor, Repo

AUTHOR = Actor("Test User", "test@example.com")


def configure_author(repo: Repo) -> None:
    with repo.config_writer() as writer:
        writer.set_value("user", "name", AUTHOR.name)
        writer.set_value("user", "email", AUTHOR.email)


def commit_file(repo: Repo, name: str, content: str) -> None:
    """Write a file into the working tree and commit it."""
    path = Path(repo.working_tree_dir) / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    repo.index.add([name])
    repo.index.commit(f"Add {name}", author=AUTHOR, committer=AUTHOR)


def create_branch(repo: Repo, name: str, push: bool = False, merge: bool = False) -> None:
    """Create a branch off main with one commit, optionally pushed and merged."""
    repo.git.checkout("main")
    repo.git.checkout("-b", name)
    commit_file(repo, f"{name}.txt", f"Content for {name}")
    if push:
        repo.git.push("-u", "origin", name)
    repo.git.checkout("main")
    if merge:
        repo.git.merge(name, "--no-ff", "-m", f"Merge {name}")


@pytest.fixture
def solo_repo(tmp_path: Path) -> Generator[Repo, None, None]:
    """A repository with a single commit on main and no remote."""
    local_path = tmp_path / "solo"
    local_path.mkdir()
    repo = Repo.init(local_path)
    configure_author(repo)
    commit_file(repo, "README.md", "# Test Repository")
    repo.git.branch("-M", "main")
    yield repo


@pytest.fixture
def test_env(tmp_path: Path) -> Generator[tuple[Path, Path], None, None]:
    """Create a test environment with local and remote repositories.

    Branches in the local repository:
        main          default and current branch, pushed
        feature-done  merged into main, remote exists
        feature-ghost merged into main, remote deleted
        feature-local merged into main, never pushed
        feature-wip   not merged, never pushed

    Tags: v1 (annotated, pushed), v2 and v3 (local only).

    Returns:
        Tuple of (local_repo_path, remote_repo_path)
    """
    remote_path = tmp_path / "remote"
    local_path = tmp_path / "local"
    remote_path.mkdir()
    local_path.mkdir()

    Repo.init(remote_path, bare=True)

    local_repo = Repo.init(local_path)
    configure_author(local_repo)
    commit_file(local_repo, "README.md", "# Test Repository")
    local_repo.git.branch("-M", "main")

    local_repo.create_remote("origin", url=str(remote_path))
    local_repo.git.push("-u", "origin", "main")

    create_branch(local_repo, "feature-done", push=True, merge=True)
    create_branch(local_repo, "feature-ghost", push=True, merge=True)
    local_repo.git.push("origin", "--delete", "feature-ghost")
    create_branch(local_repo, "feature-local", merge=True)
    create_branch(local_repo, "feature-wip")
    local_repo.git.push("origin", "main")

    local_repo.git.tag("-a", "v1", "-m", "Release v1")
    local_repo.git.tag("v2")
    local_repo.git.tag("v3")
    local_repo.git.push("origin", "v1")

    yield local_path, remote_path

    # Cleanup is handled by pytest's tmp_path fixture
