"""Locating git repositories and querying their branches."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path


class RepositoryError(Exception):
    """A path is not a usable git repository, or git could not answer."""


def _run_git(args: list[str], cwd) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )


def git_toplevel(path) -> str:
    """Return the top-level directory of the git work tree containing ``path``."""
    try:
        completed = _run_git(["rev-parse", "--show-toplevel"], cwd=path)
    except (OSError, subprocess.CalledProcessError) as exc:
        raise RepositoryError(f"not a git repository: {path}") from exc
    root = completed.stdout.strip()
    if not root:
        raise RepositoryError(f"not a git repository: {path}")
    return root


def _is_relative_reference(text: str) -> bool:
    return text.startswith("./") or text.startswith("../")


class RepositoryService:
    """Resolves repository references and inspects repository state."""

    def __init__(self, base_dir=None):
        if base_dir is None:
            base_dir = os.path.join(os.environ.get("HOME", ""), "worktrees")
        self.base_dir = str(base_dir)

    def find_repo_root(self, path="") -> str:
        """Walk upwards from ``path`` (default: the working directory) to a ``.git``."""
        try:
            start = str(path) if path else os.getcwd()
            if not os.path.isabs(start):
                start = os.path.join(os.getcwd(), start)
        except OSError as exc:
            raise RepositoryError(f"failed to get working directory: {exc}") from exc
        start = os.path.normpath(start)

        directory = start
        while True:
            if os.path.exists(os.path.join(directory, ".git")):
                return directory
            parent = os.path.dirname(directory)
            if parent == directory:
                raise RepositoryError(f"not in a git repository: {start}")
            directory = parent

    def resolve_repository(self, repo="") -> str:
        """Resolve an empty, absolute, relative or base-directory-relative reference."""
        repo = str(repo) if repo else ""
        if not repo:
            return self.find_repo_root("")
        if os.path.isabs(repo) or _is_relative_reference(repo):
            return self.find_repo_root(repo)
        candidate = os.path.join(self.base_dir, repo)
        if os.path.exists(candidate):
            return self.find_repo_root(candidate)
        return self.find_repo_root(repo)

    def current_branch(self, repo_root) -> str:
        """Name of the branch checked out in ``repo_root``."""
        try:
            completed = _run_git(["branch", "--show-current"], cwd=repo_root)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise RepositoryError(f"failed to get current branch: {exc}") from exc
        branch = completed.stdout.strip()
        if not branch:
            raise RepositoryError("no current branch (detached HEAD?)")
        return branch

    def validate_repository(self, path) -> None:
        """Raise unless ``path`` holds a ``.git`` entry."""
        if not (Path(path) / ".git").exists():
            raise RepositoryError(f"not a git repository: {path}")

    def validate_branch(self, repo_root, branch: str) -> None:
        """Raise unless ``branch`` exists as a local branch in ``repo_root``."""
        try:
            _run_git(
                ["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"],
                cwd=repo_root,
            )
        except (OSError, subprocess.CalledProcessError) as exc:
            raise RepositoryError(f"branch does not exist: {branch}") from exc