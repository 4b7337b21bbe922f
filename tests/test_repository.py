import subprocess
from pathlib import Path

import pytest

from gwq.repository import RepositoryError, RepositoryService, git_toplevel


def _git(*args, cwd):
    subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True
    )


@pytest.fixture
def git_repo(tmp_path):
    repo = tmp_path / "gitrepo"
    repo.mkdir()
    _git("init", "-q", cwd=repo)
    _git("symbolic-ref", "HEAD", "refs/heads/main", cwd=repo)
    _git(
        "-c",
        "user.name=Test",
        "-c",
        "user.email=test@example.com",
        "-c",
        "commit.gpgsign=false",
        "commit",
        "--allow-empty",
        "-q",
        "-m",
        "init",
        cwd=repo,
    )
    return repo


@pytest.fixture
def fake_repo(tmp_path):
    repo = tmp_path / "repo"
    (repo / ".git").mkdir(parents=True)
    (repo / "a" / "b").mkdir(parents=True)
    return repo


def test_find_repo_root_from_nested_directory(fake_repo):
    service = RepositoryService(base_dir=fake_repo.parent)
    assert service.find_repo_root(str(fake_repo / "a" / "b")) == str(fake_repo)


def test_find_repo_root_at_root_itself(fake_repo):
    service = RepositoryService(base_dir=fake_repo.parent)
    assert service.find_repo_root(str(fake_repo)) == str(fake_repo)


def test_find_repo_root_defaults_to_cwd(fake_repo, monkeypatch):
    monkeypatch.chdir(fake_repo / "a")
    service = RepositoryService(base_dir=fake_repo.parent)
    assert Path(service.find_repo_root("")).resolve() == fake_repo.resolve()


def test_find_repo_root_outside_repository(tmp_path):
    plain = tmp_path / "plain"
    plain.mkdir()
    service = RepositoryService(base_dir=tmp_path)
    with pytest.raises(RepositoryError, match="not in a git repository"):
        service.find_repo_root(str(plain))


def test_resolve_repository_absolute(fake_repo):
    service = RepositoryService(base_dir=fake_repo.parent)
    assert service.resolve_repository(str(fake_repo / "a")) == str(fake_repo)


def test_resolve_repository_relative(fake_repo, monkeypatch):
    monkeypatch.chdir(fake_repo)
    service = RepositoryService(base_dir=fake_repo.parent)
    assert Path(service.resolve_repository("./a/b")).resolve() == fake_repo.resolve()


def test_resolve_repository_from_base_dir(tmp_path):
    base = tmp_path / "base"
    repo = base / "github.com" / "owner" / "project"
    (repo / ".git").mkdir(parents=True)
    service = RepositoryService(base_dir=base)
    assert service.resolve_repository("github.com/owner/project") == str(repo)


def test_resolve_repository_empty_uses_cwd(fake_repo, monkeypatch):
    monkeypatch.chdir(fake_repo / "a" / "b")
    service = RepositoryService(base_dir=fake_repo.parent)
    assert Path(service.resolve_repository("")).resolve() == fake_repo.resolve()


def test_validate_repository(fake_repo, tmp_path):
    service = RepositoryService(base_dir=tmp_path)
    service.validate_repository(fake_repo)
    with pytest.raises(RepositoryError, match="not a git repository"):
        service.validate_repository(fake_repo / "a")


def test_current_branch(git_repo):
    service = RepositoryService(base_dir=git_repo.parent)
    assert service.current_branch(git_repo) == "main"


def test_validate_branch(git_repo):
    service = RepositoryService(base_dir=git_repo.parent)
    service.validate_branch(git_repo, "main")
    with pytest.raises(RepositoryError, match="branch does not exist: nope"):
        service.validate_branch(git_repo, "nope")


def test_git_toplevel(git_repo):
    nested = git_repo / "sub"
    nested.mkdir()
    assert Path(git_toplevel(nested)).resolve() == git_repo.resolve()


def test_git_toplevel_missing_directory(tmp_path):
    with pytest.raises(RepositoryError, match="not a git repository"):
        git_toplevel(tmp_path / "does-not-exist")