"""Tests for repository lookup and tracking classification."""

from pathlib import Path

from filepulse.discovery import RepositoryLocator, TrackingClassifier
from filepulse.models import TrackingKind

from conftest import make_record


class _Dotfiles:
    def __init__(self, *paths: Path) -> None:
        self.paths = set(paths)

    def contains(self, path: Path) -> bool:
        return path in self.paths


def _home(tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    return home.resolve()


def test_find_root_walks_up_to_nearest_marker(tmp_path: Path) -> None:
    home = _home(tmp_path)
    project = home / "code" / "project"
    nested = project / "src" / "lib"
    nested.mkdir(parents=True)
    (project / ".git").mkdir()

    locator = RepositoryLocator(home)

    assert locator.find_root(nested / "a.rb") == project
    assert locator.find_root(project / "README.md") == project


def test_find_root_accepts_worktree_marker_file(tmp_path: Path) -> None:
    home = _home(tmp_path)
    worktree = home / "worktree"
    worktree.mkdir()
    (worktree / ".git").write_text("gitdir: /elsewhere\n", encoding="utf-8")

    assert RepositoryLocator(home).find_root(worktree / "file.txt") == worktree


def test_find_root_never_tests_home_directory(tmp_path: Path) -> None:
    home = _home(tmp_path)
    (home / ".git").mkdir()
    notes = home / "notes"
    notes.mkdir()

    locator = RepositoryLocator(home)

    assert locator.find_root(notes / "todo.txt") is None
    assert locator.find_root(home / ".bashrc") is None


def test_find_root_caches_per_directory(tmp_path: Path) -> None:
    home = _home(tmp_path)
    project = home / "project"
    project.mkdir()
    locator = RepositoryLocator(home)

    assert locator.find_root(project / "a.txt") is None

    (project / ".git").mkdir()
    assert locator.find_root(project / "b.txt") is None
    assert RepositoryLocator(home).find_root(project / "b.txt") == project


def test_classifier_prefers_git_then_dotfiles(tmp_path: Path) -> None:
    home = _home(tmp_path)
    project = home / "project"
    project.mkdir()
    (project / ".git").mkdir()
    config_dir = home / ".config" / "app"
    config_dir.mkdir(parents=True)

    dotfile = config_dir / "settings.toml"
    classifier = TrackingClassifier(RepositoryLocator(home), _Dotfiles(dotfile, project / "x.py"))

    assert classifier.classify(make_record("x.py", root=project)) is TrackingKind.GIT
    assert (
        classifier.classify(make_record("settings.toml", root=config_dir)) is TrackingKind.DOTFILE
    )
    assert classifier.classify(make_record("other.txt", root=config_dir)) is TrackingKind.UNTRACKED
