"""Pytest configuration and fixtures for Diff Grep tests."""

import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Generator, List, Optional

import pytest

from diffgrep.vcs import FileDelta, LineOrigin, RawDiffLine

_GIT_IDENTITY = {
    "GIT_AUTHOR_NAME": "Test User",
    "GIT_AUTHOR_EMAIL": "test@example.com",
    "GIT_COMMITTER_NAME": "Test User",
    "GIT_COMMITTER_EMAIL": "test@example.com",
}


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp(prefix="diffgrep_test_"))
    try:
        yield temp_path
    finally:
        if temp_path.exists():
            shutil.rmtree(temp_path, ignore_errors=True)


class GitRepoHelper:
    """Helper class for git repository operations in tests."""

    def __init__(self, repo_path: Path):
        self.repo_path = repo_path
        self.env = os.environ.copy()
        self.env.update(_GIT_IDENTITY)

    def run_git(self, args: List[str]) -> subprocess.CompletedProcess:
        """Run git command in the repository."""
        return subprocess.run(
            ["git"] + args,
            cwd=self.repo_path,
            env=self.env,
            check=True,
            capture_output=True,
            text=True,
        )

    def create_file(self, path: str, content: str) -> None:
        """Create a file with content."""
        file_path = self.repo_path / path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)

    def modify_file(self, path: str, content: str) -> None:
        """Modify an existing file."""
        self.create_file(path, content)

    def delete_file(self, path: str) -> None:
        """Delete a file."""
        file_path = self.repo_path / path
        if file_path.exists():
            file_path.unlink()

    def create_binary_file(self, path: str, extra: bytes = b"") -> None:
        """Create a binary file."""
        file_path = self.repo_path / path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        binary_content = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR needle\x00\x00" + extra
        file_path.write_bytes(binary_content)

    def add_and_commit(self, message: str, files: Optional[List[str]] = None) -> str:
        """Add files and create a commit, return commit SHA."""
        if files:
            for file in files:
                self.run_git(["add", file])
        else:
            self.run_git(["add", "-A"])

        self.run_git(["commit", "-m", message])
        return self.get_current_sha()

    def get_current_sha(self) -> str:
        """Get current commit SHA."""
        result = self.run_git(["rev-parse", "HEAD"])
        return result.stdout.strip()

    def get_tree(self, commit: str) -> str:
        result = self.run_git(["rev-parse", f"{commit}^{{tree}}"])
        return result.stdout.strip()

    def checkout_new_branch(self, name: str) -> None:
        self.run_git(["checkout", "-b", name])

    def checkout(self, name: str) -> None:
        self.run_git(["checkout", name])


@pytest.fixture
def git_repo(temp_dir: Path) -> Generator[Path, None, None]:
    """Create a temporary git repository on branch ``main`` with one commit."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()
    helper = GitRepoHelper(repo_path)

    helper.run_git(["init"])
    # Independent of the host's init.defaultBranch
    helper.run_git(["symbolic-ref", "HEAD", "refs/heads/main"])
    helper.run_git(["config", "user.name", "Test User"])
    helper.run_git(["config", "user.email", "test@example.com"])
    helper.run_git(["config", "commit.gpgsign", "false"])

    helper.create_file("README.md", "# Test Repository\n")
    helper.add_and_commit("Initial commit", ["README.md"])

    yield repo_path


@pytest.fixture
def git_helper(git_repo: Path) -> GitRepoHelper:
    """Create a git repository helper."""
    return GitRepoHelper(git_repo)


class FakeRepository:
    """In-memory stand-in for ``GitRepository`` used by resolver tests.

    ``refs`` maps names to commits, ``parents`` maps commits to parent lists.
    """

    def __init__(self, refs: dict, parents: dict):
        self.refs = dict(refs)
        self.parents = dict(parents)
        self.walked: List[str] = []

    def resolve(self, name: str) -> Optional[str]:
        if name in self.refs:
            return self.refs[name]
        if name in self.parents:
            return name
        return None

    def head(self) -> str:
        return self.refs["HEAD"]

    def _ancestors(self, commit: str) -> List[str]:
        order, stack, seen = [], [commit], set()
        while stack:
            current = stack.pop(0)
            if current in seen:
                continue
            seen.add(current)
            order.append(current)
            stack.extend(self.parents[current])
        return order

    def merge_base(self, a: str, b: str) -> Optional[str]:
        b_ancestors = set(self._ancestors(b))
        for commit in self._ancestors(a):
            if commit in b_ancestors:
                return commit
        return None

    def ancestry_walk(self, start: str):
        for commit in self._ancestors(start):
            self.walked.append(commit)
            yield commit, len(self.parents[commit])

    def tree_of(self, commit: str) -> str:
        return f"tree-{commit}"


@pytest.fixture
def linear_history() -> FakeRepository:
    """root <- a <- b (main) <- c <- d (feature, HEAD)."""
    parents = {"root": [], "a": ["root"], "b": ["a"], "c": ["b"], "d": ["c"]}
    refs = {"HEAD": "d", "main": "b", "feature": "d"}
    return FakeRepository(refs, parents)


def make_line(
    origin: LineOrigin,
    content: bytes,
    old_lineno: Optional[int] = None,
    new_lineno: Optional[int] = None,
    old_path: Optional[str] = "file.txt",
    new_path: Optional[str] = "file.txt",
    is_binary: bool = False,
) -> RawDiffLine:
    """Build a raw diff line event for unit tests."""
    delta = FileDelta(old_path=old_path, new_path=new_path, is_binary=is_binary)
    return RawDiffLine(delta, origin, content, old_lineno, new_lineno)
