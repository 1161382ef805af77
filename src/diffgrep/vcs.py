"""Version control system operations for Diff Grep.

Everything here talks to the ``git`` executable. Commits are plain SHA strings;
diffs are streamed out of ``git diff`` and parsed into one ``RawDiffLine`` event
per patch line, so callers can stop reading at any point.
"""

import logging
import os
import re
import subprocess
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from .config import DiffOptions
from .errors import (
    DiffComputationError,
    GitTimeoutError,
    ReferenceNotFoundError,
    RepositoryNotFoundError,
)

logger = logging.getLogger(__name__)

CommitId = str

_NULL_PATH = "/dev/null"


class LineOrigin(Enum):
    """Where a patch line comes from."""

    ADDITION = "+"
    DELETION = "-"
    CONTEXT = " "
    OTHER = "other"


@dataclass
class FileDelta:
    """The file pair a run of patch lines belongs to."""

    old_path: Optional[str]
    new_path: Optional[str]
    is_binary: bool = False


@dataclass(frozen=True)
class RawDiffLine:
    """A single line of patch output."""

    delta: FileDelta
    origin: LineOrigin
    content: bytes
    old_lineno: Optional[int] = None
    new_lineno: Optional[int] = None


class UnifiedDiffParser:
    """Turns ``git diff`` patch output into ``RawDiffLine`` events."""

    def __init__(self):
        self.hunk_header_pattern = re.compile(
            rb"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@"
        )

    def parse(self, lines: Iterable[bytes]) -> Iterator[RawDiffLine]:
        """Yield events for every line of ``lines``, lazily."""
        delta: Optional[FileDelta] = None
        in_hunk = False
        old_cursor = new_cursor = 0

        for raw in lines:
            line = raw[:-1] if raw.endswith(b"\n") else raw

            if line.startswith(b"diff --git "):
                delta = FileDelta(*_paths_from_git_header(line[len(b"diff --git "):]))
                in_hunk = False
                yield RawDiffLine(delta, LineOrigin.OTHER, line)
                continue

            if delta is None:
                # Anything before the first file header is not part of a patch
                continue

            if in_hunk and line[:1] in (b"+", b"-", b" "):
                origin = LineOrigin(line[:1].decode("ascii"))
                old_lineno = new_lineno = None
                if origin is LineOrigin.ADDITION:
                    new_lineno = new_cursor
                    new_cursor += 1
                elif origin is LineOrigin.DELETION:
                    old_lineno = old_cursor
                    old_cursor += 1
                else:
                    old_lineno, new_lineno = old_cursor, new_cursor
                    old_cursor += 1
                    new_cursor += 1
                yield RawDiffLine(delta, origin, line[1:], old_lineno, new_lineno)
                continue

            header_match = self.hunk_header_pattern.match(line)
            if header_match:
                in_hunk = True
                old_cursor = int(header_match.group(1))
                new_cursor = int(header_match.group(3))
            elif not in_hunk:
                self._apply_file_header(delta, line)

            yield RawDiffLine(delta, LineOrigin.OTHER, line)

    def _apply_file_header(self, delta: FileDelta, line: bytes) -> None:
        """Update ``delta`` from an extended header line."""
        if line.startswith(b"new file mode"):
            delta.old_path = None
        elif line.startswith(b"deleted file mode"):
            delta.new_path = None
        elif line.startswith(b"--- "):
            delta.old_path = _parse_path(line[4:])
        elif line.startswith(b"+++ "):
            delta.new_path = _parse_path(line[4:])
        elif line.startswith(b"Binary files ") and line.endswith(b" differ"):
            delta.is_binary = True


def _unquote(raw: bytes) -> str:
    """Decode a path, undoing git's C-style quoting if present."""
    if len(raw) >= 2 and raw.startswith(b'"') and raw.endswith(b'"'):
        # Escapes are octal UTF-8 bytes; latin-1 round-trips them unchanged
        return raw[1:-1].decode("unicode_escape").encode("latin-1").decode("utf-8", "replace")
    return raw.decode("utf-8", "replace")


def _parse_path(raw: bytes) -> Optional[str]:
    # git appends a tab to names containing spaces
    path = _unquote(raw.rstrip(b"\t"))
    if path == _NULL_PATH:
        return None
    return path


def _paths_from_git_header(rest: bytes) -> Tuple[Optional[str], Optional[str]]:
    """Split ``<old> <new>`` from a ``diff --git`` line.

    Renames are disabled, so both halves name the same file. The split is only
    a fallback for deltas without ``---``/``+++`` lines (binary files, mode-only
    changes).
    """
    if rest.startswith(b'"'):
        end = rest.find(b'" ', 1)
        if end != -1:
            return _unquote(rest[: end + 1]), _unquote(rest[end + 2:])
    middle = (len(rest) - 1) // 2
    if len(rest) % 2 == 1 and rest[middle:middle + 1] == b" " and rest[:middle] == rest[middle + 1:]:
        path = _unquote(rest[:middle])
        return path, path
    return None, None


class GitRepository:
    """Git repository operations."""

    def __init__(self, path: str = "."):
        """Initialize with the path to a directory inside the work tree."""
        self.path = Path(path)
        self.toplevel: Optional[Path] = None

    def __enter__(self) -> "GitRepository":
        """Context manager entry."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.toplevel = None

    @staticmethod
    def _git_env() -> dict:
        """Get Git environment variables for deterministic output."""
        env = os.environ.copy()
        env.update(
            {
                "LC_ALL": "C",
                "GIT_TERMINAL_PROMPT": "0",
                "GIT_PAGER": "cat",
            }
        )
        return env

    def _git_command(self, args: List[str]) -> List[str]:
        # Enforce deterministic git behavior across platforms
        return [
            "git",
            "-c",
            "color.ui=false",
            "-c",
            "core.quotePath=false",
        ] + args

    def _run_git(
        self,
        args: List[str],
        timeout: int = 60,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        """Run git command with proper environment and error handling."""
        cmd = self._git_command(args)
        logger.debug("Running git", extra={"cmd": cmd})
        try:
            return subprocess.run(
                cmd,
                cwd=self.toplevel or self.path,
                env=self._git_env(),
                timeout=timeout,
                check=check,
                capture_output=True,
                text=True,
            )
        except subprocess.TimeoutExpired as e:
            raise GitTimeoutError(f"git {args[0]}", timeout) from e
        except FileNotFoundError as e:
            raise RepositoryNotFoundError(str(self.path), "git executable not found") from e

    def _stream_git(self, args: List[str], ok_codes: Tuple[int, ...] = (0,)) -> Iterator[bytes]:
        """Yield stdout lines of a git command as they are produced.

        Closing the generator early terminates the process. An exit status not in
        ``ok_codes`` raises ``subprocess.CalledProcessError`` once output is
        exhausted.
        """
        cmd = self._git_command(args)
        logger.debug("Streaming git", extra={"cmd": cmd})
        # stderr goes to a file so a chatty git cannot block on a full pipe
        with tempfile.TemporaryFile() as stderr_file:
            try:
                process = subprocess.Popen(
                    cmd,
                    cwd=self.toplevel or self.path,
                    env=self._git_env(),
                    stdout=subprocess.PIPE,
                    stderr=stderr_file,
                )
            except FileNotFoundError as e:
                raise RepositoryNotFoundError(str(self.path), "git executable not found") from e

            try:
                for line in process.stdout:
                    yield line
                returncode = process.wait()
            finally:
                if process.poll() is None:
                    logger.debug("Stopping git before end of output", extra={"cmd": cmd})
                    process.kill()
                    process.wait()
                process.stdout.close()

            if returncode not in ok_codes:
                stderr_file.seek(0)
                stderr = stderr_file.read().decode("utf-8", "replace").strip()
                raise subprocess.CalledProcessError(returncode, cmd, stderr=stderr)

    def open(self) -> Path:
        """Locate the top of the work tree containing ``path``."""
        if not self.path.is_dir():
            raise RepositoryNotFoundError(str(self.path), "directory does not exist")

        result = self._run_git(["rev-parse", "--show-toplevel"], check=False)
        if result.returncode != 0:
            raise RepositoryNotFoundError(str(self.path), result.stderr.strip() or "not a work tree")

        self.toplevel = Path(result.stdout.strip())
        logger.debug("Opened repository", extra={"toplevel": str(self.toplevel)})
        return self.toplevel

    def resolve(self, name: str) -> Optional[CommitId]:
        """Resolve a ref name or revision to a commit SHA, or None."""
        result = self._run_git(
            ["rev-parse", "--verify", "--quiet", f"{name}^{{commit}}"],
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def head(self) -> CommitId:
        """Return the commit HEAD points at."""
        commit = self.resolve("HEAD")
        if commit is None:
            raise ReferenceNotFoundError("HEAD", "no commits yet?")
        return commit

    def merge_base(self, a: CommitId, b: CommitId) -> Optional[CommitId]:
        """Return the best common ancestor of two commits, or None."""
        result = self._run_git(["merge-base", a, b], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def ancestry_walk(self, start: CommitId) -> Iterator[Tuple[CommitId, int]]:
        """Yield ``(commit, parent_count)`` for ``start`` and all its ancestors."""
        try:
            for line in self._stream_git(["rev-list", "--parents", start]):
                parts = line.decode("ascii").split()
                if parts:
                    yield parts[0], len(parts) - 1
        except subprocess.CalledProcessError as e:
            raise ReferenceNotFoundError(start, e.stderr or "history walk failed") from e

    def tree_of(self, commit: CommitId) -> str:
        """Return the tree object id of a commit."""
        result = self._run_git(["rev-parse", "--verify", "--quiet", f"{commit}^{{tree}}"], check=False)
        tree = result.stdout.strip()
        if result.returncode != 0 or not tree:
            raise ReferenceNotFoundError(commit, "commit has no tree")
        return tree

    def _diff_args(self, options: DiffOptions) -> List[str]:
        args = [
            "diff",
            f"--unified={options.context_lines}",
            "--no-color",
            "--no-ext-diff",
            "--no-renames",
            "--no-prefix",
        ]
        if options.ignore_whitespace:
            args.append("--ignore-all-space")
        if options.ignore_filemode:
            args[0:0] = ["-c", "core.fileMode=false"]
        # include_unmodified has no effect on patch text: unmodified files have no lines
        return args

    def untracked_files(self, options: DiffOptions) -> List[str]:
        """List untracked, non-ignored files relative to the top of the work tree."""
        args = ["ls-files", "--others", "--exclude-standard", "-z"]
        if not options.recurse_untracked_dirs:
            args.append("--directory")
        result = self._run_git(args, check=False)
        if result.returncode != 0:
            raise DiffComputationError(result.stderr.strip() or "could not list untracked files")
        # Directory entries only appear without recursion and carry no lines
        return sorted(p for p in result.stdout.split("\0") if p and not p.endswith("/"))

    def diff(
        self,
        old_tree: str,
        new_tree: Optional[str],
        options: Optional[DiffOptions] = None,
    ) -> Iterator[RawDiffLine]:
        """Stream patch lines between ``old_tree`` and ``new_tree``.

        With ``new_tree`` None the working tree is the new side, and untracked
        files are reported as added when ``options.include_untracked`` is set.
        """
        options = options or DiffOptions()
        parser = UnifiedDiffParser()
        args = self._diff_args(options) + [old_tree]
        if new_tree is not None:
            args.append(new_tree)
        args.append("--")

        logger.info(
            "Computing diff",
            extra={"old_tree": old_tree, "new_tree": new_tree or "<workdir>"},
        )
        try:
            yield from parser.parse(self._stream_git(args))

            if new_tree is None and options.include_untracked:
                for path in self.untracked_files(options):
                    # --no-index exits 1 when the files differ
                    no_index = self._diff_args(options) + ["--no-index", "--", _NULL_PATH, path]
                    yield from parser.parse(self._stream_git(no_index, ok_codes=(0, 1)))
        except subprocess.CalledProcessError as e:
            raise DiffComputationError(e.stderr or f"git exited with status {e.returncode}") from e
