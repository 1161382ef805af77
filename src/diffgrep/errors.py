"""Error definitions and handling for Diff Grep."""

from typing import Any, Dict, List, Optional


class DiffGrepError(Exception):
    """Base exception for Diff Grep errors."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        """Initialize error with code, message, and optional details."""
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}


class InvariantViolation(AssertionError):
    """A guarantee of the diff producer was broken. This is a bug, not a user error."""


class ConflictingOptionsError(DiffGrepError):
    """Both a parent branch and an explicit base reference were given."""

    def __init__(self, parent_branch: str, base_ref: str):
        super().__init__(
            code="CONFLICTING_OPTIONS",
            message="--parent and --base are mutually exclusive "
            f"(got parent {parent_branch!r} and base {base_ref!r})",
            details={"parent_branch": parent_branch, "base_ref": base_ref},
        )


class ReferenceNotFoundError(DiffGrepError):
    """A symbolic name or commit could not be resolved."""

    def __init__(self, reference: str, reason: Optional[str] = None):
        message = f"Reference not found: {reference}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(
            code="REFERENCE_NOT_FOUND",
            message=message,
            details={"reference": reference},
        )


class RootBranchNotFoundError(DiffGrepError):
    """None of the conventional root branch names exist."""

    def __init__(self, candidates: List[str]):
        super().__init__(
            code="ROOT_BRANCH_NOT_FOUND",
            message=f"No root branch found (tried: {', '.join(candidates)})",
            details={"candidates": list(candidates)},
        )


class SameRefError(DiffGrepError):
    """HEAD is the tip of the chosen parent branch, which is not the root branch."""

    def __init__(self, parent_branch: str, commit: str):
        super().__init__(
            code="SAME_REF",
            message=f"HEAD is the same commit as parent branch {parent_branch!r} ({commit}); "
            "nothing to compare against",
            details={"parent_branch": parent_branch, "commit": commit},
        )


class DiffComputationError(DiffGrepError):
    """git failed to produce a diff."""

    def __init__(self, reason: str):
        super().__init__(
            code="DIFF_FAILED",
            message=f"Failed to compute diff: {reason}",
            details={"reason": reason},
        )


class EncodingError(DiffGrepError):
    """A diff line is not valid UTF-8."""

    def __init__(self, path: Optional[str], lineno: Optional[int], reason: str):
        location = f"{path}:{lineno}" if path else "<unknown>"
        super().__init__(
            code="ENCODING_ERROR",
            message=f"Diff line at {location} is not valid UTF-8: {reason}",
            details={"path": path, "line_number": lineno, "reason": reason},
        )


class InvalidPatternError(DiffGrepError):
    """The search pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str):
        super().__init__(
            code="INVALID_PATTERN",
            message=f"Invalid search pattern {pattern!r}: {reason}",
            details={"pattern": pattern, "reason": reason},
        )


class RepositoryNotFoundError(DiffGrepError):
    """The working directory is not inside a git repository."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            code="REPOSITORY_NOT_FOUND",
            message=f"Not a git repository: {path} ({reason})",
            details={"path": path, "reason": reason},
        )


class GitTimeoutError(DiffGrepError):
    """A git command did not finish in time."""

    def __init__(self, operation: str, timeout_seconds: int):
        super().__init__(
            code="GIT_TIMEOUT",
            message=f"Timeout during {operation} after {timeout_seconds}s",
            details={"operation": operation, "timeout_seconds": timeout_seconds},
        )
