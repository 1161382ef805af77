"""Choose the commit a search diffs against."""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .errors import (
    ConflictingOptionsError,
    ReferenceNotFoundError,
    RootBranchNotFoundError,
    SameRefError,
)
from .settings import DEFAULT_ROOT_BRANCHES
from .vcs import CommitId, GitRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BaseCommit:
    """The resolved old side of the diff."""

    commit: CommitId
    tree: str
    # One of "base-ref", "merge-base", "root-commit"
    strategy: str


class ReferenceResolver:
    """Resolves names to commits and picks the base commit.

    Selection order:

    1. an explicit base reference is used as-is;
    2. otherwise HEAD is compared with the parent commit (the named parent
       branch, or the root branch when none is named). If they differ, the
       base is their merge-base;
    3. if HEAD is the root branch tip, the base is the first commit of history,
       so everything on the branch counts as new;
    4. if HEAD is the tip of some other named parent, there is nothing to
       compare and ``SameRefError`` is raised.
    """

    def __init__(self, repo: GitRepository, root_branches: Sequence[str] = DEFAULT_ROOT_BRANCHES):
        self.repo = repo
        self.root_branches = tuple(root_branches)

    def resolve_base(
        self,
        base_ref: Optional[str] = None,
        parent_branch: Optional[str] = None,
    ) -> BaseCommit:
        """Return the base commit for this repository state."""
        if base_ref and parent_branch:
            raise ConflictingOptionsError(parent_branch, base_ref)

        if base_ref:
            commit = self._resolve_required(base_ref)
            logger.info("Using explicit base", extra={"ref": base_ref, "commit": commit})
            return self._with_tree(commit, "base-ref")

        head = self.repo.head()
        root_name, root_commit = self.root_branch()

        if parent_branch:
            parent_name, parent_commit = parent_branch, self._resolve_required(parent_branch)
        else:
            parent_name, parent_commit = root_name, root_commit

        logger.debug(
            "Resolved references",
            extra={"head": head, "parent": parent_name, "parent_commit": parent_commit},
        )

        if head != parent_commit:
            base = self.repo.merge_base(head, parent_commit)
            if base is None:
                raise ReferenceNotFoundError(
                    f"merge-base of HEAD and {parent_name}", "histories are unrelated"
                )
            logger.info("Using merge-base", extra={"parent": parent_name, "commit": base})
            return self._with_tree(base, "merge-base")

        if parent_commit == root_commit:
            base = self.root_commit(head)
            logger.info("HEAD is the root branch tip, using first commit", extra={"commit": base})
            return self._with_tree(base, "root-commit")

        raise SameRefError(parent_name, head)

    def root_branch(self) -> Tuple[str, CommitId]:
        """Return the first of the root branch names that exists, with its commit."""
        for name in self.root_branches:
            commit = self.repo.resolve(name)
            if commit is not None:
                return name, commit
        raise RootBranchNotFoundError(list(self.root_branches))

    def root_commit(self, start: CommitId) -> CommitId:
        """Walk back from ``start`` to a commit with no parents."""
        for commit, parent_count in self.repo.ancestry_walk(start):
            if parent_count == 0:
                return commit
        raise ReferenceNotFoundError(f"root commit of {start}", "no parentless ancestor")

    def _resolve_required(self, name: str) -> CommitId:
        commit = self.repo.resolve(name)
        if commit is None:
            raise ReferenceNotFoundError(name)
        return commit

    def _with_tree(self, commit: CommitId, strategy: str) -> BaseCommit:
        return BaseCommit(commit=commit, tree=self.repo.tree_of(commit), strategy=strategy)
