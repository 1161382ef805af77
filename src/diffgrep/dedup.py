"""Suppression of added lines that only moved.

An added line is dropped when a removed line with the same trimmed content
exists. Each removed line cancels at most one added line, and added lines
consume removed ones in diff order, so with ``k`` removed and ``m`` added
copies of the same text the last ``max(m - k, 0)`` added copies survive.
"""

import logging
from typing import Dict, Iterable, List, Tuple

from .pattern import MatchedLine

logger = logging.getLogger(__name__)


class ContentMultiset:
    """Counts of line contents. Absent means zero; no entry ever holds zero."""

    def __init__(self):
        self._counts: Dict[str, int] = {}

    def add(self, content: str) -> None:
        self._counts[content] = self._counts.get(content, 0) + 1

    def consume(self, content: str) -> bool:
        """Remove one occurrence of ``content``; return whether there was one."""
        count = self._counts.get(content)
        if not count:
            return False
        if count == 1:
            del self._counts[content]
        else:
            self._counts[content] = count - 1
        return True

    def count(self, content: str) -> int:
        return self._counts.get(content, 0)

    def __len__(self) -> int:
        return sum(self._counts.values())


def partition(lines: Iterable[MatchedLine]) -> Tuple[List[MatchedLine], ContentMultiset]:
    """Split matches into ordered added lines and a multiset of removed contents."""
    added: List[MatchedLine] = []
    removed = ContentMultiset()
    for line in lines:
        if line.record.added:
            added.append(line)
        else:
            removed.add(line.record.content)
    return added, removed


def cancel_moved(added: Iterable[MatchedLine], removed: ContentMultiset) -> List[MatchedLine]:
    """Return the added lines not cancelled by a removed line, in order."""
    survivors = []
    for line in added:
        if not removed.consume(line.record.content):
            survivors.append(line)
    return survivors


def dedup(lines: Iterable[MatchedLine]) -> List[MatchedLine]:
    """Return the genuinely new matching lines of a diff."""
    added, removed = partition(lines)
    removed_total = len(removed)
    survivors = cancel_moved(added, removed)
    logger.info(
        "Suppressed moved lines",
        extra={
            "added": len(added),
            "removed": removed_total,
            "suppressed": len(added) - len(survivors),
        },
    )
    return survivors
