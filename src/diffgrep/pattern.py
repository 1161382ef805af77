"""Regular expression filtering of diff records."""

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple

from .classify import DiffLineRecord
from .errors import InvalidPatternError


@dataclass(frozen=True)
class MatchedLine:
    """A record whose content matched.

    ``span`` is the half-open range of the first match, in character offsets
    into ``record.content`` (not byte offsets).
    """

    record: DiffLineRecord
    span: Tuple[int, int]

    @property
    def before(self) -> str:
        return self.record.content[: self.span[0]]

    @property
    def match(self) -> str:
        return self.record.content[self.span[0]: self.span[1]]

    @property
    def after(self) -> str:
        return self.record.content[self.span[1]:]


class PatternFilter:
    """Keeps records whose trimmed content matches a pattern."""

    def __init__(self, pattern: str, ignore_case: bool = False):
        flags = re.IGNORECASE if ignore_case else 0
        try:
            self.regex = re.compile(pattern, flags)
        except re.error as e:
            raise InvalidPatternError(pattern, str(e)) from e

    def match(self, record: DiffLineRecord) -> Optional[MatchedLine]:
        found = self.regex.search(record.content)
        if found is None:
            return None
        return MatchedLine(record=record, span=found.span())

    def filter(self, records: Iterable[DiffLineRecord]) -> Iterator[MatchedLine]:
        for record in records:
            matched = self.match(record)
            if matched is not None:
                yield matched
