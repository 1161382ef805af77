"""Classification of raw patch lines into added and removed records."""

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from .errors import EncodingError, InvariantViolation
from .vcs import LineOrigin, RawDiffLine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiffLineRecord:
    """An added or removed line, with surrounding whitespace trimmed."""

    added: bool
    content: str
    line_number: int
    path: str


def classify_line(line: RawDiffLine) -> Optional[DiffLineRecord]:
    """Return a record for an added or removed line, None for anything else.

    Context lines, headers, lines of binary files and lines whose file has no
    path on the relevant side are skipped.
    """
    if line.origin is LineOrigin.ADDITION:
        added = True
    elif line.origin is LineOrigin.DELETION:
        added = False
    else:
        return None

    delta = line.delta
    if delta.is_binary:
        return None
    path = delta.new_path if added else delta.old_path

    line_number = line.new_lineno if line.new_lineno is not None else line.old_lineno

    try:
        content = line.content.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        raise EncodingError(path, line_number, str(e)) from e

    if line_number is None:
        raise InvariantViolation(
            f"{line.origin.name.lower()} line in {path or '<unknown>'} has no line number"
        )

    if path is None:
        return None

    return DiffLineRecord(added=added, content=content, line_number=line_number, path=path)


def classify(lines: Iterable[RawDiffLine]) -> Iterator[DiffLineRecord]:
    """Yield records for the added and removed lines of a diff stream.

    The first error stops iteration; the producer is not read any further.
    """
    seen = 0
    for line in lines:
        record = classify_line(line)
        if record is not None:
            seen += 1
            yield record
    logger.debug("Classified diff lines", extra={"records": seen})
