"""Fuzzy subsequence matching and ranking of history entries.

A query matches an entry when all of its characters appear in the entry's
text in order. Matches are ranked, in strict priority, by:

1. contiguous substring match over scattered subsequence match
2. earlier start of the match
3. tighter match (smaller first-to-last span)
4. recency of the entry (sort tie-break, not part of the score)

Priorities 1-3 are packed into one integer so that a lower priority can
never outweigh a higher one; see ``pack_score``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from hsearch.history import HistoryEntry

Span = tuple[int, int]

# Start offsets and span widths are clamped to 21 bits each
FIELD_BITS = 21
FIELD_LIMIT = (1 << FIELD_BITS) - 1
CONTIGUOUS_BONUS = 1 << (2 * FIELD_BITS)


@dataclass(frozen=True)
class MatchResult:
    """A ranked entry with the character runs that satisfied the query."""

    entry: HistoryEntry
    score: int
    spans: tuple[Span, ...] = ()


def fold_case(text: str) -> str:
    """Lowercase ``text`` without changing its length.

    Characters whose lowercase form is longer than one character are kept
    as-is so positions in the folded text map onto the original.
    """
    if text.isascii():
        return text.lower()
    return "".join(low if len(low := ch.lower()) == 1 else ch for ch in text)


def pack_score(contiguous: bool, start: int, width: int) -> int:
    """Combine the ranking criteria into one integer, higher is better."""
    start_part = FIELD_LIMIT - min(start, FIELD_LIMIT)
    width_part = FIELD_LIMIT - min(width, FIELD_LIMIT)
    return (CONTIGUOUS_BONUS if contiguous else 0) + (start_part << FIELD_BITS) + width_part


def positions_to_spans(positions: Sequence[int]) -> tuple[Span, ...]:
    """Collapse sorted matched positions into (start, length) runs."""
    spans: list[Span] = []
    run_start = run_end = -2
    for pos in positions:
        if pos == run_end + 1:
            run_end = pos
            continue
        if run_start >= 0:
            spans.append((run_start, run_end - run_start + 1))
        run_start = run_end = pos
    if run_start >= 0:
        spans.append((run_start, run_end - run_start + 1))
    return tuple(spans)


def score_text(haystack: str, needle: str) -> tuple[int, tuple[Span, ...]] | None:
    """Score one (already case-folded) text against a non-empty needle.

    Returns ``(score, spans)`` or None when the needle is not a subsequence.
    A scattered match uses the greedy leftmost alignment: it has the
    earliest possible start and, for that start, the smallest span.
    """
    start = haystack.find(needle)
    if start >= 0:
        return pack_score(True, start, len(needle)), ((start, len(needle)),)

    positions: list[int] = []
    pos = 0
    for ch in needle:
        pos = haystack.find(ch, pos)
        if pos < 0:
            return None
        positions.append(pos)
        pos += 1

    first, last = positions[0], positions[-1]
    return pack_score(False, first, last - first + 1), positions_to_spans(positions)


def _sort_key(result: MatchResult) -> tuple[int, int]:
    return result.score, result.entry.index


class Matcher:
    """Ranks a fixed set of entries against successive queries.

    Case folding is done once per entry. When a query extends the previous
    one, only the previous hits can still match, so only they are rescanned;
    the result is the same as a full rescan.
    """

    def __init__(self, entries: Iterable[HistoryEntry], case_sensitive: bool = False) -> None:
        self.case_sensitive = case_sensitive
        self.entries: list[HistoryEntry] = sorted(entries, key=lambda e: e.index, reverse=True)
        if case_sensitive:
            self._haystacks = [e.text for e in self.entries]
        else:
            self._haystacks = [fold_case(e.text) for e in self.entries]
        self._last_needle: str | None = None
        self._last_hits: list[int] = []
        self._unfiltered: list[MatchResult] | None = None

    def __len__(self) -> int:
        return len(self.entries)

    def _normalize(self, query: str) -> str:
        return query if self.case_sensitive else fold_case(query)

    def rank(self, query: str) -> list[MatchResult]:
        """Return matching entries, best first."""
        needle = self._normalize(query)
        if not needle:
            self._last_needle = None
            if self._unfiltered is None:
                self._unfiltered = [MatchResult(entry, 0) for entry in self.entries]
            return list(self._unfiltered)

        if self._last_needle is not None and needle.startswith(self._last_needle):
            candidates: Iterable[int] = self._last_hits
        else:
            candidates = range(len(self.entries))

        haystacks = self._haystacks
        entries = self.entries
        hits: list[int] = []
        results: list[MatchResult] = []
        for i in candidates:
            scored = score_text(haystacks[i], needle)
            if scored is None:
                continue
            hits.append(i)
            results.append(MatchResult(entries[i], *scored))

        self._last_needle = needle
        self._last_hits = hits
        # Candidates are in recency order and the sort is stable, so equal
        # (score, index) pairs keep a deterministic order too
        results.sort(key=_sort_key, reverse=True)
        return results


def rank(
    entries: Iterable[HistoryEntry],
    query: str,
    case_sensitive: bool = False,
) -> list[MatchResult]:
    """Rank ``entries`` against ``query`` with a full rescan."""
    return Matcher(entries, case_sensitive=case_sensitive).rank(query)
