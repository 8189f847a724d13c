"""Poster title resolution.

Maps a free-form movie title to one poster path out of a candidate list.
Strategies run in a fixed priority order, from exact path-boundary matches
down to single-word substring matches, and the first one that returns a
path wins. Every match carries the name of the rule that produced it.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

import structlog

from .normalize import file_name, normalize, strip_non_alnum_whitespace

logger = structlog.get_logger(__name__)

DEFAULT_DIRECTORY_MARKER = "Movie Posters"

ROMAN_NUMERALS = "i|ii|iii|iv|v|vi|vii|viii|ix|x"

# "<base><spaces and/or colon><digits or roman numeral>" at the end of a title
SEQUEL_TITLE_PATTERN = re.compile(
    rf"^(?P<base>.+?)[\s:]+(?P<number>\d+|{ROMAN_NUMERALS})$", re.IGNORECASE
)

# A sequel marker anywhere inside a poster file name
SEQUEL_INDICATOR_PATTERN = re.compile(
    rf"[\s:](?:\d+|{ROMAN_NUMERALS})\b", re.IGNORECASE
)

WORD_SPLIT_PATTERN = re.compile(r"[\s\-:_.,]+")
MIN_WORD_LENGTH = 3


class MatchStatus(str, Enum):
    """Outcome of a resolution."""
    MATCHED = "matched"
    NO_MATCH = "no_match"
    EMPTY_TITLE = "empty_title"


@dataclass(frozen=True)
class MatchResult:
    """Result of resolving one title against a candidate set."""
    status: MatchStatus
    path: Optional[str] = None
    rule: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.status is MatchStatus.MATCHED


def Matched(path: str, rule: str) -> MatchResult:
    return MatchResult(MatchStatus.MATCHED, path=path, rule=rule)


def NoMatch() -> MatchResult:
    return MatchResult(MatchStatus.NO_MATCH)


def EmptyTitle() -> MatchResult:
    return MatchResult(MatchStatus.EMPTY_TITLE)


@dataclass
class MatchTrace:
    """Every strategy attempted for a title, in order, plus the final result."""
    title: str
    result: MatchResult
    attempts: List[Tuple[str, Optional[str]]] = field(default_factory=list)


def hash_variants(title: str) -> Tuple[str, str]:
    """Return ``(title_with_hash, title_without_hash)``."""
    if title.startswith("#"):
        return title, title[1:]
    return f"#{title}", title


def split_sequel(title: str) -> Optional[Tuple[str, str]]:
    """Return ``(base, number)`` when the title ends in a sequel marker."""
    match = SEQUEL_TITLE_PATTERN.match(title)
    if not match:
        return None
    return match.group("base").strip(), match.group("number")


def cleaned_title(title: str) -> str:
    """Title with punctuation removed, the key for the late fallback rules."""
    return strip_non_alnum_whitespace(title).strip()


class PosterTitleResolver:
    """Resolve movie titles to poster paths.

    Stateless apart from the directory marker, so a single instance can be
    shared between threads.
    """

    def __init__(self, directory_marker: str = DEFAULT_DIRECTORY_MARKER):
        self.directory_marker = directory_marker.lower()
        self.strategies: List[Tuple[str, Callable[[str, Sequence[str]], Optional[str]]]] = [
            ("apostrophe", self.match_apostrophe),
            ("exact", self.match_exact),
            ("hash_variant", self.match_hash_variant),
            ("sequel", self.match_sequel),
            ("non_sequel", self.match_non_sequel),
            ("cleaned", self.match_cleaned),
            ("substring", self.match_substring),
            ("word", self.match_word),
        ]

    def is_boundary_match(self, candidate: str, term: str) -> bool:
        """Whether ``term`` is a whole path segment or file stem of ``candidate``."""
        if not term:
            return False
        path = candidate.lower()
        term = term.lower()
        name = file_name(path)
        return (
            f"/{term}." in path
            or f"/{term}/" in path
            or name == term
            or name.startswith(f"{term}.")
            or f"{self.directory_marker}/{term}." in path
        )

    def _first_boundary_match(self, candidates: Sequence[str], *terms: str) -> Optional[str]:
        for candidate in candidates:
            if any(self.is_boundary_match(candidate, term) for term in terms):
                return candidate
        return None

    @staticmethod
    def _first_containing(candidates: Sequence[str], *terms: str) -> Optional[str]:
        needles = [term.lower() for term in terms if term]
        for candidate in candidates:
            path = candidate.lower()
            if any(needle in path for needle in needles):
                return candidate
        return None

    def match_apostrophe(self, title: str, candidates: Sequence[str]) -> Optional[str]:
        """Titles such as ``'79``: exact, then without the apostrophe, then loose."""
        if not title.startswith("'"):
            return None
        bare = title[1:]
        return (
            self._first_boundary_match(candidates, title)
            or self._first_boundary_match(candidates, bare)
            or self._first_containing(candidates, title, bare)
        )

    def match_exact(self, title: str, candidates: Sequence[str]) -> Optional[str]:
        return self._first_boundary_match(candidates, title)

    def match_hash_variant(self, title: str, candidates: Sequence[str]) -> Optional[str]:
        with_hash, without_hash = hash_variants(title)
        return self._first_boundary_match(candidates, without_hash, with_hash)

    def match_sequel(self, title: str, candidates: Sequence[str]) -> Optional[str]:
        """Numbered titles: the full title first, then ``base N`` inside a file name."""
        parts = split_sequel(title)
        if parts is None:
            return None

        exact = self.match_exact(title, candidates) or self.match_hash_variant(title, candidates)
        if exact:
            return exact

        base, number = parts
        spaced = f"{base} {number}".lower()
        joined = f"{base}{number}".lower()
        for candidate in candidates:
            name = file_name(candidate).lower()
            if spaced in name or joined in name:
                return candidate
        return None

    def match_non_sequel(self, title: str, candidates: Sequence[str]) -> Optional[str]:
        """Plain titles must not land on a numbered poster of the same name."""
        if split_sequel(title) is not None:
            return None

        lowered = title.lower()
        for candidate in candidates:
            name = file_name(candidate).lower()
            if name == lowered or name.startswith(f"{lowered}."):
                return candidate
            if lowered in name and not SEQUEL_INDICATOR_PATTERN.search(name):
                return candidate
        return None

    def match_cleaned(self, title: str, candidates: Sequence[str]) -> Optional[str]:
        return self._first_boundary_match(candidates, cleaned_title(title))

    def match_substring(self, title: str, candidates: Sequence[str]) -> Optional[str]:
        return self._first_containing(candidates, title)

    def match_word(self, title: str, candidates: Sequence[str]) -> Optional[str]:
        """Longest words of the cleaned title first, any candidate containing one."""
        words = [w for w in WORD_SPLIT_PATTERN.split(cleaned_title(title)) if len(w) >= MIN_WORD_LENGTH]
        words.sort(key=len, reverse=True)
        for word in words:
            candidate = self._first_containing(candidates, word)
            if candidate:
                return candidate
        return None

    @staticmethod
    def _usable(candidates: Sequence[str]) -> List[str]:
        usable = []
        for index, candidate in enumerate(candidates):
            if isinstance(candidate, str):
                usable.append(candidate)
            else:
                logger.debug("Skipping malformed poster candidate", index=index,
                             candidate_type=type(candidate).__name__)
        return usable

    def explain(self, title: Optional[str], candidates: Sequence[str]) -> MatchTrace:
        """Run the strategy chain and record every attempt."""
        title = normalize(title)
        if not title:
            return MatchTrace(title=title, result=EmptyTitle())

        usable = self._usable(candidates or [])
        trace = MatchTrace(title=title, result=NoMatch())
        if not usable:
            return trace

        for rule, strategy in self.strategies:
            path = strategy(title, usable)
            trace.attempts.append((rule, path))
            if path is not None:
                logger.debug("Poster matched", title=title, rule=rule, path=path)
                trace.result = Matched(path, rule)
                return trace

        logger.debug("No poster matched", title=title, candidates=len(usable))
        return trace

    def resolve(self, title: Optional[str], candidates: Sequence[str]) -> MatchResult:
        """Best poster path for ``title``, ``NoMatch`` or ``EmptyTitle``."""
        return self.explain(title, candidates).result


default_resolver = PosterTitleResolver()


def resolve(title: Optional[str], candidates: Sequence[str]) -> MatchResult:
    """Resolve with the default poster directory marker."""
    return default_resolver.resolve(title, candidates)
