# =============================================================================
# core/services/origin_matcher.py - Allowed Origin Matching
# =============================================================================
# Compiles origin patterns into anchored regular expressions once, at startup.
#
# Pattern forms:
#   "*"                          -> any origin, including a missing Origin header
#   "https://app.example.com"    -> exact match
#   "https://*.example.com"      -> "*" matches any run of characters
#
# Everything except "*" is matched literally ("." is not a regex wildcard).
#
# Usage:
#   matcher = OriginMatcher.compile(settings.allowed_origins_list)
#   matcher.is_allowed("https://app.example.com")  # True / False
# =============================================================================

import logging
import re
from collections.abc import Iterable

logger = logging.getLogger(__name__)

WILDCARD = "*"


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """
    Compile one origin pattern into a full-match regex.

    Never raises: literal segments are escaped before the wildcards are
    expanded, so any input string yields a valid expression.
    """
    if pattern == WILDCARD:
        return re.compile(r".*", re.DOTALL)
    segments = (re.escape(segment) for segment in pattern.split(WILDCARD))
    return re.compile(".*".join(segments), re.DOTALL)


class OriginMatcher:
    """
    Immutable set of compiled origin patterns.

    Safe to share across concurrent requests: nothing is mutated after
    compile().
    """

    __slots__ = ("_patterns", "_regexes", "_allow_missing")

    def __init__(self, patterns: tuple[str, ...], regexes: tuple[re.Pattern[str], ...]):
        self._patterns = patterns
        self._regexes = regexes
        self._allow_missing = WILDCARD in patterns

    @classmethod
    def compile(cls, patterns: Iterable[str]) -> "OriginMatcher":
        """
        Build a matcher from configured patterns.

        Whitespace around patterns is ignored and empty entries are dropped.
        An empty list falls back to ["*"] (allow all).
        """
        cleaned = tuple(p.strip() for p in patterns if p and p.strip())
        if not cleaned:
            cleaned = (WILDCARD,)
        regexes = tuple(compile_pattern(p) for p in cleaned)
        logger.debug(f"Compiled {len(regexes)} origin pattern(s): {list(cleaned)}")
        return cls(cleaned, regexes)

    @property
    def patterns(self) -> tuple[str, ...]:
        return self._patterns

    @property
    def allows_any(self) -> bool:
        return self._allow_missing

    def is_allowed(self, origin: str | None) -> bool:
        """
        Check an Origin header value against the compiled patterns.

        A missing or empty Origin is only allowed by a bare "*" pattern.
        """
        if not origin:
            return self._allow_missing
        return any(regex.fullmatch(origin) for regex in self._regexes)

    def __repr__(self) -> str:
        return f"OriginMatcher(patterns={list(self._patterns)!r})"
