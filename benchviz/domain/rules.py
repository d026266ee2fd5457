"""Regex-matched classification rules.

A :class:`MatchRule` identifies a function, version or context from a
benchmark name. A :class:`FileRule` selects nested version/context rules from
the name of the file a benchmark was read from. Both carry patterns compiled
once, and are immutable after construction.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Pattern, Tuple

_SEPARATORS = re.compile(r"[_-]")
_WORD_START = re.compile(r"(^|\s)(\S)")


def titleize(value: str) -> str:
    """Build a display title from an identifier.

    Underscores and hyphens become spaces, then the first letter of every
    word is upper-cased. The rest of each word is left untouched.

    Examples
    --------
    >>> titleize("elements-match")
    'Elements Match'
    >>> titleize("nsPerOp")
    'NsPerOp'
    """
    spaced = _SEPARATORS.sub(" ", str(value))
    return _WORD_START.sub(lambda m: m.group(1) + m.group(2).upper(), spaced)


def compile_pattern(pattern: Optional[str]) -> Optional[Pattern[str]]:
    """Compile ``pattern``, or return None when it is empty.

    Raises
    ------
    re.error
        If the pattern is not a valid regular expression.
    """
    if not pattern:
        return None
    return re.compile(pattern)


@dataclass(frozen=True)
class MatchRule:
    """Function, version or context rule matched against benchmark names.

    Attributes
    ----------
    id: str
        Identifier, unique within its collection.
    title: str
        Display title.
    match_pattern: str
        Source of the positive pattern (empty when absent).
    not_match_pattern: str
        Source of the negative pattern (empty when absent).
    kind: str
        Collection the rule belongs to ("function", "version", "context").
    """

    id: str
    title: str = ""
    match_pattern: str = ""
    not_match_pattern: str = ""
    kind: str = "rule"
    positive: Optional[Pattern[str]] = field(default=None, repr=False, compare=False)
    negative: Optional[Pattern[str]] = field(default=None, repr=False, compare=False)

    @classmethod
    def build(
        cls,
        id: str,  # pylint: disable=redefined-builtin
        title: str = "",
        match_pattern: Optional[str] = None,
        not_match_pattern: Optional[str] = None,
        kind: str = "rule",
    ) -> "MatchRule":
        """Create a rule, compiling its patterns and defaulting its title."""
        return cls(
            id=id,
            title=title or titleize(id),
            match_pattern=match_pattern or "",
            not_match_pattern=not_match_pattern or "",
            kind=kind,
            positive=compile_pattern(match_pattern),
            negative=compile_pattern(not_match_pattern),
        )

    def match(self, name: str) -> Optional[str]:
        """Return the rule id when ``name`` satisfies the rule, else None.

        A rule without any pattern never fires. A positive pattern must be
        found in ``name``; a negative pattern must not be. A rule carrying only
        a negative pattern matches every name it does not exclude.
        """
        if self.positive is None and self.negative is None:
            return None
        if self.positive is not None and not self.positive.search(name):
            return None
        if self.negative is not None and self.negative.search(name):
            return None
        return self.id


@dataclass(frozen=True)
class FileRule:
    """File-name rule carrying nested version and context rules.

    The file pattern only selects the rule; the nested rules are then
    matched against the same file name to resolve an identifier.
    """

    id: str
    match_file_pattern: str = ""
    contexts: Tuple[MatchRule, ...] = ()
    versions: Tuple[MatchRule, ...] = ()
    file_pattern: Optional[Pattern[str]] = field(
        default=None, repr=False, compare=False
    )

    def match(self, filename: str) -> Optional[str]:
        """Return the file rule id when ``filename`` matches, else None."""
        if self.file_pattern is None:
            return None
        if not self.file_pattern.search(filename):
            return None
        return self.id

    def find_version(self, filename: str) -> Optional[str]:
        """First nested version rule matching ``filename``."""
        return first_match(self.versions, filename)

    def find_context(self, filename: str) -> Optional[str]:
        """First nested context rule matching ``filename``."""
        return first_match(self.contexts, filename)


def first_match(rules: Tuple[MatchRule, ...], name: str) -> Optional[str]:
    """Return the id of the first rule in declaration order matching ``name``."""
    for rule in rules:
        matched = rule.match(name)
        if matched is not None:
            return matched
    return None
