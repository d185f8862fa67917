"""
Article filtering by category and transclusion membership.

An article is kept when one of its [[Category:...]] tags contains one of the
category terms, or one of its {{...}} transclusions (citations excluded)
contains one of the transclusion terms. Terms are case-insensitive literal
substrings. With no terms at all, every article is kept.
"""
import logging
import re
from typing import Iterable, List, Pattern, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

# Dump payloads are scanned undecoded; only captured values are decoded.
_CATEGORY_RE = re.compile(rb'\[\[Category:([^\[\]\n]+)\]\]', re.IGNORECASE)
_TRANSCLUSION_RE = re.compile(rb'\{\{(?!cite)([^{}\n]+)\}\}', re.IGNORECASE)


def compile_terms(terms: Iterable[str]) -> Tuple[Pattern, ...]:
    """Turns user-supplied terms into case-insensitive substring patterns."""
    return tuple(re.compile(re.escape(term), re.IGNORECASE) for term in terms)


def _any_match(text: bytes, scanner: Pattern, patterns: Sequence[Pattern]) -> bool:
    for match in scanner.finditer(text):
        value = match.group(1).decode('utf-8', errors='replace')
        if any(pattern.search(value) for pattern in patterns):
            return True
    return False


def keep(
    text: Union[bytes, str],
    category_patterns: Sequence[Pattern],
    transclusion_patterns: Sequence[Pattern],
) -> bool:
    """
    Decides whether an article body should be kept.

    Categories are checked first, then transclusions (but not citations).
    Each check scans the whole text from the start and stops at the first
    matching tag.
    """
    if not category_patterns and not transclusion_patterns:
        return True

    if isinstance(text, str):
        text = text.encode('utf-8')

    if category_patterns and _any_match(text, _CATEGORY_RE, category_patterns):
        return True

    if transclusion_patterns and _any_match(text, _TRANSCLUSION_RE, transclusion_patterns):
        return True

    return False


class ArticleFilter:
    """
    Keep/drop predicate for article bodies.

    Patterns are compiled once and never change afterwards, so a single
    instance can be shared by any number of callers.
    """

    def __init__(self, categories: Iterable[str] = (), transclusions: Iterable[str] = ()):
        """
        Args:
            categories: Terms matched against [[Category:...]] values
            transclusions: Terms matched against {{...}} contents
        """
        self.categories = tuple(categories)
        self.transclusions = tuple(transclusions)
        self.category_patterns = compile_terms(self.categories)
        self.transclusion_patterns = compile_terms(self.transclusions)

    @property
    def passthrough(self) -> bool:
        """True when no filtering is applied."""
        return not self.categories and not self.transclusions

    def keep(self, text: Union[bytes, str]) -> bool:
        return keep(text, self.category_patterns, self.transclusion_patterns)

    def describe(self) -> List[str]:
        """Human-readable summary of the active filters, one line per filter."""
        if self.passthrough:
            return ["No filtering applied, all articles will be kept"]

        lines = []
        if self.categories:
            lines.append('Including categories: "%s"' % '", "'.join(self.categories))
        if self.transclusions:
            lines.append('Including transclusions: "%s"' % '", "'.join(self.transclusions))
        return lines

    def log_summary(self) -> None:
        for line in self.describe():
            logger.info(line)
