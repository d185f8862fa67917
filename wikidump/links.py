"""
Display-text resolution for wikitext links.
"""
import re

# Namespaced targets (File:, Category:, Image:, ...) always start uppercase
# and have no space after the colon.
_NAMESPACE_RE = re.compile(r'^[A-Z][A-Za-z0-9_]+:\S')

# Interlanguage links look like "fr:Article". "w:" is the pipe-trick dummy
# prefix and is not a language.
_LANGUAGE_RE = re.compile(r'^[a-z]+:\S')
_PIPE_TRICK_PREFIX = 'w:'


def resolve_link(body: str) -> str:
    """
    Returns the text a reader sees for a [[body]] link.

    Rules are tried in order, first match wins:
        >>> resolve_link("File:Cat.jpg|thumb|A cat")
        ''
        >>> resolve_link("#History")
        ''
        >>> resolve_link("fr:Paris")
        'Paris'
        >>> resolve_link("Paris|the capital")
        'the capital'
        >>> resolve_link("Paris")
        'Paris'
    """
    if not body:
        return ''

    if _NAMESPACE_RE.match(body):
        return ''

    if body.startswith('#'):
        return ''

    # Everything after the first colon is kept as-is, pipes included
    if _LANGUAGE_RE.match(body) and not body.startswith(_PIPE_TRICK_PREFIX):
        return body.split(':', 1)[1]

    return body.split('|')[-1]


def resolve_external_link(body: str) -> str:
    """
    Returns the display text of a [url display text] link, or '' if the link
    has no display text.
    """
    parts = body.split(None, 1)
    return parts[1] if len(parts) > 1 else ''
