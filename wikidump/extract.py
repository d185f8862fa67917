#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Wikitext cleaning utilities.

Converts the raw <text> body of a MediaWiki dump page into plain text:
footers, markup, templates, tables and HTML are stripped and links are
replaced by the text a reader would see.
"""
import html
import re
from typing import Callable, Union

from wikidump.links import resolve_external_link, resolve_link

# HTML tags whose content is kept. All other tags are removed together with
# their content. Derived from https://en.wikipedia.org/wiki/Help:HTML_in_wikitext
HTML_KEEP_TAGS = (
    # Quotes and blocks
    'blockquote', 'div', 'span', 'center', 'p',

    # Headings
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6',

    # Code and code-like blocks
    'pre', 'code', 'syntaxhighlight', 'poem', 'tt',

    # Font size
    'small', 'big', 'sub', 'sup',

    # Font style
    'abbr', 'b', 'bdi', 'bdo', 'cite', 'data',
    'del', 'dfn', 'em', 'font', 'i', 'ins', 'kbd',
    'mark', 'q', 's', 'samp', 'strike', 'strong',
    'time', 'u', 'var', 'wbr',

    # List elements
    'dl', 'dt', 'dd', 'ol', 'ul', 'li',

    # Table elements
    'table', 'td', 'tr', 'th',
    'thead', 'tfoot', 'tbody', 'caption',
)

FOOTER_SECTIONS = ('See Also', 'References', 'Further Reading', 'External Links', 'Notes')

_FOOTER_PATTERN = r'={2,}\s*(?:%s)\s*={2,}' % '|'.join(FOOTER_SECTIONS)
_FOOTER_RE = re.compile(_FOOTER_PATTERN, re.IGNORECASE)
_FOOTER_RE_BYTES = re.compile(_FOOTER_PATTERN.encode('ascii'), re.IGNORECASE)

# ( (?: (?!<\1) . )*? ) is "everything as long as it doesn't open the same tag
# again", which only matches the innermost pair of a nested tag.
_ALLOWED_HTML_RE = re.compile(
    r'<(%s)(?:\s[^>]*)?>((?:(?!<\1).)*?)</\1>' % '|'.join(HTML_KEEP_TAGS),
    re.DOTALL | re.IGNORECASE,
)
_HTML_PAIR_RE = re.compile(r'<(\w+)(?:\s[^>]*)?>(?:(?!<\1).)*?</\1>', re.DOTALL)
_HTML_SINGLE_RE = re.compile(r'</?\w+[^>]*>')

_ELLIPSIS_RE = re.compile(r'(\.{2,})\b(?!\s)')
_LEFTOVER_ENTITY_RE = re.compile(r'&[A-Za-z0-9]+;')
_EXTERNAL_LINK_RE = re.compile(r'\[(http[^\s\]]*(?:\s[^\]]*)?)\]', re.IGNORECASE)

TextLike = Union[str, bytes]

# ======================================================================
# Main Processing Pipeline
# ======================================================================

def process_wikitext(text: TextLike) -> str:
    """
    The main pipeline for turning a raw article body into plain text.

    Accepts the undecoded dump payload (bytes) or an already decoded string.
    The order of these operations is important: each step assumes the
    markup removed by the earlier ones is gone.
    """
    # The shorter we make the article early on, the faster the processing
    text = truncate_footer(text)
    text = decode_text(text)

    text = normalize_entities(text)
    text = collapse_breaks(text)
    text = remove_comments(text)

    text = unwrap_allowed_html(text)
    text = remove_html(text)
    text = remove_wiki_markers(text)

    text = remove_templates(text)
    text = remove_wikitables(text)
    text = convert_internal_links(text)
    text = remove_external_links(text)
    text = strip_list_markers(text)

    return fix_whitespace(text)

# ======================================================================
# Individual Cleaning Steps
# ======================================================================

def truncate_footer(text: TextLike) -> TextLike:
    """Drops the first See Also / References / ... section and everything after it."""
    pattern = _FOOTER_RE_BYTES if isinstance(text, bytes) else _FOOTER_RE
    match = pattern.search(text)
    return text[:match.start()] if match else text

def decode_text(text: TextLike) -> str:
    """Decodes the UTF-8 dump payload; strings pass through untouched."""
    if isinstance(text, bytes):
        return text.decode('utf-8', errors='replace')
    return text

def normalize_entities(text):
    """
    Decodes HTML entities.

    Page bodies are XML-escaped inside the dump, so entities written by
    editors arrive double-encoded (&amp;nbsp;). The first unescape removes the
    XML layer, the word-break entities are then rewritten, and a second
    unescape decodes the remaining real entities (e.g. &omega;).
    """
    text = html.unescape(text)
    text = re.sub(r'&(?:nb|thin)sp;', ' ', text)
    text = text.replace('&shy;', '')
    text = re.sub(r'&[mn]dash;', ' - ', text)
    text = text.replace('&hellip;', '... ')
    text = _ELLIPSIS_RE.sub(r'\1 ', text)
    text = html.unescape(text)
    return _LEFTOVER_ENTITY_RE.sub('', text)

def collapse_breaks(text):
    """Line breaks and rules become word separators."""
    return re.sub(r'<[bh]r\s*/?>', ' ', text, flags=re.IGNORECASE)

def remove_comments(text):
    """Removes HTML-style comments."""
    return re.sub(r'<!--.*?-->', '', text, flags=re.DOTALL)

def unwrap_allowed_html(text):
    """
    Removes allow-listed tags but keeps their content, inside to out.
    e.g. "<div><b>bold</b> text</div>" -> "bold text"
    """
    return sub_until_stable(_ALLOWED_HTML_RE, r'\2', text)

def remove_html(text):
    """
    Removes every remaining tag pair together with its content, inside to
    out, then any unpaired or self-closing tag.
    e.g. 'Fact.<ref name="a">Source</ref><ref name="b" />' -> 'Fact.'
    """
    text = sub_until_stable(_HTML_PAIR_RE, '', text)
    return _HTML_SINGLE_RE.sub('', text)

def remove_wiki_markers(text):
    """Removes '#' lines, ''italic''/'''bold''' quotes and ==Headings== (title included)."""
    text = re.sub(r'^#.*$', '', text, flags=re.MULTILINE)
    text = re.sub(r"'{2,}", '', text)
    return re.sub(r'={2,}[^=]+={2,}', '', text)

def remove_templates(text):
    """Removes template invocations (e.g., {{...}})."""
    return drop_nested(text, '{{', '}}')

def remove_wikitables(text):
    """Removes wikitable syntax ({|...|})."""
    return drop_nested(text, '{|', '|}')

def convert_internal_links(text):
    """
    Replaces [[...]] links with their display text, inside to out.
    e.g. "[[File:X.png|A [[cat]]]] [[Paris|the capital]]" -> " the capital"
    """
    return replace_nested(text, '[[', ']]', resolve_link)

def remove_external_links(text):
    """
    Removes external links, keeping the anchor text if present.
    e.g., "[http://example.com link text]" -> "link text"
    """
    text = _EXTERNAL_LINK_RE.sub(lambda m: resolve_external_link(m.group(1)), text)
    return re.sub(r'https?://\S+', '', text, flags=re.IGNORECASE)

def strip_list_markers(text):
    """Removes bullets, numbering and indentation at the start of each line."""
    return re.sub(r'^[*#;: ]+', '', text, flags=re.MULTILINE)

def fix_whitespace(text):
    """Trims the article and condenses blank lines, removing carriage returns."""
    return re.sub(r'[\r\n]+', '\n', text.strip())

# ======================================================================
# Helper Functions
# ======================================================================

def sub_until_stable(pattern, repl, text):
    """Applies pattern.sub until it stops matching."""
    while True:
        text, count = pattern.subn(repl, text)
        if not count:
            return text

def drop_nested(text, open_delim, close_delim):
    """
    Removes all occurrences of nested delimited text blocks.
    e.g., drop_nested("a {{b {{c}} d}} e", '{{', '}}') -> "a  e"
    """
    return replace_nested(text, open_delim, close_delim, lambda inner: '')

def replace_nested(text: str, open_delim: str, close_delim: str,
                   replace: Callable[[str], str]) -> str:
    """
    Replaces every balanced open_delim ... close_delim block with
    replace(inner), resolving the innermost block first.

    A single left-to-right pass with an explicit stack: each open delimiter
    starts a new buffer, each close delimiter pops the current buffer, hands
    its (already resolved) content to replace() and appends the result to the
    enclosing buffer. A close delimiter with nothing open is kept as text, and
    an open delimiter that is never closed is put back together with its
    content.
    """
    token_re = re.compile('%s|%s' % (re.escape(open_delim), re.escape(close_delim)))

    stack = [[]]
    cur = 0
    for match in token_re.finditer(text):
        stack[-1].append(text[cur:match.start()])
        cur = match.end()

        if match.group(0) == open_delim:
            stack.append([])
        elif len(stack) > 1:
            inner = ''.join(stack.pop())
            stack[-1].append(replace(inner))
        else:
            stack[-1].append(close_delim)

    stack[-1].append(text[cur:])

    # Unterminated blocks stay in the output as they were
    while len(stack) > 1:
        inner = ''.join(stack.pop())
        stack[-1].append(open_delim + inner)

    return ''.join(stack[0])
