import unittest

from wikidump.extract import (
    process_wikitext, truncate_footer, decode_text, normalize_entities, collapse_breaks,
    remove_comments, unwrap_allowed_html, remove_html, remove_wiki_markers, remove_templates,
    remove_wikitables, convert_internal_links, remove_external_links, strip_list_markers,
    fix_whitespace, drop_nested, replace_nested,
)


class TestCleaningSteps(unittest.TestCase):

    def test_truncate_footer(self):
        cases = [
            ("Intro\n== See Also ==\n* [[X]]", "Intro\n"),
            ("Body\n==external links==\n* x", "Body\n"),
            ("A\n===Further Reading===\nB", "A\n"),
            # Only the first footer heading matters
            ("A\n==Notes==\nB\n==History==\nC", "A\n"),
            # Other sections are kept
            ("A\n==History==\nB", "A\n==History==\nB"),
        ]
        for inp, expected in cases:
            with self.subTest(inp=inp):
                self.assertEqual(truncate_footer(inp), expected)

    def test_truncate_footer_bytes(self):
        """The dump payload is truncated before it is decoded."""
        self.assertEqual(truncate_footer(b"Body\n==References==\nfoo"), b"Body\n")

    def test_decode_text(self):
        self.assertEqual(decode_text(b"caf\xc3\xa9"), "café")
        self.assertEqual(decode_text(b"bad \xff byte"), "bad � byte")
        self.assertEqual(decode_text("already text"), "already text")

    def test_normalize_entities(self):
        """Entities arrive XML-escaped, so most are decoded twice."""
        cases = [
            ("&lt;b&gt;", "<b>"),
            ("Tom &amp;amp; Jerry", "Tom & Jerry"),
            ("a&amp;nbsp;b", "a b"),
            ("a&amp;thinsp;b", "a b"),
            ("soft&amp;shy;hyphen", "softhyphen"),
            ("1990&amp;ndash;1995", "1990 - 1995"),
            ("war&amp;mdash;peace", "war - peace"),
            ("wait&amp;hellip;what", "wait... what"),
            ("Wait..what", "Wait.. what"),
            ("Already... spaced", "Already... spaced"),
            ("&amp;omega;", "ω"),
            ("&amp;bogus;", ""),
        ]
        for inp, expected in cases:
            with self.subTest(inp=inp):
                self.assertEqual(normalize_entities(inp), expected)

    def test_collapse_breaks(self):
        self.assertEqual(collapse_breaks("a<br/>b<br />c<hr>d<BR>e"), "a b c d e")

    def test_remove_comments(self):
        text = "Start <!-- comment\nacross lines --> End."
        self.assertEqual(remove_comments(text), "Start  End.")

    def test_unwrap_allowed_html(self):
        cases = [
            ("<b>bold</b> text", "bold text"),
            ('<div class="x"><span>in</span> out</div>', "in out"),
            # Same tag nested inside itself is resolved inside to out
            ("<div>a<div>b</div>c</div>", "abc"),
            ("<B>upper</b>", "upper"),
            ("<blockquote>Quoted <i>words</i></blockquote>", "Quoted words"),
            # Tags outside the allow-list are left for the next step
            ("<ref>x</ref>", "<ref>x</ref>"),
            # Close tag must name the open tag
            ("<b>x</i>", "<b>x</i>"),
        ]
        for inp, expected in cases:
            with self.subTest(inp=inp):
                self.assertEqual(unwrap_allowed_html(inp), expected)

    def test_remove_html(self):
        cases = [
            ('Fact.<ref name="a">Source</ref> More.', "Fact. More."),
            ('Fact.<ref name="b" />', "Fact."),
            ("<gallery><ref>x</ref>y</gallery>z", "z"),
            ("a <nowiki/> b", "a  b"),
            ("unclosed <math>x", "unclosed x"),
        ]
        for inp, expected in cases:
            with self.subTest(inp=inp):
                self.assertEqual(remove_html(inp), expected)

    def test_remove_wiki_markers(self):
        cases = [
            ("''italic'' and '''bold'''", "italic and bold"),
            ("Intro\n== History ==\nText", "Intro\n\nText"),
            ("===Sub===", ""),
            ("# numbered\nkept", "\nkept"),
        ]
        for inp, expected in cases:
            with self.subTest(inp=inp):
                self.assertEqual(remove_wiki_markers(inp), expected)

    def test_remove_templates(self):
        text = "Start {{template|arg}} End."
        self.assertEqual(remove_templates(text), "Start  End.")
        nested = "Start {{outer|{{inner}}}} End."
        self.assertEqual(remove_templates(nested), "Start  End.")

    def test_remove_templates_malformed(self):
        """Unterminated blocks and stray closers are left as text."""
        self.assertEqual(remove_templates("a {{b {{c}} d"), "a {{b  d")
        self.assertEqual(remove_templates("a }} b"), "a }} b")

    def test_remove_wikitables(self):
        self.assertEqual(remove_wikitables("a\n{|\n| cell\n|}\nb"), "a\n\nb")
        self.assertEqual(remove_wikitables("{| {| x |} |}"), "")

    def test_convert_internal_links(self):
        cases = [
            ("[[Paris]] and [[Paris|the capital]]", "Paris and the capital"),
            ("[[File:Cat.jpg|thumb|A [[cat]]]]", ""),
            ("see [[fr:Paris]]", "see Paris"),
            ("[[#Top|top]]", ""),
            ("[[a [[b]] c", "[[a b c"),
            ("x]]", "x]]"),
        ]
        for inp, expected in cases:
            with self.subTest(inp=inp):
                self.assertEqual(convert_internal_links(inp), expected)

    def test_remove_external_links(self):
        cases = [
            ("[http://example.com Example site]", "Example site"),
            ("[HTTPS://example.com Shouting]", "Shouting"),
            ("[http://example.com]", ""),
            ("see https://x.org/page now", "see  now"),
        ]
        for inp, expected in cases:
            with self.subTest(inp=inp):
                self.assertEqual(remove_external_links(inp), expected)

    def test_strip_list_markers(self):
        text = "* one\n** two\n: indent\n; term\n#: mixed"
        self.assertEqual(strip_list_markers(text), "one\ntwo\nindent\nterm\nmixed")

    def test_fix_whitespace(self):
        self.assertEqual(fix_whitespace("  \n\nA\n\n\nB\r\nC  \n"), "A\nB\nC")


class TestNestedHelpers(unittest.TestCase):

    def test_drop_nested(self):
        self.assertEqual(drop_nested("a {{b {{c}} d}} e", '{{', '}}'), "a  e")

    def test_replace_nested_sees_resolved_inner_text(self):
        seen = []

        def record(inner):
            seen.append(inner)
            return inner.upper()

        self.assertEqual(replace_nested("x (a (b) c) y", '(', ')', record), "x A B C y")
        self.assertEqual(seen, ["b", "a B c"])

    def test_deep_nesting(self):
        text = "{{" * 500 + "x" + "}}" * 500 + "kept"
        self.assertEqual(drop_nested(text, '{{', '}}'), "kept")


class TestProcessWikitext(unittest.TestCase):

    def test_plain_text_round_trip(self):
        """Markup-free text is only trimmed and has its blank lines condensed."""
        text = "\nFirst paragraph.\n\n\nSecond paragraph.\n"
        self.assertEqual(process_wikitext(text), "First paragraph.\nSecond paragraph.")

    def test_nested_transclusions_vanish(self):
        self.assertEqual(process_wikitext("{{outer|{{inner}}}}"), "")

    def test_bytes_input(self):
        self.assertEqual(process_wikitext(b"caf\xc3\xa9 &amp;amp; cr\xc3\xa8me"), "café & crème")

    def test_full_article(self):
        raw = (
            "{{Infobox novel|name=Dracula|author=[[Bram Stoker]]}}\n"
            "'''Dracula''' is an 1897 [[Gothic fiction|Gothic]] [[horror fiction|horror]] novel "
            "by [[Bram Stoker]].&lt;ref&gt;Source&lt;/ref&gt;\n"
            "\n"
            "== Plot ==\n"
            "The story is told in [[Epistolary novel|letters]].&lt;!-- comment --&gt;\n"
            "* First point\n"
            "[[File:Dracula.jpg|thumb|Cover of the [[first edition]]]]\n"
            "== References ==\n"
            "{{reflist}}\n"
            "[[Category:1897 novels]]\n"
        )
        expected = (
            "Dracula is an 1897 Gothic horror novel by Bram Stoker.\n"
            "The story is told in letters.\n"
            "First point"
        )
        result = process_wikitext(raw)
        self.assertEqual(result, expected)

        # Nothing left to strip on a second pass
        self.assertEqual(process_wikitext(result), result)

    def test_idempotent(self):
        samples = [
            "Plain text.",
            "''A'' [[b|B]] {{c}} &lt;i&gt;d&lt;/i&gt;\n\n* e",
            "[http://example.com Site] and more text.",
        ]
        for raw in samples:
            with self.subTest(raw=raw):
                once = process_wikitext(raw)
                self.assertEqual(process_wikitext(once), once)

    def test_html_allow_list(self):
        raw = "&lt;blockquote&gt;Quoted &lt;i&gt;words&lt;/i&gt;&lt;/blockquote&gt; after"
        self.assertEqual(process_wikitext(raw), "Quoted words after")

    def test_headings_are_removed_with_their_title(self):
        self.assertEqual(process_wikitext("Intro.\n==History==\nBody."), "Intro.\nBody.")

    def test_unterminated_construct_is_left_as_text(self):
        self.assertEqual(process_wikitext("Text {{unclosed template"), "Text {{unclosed template")

    def test_external_links(self):
        raw = "Visit [http://example.com the site] or http://bare.example.org today."
        self.assertEqual(process_wikitext(raw), "Visit the site or  today.")


if __name__ == '__main__':
    unittest.main()
