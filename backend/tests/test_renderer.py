"""Tests for turning reply text into display segments."""

from __future__ import annotations

from coursetutor.categories import CourseCategory
from coursetutor.renderer import (
    CodeSegment,
    MathSegment,
    QuoteSegment,
    TextSegment,
    format_inline,
    render_reply,
)


def _kinds(segments) -> list[str]:
    return [s.kind for s in segments]


class TestMarkdownLite:
    def test_plain_text_is_escaped_before_markup(self) -> None:
        segments = render_reply("<b>hi</b> **bold**")
        assert segments == [TextSegment(html="&lt;b&gt;hi&lt;/b&gt; <strong>bold</strong>")]

    def test_list_items_and_line_breaks(self) -> None:
        html = format_inline("Steps:\n* one\n* two")
        assert html == "Steps:<br/><li>one</li><li>two</li>"

    def test_rendering_escaped_text_does_not_double_escape(self) -> None:
        assert render_reply("a &lt; b") == [TextSegment(html="a &lt; b")]

    def test_empty_text(self) -> None:
        assert render_reply("") == []


class TestCodeBlocks:
    def test_code_block_between_prose(self) -> None:
        text = "Look:\n```python\nif x < 1:\n    pass\n```\nDone"
        segments = render_reply(text, CourseCategory.PROGRAMMING)
        assert _kinds(segments) == ["text", "code", "text"]
        code = segments[1]
        assert isinstance(code, CodeSegment)
        assert code.language == "python"
        assert code.code == "if x < 1:\n    pass"
        assert '<span class="tok-keyword">if</span> x &lt; <span class="tok-number">1</span>' in code.html

    def test_script_in_code_block_is_escaped(self) -> None:
        segments = render_reply("```\n<script>alert(1)</script>\n```")
        assert len(segments) == 1
        assert "&lt;script&gt;" in segments[0].html
        assert "<script>" not in segments[0].html

    def test_reference_inside_fence_is_shown_literally(self) -> None:
        segments = render_reply('```python\nlt = "&lt;"\n```', CourseCategory.PROGRAMMING)
        assert segments[0].code == 'lt = "&lt;"'
        assert '<span class="tok-string">"&amp;lt;"</span>' in segments[0].html

    def test_unterminated_fence_is_literal(self) -> None:
        segments = render_reply("```python\nprint(1)")
        assert segments == [TextSegment(html="```python<br/>print(1)")]


class TestMath:
    def test_block_formula(self) -> None:
        segments = render_reply("$$x^2$$", CourseCategory.MATH)
        assert segments == [MathSegment(formula="x^2", html='<div class="math-block">x^2</div>')]

    def test_block_formula_keeps_order(self) -> None:
        segments = render_reply("Area: $$a^2$$ done", "math")
        assert _kinds(segments) == ["text", "math", "text"]
        assert all("$$" not in s.html for s in segments if isinstance(s, TextSegment))

    def test_inline_formula(self) -> None:
        segments = render_reply("Let $x < 2$ hold", CourseCategory.MATH)
        assert segments[0].html == 'Let <span class="math-inline">x &lt; 2</span> hold'

    def test_markdown_does_not_reach_inside_inline_formulas(self) -> None:
        segments = render_reply("Expand $a**2 + b**2$ now", CourseCategory.MATH)
        assert segments[0].html == 'Expand <span class="math-inline">a**2 + b**2</span> now'

    def test_bold_around_inline_formula(self) -> None:
        html = format_inline("**Note** $x*y$\n* item", CourseCategory.MATH)
        assert html == '<strong>Note</strong> <span class="math-inline">x*y</span><br/><li>item</li>'

    def test_unterminated_block_is_literal(self) -> None:
        segments = render_reply("Cost $$x^2 more", CourseCategory.MATH)
        assert segments == [TextSegment(html="Cost $$x^2 more")]

    def test_other_category_does_not_split_math(self) -> None:
        segments = render_reply("$$x^2$$ and $y$", CourseCategory.OTHER)
        assert segments == [TextSegment(html="$$x^2$$ and $y$")]


class TestQuotes:
    def test_long_double_quoted_passage(self) -> None:
        text = 'He said "It was the best of times, it was the worst" and left'
        segments = render_reply(text, CourseCategory.LETTERS)
        assert _kinds(segments) == ["text", "quote", "text"]
        quote = segments[1]
        assert isinstance(quote, QuoteSegment)
        assert quote.text == "It was the best of times, it was the worst"

    def test_blockquote_line(self) -> None:
        segments = render_reply("Hamlet:\n> To be, or not to be\nEnd", CourseCategory.LETTERS)
        assert _kinds(segments) == ["text", "quote", "text"]
        assert segments[1].text == "To be, or not to be"
        assert segments[2].html == "<br/>End"

    def test_short_quote_stays_inline(self) -> None:
        segments = render_reply('A "short" word', CourseCategory.LETTERS)
        assert _kinds(segments) == ["text"]

    def test_other_category_keeps_quotes_inline(self) -> None:
        segments = render_reply("> To be, or not to be **now**", CourseCategory.OTHER)
        assert segments == [TextSegment(html="&gt; To be, or not to be <strong>now</strong>")]

    def test_quote_html_is_escaped(self) -> None:
        segments = render_reply('"<i>a long enough quotation here</i>"', CourseCategory.LETTERS)
        assert segments[0].html == (
            '<blockquote class="quote">"&lt;i&gt;a long enough quotation here&lt;/i&gt;"</blockquote>'
        )


class TestMixed:
    def test_segments_follow_source_order(self) -> None:
        text = "Intro $$y=mx+b$$ then\n```js\nconst a = 1;\n```\n**end**"
        segments = render_reply(text, CourseCategory.MATH)
        assert _kinds(segments) == ["text", "math", "text", "code", "text"]
        assert segments[-1].html == "<br/><strong>end</strong>"
