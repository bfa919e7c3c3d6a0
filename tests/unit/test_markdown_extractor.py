"""Unit tests for runme.markdown.extractor."""

from __future__ import annotations

import pytest

from runme.markdown import (
    DEFAULT_SKIP_REASON,
    ParseError,
    extract_blocks,
    extract_from_events,
    parse_info_string,
)
from runme.markdown.extractor import parse_name_directive, parse_skip_directive
from runme.markdown.lexer import CodeBlockKind, Event, EventType


# ---------------------------------------------------------------------------
# Info strings and directive comments
# ---------------------------------------------------------------------------


class TestParseInfoString:
    def test_empty(self) -> None:
        info = parse_info_string("")
        assert info.language is None
        assert info.name is None
        assert info.ignore is False

    def test_language_is_lowercased(self) -> None:
        assert parse_info_string("BASH").language == "bash"

    def test_inline_name_and_ignore(self) -> None:
        info = parse_info_string("bash runme:name=setup runme:ignore")
        assert info.language == "bash"
        assert info.name == "setup"
        assert info.ignore is True

    def test_directive_before_language(self) -> None:
        info = parse_info_string("runme:skip python")
        assert info.language == "python"
        assert info.ignore is True

    def test_empty_inline_name_ignored(self) -> None:
        assert parse_info_string("sh runme:name=").name is None

    def test_key_value_attributes(self) -> None:
        info = parse_info_string("sh title=demo")
        assert info.language == "sh"
        assert info.attributes == {"title": "demo"}

    def test_unknown_directive_ignored(self) -> None:
        info = parse_info_string("sh runme:timeout=5")
        assert info.language == "sh"
        assert info.attributes == {}


class TestDirectiveComments:
    @pytest.mark.parametrize(
        "html",
        ["<!-- runme:ignore -->", "<!-- runme:skip -->", "<!--runme:IGNORE-->"],
    )
    def test_skip_keywords(self, html: str) -> None:
        assert parse_skip_directive(html) == DEFAULT_SKIP_REASON

    def test_skip_note_appended(self) -> None:
        reason = parse_skip_directive("<!-- runme:skip needs network -->")
        assert reason == "Marked with runme:ignore: needs network"

    def test_skip_prefix_word_not_matched(self) -> None:
        assert parse_skip_directive("<!-- runme:ignored -->") is None

    def test_plain_comment(self) -> None:
        assert parse_skip_directive("<!-- just a note -->") is None
        assert parse_name_directive("<!-- just a note -->") is None

    @pytest.mark.parametrize(
        "html",
        [
            "<!-- runme:name build -->",
            "<!-- runme:name=build -->",
            "<!--\nrunme:name build\n-->",
        ],
    )
    def test_name_forms(self, html: str) -> None:
        assert parse_name_directive(html) == "build"

    def test_name_without_value(self) -> None:
        assert parse_name_directive("<!-- runme:name -->") is None

    def test_name_prefix_word_not_matched(self) -> None:
        assert parse_name_directive("<!-- runme:names x -->") is None


# ---------------------------------------------------------------------------
# Block extraction
# ---------------------------------------------------------------------------


class TestExtractBlocks:
    def test_untagged_block(self) -> None:
        blocks = extract_blocks("```\nmake test\n```\n")
        assert len(blocks) == 1
        block = blocks[0]
        assert block.id == "block-001"
        assert block.language is None
        assert block.is_shell
        assert block.content == "make test"
        assert block.skip_reason is None
        assert block.headings == ()
        assert block.line == 1

    def test_inline_directives(self) -> None:
        doc = "```bash runme:name=setup runme:ignore\necho hi\n```\n"
        block = extract_blocks(doc)[0]
        assert block.name == "setup"
        assert block.language == "bash"
        assert block.skip_reason == DEFAULT_SKIP_REASON

    def test_duplicate_comment_names_both_kept(self) -> None:
        doc = (
            "<!-- runme:name build -->\n"
            "```sh\nmake\n```\n\n"
            "<!-- runme:name build -->\n"
            "```sh\nmake install\n```\n"
        )
        blocks = extract_blocks(doc)
        assert [b.id for b in blocks] == ["block-001", "block-002"]
        assert [b.name for b in blocks] == ["build", "build"]

    def test_comment_name_wins_over_inline(self) -> None:
        doc = "<!-- runme:name from-comment -->\n```bash runme:name=inline\nls\n```\n"
        assert extract_blocks(doc)[0].name == "from-comment"

    def test_directives_apply_to_next_block_only(self) -> None:
        doc = (
            "<!-- runme:ignore -->\n"
            "<!-- runme:name first -->\n"
            "```\na\n```\n"
            "```\nb\n```\n"
        )
        first, second = extract_blocks(doc)
        assert first.skip_reason == DEFAULT_SKIP_REASON
        assert first.name == "first"
        assert second.skip_reason is None
        assert second.name is None

    def test_directive_survives_intervening_prose(self) -> None:
        doc = "<!-- runme:skip -->\n\nSome prose.\n\n```\nls\n```\n"
        assert extract_blocks(doc)[0].skip_reason == DEFAULT_SKIP_REASON

    def test_dangling_directive_is_harmless(self) -> None:
        assert extract_blocks("```\nls\n```\n<!-- runme:ignore -->\n")[0].skip_reason is None

    def test_ids_are_zero_padded_and_sequential(self) -> None:
        doc = "".join(f"```\necho {i}\n```\n" for i in range(12))
        ids = [b.id for b in extract_blocks(doc)]
        assert ids[0] == "block-001"
        assert ids[9] == "block-010"
        assert ids[-1] == "block-012"

    def test_content_is_trimmed(self) -> None:
        block = extract_blocks("```\n\n  echo hi  \n\n```\n")[0]
        assert block.content == "echo hi"

    def test_interior_lines_preserved(self) -> None:
        block = extract_blocks("```sh\necho a\n\n  echo b\n```\n")[0]
        assert block.content == "echo a\n\n  echo b"

    def test_interior_tabs_preserved(self) -> None:
        block = extract_blocks("```sh\necho a\n\techo b\n```\n")[0]
        assert block.content == "echo a\n\techo b"

    def test_non_shell_language(self) -> None:
        block = extract_blocks("~~~python\nprint('hi')\n~~~\n")[0]
        assert block.language == "python"
        assert not block.is_shell

    def test_indented_block_has_no_language(self) -> None:
        blocks = extract_blocks("Run this:\n\n    make test\n")
        assert len(blocks) == 1
        assert blocks[0].language is None
        assert blocks[0].content == "make test"
        assert blocks[0].line == 3

    def test_no_blocks(self) -> None:
        assert extract_blocks("# Title\n\nJust prose.\n") == []

    def test_empty_document(self) -> None:
        assert extract_blocks("") == []

    def test_empty_block_kept(self) -> None:
        block = extract_blocks("```bash\n```\n")[0]
        assert block.content == ""

    def test_comment_inside_block_is_content(self) -> None:
        block = extract_blocks("```html\n<!-- runme:ignore -->\n```\n")[0]
        assert block.skip_reason is None
        assert block.content == "<!-- runme:ignore -->"


class TestHeadingContext:
    def test_heading_stack(self) -> None:
        doc = (
            "# A\n## B\n```\nx\n```\n"
            "## C\n```\ny\n```\n"
            "# D\n### E\n```\nz\n```\n"
        )
        blocks = extract_blocks(doc)
        assert [b.headings for b in blocks] == [("A", "B"), ("A", "C"), ("D", "E")]

    def test_deeper_then_shallower(self) -> None:
        doc = "# A\n### Deep\n## Mid\n```\nls\n```\n"
        assert extract_blocks(doc)[0].headings == ("A", "Mid")

    def test_setext_headings(self) -> None:
        doc = "Guide\n=====\n\nInstall\n-------\n\n```\nmake\n```\n"
        assert extract_blocks(doc)[0].headings == ("Guide", "Install")

    def test_inline_code_in_heading(self) -> None:
        doc = "## Install `runme`\n```\nls\n```\n"
        assert extract_blocks(doc)[0].headings == ("Install runme",)

    def test_heading_inside_block_ignored(self) -> None:
        doc = "# Real\n```\n# comment\n```\n```\nls\n```\n"
        blocks = extract_blocks(doc)
        assert blocks[1].headings == ("Real",)


class TestContainerNesting:
    def test_fence_in_ordered_list(self) -> None:
        doc = "# Setup\n\n1. Install:\n\n    ```bash\n    make install\n    ```\n"
        blocks = extract_blocks(doc)
        assert len(blocks) == 1
        assert blocks[0].language == "bash"
        assert blocks[0].content == "make install"
        assert blocks[0].headings == ("Setup",)

    def test_fence_in_block_quote_gets_an_id(self) -> None:
        doc = "> ```bash\n> echo quoted\n> ```\n\n```bash\necho after\n```\n"
        blocks = extract_blocks(doc)
        assert [(b.id, b.content) for b in blocks] == [
            ("block-001", "echo quoted"),
            ("block-002", "echo after"),
        ]


# ---------------------------------------------------------------------------
# Malformed structure
# ---------------------------------------------------------------------------


class TestParseErrors:
    def test_unterminated_fence(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            extract_blocks("# Title\n\n```bash\necho never closed\n")
        assert exc_info.value.line == 3
        assert "ended while inside code block" in str(exc_info.value)

    def test_close_without_open(self) -> None:
        with pytest.raises(ParseError, match="closing code block without start"):
            extract_from_events([Event(EventType.CODE_BLOCK_CLOSE, line=3)])

    def test_nested_open(self) -> None:
        events = [
            Event(EventType.CODE_BLOCK_OPEN, line=1, kind=CodeBlockKind.FENCED),
            Event(EventType.CODE_BLOCK_OPEN, line=2, kind=CodeBlockKind.FENCED),
        ]
        with pytest.raises(ParseError):
            extract_from_events(events)

    def test_error_message_includes_line(self) -> None:
        err = ParseError("boom", 7)
        assert str(err) == "boom (line 7)"
        assert err.message == "boom"

    def test_error_without_line(self) -> None:
        assert str(ParseError("boom")) == "boom"
