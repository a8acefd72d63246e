"""Tests for apply-directive extraction."""

from __future__ import annotations

from textwrap import dedent

from draftsmith.directives import (
    extract_directives,
    has_directives,
    parse_directives,
    strip_directive_markup,
)
from draftsmith.models import UNKNOWN_TARGET, DirectiveAction

MIXED_REPLY = dedent(
    """\
    Here is the revised opening and a new location.

    ```draft-apply
    target: books/one/chapters/03/scene-02/draft.md
    action: replace
    section: "## Opening"
    ---
    ## Opening

    The lamp guttered twice before it caught.
    ```

    I also added the harbor:

    <document path="world/places/harbor.md" action="create">
    ```markdown
    ---
    title: Harbor
    ---

    # Harbor

    Salt and tar.
    ```
    </document>

    ```draft-apply
    target: books/one/notes.md
    action: append
    ---
    - Remember the storm bell.
    ```

    Let me know what you think.
    """
)


class TestHasDirectives:
    def test_detects_fenced_marker(self):
        assert has_directives("x\n```draft-apply\ntarget: a.md\n---\nb\n```")

    def test_detects_tag(self):
        assert has_directives('<document path="a.md">hi</document>')

    def test_plain_text(self):
        assert not has_directives("Just prose with a ```python\ncode\n``` block.")


class TestExtractDirectives:
    def test_two_fenced_and_one_tag(self):
        directives, _ = extract_directives(MIXED_REPLY)

        assert len(directives) == 3
        first, second, third = directives

        assert first.target == "books/one/chapters/03/scene-02/draft.md"
        assert first.action is DirectiveAction.REPLACE
        assert first.section == "## Opening"
        assert first.content == "## Opening\n\nThe lamp guttered twice before it caught."
        assert first.syntax == "fenced"

        assert second.target == "world/places/harbor.md"
        assert second.action is DirectiveAction.CREATE
        assert second.syntax == "tag"
        assert second.metadata == {"title": "Harbor"}
        assert second.content.startswith("---\ntitle: Harbor\n---")
        assert "Salt and tar." in second.content

        assert third.target == "books/one/notes.md"
        assert third.action is DirectiveAction.APPEND
        assert third.content == "- Remember the storm bell."

    def test_display_text_has_only_prose(self):
        _, display = extract_directives(MIXED_REPLY)
        assert display == (
            "Here is the revised opening and a new location.\n\n"
            "I also added the harbor:\n\n"
            "Let me know what you think."
        )

    def test_fenced_block_without_target_is_dropped(self):
        text = "Intro\n```draft-apply\naction: create\n---\nBody\n```\nOutro"
        directives, display = extract_directives(text)
        assert directives == []
        assert display == "Intro\nOutro"

    def test_unknown_action_falls_back_to_create(self):
        text = "```draft-apply\ntarget: a.md\naction: obliterate\n---\nBody\n```"
        (directive,) = parse_directives(text)
        assert directive.action is DirectiveAction.CREATE

    def test_legacy_update_frontmatter_action(self):
        text = (
            "```draft-apply\ntarget: a.md\naction: update_frontmatter\n"
            "---\n---\nstatus: done\n---\n```"
        )
        (directive,) = parse_directives(text)
        assert directive.action is DirectiveAction.UPDATE_METADATA
        assert directive.metadata == {"status": "done"}

    def test_separator_inside_body_is_kept(self):
        text = "```draft-apply\ntarget: a.md\n---\nPart one\n\n---\n\nPart two\n```"
        (directive,) = parse_directives(text)
        assert directive.content == "Part one\n\n---\n\nPart two"

    def test_nested_code_fence_does_not_close_block(self):
        text = dedent(
            """\
            ```draft-apply
            target: docs/example.md
            ---
            Example:

            ```python
            print("hi")
            ```

            Done.
            ```
            """
        )
        (directive,) = parse_directives(text)
        assert directive.content.endswith("Done.")
        assert 'print("hi")' in directive.content

    def test_block_without_separator_uses_lines_after_header(self):
        text = "```draft-apply\ntarget: a.md\naction: append\nNew line of text.\n```"
        (directive,) = parse_directives(text)
        assert directive.action is DirectiveAction.APPEND
        assert directive.content == "New line of text."

    def test_unterminated_block_is_ignored(self):
        text = "```draft-apply\ntarget: a.md\n---\nnever closed"
        assert parse_directives(text) == []

    def test_tag_target_attribute_priority(self):
        text = '<document file="low.md" path="high.md">Body</document>'
        (directive,) = parse_directives(text)
        assert directive.target == "high.md"

    def test_tag_alternative_target_attributes(self):
        for attr in ("target", "file", "filename"):
            (directive,) = parse_directives(f"<document {attr}='x/{attr}.md'>Body</document>")
            assert directive.target == f"x/{attr}.md"

    def test_tag_without_target_is_kept_as_unknown(self):
        (directive,) = parse_directives("<document>Some content</document>")
        assert directive.target == UNKNOWN_TARGET
        assert not directive.is_actionable

    def test_empty_tag_is_dropped_even_with_target(self):
        assert parse_directives('<document path="a.md">\n```md\n```\n</document>') == []
        assert parse_directives('<document path="a.md">   </document>') == []

    def test_fence_is_stripped_only_when_it_wraps_everything(self):
        text = '<document path="a.md">Intro\n```\ncode\n```</document>'
        (directive,) = parse_directives(text)
        assert directive.content == "Intro\n```\ncode\n```"

    def test_separate_fences_are_not_a_wrapper(self):
        interior = "```\nfirst\n```\n\nmiddle prose\n\n```\nsecond\n```"
        (directive,) = parse_directives(f'<document path="a.md">\n{interior}\n</document>')
        assert directive.content == interior

    def test_wrapping_fence_with_nested_sample_is_stripped(self):
        text = '<document path="a.md">```markdown\nText\n```python\nx = 1\n```\n```</document>'
        (directive,) = parse_directives(text)
        assert directive.content == "Text\n```python\nx = 1\n```"

    def test_several_tags_matched_independently(self):
        text = '<document path="a.md">A</document> and <document path="b.md">B</document>'
        directives = parse_directives(text)
        assert [(d.target, d.content) for d in directives] == [("a.md", "A"), ("b.md", "B")]

    def test_tag_attributes_action_and_section(self):
        text = '<document path="a.md" action="replace" section="Ending">New ending</document>'
        (directive,) = parse_directives(text)
        assert directive.action is DirectiveAction.REPLACE
        assert directive.section == "Ending"

    def test_tag_inside_fenced_block_is_not_separate(self):
        text = "```draft-apply\ntarget: a.md\n---\n<document path=\"b.md\">inner</document>\n```"
        directives = parse_directives(text)
        assert [d.target for d in directives] == ["a.md"]

    def test_no_directives(self):
        assert extract_directives("  Just prose.  ") == ([], "Just prose.")


class TestStripDirectiveMarkup:
    def test_collapses_blank_lines(self):
        text = "Before\n\n\n<document path='a.md'>x</document>\n\n\nAfter"
        assert strip_directive_markup(text) == "Before\n\nAfter"

    def test_matches_extract_display_text(self):
        assert strip_directive_markup(MIXED_REPLY) == extract_directives(MIXED_REPLY)[1]
