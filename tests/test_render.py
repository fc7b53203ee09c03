from __future__ import annotations

import pytest

from stagix_package.render import (
    RenderOptions,
    diff_lines,
    diffstat_bar,
    highlight_lines,
    href,
    line_counts,
    numbered_block,
    pygments_css,
    render_diff,
    render_readme,
    split_lines,
    unified_diff,
)


def test_split_lines_drops_trailing_newline_and_carriage_returns() -> None:
    assert split_lines("") == []
    assert split_lines("a\r\nb\n") == ["a", "b"]
    assert split_lines("a\n\n") == ["a", ""]
    assert split_lines("no newline") == ["no newline"]


def test_line_counts_count_replacements_on_both_sides() -> None:
    assert line_counts(["a", "b"], ["a", "c", "d"]) == (2, 1)
    assert line_counts([], ["x", "y", "z"]) == (3, 0)
    assert line_counts(["x"], []) == (0, 1)


def test_unified_diff_uses_requested_context() -> None:
    old = [f"{i}\n" for i in range(1, 21)]
    new = list(old)
    new[9] = "ten\n"

    diff = unified_diff(old, new, context=5)

    assert diff.startswith("@@ -5,11 +5,11 @@\n")
    assert "-10\n+ten\n" in diff
    assert "---" not in diff
    assert " 4\n" not in diff
    assert unified_diff(old, old) == ""


def test_diff_lines_keep_terminators() -> None:
    assert diff_lines("") == []
    assert diff_lines("a\r\nb\n") == ["a\r\n", "b\n"]
    assert diff_lines("a\n\nb") == ["a\n", "\n", "b"]


def test_unified_diff_marks_missing_final_newline() -> None:
    diff = unified_diff(diff_lines("keep\nold\n"), diff_lines("keep\nnew"))

    assert diff == "@@ -1,2 +1,2 @@\n keep\n-old\n+new\n\\ No newline at end of file\n"


def test_diffstat_bar_unbounded_and_scaled() -> None:
    assert diffstat_bar(3, 2) == "+++--"
    assert diffstat_bar(0, 0) == ""
    assert diffstat_bar(90, 10, width=10) == "+" * 9 + "-"
    assert diffstat_bar(1, 1000, width=10) == "+" + "-" * 9
    assert diffstat_bar(1000, 1, width=10) == "+" * 9 + "-"
    assert diffstat_bar(2, 1, width=10) == "++-"


def test_render_options_validate() -> None:
    with pytest.raises(ValueError):
        RenderOptions(line_numbers="margin")
    with pytest.raises(ValueError):
        RenderOptions(diffstat_bar_width=1)


def test_numbered_block_anchors_are_zero_based() -> None:
    block = numbered_block("a\nb\nc\n", "notes.txt", RenderOptions(highlight=False))

    assert 'id="l0"' in block
    assert 'id="l2"' in block
    assert 'id="l3"' not in block
    assert '<pre id="blob">' in block


def test_numbered_block_gutter_layout() -> None:
    block = numbered_block("<a>\n", "page.html", RenderOptions(line_numbers="gutter", highlight=False))

    assert 'class="gutter"' in block
    assert "&lt;a&gt;" in block


def test_highlighted_block_keeps_one_anchor_per_line() -> None:
    block = numbered_block("def f():\n    return 1\n\n", "mod.py", RenderOptions())

    assert '<span class="k">def</span>' in block
    assert 'id="l2"' in block
    assert 'id="l3"' not in block


def test_highlight_falls_back_when_lexer_splits_differently() -> None:
    assert highlight_lines(["a\rb"], "notes.txt") == ["a\rb"]


def test_render_diff_escapes_without_highlighting() -> None:
    assert render_diff("+<b>\n", RenderOptions(highlight=False)) == "+&lt;b&gt;\n"
    assert 'class="gi"' in render_diff("+added\n", RenderOptions())
    assert pygments_css(RenderOptions(highlight=False)) == ""


def test_href_quotes_unsafe_characters() -> None:
    assert href("dir/a b&c.txt") == "dir/a%20b%26c.txt"


def test_readme_rendering_depends_on_extension() -> None:
    assert "Title</h1>" in render_readme("README.md", "# Title\n")
    assert render_readme("README", "<x>\n") == '<pre id="readme">&lt;x&gt;\n</pre>'
