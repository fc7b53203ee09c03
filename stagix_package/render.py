"""
Shared rendering pieces: numbered source blocks, unified diffs, diffstat bars,
syntax highlighting (Pygments) and README rendering (Python-Markdown).

Everything that varies between pages is a field on RenderOptions rather than a
separate code path.
"""

from __future__ import annotations

import difflib
import html
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple
from urllib.parse import quote

import markdown  # Python-Markdown
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import TextLexer, get_lexer_for_filename
from pygments.lexers.diff import DiffLexer

DEFAULT_CONTEXT_LINES = 5
LINE_NUMBER_STYLES = ("inline", "gutter")
MARKDOWN_EXTENSIONS = {".md", ".markdown", ".mdown", ".mkd", ".mkdn"}
NO_NEWLINE = "\\ No newline at end of file"


@dataclass
class RenderOptions:
    context_lines: int = DEFAULT_CONTEXT_LINES
    line_numbers: str = "inline"              # "inline" | "gutter"
    highlight: bool = True
    diffstat_bars: bool = True
    diffstat_bar_width: Optional[int] = None  # None: one character per changed line

    def __post_init__(self) -> None:
        if self.line_numbers not in LINE_NUMBER_STYLES:
            raise ValueError(f"line_numbers must be one of {LINE_NUMBER_STYLES}, got {self.line_numbers!r}")
        if self.diffstat_bar_width is not None and self.diffstat_bar_width < 2:
            raise ValueError("diffstat_bar_width must be at least 2")


def escape(s: str) -> str:
    return html.escape(s, quote=True)


def href(path: str) -> str:
    """A repository path made safe for an href attribute."""
    return escape(quote(path, safe="/"))


def iso_time(when: datetime) -> str:
    return when.strftime("%Y-%m-%d %H:%M:%S %z")


def decode_text(data: bytes) -> Optional[str]:
    """data as text if it is valid UTF-8, else None."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


def split_lines(text: str) -> List[str]:
    """Lines split on '\\n' with one trailing '\\r' dropped; no phantom line after a final newline."""
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


# --- diffs -------------------------------------------------------------------

def diff_lines(text: str) -> List[str]:
    """Lines split on '\\n', each keeping its terminator; a last line without one stays bare."""
    lines = [line + "\n" for line in text.split("\n")]
    lines[-1] = lines[-1][:-1]
    if lines[-1] == "":
        lines.pop()
    return lines


def line_counts(old_lines: List[str], new_lines: List[str]) -> Tuple[int, int]:
    """(lines added, lines removed) between two line lists."""
    added = removed = 0
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag in ("replace", "delete"):
            removed += i2 - i1
        if tag in ("replace", "insert"):
            added += j2 - j1
    return added, removed


def unified_diff(old_lines: List[str], new_lines: List[str], context: int = DEFAULT_CONTEXT_LINES) -> str:
    """Hunks only; the ---/+++ header is written by the caller.

    Lines come from diff_lines, so a changed terminator is a changed line.
    """
    out = []
    for line in list(difflib.unified_diff(old_lines, new_lines, lineterm="", n=context))[2:]:
        if line.startswith("@@"):
            out.append(line + "\n")
        elif line.endswith("\n"):
            out.append(line)
        else:
            out.append(f"{line}\n{NO_NEWLINE}\n")
    return "".join(out)


def diffstat_bar(added: int, removed: int, width: Optional[int] = None) -> str:
    total = added + removed
    if width is None or total <= width:
        return "+" * added + "-" * removed
    plus = round(added * width / total)
    if added and plus == 0:
        plus = 1
    if removed and plus == width:
        plus = width - 1
    return "+" * plus + "-" * (width - plus)


def render_diff(diff: str, options: RenderOptions) -> str:
    if options.highlight and diff:
        return highlight(diff, DiffLexer(stripnl=False), HtmlFormatter(nowrap=True))
    return escape(diff)


# --- source blocks -------------------------------------------------------------

def highlight_lines(lines: List[str], filename: str) -> List[str]:
    """HTML for each line, highlighted as a whole file; falls back to escaped text."""
    try:
        lexer = get_lexer_for_filename(filename, stripnl=False)
    except Exception:
        lexer = TextLexer(stripnl=False)
    out = highlight("".join(line + "\n" for line in lines), lexer, HtmlFormatter(nowrap=True)).split("\n")
    if out and out[-1] == "":
        out.pop()
    # the lexer treats a lone '\r' as a line break; numbering must follow our split
    if len(out) != len(lines):
        return [escape(line) for line in lines]
    return out


def numbered_block(text: str, filename: str, options: RenderOptions) -> str:
    lines = split_lines(text)
    if options.highlight:
        body = highlight_lines(lines, filename)
    else:
        body = [escape(line) for line in lines]
    anchors = [f'<a id="l{i}" href="#l{i}" class="line">{i: >7} </a>' for i in range(len(lines))]
    if options.line_numbers == "gutter":
        return (
            '<table class="blob"><tr>'
            f'<td class="gutter"><pre>{chr(10).join(anchors)}</pre></td>'
            f'<td class="highlight"><pre id="blob">{chr(10).join(body)}</pre></td>'
            "</tr></table>"
        )
    joined = "\n".join(a + b for a, b in zip(anchors, body))
    return f'<div class="highlight"><pre id="blob">{joined}</pre></div>'


def pygments_css(options: RenderOptions) -> str:
    if not options.highlight:
        return ""
    return HtmlFormatter().get_style_defs(".highlight")


# --- readme ----------------------------------------------------------------------

def render_markdown_text(md_text: str) -> str:
    return markdown.markdown(md_text, extensions=["fenced_code", "tables", "toc"])  # type: ignore


def render_readme(filename: str, text: str) -> str:
    suffix = "." + filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if suffix in MARKDOWN_EXTENSIONS:
        return f'<div class="markdown-content">{render_markdown_text(text)}</div>'
    return f'<pre id="readme">{escape(text)}</pre>'
