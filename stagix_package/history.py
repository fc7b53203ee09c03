"""
Commit log and per-commit diff pages.

History is walked along first parents only, newest first, from HEAD. Each
commit is diffed against its first parent's tree, or against the empty tree
for a root commit, so every path of a root commit shows up as an addition.
"""

from __future__ import annotations

import logging
import pathlib
from dataclasses import dataclass, field
from typing import List, Optional

from .git import Repository
from .links import page_prefixes
from .meta import write_page
from .models import ChangeRecord, CommitRecord, DiffStat, RepositoryMetadata
from .render import (
    RenderOptions,
    decode_text,
    diff_lines,
    diffstat_bar,
    escape,
    href,
    iso_time,
    line_counts,
    pygments_css,
    render_diff,
    unified_diff,
)

logger = logging.getLogger(__name__)


@dataclass
class LogEntry:
    commit: CommitRecord
    changes: List[ChangeRecord]

    @property
    def stat(self) -> DiffStat:
        return DiffStat.from_changes(self.changes)


@dataclass
class HistoryWalk:
    entries: List[LogEntry] = field(default_factory=list)
    limit: Optional[int] = None
    remaining: int = 0

    @property
    def truncated(self) -> bool:
        return self.remaining > 0


def commit_page_path(commit_id: str) -> str:
    return f"commits/{commit_id}.html"


class HistoryRenderer:
    def __init__(
        self,
        repo: Repository,
        meta: RepositoryMetadata,
        options: RenderOptions | None = None,
        log: logging.Logger | None = None,
    ):
        self.repo = repo
        self.meta = meta
        self.options = options or RenderOptions()
        self.log = log or logger

    # --- diffs -------------------------------------------------------------

    def base_tree(self, commit: CommitRecord) -> str:
        if commit.first_parent is None:
            return self.repo.empty_tree()
        return self.repo.read_commit(commit.first_parent).tree_id

    def _text(self, oid: Optional[str], mode: str) -> str:
        # content that is not UTF-8 diffs as empty
        text = decode_text(self.repo.read_entry(oid, mode))
        return text if text is not None else ""

    def changes(self, commit: CommitRecord) -> List[ChangeRecord]:
        """Non-directory changes of commit against its base tree, with line counts and diffs."""
        changes = []
        for change in self.repo.tree_changes(self.base_tree(commit), commit.tree_id):
            if change.is_tree:
                continue
            old_lines = diff_lines(self._text(change.old_oid, change.old_mode))
            new_lines = diff_lines(self._text(change.new_oid, change.new_mode))
            change.lines_added, change.lines_removed = line_counts(old_lines, new_lines)
            change.unified_diff = unified_diff(old_lines, new_lines, self.options.context_lines)
            changes.append(change)
        return changes

    # --- walking -----------------------------------------------------------

    def walk(self, head: str, limit: Optional[int] = None) -> HistoryWalk:
        """Visit at most limit commits; past the limit, history is only counted."""
        result = HistoryWalk(limit=limit)
        revs = self.repo.iter_first_parent(head)
        for i, oid in enumerate(revs):
            if limit is not None and i >= limit:
                result.remaining = 1 + sum(1 for _ in revs)
                break
            commit = self.repo.read_commit(oid)
            result.entries.append(LogEntry(commit, self.changes(commit)))
        self.log.debug(
            "%s: visited %d commits, %d more not rendered", self.meta.name, len(result.entries), result.remaining
        )
        return result

    # --- log page ------------------------------------------------------------

    def render_log(self, walk: HistoryWalk) -> str:
        rows = []
        for entry in walk.entries:
            c, stat = entry.commit, entry.stat
            rows.append(
                "<tr>"
                f"<td>{iso_time(c.author_time)}</td>"
                f'<td><a href="{commit_page_path(c.id)}">{escape(c.title)}</a></td>'
                f"<td>{escape(c.author_name)}</td>"
                f'<td class="num">{stat.files_changed}</td>'
                f'<td class="num">+{stat.lines_added}</td>'
                f'<td class="num">-{stat.lines_removed}</td>'
                f"<td>{c.id}</td>"
                "</tr>"
            )
        if walk.truncated:
            rows.append(
                "<tr><td>...</td>"
                f"<td>{walk.remaining} more commits remaining, fetch the repository</td>"
                + "<td>...</td>" * 5
                + "</tr>"
            )
        header = "<tr><th>Time</th><th>Commit message</th><th>Author</th><th>Files</th><th>+</th><th>-</th><th>ID</th></tr>"
        return f'<div><table id="log">\n<thead>{header}</thead>\n<tbody>\n' + "\n".join(rows) + "\n</tbody>\n</table></div>"

    def write_log(self, out_dir: pathlib.Path, walk: HistoryWalk) -> pathlib.Path:
        return write_page(self.meta, "Log", out_dir, "log.html", self.render_log(walk))

    # --- commit pages ----------------------------------------------------------

    def render_commit(self, commit: CommitRecord, changes: List[ChangeRecord], link_first_parent: bool) -> str:
        _, to_repo = page_prefixes(commit_page_path(commit.id))
        stat = DiffStat.from_changes(changes)

        parents = []
        for j, parent in enumerate(commit.parent_ids):
            if j == 0 and link_first_parent:
                parents.append(f'<a href="{to_repo}{commit_page_path(parent)}">{parent}</a>')
            else:
                parents.append(parent)
        header = (
            f'<b>commit </b><a href="{to_repo}{commit_page_path(commit.id)}">{commit.id}</a>\n'
            f"<b>parents </b>{' '.join(parents)}\n"
            f"<b>author </b>{escape(f'{commit.author_name} <{commit.author_email}>')}\n"
            f"<b>date </b>{iso_time(commit.author_time)}\n"
        )

        stat_rows = []
        for change in changes:
            bar = ""
            if self.options.diffstat_bars:
                bar = diffstat_bar(change.lines_added, change.lines_removed, self.options.diffstat_bar_width)
            stat_rows.append(
                "<tr>"
                f"<td>{change.kind.value}</td>"
                f'<td><a href="#{href(change.location)}">{escape(change.location)}</a></td>'
                "<td>|</td>"
                f'<td class="num">+{change.lines_added} -{change.lines_removed}</td>'
                f'<td class="bar">{bar}</td>'
                "</tr>"
            )

        diffs = []
        for change in changes:
            marker = f"--- {change.old_location}\n+++ {change.new_location}\n"
            diffs.append(
                f'<pre class="highlight"><span id="{escape(change.new_location)}">{escape(marker)}</span>'
                f"{render_diff(change.unified_diff or '', self.options)}</pre>"
            )

        return (
            '<div id="content">\n'
            f"<pre>{header}</pre>\n"
            f"<p>{escape(commit.title)}</p>\n"
            f'<pre class="message">{escape(commit.body)}</pre>\n'
            f"<p>{stat.files_changed} files changed, {stat.lines_added} insertions(+), "
            f"{stat.lines_removed} deletions(-)</p>\n"
            "<b>Diffstat:</b>\n"
            f'<table id="diffstat">\n' + "\n".join(stat_rows) + "\n</table>\n"
            "<hr>\n" + "\n".join(diffs) + "\n</div>"
        )

    def write_commit_pages(self, out_dir: pathlib.Path, walk: HistoryWalk) -> List[pathlib.Path]:
        written = []
        (out_dir / "commits").mkdir(parents=True, exist_ok=True)
        for i, entry in enumerate(walk.entries):
            commit = entry.commit
            # the first parent only has a page if it is inside the rendered window
            link_parent = walk.limit is None or i + 1 < walk.limit
            content = self.render_commit(commit, entry.changes, link_parent)
            written.append(
                write_page(
                    self.meta,
                    commit.title,
                    out_dir,
                    commit_page_path(commit.id),
                    content,
                    head_extra=pygments_css(self.options),
                )
            )
        self.log.info("%s: wrote %d commit pages", self.meta.name, len(written))
        return written
