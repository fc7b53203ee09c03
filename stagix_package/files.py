"""
File listing and per-file pages for the HEAD tree.
"""

from __future__ import annotations

import logging
import pathlib
from typing import Iterator, List, Tuple

from .git import Repository
from .meta import write_page
from .models import EntryKind, FileEntry, RepositoryMetadata, TreeEntry
from .render import RenderOptions, decode_text, escape, href, numbered_block, pygments_css, split_lines

logger = logging.getLogger(__name__)


def file_page_path(path: str) -> str:
    return f"files/{path}.html"


def iter_files(repo: Repository, tree: str) -> Iterator[TreeEntry]:
    """Regular and executable files of tree, depth-first; links and submodules are skipped."""
    for entry in repo.iter_tree(tree, recursive=True):
        if entry.kind in (EntryKind.BLOB, EntryKind.BLOB_EXECUTABLE):
            yield entry


class FileTreeRenderer:
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

    def render_file(self, entry: TreeEntry) -> Tuple[FileEntry, str]:
        data = self.repo.read_blob(entry.oid)
        text = decode_text(data)
        content = f"<p>{escape(entry.path)} ({len(data)}B)</p>\n<hr>\n"
        if text is not None:
            info = FileEntry(
                path=entry.path,
                executable=entry.kind is EntryKind.BLOB_EXECUTABLE,
                size_bytes=len(data),
                is_text=True,
                line_count=len(split_lines(text)),
            )
            content += numbered_block(text, entry.name, self.options)
        else:
            info = FileEntry(
                path=entry.path,
                executable=entry.kind is EntryKind.BLOB_EXECUTABLE,
                size_bytes=len(data),
                is_text=False,
            )
            content += "binary file."
        return info, content

    def render_listing(self, files: List[FileEntry]) -> str:
        rows = [
            "<tr>"
            f"<td>{f.mode_string}</td>"
            f'<td><a href="{href(file_page_path(f.path))}">{escape(f.path)}</a></td>'
            f'<td class="num">{f.size_label}</td>'
            "</tr>"
            for f in files
        ]
        header = "<tr><th>Mode</th><th>Name</th><th>Size</th></tr>"
        return f'<div><table id="files">\n<thead>{header}</thead>\n<tbody>\n' + "\n".join(rows) + "\n</tbody>\n</table></div>"

    def write(self, out_dir: pathlib.Path, tree: str) -> List[FileEntry]:
        """Write one page per file and then files.html; returns the listed files."""
        files = []
        for entry in iter_files(self.repo, tree):
            info, content = self.render_file(entry)
            write_page(
                self.meta,
                entry.name,
                out_dir,
                file_page_path(entry.path),
                content,
                head_extra=pygments_css(self.options) if info.is_text else "",
            )
            files.append(info)
        write_page(self.meta, "Files", out_dir, "files.html", self.render_listing(files))
        self.log.info("%s: wrote %d file pages", self.meta.name, len(files))
        return files
