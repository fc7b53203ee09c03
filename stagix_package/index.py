"""
The shared index.html listing every repository, one level above the
per-repository sites.
"""

from __future__ import annotations

import logging
import os
import pathlib
import shutil
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from .git import Repository
from .meta import index_metadata, load_metadata, render_page
from .models import RepositoryMetadata
from .render import escape, href, iso_time

logger = logging.getLogger(__name__)

ASSETS = (("stylesheet", "style.css"), ("logo", "logo.png"), ("favicon", "favicon.png"))


@dataclass
class IndexOptions:
    out_dir: Optional[pathlib.Path] = None   # None: write the page to stdout
    stylesheet: Optional[pathlib.Path] = None
    logo: Optional[pathlib.Path] = None
    favicon: Optional[pathlib.Path] = None
    repos_url: Optional[str] = None
    pages_url: Optional[str] = None


@dataclass
class IndexRow:
    meta: RepositoryMetadata
    last_commit: datetime


def index_row(repo_path: str | os.PathLike, log: logging.Logger | None = None) -> IndexRow:
    repo = Repository.open(repo_path)
    head = repo.head_commit()
    meta = load_metadata(repo, repo_path, log=log)
    return IndexRow(meta=meta, last_commit=head.committer_time)


def collect_rows(repo_paths: Iterable[str | os.PathLike], log: logging.Logger | None = None) -> List[IndexRow]:
    """One row per repository; a repository that fails is logged and left out."""
    log = log or logger
    rows = []
    for repo_path in repo_paths:
        try:
            rows.append(index_row(repo_path, log=log))
        except Exception:
            log.exception("%s: leaving repository out of the index", repo_path)
    return rows


def render_index(rows: List[IndexRow], options: IndexOptions) -> str:
    with_pages = bool(options.pages_url)
    header = "<th>Name</th><th>Description</th><th>Owner</th><th>Last commit</th>"
    if with_pages:
        header += "<th>Pages</th>"
    body = []
    for row in rows:
        meta = row.meta
        log_link = f"{href(meta.name)}/log.html"
        if options.repos_url:
            log_link = f"{escape(options.repos_url.rstrip('/'))}/{log_link}"
        cells = [
            f'<td><a href="{log_link}">{escape(meta.name)}</a></td>',
            f"<td>{escape(meta.description)}</td>",
            f"<td>{escape(meta.owner)}</td>",
            f"<td>{iso_time(row.last_commit)}</td>",
        ]
        if with_pages:
            pages = ""
            if meta.pages is not None:
                pages = f'<a href="{escape(options.pages_url.rstrip("/"))}/{href(meta.name)}/">pages</a>'
            cells.append(f"<td>{pages}</td>")
        body.append("<tr>" + "".join(cells) + "</tr>")
    return f'<div><table id="index">\n<thead><tr>{header}</tr></thead>\n<tbody>\n' + "\n".join(body) + "\n</tbody>\n</table></div>"


def copy_assets(options: IndexOptions) -> None:
    for attr, filename in ASSETS:
        source = getattr(options, attr)
        if source is not None:
            shutil.copyfile(source, options.out_dir / filename)


def build_index_page(
    repo_paths: Iterable[str | os.PathLike],
    options: IndexOptions | None = None,
    log: logging.Logger | None = None,
) -> str:
    """Render the index; write it (and copy assets) into options.out_dir, or to stdout."""
    log = log or logger
    options = options or IndexOptions()
    rows = collect_rows(repo_paths, log=log)
    page = render_page(index_metadata(), "Index", render_index(rows, options), nav=False)
    if options.out_dir is None:
        sys.stdout.write(page)
        return page
    options.out_dir.mkdir(parents=True, exist_ok=True)
    (options.out_dir / "index.html").write_text(page, encoding="utf-8")
    copy_assets(options)
    log.info("wrote index of %d repositories to %s", len(rows), options.out_dir)
    return page
