"""
refs.html: tags (when there are any) and local branches.
"""

from __future__ import annotations

import pathlib
from typing import List

from .git import Repository
from .meta import write_page
from .models import RefRecord, RepositoryMetadata
from .render import escape, iso_time


def _ref_table(table_id: str, refs: List[RefRecord]) -> str:
    rows = [
        f"<tr><td>{escape(r.name)}</td><td>{iso_time(r.commit.author_time)}</td><td>{escape(r.commit.author_name)}</td></tr>"
        for r in refs
    ]
    header = "<tr><th>Name</th><th>Last commit time</th><th>Author</th></tr>"
    return f'<table id="{table_id}">\n<thead>{header}</thead>\n<tbody>\n' + "\n".join(rows) + "\n</tbody>\n</table>"


def render_refs(refs: List[RefRecord]) -> str:
    tags = [r for r in refs if r.kind == "tag"]
    branches = [r for r in refs if r.kind == "branch"]
    parts = ["<div>"]
    if tags:
        parts += ["<h2>Tags</h2>", _ref_table("tags", tags)]
    parts += ["<h2>Branches</h2>", _ref_table("branches", branches), "</div>"]
    return "\n".join(parts)


def write_refs(repo: Repository, meta: RepositoryMetadata, out_dir: pathlib.Path) -> pathlib.Path:
    return write_page(meta, "Refs", out_dir, "refs.html", render_refs(repo.references()))
