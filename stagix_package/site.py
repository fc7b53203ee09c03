"""
Full site builds.

A single repository build is all-or-nothing from the caller's point of view:
the first failure stops it and is re-raised as a BuildError naming the phase
(refs, files, log, commits, index). Building many repositories isolates each
one.
"""

from __future__ import annotations

import contextlib
import logging
import os
import pathlib
from dataclasses import dataclass, field, replace
from typing import Iterator, List, Optional, Sequence

from .errors import BuildError
from .files import FileTreeRenderer
from .git import Repository
from .history import HistoryRenderer, HistoryWalk
from .index import IndexOptions, build_index_page
from .meta import display_name, load_metadata, write_page
from .models import RepositoryMetadata
from .refs import write_refs
from .render import RenderOptions, decode_text, escape, render_readme

logger = logging.getLogger(__name__)


@dataclass
class RepoOptions:
    out_dir: pathlib.Path
    log_length: Optional[int] = None
    clone_base_urls: Sequence[str] = ()
    render: RenderOptions = field(default_factory=RenderOptions)


@contextlib.contextmanager
def phase(name: str) -> Iterator[None]:
    try:
        yield
    except Exception as e:
        raise BuildError(name) from e


def render_repo_index(repo: Repository, meta: RepositoryMetadata, history: HistoryRenderer, walk: HistoryWalk) -> str:
    """The README when there is one, otherwise the log."""
    if meta.readme is None:
        return history.render_log(walk)
    entry = next(e for e in repo.top_level_entries(repo.head_tree()) if e.name == meta.readme)
    text = decode_text(repo.read_blob(entry.oid))
    if text is None:
        return f"<p>{escape(meta.readme)} is not a text file.</p>"
    return render_readme(meta.readme, text)


def build_repo_pages(
    repo_path: str | os.PathLike,
    options: RepoOptions,
    log: logging.Logger | None = None,
) -> pathlib.Path:
    """Write the complete site for one repository into options.out_dir."""
    log = log or logger
    options.out_dir.mkdir(parents=True, exist_ok=True)
    out_dir = options.out_dir.resolve()

    with phase("open repo"):
        repo = Repository.open(repo_path)
        meta = load_metadata(repo, repo_path, options.clone_base_urls, log=log)
        head = repo.head_commit()
    log.info("%s: building site in %s", meta.name, out_dir)

    with phase("refs"):
        write_refs(repo, meta, out_dir)

    with phase("files"):
        FileTreeRenderer(repo, meta, options.render, log=log).write(out_dir, head.tree_id)

    history = HistoryRenderer(repo, meta, options.render, log=log)
    with phase("log"):
        walk = history.walk(head.id, options.log_length)
        history.write_log(out_dir, walk)

    with phase("commits"):
        history.write_commit_pages(out_dir, walk)

    with phase("index"):
        write_page(meta, meta.name, out_dir, "index.html", render_repo_index(repo, meta, history, walk))

    return out_dir


def build_all(
    repo_paths: List[str | os.PathLike],
    out_dir: pathlib.Path,
    log_length: Optional[int] = None,
    clone_base_urls: Sequence[str] = (),
    index: IndexOptions | None = None,
    render: RenderOptions | None = None,
    log: logging.Logger | None = None,
) -> List[pathlib.Path]:
    """Build every repository below out_dir/<name>, then the shared index."""
    log = log or logger
    built = []
    for repo_path in repo_paths:
        try:
            repo_options = RepoOptions(
                out_dir=out_dir / display_name(repo_path),
                log_length=log_length,
                clone_base_urls=clone_base_urls,
                render=render or RenderOptions(),
            )
            built.append(build_repo_pages(repo_path, repo_options, log=log))
        except Exception:
            log.exception("%s: site build failed", repo_path)
    index = replace(index or IndexOptions(), out_dir=out_dir)
    build_index_page(repo_paths, index, log=log)
    return built
