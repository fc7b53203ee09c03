"""
Per-repository metadata and the page frame shared by every generated page.
"""

from __future__ import annotations

import logging
import os
import pathlib
from typing import Iterable, Optional, Sequence, Tuple

from .git import Repository
from .links import page_prefixes
from .models import RepositoryMetadata, TreeEntry
from .render import escape, href

logger = logging.getLogger(__name__)

README_FILES = ("README", "README.md")
LICENSE_FILES = ("LICENSE", "LICENSE.md", "COPYING")
META_FILES = ("description", "url", "owner")
PAGES_FILE = "pages"


def display_name(path: str | os.PathLike) -> str:
    """Last segment of the canonical path, extension stripped ("project.git" -> "project")."""
    return pathlib.Path(path).resolve().stem


def load_meta_file(git_dir: pathlib.Path, name: str) -> Optional[str]:
    try:
        return (git_dir / name).read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError):
        return None


def detect_special_files(entries: Iterable[TreeEntry]) -> Tuple[Optional[str], Optional[str]]:
    """(readme, license) among top-level file entries, first candidate in list order wins."""
    names = {e.name for e in entries if e.kind.is_blob}
    readme = next((c for c in README_FILES if c in names), None)
    license = next((c for c in LICENSE_FILES if c in names), None)
    return readme, license


def load_metadata(
    repo: Repository,
    path: str | os.PathLike | None = None,
    clone_base_urls: Sequence[str] = (),
    log: logging.Logger | None = None,
) -> RepositoryMetadata:
    """Read description/url/owner/pages from the git directory and scan HEAD's top level.

    Missing metadata files are reported and left empty. An unresolvable HEAD
    raises HeadResolutionError.
    """
    log = log or logger
    name = display_name(path if path is not None else repo.path)
    head_tree = repo.head_tree()

    values = {}
    for meta_file in META_FILES:
        value = load_meta_file(repo.git_dir, meta_file)
        if not value:
            log.warning("no %s file found for %s", meta_file, name)
        values[meta_file] = value or ""

    pages = load_meta_file(repo.git_dir, PAGES_FILE)
    if pages is None:
        log.debug("no %s file found for %s", PAGES_FILE, name)

    readme, license = detect_special_files(repo.top_level_entries(head_tree))
    return RepositoryMetadata(
        name=name,
        description=values["description"],
        url=values["url"],
        owner=values["owner"],
        pages=pages,
        readme=readme,
        license=license,
        clone_urls=tuple(f"{base.rstrip('/')}/{name}" for base in clone_base_urls),
    )


def index_metadata() -> RepositoryMetadata:
    return RepositoryMetadata(name="Repositories")


# --- page frame ------------------------------------------------------------------

def render_page(
    meta: RepositoryMetadata,
    title: str,
    content: str,
    to_index_root: str = "",
    to_repo_root: str = "",
    nav: bool = True,
    head_extra: str = "",
) -> str:
    rows = [
        f'<tr><td><a href="{to_index_root}index.html"><img src="{to_index_root}logo.png" alt="logo" id="logo"></a></td>'
        f'<td><h1>{escape(meta.name)}</h1><span class="desc">{escape(meta.description)}</span></td></tr>'
    ]
    for url in ((meta.url,) if meta.url else ()) + meta.clone_urls:
        rows.append(f"<tr><td></td><td>git clone {escape(url)}</td></tr>")
    if nav:
        links = [
            f'<a href="{to_repo_root}log.html">Log</a>',
            f'<a href="{to_repo_root}files.html">Files</a>',
            f'<a href="{to_repo_root}refs.html">Refs</a>',
        ]
        if meta.readme:
            links.append(f'<a href="{to_repo_root}files/{href(meta.readme)}.html">README</a>')
        if meta.license:
            links.append(f'<a href="{to_repo_root}files/{href(meta.license)}.html">LICENSE</a>')
        rows.append(f"<tr><td></td><td><nav>{' | '.join(links)}</nav></td></tr>")
    style = f"<style>\n{head_extra}\n</style>\n" if head_extra else ""
    page_title = f"{title} - {meta.name} - {meta.description}"
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{escape(page_title)}</title>
<link rel="stylesheet" href="{to_index_root}style.css">
<link rel="icon" href="{to_index_root}favicon.png">
{style}</head>
<body>
<table>
{chr(10).join(rows)}
</table>
<hr>
{content}
</body>
</html>
"""


def write_page(
    meta: RepositoryMetadata,
    title: str,
    out_dir: pathlib.Path,
    page: str,
    content: str,
    nav: bool = True,
    head_extra: str = "",
) -> pathlib.Path:
    """Write one page below out_dir (the repository's output root) and return its path."""
    to_index_root, to_repo_root = page_prefixes(page)
    target = out_dir / page
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(
        render_page(meta, title, content, to_index_root, to_repo_root, nav, head_extra),
        encoding="utf-8",
    )
    return target
