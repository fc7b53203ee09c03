"""
Relative links between generated pages.

Every page of a repository site lives somewhere below the repository's output
root, and every repository output root lives one level below the shared index.
Prefixes are derived from the page's own output path alone, so a file page
nested several directories deep links back exactly like a top-level page.
"""

from __future__ import annotations

import pathlib
from typing import Tuple

PARENT = "../"


def relative_prefix(page: str | pathlib.PurePath, repo_root: str | pathlib.PurePath = "") -> str:
    """'../' once per directory between page and repo_root (the page's filename does not count)."""
    page = pathlib.PurePosixPath(pathlib.PurePath(page).as_posix())
    root = pathlib.PurePosixPath(pathlib.PurePath(repo_root).as_posix())
    if str(root) not in ("", "."):
        page = page.relative_to(root)
    depth = len(page.parts)
    return PARENT * max(depth - 1, 0)


def index_prefix(page: str | pathlib.PurePath, repo_root: str | pathlib.PurePath = "") -> str:
    return PARENT + relative_prefix(page, repo_root)


def page_prefixes(page: str | pathlib.PurePath, repo_root: str | pathlib.PurePath = "") -> Tuple[str, str]:
    """(to shared index root, to repository root) for a page."""
    to_repo = relative_prefix(page, repo_root)
    return PARENT + to_repo, to_repo
