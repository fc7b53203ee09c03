#!/usr/bin/env python3
"""
Generate static HTML sites for git repositories.

Commands
    stagix repo REPO [--out-dir DIR] [-l N] [--clone-base-urls URL,URL]
        log.html, commits/, files.html, files/, refs.html and index.html for one repository
    stagix index REPO... [--out-dir DIR] [--stylesheet F] [--logo F] [--favicon F]
        the shared index.html listing every repository (stdout without --out-dir)
    stagix pages REPO... --out-dir DIR --working-dir DIR [--index]
        publish each repository's pages directory to DIR/<name> with an atomic swap
    stagix build REPO... [--out-dir DIR] [-l N]
        every repository site below DIR/<name> plus the shared index

Requires a working `git` in PATH.
"""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from typing import List, Optional

from .errors import error_chain
from .index import IndexOptions, build_index_page
from .pages import PagesOptions, build_pages_dirs
from .render import DEFAULT_CONTEXT_LINES, LINE_NUMBER_STYLES, RenderOptions
from .site import RepoOptions, build_all, build_repo_pages

logger = logging.getLogger("stagix_package")


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _add_index_args(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--stylesheet", type=pathlib.Path, help="CSS file copied next to the index as style.css")
    ap.add_argument("--logo", type=pathlib.Path, help="PNG copied next to the index as logo.png")
    ap.add_argument("--favicon", type=pathlib.Path, help="PNG copied next to the index as favicon.png")
    ap.add_argument("--repos-url", help="Base URL for repository links in the index")
    ap.add_argument("--pages-url", help="Base URL for published pages links in the index")


def _add_render_args(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("-l", "--log-length", type=int, help="Limit history to this many commits (default: all)")
    ap.add_argument("--clone-base-urls", type=lambda s: [u for u in s.split(",") if u], default=[],
                    help="Comma separated base URLs shown as `git clone <base>/<name>`")
    ap.add_argument("--context", type=int, default=DEFAULT_CONTEXT_LINES, help="Context lines around diff hunks")
    ap.add_argument("--line-numbers", choices=LINE_NUMBER_STYLES, default="inline", help="Line number placement on file pages")
    ap.add_argument("--no-highlight", action="store_true", help="Disable syntax highlighting")
    ap.add_argument("--bar-width", type=int, help="Scale diffstat bars to at most this many characters")


def _index_options(args: argparse.Namespace, out_dir: Optional[pathlib.Path]) -> IndexOptions:
    return IndexOptions(
        out_dir=out_dir,
        stylesheet=args.stylesheet,
        logo=args.logo,
        favicon=args.favicon,
        repos_url=args.repos_url,
        pages_url=args.pages_url,
    )


def _render_options(args: argparse.Namespace) -> RenderOptions:
    return RenderOptions(
        context_lines=args.context,
        line_numbers=args.line_numbers,
        highlight=not args.no_highlight,
        diffstat_bar_width=args.bar_width,
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="stagix", description="Render git repositories as static HTML sites")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    repo = sub.add_parser("repo", help="Build the site of one repository")
    repo.add_argument("repo", type=pathlib.Path)
    repo.add_argument("--out-dir", type=pathlib.Path, default=pathlib.Path("."))
    _add_render_args(repo)

    index = sub.add_parser("index", help="Build the shared repository index")
    index.add_argument("repos", type=pathlib.Path, nargs="+")
    index.add_argument("--out-dir", type=pathlib.Path, help="Directory for index.html (default: stdout)")
    _add_index_args(index)

    pages = sub.add_parser("pages", help="Publish each repository's pages directory")
    pages.add_argument("repos", type=pathlib.Path, nargs="+")
    pages.add_argument("--out-dir", type=pathlib.Path, required=True)
    pages.add_argument("--working-dir", type=pathlib.Path, required=True,
                       help="Scratch directory, on the same filesystem as --out-dir")
    pages.add_argument("--index", action="store_true", help="Also write the shared index into --out-dir")
    _add_index_args(pages)

    build = sub.add_parser("build", help="Build every repository site and the shared index")
    build.add_argument("repos", type=pathlib.Path, nargs="+")
    build.add_argument("--out-dir", type=pathlib.Path, default=pathlib.Path("."))
    _add_render_args(build)
    _add_index_args(build)
    return ap


def run_command(args: argparse.Namespace) -> int:
    if args.command == "repo":
        options = RepoOptions(
            out_dir=args.out_dir,
            log_length=args.log_length,
            clone_base_urls=args.clone_base_urls,
            render=_render_options(args),
        )
        build_repo_pages(args.repo, options)
        return 0
    if args.command == "index":
        build_index_page(args.repos, _index_options(args, args.out_dir))
        return 0
    if args.command == "pages":
        options = PagesOptions(
            out_dir=args.out_dir,
            working_dir=args.working_dir,
            index=_index_options(args, args.out_dir) if args.index else None,
        )
        build_pages_dirs(args.repos, options)
        return 0
    built = build_all(
        args.repos,
        args.out_dir,
        log_length=args.log_length,
        clone_base_urls=args.clone_base_urls,
        index=_index_options(args, args.out_dir),
        render=_render_options(args),
    )
    return 0 if len(built) == len(args.repos) else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    try:
        return run_command(args)
    except Exception as e:
        logger.error("%s", ": ".join(error_chain(e)))
        logger.debug("traceback", exc_info=True)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
