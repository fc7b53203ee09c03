"""
Publish a directory of a repository's HEAD tree (its "pages" root, named in the
`pages` file of the git directory) to <out_dir>/<name>.

The tree is first written to a scratch directory, which is then exchanged
with the live directory in a single rename, so a reader of the live directory
sees either all of the old content or all of the new content.

Atomic exchange uses renameat2(RENAME_EXCHANGE) on Linux and
renamex_np(RENAME_SWAP) on macOS. Where neither is available (other platforms,
or filesystems that reject the flag) the swap falls back to three plain
renames: live -> aside, scratch -> live, aside -> scratch. The fallback never
mixes old and new files either, but between the first two renames the live
path does not exist at all.

The scratch directory must be on the same filesystem as the output directory.
"""

from __future__ import annotations

import ctypes
import enum
import errno
import logging
import os
import pathlib
import shutil
import sys
from dataclasses import dataclass
from typing import Callable, List, Optional

from .errors import PagesRootNotFound, PublishError
from .git import Repository
from .index import IndexOptions, build_index_page
from .meta import load_metadata
from .models import EntryKind, RepositoryMetadata

logger = logging.getLogger(__name__)

AT_FDCWD = -100
RENAME_EXCHANGE = 1 << 1  # linux/fs.h
RENAME_SWAP = 0x00000002  # darwin sys/stdio.h
STAGING_DIRNAME = "staging"


class ExchangeUnsupported(OSError):
    """No atomic exchange primitive for these paths."""


class PublishState(enum.Enum):
    IDLE = "idle"
    RESOLVING_ROOT = "resolving_root"
    STAGING = "staging"
    SWAPPING = "swapping"
    CLEANUP = "cleanup"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PagesOptions:
    out_dir: pathlib.Path
    working_dir: pathlib.Path
    index: Optional[IndexOptions] = None


# --- directory exchange ------------------------------------------------------------

def _libc():
    try:
        return ctypes.CDLL(None, use_errno=True)
    except (OSError, TypeError):
        return None


def atomic_exchange(a: pathlib.Path, b: pathlib.Path) -> None:
    """Swap two existing directory entries in one system call."""
    libc = _libc()
    src, dst = os.fsencode(a), os.fsencode(b)
    if sys.platform.startswith("linux") and libc is not None and hasattr(libc, "renameat2"):
        fn = libc.renameat2
        fn.argtypes = [ctypes.c_int, ctypes.c_char_p, ctypes.c_int, ctypes.c_char_p, ctypes.c_uint]
        fn.restype = ctypes.c_int
        rc = fn(AT_FDCWD, src, AT_FDCWD, dst, RENAME_EXCHANGE)
    elif sys.platform == "darwin" and libc is not None and hasattr(libc, "renamex_np"):
        fn = libc.renamex_np
        fn.argtypes = [ctypes.c_char_p, ctypes.c_char_p, ctypes.c_uint]
        fn.restype = ctypes.c_int
        rc = fn(src, dst, RENAME_SWAP)
    else:
        raise ExchangeUnsupported(errno.ENOSYS, "no atomic exchange primitive on this platform")
    if rc != 0:
        err = ctypes.get_errno()
        if err in (errno.ENOSYS, errno.EINVAL, errno.ENOTSUP):
            raise ExchangeUnsupported(err, os.strerror(err), str(a), None, str(b))
        raise OSError(err, os.strerror(err), str(a), None, str(b))


def swap_by_rename(a: pathlib.Path, b: pathlib.Path) -> None:
    """Non-atomic swap: b is briefly absent between the first two renames."""
    aside = b.with_name(b.name + ".stagix-old")
    if aside.exists():
        shutil.rmtree(aside)
    os.rename(b, aside)
    os.rename(a, b)
    os.rename(aside, a)


def exchange_dirs(scratch: pathlib.Path, live: pathlib.Path, log: logging.Logger | None = None) -> bool:
    """Swap scratch and live; True if the swap was atomic."""
    log = log or logger
    try:
        atomic_exchange(scratch, live)
        return True
    except ExchangeUnsupported as e:
        log.warning("atomic exchange unavailable (%s), falling back to rename sequence", e.strerror)
    swap_by_rename(scratch, live)
    return False


# --- publishing ----------------------------------------------------------------------

def resolve_pages_root(repo: Repository, tree: str, subpath: str) -> str:
    """Tree id of subpath below tree; an empty subpath is tree itself."""
    current = tree
    for component in [c for c in subpath.split("/") if c]:
        match = next(
            (e for e in repo.top_level_entries(current) if e.name == component and e.kind is EntryKind.TREE),
            None,
        )
        if match is None:
            raise PagesRootNotFound(subpath, component)
        current = match.oid
    return current


class PagePublisher:
    def __init__(
        self,
        repo: Repository,
        meta: RepositoryMetadata,
        out_dir: pathlib.Path,
        working_dir: pathlib.Path,
        log: logging.Logger | None = None,
        exchange: Callable[..., bool] = exchange_dirs,
    ):
        self.repo = repo
        self.meta = meta
        self.out_dir = pathlib.Path(out_dir)
        self.working_dir = pathlib.Path(working_dir)
        self.log = log or logger
        self.exchange = exchange
        self.state = PublishState.IDLE

    @property
    def scratch_dir(self) -> pathlib.Path:
        return self.working_dir / STAGING_DIRNAME

    @property
    def live_dir(self) -> pathlib.Path:
        return self.out_dir / self.meta.name

    def _enter(self, state: PublishState) -> None:
        self.log.debug("%s: %s -> %s", self.meta.name, self.state.value, state.value)
        self.state = state

    def stage(self, tree: str, dest: pathlib.Path) -> int:
        """Write tree's files below dest; returns the number of files written."""
        count = 0
        for entry in self.repo.iter_tree(tree, recursive=True):
            target = dest / entry.path
            if entry.kind is EntryKind.TREE:
                target.mkdir(parents=True, exist_ok=True)
            elif entry.kind.is_blob:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(self.repo.read_blob(entry.oid))
                if entry.kind is EntryKind.BLOB_EXECUTABLE:
                    target.chmod(0o755)
                count += 1
            else:
                self.log.warning("%s: skipping %s, unsupported entry kind %s", self.meta.name, entry.path, entry.kind.value)
        return count

    def publish(self) -> Optional[pathlib.Path]:
        """Publish the pages root; None when the repository has none configured."""
        if self.meta.pages is None:
            self.log.info("%s: no pages root configured, nothing to publish", self.meta.name)
            return None
        try:
            self._enter(PublishState.RESOLVING_ROOT)
            root = resolve_pages_root(self.repo, self.repo.head_tree(), self.meta.pages)

            self._enter(PublishState.STAGING)
            scratch, live = self.scratch_dir, self.live_dir
            if scratch.exists():
                shutil.rmtree(scratch)
            scratch.mkdir(parents=True)
            live.mkdir(parents=True, exist_ok=True)
            if os.stat(scratch).st_dev != os.stat(live).st_dev:
                raise PublishError(f"{scratch} and {live} are on different filesystems")
            count = self.stage(root, scratch)

            self._enter(PublishState.SWAPPING)
            try:
                atomic = self.exchange(scratch, live, log=self.log)
            except OSError as e:
                raise PublishError(f"exchanging {scratch} with {live} failed") from e

            self._enter(PublishState.CLEANUP)
            shutil.rmtree(scratch)

            self._enter(PublishState.DONE)
            self.log.info(
                "%s: published %d files to %s%s", self.meta.name, count, live, "" if atomic else " (non-atomic swap)"
            )
            return live
        except Exception:
            self._enter(PublishState.FAILED)
            raise


def build_pages_dirs(
    repo_paths: List[str | os.PathLike],
    options: PagesOptions,
    log: logging.Logger | None = None,
) -> List[pathlib.Path]:
    """Publish every repository's pages root, one at a time; failures are logged and skipped."""
    log = log or logger
    published = []
    options.working_dir.mkdir(parents=True, exist_ok=True)
    for repo_path in repo_paths:
        try:
            repo = Repository.open(repo_path)
            meta = load_metadata(repo, repo_path, log=log)
            live = PagePublisher(repo, meta, options.out_dir, options.working_dir, log=log).publish()
            if live is not None:
                published.append(live)
        except Exception:
            log.exception("%s: publishing pages failed", repo_path)
    if options.index is not None:
        build_index_page(repo_paths, options.index, log=log)
    return published
