"""
Thin read-only access to a git repository through the `git` executable.

Everything here is plumbing: resolving HEAD, walking first-parent history,
listing trees, diffing two trees at path level and reading blobs. Line-level
diffing and all rendering live elsewhere.

Requires a working `git` in PATH.
"""

from __future__ import annotations

import logging
import os
import pathlib
import re
import subprocess
from datetime import datetime, timedelta, timezone
from typing import Iterator, List, Optional, Sequence, Tuple

from .errors import GitError, HeadResolutionError
from .models import ChangeKind, ChangeRecord, CommitRecord, EntryKind, RefRecord, TreeEntry

logger = logging.getLogger(__name__)

NULL_OID_RE = re.compile(r"^0+$")
AUTHOR_RE = re.compile(r"^(?P<name>.*?) <(?P<email>[^>]*)> (?P<ts>-?\d+) (?P<tz>[+-]\d{4})$")
MAX_TZ_OFFSET = timedelta(hours=24)


def run(
    cmd: Sequence[str],
    cwd: str | None = None,
    check: bool = True,
    text: bool = True,
    input: bytes | str | None = None,
) -> subprocess.CompletedProcess:
    cp = subprocess.run(list(cmd), cwd=cwd, check=False, text=text, capture_output=True, input=input)
    if check and cp.returncode != 0:
        stderr = cp.stderr if text else cp.stderr.decode("utf-8", errors="replace")
        raise GitError(cmd, cp.returncode, stderr)
    return cp


def decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def parse_signature(line: str) -> Tuple[str, str, datetime]:
    m = AUTHOR_RE.match(line.strip())
    if not m:
        return line.strip(), "", datetime.fromtimestamp(0, tz=timezone.utc)
    tz = m.group("tz")
    sign = -1 if tz[0] == "-" else 1
    offset = timedelta(hours=int(tz[1:3]), minutes=int(tz[3:5])) * sign
    # git stores offsets of a day or more (fsck badTimezone); datetime cannot hold them
    zone = timezone(offset) if abs(offset) < MAX_TZ_OFFSET else timezone.utc
    when = datetime.fromtimestamp(int(m.group("ts")), tz=zone)
    return m.group("name"), m.group("email"), when


def parse_commit(oid: str, raw: bytes) -> CommitRecord:
    text = decode(raw)
    header, _, message = text.partition("\n\n")
    tree_id = ""
    parents: List[str] = []
    author = committer = ("", "", datetime.fromtimestamp(0, tz=timezone.utc))
    for line in header.split("\n"):
        # continuation lines of multi-line headers (gpgsig, mergetag) start with a space
        if line.startswith(" "):
            continue
        key, _, value = line.partition(" ")
        if key == "tree":
            tree_id = value.strip()
        elif key == "parent":
            parents.append(value.strip())
        elif key == "author":
            author = parse_signature(value)
        elif key == "committer":
            committer = parse_signature(value)
    # the title runs up to the first blank line, as `git log --format=%s` reads it
    title, _, body = message.strip("\n").partition("\n\n")
    return CommitRecord(
        id=oid,
        parent_ids=tuple(parents),
        author_name=author[0],
        author_email=author[1],
        author_time=author[2],
        committer_time=committer[2],
        title=title.strip(),
        body=body.strip("\n"),
        tree_id=tree_id,
    )


def parse_ls_tree(output: bytes) -> Iterator[TreeEntry]:
    for record in output.split(b"\0"):
        if not record:
            continue
        meta, _, path = record.partition(b"\t")
        fields = decode(meta).split()
        mode, _type, oid = fields[0], fields[1], fields[2]
        size = None
        if len(fields) > 3 and fields[3].isdigit():
            size = int(fields[3])
        yield TreeEntry(path=decode(path), oid=oid, mode=mode, size=size)


def parse_diff_tree(output: bytes) -> List[ChangeRecord]:
    tokens = [decode(t) for t in output.split(b"\0")]
    changes: List[ChangeRecord] = []
    i = 0
    while i < len(tokens):
        meta = tokens[i]
        if not meta.startswith(":"):
            i += 1
            continue
        old_mode, new_mode, old_oid, new_oid, status = meta[1:].split()
        letter = status[0]
        if letter in ("R", "C"):
            old_path, new_path = tokens[i + 1], tokens[i + 2]
            i += 3
        else:
            old_path = new_path = tokens[i + 1]
            i += 2
        if letter == "A":
            kind = ChangeKind.ADDITION
        elif letter == "D":
            kind = ChangeKind.DELETION
        elif letter == "R":
            kind = ChangeKind.REWRITE
        elif letter == "C":
            kind = ChangeKind.ADDITION
            old_path = new_path
            old_oid = "0" * len(old_oid)
        else:
            kind = ChangeKind.MODIFICATION
        changes.append(
            ChangeRecord(
                kind=kind,
                old_location=old_path,
                new_location=new_path,
                old_oid=None if NULL_OID_RE.match(old_oid) else old_oid,
                new_oid=None if NULL_OID_RE.match(new_oid) else new_oid,
                old_mode=old_mode,
                new_mode=new_mode,
            )
        )
    return changes


class Repository:
    """A repository opened through `git --git-dir=...`."""

    def __init__(self, path: pathlib.Path, git_dir: pathlib.Path, bare: bool):
        self.path = path
        self.git_dir = git_dir
        self.bare = bare
        self._empty_tree: Optional[str] = None

    @classmethod
    def open(cls, path: str | os.PathLike) -> "Repository":
        path = pathlib.Path(path)
        cp = run(["git", "-C", str(path), "rev-parse", "--absolute-git-dir", "--is-bare-repository"])
        git_dir, bare = cp.stdout.strip().splitlines()[:2]
        return cls(path, pathlib.Path(git_dir), bare.strip() == "true")

    def __repr__(self) -> str:
        return f"Repository({str(self.path)!r})"

    def git(self, *args: str, text: bool = True, input: bytes | str | None = None) -> subprocess.CompletedProcess:
        return run(self._git_command(*args), text=text, input=input)

    def _git_command(self, *args: str) -> List[str]:
        return ["git", f"--git-dir={self.git_dir}", *args]

    # --- revisions ---------------------------------------------------------

    def rev_parse(self, rev: str) -> str:
        return self.git("rev-parse", "--verify", "--quiet", rev).stdout.strip()

    def head_commit(self) -> CommitRecord:
        try:
            oid = self.rev_parse("HEAD^{commit}")
        except GitError as e:
            raise HeadResolutionError(f"cannot resolve HEAD of {self.path}") from e
        return self.read_commit(oid)

    def head_tree(self) -> str:
        try:
            return self.rev_parse("HEAD^{tree}")
        except GitError as e:
            raise HeadResolutionError(f"cannot resolve HEAD of {self.path}") from e

    def read_commit(self, oid: str) -> CommitRecord:
        return parse_commit(oid, self.git("cat-file", "commit", oid, text=False).stdout)

    def iter_first_parent(self, start: str) -> Iterator[str]:
        """Commit ids from start back to the root, first parents only, newest first."""
        cmd = self._git_command("rev-list", "--first-parent", start)
        proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
        finished = False
        try:
            for line in proc.stdout:
                oid = line.strip()
                if oid:
                    yield oid
            finished = True
        finally:
            proc.stdout.close()
            if not finished and proc.poll() is None:
                proc.kill()
            returncode = proc.wait()
            stderr = proc.stderr.read()
            proc.stderr.close()
        if returncode != 0:
            raise GitError(cmd, returncode, stderr)

    # --- trees -------------------------------------------------------------

    def iter_tree(self, tree: str, recursive: bool = True) -> Iterator[TreeEntry]:
        """Entries of tree; recursive listings are depth-first, directories before their contents."""
        args = ["ls-tree", "-z", "-l"]
        if recursive:
            args += ["-r", "-t"]
        yield from parse_ls_tree(self.git(*args, tree, text=False).stdout)

    def top_level_entries(self, tree: str) -> List[TreeEntry]:
        return list(self.iter_tree(tree, recursive=False))

    def empty_tree(self) -> str:
        if self._empty_tree is None:
            self._empty_tree = self.git("hash-object", "-t", "tree", "--stdin", input="").stdout.strip()
        return self._empty_tree

    def tree_changes(self, old_tree: str, new_tree: str) -> List[ChangeRecord]:
        """Path-level changes between two trees, with rename detection."""
        out = self.git("diff-tree", "-r", "-z", "-M", "--raw", "--no-abbrev", old_tree, new_tree, text=False).stdout
        return parse_diff_tree(out)

    # --- blobs -------------------------------------------------------------

    def read_blob(self, oid: str) -> bytes:
        return self.git("cat-file", "blob", oid, text=False).stdout

    def read_entry(self, oid: Optional[str], mode: str) -> bytes:
        """Content of a tree entry for diffing; submodules read as git prints them."""
        if oid is None:
            return b""
        if EntryKind.from_mode(mode) is EntryKind.COMMIT:
            return f"Subproject commit {oid}\n".encode()
        return self.read_blob(oid)

    # --- refs --------------------------------------------------------------

    def peel_to_commit(self, ref: str) -> CommitRecord:
        return self.read_commit(self.rev_parse(f"{ref}^{{commit}}"))

    def references(self) -> List[RefRecord]:
        """Tags and local branches, each peeled to the commit it names."""
        out = self.git("for-each-ref", "--format=%(refname)%00%(refname:short)", "refs/tags", "refs/heads").stdout
        refs: List[RefRecord] = []
        for line in out.splitlines():
            if not line:
                continue
            full, _, short = line.partition("\0")
            kind = "tag" if full.startswith("refs/tags/") else "branch"
            try:
                commit = self.peel_to_commit(full)
            except GitError:
                logger.warning("%s: skipping %s %s, it does not point at a commit", self.path, kind, short)
                continue
            refs.append(RefRecord(name=short, kind=kind, commit=commit))
        return refs
