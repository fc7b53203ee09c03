"""Helper for constructing throwaway git repositories in tests."""

from __future__ import annotations

import os
import subprocess
import textwrap
from pathlib import Path
from typing import Iterable, Mapping

BASE_TIME = 1_700_000_000


class RepoBuilder:
    """Writes files into a fresh repository and commits them with a fixed identity and clock."""

    def __init__(self, parent: Path, name: str = "project") -> None:
        self.root = parent / name
        self.root.mkdir(parents=True)
        self._home = parent / f".home-{name}"
        self._home.mkdir()
        self._tick = 0
        self.git("init", "-q")
        self.git("symbolic-ref", "HEAD", "refs/heads/main")
        # start without git's placeholder description
        (self.git_dir / "description").unlink(missing_ok=True)

    @property
    def git_dir(self) -> Path:
        return self.root / ".git"

    def _env(self, committer_delay: int = 0) -> dict:
        env = os.environ.copy()
        when = f"{BASE_TIME + self._tick * 60} +0100"
        committed = f"{BASE_TIME + self._tick * 60 + committer_delay} +0100"
        env.update(
            HOME=str(self._home),
            GIT_CONFIG_NOSYSTEM="1",
            GIT_AUTHOR_NAME="Ada Lovelace",
            GIT_AUTHOR_EMAIL="ada@example.com",
            GIT_COMMITTER_NAME="Ada Lovelace",
            GIT_COMMITTER_EMAIL="ada@example.com",
            GIT_AUTHOR_DATE=when,
            GIT_COMMITTER_DATE=committed,
        )
        return env

    def git(self, *args: str, committer_delay: int = 0, input: str | None = None) -> str:
        cp = subprocess.run(
            ["git", *args],
            cwd=self.root,
            env=self._env(committer_delay),
            check=True,
            capture_output=True,
            text=True,
            input=input,
        )
        return cp.stdout

    def write(self, files: Mapping[str, str | bytes]) -> None:
        """Write `path -> contents` entries into the work tree."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")

    def remove(self, paths: Iterable[str]) -> None:
        for relative in paths:
            (self.root / relative).unlink()

    def make_executable(self, relative: str) -> None:
        (self.root / relative).chmod(0o755)

    def symlink(self, relative: str, target: str) -> None:
        os.symlink(target, self.root / relative)

    def add_gitlink(self, relative: str, commit: str) -> None:
        """Stage a submodule entry without a checkout; commit it with stage_all=False."""
        self.git("update-index", "--add", "--cacheinfo", f"160000,{commit},{relative}")

    def commit(
        self,
        message: str,
        files: Mapping[str, str | bytes] | None = None,
        stage_all: bool = True,
        committer_delay: int = 0,
    ) -> str:
        """Commit the work tree (empty commits allowed) and return the new commit id.

        committer_delay moves the committer date that many seconds past the author date.
        """
        if files:
            self.write(files)
        self._tick += 1
        if stage_all:
            self.git("add", "-A")
        self.git("commit", "-q", "--allow-empty", "--no-verify", "-m", message, committer_delay=committer_delay)
        return self.head()

    def commit_raw(self, body: str) -> str:
        """Write a commit object verbatim (no fsck checks) and point the current branch at it."""
        oid = self.git("hash-object", "-t", "commit", "-w", "--literally", "--stdin", input=body).strip()
        self.git("update-ref", "HEAD", oid)
        return oid

    def head(self) -> str:
        return self.git("rev-parse", "HEAD").strip()

    def set_meta(self, name: str, content: str) -> None:
        (self.git_dir / name).write_text(content, encoding="utf-8")


__all__ = ["RepoBuilder"]
