"""
Exceptions raised while building or publishing a repository site.
"""

from __future__ import annotations

from typing import List, Sequence


class StagixError(RuntimeError):
    """Base class for every failure stagix reports itself."""


class GitError(StagixError):
    """A git command exited non-zero."""

    def __init__(self, cmd: Sequence[str], returncode: int, stderr: str = ""):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(f"`{' '.join(self.cmd)}` exited with status {returncode}{detail}")


class HeadResolutionError(StagixError):
    """HEAD of a repository does not point at a commit."""


class PagesRootNotFound(StagixError):
    def __init__(self, subpath: str, component: str):
        self.subpath = subpath
        self.component = component
        super().__init__(f"pages root {subpath!r} not found: no directory named {component!r}")


class PublishError(StagixError):
    """Staging or exchanging a published directory failed."""


class BuildError(StagixError):
    """A phase of a single repository build failed; the cause is chained."""

    def __init__(self, phase: str):
        self.phase = phase
        super().__init__(phase)


def error_chain(exc: BaseException) -> List[str]:
    """Messages of exc and its causes, outermost first."""
    messages: List[str] = []
    seen = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        messages.append(str(current) or type(current).__name__)
        current = current.__cause__ or current.__context__
    return messages
